"""
OpenAI-compatible chat provider.

Works against any OpenAI-compatible endpoint (OpenRouter, the Gemini
compatibility endpoint, a local server). The active API key is read from a
KeyPool on every call, so a rotation applies to the very next request.
"""

from __future__ import annotations

import time
from typing import Any

import openai
from openai import AsyncOpenAI

from guided_translator.exceptions import ProviderError, RateLimitError
from guided_translator.llm.base import LLMProvider, LLMResponse
from guided_translator.llm.keys import KeyPool

DEFAULT_TIMEOUT = 120.0

# Message fragments some gateways use for quota errors sent without a 429
RATE_LIMIT_MARKERS = ("rate limit", "resource_exhausted", "quota")


def is_rate_limit_error(error: Exception) -> bool:
    """Whether a client exception signals a rate limit or exhausted quota."""
    if isinstance(error, openai.RateLimitError):
        return True
    if isinstance(error, openai.APIStatusError) and error.status_code == 429:
        return True
    if isinstance(error, openai.APIError):
        text = str(error).lower()
        return any(marker in text for marker in RATE_LIMIT_MARKERS)
    return False


class OpenAICompatibleProvider(LLMProvider):
    """
    Chat provider for OpenAI-compatible APIs with a rotating key pool.

    The client is created without retries; the retry controller owns all
    retry decisions.
    """

    def __init__(
        self,
        key_pool: KeyPool,
        model: str,
        base_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        provider_name: str = "openai-compatible",
    ):
        """
        Initialize provider.

        Args:
            key_pool: Pool of interchangeable API keys.
            model: Model name sent with every request.
            base_url: API base URL.
            timeout: Per-call timeout in seconds.
            provider_name: Name used in logs and response metadata.
        """
        self._pool = key_pool
        self._model_name = model
        self._base_url = base_url
        self._timeout = timeout
        self._provider_name = provider_name
        self._clients: dict[str, AsyncOpenAI] = {}

    @property
    def name(self) -> str:
        return self._provider_name

    @property
    def model(self) -> str:
        return self._model_name

    @property
    def key_pool(self) -> KeyPool:
        return self._pool

    def _client_for(self, api_key: str) -> AsyncOpenAI:
        client = self._clients.get(api_key)
        if client is None:
            client = AsyncOpenAI(
                api_key=api_key,
                base_url=self._base_url,
                timeout=self._timeout,
                max_retries=0,
            )
            self._clients[api_key] = client
        return client

    async def complete(
        self,
        messages: list[dict[str, str]],
        *,
        temperature: float = 0.3,
        max_tokens: int = 4096,
        **kwargs: Any,
    ) -> LLMResponse:
        """Run one completion with the pool's current key."""
        start_time = time.perf_counter()
        key_index = self._pool.index
        client = self._client_for(self._pool.current())

        try:
            response = await client.chat.completions.create(
                model=self._model_name,
                messages=messages,  # type: ignore[arg-type]
                temperature=temperature,
                max_tokens=max_tokens,
                **kwargs,
            )
        except Exception as e:
            if is_rate_limit_error(e):
                raise RateLimitError(f"{self._provider_name} rate limited: {e}") from e
            raise ProviderError(f"{self._provider_name} request failed: {e}") from e

        if not response.choices:
            raise ProviderError(f"{self._provider_name} returned no choices")

        latency_ms = (time.perf_counter() - start_time) * 1000
        content = response.choices[0].message.content or ""
        usage = response.usage

        return LLMResponse(
            content=content.strip(),
            input_tokens=usage.prompt_tokens if usage else 0,
            output_tokens=usage.completion_tokens if usage else 0,
            model=self._model_name,
            latency_ms=latency_ms,
            metadata={
                "provider": self._provider_name,
                "finish_reason": response.choices[0].finish_reason,
                "key_index": key_index,
            },
        )
