"""
Chunk translator.

Translates one chunk with the glossary terms it contains as mandated
translations. Rate limits are handled by rotating keys and backing off;
any failure ends as a failed chunk rather than an exception.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence
from typing import Any

from guided_translator.exceptions import RetryExhaustedError
from guided_translator.llm.base import LLMProvider
from guided_translator.llm.keys import KeyPool
from guided_translator.llm.retry import (
    DEFAULT_BASE_DELAY,
    DEFAULT_MAX_RETRIES,
    BackoffPolicy,
    RetryController,
    RotationPolicy,
    SleepFunc,
    StatusCallback,
)
from guided_translator.models import Chunk, GlossaryEntry, TranslatedChunk
from guided_translator.terminology.matcher import identify_terms_in_text
from guided_translator.translation.prompt import build_system_prompt, build_translation_prompt

# Callback for logging: (level, message, context)
LogCallback = Callable[[str, str, dict[str, Any]], None] | None


class ChunkTranslator:
    """
    Translates chunks through an LLM provider.

    The provider must read its API key from the same KeyPool this translator
    rotates.
    """

    def __init__(
        self,
        provider: LLMProvider,
        *,
        key_pool: KeyPool | None = None,
        source_lang: str = "en",
        target_lang: str = "zh",
        temperature: float = 0.3,
        max_tokens: int = 4096,
        base_delay: float = DEFAULT_BASE_DELAY,
        max_retries: int = DEFAULT_MAX_RETRIES,
        sleep: SleepFunc = asyncio.sleep,
        log_callback: LogCallback = None,
    ):
        """
        Initialize chunk translator.

        Args:
            provider: Remote model provider.
            key_pool: Key pool shared with the provider. Defaults to the
                provider's own ``key_pool``.
            source_lang: Source language code.
            target_lang: Target language code.
            temperature: Sampling temperature.
            max_tokens: Maximum output tokens per call.
            base_delay: Backoff base delay in seconds.
            max_retries: Backoff cycles before a chunk fails.
            sleep: Coroutine used for backoff waits.
            log_callback: Optional (level, message, context) logger.
        """
        pool = key_pool or getattr(provider, "key_pool", None)
        if pool is None:
            raise ValueError("ChunkTranslator needs a key pool shared with the provider")

        self._provider = provider
        self._pool: KeyPool = pool
        self._source_lang = source_lang
        self._target_lang = target_lang
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._base_delay = base_delay
        self._max_retries = max_retries
        self._sleep = sleep
        self._log_callback = log_callback
        self._system_prompt = build_system_prompt(source_lang, target_lang)

    @property
    def key_pool(self) -> KeyPool:
        return self._pool

    @property
    def provider_name(self) -> str:
        return self._provider.name

    def _log(self, level: str, message: str, context: dict[str, Any] | None = None) -> None:
        if self._log_callback:
            self._log_callback(level, message, context or {})

    def _controller(self, status_callback: StatusCallback) -> RetryController:
        return RetryController(
            self._pool,
            rotation=RotationPolicy(self._pool),
            backoff=BackoffPolicy(self._base_delay, self._max_retries),
            sleep=self._sleep,
            status_callback=status_callback,
        )

    async def translate_chunk(
        self,
        chunk: Chunk,
        glossary: Sequence[GlossaryEntry],
        status_callback: StatusCallback = None,
    ) -> TranslatedChunk:
        """
        Translate one chunk.

        Args:
            chunk: Chunk to translate.
            glossary: Full glossary; only the terms found in the chunk are
                sent with the request.
            status_callback: Receives rotation and backoff events.

        Returns:
            TranslatedChunk. On failure ``failed`` is set and the translation
            holds the failed-translation marker with the reason.
        """
        matched_terms = identify_terms_in_text(chunk.text, glossary)
        if not chunk.text.strip():
            return TranslatedChunk.from_chunk(chunk, "", matched_terms)

        found = {match.english for match in matched_terms}
        relevant = [entry for entry in glossary if entry.english in found]
        user_prompt = build_translation_prompt(
            chunk.text,
            relevant,
            source_lang=self._source_lang,
            target_lang=self._target_lang,
        )

        async def call():
            return await self._provider.chat(
                system_prompt=self._system_prompt,
                user_prompt=user_prompt,
                temperature=self._temperature,
                max_tokens=self._max_tokens,
            )

        controller = self._controller(status_callback)
        try:
            response = await controller.run(call)
        except RetryExhaustedError as e:
            self._log(
                "ERROR",
                f"Chunk {chunk.id} failed after retries: {e}",
                {"chunk_id": chunk.id, "attempts": e.attempts},
            )
            return TranslatedChunk.failed_from_chunk(chunk, str(e), matched_terms)
        except Exception as e:
            self._log(
                "ERROR",
                f"Chunk {chunk.id} failed: {e}",
                {"chunk_id": chunk.id, "error": type(e).__name__},
            )
            return TranslatedChunk.failed_from_chunk(chunk, str(e), matched_terms)

        self._log(
            "DEBUG",
            f"Translated {chunk.id}",
            {
                "chunk_id": chunk.id,
                "attempts": controller.attempts,
                "terms": len(relevant),
                "output_tokens": response.output_tokens,
            },
        )
        return TranslatedChunk.from_chunk(chunk, response.content, matched_terms)
