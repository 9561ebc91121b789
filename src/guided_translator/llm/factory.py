"""
LLM provider factory.

Creates the translation provider from configuration.
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum

from guided_translator.llm.base import LLMProvider
from guided_translator.llm.keys import KeyPool
from guided_translator.llm.openai_compat import DEFAULT_TIMEOUT, OpenAICompatibleProvider


class LLMProviderType(str, Enum):
    """Known OpenAI-compatible endpoints."""

    OPENROUTER = "openrouter"
    GEMINI = "gemini"
    CUSTOM = "custom"


BASE_URLS = {
    LLMProviderType.OPENROUTER: "https://openrouter.ai/api/v1",
    LLMProviderType.GEMINI: "https://generativelanguage.googleapis.com/v1beta/openai/",
}

DEFAULT_MODELS = {
    LLMProviderType.OPENROUTER: "google/gemini-2.0-flash-001",
    LLMProviderType.GEMINI: "gemini-2.0-flash",
    LLMProviderType.CUSTOM: "default",
}


def _normalize(provider_type: LLMProviderType | str) -> LLMProviderType:
    if isinstance(provider_type, LLMProviderType):
        return provider_type
    try:
        return LLMProviderType(provider_type.lower().replace("_", "-"))
    except ValueError:
        valid = [p.value for p in LLMProviderType]
        raise ValueError(
            f"Invalid provider type: {provider_type}. Valid options: {valid}"
        ) from None


def create_llm_provider(
    provider_type: LLMProviderType | str,
    *,
    api_keys: KeyPool | Iterable[str],
    model: str | None = None,
    base_url: str | None = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> OpenAICompatibleProvider:
    """
    Create a translation provider.

    Args:
        provider_type: openrouter, gemini or custom.
        api_keys: A KeyPool, or the keys to build one from.
        model: Model name; the provider default when omitted.
        base_url: Overrides the provider's URL. Required for custom.
        timeout: Per-call timeout in seconds.

    Raises:
        ValueError: If the provider type is unknown, no key is given, or a
            custom provider has no base URL.

    Examples:
        provider = create_llm_provider(
            "openrouter",
            api_keys=["sk-or-1", "sk-or-2"],
            model="google/gemini-2.0-flash-001",
        )
    """
    kind = _normalize(provider_type)
    pool = api_keys if isinstance(api_keys, KeyPool) else KeyPool(api_keys)

    url = base_url or BASE_URLS.get(kind)
    if not url:
        raise ValueError(f"Provider '{kind.value}' requires a base_url")

    return OpenAICompatibleProvider(
        key_pool=pool,
        model=model or get_default_model_for_provider(kind),
        base_url=url,
        timeout=timeout,
        provider_name=kind.value,
    )


def get_default_model_for_provider(provider_type: LLMProviderType | str) -> str:
    return DEFAULT_MODELS[_normalize(provider_type)]


__all__ = [
    "LLMProvider",
    "LLMProviderType",
    "create_llm_provider",
    "get_default_model_for_provider",
]
