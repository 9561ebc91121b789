"""
Remote model access.

- OpenAI-compatible chat provider (OpenRouter, Gemini, custom endpoints)
- Key pool with rotation
- Rotation and backoff policies driven by a retry controller
"""

from guided_translator.llm.base import LLMProvider, LLMResponse
from guided_translator.llm.factory import LLMProviderType, create_llm_provider
from guided_translator.llm.keys import KeyPool
from guided_translator.llm.openai_compat import OpenAICompatibleProvider
from guided_translator.llm.retry import BackoffPolicy, RetryController, RetryEvent, RotationPolicy

__all__ = [
    "LLMProvider",
    "LLMResponse",
    "LLMProviderType",
    "create_llm_provider",
    "KeyPool",
    "OpenAICompatibleProvider",
    "RotationPolicy",
    "BackoffPolicy",
    "RetryController",
    "RetryEvent",
]
