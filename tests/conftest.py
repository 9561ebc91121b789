from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from guided_translator.llm.base import LLMProvider, LLMResponse
from guided_translator.llm.keys import KeyPool


class RecordingSleep:
    """Async sleep replacement that records requested delays and returns at once."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class FakeProvider(LLMProvider):
    """
    Provider that answers from a responder function instead of the network.

    The responder gets (user_prompt, api_key) and returns the translation or
    raises.
    """

    def __init__(
        self,
        key_pool: KeyPool,
        responder: Callable[[str, str], str] | None = None,
    ):
        self.key_pool = key_pool
        self._responder = responder or (lambda prompt, key: "译文")
        self.calls: list[dict[str, Any]] = []

    @property
    def name(self) -> str:
        return "fake"

    @property
    def model(self) -> str:
        return "fake-model"

    async def complete(self, messages, *, temperature=0.3, max_tokens=4096, **kwargs):
        key = self.key_pool.current()
        user_prompt = messages[-1]["content"]
        self.calls.append({"key": key, "prompt": user_prompt, "messages": messages})
        content = self._responder(user_prompt, key)
        return LLMResponse(content=content, model=self.model)


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def clean_env(monkeypatch):
    for name in (
        "GUIDED_TRANSLATOR_API_KEYS",
        "OPENROUTER_API_KEY",
        "GEMINI_API_KEY",
        "VISION_API_KEY",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch
