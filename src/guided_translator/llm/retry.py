"""
Rate-limit handling for remote calls.

Two small policies decide what happens after a rate limit:

- RotationPolicy: switch to another key from the pool while some key in the
  current cycle has not been tried yet.
- BackoffPolicy: once every key was tried, wait base_delay * retry_count
  seconds and start a new cycle, up to max_retries times.

RetryController drives a call through both. Errors other than rate limits
are not retried.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from guided_translator.exceptions import RateLimitError, RetryExhaustedError
from guided_translator.llm.keys import KeyPool

T = TypeVar("T")

DEFAULT_BASE_DELAY = 3.0
DEFAULT_MAX_RETRIES = 5

SleepFunc = Callable[[float], Awaitable[Any]]


@dataclass(frozen=True)
class RetryEvent:
    """A rotation or backoff step, sent to the status callback."""

    kind: str  # "rotate" or "backoff"
    message: str
    key_index: int
    retry_count: int = 0
    delay: float = 0.0


StatusCallback = Callable[[RetryEvent], None] | None


class RotationPolicy:
    """Bounded rotation over a key pool: at most one try per key per cycle."""

    def __init__(self, pool: KeyPool):
        self.pool = pool
        self.tried = 0

    def record_failure(self) -> None:
        self.tried += 1

    def should_rotate(self) -> bool:
        return self.tried < self.pool.size

    def reset(self) -> None:
        self.tried = 0


class BackoffPolicy:
    """Linear backoff: delay grows with the number of completed cycles."""

    def __init__(
        self,
        base_delay: float = DEFAULT_BASE_DELAY,
        max_retries: int = DEFAULT_MAX_RETRIES,
    ):
        self.base_delay = base_delay
        self.max_retries = max_retries
        self.retry_count = 0

    def next_delay(self) -> float | None:
        """Delay before the next cycle, or None once retries are used up."""
        self.retry_count += 1
        if self.retry_count > self.max_retries:
            return None
        return self.base_delay * self.retry_count


class RetryController:
    """
    Runs a remote call under rotation and backoff.

    A controller holds per-call state, so create a fresh one for every
    chunk. The pool itself is shared and its rotation persists.
    """

    def __init__(
        self,
        pool: KeyPool,
        rotation: RotationPolicy | None = None,
        backoff: BackoffPolicy | None = None,
        sleep: SleepFunc = asyncio.sleep,
        status_callback: StatusCallback = None,
    ):
        self.pool = pool
        self.rotation = rotation or RotationPolicy(pool)
        self.backoff = backoff or BackoffPolicy()
        self._sleep = sleep
        self._status_callback = status_callback
        self.attempts = 0

    def _emit(self, event: RetryEvent) -> None:
        if self._status_callback:
            self._status_callback(event)

    async def run(self, call: Callable[[], Awaitable[T]]) -> T:
        """
        Await ``call()`` until it succeeds.

        Raises:
            RetryExhaustedError: Rate limited through every backoff cycle.
            Exception: Any non-rate-limit error from the call, unchanged.
        """
        while True:
            self.attempts += 1
            try:
                return await call()
            except RateLimitError as e:
                self.rotation.record_failure()

                if self.rotation.should_rotate():
                    self.pool.rotate()
                    self._emit(
                        RetryEvent(
                            kind="rotate",
                            message=(
                                f"Rate limited, switching to key "
                                f"{self.pool.index + 1}/{self.pool.size}"
                            ),
                            key_index=self.pool.index,
                            retry_count=self.backoff.retry_count,
                        )
                    )
                    continue

                delay = self.backoff.next_delay()
                if delay is None:
                    raise RetryExhaustedError(
                        f"Rate limited after {self.backoff.max_retries} retries "
                        f"across {self.pool.size} keys: {e}",
                        attempts=self.attempts,
                    ) from e

                self._emit(
                    RetryEvent(
                        kind="backoff",
                        message=(
                            f"All {self.pool.size} keys rate limited, waiting {delay:g}s "
                            f"(retry {self.backoff.retry_count}/{self.backoff.max_retries})"
                        ),
                        key_index=self.pool.index,
                        retry_count=self.backoff.retry_count,
                        delay=delay,
                    )
                )
                await self._sleep(delay)
                self.rotation.reset()
