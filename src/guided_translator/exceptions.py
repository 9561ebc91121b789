"""
Shared exception types for guided-translator.

Remote-call errors live here rather than in the provider modules so the retry
policies can depend on them without importing a concrete client.
"""

from __future__ import annotations


class GuidedTranslatorError(Exception):
    """Base class for all guided-translator errors."""


class GlossaryError(GuidedTranslatorError):
    """Raised when a glossary file cannot be read as a term table."""


class GlossaryValidationError(GlossaryError):
    """Raised when a glossary is empty or invalid and a run must not start."""

    def __init__(self, errors: list[str], warnings: list[str] | None = None):
        self.errors = errors
        self.warnings = warnings or []
        super().__init__("; ".join(errors) or "Invalid glossary")


class ProviderError(GuidedTranslatorError):
    """A remote call failed for a reason other than rate limiting."""


class RateLimitError(ProviderError):
    """The remote service rejected the call because of a rate limit or quota."""


class RetryExhaustedError(ProviderError):
    """Every key rotation and backoff attempt was used without success."""

    def __init__(self, message: str, attempts: int = 0):
        self.attempts = attempts
        super().__init__(message)
