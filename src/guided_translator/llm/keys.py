"""
API key pool.
"""

from __future__ import annotations

from collections.abc import Iterable


class KeyPool:
    """
    Ordered set of interchangeable API keys with one active member.

    Only the retry controller rotates the pool; providers read
    ``current()`` on every call so a rotation applies to the next request.
    """

    def __init__(self, keys: Iterable[str]):
        self._keys = [key.strip() for key in keys if key and key.strip()]
        if not self._keys:
            raise ValueError("Key pool needs at least one API key")
        self._index = 0

    @property
    def size(self) -> int:
        return len(self._keys)

    @property
    def index(self) -> int:
        return self._index

    def current(self) -> str:
        return self._keys[self._index]

    def rotate(self) -> str:
        """Advance to the next key, wrapping around, and return it."""
        self._index = (self._index + 1) % len(self._keys)
        return self._keys[self._index]

    def __len__(self) -> int:
        return len(self._keys)

    def __repr__(self) -> str:
        return f"KeyPool(size={self.size}, index={self._index})"
