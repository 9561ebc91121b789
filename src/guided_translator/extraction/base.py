"""
Base classes and interfaces for page text extractors.
"""

from __future__ import annotations

import math
import re
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from guided_translator.extraction.layout import join_pages

# Callback for page progress: (current, total)
PageProgressCallback = Callable[[int, int], None] | None

_STANDARD_CODE = re.compile(r"\b([A-Z]{2,4})\s+(\d{3,6}(?:[-:]\d+)*)")
_CJK_CHAR = re.compile(r"[\u4e00-\u9fa5]")
_LATIN_WORD = re.compile(r"[a-zA-Z]+")

WORDS_PER_MINUTE = 200


@dataclass
class PageText:
    """Text extracted from one page."""

    content: str
    page_number: int
    source: str = ""
    error: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        """Check if content is empty or whitespace only."""
        return not self.content or not self.content.strip()

    @property
    def failed(self) -> bool:
        return self.error is not None


@dataclass
class DocumentStructure:
    """Full extracted text of a document plus summary facts."""

    text: str
    pages: int
    word_count: int
    language: str
    title: str = ""
    page_errors: dict[int, str] = field(default_factory=dict)

    @property
    def reading_time_minutes(self) -> int:
        return estimate_reading_time(self.word_count)


class PageExtractor(ABC):
    """Abstract base class for page text extractors."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Extractor name."""
        ...

    @abstractmethod
    async def extract_page(
        self,
        file_path: Path,
        page_number: int,
        **kwargs: Any,
    ) -> PageText:
        """
        Extract text from a single page.

        Args:
            file_path: Path to the document.
            page_number: Page number (0-indexed).
            **kwargs: Extractor-specific options.

        Returns:
            PageText with the page content.
        """
        ...

    @abstractmethod
    async def extract_document(
        self,
        file_path: Path,
        progress_callback: PageProgressCallback = None,
        **kwargs: Any,
    ) -> list[PageText]:
        """
        Extract text from all pages, strictly in page order.

        Args:
            file_path: Path to the document.
            progress_callback: Called with (current, total) after each page.
            **kwargs: Extractor-specific options.

        Returns:
            List of PageText, one per page.
        """
        ...

    def can_handle(self, file_path: Path) -> bool:
        """Check if this extractor can handle the given file type."""
        return file_path.suffix.lower() == ".pdf"


def count_words(text: str) -> int:
    return len(text.split())


def detect_language(text: str) -> str:
    """
    Guess the document language from its first 1000 characters.

    Returns:
        ``"zh"`` when CJK characters outnumber latin words, ``"en"`` when latin
        words are more than twice the CJK count, ``"unknown"`` otherwise.
    """
    sample = text[:1000]
    chinese_chars = len(_CJK_CHAR.findall(sample))
    english_words = len(_LATIN_WORD.findall(sample))

    if chinese_chars > english_words:
        return "zh"
    if english_words > chinese_chars * 2:
        return "en"
    return "unknown"


def extract_standard_title(text: str, filename: str) -> str:
    """
    Find a standard code such as ``EN 13001-3-1`` or ``ISO 9001:2015``.

    Only the first 1000 characters are searched. Falls back to the file name
    without its extension.
    """
    match = _STANDARD_CODE.search(text[:1000])
    if match:
        return f"{match.group(1)} {match.group(2)}"
    return Path(filename).stem


def estimate_reading_time(word_count: int) -> int:
    """Estimated reading time in minutes."""
    return math.ceil(word_count / WORDS_PER_MINUTE)


def build_document_structure(pages: list[PageText], filename: str) -> DocumentStructure:
    """Combine page results into one DocumentStructure."""
    text = join_pages(page.content for page in pages)
    return DocumentStructure(
        text=text,
        pages=len(pages),
        word_count=count_words(text),
        language=detect_language(text),
        title=extract_standard_title(text, filename),
        page_errors={page.page_number: page.error for page in pages if page.error},
    )
