"""
Direct text extraction for plain text and markdown files.

No layout analysis needed - the file content is already logical text.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from guided_translator.extraction.base import PageExtractor, PageProgressCallback, PageText


class TextFileExtractor(PageExtractor):
    """
    Extract text from plain text and markdown files.

    The whole file is treated as a single page (page 0).
    """

    SUPPORTED_EXTENSIONS = {".md", ".markdown", ".txt"}

    @property
    def name(self) -> str:
        return "text_direct"

    def can_handle(self, file_path: Path) -> bool:
        """Check if this extractor can handle the file."""
        return file_path.suffix.lower() in self.SUPPORTED_EXTENSIONS

    async def extract_page(
        self,
        file_path: Path,
        page_number: int,
        **kwargs: Any,
    ) -> PageText:
        """
        Read a text/markdown file.

        Args:
            file_path: Path to text/markdown file.
            page_number: Page number (0-indexed). Only page 0 has content.

        Returns:
            PageText with the file content (page 0) or empty (other pages).
        """
        if page_number != 0:
            return PageText(content="", page_number=page_number, source=self.name)

        try:
            content = file_path.read_text(encoding="utf-8")
            encoding = "utf-8"
        except UnicodeDecodeError:
            content, encoding = self._read_fallback(file_path)

        return PageText(
            content=content,
            page_number=0,
            source=self.name,
            metadata={"encoding": encoding, "file_type": file_path.suffix.lower()},
        )

    def _read_fallback(self, file_path: Path) -> tuple[str, str]:
        try:
            return file_path.read_text(encoding="cp1252"), "cp1252"
        except UnicodeDecodeError:
            # latin-1 maps every byte
            return file_path.read_text(encoding="latin-1"), "latin-1"

    async def extract_document(
        self,
        file_path: Path,
        progress_callback: PageProgressCallback = None,
        **kwargs: Any,
    ) -> list[PageText]:
        """Read the file as a single page."""
        result = await self.extract_page(file_path, 0, **kwargs)
        if progress_callback:
            progress_callback(1, 1)
        return [result]
