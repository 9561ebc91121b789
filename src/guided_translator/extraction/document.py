"""
Document-level extraction entry point.

Chooses the extractor for a file and returns the combined DocumentStructure.
"""

from __future__ import annotations

import math
from pathlib import Path

from guided_translator.extraction.base import (
    DocumentStructure,
    PageExtractor,
    PageProgressCallback,
    build_document_structure,
    count_words,
    detect_language,
    extract_standard_title,
)
from guided_translator.extraction.pymupdf import PyMuPDFLayoutExtractor
from guided_translator.extraction.text import TextFileExtractor

# Rough words-per-page used to report a page count for text files
WORDS_PER_PAGE = 500


def select_extractor(file_path: Path, vision: PageExtractor | None = None) -> PageExtractor:
    """
    Pick the extractor for a file.

    Text and markdown files are read directly. PDFs go to the vision extractor
    when one is supplied, otherwise to layout reconstruction.

    Raises:
        ValueError: If no extractor supports the file type.
    """
    text_extractor = TextFileExtractor()
    if text_extractor.can_handle(file_path):
        return text_extractor
    if vision is not None and vision.can_handle(file_path):
        return vision

    layout_extractor = PyMuPDFLayoutExtractor()
    if layout_extractor.can_handle(file_path):
        return layout_extractor

    raise ValueError(f"Unsupported document type: {file_path.suffix or file_path.name}")


async def extract_structured_content(
    file_path: Path | str,
    vision: PageExtractor | None = None,
    progress_callback: PageProgressCallback = None,
) -> DocumentStructure:
    """
    Extract the full text of a document.

    Args:
        file_path: Document to read (.pdf, .md, .markdown, .txt).
        vision: Vision extractor to use for PDFs instead of layout
            reconstruction; only pass one when a vision credential is set.
        progress_callback: Called with (current, total) after each page.

    Returns:
        DocumentStructure with the text and summary facts.
    """
    file_path = Path(file_path)
    if not file_path.exists():
        raise FileNotFoundError(f"Document not found: {file_path}")

    extractor = select_extractor(file_path, vision)
    pages = await extractor.extract_document(file_path, progress_callback=progress_callback)

    if isinstance(extractor, TextFileExtractor):
        text = pages[0].content.strip() if pages else ""
        word_count = count_words(text)
        return DocumentStructure(
            text=text,
            pages=math.ceil(word_count / WORDS_PER_PAGE) or 1,
            word_count=word_count,
            language=detect_language(text),
            title=extract_standard_title(text, file_path.name),
        )

    return build_document_structure(pages, file_path.name)
