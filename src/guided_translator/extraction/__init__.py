"""
Page text extraction for guided-translator.

Provides:
- Layout reconstruction of positioned text runs from native PDFs (PyMuPDF)
- Vision-model page transcription for scanned documents
- Direct reading of markdown and plain text files
"""

from guided_translator.extraction.base import DocumentStructure, PageExtractor, PageText
from guided_translator.extraction.document import extract_structured_content, select_extractor
from guided_translator.extraction.layout import (
    LayoutThresholds,
    PositionedTextRun,
    analyze_layout,
    calculate_left_margin,
    join_pages,
    reconstruct_document,
    reconstruct_page,
)
from guided_translator.extraction.pymupdf import PyMuPDFLayoutExtractor
from guided_translator.extraction.text import TextFileExtractor
from guided_translator.extraction.vision import VisionExtractor

__all__ = [
    "DocumentStructure",
    "PageExtractor",
    "PageText",
    "PositionedTextRun",
    "LayoutThresholds",
    "analyze_layout",
    "calculate_left_margin",
    "reconstruct_page",
    "reconstruct_document",
    "join_pages",
    "PyMuPDFLayoutExtractor",
    "TextFileExtractor",
    "VisionExtractor",
    "extract_structured_content",
    "select_extractor",
]
