"""
Export module for guided-translator.

Writes translated projects as Markdown.
"""

from guided_translator.export.markdown import (
    ExportResult,
    MarkdownExporter,
    convert_chunks_to_markdown,
    format_chunk_markdown,
)

__all__ = ["MarkdownExporter", "ExportResult", "convert_chunks_to_markdown", "format_chunk_markdown"]
