"""
PyMuPDF-based text extraction for native PDFs.

Reads every text span with its position and rebuilds lines and paragraphs with
the layout reconstructor.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import fitz  # PyMuPDF

from guided_translator.extraction.base import PageExtractor, PageProgressCallback, PageText
from guided_translator.extraction.layout import PositionedTextRun, reconstruct_page


def spans_to_runs(page_dict: dict[str, Any]) -> list[PositionedTextRun]:
    """
    Convert a ``page.get_text("dict")`` structure into positioned runs.

    x is the span's left edge, y its baseline, width its box width and height
    its font size. Image blocks are skipped.
    """
    runs: list[PositionedTextRun] = []
    for block in page_dict.get("blocks", []):
        if block.get("type", 0) != 0:
            continue
        for line in block.get("lines", []):
            for span in line.get("spans", []):
                text = span.get("text", "")
                if not text.strip():
                    continue
                x0, y0, x1, y1 = span.get("bbox", (0.0, 0.0, 0.0, 0.0))
                origin = span.get("origin", (x0, y1))
                runs.append(
                    PositionedTextRun(
                        text=text,
                        x=float(x0),
                        y=float(origin[1]),
                        width=float(x1 - x0),
                        height=float(span.get("size") or (y1 - y0)),
                    )
                )
    return runs


class PyMuPDFLayoutExtractor(PageExtractor):
    """
    Extract text from native PDFs using PyMuPDF span positions.

    This is the default path when no vision credential is configured.
    """

    @property
    def name(self) -> str:
        return "pymupdf-layout"

    def page_count(self, file_path: Path) -> int:
        with fitz.open(file_path) as doc:
            return len(doc)

    def page_runs(self, file_path: Path, page_number: int) -> list[PositionedTextRun]:
        """Positioned text runs of one page."""
        with fitz.open(file_path) as doc:
            return spans_to_runs(doc[page_number].get_text("dict"))

    async def extract_page(
        self,
        file_path: Path,
        page_number: int,
        **kwargs: Any,
    ) -> PageText:
        """
        Extract and reconstruct the text of a single page.

        Args:
            file_path: Path to PDF file.
            page_number: Page number (0-indexed).

        Returns:
            PageText with the reconstructed page text.
        """
        runs = self.page_runs(file_path, page_number)
        return PageText(
            content=reconstruct_page(runs),
            page_number=page_number,
            source=self.name,
            metadata={"runs": len(runs)},
        )

    async def extract_document(
        self,
        file_path: Path,
        progress_callback: PageProgressCallback = None,
        **kwargs: Any,
    ) -> list[PageText]:
        """
        Extract every page of a PDF in order.

        Args:
            file_path: Path to PDF file.
            progress_callback: Called with (current, total) after each page.

        Returns:
            List of PageText, one per page.
        """
        results: list[PageText] = []

        with fitz.open(file_path) as doc:
            total_pages = len(doc)
            for page_number in range(total_pages):
                runs = spans_to_runs(doc[page_number].get_text("dict"))
                results.append(
                    PageText(
                        content=reconstruct_page(runs),
                        page_number=page_number,
                        source=self.name,
                        metadata={"runs": len(runs)},
                    )
                )
                if progress_callback:
                    progress_callback(page_number + 1, total_pages)

        return results


def render_page_png(file_path: Path, page_number: int, dpi: int = 150) -> bytes:
    """
    Render a PDF page as PNG image.

    Args:
        file_path: Path to PDF file.
        page_number: Page number (0-indexed).
        dpi: Resolution for rendering.

    Returns:
        PNG image bytes.
    """
    with fitz.open(file_path) as doc:
        page = doc[page_number]
        mat = fitz.Matrix(dpi / 72, dpi / 72)
        pix = page.get_pixmap(matrix=mat)
        return pix.tobytes("png")
