"""
Vision-model page transcription.

Alternate ingestion path for scanned or layout-heavy PDFs: each page is
rendered to an image and transcribed to Markdown by an OpenAI-compatible
vision model.
"""

from __future__ import annotations

import asyncio
import base64
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any

import fitz  # PyMuPDF
from openai import AsyncOpenAI

from guided_translator.extraction.base import PageExtractor, PageProgressCallback, PageText
from guided_translator.extraction.pymupdf import render_page_png

TRANSCRIPTION_PROMPT = (
    "Transcribe this technical document page into clean Markdown. "
    "Preserve all headers, tables, lists, and structure. Do not summarize. "
    "Return only the markdown content."
)

DEFAULT_VISION_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai/"
DEFAULT_VISION_MODEL = "gemini-1.5-flash"


class VisionExtractor(PageExtractor):
    """
    Page transcription through a vision model.

    A failed call is terminal for that page: the page comes back empty with an
    error and the next page is still processed. Pages are sent one at a time
    with a fixed pause between calls.
    """

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_VISION_MODEL,
        base_url: str = DEFAULT_VISION_BASE_URL,
        timeout: float = 60.0,
        dpi: int = 150,
        page_delay: float = 1.0,
        client: Any = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Initialize vision extractor.

        Args:
            api_key: Vision API key.
            model: Vision model name.
            base_url: OpenAI-compatible API base URL.
            timeout: Request timeout in seconds.
            dpi: Page rendering resolution.
            page_delay: Pause between page calls in seconds.
            client: Preconfigured client (tests).
            sleep: Coroutine used for the pause between pages.
        """
        self._model = model
        self._dpi = dpi
        self._page_delay = page_delay
        self._sleep = sleep
        self._client = client or AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=0,
        )

    @property
    def name(self) -> str:
        return self._model

    def can_handle(self, file_path: Path) -> bool:
        supported = {".pdf", ".png", ".jpg", ".jpeg", ".webp"}
        return file_path.suffix.lower() in supported

    async def extract_page(
        self,
        file_path: Path,
        page_number: int,
        **kwargs: Any,
    ) -> PageText:
        """
        Transcribe a single page.

        Args:
            file_path: Path to document (PDF or image).
            page_number: Page number (0-indexed).
            **kwargs: Additional options:
                - prompt: Custom prompt override

        Returns:
            PageText with the transcription, or an empty PageText carrying the
            error when the call failed.
        """
        prompt = kwargs.get("prompt", TRANSCRIPTION_PROMPT)

        try:
            if file_path.suffix.lower() == ".pdf":
                image_bytes = render_page_png(file_path, page_number, self._dpi)
            else:
                image_bytes = file_path.read_bytes()

            image_base64 = base64.b64encode(image_bytes).decode("utf-8")
            content = await self._call_api(image_base64, prompt)

            return PageText(
                content=content,
                page_number=page_number,
                source=self.name,
                metadata={"dpi": self._dpi},
            )

        except Exception as e:
            return PageText(
                content="",
                page_number=page_number,
                source=self.name,
                error=f"Vision extraction failed: {e}",
            )

    async def extract_document(
        self,
        file_path: Path,
        progress_callback: PageProgressCallback = None,
        **kwargs: Any,
    ) -> list[PageText]:
        """
        Transcribe all pages in order.

        Args:
            file_path: Path to document.
            progress_callback: Called with (current, total) after each page.
            **kwargs: Passed to extract_page.

        Returns:
            List of PageText, one per page.
        """
        if file_path.suffix.lower() == ".pdf":
            with fitz.open(file_path) as doc:
                total_pages = len(doc)
        else:
            total_pages = 1

        results: list[PageText] = []
        for page_number in range(total_pages):
            results.append(await self.extract_page(file_path, page_number, **kwargs))

            if progress_callback:
                progress_callback(page_number + 1, total_pages)

            if page_number < total_pages - 1:
                await self._sleep(self._page_delay)

        return results

    async def _call_api(self, image_base64: str, prompt: str) -> str:
        response = await self._client.chat.completions.create(
            model=self._model,
            messages=[
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": prompt},
                        {
                            "type": "image_url",
                            "image_url": {"url": f"data:image/png;base64,{image_base64}"},
                        },
                    ],
                }
            ],
            max_tokens=4096,
            temperature=0.0,
        )

        if response.choices and response.choices[0].message.content:
            return response.choices[0].message.content
        return ""
