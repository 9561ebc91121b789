"""
Sequential batch translation.

Chunks are translated one at a time in position order, with a fixed pause
after each successful call. A failed chunk is marked and the batch moves on,
so the output always has one translated chunk per input chunk.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from guided_translator.llm.retry import SleepFunc, StatusCallback
from guided_translator.models import Chunk, GlossaryEntry, TranslatedChunk
from guided_translator.terminology.matcher import GlossaryCoverage, calculate_coverage
from guided_translator.translation.translator import ChunkTranslator

DEFAULT_INTER_CALL_DELAY = 2.0

# Callback for chunk progress: (current, total)
ChunkProgressCallback = Callable[[int, int], None] | None


@dataclass
class BatchResult:
    """Translated chunks in position order plus glossary coverage."""

    chunks: list[TranslatedChunk] = field(default_factory=list)
    coverage: GlossaryCoverage = field(
        default_factory=lambda: GlossaryCoverage(matched=0, total=0, percentage=0)
    )
    failed_count: int = 0

    @property
    def translated_count(self) -> int:
        return len(self.chunks) - self.failed_count


class TranslationOrchestrator:
    """Drives a ChunkTranslator over a whole document."""

    def __init__(
        self,
        translator: ChunkTranslator,
        inter_call_delay: float = DEFAULT_INTER_CALL_DELAY,
        sleep: SleepFunc = asyncio.sleep,
    ):
        self.translator = translator
        self.inter_call_delay = inter_call_delay
        self._sleep = sleep

    async def translate_chunks(
        self,
        chunks: Sequence[Chunk],
        glossary: Sequence[GlossaryEntry],
        progress_callback: ChunkProgressCallback = None,
        status_callback: StatusCallback = None,
    ) -> BatchResult:
        """
        Translate every chunk.

        Args:
            chunks: Chunks to translate; processed by ascending position.
            glossary: Glossary entries.
            progress_callback: Called with (current, total) after each chunk.
            status_callback: Receives key rotation and backoff events.

        Returns:
            BatchResult with exactly one entry per input chunk.
        """
        ordered = sorted(chunks, key=lambda c: c.position)
        total = len(ordered)
        result = BatchResult()

        for index, chunk in enumerate(ordered):
            translated = await self.translator.translate_chunk(
                chunk, glossary, status_callback=status_callback
            )
            result.chunks.append(translated)

            if translated.failed:
                result.failed_count += 1

            if progress_callback:
                progress_callback(index + 1, total)

            is_last = index == total - 1
            if not translated.failed and chunk.text.strip() and not is_last:
                await self._sleep(self.inter_call_delay)

        result.coverage = calculate_coverage(result.chunks, glossary)
        return result
