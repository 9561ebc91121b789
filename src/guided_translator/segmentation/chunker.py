"""
Chunk segmentation for translation.

Splits reconstructed document text into token-bounded chunks. Paragraphs are
packed together up to the budget; a paragraph that is too large on its own is
broken at sentence boundaries.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from typing import Any

from guided_translator.models import Chunk, ChunkType
from guided_translator.segmentation.classifier import classify_chunk

DEFAULT_MAX_TOKENS = 800
CHARS_PER_TOKEN = 4

PARAGRAPH_SEPARATOR = "\n\n"
SENTENCE_SEPARATOR = " "

_PARAGRAPH_BREAK = re.compile(r"\n[ \t]*\n")
_SENTENCE_END = re.compile(r"(?<=[.!?])\s+")


def estimate_tokens(text: str) -> int:
    """Rough token count: one token per four characters."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def split_into_paragraphs(text: str) -> list[str]:
    paragraphs = (p.strip("\n") for p in _PARAGRAPH_BREAK.split(text))
    return [p for p in paragraphs if p.strip()]


def split_into_sentences(text: str) -> list[str]:
    """Split after ``.``, ``!`` or ``?`` followed by whitespace, keeping the punctuation."""
    return [s.strip() for s in _SENTENCE_END.split(text) if s.strip()]


def create_chunk(text: str, position: int) -> Chunk:
    trimmed = text.strip()
    chunk_type, metadata = classify_chunk(trimmed)
    return Chunk(
        id=f"chunk_{position}",
        text=trimmed,
        position=position,
        type=chunk_type,
        metadata=metadata,
    )


@dataclass
class _ChunkBuilder:
    """Accumulates text pieces and flushes a chunk before the budget is exceeded."""

    max_tokens: int
    chunks: list[Chunk] = field(default_factory=list)
    buffer: str = ""

    def add(self, piece: str, separator: str) -> None:
        candidate = f"{self.buffer}{separator}{piece}" if self.buffer else piece
        if self.buffer and estimate_tokens(candidate.strip()) > self.max_tokens:
            self.flush()
            self.buffer = piece
        else:
            self.buffer = candidate

    def flush(self) -> None:
        if self.buffer.strip():
            self.chunks.append(create_chunk(self.buffer, len(self.chunks)))
        self.buffer = ""


def split_into_chunks(text: str, max_tokens: int = DEFAULT_MAX_TOKENS) -> list[Chunk]:
    """
    Split text into translation chunks.

    Args:
        text: Full reconstructed document text.
        max_tokens: Token budget per chunk.

    Returns:
        Chunks with positions 0, 1, 2, ... in document order. A chunk only
        exceeds the budget when it is a single sentence that is longer than
        the budget by itself.

    Raises:
        ValueError: If max_tokens is less than 1.
    """
    if max_tokens < 1:
        raise ValueError(f"max_tokens must be at least 1, got {max_tokens}")

    builder = _ChunkBuilder(max_tokens=max_tokens)

    for paragraph in split_into_paragraphs(text):
        if estimate_tokens(paragraph.strip()) <= max_tokens:
            builder.add(paragraph, PARAGRAPH_SEPARATOR)
            continue

        for index, sentence in enumerate(split_into_sentences(paragraph)):
            separator = PARAGRAPH_SEPARATOR if index == 0 else SENTENCE_SEPARATOR
            builder.add(sentence, separator)

    builder.flush()
    return builder.chunks


def get_chunk_stats(chunks: list[Chunk]) -> dict[str, Any]:
    """Summary counts for a chunk list."""
    total_tokens = sum(estimate_tokens(chunk.text) for chunk in chunks)
    return {
        "total_chunks": len(chunks),
        "total_tokens": total_tokens,
        "avg_tokens_per_chunk": round(total_tokens / len(chunks)) if chunks else 0,
        "types": {
            chunk_type.value: sum(1 for chunk in chunks if chunk.type == chunk_type)
            for chunk_type in ChunkType
        },
    }
