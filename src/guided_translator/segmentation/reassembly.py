"""
Reassembly of chunks into one document.
"""

from __future__ import annotations

from collections.abc import Sequence

from guided_translator.models import Chunk, ChunkType, TranslatedChunk


def chunk_output_text(chunk: Chunk | TranslatedChunk, translated: bool = True) -> str:
    """The translation of a translated chunk, or the source text otherwise."""
    if translated and isinstance(chunk, TranslatedChunk):
        return chunk.translation
    return chunk.text


def reassemble_chunks(
    chunks: Sequence[Chunk | TranslatedChunk],
    translated: bool = True,
) -> str:
    """
    Join chunks back into a single text in sequence order.

    Chunks are separated by a blank line; headings get extra space before
    them. Original blank-line counts are not restored.

    Args:
        chunks: Chunks in position order.
        translated: Use translations where available instead of source text.

    Returns:
        The reassembled document.
    """
    parts: list[str] = []
    for chunk in chunks:
        text = chunk_output_text(chunk, translated)
        if chunk.type == ChunkType.HEADING:
            parts.append(f"\n\n{text}\n")
        else:
            parts.append(text)
    return "\n\n".join(parts).strip()
