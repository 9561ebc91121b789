"""
Chunk segmentation and reassembly for guided-translator.

Provides:
- Token-bounded paragraph/sentence chunking
- Heading/list/table/paragraph classification
- Reassembly of translated chunks into one document
"""

from guided_translator.segmentation.chunker import (
    estimate_tokens,
    get_chunk_stats,
    split_into_chunks,
    split_into_sentences,
)
from guided_translator.segmentation.classifier import (
    HeadingSignals,
    classify_chunk,
    compute_heading_signals,
    heading_score,
)
from guided_translator.segmentation.reassembly import reassemble_chunks

__all__ = [
    "estimate_tokens",
    "split_into_chunks",
    "split_into_sentences",
    "get_chunk_stats",
    "HeadingSignals",
    "compute_heading_signals",
    "heading_score",
    "classify_chunk",
    "reassemble_chunks",
]
