"""
Structural classification of chunks.

A chunk's type is decided from a handful of signals on its first line. The
scoring is a pure function so it can be tested without the segmenter.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from guided_translator.models import ChunkMetadata, ChunkType

_MARKDOWN_HEADING = re.compile(r"^(#{1,6})\s+(.*)")
_NUMBERED_HEADING = re.compile(r"^\d+(?:\.\d+)*\.?\s+[A-Z]")
_CAPITALIZED = re.compile(r"^[A-Z][a-zA-Z\s]{2,}[^.!?]*$")
_EXPLICIT_SECTION = re.compile(r"^(chapter|section|annex|appendix)\s+\w+", re.IGNORECASE)
_TERMINAL_PUNCTUATION = re.compile(r"[.!?]$")
_LIST_ITEM = re.compile(r"^(?:[-*•]\s+|\d+[.)]\s+)")

SHORT_LINE_LIMIT = 100
HEADING_SCORE_THRESHOLD = 2
DEFAULT_HEADING_LEVEL = 2

MARKDOWN_WEIGHT = 5
EXPLICIT_WEIGHT = 5
NUMBERED_WEIGHT = 3
CAPITALIZED_WEIGHT = 2

MIN_TABLE_PIPES = 4
MIN_TABLE_LINES = 2


@dataclass(frozen=True)
class HeadingSignals:
    """Heading indicators computed on a chunk's first line."""

    markdown: bool = False
    explicit: bool = False
    numbered: bool = False
    capitalized: bool = False
    short: bool = False
    no_terminal_punctuation: bool = False


def first_line(text: str) -> str:
    return text.strip().split("\n", 1)[0].strip()


def compute_heading_signals(text: str) -> HeadingSignals:
    line = first_line(text)
    return HeadingSignals(
        markdown=bool(_MARKDOWN_HEADING.match(line)),
        explicit=bool(_EXPLICIT_SECTION.match(line)),
        numbered=bool(_NUMBERED_HEADING.match(line)),
        capitalized=bool(_CAPITALIZED.match(line)),
        short=len(line) < SHORT_LINE_LIMIT,
        no_terminal_punctuation=not _TERMINAL_PUNCTUATION.search(line),
    )


def heading_score(signals: HeadingSignals) -> int:
    score = 0
    if signals.markdown:
        score += MARKDOWN_WEIGHT
    if signals.explicit:
        score += EXPLICIT_WEIGHT
    if signals.numbered and signals.short:
        score += NUMBERED_WEIGHT
    if signals.capitalized and signals.short and signals.no_terminal_punctuation:
        score += CAPITALIZED_WEIGHT
    return score


def is_list(text: str) -> bool:
    return bool(_LIST_ITEM.match(text.strip()))


def is_table(text: str) -> bool:
    pipe_lines = [line for line in text.split("\n") if "|" in line]
    return text.count("|") > MIN_TABLE_PIPES and len(pipe_lines) > MIN_TABLE_LINES


def heading_metadata(text: str) -> ChunkMetadata:
    """Heading level from the leading ``#`` count and the heading text."""
    line = first_line(text)
    match = _MARKDOWN_HEADING.match(line)
    if match:
        return ChunkMetadata(level=len(match.group(1)), heading=match.group(2).strip())
    return ChunkMetadata(level=DEFAULT_HEADING_LEVEL, heading=line)


def classify_chunk(text: str) -> tuple[ChunkType, ChunkMetadata]:
    """
    Decide the structural type of a chunk.

    The whole chunk takes the type of its first line when that line scores
    as a heading. Otherwise list markers, then pipe tables, are checked;
    anything else is a paragraph.

    Returns:
        Tuple of (chunk type, metadata). Metadata is empty except for headings.
    """
    if heading_score(compute_heading_signals(text)) >= HEADING_SCORE_THRESHOLD:
        return ChunkType.HEADING, heading_metadata(text)
    if is_list(text):
        return ChunkType.LIST, ChunkMetadata()
    if is_table(text):
        return ChunkType.TABLE, ChunkMetadata()
    return ChunkType.PARAGRAPH, ChunkMetadata()
