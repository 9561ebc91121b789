"""
Layout reconstruction from positioned text runs.

Turns the raw, positioned text runs of a PDF page into logical lines and
paragraphs. Line, wrap and paragraph cutoffs are derived from the page's own
vertical gap distribution, so dense and airy layouts are both handled without
per-document tuning.
"""

from __future__ import annotations

import math
import statistics
from collections import Counter
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

# Used when a page has too few gaps to estimate from
FALLBACK_SAME_LINE = 3.0
FALLBACK_NEW_LINE = 15.0
FALLBACK_PARAGRAPH_BREAK = 30.0
MIN_GAP_SAMPLES = 5

# Gaps outside this open interval are same-run noise or page jumps
MIN_GAP = 0.1
MAX_GAP = 500.0

MARGIN_BIN = 5
INDENT_STEP = 20
INDENT_UNIT = "  "

COLUMN_GAP = 30.0
COLUMN_SEPARATOR = " | "

HEADING_MARKER = "## "
HEADING_HEIGHT_RATIO = 1.1
DEFAULT_LINE_HEIGHT = 12.0

# Width estimate per character when the extractor gives none
CHAR_WIDTH = 6.0


@dataclass(frozen=True)
class PositionedTextRun:
    """A piece of text at a position on the page."""

    text: str
    x: float
    y: float
    width: float = 0.0
    height: float = 0.0

    @property
    def is_empty(self) -> bool:
        return not self.text.strip()

    @property
    def effective_width(self) -> float:
        if self.width > 0:
            return self.width
        return len(self.text) * CHAR_WIDTH


@dataclass(frozen=True)
class LayoutThresholds:
    """Vertical gap cutoffs for one page."""

    same_line: float
    new_line: float
    paragraph_break: float

    @classmethod
    def fallback(cls) -> LayoutThresholds:
        return cls(
            same_line=FALLBACK_SAME_LINE,
            new_line=FALLBACK_NEW_LINE,
            paragraph_break=FALLBACK_PARAGRAPH_BREAK,
        )


def _non_empty(runs: Iterable[PositionedTextRun]) -> list[PositionedTextRun]:
    return [run for run in runs if not run.is_empty]


def analyze_layout(runs: Sequence[PositionedTextRun]) -> LayoutThresholds:
    """
    Derive line and paragraph thresholds from a page's vertical gaps.

    Args:
        runs: Text runs of one page in reading order.

    Returns:
        LayoutThresholds for the page. Pages with fewer than five usable gaps
        get the fixed fallback thresholds.
    """
    gaps: list[float] = []
    last_y: float | None = None

    for run in _non_empty(runs):
        if last_y is not None:
            gap = abs(run.y - last_y)
            if MIN_GAP < gap < MAX_GAP:
                gaps.append(gap)
        last_y = run.y

    if len(gaps) < MIN_GAP_SAMPLES:
        return LayoutThresholds.fallback()

    gaps.sort()
    p20 = gaps[math.floor(len(gaps) * 0.2)]
    p50 = gaps[math.floor(len(gaps) * 0.5)]
    p80 = gaps[math.floor(len(gaps) * 0.8)]

    return LayoutThresholds(
        same_line=max(p20 * 0.8, 2.0),
        new_line=max(p50 * 1.5, 10.0),
        paragraph_break=max(p80 * 1.2, 25.0),
    )


def calculate_left_margin(runs: Sequence[PositionedTextRun]) -> float:
    """Return the dominant left edge of the page, binned to the nearest 5 units."""
    bins = Counter(
        MARGIN_BIN * round(run.x / MARGIN_BIN) for run in _non_empty(runs)
    )
    if not bins:
        return 0.0

    # Highest count wins, leftmost bin on ties
    margin, _count = min(bins.items(), key=lambda item: (-item[1], item[0]))
    return float(margin)


def typical_line_height(runs: Sequence[PositionedTextRun]) -> float:
    """Median run height, used as the body-text reference for heading detection."""
    heights = [run.height for run in _non_empty(runs) if run.height > 0]
    if not heights:
        return DEFAULT_LINE_HEIGHT
    return float(statistics.median(heights))


def indent_level(x: float, margin: float) -> int:
    return math.floor(max(0.0, x - margin) / INDENT_STEP)


def _join_same_line(current: str, text: str, horizontal_gap: float) -> str:
    """Append a run that sits on the current line."""
    if current.endswith("-"):
        # Hyphenated word split across runs
        if text[:1].islower():
            return current[:-1] + text
        return current + text

    if not current or text.startswith(" "):
        return current + text

    separator = COLUMN_SEPARATOR if horizontal_gap > COLUMN_GAP else " "
    return current + separator + text


def _format_line(text: str, level: int, heading: bool) -> str:
    if heading and not text.lstrip().startswith("#"):
        return HEADING_MARKER + text.strip()
    return INDENT_UNIT * level + text


def reconstruct_page(
    runs: Sequence[PositionedTextRun],
    thresholds: LayoutThresholds | None = None,
) -> str:
    """
    Rebuild the logical text of one page.

    Runs closer than ``same_line`` vertically are merged into one line, with
    wide horizontal gaps kept as `` | `` cell separators. A larger gap starts a
    new line; a gap of at least ``paragraph_break`` also leaves a blank line.
    Lines are indented relative to the page's dominant left margin and tall
    lines are marked as headings.

    Args:
        runs: Text runs of one page in reading order.
        thresholds: Precomputed thresholds; derived from ``runs`` when omitted.

    Returns:
        The reconstructed page text, one logical line per output line.
    """
    items = _non_empty(runs)
    if not items:
        return ""

    thresholds = thresholds or analyze_layout(items)
    margin = calculate_left_margin(items)
    heading_height = typical_line_height(items) * HEADING_HEIGHT_RATIO

    lines: list[str] = []

    first = items[0]
    current = first.text
    current_indent = indent_level(first.x, margin)
    current_heading = first.height > heading_height
    last_y = first.y
    last_x = first.x
    last_width = first.effective_width

    for run in items[1:]:
        text = run.text
        vertical_gap = abs(run.y - last_y)

        if vertical_gap < thresholds.same_line:
            current = _join_same_line(current, text, run.x - (last_x + last_width))
            last_x = run.x
            last_width = run.effective_width
            continue

        # Word hyphenated across a wrapped line inside the same paragraph
        if (
            vertical_gap < thresholds.paragraph_break
            and current.endswith("-")
            and text[:1].islower()
        ):
            current = current[:-1] + text
        else:
            if current.strip():
                lines.append(_format_line(current, current_indent, current_heading))
            if vertical_gap >= thresholds.paragraph_break and lines and lines[-1]:
                lines.append("")
            current = text
            current_indent = indent_level(run.x, margin)
            current_heading = run.height > heading_height

        last_y = run.y
        last_x = run.x
        last_width = run.effective_width

    if current.strip():
        lines.append(_format_line(current, current_indent, current_heading))

    return "\n".join(lines).rstrip()


def join_pages(texts: Iterable[str]) -> str:
    """Join page texts with a blank line, skipping empty pages."""
    kept = (text.strip("\n") for text in texts if text and text.strip())
    return "\n\n".join(kept).strip()


def reconstruct_document(pages: Iterable[Sequence[PositionedTextRun]]) -> str:
    """Reconstruct every page and join them with a blank line."""
    return join_pages(reconstruct_page(page) for page in pages)
