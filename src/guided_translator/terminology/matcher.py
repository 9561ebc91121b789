"""
Glossary term matching.

Finds where glossary terms occur in a chunk so only the relevant subset of
the glossary is put into the translation prompt.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from guided_translator.models import GlossaryEntry, TermMatch, TranslatedChunk


class TermIndex:
    """Lookup of glossary entries by exact and lower-cased English term."""

    def __init__(self, entries: Iterable[GlossaryEntry]):
        self._index: dict[str, GlossaryEntry] = {}
        for entry in entries:
            self._index[entry.english] = entry
            self._index[entry.english.lower()] = entry

    def find_term(self, term: str) -> GlossaryEntry | None:
        return self._index.get(term) or self._index.get(term.lower())

    def __len__(self) -> int:
        return len(self._index)


def _term_pattern(term: str) -> re.Pattern[str]:
    return re.compile(rf"(?<!\w){re.escape(term)}(?!\w)", re.IGNORECASE)


def identify_terms_in_text(
    text: str,
    glossary: Sequence[GlossaryEntry],
) -> list[TermMatch]:
    """
    Find every glossary term in a text.

    Longer terms are matched first, and a span already claimed by a longer
    term is not reported again for a shorter one ("safety device" does not
    also count as "device").

    Args:
        text: Text to search. Not modified.
        glossary: Glossary entries.

    Returns:
        One TermMatch per term with at least one occurrence, longest term
        first, each holding the start offsets of its matches.
    """
    if not text or not glossary:
        return []

    claimed: list[tuple[int, int]] = []
    matches: list[TermMatch] = []

    for entry in sorted(glossary, key=lambda e: len(e.english), reverse=True):
        if not entry.english.strip():
            continue

        positions: list[int] = []
        for found in _term_pattern(entry.english).finditer(text):
            start, end = found.span()
            if any(start < c_end and end > c_start for c_start, c_end in claimed):
                continue
            positions.append(start)
            claimed.append((start, end))

        if positions:
            matches.append(
                TermMatch(
                    english=entry.english,
                    chinese=entry.chinese,
                    positions=positions,
                    source=entry.source or "glossary",
                )
            )

    return matches


def find_relevant_terms(
    text: str,
    glossary: Sequence[GlossaryEntry],
) -> list[GlossaryEntry]:
    """Glossary entries occurring in the text, in glossary order."""
    found = {match.english for match in identify_terms_in_text(text, glossary)}
    return [entry for entry in glossary if entry.english in found]


@dataclass(frozen=True)
class GlossaryCoverage:
    matched: int
    total: int
    percentage: int


def calculate_coverage(
    translated_chunks: Iterable[TranslatedChunk],
    glossary: Sequence[GlossaryEntry],
) -> GlossaryCoverage:
    """
    Share of distinct glossary terms that matched in at least one chunk.

    Failed chunks keep their matches for reporting but do not count: a term
    only found in text that was never translated was not applied.
    """
    glossary_terms = {entry.english.lower() for entry in glossary}
    if not glossary_terms:
        return GlossaryCoverage(matched=0, total=0, percentage=0)

    used = {
        match.english.lower()
        for chunk in translated_chunks
        if not chunk.failed
        for match in chunk.matched_terms
    }
    matched = len(used & glossary_terms)
    total = len(glossary_terms)
    return GlossaryCoverage(matched=matched, total=total, percentage=round(matched / total * 100))
