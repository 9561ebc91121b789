"""
User term preferences.

Records the translations a user prefers over the base glossary, counts how
often each preference was confirmed, and merges them into the glossary
before a run so the preferred terms are the ones mandated in prompts.
"""

from __future__ import annotations

import csv
import io
from collections.abc import Sequence
from pathlib import Path

from guided_translator.database import Database
from guided_translator.models import GlossaryEntry, TermConfidence, UserGlossaryEntry

USER_MODIFIED = "User Modified"
USER_ADDED = "User Added"
USER_EDIT_SOURCE = "User Edit"

EXPORT_HEADER = ["English", "Chinese", "Source", "Frequency", "Confidence"]

MEDIUM_CONFIDENCE_FREQUENCY = 2
HIGH_CONFIDENCE_FREQUENCY = 5


def calculate_confidence(frequency: int) -> TermConfidence:
    if frequency >= HIGH_CONFIDENCE_FREQUENCY:
        return TermConfidence.HIGH
    if frequency >= MEDIUM_CONFIDENCE_FREQUENCY:
        return TermConfidence.MEDIUM
    return TermConfidence.LOW


def merge_with_base_glossary(
    base: Sequence[GlossaryEntry],
    user_entries: Sequence[UserGlossaryEntry],
) -> list[GlossaryEntry]:
    """
    Apply user preferences on top of a base glossary.

    Base entries whose term has a preference (compared case-insensitively)
    take the preferred translation and get ``(User Modified)`` appended to
    their source; the base order and spelling of the term are kept.
    Preferences for terms missing from the base are appended, marked
    ``User Added``.

    Args:
        base: Glossary loaded for the run.
        user_entries: Stored user preferences.

    Returns:
        New merged list; neither input is modified.
    """
    preferred = {entry.english.lower(): entry.preferred_chinese for entry in user_entries}

    merged: list[GlossaryEntry] = []
    for entry in base:
        override = preferred.get(entry.english.lower())
        if override:
            source = f"{entry.source} ({USER_MODIFIED})" if entry.source else USER_MODIFIED
            merged.append(GlossaryEntry(english=entry.english, chinese=override, source=source))
        else:
            merged.append(entry)

    known = {entry.english.lower() for entry in merged}
    for user_entry in user_entries:
        key = user_entry.english.lower()
        if key in known:
            continue
        merged.append(
            GlossaryEntry(
                english=user_entry.english,
                chinese=user_entry.preferred_chinese,
                source=USER_ADDED,
            )
        )
        known.add(key)

    return merged


def export_user_glossary_csv(entries: Sequence[UserGlossaryEntry]) -> str:
    """
    Preferences as CSV text.

    The English and Chinese columns make the file loadable as a glossary on
    its own.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(EXPORT_HEADER)
    for entry in entries:
        writer.writerow(
            [
                entry.english,
                entry.preferred_chinese,
                USER_EDIT_SOURCE,
                entry.frequency,
                entry.confidence.value,
            ]
        )
    return buffer.getvalue()


class UserGlossary:
    """User term preferences stored in the session database."""

    def __init__(self, db: Database):
        self.db = db

    def add_preference(
        self,
        english: str,
        original_chinese: str,
        preferred_chinese: str,
        chunk_position: int = 0,
        context: str = "",
    ) -> UserGlossaryEntry:
        """
        Record that ``preferred_chinese`` should be used for ``english``.

        A repeated preference for the same term (any casing) replaces the
        preferred translation, raises the frequency and confidence, and adds
        the context if it is new. The original translation and first chunk
        stay as first recorded.

        Returns:
            The stored entry.
        """
        english = english.strip()
        preferred_chinese = preferred_chinese.strip()
        if not english or not preferred_chinese:
            raise ValueError("Both the term and its preferred translation are required")

        entry = self.db.get_user_term(english)
        if entry is None:
            entry = UserGlossaryEntry(
                english=english,
                original_chinese=original_chinese.strip(),
                preferred_chinese=preferred_chinese,
                first_seen_chunk=chunk_position,
                contexts=[context] if context else [],
            )
        else:
            entry.preferred_chinese = preferred_chinese
            entry.frequency += 1
            entry.confidence = calculate_confidence(entry.frequency)
            if context and context not in entry.contexts:
                entry.contexts.append(context)

        self.db.save_user_term(entry)
        return entry

    def entries(self) -> list[UserGlossaryEntry]:
        return self.db.get_user_terms()

    def merge(self, base: Sequence[GlossaryEntry]) -> list[GlossaryEntry]:
        """Base glossary with the stored preferences applied."""
        return merge_with_base_glossary(base, self.entries())

    def export_csv(self, path: Path | None = None) -> str:
        """CSV of all preferences, also written to ``path`` when given."""
        content = export_user_glossary_csv(self.entries())
        if path is not None:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        return content

    def clear(self) -> int:
        """Forget every preference. Returns how many were removed."""
        return self.db.clear_user_terms()
