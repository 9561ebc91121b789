"""
Glossary ingestion.

Reads a CSV term table, picks the English and Chinese columns from the
header, and validates the result before it is allowed to drive a run.
"""

from __future__ import annotations

import csv
import io
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from guided_translator.exceptions import GlossaryError, GlossaryValidationError
from guided_translator.models import GlossaryEntry

MAX_DUPLICATES_LISTED = 3


@dataclass
class GlossaryParseResult:
    """Entries read from a glossary file plus what was dropped on the way."""

    entries: list[GlossaryEntry] = field(default_factory=list)
    dropped_rows: int = 0
    english_column: str = ""
    chinese_column: str = ""
    warnings: list[str] = field(default_factory=list)


@dataclass
class ValidationResult:
    is_valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def _find_english_column(headers: list[str]) -> str | None:
    for header in headers:
        name = header.strip().lower()
        if "english" in name or "term" in name or name == "en":
            return header
    return None


def _find_chinese_column(headers: list[str], exclude: str | None) -> str | None:
    for header in headers:
        if header == exclude:
            continue
        name = header.strip().lower()
        if "chinese" in name or "translation" in name or name == "zh":
            return header
    return None


def _find_source_column(headers: list[str]) -> str | None:
    for header in headers:
        if header.strip().lower() == "source":
            return header
    return None


def resolve_columns(headers: list[str]) -> tuple[str, str]:
    """
    Pick the English and Chinese columns from a header row.

    A column recognised by name is always kept; the missing side takes the
    first other column (a ``source`` column only as a last resort). When
    neither is recognised, the first two columns are used.

    Raises:
        GlossaryError: If there are fewer than two columns.
    """
    if len(headers) < 2:
        raise GlossaryError(
            f"Glossary needs at least two columns, found {len(headers)}: {headers}"
        )

    english = _find_english_column(headers)
    chinese = _find_chinese_column(headers, exclude=english)
    if english is None and chinese is None:
        return headers[0], headers[1]
    if english is None:
        english = _first_other_column(headers, chinese)
    if chinese is None:
        chinese = _first_other_column(headers, english)
    return english, chinese


def _first_other_column(headers: list[str], taken: str) -> str:
    source = _find_source_column(headers)
    others = [h for h in headers if h != taken]
    preferred = [h for h in others if h != source]
    return (preferred or others)[0]


def _read_csv_text(path_or_text: Path | str) -> tuple[str, str]:
    """Return (content, default source name)."""
    if isinstance(path_or_text, Path):
        if not path_or_text.exists():
            raise GlossaryError(f"Glossary file not found: {path_or_text}")
        # utf-8-sig strips the BOM spreadsheet tools like to add
        return path_or_text.read_text(encoding="utf-8-sig"), path_or_text.name
    return path_or_text, "glossary"


def parse_glossary_csv(
    path_or_text: Path | str,
    source: str | None = None,
) -> GlossaryParseResult:
    """
    Parse a glossary CSV.

    Args:
        path_or_text: Path to a CSV file, or the CSV content itself.
        source: Source label for entries without a ``source`` column.
            Defaults to the file name.

    Returns:
        GlossaryParseResult with trimmed entries in file order. Rows
        missing either value are dropped and counted.

    Raises:
        GlossaryError: If the file is missing, has no header or has fewer
            than two columns.
    """
    content, default_source = _read_csv_text(path_or_text)
    reader = csv.DictReader(io.StringIO(content))
    headers = [h for h in (reader.fieldnames or []) if h is not None]
    if not headers:
        raise GlossaryError("Glossary has no header row")

    english_column, chinese_column = resolve_columns(headers)
    source_column = _find_source_column(headers)
    label = source or default_source

    result = GlossaryParseResult(english_column=english_column, chinese_column=chinese_column)

    for row in reader:
        english = (row.get(english_column) or "").strip()
        chinese = (row.get(chinese_column) or "").strip()
        if not english or not chinese:
            result.dropped_rows += 1
            continue

        entry_source = label
        if source_column:
            entry_source = (row.get(source_column) or "").strip() or label

        result.entries.append(GlossaryEntry(english=english, chinese=chinese, source=entry_source))

    return result


def validate_glossary(entries: list[GlossaryEntry]) -> ValidationResult:
    """
    Check that a glossary can drive a translation run.

    An empty glossary is an error. Terms repeated regardless of case are
    reported as a warning naming the first few.
    """
    errors: list[str] = []
    warnings: list[str] = []

    if not entries:
        errors.append("Glossary is empty")

    seen: set[str] = set()
    duplicates: list[str] = []
    for entry in entries:
        key = entry.english.lower()
        if key in seen and entry.english not in duplicates:
            duplicates.append(entry.english)
        seen.add(key)

    if duplicates:
        listed = ", ".join(duplicates[:MAX_DUPLICATES_LISTED])
        more = "..." if len(duplicates) > MAX_DUPLICATES_LISTED else ""
        warnings.append(f"Found {len(duplicates)} duplicate terms: {listed}{more}")

    return ValidationResult(is_valid=not errors, errors=errors, warnings=warnings)


def load_glossary(path: Path, source: str | None = None) -> GlossaryParseResult:
    """
    Parse and validate a glossary file.

    Raises:
        GlossaryError: If the file cannot be read as a term table.
        GlossaryValidationError: If the glossary is empty.
    """
    result = parse_glossary_csv(Path(path), source=source)
    validation = validate_glossary(result.entries)

    warnings = list(validation.warnings)
    if result.dropped_rows:
        warnings.insert(0, f"Dropped {result.dropped_rows} rows missing a term or translation")

    if not validation.is_valid:
        raise GlossaryValidationError(validation.errors, warnings)

    result.warnings = warnings
    return result


def get_glossary_stats(entries: list[GlossaryEntry]) -> dict[str, Any]:
    """Total, unique and average term length for a glossary."""
    total = len(entries)
    unique = len({entry.english.lower() for entry in entries})
    avg_length = sum(len(entry.english) for entry in entries) / total if total else 0.0
    return {
        "total_terms": total,
        "unique_terms": unique,
        "avg_term_length": round(avg_length, 1),
    }
