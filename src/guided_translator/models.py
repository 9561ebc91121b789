"""
Core data model for guided-translator.

Chunks, glossary entries, user term preferences, term matches and translated
chunks shared by the segmenter, the term matcher, the orchestrator and the
session store.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any

# Sentinel written in place of a translation when a chunk could not be translated
FAILED_TRANSLATION_MARKER = "[Translation failed]"


class ChunkType(str, Enum):
    """Structural type of a chunk."""

    HEADING = "heading"
    PARAGRAPH = "paragraph"
    LIST = "list"
    TABLE = "table"


@dataclass(frozen=True)
class ChunkMetadata:
    """Extra information attached to heading chunks."""

    level: int | None = None
    heading: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> ChunkMetadata:
        data = data or {}
        return cls(level=data.get("level"), heading=data.get("heading"))


@dataclass(frozen=True)
class Chunk:
    """A bounded unit of source text with one structural type."""

    id: str
    text: str
    position: int
    type: ChunkType = ChunkType.PARAGRAPH
    metadata: ChunkMetadata = field(default_factory=ChunkMetadata)


@dataclass(frozen=True)
class GlossaryEntry:
    """A mandated source-term to target-term mapping."""

    english: str
    chinese: str
    source: str = ""


class TermConfidence(str, Enum):
    """How settled a user term preference is, from how often it was applied."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass
class UserGlossaryEntry:
    """A user's preferred translation for a term, overriding the base glossary."""

    english: str
    original_chinese: str
    preferred_chinese: str
    frequency: int = 1
    first_seen_chunk: int = 0
    confidence: TermConfidence = TermConfidence.LOW
    contexts: list[str] = field(default_factory=list)


@dataclass
class TermMatch:
    """Every occurrence of one glossary term inside a text."""

    english: str
    chinese: str
    positions: list[int] = field(default_factory=list)
    source: str = "glossary"

    @property
    def count(self) -> int:
        return len(self.positions)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TermMatch:
        return cls(
            english=data["english"],
            chinese=data["chinese"],
            positions=list(data.get("positions", [])),
            source=data.get("source", "glossary"),
        )


@dataclass
class TranslatedChunk:
    """A chunk together with its translation and the terms found in it."""

    id: str
    text: str
    position: int
    type: ChunkType
    metadata: ChunkMetadata
    translation: str
    matched_terms: list[TermMatch] = field(default_factory=list)
    new_terms: list[GlossaryEntry] = field(default_factory=list)
    failed: bool = False
    error: str | None = None

    @classmethod
    def from_chunk(
        cls,
        chunk: Chunk,
        translation: str,
        matched_terms: list[TermMatch] | None = None,
    ) -> TranslatedChunk:
        """Promote a chunk into a successful translation."""
        return cls(
            id=chunk.id,
            text=chunk.text,
            position=chunk.position,
            type=chunk.type,
            metadata=chunk.metadata,
            translation=translation,
            matched_terms=matched_terms or [],
        )

    @classmethod
    def failed_from_chunk(
        cls,
        chunk: Chunk,
        error: str,
        matched_terms: list[TermMatch] | None = None,
    ) -> TranslatedChunk:
        """Promote a chunk into a failed translation carrying the sentinel marker."""
        return cls(
            id=chunk.id,
            text=chunk.text,
            position=chunk.position,
            type=chunk.type,
            metadata=chunk.metadata,
            translation=f"{FAILED_TRANSLATION_MARKER} {error}".strip(),
            matched_terms=matched_terms or [],
            failed=True,
            error=error,
        )
