"""
Markdown exporter for translated projects.

Each chunk is written according to its type: headings get ``#`` markers,
list lines get bullets, tables and paragraphs pass through unchanged.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from guided_translator.models import Chunk, ChunkType, TranslatedChunk
from guided_translator.segmentation.classifier import DEFAULT_HEADING_LEVEL
from guided_translator.segmentation.reassembly import chunk_output_text

if TYPE_CHECKING:
    from guided_translator.database import Database, Project

_MARKDOWN_HEADING = re.compile(r"^#{1,6}\s")
_LIST_MARKER = re.compile(r"^(?:[-*•]|\d+[.)])")


@dataclass
class ExportResult:
    """Result of an export operation."""

    project_id: int | None
    project_title: str
    output_path: Path
    chunks_exported: int
    language: str
    success: bool
    error: str | None = None


def format_chunk_markdown(chunk: Chunk | TranslatedChunk, translated: bool = True) -> str:
    """Render one chunk as a Markdown block."""
    text = chunk_output_text(chunk, translated)

    if chunk.type == ChunkType.HEADING:
        if not _MARKDOWN_HEADING.match(text):
            level = chunk.metadata.level or DEFAULT_HEADING_LEVEL
            text = f"{'#' * level} {text}"
        return text

    if chunk.type == ChunkType.LIST:
        lines = []
        for line in text.split("\n"):
            if not line.strip() or _LIST_MARKER.match(line.strip()):
                lines.append(line)
            else:
                lines.append(f"- {line}")
        return "\n".join(lines)

    return text


def convert_chunks_to_markdown(
    chunks: Sequence[Chunk | TranslatedChunk],
    translated: bool = True,
) -> str:
    """Render chunks in position order, one block per chunk."""
    ordered = sorted(chunks, key=lambda c: c.position)
    return "".join(f"{format_chunk_markdown(chunk, translated)}\n\n" for chunk in ordered)


class MarkdownExporter:
    """Writes projects to ``<name>_<language>.md`` files."""

    def __init__(self, output_dir: Path, db: Database | None = None) -> None:
        """
        Initialize the markdown exporter.

        Args:
            output_dir: Directory for exported files.
            db: Database for exporting stored projects by id.
        """
        self.db = db
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def _sanitize_filename(self, name: str) -> str:
        return "".join(c if c.isalnum() or c in "._- " else "_" for c in name)

    def export_chunks(
        self,
        name: str,
        chunks: Sequence[Chunk | TranslatedChunk],
        language: str = "zh",
        translated: bool = True,
        project_id: int | None = None,
    ) -> ExportResult:
        """
        Export chunks to a Markdown file.

        Args:
            name: Base name for the output file.
            chunks: Chunks to write.
            language: Language code used in the file name.
            translated: Write translations rather than source text.
            project_id: Project id recorded in the result.
        """
        if not chunks:
            return ExportResult(
                project_id=project_id,
                project_title=name,
                output_path=self.output_dir,
                chunks_exported=0,
                language=language,
                success=False,
                error="No chunks to export",
            )

        safe_name = self._sanitize_filename(Path(name).stem)
        output_file = self.output_dir / f"{safe_name}_{language}.md"
        output_file.write_text(convert_chunks_to_markdown(chunks, translated), encoding="utf-8")

        return ExportResult(
            project_id=project_id,
            project_title=name,
            output_path=output_file,
            chunks_exported=len(chunks),
            language=language,
            success=True,
        )

    def export_project(
        self,
        project: Project,
        language: str = "zh",
        translated: bool = True,
    ) -> ExportResult:
        """Export a stored project. Source-language exports ignore translations."""
        if self.db is None:
            raise ValueError("MarkdownExporter needs a database to export stored projects")

        chunks = self.db.get_project_chunks(project.id)
        if translated and not any(isinstance(c, TranslatedChunk) for c in chunks):
            return ExportResult(
                project_id=project.id,
                project_title=project.title,
                output_path=self.output_dir,
                chunks_exported=0,
                language=language,
                success=False,
                error="Project has no translations",
            )

        return self.export_chunks(
            project.title,
            chunks,
            language=language,
            translated=translated,
            project_id=project.id,
        )
