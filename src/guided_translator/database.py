"""
DuckDB session store for guided-translator.

Holds translation projects, their chunks and translations, the user's term
preferences, and the processing audit log.
"""

from __future__ import annotations

import json
import uuid
from collections.abc import Generator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any

import duckdb

from guided_translator.models import (
    Chunk,
    ChunkMetadata,
    ChunkType,
    TermConfidence,
    TermMatch,
    TranslatedChunk,
    UserGlossaryEntry,
)

LOG_LEVELS = {"DEBUG": 10, "INFO": 20, "WARNING": 30, "ERROR": 40}


class Stage(str, Enum):
    """Processing stages."""

    INIT = "init"
    EXTRACT = "extract"
    SEGMENT = "segment"
    TRANSLATE = "translate"
    EXPORT = "export"


class ProjectStatus(str, Enum):
    """Project status."""

    PENDING = "pending"
    EXTRACTING = "extracting"
    SEGMENTING = "segmenting"
    TRANSLATING = "translating"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class Project:
    """Translation project record."""

    id: int | None = None
    title: str = ""
    standard_title: str | None = None
    file_name: str = ""
    status: ProjectStatus = ProjectStatus.PENDING
    total_chunks: int = 0
    translated_chunks: int = 0
    failed_chunks: int = 0
    coverage: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def progress(self) -> float:
        if not self.total_chunks:
            return 0.0
        return (self.translated_chunks + self.failed_chunks) / self.total_chunks * 100


_PROJECT_COLUMNS = (
    "id, title, standard_title, file_name, status, total_chunks, "
    "translated_chunks, failed_chunks, coverage, created_at, updated_at"
)

_CHUNK_COLUMNS = "chunk_id, position, type, text, translation, metadata, matched_terms, failed, error"

_USER_TERM_COLUMNS = (
    "english, original_chinese, preferred_chinese, frequency, first_seen_chunk, "
    "confidence, contexts"
)


class Database:
    """DuckDB database wrapper for guided-translator."""

    _SCHEMA = """
    -- Translation projects
    CREATE TABLE IF NOT EXISTS projects (
        id INTEGER PRIMARY KEY,
        title VARCHAR NOT NULL,
        standard_title VARCHAR,
        file_name VARCHAR NOT NULL,
        status VARCHAR DEFAULT 'pending',
        total_chunks INTEGER DEFAULT 0,
        translated_chunks INTEGER DEFAULT 0,
        failed_chunks INTEGER DEFAULT 0,
        coverage INTEGER DEFAULT 0,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    );

    CREATE SEQUENCE IF NOT EXISTS projects_id_seq START 1;

    -- Chunks and their translations, keyed by project + chunk
    CREATE TABLE IF NOT EXISTS chunks (
        project_id INTEGER NOT NULL,
        chunk_id VARCHAR NOT NULL,
        position INTEGER NOT NULL,
        type VARCHAR NOT NULL,
        text TEXT NOT NULL,
        translation TEXT,
        metadata VARCHAR,
        matched_terms VARCHAR,
        failed BOOLEAN DEFAULT FALSE,
        error VARCHAR,
        PRIMARY KEY (project_id, chunk_id)
    );

    -- Processing log for audit trail
    CREATE TABLE IF NOT EXISTS processing_log (
        id INTEGER PRIMARY KEY,
        run_id VARCHAR NOT NULL,
        project_id INTEGER,
        stage VARCHAR NOT NULL,
        level VARCHAR NOT NULL,
        message TEXT NOT NULL,
        context VARCHAR,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    );

    CREATE SEQUENCE IF NOT EXISTS processing_log_id_seq START 1;

    CREATE INDEX IF NOT EXISTS idx_log_lookup ON processing_log(run_id, stage, level);

    -- User term preferences, one row per case-insensitive English term
    CREATE TABLE IF NOT EXISTS user_glossary (
        id INTEGER PRIMARY KEY,
        term_key VARCHAR NOT NULL UNIQUE,
        english VARCHAR NOT NULL,
        original_chinese VARCHAR,
        preferred_chinese VARCHAR NOT NULL,
        frequency INTEGER DEFAULT 1,
        first_seen_chunk INTEGER DEFAULT 0,
        confidence VARCHAR DEFAULT 'low',
        contexts VARCHAR,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    );

    CREATE SEQUENCE IF NOT EXISTS user_glossary_id_seq START 1;
    """

    def __init__(self, db_path: Path | str, log_level: str = "INFO"):
        """
        Initialize database connection.

        Args:
            db_path: DuckDB file path, or ":memory:".
            log_level: Entries below this level are not written to the audit log.
        """
        self.db_path = str(db_path)
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self.log_level = log_level.upper()
        self._conn: duckdb.DuckDBPyConnection | None = None
        self._run_id = str(uuid.uuid4())

    @property
    def conn(self) -> duckdb.DuckDBPyConnection:
        """Get or create database connection."""
        if self._conn is None:
            self._conn = duckdb.connect(self.db_path)
            self._conn.execute(self._SCHEMA)
        return self._conn

    @property
    def run_id(self) -> str:
        return self._run_id

    def new_run(self) -> str:
        """Start a new run and return its ID."""
        self._run_id = str(uuid.uuid4())
        return self._run_id

    def close(self) -> None:
        """Close database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    @contextmanager
    def transaction(self) -> Generator[duckdb.DuckDBPyConnection, None, None]:
        """Context manager for transactions."""
        try:
            self.conn.begin()
            yield self.conn
            self.conn.commit()
        except Exception:
            self.conn.rollback()
            raise

    # ==================== Projects ====================

    def save_project(self, project: Project) -> int:
        """Insert a new project, or update an existing one when it has an id."""
        if project.id is None:
            result = self.conn.execute(
                """
                INSERT INTO projects
                (id, title, standard_title, file_name, status, total_chunks,
                 translated_chunks, failed_chunks, coverage)
                VALUES (nextval('projects_id_seq'), ?, ?, ?, ?, ?, ?, ?, ?)
                RETURNING id
                """,
                [
                    project.title,
                    project.standard_title,
                    project.file_name,
                    project.status.value,
                    project.total_chunks,
                    project.translated_chunks,
                    project.failed_chunks,
                    project.coverage,
                ],
            ).fetchone()
            project.id = result[0] if result else 0
            return project.id

        self.conn.execute(
            """
            UPDATE projects
            SET title = ?, standard_title = ?, file_name = ?, status = ?,
                total_chunks = ?, translated_chunks = ?, failed_chunks = ?,
                coverage = ?, updated_at = CURRENT_TIMESTAMP
            WHERE id = ?
            """,
            [
                project.title,
                project.standard_title,
                project.file_name,
                project.status.value,
                project.total_chunks,
                project.translated_chunks,
                project.failed_chunks,
                project.coverage,
                project.id,
            ],
        )
        return project.id

    def update_project_status(self, project_id: int, status: ProjectStatus) -> None:
        self.conn.execute(
            "UPDATE projects SET status = ?, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
            [status.value, project_id],
        )

    def update_project_progress(
        self,
        project_id: int,
        translated_chunks: int,
        failed_chunks: int = 0,
        total_chunks: int | None = None,
        coverage: int | None = None,
    ) -> None:
        """Update chunk counters, and optionally the total and coverage."""
        assignments = ["translated_chunks = ?", "failed_chunks = ?"]
        params: list[Any] = [translated_chunks, failed_chunks]
        if total_chunks is not None:
            assignments.append("total_chunks = ?")
            params.append(total_chunks)
        if coverage is not None:
            assignments.append("coverage = ?")
            params.append(coverage)

        self.conn.execute(
            f"""
            UPDATE projects
            SET {", ".join(assignments)}, updated_at = CURRENT_TIMESTAMP
            WHERE id = ?
            """,
            [*params, project_id],
        )

    def get_project(self, project_id: int) -> Project | None:
        row = self.conn.execute(
            f"SELECT {_PROJECT_COLUMNS} FROM projects WHERE id = ?", [project_id]
        ).fetchone()
        return self._row_to_project(row) if row else None

    def get_project_by_title(self, title: str) -> Project | None:
        """Most recently created project with this title."""
        row = self.conn.execute(
            f"SELECT {_PROJECT_COLUMNS} FROM projects WHERE title = ? ORDER BY id DESC LIMIT 1",
            [title],
        ).fetchone()
        return self._row_to_project(row) if row else None

    def list_projects(self, status: ProjectStatus | None = None) -> list[Project]:
        """All projects, newest first, optionally filtered by status."""
        if status:
            rows = self.conn.execute(
                f"SELECT {_PROJECT_COLUMNS} FROM projects WHERE status = ? ORDER BY id DESC",
                [status.value],
            ).fetchall()
        else:
            rows = self.conn.execute(
                f"SELECT {_PROJECT_COLUMNS} FROM projects ORDER BY id DESC"
            ).fetchall()
        return [self._row_to_project(row) for row in rows]

    def delete_project(self, project_id: int) -> bool:
        """Delete a project and all of its chunks. Returns False if it did not exist."""
        if self.get_project(project_id) is None:
            return False
        with self.transaction() as conn:
            conn.execute("DELETE FROM chunks WHERE project_id = ?", [project_id])
            conn.execute("DELETE FROM projects WHERE id = ?", [project_id])
        return True

    def _row_to_project(self, row: tuple) -> Project:
        return Project(
            id=row[0],
            title=row[1],
            standard_title=row[2],
            file_name=row[3],
            status=ProjectStatus(row[4]),
            total_chunks=row[5] or 0,
            translated_chunks=row[6] or 0,
            failed_chunks=row[7] or 0,
            coverage=row[8] or 0,
            created_at=row[9],
            updated_at=row[10],
        )

    # ==================== Chunks ====================

    def save_chunks(
        self,
        project_id: int,
        chunks: list[Chunk] | list[TranslatedChunk],
    ) -> None:
        """Insert or replace chunks for a project. Translated chunks keep their translation."""
        with self.transaction() as conn:
            for chunk in chunks:
                translated = isinstance(chunk, TranslatedChunk)
                conn.execute(
                    f"""
                    INSERT OR REPLACE INTO chunks (project_id, {_CHUNK_COLUMNS})
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    [
                        project_id,
                        chunk.id,
                        chunk.position,
                        chunk.type.value,
                        chunk.text,
                        chunk.translation if translated else None,
                        json.dumps(chunk.metadata.to_dict()),
                        json.dumps([m.to_dict() for m in chunk.matched_terms])
                        if translated
                        else None,
                        chunk.failed if translated else False,
                        chunk.error if translated else None,
                    ],
                )

    def get_project_chunks(self, project_id: int) -> list[Chunk | TranslatedChunk]:
        """Chunks of a project in position order; translated ones come back as TranslatedChunk."""
        rows = self.conn.execute(
            f"SELECT {_CHUNK_COLUMNS} FROM chunks WHERE project_id = ? ORDER BY position",
            [project_id],
        ).fetchall()
        return [self._row_to_chunk(row) for row in rows]

    def _row_to_chunk(self, row: tuple) -> Chunk | TranslatedChunk:
        chunk_id, position, type_, text, translation, metadata, matched, failed, error = row
        chunk_metadata = ChunkMetadata.from_dict(json.loads(metadata) if metadata else None)

        if translation is None:
            return Chunk(
                id=chunk_id,
                text=text,
                position=position,
                type=ChunkType(type_),
                metadata=chunk_metadata,
            )

        return TranslatedChunk(
            id=chunk_id,
            text=text,
            position=position,
            type=ChunkType(type_),
            metadata=chunk_metadata,
            translation=translation,
            matched_terms=[TermMatch.from_dict(m) for m in json.loads(matched or "[]")],
            failed=bool(failed),
            error=error,
        )

    # ==================== User glossary ====================

    def get_user_term(self, english: str) -> UserGlossaryEntry | None:
        """Stored preference for a term, matched case-insensitively."""
        row = self.conn.execute(
            f"SELECT {_USER_TERM_COLUMNS} FROM user_glossary WHERE term_key = ?",
            [english.strip().lower()],
        ).fetchone()
        return self._row_to_user_term(row) if row else None

    def save_user_term(self, entry: UserGlossaryEntry) -> None:
        """Insert a preference, or overwrite the one stored for the same term."""
        term_key = entry.english.strip().lower()
        values = [
            entry.english,
            entry.original_chinese,
            entry.preferred_chinese,
            entry.frequency,
            entry.first_seen_chunk,
            entry.confidence.value,
            json.dumps(entry.contexts, ensure_ascii=False),
        ]

        exists = self.conn.execute(
            "SELECT 1 FROM user_glossary WHERE term_key = ?", [term_key]
        ).fetchone()
        if exists:
            self.conn.execute(
                """
                UPDATE user_glossary
                SET english = ?, original_chinese = ?, preferred_chinese = ?,
                    frequency = ?, first_seen_chunk = ?, confidence = ?, contexts = ?,
                    updated_at = CURRENT_TIMESTAMP
                WHERE term_key = ?
                """,
                [*values, term_key],
            )
            return

        self.conn.execute(
            f"""
            INSERT INTO user_glossary (id, term_key, {_USER_TERM_COLUMNS})
            VALUES (nextval('user_glossary_id_seq'), ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            [term_key, *values],
        )

    def get_user_terms(self) -> list[UserGlossaryEntry]:
        """All preferences in the order they were first recorded."""
        rows = self.conn.execute(
            f"SELECT {_USER_TERM_COLUMNS} FROM user_glossary ORDER BY id"
        ).fetchall()
        return [self._row_to_user_term(row) for row in rows]

    def clear_user_terms(self) -> int:
        """Delete every preference. Returns how many were removed."""
        count = self.conn.execute("SELECT COUNT(*) FROM user_glossary").fetchone()[0] or 0
        self.conn.execute("DELETE FROM user_glossary")
        return count

    def _row_to_user_term(self, row: tuple) -> UserGlossaryEntry:
        return UserGlossaryEntry(
            english=row[0],
            original_chinese=row[1] or "",
            preferred_chinese=row[2],
            frequency=row[3] or 1,
            first_seen_chunk=row[4] or 0,
            confidence=TermConfidence(row[5] or "low"),
            contexts=json.loads(row[6]) if row[6] else [],
        )

    # ==================== Logging ====================

    def log(
        self,
        level: str,
        stage: str,
        message: str,
        project_id: int | None = None,
        context: dict | None = None,
    ) -> None:
        """Insert a log entry if it passes the configured level."""
        level = level.upper()
        if LOG_LEVELS.get(level, 0) < LOG_LEVELS.get(self.log_level, 0):
            return
        context_json = json.dumps(context, default=str) if context else None
        self.conn.execute(
            """
            INSERT INTO processing_log
            (id, run_id, project_id, stage, level, message, context)
            VALUES (nextval('processing_log_id_seq'), ?, ?, ?, ?, ?, ?)
            """,
            [self._run_id, project_id, stage, level, message, context_json],
        )

    def get_logs(
        self,
        run_id: str | None = None,
        level: str | None = None,
        stage: str | None = None,
        project_id: int | None = None,
        limit: int = 100,
    ) -> list[dict]:
        """Get log entries, newest first."""
        conditions = []
        params: list[Any] = []

        if run_id:
            conditions.append("run_id = ?")
            params.append(run_id)
        if level:
            conditions.append("level = ?")
            params.append(level.upper())
        if stage:
            conditions.append("stage = ?")
            params.append(stage)
        if project_id is not None:
            conditions.append("project_id = ?")
            params.append(project_id)

        where_clause = f"WHERE {' AND '.join(conditions)}" if conditions else ""

        rows = self.conn.execute(
            f"""
            SELECT run_id, project_id, stage, level, message, context, created_at
            FROM processing_log
            {where_clause}
            ORDER BY id DESC
            LIMIT ?
            """,
            [*params, limit],
        ).fetchall()

        return [
            {
                "run_id": row[0],
                "project_id": row[1],
                "stage": row[2],
                "level": row[3],
                "message": row[4],
                "context": json.loads(row[5]) if row[5] else None,
                "created_at": row[6],
            }
            for row in rows
        ]

    # ==================== Statistics ====================

    def get_statistics(self) -> dict:
        """Project and chunk counts for the CLI."""
        status_counts = self.conn.execute(
            "SELECT status, COUNT(*) FROM projects GROUP BY status"
        ).fetchall()
        status_map = {row[0]: row[1] for row in status_counts}

        total_chunks = self.conn.execute("SELECT COUNT(*) FROM chunks").fetchone()[0] or 0
        translated = (
            self.conn.execute(
                "SELECT COUNT(*) FROM chunks WHERE translation IS NOT NULL AND NOT failed"
            ).fetchone()[0]
            or 0
        )
        errors = (
            self.conn.execute(
                "SELECT COUNT(*) FROM processing_log WHERE level = 'ERROR'"
            ).fetchone()[0]
            or 0
        )
        user_terms = self.conn.execute("SELECT COUNT(*) FROM user_glossary").fetchone()[0] or 0

        return {
            "total_projects": sum(status_map.values()),
            "completed_projects": status_map.get("completed", 0),
            "failed_projects": status_map.get("failed", 0),
            "total_chunks": total_chunks,
            "translated_chunks": translated,
            "errors": errors,
            "user_terms": user_terms,
        }
