import pytest

from guided_translator.database import Database, Project, ProjectStatus
from guided_translator.models import (
    Chunk,
    ChunkMetadata,
    ChunkType,
    TermConfidence,
    TermMatch,
    TranslatedChunk,
    UserGlossaryEntry,
)


@pytest.fixture
def db(tmp_path):
    database = Database(tmp_path / "state" / "test.db")
    yield database
    database.close()


def make_project(title="EN 13001"):
    return Project(title=title, file_name=f"{title}.pdf")


def test_save_and_get_project(db):
    project_id = db.save_project(make_project())

    project = db.get_project(project_id)

    assert project.title == "EN 13001"
    assert project.status == ProjectStatus.PENDING
    assert project.created_at is not None
    assert db.get_project(9999) is None


def test_save_project_updates_when_id_is_set(db):
    project = make_project()
    db.save_project(project)
    project.standard_title = "EN 13001-3-1"
    project.status = ProjectStatus.TRANSLATING

    db.save_project(project)

    stored = db.get_project(project.id)
    assert stored.standard_title == "EN 13001-3-1"
    assert stored.status == ProjectStatus.TRANSLATING
    assert len(db.list_projects()) == 1


def test_progress_and_status_updates(db):
    project_id = db.save_project(make_project())

    db.update_project_progress(project_id, 3, failed_chunks=1, total_chunks=8, coverage=50)
    db.update_project_status(project_id, ProjectStatus.COMPLETED)

    project = db.get_project(project_id)
    assert (project.translated_chunks, project.failed_chunks, project.total_chunks) == (3, 1, 8)
    assert project.coverage == 50
    assert project.progress == 50.0
    assert project.status == ProjectStatus.COMPLETED


def test_list_projects_newest_first_and_by_status(db):
    first = db.save_project(make_project("a"))
    second = db.save_project(make_project("b"))
    db.update_project_status(first, ProjectStatus.FAILED)

    assert [p.id for p in db.list_projects()] == [second, first]
    assert [p.title for p in db.list_projects(ProjectStatus.FAILED)] == ["a"]


def test_get_project_by_title_returns_latest(db):
    db.save_project(make_project("doc"))
    latest = db.save_project(make_project("doc"))

    assert db.get_project_by_title("doc").id == latest
    assert db.get_project_by_title("missing") is None


def test_chunks_round_trip(db):
    project_id = db.save_project(make_project())
    heading = Chunk(
        id="chunk_0",
        text="# Scope",
        position=0,
        type=ChunkType.HEADING,
        metadata=ChunkMetadata(level=1, heading="Scope"),
    )
    body = Chunk(id="chunk_1", text="The valve.", position=1)
    db.save_chunks(project_id, [body, heading])

    stored = db.get_project_chunks(project_id)

    assert stored == [heading, body]


def test_translated_chunks_replace_source_rows(db):
    project_id = db.save_project(make_project())
    chunk = Chunk(id="chunk_0", text="The valve.", position=0)
    db.save_chunks(project_id, [chunk])

    translated = TranslatedChunk.from_chunk(chunk, "阀门。", [TermMatch("valve", "阀门", [4])])
    failed = TranslatedChunk.failed_from_chunk(
        Chunk(id="chunk_1", text="Broken.", position=1), "timeout"
    )
    db.save_chunks(project_id, [translated, failed])

    stored = db.get_project_chunks(project_id)
    assert len(stored) == 2
    assert isinstance(stored[0], TranslatedChunk)
    assert stored[0].translation == "阀门。"
    assert stored[0].matched_terms == [TermMatch("valve", "阀门", [4])]
    assert stored[1].failed
    assert stored[1].error == "timeout"


def test_delete_project_removes_chunks(db):
    project_id = db.save_project(make_project())
    db.save_chunks(project_id, [Chunk(id="chunk_0", text="x", position=0)])

    assert db.delete_project(project_id)
    assert db.get_project(project_id) is None
    assert db.get_project_chunks(project_id) == []
    assert not db.delete_project(project_id)


def test_log_respects_level(tmp_path):
    db = Database(tmp_path / "log.db", log_level="WARNING")
    db.log("INFO", "translate", "ignored")
    db.log("warning", "translate", "kept", project_id=1, context={"chunk_id": "chunk_0"})

    logs = db.get_logs()

    assert len(logs) == 1
    assert logs[0]["level"] == "WARNING"
    assert logs[0]["context"] == {"chunk_id": "chunk_0"}
    assert logs[0]["run_id"] == db.run_id
    db.close()


def test_log_filters(db):
    db.log("INFO", "extract", "one", project_id=1)
    db.log("ERROR", "translate", "two", project_id=2)
    old_run = db.run_id
    db.new_run()
    db.log("INFO", "translate", "three", project_id=2)

    assert [e["message"] for e in db.get_logs()] == ["three", "two", "one"]
    assert [e["message"] for e in db.get_logs(level="error")] == ["two"]
    assert [e["message"] for e in db.get_logs(stage="translate")] == ["three", "two"]
    assert [e["message"] for e in db.get_logs(project_id=1)] == ["one"]
    assert [e["message"] for e in db.get_logs(run_id=old_run)] == ["two", "one"]
    assert len(db.get_logs(limit=1)) == 1


def test_statistics(db):
    project_id = db.save_project(make_project())
    chunk = Chunk(id="chunk_0", text="x", position=0)
    db.save_chunks(
        project_id,
        [
            TranslatedChunk.from_chunk(chunk, "y"),
            Chunk(id="chunk_1", text="z", position=1),
        ],
    )
    db.update_project_status(project_id, ProjectStatus.COMPLETED)
    db.log("ERROR", "translate", "boom")

    stats = db.get_statistics()

    assert stats["total_projects"] == 1
    assert stats["completed_projects"] == 1
    assert stats["total_chunks"] == 2
    assert stats["translated_chunks"] == 1
    assert stats["errors"] == 1
    assert stats["user_terms"] == 0


def test_in_memory_database():
    db = Database(":memory:")

    assert db.save_project(make_project()) == 1
    db.close()


def test_user_terms_are_keyed_case_insensitively(db):
    entry = UserGlossaryEntry(
        english="Valve",
        original_chinese="阀门",
        preferred_chinese="阀",
        first_seen_chunk=2,
        contexts=["Close the valve."],
    )
    db.save_user_term(entry)

    entry.english = "valve"
    entry.frequency = 2
    entry.confidence = TermConfidence.MEDIUM
    db.save_user_term(entry)

    assert db.get_user_term("VALVE") == entry
    assert db.get_user_term("pump") is None
    assert db.get_user_terms() == [entry]
    assert db.get_statistics()["user_terms"] == 1


def test_user_terms_keep_insertion_order_and_clear(db):
    for english in ("valve", "pump", "girder"):
        db.save_user_term(UserGlossaryEntry(english, "", f"{english}-zh"))

    assert [e.english for e in db.get_user_terms()] == ["valve", "pump", "girder"]
    assert db.clear_user_terms() == 3
    assert db.get_user_terms() == []
