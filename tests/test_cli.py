import pytest
from rich.console import Console
from typer.testing import CliRunner

from conftest import FakeProvider
from guided_translator import cli
from guided_translator.database import Database
from guided_translator.llm.keys import KeyPool

runner = CliRunner()


@pytest.fixture(autouse=True)
def wide_console(monkeypatch):
    monkeypatch.setattr(cli, "console", Console(width=200))


@pytest.fixture
def config_file(tmp_path, clean_env):
    path = tmp_path / "config.yaml"
    path.write_text(
        "paths:\n"
        f"  output_dir: {tmp_path / 'out'}\n"
        f"  database_path: {tmp_path / 'state.db'}\n"
        "translation:\n"
        "  api_keys: k1,k2\n"
        "processing:\n"
        "  inter_call_delay: 0\n",
        encoding="utf-8",
    )
    return path


@pytest.fixture
def fake_provider(monkeypatch):
    def create(provider_type, *, api_keys, **kwargs):
        return FakeProvider(KeyPool(api_keys))

    monkeypatch.setattr("guided_translator.translation.pipeline.create_llm_provider", create)


def write(tmp_path, name, content):
    path = tmp_path / name
    path.write_text(content, encoding="utf-8")
    return path


def test_init_writes_config(tmp_path):
    target = tmp_path / "config.yaml"

    result = runner.invoke(cli.app, ["init", "--output", str(target)])

    assert result.exit_code == 0
    assert "translation:" in target.read_text(encoding="utf-8")


def test_glossary_command(tmp_path):
    path = write(tmp_path, "terms.csv", "English,Chinese\nvalve,阀门\npump,泵\n")

    result = runner.invoke(cli.app, ["glossary", str(path)])

    assert result.exit_code == 0
    assert "Terms: 2" in result.output


def test_glossary_command_rejects_empty_file(tmp_path):
    path = write(tmp_path, "terms.csv", "English,Chinese\n")

    result = runner.invoke(cli.app, ["glossary", str(path)])

    assert result.exit_code == 1
    assert "Invalid glossary" in result.output


def test_extract_command_writes_text(tmp_path, config_file):
    document = write(tmp_path, "doc.md", "# EN 1234\n\nBody text.\n")
    output = tmp_path / "text" / "doc.txt"

    result = runner.invoke(
        cli.app, ["extract", str(document), "-o", str(output), "-c", str(config_file)]
    )

    assert result.exit_code == 0
    assert output.read_text(encoding="utf-8") == "# EN 1234\n\nBody text."


def test_chunk_command(tmp_path, config_file):
    document = write(tmp_path, "doc.md", "# Scope\n\n" + "x" * 400)

    result = runner.invoke(
        cli.app, ["chunk", str(document), "-t", "50", "-n", "2", "-c", str(config_file)]
    )

    assert result.exit_code == 0
    assert "Chunks: 2" in result.output


def test_translate_needs_api_keys(tmp_path, clean_env):
    document = write(tmp_path, "doc.md", "Text.")
    glossary = write(tmp_path, "terms.csv", "English,Chinese\nvalve,阀门\n")
    config = write(tmp_path, "config.yaml", f"paths:\n  database_path: {tmp_path / 'db'}\n")

    result = runner.invoke(
        cli.app, ["translate", str(document), "-g", str(glossary), "-c", str(config)]
    )

    assert result.exit_code == 1
    assert "No translation API keys" in result.output


def test_translate_rejects_empty_glossary(tmp_path, config_file):
    document = write(tmp_path, "doc.md", "Text.")
    glossary = write(tmp_path, "terms.csv", "English,Chinese\n")

    result = runner.invoke(
        cli.app, ["translate", str(document), "-g", str(glossary), "-c", str(config_file)]
    )

    assert result.exit_code == 1
    assert "Glossary rejected" in result.output


def test_translate_export_and_delete(tmp_path, config_file, fake_provider):
    document = write(tmp_path, "manual.md", "The valve is closed.\n\nAnother line.")
    glossary = write(tmp_path, "terms.csv", "English,Chinese\nvalve,阀门\n")

    result = runner.invoke(
        cli.app, ["translate", str(document), "-g", str(glossary), "-c", str(config_file)]
    )

    assert result.exit_code == 0, result.output
    assert "Completed" in result.output
    assert (tmp_path / "out" / "manual_zh.md").read_text(encoding="utf-8") == "译文\n\n"

    listing = runner.invoke(cli.app, ["projects", "-c", str(config_file)])
    assert "manual" in listing.output

    source = runner.invoke(
        cli.app,
        ["export", "1", "--source-text", "-o", str(tmp_path / "src"), "-c", str(config_file)],
    )
    assert source.exit_code == 0
    assert (tmp_path / "src" / "manual_en.md").exists()

    log_view = runner.invoke(cli.app, ["logs", "-p", "1", "-c", str(config_file)])
    assert log_view.exit_code == 0
    assert "Project completed" in log_view.output

    removed = runner.invoke(cli.app, ["delete", "1", "-y", "-c", str(config_file)])
    assert removed.exit_code == 0
    db = Database(tmp_path / "state.db")
    assert db.get_project(1) is None
    db.close()


def test_export_and_delete_unknown_project(config_file):
    assert runner.invoke(cli.app, ["export", "42", "-c", str(config_file)]).exit_code == 1
    assert runner.invoke(cli.app, ["delete", "42", "-y", "-c", str(config_file)]).exit_code == 1


def test_projects_rejects_unknown_status(config_file):
    result = runner.invoke(cli.app, ["projects", "--status", "bogus", "-c", str(config_file)])

    assert result.exit_code == 1
    assert "Invalid status" in result.output


def test_prefer_and_user_terms(tmp_path, config_file):
    first = runner.invoke(
        cli.app, ["prefer", "valve", "阀", "--original", "阀门", "-c", str(config_file)]
    )
    again = runner.invoke(cli.app, ["prefer", "Valve", "阀", "-c", str(config_file)])

    assert first.exit_code == 0, first.output
    assert "low confidence" in first.output
    assert "used 2x, medium confidence" in again.output

    listing = runner.invoke(cli.app, ["user-terms", "-c", str(config_file)])
    assert listing.exit_code == 0
    assert "valve" in listing.output and "阀门" in listing.output

    target = tmp_path / "user_terms.csv"
    exported = runner.invoke(cli.app, ["user-terms", "--export", str(target), "-c", str(config_file)])
    assert exported.exit_code == 0
    assert target.read_text(encoding="utf-8").splitlines()[1] == "valve,阀,User Edit,2,medium"

    cleared = runner.invoke(cli.app, ["user-terms", "--clear", "-y", "-c", str(config_file)])
    assert "Removed 1 term preferences" in cleared.output
    empty = runner.invoke(cli.app, ["user-terms", "-c", str(config_file)])
    assert "No term preferences stored" in empty.output


def test_prefer_rejects_blank_translation(config_file):
    result = runner.invoke(cli.app, ["prefer", "valve", " ", "-c", str(config_file)])

    assert result.exit_code == 1
    assert "Error" in result.output


def test_translate_applies_stored_preferences(tmp_path, config_file, fake_provider):
    runner.invoke(cli.app, ["prefer", "valve", "阀", "-c", str(config_file)])
    document = write(tmp_path, "manual.md", "The valve is closed.")
    glossary = write(tmp_path, "terms.csv", "English,Chinese\nvalve,阀门\n")

    applied = runner.invoke(
        cli.app, ["translate", str(document), "-g", str(glossary), "-c", str(config_file)]
    )
    skipped = runner.invoke(
        cli.app,
        ["translate", str(document), "-g", str(glossary), "--no-user-terms", "-c", str(config_file)],
    )

    assert applied.exit_code == 0, applied.output
    assert "1 applied" in applied.output
    assert skipped.exit_code == 0, skipped.output
    assert "1 applied" not in skipped.output


def test_stats_command(tmp_path, config_file, fake_provider):
    document = write(tmp_path, "manual.md", "The valve is closed.")
    glossary = write(tmp_path, "terms.csv", "English,Chinese\nvalve,阀门\n")
    runner.invoke(cli.app, ["translate", str(document), "-g", str(glossary), "-c", str(config_file)])
    runner.invoke(cli.app, ["prefer", "pump", "泵", "-c", str(config_file)])

    result = runner.invoke(cli.app, ["stats", "-c", str(config_file)])

    assert result.exit_code == 0
    assert "Processing Statistics" in result.output
    assert "Projects: 1" in result.output
    assert "Completed: 1" in result.output
    assert "Translated: 1" in result.output
    assert "User terms: 1" in result.output
