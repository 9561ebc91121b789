"""
CLI for guided-translator.

Provides commands for glossary checks, text extraction, chunking,
translation, project management, and export.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from guided_translator.config import Settings, create_default_config, load_config
from guided_translator.database import Database, ProjectStatus
from guided_translator.exceptions import GlossaryError, GlossaryValidationError

app = typer.Typer(
    name="guided-translate",
    help="Glossary-guided translation of technical documents.",
    add_completion=False,
)

console = Console()


def _display_config(settings: Settings, config_path: Path | None) -> None:
    """Display the configuration being used."""
    config_source = str(config_path) if config_path else "default (config.yaml or built-in)"

    config_table = Table(show_header=False, box=None, padding=(0, 2))
    config_table.add_column("Key", style="cyan")
    config_table.add_column("Value", style="green")

    config_table.add_row("Config file", config_source)
    config_table.add_row("Project", settings.project.name)
    config_table.add_row("", "")
    config_table.add_row("Translation Settings", "", style="bold cyan")
    config_table.add_row("  Provider", settings.translation.provider.value)
    config_table.add_row("  Model", settings.translation.model or "provider default")
    config_table.add_row("  Source language", settings.translation.source_language)
    config_table.add_row("  Target language", settings.translation.target_language)
    keys = len(settings.translation.api_keys)
    config_table.add_row("  API keys", f"{keys} configured" if keys else "[red]not set[/red]")
    config_table.add_row("", "")
    config_table.add_row("Processing", "", style="bold cyan")
    config_table.add_row("  Chunk budget", f"{settings.processing.chunk_max_tokens} tokens")
    config_table.add_row("  Inter-call delay", f"{settings.processing.inter_call_delay}s")
    config_table.add_row(
        "  Backoff",
        f"{settings.processing.base_delay}s x retry, max {settings.processing.max_retries}",
    )
    config_table.add_row(
        "  Vision extraction",
        "configured" if settings.extraction.vision_api_key else "off (layout analysis)",
    )

    console.print(
        Panel(config_table, title="[bold blue]guided-translator[/bold blue]", border_style="blue")
    )


def get_settings(config_path: Path | None = None) -> Settings:
    """Load settings from config file or defaults."""
    if config_path and config_path.exists():
        return load_config(config_path)
    return load_config()


def get_database(settings: Settings) -> Database:
    """Get database instance."""
    return Database(settings.paths.database_path, log_level=settings.logging.level)


def _vision_extractor(settings: Settings, use_vision: bool):
    if not use_vision or not settings.extraction.vision_api_key:
        return None

    from guided_translator.extraction.vision import VisionExtractor

    return VisionExtractor(
        api_key=settings.extraction.vision_api_key,
        model=settings.extraction.vision_model,
        base_url=settings.extraction.vision_base_url,
        timeout=settings.extraction.timeout_seconds,
        dpi=settings.extraction.image_dpi,
        page_delay=settings.extraction.page_delay,
    )


@app.command()
def init(
    output_path: Path = typer.Option(
        Path("config.yaml"),
        "--output",
        "-o",
        help="Output path for config file",
    ),
) -> None:
    """Generate a default configuration file."""
    if output_path.exists():
        overwrite = typer.confirm(f"{output_path} already exists. Overwrite?")
        if not overwrite:
            raise typer.Abort()

    create_default_config(output_path)
    console.print(f"[green]Created config file: {output_path}[/green]")
    console.print("\nSet your API keys, then run:")
    console.print("  guided-translate translate document.pdf --glossary terms.csv")


@app.command()
def glossary(
    path: Path = typer.Argument(..., help="Glossary CSV file"),
    show: int = typer.Option(10, "--show", "-n", help="Number of entries to preview"),
) -> None:
    """Validate a glossary CSV and show statistics."""
    from guided_translator.terminology import get_glossary_stats, load_glossary

    try:
        result = load_glossary(path)
    except GlossaryValidationError as e:
        console.print(f"[red]Invalid glossary: {e}[/red]")
        for warning in e.warnings:
            console.print(f"  [yellow]⚠ {warning}[/yellow]")
        raise typer.Exit(1) from None
    except GlossaryError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1) from None

    stats = get_glossary_stats(result.entries)
    console.print(
        Panel(
            f"Columns: [cyan]{result.english_column}[/cyan] → [cyan]{result.chinese_column}[/cyan]\n"
            f"Terms: {stats['total_terms']} ({stats['unique_terms']} unique)\n"
            f"Average term length: {stats['avg_term_length']} characters\n"
            f"Dropped rows: {result.dropped_rows}",
            title=f"[bold]Glossary - {path.name}[/bold]",
            border_style="green",
        )
    )
    for warning in result.warnings:
        console.print(f"[yellow]⚠ {warning}[/yellow]")

    if show > 0:
        table = Table(title="Preview")
        table.add_column("English", style="cyan")
        table.add_column("Translation")
        table.add_column("Source", style="dim")
        for entry in result.entries[:show]:
            table.add_row(entry.english, entry.chinese, entry.source)
        console.print(table)


def _extract(document: Path, settings: Settings, use_vision: bool):
    from guided_translator.extraction import extract_structured_content

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        console=console,
    ) as progress:
        task = progress.add_task(f"Extracting {document.name}", total=None)

        def on_page(current: int, total: int) -> None:
            progress.update(task, completed=current, total=total)

        return asyncio.run(
            extract_structured_content(
                document,
                vision=_vision_extractor(settings, use_vision),
                progress_callback=on_page,
            )
        )


@app.command()
def extract(
    document: Path = typer.Argument(..., help="Document to extract (.pdf, .md, .txt)"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write text to this file"),
    config: Path | None = typer.Option(None, "--config", "-c", help="Config file"),
    use_vision: bool = typer.Option(
        True, "--vision/--no-vision", help="Use the vision model for PDFs when a key is set"
    ),
) -> None:
    """Extract and reconstruct the text of a document."""
    settings = get_settings(config)

    try:
        structure = _extract(document, settings, use_vision)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1) from None

    info = Table(show_header=False, box=None, padding=(0, 1))
    info.add_column("", style="bold")
    info.add_column("")
    info.add_row("Title", structure.title)
    info.add_row("Pages", str(structure.pages))
    info.add_row("Words", str(structure.word_count))
    info.add_row("Language", structure.language)
    info.add_row("Reading time", f"{structure.reading_time_minutes} min")
    console.print(Panel(info, title=f"[bold]{document.name}[/bold]", border_style="cyan"))

    for page_number, error in structure.page_errors.items():
        console.print(f"[yellow]⚠ Page {page_number + 1}: {error}[/yellow]")

    if output:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(structure.text, encoding="utf-8")
        console.print(f"[green]Text written to {output}[/green]")
    else:
        console.print(structure.text)


@app.command()
def chunk(
    document: Path = typer.Argument(..., help="Document to segment"),
    max_tokens: int | None = typer.Option(None, "--max-tokens", "-t", help="Token budget per chunk"),
    show: int = typer.Option(0, "--show", "-n", help="Number of chunks to preview"),
    config: Path | None = typer.Option(None, "--config", "-c", help="Config file"),
    use_vision: bool = typer.Option(
        True, "--vision/--no-vision", help="Use the vision model for PDFs when a key is set"
    ),
) -> None:
    """Segment a document into chunks and show statistics."""
    from guided_translator.segmentation import get_chunk_stats, split_into_chunks

    settings = get_settings(config)
    budget = max_tokens or settings.processing.chunk_max_tokens

    try:
        structure = _extract(document, settings, use_vision)
        chunks = split_into_chunks(structure.text, budget)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1) from None

    stats = get_chunk_stats(chunks)
    types = ", ".join(f"{name}: {count}" for name, count in stats["types"].items() if count)
    console.print(
        Panel(
            f"Chunks: {stats['total_chunks']}\n"
            f"Tokens: {stats['total_tokens']} (avg {stats['avg_tokens_per_chunk']} per chunk, "
            f"budget {budget})\n"
            f"Types: {types or 'none'}",
            title=f"[bold]Segmentation - {document.name}[/bold]",
            border_style="cyan",
        )
    )

    if show > 0:
        table = Table()
        table.add_column("ID", style="dim")
        table.add_column("Type", style="magenta")
        table.add_column("Text")
        for item in chunks[:show]:
            preview = item.text.replace("\n", " ")
            table.add_row(item.id, item.type.value, preview[:80] + ("..." if len(preview) > 80 else ""))
        console.print(table)


@app.command()
def translate(
    document: Path = typer.Argument(..., help="Document to translate"),
    glossary_path: Path = typer.Option(..., "--glossary", "-g", help="Glossary CSV file"),
    title: str | None = typer.Option(None, "--title", help="Project title"),
    config: Path | None = typer.Option(None, "--config", "-c", help="Config file"),
    source: str | None = typer.Option(
        None, "--source", "-s", help="Source language (default: from config)"
    ),
    target: str | None = typer.Option(
        None, "--target", "-t", help="Target language (default: from config)"
    ),
    model: str | None = typer.Option(None, "--model", "-m", help="Model (default: from config)"),
    no_export: bool = typer.Option(False, "--no-export", help="Skip the Markdown export"),
    no_user_terms: bool = typer.Option(
        False, "--no-user-terms", help="Ignore stored user term preferences"
    ),
) -> None:
    """Translate a document with a mandated glossary."""
    from guided_translator.llm.retry import RetryEvent
    from guided_translator.terminology import load_glossary
    from guided_translator.translation.pipeline import (
        PipelineConfig,
        PipelineStage,
        ProgressInfo,
        TranslationPipeline,
    )

    settings = get_settings(config)
    _display_config(settings, config)

    if not settings.translation.api_keys:
        console.print("[red]No translation API keys configured[/red]")
        console.print(
            "Set GUIDED_TRANSLATOR_API_KEYS (comma separated), OPENROUTER_API_KEY "
            "or GEMINI_API_KEY, or add translation.api_keys to the config"
        )
        raise typer.Exit(1)

    try:
        glossary_result = load_glossary(glossary_path)
    except (GlossaryError, GlossaryValidationError) as e:
        console.print(f"[red]Glossary rejected: {e}[/red]")
        raise typer.Exit(1) from None

    for warning in glossary_result.warnings:
        console.print(f"[yellow]⚠ {warning}[/yellow]")

    db = get_database(settings)
    pipeline_config = PipelineConfig(
        api_keys=settings.translation.api_keys,
        provider=settings.translation.provider,
        model=model or settings.translation.model,
        base_url=settings.translation.base_url,
        source_lang=source or settings.translation.source_language,
        target_lang=target or settings.translation.target_language,
        temperature=settings.translation.temperature,
        max_tokens=settings.translation.max_tokens,
        timeout=settings.translation.timeout_seconds,
        chunk_max_tokens=settings.processing.chunk_max_tokens,
        inter_call_delay=settings.processing.inter_call_delay,
        base_delay=settings.processing.base_delay,
        max_retries=settings.processing.max_retries,
        vision_api_key=settings.extraction.vision_api_key,
        vision_model=settings.extraction.vision_model,
        vision_base_url=settings.extraction.vision_base_url,
        image_dpi=settings.extraction.image_dpi,
        page_delay=settings.extraction.page_delay,
        output_dir=None if no_export or not settings.export.auto_export else settings.paths.output_dir,
        apply_user_glossary=settings.translation.apply_user_glossary and not no_user_terms,
    )

    async def run_pipeline():
        with Progress(
            SpinnerColumn(),
            TextColumn("[bold blue]{task.description}"),
            BarColumn(complete_style="green", finished_style="green"),
            TaskProgressColumn(),
            TimeElapsedColumn(),
            console=console,
            transient=False,
        ) as progress:
            task = progress.add_task("[cyan]Starting pipeline...", total=None)

            def on_progress(info: ProgressInfo) -> None:
                description = f"[cyan]{info.stage_display}"
                if info.detail:
                    description += f" ({info.detail})"
                progress.update(
                    task,
                    description=description,
                    completed=info.current or 0,
                    total=info.total,
                )

            def on_status(event: RetryEvent) -> None:
                style = "yellow" if event.kind == "rotate" else "magenta"
                progress.console.print(f"  [{style}]↻ {event.message}[/{style}]")

            pipeline = TranslationPipeline(db, pipeline_config)
            return await pipeline.process_document(
                document,
                glossary=glossary_result.entries,
                title=title,
                progress_callback=on_progress,
                status_callback=on_status,
            )

    try:
        state = asyncio.run(run_pipeline())
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1) from None

    console.print()
    if state["current_stage"] == PipelineStage.COMPLETE:
        result_table = Table(show_header=False, box=None)
        result_table.add_column("", style="dim")
        result_table.add_column("")
        result_table.add_row("Project", f"#{state['project_id']} {state['standard_title']}")
        result_table.add_row("Pages", str(state["total_pages"]))
        result_table.add_row(
            "Chunks",
            f"{state['translated_chunks']}/{state['total_chunks']} translated"
            + (f", [red]{state['failed_chunks']} failed[/red]" if state["failed_chunks"] else ""),
        )
        result_table.add_row("Glossary coverage", f"{state['coverage']}%")
        if state.get("user_terms"):
            result_table.add_row("User terms", f"{state['user_terms']} applied")
        if state.get("output_path"):
            result_table.add_row("Output", f"[cyan]{state['output_path']}[/cyan]")

        console.print(
            Panel(result_table, title="[green]✓ Completed[/green]", border_style="green")
        )
    else:
        console.print(f"[red]✗ Failed: {document.name}[/red]")
        for error in state.get("errors", []):
            console.print(f"  [red]• {error.get('stage')}: {error.get('error')}[/red]")
        raise typer.Exit(1)


@app.command()
def projects(
    config: Path | None = typer.Option(None, "--config", "-c", help="Config file"),
    status: str | None = typer.Option(None, "--status", help="Filter by status"),
) -> None:
    """List translation projects."""
    settings = get_settings(config)
    db = get_database(settings)

    try:
        status_filter = ProjectStatus(status) if status else None
    except ValueError:
        valid = ", ".join(s.value for s in ProjectStatus)
        console.print(f"[red]Invalid status: {status}. Valid options: {valid}[/red]")
        raise typer.Exit(1) from None

    project_list = db.list_projects(status_filter)
    if not project_list:
        console.print("[yellow]No projects in database[/yellow]")
        return

    table = Table(title="Projects")
    table.add_column("ID", style="dim")
    table.add_column("Title", style="cyan")
    table.add_column("Standard")
    table.add_column("Chunks", justify="right")
    table.add_column("Coverage", justify="right")
    table.add_column("Status", style="yellow")
    table.add_column("Updated", style="dim")

    for project in project_list[:50]:
        status_style = {
            ProjectStatus.COMPLETED: "green",
            ProjectStatus.FAILED: "red",
            ProjectStatus.PENDING: "yellow",
        }.get(project.status, "blue")
        chunks = f"{project.translated_chunks}/{project.total_chunks}"
        if project.failed_chunks:
            chunks += f" [red]({project.failed_chunks} failed)[/red]"

        table.add_row(
            str(project.id),
            project.title[:40],
            project.standard_title or "",
            chunks,
            f"{project.coverage}%",
            f"[{status_style}]{project.status.value}[/{status_style}]",
            str(project.updated_at or "")[:19],
        )

    console.print(table)


@app.command()
def export(
    project_id: int = typer.Argument(..., help="Project ID to export"),
    output_dir: Path | None = typer.Option(None, "--output", "-o", help="Output directory"),
    source_text: bool = typer.Option(
        False, "--source-text", help="Export the source text instead of the translation"
    ),
    config: Path | None = typer.Option(None, "--config", "-c", help="Config file"),
) -> None:
    """Export a project to Markdown."""
    from guided_translator.export import MarkdownExporter

    settings = get_settings(config)
    db = get_database(settings)

    project = db.get_project(project_id)
    if not project:
        console.print(f"[red]Project {project_id} not found[/red]")
        raise typer.Exit(1)

    language = (
        settings.translation.source_language
        if source_text
        else settings.translation.target_language
    )
    exporter = MarkdownExporter(output_dir or settings.paths.output_dir, db=db)
    result = exporter.export_project(project, language=language, translated=not source_text)

    if result.success:
        console.print(
            f"[green]✓ Exported {result.chunks_exported} chunks to {result.output_path}[/green]"
        )
    else:
        console.print(f"[yellow]⚠ {project.title}: {result.error}[/yellow]")
        raise typer.Exit(1)


@app.command()
def delete(
    project_id: int = typer.Argument(..., help="Project ID to delete"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
    config: Path | None = typer.Option(None, "--config", "-c", help="Config file"),
) -> None:
    """Delete a project and all of its chunks."""
    settings = get_settings(config)
    db = get_database(settings)

    project = db.get_project(project_id)
    if not project:
        console.print(f"[red]Project {project_id} not found[/red]")
        raise typer.Exit(1)

    if not yes and not typer.confirm(f"Delete project #{project_id} '{project.title}'?"):
        raise typer.Abort()

    db.delete_project(project_id)
    console.print(f"[green]Deleted project #{project_id}[/green]")


@app.command()
def prefer(
    term: str = typer.Argument(..., help="English term"),
    translation: str = typer.Argument(..., help="Preferred translation"),
    original: str = typer.Option("", "--original", help="Translation being replaced"),
    context: str = typer.Option("", "--context", help="Sentence the term appeared in"),
    chunk_position: int = typer.Option(0, "--chunk", help="Chunk where it was corrected"),
    config: Path | None = typer.Option(None, "--config", "-c", help="Config file"),
) -> None:
    """Record a preferred translation that overrides the glossary."""
    from guided_translator.terminology import UserGlossary

    settings = get_settings(config)
    user_glossary = UserGlossary(get_database(settings))

    try:
        entry = user_glossary.add_preference(
            term, original, translation, chunk_position=chunk_position, context=context
        )
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1) from None

    console.print(
        f"[green]✓ {entry.english} → {entry.preferred_chinese}[/green] "
        f"(used {entry.frequency}x, {entry.confidence.value} confidence)"
    )


@app.command("user-terms")
def user_terms(
    export_csv: Path | None = typer.Option(None, "--export", help="Write preferences to CSV"),
    clear: bool = typer.Option(False, "--clear", help="Delete all preferences"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
    config: Path | None = typer.Option(None, "--config", "-c", help="Config file"),
) -> None:
    """List, export or clear stored term preferences."""
    from guided_translator.terminology import UserGlossary

    settings = get_settings(config)
    user_glossary = UserGlossary(get_database(settings))

    if clear:
        if not yes and not typer.confirm("Delete all stored term preferences?"):
            raise typer.Abort()
        removed = user_glossary.clear()
        console.print(f"[green]Removed {removed} term preferences[/green]")
        return

    entries = user_glossary.entries()
    if not entries:
        console.print("[yellow]No term preferences stored[/yellow]")
        return

    if export_csv is not None:
        user_glossary.export_csv(export_csv)
        console.print(f"[green]✓ Exported {len(entries)} terms to {export_csv}[/green]")
        return

    table = Table(title="User Term Preferences")
    table.add_column("English", style="cyan")
    table.add_column("Preferred")
    table.add_column("Replaces", style="dim")
    table.add_column("Used", justify="right")
    table.add_column("Confidence")

    for entry in entries:
        confidence_style = {"high": "green", "medium": "yellow"}.get(entry.confidence.value, "dim")
        table.add_row(
            entry.english,
            entry.preferred_chinese,
            entry.original_chinese,
            str(entry.frequency),
            f"[{confidence_style}]{entry.confidence.value}[/{confidence_style}]",
        )

    console.print(table)


@app.command()
def stats(
    config: Path | None = typer.Option(None, "--config", "-c", help="Config file"),
) -> None:
    """Show processing statistics."""
    settings = get_settings(config)
    db = get_database(settings)

    stats_data = db.get_statistics()

    console.print(
        Panel(
            f"""
Projects: {stats_data["total_projects"]}
  - Completed: {stats_data["completed_projects"]}
  - Failed: {stats_data["failed_projects"]}

Chunks: {stats_data["total_chunks"]}
  - Translated: {stats_data["translated_chunks"]}

User terms: {stats_data["user_terms"]}
Logged errors: {stats_data["errors"]}
        """.strip(),
            title="Processing Statistics",
        )
    )


@app.command()
def logs(
    project_id: int | None = typer.Option(None, "--project", "-p", help="Filter by project"),
    level: str | None = typer.Option(None, "--level", "-l", help="Filter by level"),
    stage: str | None = typer.Option(None, "--stage", "-s", help="Filter by stage"),
    limit: int = typer.Option(50, "--limit", "-n", help="Max entries to show"),
    config: Path | None = typer.Option(None, "--config", "-c", help="Config file"),
) -> None:
    """View processing logs."""
    settings = get_settings(config)
    db = get_database(settings)

    entries = db.get_logs(level=level, stage=stage, project_id=project_id, limit=limit)
    if not entries:
        console.print("[yellow]No log entries found[/yellow]")
        return

    table = Table(title="Processing Logs")
    table.add_column("Time", style="dim")
    table.add_column("Level")
    table.add_column("Stage", style="cyan")
    table.add_column("Message")
    table.add_column("Project", justify="right")

    for entry in entries:
        lvl = entry["level"]
        level_style = {
            "DEBUG": "dim",
            "INFO": "green",
            "WARNING": "yellow",
            "ERROR": "red",
        }.get(lvl, "white")

        table.add_row(
            str(entry["created_at"])[:19],
            f"[{level_style}]{lvl}[/{level_style}]",
            entry["stage"] or "",
            (entry["message"] or "")[:80],
            str(entry["project_id"] or ""),
        )

    console.print(table)


def main() -> None:
    """Entry point for CLI."""
    app()


if __name__ == "__main__":
    main()
