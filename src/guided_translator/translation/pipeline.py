"""
LangGraph-based document translation pipeline.

Runs one document through:
- init: validate the glossary and create the project record
- extract: reconstruct the document text
- segment: split into typed chunks and store them
- translate: glossary-constrained sequential translation
- finalize: store translations and coverage, write the Markdown export
"""

from __future__ import annotations

import asyncio
import operator
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Annotated, Any, TypedDict

from langgraph.checkpoint.memory import MemorySaver
from langgraph.graph import END, StateGraph

from guided_translator.database import Database, Project, ProjectStatus, Stage
from guided_translator.exceptions import GlossaryValidationError
from guided_translator.export.markdown import MarkdownExporter
from guided_translator.extraction.base import PageExtractor
from guided_translator.extraction.document import extract_structured_content
from guided_translator.extraction.vision import VisionExtractor
from guided_translator.llm.base import LLMProvider
from guided_translator.llm.factory import LLMProviderType, create_llm_provider
from guided_translator.llm.retry import RetryEvent, SleepFunc, StatusCallback
from guided_translator.models import Chunk, GlossaryEntry
from guided_translator.segmentation.chunker import split_into_chunks
from guided_translator.terminology.glossary import load_glossary, validate_glossary
from guided_translator.terminology.user_glossary import UserGlossary, merge_with_base_glossary
from guided_translator.translation.orchestrator import TranslationOrchestrator
from guided_translator.translation.translator import ChunkTranslator


class PipelineStage(str, Enum):
    """Pipeline processing stages."""

    INIT = "init"
    EXTRACT = "extract"
    SEGMENT = "segment"
    TRANSLATE = "translate"
    FINALIZE = "finalize"
    COMPLETE = "complete"
    ERROR = "error"


class PipelineState(TypedDict):
    """State for the translation pipeline."""

    # Inputs
    document_path: str
    title: str
    glossary: list[dict[str, str]]
    user_terms: int
    source_lang: str
    target_lang: str

    # Progress tracking
    project_id: int | None
    current_stage: PipelineStage
    text: str
    standard_title: str
    total_pages: int
    total_chunks: int

    # Results
    translated_chunks: int
    failed_chunks: int
    coverage: int
    output_path: str | None

    # Error handling
    errors: Annotated[list[dict[str, Any]], operator.add]


@dataclass
class ProgressInfo:
    """Progress information for callbacks."""

    stage: str  # Current stage name (extract, segment, translate, ...)
    stage_display: str  # Human-readable stage description
    current: int | None = None
    total: int | None = None
    detail: str | None = None


ProgressCallback = Callable[[ProgressInfo], None] | None


@dataclass
class PipelineConfig:
    """Configuration for the translation pipeline."""

    api_keys: list[str] = field(default_factory=list)
    provider: LLMProviderType | str = LLMProviderType.OPENROUTER
    model: str = ""
    base_url: str = ""
    source_lang: str = "en"
    target_lang: str = "zh"
    temperature: float = 0.3
    max_tokens: int = 4096
    timeout: float = 120.0

    # Segmentation and pacing
    chunk_max_tokens: int = 800
    inter_call_delay: float = 2.0
    base_delay: float = 3.0
    max_retries: int = 5

    # Vision extraction (PDFs only, when a key is set)
    vision_api_key: str = ""
    vision_model: str = "gemini-1.5-flash"
    vision_base_url: str = "https://generativelanguage.googleapis.com/v1beta/openai/"
    image_dpi: int = 150
    page_delay: float = 1.0

    # Apply stored user term preferences over the run's glossary
    apply_user_glossary: bool = True

    # Export
    output_dir: Path | None = None


class TranslationPipeline:
    """
    LangGraph-based pipeline for glossary-guided document translation.

    The provider's key pool lives as long as the pipeline, so a rotation in
    one run carries over to the next.
    """

    def __init__(
        self,
        db: Database,
        config: PipelineConfig,
        provider: LLMProvider | None = None,
        vision: PageExtractor | None = None,
        sleep: SleepFunc = asyncio.sleep,
    ):
        """
        Initialize translation pipeline.

        Args:
            db: Database instance.
            config: Pipeline configuration.
            provider: Translation provider; built from the config when omitted.
            vision: Vision extractor; built from the config when a vision
                key is set.
            sleep: Coroutine used for pacing and backoff waits.
        """
        self.db = db
        self.config = config
        self._sleep = sleep

        self.provider = provider or create_llm_provider(
            config.provider,
            api_keys=config.api_keys,
            model=config.model or None,
            base_url=config.base_url or None,
            timeout=config.timeout,
        )

        self.vision = vision
        if self.vision is None and config.vision_api_key:
            self.vision = VisionExtractor(
                api_key=config.vision_api_key,
                model=config.vision_model,
                base_url=config.vision_base_url,
                dpi=config.image_dpi,
                page_delay=config.page_delay,
                sleep=sleep,
            )

        self._progress_callback: ProgressCallback = None
        self._status_callback: StatusCallback = None
        self._graph = self._build_graph()
        self._checkpointer = MemorySaver()

    def _build_graph(self) -> StateGraph:
        """Build the LangGraph workflow."""
        workflow = StateGraph(PipelineState)

        workflow.add_node("init", self._node_init)
        workflow.add_node("extract", self._node_extract)
        workflow.add_node("segment", self._node_segment)
        workflow.add_node("translate", self._node_translate)
        workflow.add_node("finalize", self._node_finalize)
        workflow.add_node("error", self._node_error)

        workflow.set_entry_point("init")

        for node, next_node in [
            ("init", "extract"),
            ("extract", "segment"),
            ("segment", "translate"),
            ("translate", "finalize"),
        ]:
            workflow.add_conditional_edges(
                node,
                self._route_or_error,
                {"next": next_node, "error": "error"},
            )

        workflow.add_edge("finalize", END)
        workflow.add_edge("error", END)

        return workflow

    def _route_or_error(self, state: PipelineState) -> str:
        if state["current_stage"] == PipelineStage.ERROR:
            return "error"
        return "next"

    def _report_progress(
        self,
        stage: str,
        stage_display: str,
        current: int | None = None,
        total: int | None = None,
        detail: str | None = None,
    ) -> None:
        if self._progress_callback:
            self._progress_callback(
                ProgressInfo(
                    stage=stage,
                    stage_display=stage_display,
                    current=current,
                    total=total,
                    detail=detail,
                )
            )

    def _fail(self, stage: str, error: Exception | str) -> dict[str, Any]:
        return {
            "current_stage": PipelineStage.ERROR,
            "errors": [{"stage": stage, "error": str(error)}],
        }

    async def _node_init(self, state: PipelineState) -> dict[str, Any]:
        """Validate the glossary and create the project."""
        entries = [GlossaryEntry(**entry) for entry in state["glossary"]]
        validation = validate_glossary(entries)
        if not validation.is_valid:
            return self._fail("init", "; ".join(validation.errors))

        document_path = Path(state["document_path"])
        project = Project(
            title=state["title"] or document_path.stem,
            file_name=document_path.name,
            status=ProjectStatus.EXTRACTING,
        )
        project_id = self.db.save_project(project)

        self.db.log(
            level="INFO",
            stage=Stage.INIT.value,
            message=f"Starting pipeline for {document_path.name}",
            project_id=project_id,
            context={"glossary_terms": len(entries), "user_terms": state["user_terms"]},
        )
        for warning in validation.warnings:
            self.db.log("WARNING", Stage.INIT.value, warning, project_id=project_id)

        return {"project_id": project_id, "current_stage": PipelineStage.EXTRACT}

    async def _node_extract(self, state: PipelineState) -> dict[str, Any]:
        """Reconstruct the document text."""
        project_id = state["project_id"]

        def on_page(current: int, total: int) -> None:
            self._report_progress("extract", "Extracting pages", current, total)

        try:
            structure = await extract_structured_content(
                state["document_path"],
                vision=self.vision,
                progress_callback=on_page,
            )
        except Exception as e:
            return self._fail("extract", e)

        for page_number, error in structure.page_errors.items():
            self.db.log(
                level="WARNING",
                stage=Stage.EXTRACT.value,
                message=f"Page {page_number + 1}: {error}",
                project_id=project_id,
            )

        project = self.db.get_project(project_id)
        if project:
            project.standard_title = structure.title
            project.status = ProjectStatus.SEGMENTING
            self.db.save_project(project)

        self.db.log(
            level="INFO",
            stage=Stage.EXTRACT.value,
            message=f"Extracted {structure.word_count} words from {structure.pages} pages",
            project_id=project_id,
            context={"language": structure.language, "title": structure.title},
        )

        return {
            "text": structure.text,
            "standard_title": structure.title,
            "total_pages": structure.pages,
            "current_stage": PipelineStage.SEGMENT,
        }

    async def _node_segment(self, state: PipelineState) -> dict[str, Any]:
        """Split the text into chunks and store them."""
        project_id = state["project_id"]
        chunks = split_into_chunks(state["text"], self.config.chunk_max_tokens)
        if not chunks:
            return self._fail("segment", "No text extracted from document")

        self.db.save_chunks(project_id, chunks)
        self.db.update_project_progress(project_id, 0, 0, total_chunks=len(chunks))
        self.db.log(
            level="INFO",
            stage=Stage.SEGMENT.value,
            message=f"Created {len(chunks)} chunks",
            project_id=project_id,
        )
        self._report_progress("segment", "Segmenting", detail=f"{len(chunks)} chunks")

        return {"total_chunks": len(chunks), "current_stage": PipelineStage.TRANSLATE}

    async def _node_translate(self, state: PipelineState) -> dict[str, Any]:
        """Translate every stored chunk."""
        project_id = state["project_id"]
        glossary = [GlossaryEntry(**entry) for entry in state["glossary"]]
        chunks = [c for c in self.db.get_project_chunks(project_id) if isinstance(c, Chunk)]
        self.db.update_project_status(project_id, ProjectStatus.TRANSLATING)

        def log_callback(level: str, message: str, context: dict[str, Any]) -> None:
            self.db.log(level, Stage.TRANSLATE.value, message, project_id=project_id, context=context)

        def on_status(event: RetryEvent) -> None:
            self.db.log(
                level="WARNING",
                stage=Stage.TRANSLATE.value,
                message=event.message,
                project_id=project_id,
                context={"kind": event.kind, "key_index": event.key_index, "delay": event.delay},
            )
            if self._status_callback:
                self._status_callback(event)

        def on_progress(current: int, total: int) -> None:
            self._report_progress("translate", "Translating chunks", current, total)

        translator = ChunkTranslator(
            self.provider,
            source_lang=state["source_lang"],
            target_lang=state["target_lang"],
            temperature=self.config.temperature,
            max_tokens=self.config.max_tokens,
            base_delay=self.config.base_delay,
            max_retries=self.config.max_retries,
            sleep=self._sleep,
            log_callback=log_callback,
        )
        orchestrator = TranslationOrchestrator(
            translator,
            inter_call_delay=self.config.inter_call_delay,
            sleep=self._sleep,
        )

        try:
            result = await orchestrator.translate_chunks(
                chunks,
                glossary,
                progress_callback=on_progress,
                status_callback=on_status,
            )
        except Exception as e:
            return self._fail("translate", e)

        self.db.save_chunks(project_id, result.chunks)
        self.db.update_project_progress(
            project_id,
            translated_chunks=result.translated_count,
            failed_chunks=result.failed_count,
            coverage=result.coverage.percentage,
        )
        self.db.log(
            level="INFO",
            stage=Stage.TRANSLATE.value,
            message=(
                f"Translated {result.translated_count}/{len(result.chunks)} chunks, "
                f"glossary coverage {result.coverage.percentage}%"
            ),
            project_id=project_id,
            context={"failed": result.failed_count, "matched_terms": result.coverage.matched},
        )

        return {
            "translated_chunks": result.translated_count,
            "failed_chunks": result.failed_count,
            "coverage": result.coverage.percentage,
            "current_stage": PipelineStage.FINALIZE,
        }

    async def _node_finalize(self, state: PipelineState) -> dict[str, Any]:
        """Mark the project complete and write the export."""
        project_id = state["project_id"]
        output_path: str | None = None

        try:
            if self.config.output_dir is not None:
                exporter = MarkdownExporter(self.config.output_dir, db=self.db)
                project = self.db.get_project(project_id)
                export = exporter.export_project(project, language=state["target_lang"])
                if export.success:
                    output_path = str(export.output_path)
                    self.db.log(
                        level="INFO",
                        stage=Stage.EXPORT.value,
                        message=f"Exported to {output_path}",
                        project_id=project_id,
                    )
                else:
                    self.db.log(
                        level="WARNING",
                        stage=Stage.EXPORT.value,
                        message=f"Export skipped: {export.error}",
                        project_id=project_id,
                    )
        except Exception as e:
            return self._fail("finalize", e)

        self.db.update_project_status(project_id, ProjectStatus.COMPLETED)
        self.db.log(
            level="INFO",
            stage=Stage.EXPORT.value,
            message="Project completed",
            project_id=project_id,
        )
        return {"output_path": output_path, "current_stage": PipelineStage.COMPLETE}

    async def _node_error(self, state: PipelineState) -> dict[str, Any]:
        """Handle pipeline errors."""
        project_id = state["project_id"]
        if project_id is not None:
            self.db.update_project_status(project_id, ProjectStatus.FAILED)

        for error in state.get("errors", []):
            self.db.log(
                level="ERROR",
                stage=error.get("stage", "unknown"),
                message=error.get("error", "Unknown error"),
                project_id=project_id,
            )

        return {"current_stage": PipelineStage.ERROR}

    async def process_document(
        self,
        document_path: Path | str,
        glossary_path: Path | str | None = None,
        *,
        glossary: list[GlossaryEntry] | None = None,
        title: str | None = None,
        progress_callback: ProgressCallback = None,
        status_callback: StatusCallback = None,
    ) -> PipelineState:
        """
        Translate a document.

        Args:
            document_path: Document to translate.
            glossary_path: Glossary CSV. Ignored when ``glossary`` is given.
            glossary: Preloaded glossary entries. Stored user term
                preferences are merged over either source unless
                ``apply_user_glossary`` is off.
            title: Project title; defaults to the document file name.
            progress_callback: Receives ProgressInfo updates.
            status_callback: Receives key rotation and backoff events.

        Returns:
            Final pipeline state.

        Raises:
            GlossaryValidationError: If the glossary is empty. No project is
                created in that case.
        """
        if glossary is None:
            if glossary_path is None:
                raise GlossaryValidationError(["No glossary given"])
            glossary = load_glossary(Path(glossary_path)).entries

        validation = validate_glossary(glossary)
        if not validation.is_valid:
            raise GlossaryValidationError(validation.errors, validation.warnings)

        user_terms = UserGlossary(self.db).entries() if self.config.apply_user_glossary else []
        if user_terms:
            glossary = merge_with_base_glossary(glossary, user_terms)

        self._progress_callback = progress_callback
        self._status_callback = status_callback
        self.db.new_run()

        initial_state: PipelineState = {
            "document_path": str(document_path),
            "title": title or "",
            "glossary": [
                {"english": e.english, "chinese": e.chinese, "source": e.source} for e in glossary
            ],
            "user_terms": len(user_terms),
            "source_lang": self.config.source_lang,
            "target_lang": self.config.target_lang,
            "project_id": None,
            "current_stage": PipelineStage.INIT,
            "text": "",
            "standard_title": "",
            "total_pages": 0,
            "total_chunks": 0,
            "translated_chunks": 0,
            "failed_chunks": 0,
            "coverage": 0,
            "output_path": None,
            "errors": [],
        }

        app = self._graph.compile(checkpointer=self._checkpointer)
        config = {"configurable": {"thread_id": f"run_{self.db.run_id}"}}

        final_state: dict[str, Any] = dict(initial_state)
        async for update in app.astream(initial_state, config):
            for _node_name, node_state in update.items():
                if isinstance(node_state, dict):
                    # errors is an append-only channel
                    new_errors = node_state.get("errors", [])
                    final_state.update({k: v for k, v in node_state.items() if k != "errors"})
                    final_state["errors"] = [*final_state["errors"], *new_errors]

        return final_state  # type: ignore[return-value]
