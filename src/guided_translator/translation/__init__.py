"""
Translation for guided-translator.

Provides:
- Glossary-constrained prompts
- Per-chunk translation with key rotation and backoff
- Sequential batch orchestration with coverage
- LangGraph-based document pipeline
"""

from guided_translator.translation.orchestrator import BatchResult, TranslationOrchestrator
from guided_translator.translation.pipeline import (
    PipelineConfig,
    ProgressInfo,
    TranslationPipeline,
)
from guided_translator.translation.translator import ChunkTranslator

__all__ = [
    "ChunkTranslator",
    "TranslationOrchestrator",
    "BatchResult",
    "TranslationPipeline",
    "PipelineConfig",
    "ProgressInfo",
]
