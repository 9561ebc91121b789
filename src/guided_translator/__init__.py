"""
guided-translator: glossary-guided translation of technical documents.

This package provides tools for:
- Layout reconstruction of PDF pages from positioned text
- Token-bounded, type-classified chunking
- Glossary term matching and mandated-term prompts
- Sequential translation with API key rotation and backoff
"""

__version__ = "0.1.0"

from guided_translator.config import Settings, load_config
from guided_translator.database import Database, Project, ProjectStatus, Stage
from guided_translator.exceptions import (
    GlossaryError,
    GlossaryValidationError,
    GuidedTranslatorError,
    ProviderError,
    RateLimitError,
    RetryExhaustedError,
)
from guided_translator.models import (
    Chunk,
    ChunkMetadata,
    ChunkType,
    GlossaryEntry,
    TermMatch,
    TranslatedChunk,
)
from guided_translator.segmentation import reassemble_chunks, split_into_chunks
from guided_translator.terminology import identify_terms_in_text, load_glossary
from guided_translator.translation import TranslationOrchestrator, TranslationPipeline

__all__ = [
    # Config
    "Settings",
    "load_config",
    # Database
    "Database",
    "Project",
    "ProjectStatus",
    "Stage",
    # Errors
    "GuidedTranslatorError",
    "GlossaryError",
    "GlossaryValidationError",
    "ProviderError",
    "RateLimitError",
    "RetryExhaustedError",
    # Models
    "Chunk",
    "ChunkMetadata",
    "ChunkType",
    "GlossaryEntry",
    "TermMatch",
    "TranslatedChunk",
    # Core operations
    "split_into_chunks",
    "reassemble_chunks",
    "load_glossary",
    "identify_terms_in_text",
    "TranslationOrchestrator",
    "TranslationPipeline",
]
