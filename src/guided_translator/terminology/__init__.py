"""
Glossary handling for guided-translator.

Provides:
- CSV glossary ingestion with header heuristics
- Glossary validation and statistics
- Longest-first term matching and coverage
- User term preferences merged over the base glossary
"""

from guided_translator.terminology.glossary import (
    GlossaryParseResult,
    ValidationResult,
    get_glossary_stats,
    load_glossary,
    parse_glossary_csv,
    validate_glossary,
)
from guided_translator.terminology.matcher import (
    GlossaryCoverage,
    TermIndex,
    calculate_coverage,
    find_relevant_terms,
    identify_terms_in_text,
)
from guided_translator.terminology.user_glossary import (
    UserGlossary,
    calculate_confidence,
    export_user_glossary_csv,
    merge_with_base_glossary,
)

__all__ = [
    "GlossaryParseResult",
    "ValidationResult",
    "parse_glossary_csv",
    "validate_glossary",
    "load_glossary",
    "get_glossary_stats",
    "TermIndex",
    "GlossaryCoverage",
    "identify_terms_in_text",
    "find_relevant_terms",
    "calculate_coverage",
    "UserGlossary",
    "calculate_confidence",
    "merge_with_base_glossary",
    "export_user_glossary_csv",
]
