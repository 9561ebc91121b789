"""
Prompt building for glossary-constrained translation.
"""

from __future__ import annotations

from collections.abc import Sequence

from guided_translator.models import GlossaryEntry

LANGUAGE_NAMES = {
    "en": "English",
    "zh": "Chinese",
    "zh-cn": "Simplified Chinese",
    "zh-tw": "Traditional Chinese",
    "ja": "Japanese",
    "fr": "French",
    "de": "German",
}

NO_TERMS_LINE = "None applicable for this chunk."


def language_name(code: str) -> str:
    return LANGUAGE_NAMES.get(code.lower(), code)


def build_system_prompt(source_lang: str = "en", target_lang: str = "zh") -> str:
    """System message for a technical-standards translator."""
    source_name = language_name(source_lang)
    target_name = language_name(target_lang)

    return f"""You are a professional technical translator specializing in technical standards.
Your task is to translate text from {source_name} to {target_name} while:

1. Using the mandated translation for every glossary term that appears in the text
2. Translating other terms with standard technical {target_name} terminology
3. Preserving headings, list formats, numbering, tables and special characters
4. Keeping a formal, objective and precise technical register

Provide only the translation without any explanations or notes."""


def format_terms_table(relevant_terms: Sequence[GlossaryEntry], target_lang: str = "zh") -> str:
    """Markdown table of mandated translations, or a placeholder line when empty."""
    target_name = language_name(target_lang)
    header = f"| English Term | Mandated {target_name} Translation |\n| :--- | :--- |"
    if not relevant_terms:
        return f"{header}\n{NO_TERMS_LINE}"

    rows = "\n".join(f"| {entry.english} | {entry.chinese} |" for entry in relevant_terms)
    return f"{header}\n{rows}"


def build_translation_prompt(
    text: str,
    relevant_terms: Sequence[GlossaryEntry],
    source_lang: str = "en",
    target_lang: str = "zh",
) -> str:
    """
    Build the user prompt for one chunk.

    Args:
        text: Chunk text to translate.
        relevant_terms: Glossary entries that occur in the chunk.
        source_lang: Source language code.
        target_lang: Target language code.

    Returns:
        Prompt with the mandated-terms table, the rules and the source text.
    """
    source_name = language_name(source_lang)
    target_name = language_name(target_lang)

    prompt_parts = [
        f"Translate the following {source_name} text to {target_name}.",
        "This text is a segment from a technical standard. The glossary below "
        "must be followed for consistency with related standards.",
        f"\n## Glossary\n{format_terms_table(relevant_terms, target_lang)}",
        "\n## Rules\n"
        f"1. MANDATORY: Use the exact {target_name} translation from the glossary "
        "for every matching term.\n"
        "2. Preserve structure: headings, list markers, numbering and table pipes.\n"
        "3. Output only the translation, with no commentary.",
        f"\n## Source Text\n{text}",
        f"\n## Translation\nProvide only the {target_name} translation below:",
    ]

    return "\n".join(prompt_parts)
