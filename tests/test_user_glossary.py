import pytest

from guided_translator.database import Database
from guided_translator.models import GlossaryEntry, TermConfidence, UserGlossaryEntry
from guided_translator.terminology import (
    UserGlossary,
    calculate_confidence,
    merge_with_base_glossary,
    parse_glossary_csv,
)


@pytest.fixture
def db(tmp_path):
    database = Database(tmp_path / "terms.db")
    yield database
    database.close()


@pytest.fixture
def user_glossary(db):
    return UserGlossary(db)


def preference(english, preferred, original=""):
    return UserGlossaryEntry(english=english, original_chinese=original, preferred_chinese=preferred)


def test_confidence_follows_frequency():
    assert calculate_confidence(1) == TermConfidence.LOW
    assert calculate_confidence(2) == TermConfidence.MEDIUM
    assert calculate_confidence(4) == TermConfidence.MEDIUM
    assert calculate_confidence(5) == TermConfidence.HIGH


def test_merge_overrides_and_appends():
    base = [
        GlossaryEntry("Valve", "阀门", source="terms.csv"),
        GlossaryEntry("pump", "泵", source="terms.csv"),
        GlossaryEntry("hook", "吊钩"),
    ]
    user_entries = [
        preference("valve", "阀", original="阀门"),
        preference("HOOK", "钩"),
        preference("girder", "主梁"),
    ]

    merged = merge_with_base_glossary(base, user_entries)

    assert merged == [
        GlossaryEntry("Valve", "阀", source="terms.csv (User Modified)"),
        GlossaryEntry("pump", "泵", source="terms.csv"),
        GlossaryEntry("hook", "钩", source="User Modified"),
        GlossaryEntry("girder", "主梁", source="User Added"),
    ]


def test_merge_leaves_inputs_untouched():
    base = [GlossaryEntry("valve", "阀门", source="terms.csv")]
    user_entries = [preference("valve", "阀")]

    merge_with_base_glossary(base, user_entries)

    assert base == [GlossaryEntry("valve", "阀门", source="terms.csv")]
    assert user_entries[0].preferred_chinese == "阀"


def test_merge_without_preferences_is_the_base():
    base = [GlossaryEntry("valve", "阀门")]

    assert merge_with_base_glossary(base, []) == base


def test_new_preference_starts_low(user_glossary, db):
    entry = user_glossary.add_preference(
        " valve ", "阀门", "阀", chunk_position=3, context="Close the valve."
    )

    assert (entry.english, entry.preferred_chinese) == ("valve", "阀")
    assert entry.frequency == 1
    assert entry.confidence == TermConfidence.LOW
    assert db.get_user_term("VALVE") == entry


def test_repeated_preference_raises_frequency(user_glossary):
    user_glossary.add_preference("valve", "阀门", "阀", chunk_position=3, context="Close the valve.")
    user_glossary.add_preference("Valve", "阀", "阀体", chunk_position=9, context="Close the valve.")
    entry = user_glossary.add_preference("valve", "阀体", "阀体", context="Open the valve.")

    assert entry.frequency == 3
    assert entry.confidence == TermConfidence.MEDIUM
    assert entry.preferred_chinese == "阀体"
    assert entry.original_chinese == "阀门"
    assert entry.first_seen_chunk == 3
    assert entry.contexts == ["Close the valve.", "Open the valve."]
    assert len(user_glossary.entries()) == 1


def test_empty_preference_is_rejected(user_glossary):
    with pytest.raises(ValueError):
        user_glossary.add_preference("valve", "阀门", "  ")
    with pytest.raises(ValueError):
        user_glossary.add_preference("", "阀门", "阀")

    assert user_glossary.entries() == []


def test_merge_uses_stored_preferences(user_glossary):
    user_glossary.add_preference("valve", "阀门", "阀")

    merged = user_glossary.merge([GlossaryEntry("valve", "阀门", source="terms.csv")])

    assert merged == [GlossaryEntry("valve", "阀", source="terms.csv (User Modified)")]


def test_export_loads_back_as_a_glossary(user_glossary, tmp_path):
    user_glossary.add_preference("valve", "阀门", "阀")
    user_glossary.add_preference("pump", "", "泵, 离心")
    target = tmp_path / "export" / "user_terms.csv"

    content = user_glossary.export_csv(target)

    assert content.splitlines()[0] == "English,Chinese,Source,Frequency,Confidence"
    assert target.read_text(encoding="utf-8") == content
    result = parse_glossary_csv(target)
    assert result.entries == [
        GlossaryEntry("valve", "阀", source="User Edit"),
        GlossaryEntry("pump", "泵, 离心", source="User Edit"),
    ]


def test_clear_removes_everything(user_glossary):
    user_glossary.add_preference("valve", "阀门", "阀")
    user_glossary.add_preference("pump", "泵", "水泵")

    assert user_glossary.clear() == 2
    assert user_glossary.entries() == []
    assert user_glossary.clear() == 0
