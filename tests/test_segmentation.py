import pytest

from guided_translator.models import Chunk, ChunkMetadata, ChunkType, TranslatedChunk
from guided_translator.segmentation import (
    classify_chunk,
    compute_heading_signals,
    estimate_tokens,
    get_chunk_stats,
    heading_score,
    reassemble_chunks,
    split_into_chunks,
    split_into_sentences,
)


def test_estimate_tokens_rounds_up():
    assert estimate_tokens("") == 0
    assert estimate_tokens("abcd") == 1
    assert estimate_tokens("abcde") == 2


def test_empty_text_has_no_chunks():
    assert split_into_chunks("") == []
    assert split_into_chunks("\n\n   \n\n") == []


def test_budget_below_one_is_rejected():
    with pytest.raises(ValueError):
        split_into_chunks("text", max_tokens=0)


def test_small_paragraphs_are_packed_together():
    chunks = split_into_chunks("First para.\n\nSecond para.", max_tokens=100)

    assert len(chunks) == 1
    assert chunks[0].text == "First para.\n\nSecond para."
    assert chunks[0].id == "chunk_0"
    assert chunks[0].position == 0


def test_paragraphs_split_when_budget_is_reached():
    paragraphs = ["x" * 40, "y" * 40, "z" * 40]

    chunks = split_into_chunks("\n\n".join(paragraphs), max_tokens=15)

    assert [chunk.text for chunk in chunks] == paragraphs
    assert [chunk.id for chunk in chunks] == ["chunk_0", "chunk_1", "chunk_2"]
    assert [chunk.position for chunk in chunks] == [0, 1, 2]


def test_oversized_paragraph_broken_at_sentences():
    chunks = split_into_chunks("Alpha one. Beta two. Gamma three.", max_tokens=5)

    assert [chunk.text for chunk in chunks] == ["Alpha one. Beta two.", "Gamma three."]


def test_single_long_sentence_may_exceed_budget():
    sentence = " ".join(["word"] * 100)

    chunks = split_into_chunks(sentence, max_tokens=10)

    assert len(chunks) == 1
    assert estimate_tokens(chunks[0].text) > 10


def test_chunks_stay_within_budget_unless_single_sentence():
    text = "\n\n".join(
        f"Paragraph {i} has a sentence. It also has another one here." for i in range(20)
    )

    chunks = split_into_chunks(text, max_tokens=40)

    for chunk in chunks:
        assert estimate_tokens(chunk.text) <= 40 or len(split_into_sentences(chunk.text)) == 1


@pytest.mark.parametrize("max_tokens", [10, 30, 800])
def test_split_then_reassemble_keeps_paragraphs(max_tokens):
    paragraphs = [
        "# Scope",
        "This part covers the crane design.",
        "Introduction",
        "Loads are combined per clause 4.",
        "- first item\n- second item",
    ]

    chunks = split_into_chunks("\n\n".join(paragraphs), max_tokens=max_tokens)
    rebuilt = reassemble_chunks(chunks, translated=False)

    assert [p.strip() for p in rebuilt.split("\n\n") if p.strip()] == paragraphs
    assert chunks[0].type == ChunkType.HEADING


def test_small_budget_yields_heading_chunks_between_paragraphs():
    text = (
        "# Scope\n\nThis part covers the crane design.\n\n"
        "Introduction\n\nLoads are combined per clause 4."
    )

    chunks = split_into_chunks(text, max_tokens=10)

    assert [c.type for c in chunks] == [
        ChunkType.HEADING,
        ChunkType.PARAGRAPH,
        ChunkType.HEADING,
        ChunkType.PARAGRAPH,
    ]


def test_split_into_sentences_keeps_punctuation():
    assert split_into_sentences("Stop! Go? Yes. no") == ["Stop!", "Go?", "Yes.", "no"]


def test_chunk_stats():
    chunks = split_into_chunks("# Scope\n\n" + "x" * 400, max_tokens=50)

    stats = get_chunk_stats(chunks)

    assert stats["total_chunks"] == 2
    assert stats["types"]["heading"] == 1
    assert stats["types"]["paragraph"] == 1
    assert stats["total_tokens"] == sum(estimate_tokens(c.text) for c in chunks)


def test_chunk_stats_empty():
    assert get_chunk_stats([])["avg_tokens_per_chunk"] == 0


def test_markdown_heading_level_and_text():
    chunk_type, metadata = classify_chunk("### Requirements\nBody text follows.")

    assert chunk_type == ChunkType.HEADING
    assert metadata == ChunkMetadata(level=3, heading="Requirements")


def test_explicit_section_is_heading():
    chunk_type, metadata = classify_chunk("Annex A normative references")

    assert chunk_type == ChunkType.HEADING
    assert metadata.level == 2
    assert metadata.heading == "Annex A normative references"


def test_numbered_heading():
    assert classify_chunk("4.2 Safety requirements")[0] == ChunkType.HEADING


def test_short_capitalized_line_is_heading():
    assert classify_chunk("Scope")[0] == ChunkType.HEADING


def test_numbered_list_with_capital_scores_as_heading():
    # First-line heading scoring runs before list detection
    assert classify_chunk("1. First item\n2. Second item")[0] == ChunkType.HEADING


def test_list_items():
    assert classify_chunk("- apple\n- pear")[0] == ChunkType.LIST
    assert classify_chunk("• bullet point")[0] == ChunkType.LIST
    assert classify_chunk("1) first item")[0] == ChunkType.LIST


def test_pipe_table():
    table = "| a | b |\n| - | - |\n| 1 | 2 |"

    assert classify_chunk(table) == (ChunkType.TABLE, ChunkMetadata())


def test_too_few_pipe_lines_is_paragraph():
    assert classify_chunk("a | b | c\nd | e | f")[0] == ChunkType.PARAGRAPH


def test_sentence_is_paragraph():
    assert classify_chunk("The machine shall stop.")[0] == ChunkType.PARAGRAPH


def test_long_capitalized_line_is_paragraph():
    line = "A" + " word" * 30

    assert classify_chunk(line)[0] == ChunkType.PARAGRAPH


def test_heading_score_weights():
    signals = compute_heading_signals("# Chapter 1 Overview")

    assert signals.markdown
    assert not signals.explicit
    assert heading_score(signals) == 5
    assert heading_score(compute_heading_signals("Chapter 1 overview")) == 7


def _chunk(text, position, chunk_type=ChunkType.PARAGRAPH):
    return Chunk(id=f"chunk_{position}", text=text, position=position, type=chunk_type)


def test_reassembly_spaces_headings():
    chunks = [_chunk("## T", 0, ChunkType.HEADING), _chunk("p", 1)]

    assert reassemble_chunks(chunks) == "## T\n\n\np"


def test_reassembly_uses_translations():
    source = _chunk("Hello", 0)
    translated = TranslatedChunk.from_chunk(_chunk("World", 1), "世界")

    assert reassemble_chunks([source, translated]) == "Hello\n\n世界"
    assert reassemble_chunks([source, translated], translated=False) == "Hello\n\nWorld"
