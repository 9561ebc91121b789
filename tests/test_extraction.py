from pathlib import Path
from types import SimpleNamespace

import fitz
import pytest

from guided_translator.extraction import (
    PageText,
    PyMuPDFLayoutExtractor,
    TextFileExtractor,
    VisionExtractor,
    extract_structured_content,
    select_extractor,
)
from guided_translator.extraction.base import (
    build_document_structure,
    detect_language,
    extract_standard_title,
)
from guided_translator.extraction.pymupdf import spans_to_runs


def make_pdf(path, pages):
    """Write a PDF where each page is a list of (y, text, fontsize)."""
    doc = fitz.open()
    for lines in pages:
        page = doc.new_page()
        for y, text, size in lines:
            page.insert_text((72, y), text, fontsize=size)
    doc.save(path)
    doc.close()
    return path


def test_standard_title_detection():
    assert extract_standard_title("Foreword\nEN 13001-3-1 Cranes", "x.pdf") == "EN 13001-3-1"
    assert extract_standard_title("Quality per ISO 9001:2015.", "x.pdf") == "ISO 9001:2015"
    assert extract_standard_title("No code here", "manual_v2.pdf") == "manual_v2"


def test_standard_title_only_searches_the_start():
    text = "x" * 1000 + " EN 13001"

    assert extract_standard_title(text, "doc.pdf") == "doc"


def test_language_detection():
    assert detect_language("The crane shall be designed for safe operation.") == "en"
    assert detect_language("起重机应设计为安全运行。") == "zh"
    assert detect_language("") == "unknown"


def test_document_structure_from_pages():
    pages = [
        PageText(content="EN 1234 First page", page_number=0),
        PageText(content="", page_number=1, error="Vision extraction failed: boom"),
        PageText(content="Third page", page_number=2),
    ]

    structure = build_document_structure(pages, "doc.pdf")

    assert structure.text == "EN 1234 First page\n\nThird page"
    assert structure.pages == 3
    assert structure.word_count == 6
    assert structure.title == "EN 1234"
    assert structure.page_errors == {1: "Vision extraction failed: boom"}
    assert structure.reading_time_minutes == 1


@pytest.mark.asyncio
async def test_markdown_file_is_read_directly(tmp_path):
    path = tmp_path / "guide.md"
    path.write_text("# ISO 9001:2015\n\nQuality management systems.\n", encoding="utf-8")

    structure = await extract_structured_content(path)

    assert structure.text == "# ISO 9001:2015\n\nQuality management systems."
    assert structure.pages == 1
    assert structure.word_count == 6
    assert structure.language == "en"
    assert structure.title == "ISO 9001:2015"


@pytest.mark.asyncio
async def test_text_file_page_count_from_words(tmp_path):
    path = tmp_path / "long.txt"
    path.write_text(" ".join(["word"] * 1200), encoding="utf-8")

    structure = await extract_structured_content(path)

    assert structure.pages == 3


@pytest.mark.asyncio
async def test_text_extractor_falls_back_on_bad_utf8(tmp_path):
    path = tmp_path / "legacy.txt"
    path.write_bytes("café".encode("cp1252"))

    page = await TextFileExtractor().extract_page(path, 0)

    assert page.content == "café"
    assert page.metadata["encoding"] == "cp1252"


@pytest.mark.asyncio
async def test_missing_and_unsupported_files(tmp_path):
    with pytest.raises(FileNotFoundError):
        await extract_structured_content(tmp_path / "missing.pdf")

    other = tmp_path / "data.docx"
    other.write_bytes(b"x")
    with pytest.raises(ValueError, match="Unsupported"):
        await extract_structured_content(other)


def test_select_extractor():
    vision = VisionExtractor(api_key="k", client=object())

    assert isinstance(select_extractor(Path("a.pdf")), PyMuPDFLayoutExtractor)
    assert select_extractor(Path("a.pdf"), vision) is vision
    assert isinstance(select_extractor(Path("a.md"), vision), TextFileExtractor)


def test_spans_to_runs_uses_baseline_and_font_size():
    page_dict = {
        "blocks": [
            {"type": 1},
            {
                "type": 0,
                "lines": [
                    {
                        "spans": [
                            {"text": "Hello", "bbox": (10, 20, 40, 32), "origin": (10, 30), "size": 12},
                            {"text": "   ", "bbox": (40, 20, 50, 32), "origin": (40, 30), "size": 12},
                        ]
                    }
                ],
            },
        ]
    }

    runs = spans_to_runs(page_dict)

    assert len(runs) == 1
    assert (runs[0].x, runs[0].y, runs[0].width, runs[0].height) == (10.0, 30.0, 30.0, 12.0)


@pytest.mark.asyncio
async def test_pdf_layout_extraction(tmp_path):
    path = make_pdf(
        tmp_path / "standard.pdf",
        [
            [(72, "EN 13001 Scope", 18), (100, "The equipment shall comply.", 11)],
            [(72, "Second page text.", 11)],
        ],
    )
    progress = []

    structure = await extract_structured_content(
        path, progress_callback=lambda c, t: progress.append((c, t))
    )

    assert "## EN 13001 Scope" in structure.text
    assert "The equipment shall comply." in structure.text
    assert structure.text.endswith("Second page text.")
    assert structure.pages == 2
    assert structure.title == "EN 13001"
    assert progress == [(1, 2), (2, 2)]


@pytest.mark.asyncio
async def test_layout_extractor_single_page(tmp_path):
    path = make_pdf(tmp_path / "two.pdf", [[(72, "first", 11)], [(72, "second", 11)]])
    extractor = PyMuPDFLayoutExtractor()

    page = await extractor.extract_page(path, 1)

    assert extractor.page_count(path) == 2
    assert [run.text for run in extractor.page_runs(path, 0)] == ["first"]
    assert page.content == "second"
    assert page.page_number == 1
    assert page.metadata == {"runs": 1}


class FakeVisionClient:
    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.requests = []
        self.chat = SimpleNamespace(completions=self)

    async def create(self, **kwargs):
        self.requests.append(kwargs)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        message = SimpleNamespace(content=outcome)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


@pytest.mark.asyncio
async def test_vision_failure_leaves_page_empty_and_continues(tmp_path, recording_sleep):
    path = make_pdf(tmp_path / "scan.pdf", [[(72, "one", 11)], [(72, "two", 11)]])
    client = FakeVisionClient([RuntimeError("quota"), "# Page two"])
    vision = VisionExtractor(api_key="k", client=client, page_delay=1.5, sleep=recording_sleep)

    pages = await vision.extract_document(path)

    assert pages[0].is_empty
    assert pages[0].error == "Vision extraction failed: quota"
    assert pages[1].content == "# Page two"
    assert not pages[1].failed
    assert recording_sleep.delays == [1.5]
    image_part = client.requests[1]["messages"][0]["content"][1]
    assert image_part["image_url"]["url"].startswith("data:image/png;base64,")


@pytest.mark.asyncio
async def test_vision_reads_image_files(tmp_path, recording_sleep):
    path = tmp_path / "page.png"
    path.write_bytes(b"\x89PNG fake")
    vision = VisionExtractor(api_key="k", client=FakeVisionClient(["text"]), sleep=recording_sleep)

    pages = await vision.extract_document(path)

    assert [p.content for p in pages] == ["text"]
    assert recording_sleep.delays == []
    assert vision.can_handle(path)
    assert not vision.can_handle(tmp_path / "notes.md")
