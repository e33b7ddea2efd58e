from section_router.ingest.sections import extract_sections, first_sentence, preview
from section_router.types import Section


def _body(lines: int) -> str:
    return "\n".join(f"line-{i}" for i in range(1, lines + 1))


def test_extract_sections_basic_with_preamble() -> None:
    doc = "# Title\nIntro text\n## Goals\nShip it\nFast\n## Risks\nNone yet"

    sections = extract_sections(doc)

    assert [s.heading for s in sections] == ["Preamble", "Goals", "Risks"]
    assert [s.id for s in sections] == [1, 2, 3]
    assert sections[0].body == "# Title\nIntro text"
    assert sections[1].body == "Ship it\nFast"
    assert sections[1].line_count == 2
    assert sections[2].line_count == 1


def test_whitespace_only_preamble_is_dropped() -> None:
    sections = extract_sections("\n   \n\t\n## Only\nbody")

    assert len(sections) == 1
    assert sections[0].heading == "Only"
    assert sections[0].id == 1


def test_backtick_fence_makes_headings_inert() -> None:
    doc = "## Code\n```python\n## not a heading\n```\n## Next\ntext"

    sections = extract_sections(doc)

    assert [s.heading for s in sections] == ["Code", "Next"]
    assert "## not a heading" in sections[0].body
    assert sections[0].line_count == 3


def test_tilde_fence_makes_headings_inert() -> None:
    doc = "## Code\n~~~\n## inside tilde\n~~~\n## Next\ntext"

    sections = extract_sections(doc)

    assert [s.heading for s in sections] == ["Code", "Next"]
    assert "## inside tilde" in sections[0].body


def test_fence_only_closed_by_same_family() -> None:
    doc = "## Code\n~~~\n```\n## still inside\n```\n~~~\n## Next\ntext"

    sections = extract_sections(doc)

    assert [s.heading for s in sections] == ["Code", "Next"]
    assert "## still inside" in sections[0].body


def test_unclosed_fence_swallows_remaining_headings() -> None:
    doc = "## Setup\n```bash\necho hi\n## Later\nmore\n## Even later"

    sections = extract_sections(doc)

    assert len(sections) == 1
    assert sections[0].heading == "Setup"
    assert "## Later" in sections[0].body
    assert "## Even later" in sections[0].body


def test_leading_metadata_block_is_skipped() -> None:
    doc = "---\ntitle: Plan\n## fake: yaml\n---\n## Real\nbody"

    sections = extract_sections(doc)

    assert [s.heading for s in sections] == ["Real"]


def test_unterminated_metadata_block_consumes_document() -> None:
    doc = "---\ntitle: Plan\n## Real\nbody"

    assert extract_sections(doc) == []


def test_empty_sections_between_headings_are_kept() -> None:
    sections = extract_sections("## First\n## Second\ncontent")

    assert [s.heading for s in sections] == ["First", "Second"]
    assert sections[0].body == ""
    assert sections[0].line_count == 0


def test_trailing_empty_section_is_kept() -> None:
    sections = extract_sections("## First\ncontent\n## Last")

    assert [s.heading for s in sections] == ["First", "Last"]
    assert sections[1].line_count == 0


def test_heading_text_is_trimmed_and_subheadings_stay_in_body() -> None:
    sections = extract_sections("   ##   Indented heading  \n### Detail\ntext")

    assert len(sections) == 1
    assert sections[0].heading == "Indented heading"
    assert sections[0].body == "### Detail\ntext"


def test_section_count_matches_headings_plus_preamble() -> None:
    doc = "Preface\n## A\n```\n## B\n```\n## C\n~~~\n## D\n~~~\n## E\n"

    sections = extract_sections(doc)

    # Three headings outside fences, plus the non-blank preamble.
    assert len(sections) == 4
    assert [s.heading for s in sections] == ["Preamble", "A", "C", "E"]


def test_blank_lines_count_toward_line_count() -> None:
    sections = extract_sections("## A\n\nx\n\n## B\ny")

    assert sections[0].line_count == 3


def test_empty_document_has_no_sections() -> None:
    assert extract_sections("") == []


def test_preview_of_100_lines_has_no_omission_marker() -> None:
    section = Section(id=1, heading="A", body=_body(100), line_count=100)

    text = preview(section)

    assert "omitted" not in text
    assert text.split("\n") == [f"line-{i}" for i in range(1, 51)]


def test_preview_of_101_lines_reports_omitted_count() -> None:
    section = Section(id=1, heading="A", body=_body(101), line_count=101)

    text = preview(section)
    lines = text.split("\n")

    assert text.count("lines omitted") == 1
    assert "[... 51 lines omitted ...]" in lines
    assert lines[:25] == [f"line-{i}" for i in range(1, 26)]
    assert lines[-25:] == [f"line-{i}" for i in range(77, 102)]


def test_preview_of_empty_body() -> None:
    assert preview(Section(id=1, heading="A", body="", line_count=0)) == ""


def test_first_sentence_skips_blank_and_fence_lines() -> None:
    section = Section(id=1, heading="A", body="\n  \n```go\n  real start  \n```", line_count=5)

    assert first_sentence(section) == "real start"


def test_first_sentence_truncates_by_code_point() -> None:
    body = "é" * 130
    section = Section(id=1, heading="A", body=body, line_count=1)

    opening = first_sentence(section)

    assert opening == "é" * 120
    assert len(opening) == 120


def test_first_sentence_empty_when_only_fences() -> None:
    section = Section(id=1, heading="A", body="```\n~~~", line_count=2)

    assert first_sentence(section) == ""
