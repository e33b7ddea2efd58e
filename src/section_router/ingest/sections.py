"""Fence-aware splitting of markdown documents into top-level sections."""

from __future__ import annotations

from dataclasses import dataclass, field

from section_router.types import Section

PREAMBLE_HEADING = "Preamble"

_HEADING_PREFIX = "## "
_METADATA_DELIMITER = "---"
_FENCE_FAMILIES = ("```", "~~~")

_PREVIEW_FULL_LIMIT = 100
_PREVIEW_SHORT_LINES = 50
_PREVIEW_EDGE_LINES = 25
_FIRST_SENTENCE_MAX_CHARS = 120


@dataclass(slots=True)
class _ScanState:
    heading: str = PREAMBLE_HEADING
    body: list[str] = field(default_factory=list)
    seen_heading: bool = False
    fence: str = ""


class SectionExtractor:
    """Splits a document by `## ` headings in a single left-to-right scan.

    Rules:
    1. A leading metadata block (first line `---`, closed by another `---`) is
       dropped before scanning. When it is never closed the whole document is
       treated as metadata and no sections are produced.
    2. Fenced code blocks opened by a backtick or tilde run make heading-like
       lines inert until a marker of the same family closes the fence. An
       unclosed fence swallows the rest of the document.
    3. The untitled text before the first heading becomes a "Preamble" section
       only when it holds non-whitespace content. Every other section is kept,
       even with an empty body.
    """

    def extract(self, text: str) -> list[Section]:
        lines = self._skip_metadata_block(_split_lines(text))

        sections: list[Section] = []
        state = _ScanState()

        for line in lines:
            left_trimmed = line.lstrip(" \t")

            if not state.fence and left_trimmed.startswith(_HEADING_PREFIX):
                self._emit(sections, state)
                state = _ScanState(
                    heading=left_trimmed[len(_HEADING_PREFIX) :].strip(),
                    seen_heading=True,
                )
                continue

            state.body.append(line)

            marker = fence_marker(left_trimmed)
            if marker:
                if not state.fence:
                    state.fence = marker
                elif marker == state.fence:
                    state.fence = ""

        self._emit(sections, state)
        return sections

    @staticmethod
    def _emit(sections: list[Section], state: _ScanState) -> None:
        body = "\n".join(state.body)
        if not state.seen_heading and not body.strip():
            return
        sections.append(
            Section(
                id=len(sections) + 1,
                heading=state.heading,
                body=body,
                line_count=len(state.body),
            )
        )

    @staticmethod
    def _skip_metadata_block(lines: list[str]) -> list[str]:
        if not lines or lines[0].strip() != _METADATA_DELIMITER:
            return lines
        for index in range(1, len(lines)):
            if lines[index].strip() == _METADATA_DELIMITER:
                return lines[index + 1 :]
        return []


def extract_sections(text: str) -> list[Section]:
    return SectionExtractor().extract(text)


def preview(section: Section) -> str:
    """Bounded view of a section body.

    Bodies of up to 100 lines show their first 50 lines. Longer bodies show
    the first and last 25 lines around an omission marker.
    """

    lines = _split_lines(section.body)
    count = len(lines)
    if count == 0:
        return ""

    if count <= _PREVIEW_FULL_LIMIT:
        return "\n".join(lines[:_PREVIEW_SHORT_LINES])

    omitted = count - 2 * _PREVIEW_EDGE_LINES
    head = "\n".join(lines[:_PREVIEW_EDGE_LINES])
    tail = "\n".join(lines[count - _PREVIEW_EDGE_LINES :])
    return f"{head}\n[... {omitted} lines omitted ...]\n{tail}"


def first_sentence(section: Section) -> str:
    """First non-empty, non-fence line of the body, capped at 120 characters."""

    for line in _split_lines(section.body):
        stripped = line.strip()
        if not stripped or fence_marker(stripped):
            continue
        return stripped[:_FIRST_SENTENCE_MAX_CHARS]
    return ""


def fence_marker(line: str) -> str:
    """Return the fence family a line opens or closes, or an empty string."""

    stripped = line.strip()
    for family in _FENCE_FAMILIES:
        if stripped.startswith(family):
            return family
    return ""


def _split_lines(text: str) -> list[str]:
    if not text:
        return []
    return text.split("\n")
