"""Shared domain models."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any

STATUS_SUCCESS = "success"
STATUS_NO_CLASSIFICATION = "no_classification"
STATUS_ERROR = "error"

RELEVANCE_PRIORITY = "priority"
RELEVANCE_CONTEXT = "context"


@dataclass(frozen=True, slots=True)
class Section:
    """A document slice rooted at one top-level heading."""

    id: int
    heading: str
    body: str
    line_count: int


@dataclass(frozen=True, slots=True)
class ReviewerDomain:
    """A named specialist eligible to receive section assignments."""

    name: str
    description: str = ""


@dataclass(slots=True)
class SectionAssignment:
    """One reviewer's relevance label for one section."""

    agent: str
    relevance: str
    confidence: float


@dataclass(slots=True)
class ReviewerSlice:
    """Sections a reviewer reads first, and sections kept as background."""

    priority_sections: list[int] = field(default_factory=list)
    context_sections: list[int] = field(default_factory=list)
    total_priority_lines: int = 0
    total_context_lines: int = 0


@dataclass(slots=True)
class ClassifiedSection:
    section_id: int
    heading: str
    line_count: int
    assignments: list[SectionAssignment] = field(default_factory=list)


@dataclass(slots=True)
class ClassificationResult:
    """Outcome of one classification run."""

    status: str
    sections: list[ClassifiedSection] = field(default_factory=list)
    slicing_map: dict[str, ReviewerSlice] = field(default_factory=dict)
    error: str = ""

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        if not self.error:
            payload.pop("error")
        return payload


@dataclass(slots=True)
class QueryResult:
    """Outcome of one document query."""

    status: str
    mode: str
    answer: str = ""
    files_analyzed: list[str] = field(default_factory=list)
    line_count_saved: int = 0
    error: str = ""
    cached: bool = False

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        if not self.error:
            payload.pop("error")
        return payload


@dataclass(slots=True)
class ToolCall:
    """Trace record for an executed tool call."""

    name: str
    input_payload: dict[str, Any]
    output_preview: str
    latency_ms: float
