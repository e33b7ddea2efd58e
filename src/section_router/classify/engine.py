"""Section classification and per-reviewer slicing decisions."""

from __future__ import annotations

import logging
import threading
from typing import Any

from pydantic import BaseModel, Field, ValidationError, ValidationInfo, field_validator

from section_router.classify.prompt import (
    CROSS_CUTTING_REVIEWERS,
    build_classification_prompt,
    default_reviewers,
)
from section_router.config import ClassificationConfig
from section_router.obs.tracing import TraceStore
from section_router.oracle.dispatch import Oracle, OracleError, call_oracle, strip_code_fences
from section_router.types import (
    RELEVANCE_CONTEXT,
    RELEVANCE_PRIORITY,
    STATUS_NO_CLASSIFICATION,
    STATUS_SUCCESS,
    ClassificationResult,
    ClassifiedSection,
    ReviewerDomain,
    ReviewerSlice,
    Section,
    SectionAssignment,
)

logger = logging.getLogger(__name__)

_RELEVANCES = (RELEVANCE_PRIORITY, RELEVANCE_CONTEXT)


class _OracleModel(BaseModel):
    """Null or missing fields decode to their zero value."""

    @field_validator("*", mode="before")
    @classmethod
    def _null_as_default(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None:
            return cls.model_fields[info.field_name].get_default(call_default_factory=True)
        return value


class _OracleAssignment(_OracleModel):
    agent: str = ""
    relevance: str = ""
    confidence: float = 0.0


class _OracleSection(_OracleModel):
    section_id: int = 0
    assignments: list[_OracleAssignment | None] = Field(default_factory=list)


class _OracleResponse(_OracleModel):
    sections: list[_OracleSection | None] = Field(default_factory=list)


class ClassificationEngine:
    """Turns oracle section labels into a slicing decision per reviewer.

    Decision rules, applied after aggregation:
    1. Mismatch guard. If no configured reviewer has strictly more than
       `mismatch_threshold_percent` of the document's lines as priority
       reading, the run is reported as `no_classification`. The computed
       slices are still returned.
    2. Full-document collapse. Otherwise each configured reviewer whose
       priority share is at least `full_document_threshold_percent` receives
       every section as priority and no context.

    Shares use integer percentages (`lines * 100 // total`). Cross-cutting
    reviewers take part in aggregation but neither rule looks at them.
    """

    def __init__(
        self,
        oracle: Oracle,
        config: ClassificationConfig | None = None,
        *,
        trace_store: TraceStore | None = None,
    ) -> None:
        self.oracle = oracle
        self.config = config or ClassificationConfig()
        self.trace_store = trace_store

    def classify(
        self,
        sections: list[Section],
        reviewers: list[ReviewerDomain] | None = None,
        *,
        cancel: threading.Event | None = None,
    ) -> ClassificationResult:
        roster = reviewers or default_reviewers()
        if not sections:
            return ClassificationResult(
                status=STATUS_NO_CLASSIFICATION, error="no sections to classify"
            )

        prompt = build_classification_prompt(sections, roster)
        try:
            raw = call_oracle(
                self.oracle,
                prompt,
                operation="classify_sections",
                cancel=cancel,
                trace_store=self.trace_store,
            )
        except OracleError as exc:
            logger.warning("Classification dispatch failed: %s", exc)
            return _failed_result(sections, roster, f"dispatch failed: {exc}")

        payload = strip_code_fences(raw)
        if not payload:
            return _failed_result(
                sections, roster, "dispatch returned empty classification output"
            )

        try:
            decoded = _OracleResponse.model_validate_json(payload)
        except ValidationError as exc:
            return _failed_result(sections, roster, f"invalid classification JSON: {exc}")

        labelled: dict[int, list[SectionAssignment]] = {}
        for entry in decoded.sections:
            if entry is None:
                continue
            labelled.setdefault(entry.section_id, []).extend(
                SectionAssignment(agent=a.agent, relevance=a.relevance, confidence=a.confidence)
                for a in entry.assignments
                if a is not None
            )

        result = self.build_result(labelled, sections, roster)
        logger.info(
            "Classified %d sections for %d reviewers: %s",
            len(sections),
            len(roster),
            result.status,
        )
        return result

    def build_result(
        self,
        labelled: dict[int, list[SectionAssignment]],
        sections: list[Section],
        reviewers: list[ReviewerDomain],
    ) -> ClassificationResult:
        """Aggregate raw labels into slices and apply the decision rules."""

        allowed = {reviewer.name for reviewer in reviewers} | CROSS_CUTTING_REVIEWERS
        slicing_map = _empty_slicing_map(reviewers)
        classified: list[ClassifiedSection] = []
        total_lines = 0

        for section in sections:
            total_lines += section.line_count
            assignments = normalize_assignments(labelled.get(section.id, []), allowed)
            classified.append(
                ClassifiedSection(
                    section_id=section.id,
                    heading=section.heading,
                    line_count=section.line_count,
                    assignments=assignments,
                )
            )

            # One relevance per reviewer per section; priority outranks context.
            chosen: dict[str, str] = {}
            for assignment in assignments:
                if chosen.get(assignment.agent) != RELEVANCE_PRIORITY:
                    chosen[assignment.agent] = assignment.relevance

            for agent, relevance in chosen.items():
                reviewer_slice = slicing_map.setdefault(agent, ReviewerSlice())
                if relevance == RELEVANCE_PRIORITY:
                    reviewer_slice.priority_sections.append(section.id)
                    reviewer_slice.total_priority_lines += section.line_count
                else:
                    reviewer_slice.context_sections.append(section.id)
                    reviewer_slice.total_context_lines += section.line_count

        for reviewer_slice in slicing_map.values():
            reviewer_slice.priority_sections.sort()
            reviewer_slice.context_sections.sort()

        result = ClassificationResult(
            status=STATUS_NO_CLASSIFICATION,
            sections=classified,
            slicing_map=slicing_map,
        )
        if total_lines <= 0:
            return result

        configured = [r.name for r in reviewers if r.name not in CROSS_CUTTING_REVIEWERS]
        if not any(
            _share(slicing_map[name].total_priority_lines, total_lines)
            > self.config.mismatch_threshold_percent
            for name in configured
        ):
            result.error = (
                "domain mismatch: no agent has "
                f">{self.config.mismatch_threshold_percent}% priority lines"
            )
            return result

        result.status = STATUS_SUCCESS
        all_ids = [section.id for section in sections]
        for name in configured:
            share = _share(slicing_map[name].total_priority_lines, total_lines)
            if share >= self.config.full_document_threshold_percent:
                slicing_map[name] = ReviewerSlice(
                    priority_sections=list(all_ids),
                    context_sections=[],
                    total_priority_lines=total_lines,
                    total_context_lines=0,
                )
        return result


def normalize_assignments(
    assignments: list[SectionAssignment],
    allowed: set[str] | frozenset[str],
) -> list[SectionAssignment]:
    """Drop unknown reviewers and relevance labels, clamp confidence to [0, 1]."""

    normalized: list[SectionAssignment] = []
    for assignment in assignments:
        agent = assignment.agent.strip()
        relevance = assignment.relevance.strip().lower()
        if agent not in allowed or relevance not in _RELEVANCES:
            continue
        confidence = min(1.0, max(0.0, float(assignment.confidence)))
        normalized.append(SectionAssignment(agent=agent, relevance=relevance, confidence=confidence))
    return normalized


def _share(lines: int, total_lines: int) -> int:
    return lines * 100 // total_lines


def _empty_slicing_map(reviewers: list[ReviewerDomain]) -> dict[str, ReviewerSlice]:
    return {reviewer.name: ReviewerSlice() for reviewer in reviewers}


def _failed_result(
    sections: list[Section], reviewers: list[ReviewerDomain], error: str
) -> ClassificationResult:
    return ClassificationResult(
        status=STATUS_NO_CLASSIFICATION,
        sections=[
            ClassifiedSection(
                section_id=section.id,
                heading=section.heading,
                line_count=section.line_count,
                assignments=[],
            )
            for section in sections
        ],
        slicing_map=_empty_slicing_map(reviewers),
        error=error,
    )
