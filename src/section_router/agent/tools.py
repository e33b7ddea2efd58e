"""Built-in tools exposing extraction, classification, and document queries."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator

from section_router.agent.registry import ToolRegistry, ToolSpec
from section_router.classify.engine import ClassificationEngine
from section_router.classify.prompt import resolve_reviewers
from section_router.ingest.loader import LoaderRegistry
from section_router.ingest.sections import extract_sections, first_sentence
from section_router.query.prompt import MODE_ANSWER
from section_router.query.service import DocumentQueryService
from section_router.types import Section


class ExtractSectionsInput(BaseModel):
    file_path: str = Field(min_length=1)


class ClassifySectionsInput(BaseModel):
    file_path: str = Field(min_length=1)
    agents: list[str | dict[str, Any]] | None = None


class DocumentQueryInput(BaseModel):
    question: str = ""
    files: list[str] = Field(min_length=1)
    mode: str = MODE_ANSWER

    @field_validator("files")
    @classmethod
    def _strip_paths(cls, value: list[str]) -> list[str]:
        paths = [path.strip() for path in value if path.strip()]
        if not paths:
            raise ValueError("files must contain at least one valid file path")
        return paths


def section_summary(section: Section) -> dict[str, Any]:
    return {
        "section_id": section.id,
        "heading": section.heading,
        "line_count": section.line_count,
        "first_sentence": first_sentence(section),
    }


def register_builtin_tools(
    registry: ToolRegistry,
    engine: ClassificationEngine,
    query_service: DocumentQueryService,
    *,
    loaders: LoaderRegistry | None = None,
) -> None:
    """Register the default tool set.

    Tools:
    - `extract_sections`: split a markdown file by `## ` headings.
    - `classify_sections`: route a file's sections to reviewers.
    - `document_query`: answer a question about files through the oracle.

    File read failures are reported as `{"error": ...}` payloads.
    """

    loader_registry = loaders or LoaderRegistry()

    def _extract(input_data: ExtractSectionsInput) -> Any:
        try:
            document = loader_registry.load_path(input_data.file_path)
        except (OSError, UnicodeDecodeError, ValueError) as exc:
            return {"error": f"read {input_data.file_path}: {exc}"}
        return [section_summary(section) for section in extract_sections(document.text)]

    def _classify(input_data: ClassifySectionsInput) -> Any:
        try:
            document = loader_registry.load_path(input_data.file_path)
        except (OSError, UnicodeDecodeError, ValueError) as exc:
            return {"error": f"read {input_data.file_path}: {exc}"}
        result = engine.classify(
            extract_sections(document.text), resolve_reviewers(input_data.agents)
        )
        return result.to_dict()

    def _query(input_data: DocumentQueryInput) -> Any:
        return query_service.query(
            input_data.question, input_data.files, input_data.mode
        ).to_dict()

    registry.register(
        ToolSpec(
            name="extract_sections",
            description="Split markdown by ## headings while honoring fenced code blocks.",
            args_schema=ExtractSectionsInput,
            handler=_extract,
            tags=["sections"],
        )
    )
    registry.register(
        ToolSpec(
            name="classify_sections",
            description="Classify markdown sections into reviewer domains and build a slicing map.",
            args_schema=ClassifySectionsInput,
            handler=_classify,
            tags=["sections", "routing"],
        )
    )
    registry.register(
        ToolSpec(
            name="document_query",
            description=(
                "Analyze file(s) and return a compact answer. Modes: answer (default), "
                "summarize, or extract."
            ),
            args_schema=DocumentQueryInput,
            handler=_query,
            tags=["query"],
        )
    )
