"""FastAPI entrypoint for extraction, classification, and query endpoints."""

from __future__ import annotations

from dataclasses import asdict
from typing import Any

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field, ValidationError

from section_router.agent.registry import ToolRegistry
from section_router.agent.tools import register_builtin_tools, section_summary
from section_router.classify.engine import ClassificationEngine
from section_router.classify.prompt import resolve_reviewers
from section_router.config import CacheConfig, DispatchConfig, RouterSettings
from section_router.ingest.loader import LoaderRegistry, SourceDocument
from section_router.ingest.sections import extract_sections
from section_router.obs.tracing import TraceStore
from section_router.oracle.dispatch import DispatchOracle
from section_router.query.cache import ResultCache
from section_router.query.prompt import MODE_ANSWER
from section_router.query.service import DocumentQueryService


class ExtractRequest(BaseModel):
    file_path: str = Field(min_length=1)


class ClassifyRequest(BaseModel):
    file_path: str = Field(min_length=1)
    agents: list[str | dict[str, Any]] | None = None


class QueryRequest(BaseModel):
    question: str = ""
    files: list[str] = Field(min_length=1)
    mode: str = MODE_ANSWER


app = FastAPI(title="Section Router", version="0.1.0")

_settings = RouterSettings()
_oracle = DispatchOracle(
    _settings.dispatch_path,
    DispatchConfig(timeout_seconds=_settings.dispatch_timeout_seconds),
)
_trace_store = TraceStore()
_cache = ResultCache(CacheConfig()) if _settings.cache_enabled else None
_loaders = LoaderRegistry()
_engine = ClassificationEngine(_oracle, trace_store=_trace_store)
_query_service = DocumentQueryService(_oracle, cache=_cache, trace_store=_trace_store)

_registry = ToolRegistry()
register_builtin_tools(_registry, _engine, _query_service, loaders=_loaders)
_registry.set_observer(_trace_store.record_tool_call)


def _load(file_path: str) -> SourceDocument:
    try:
        return _loaders.load_path(file_path)
    except (OSError, UnicodeDecodeError, ValueError) as exc:
        raise HTTPException(status_code=400, detail=f"read {file_path}: {exc}") from exc


@app.get("/health")
def health() -> dict[str, Any]:
    return {
        "status": "ok",
        "dispatch_path": str(_settings.dispatch_path),
        "dispatch_available": _settings.dispatch_path.is_file(),
        "cache_enabled": _cache is not None,
        "tools": [spec.name for spec in _registry.specs()],
    }


@app.post("/sections/extract")
def extract(request: ExtractRequest) -> dict[str, Any]:
    document = _load(request.file_path)
    return {
        "items": [section_summary(section) for section in extract_sections(document.text)]
    }


@app.post("/sections/classify")
def classify(request: ClassifyRequest) -> dict[str, Any]:
    document = _load(request.file_path)
    result = _engine.classify(
        extract_sections(document.text), resolve_reviewers(request.agents)
    )
    return result.to_dict()


@app.post("/query")
def query(request: QueryRequest) -> dict[str, Any]:
    files = [path.strip() for path in request.files if path.strip()]
    return _query_service.query(request.question, files, request.mode).to_dict()


@app.get("/tools")
def list_tools() -> dict[str, Any]:
    return {
        "items": [
            {"name": spec.name, "description": spec.description, "tags": spec.tags}
            for spec in _registry.specs()
        ]
    }


@app.post("/tools/{name}")
def run_tool(name: str, payload: dict[str, Any]) -> dict[str, Any]:
    try:
        output = _registry.execute(name, payload)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=f"Unknown tool: {name}") from exc
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=exc.errors(include_url=False, include_context=False)) from exc
    return {"tool": name, "output": output}


@app.get("/traces")
def traces(limit: int = 20) -> dict[str, Any]:
    return {
        "items": [asdict(record) for record in _trace_store.list_recent(limit=limit)],
        "tool_calls": [asdict(call) for call in _trace_store.list_tool_calls(limit=limit)],
    }


@app.get("/metrics")
def metrics() -> dict[str, Any]:
    summary: dict[str, Any] = dict(_trace_store.summary())
    if _cache is not None:
        stats = _cache.stats()
        summary.update(
            {
                "cache_entries": stats.entries,
                "cache_hits": stats.hits,
                "cache_misses": stats.misses,
                "cache_hit_rate": stats.hit_rate,
            }
        )
    return summary
