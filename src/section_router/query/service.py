"""Document question answering delegated to the oracle."""

from __future__ import annotations

import logging
import os
import threading

from section_router.config import QueryConfig
from section_router.obs.tracing import TraceStore
from section_router.oracle.dispatch import Oracle, OracleError, call_oracle, strip_code_fences
from section_router.query.cache import ResultCache
from section_router.query.prompt import MODE_ANSWER, QUERY_MODES, build_query_prompt
from section_router.types import STATUS_ERROR, STATUS_SUCCESS, QueryResult

logger = logging.getLogger(__name__)


class DocumentQueryService:
    """Answers a question about files by sending their contents to the oracle.

    Input errors are reported before anything is read or dispatched. When a
    cache is attached, a valid cached answer for the same question, mode, and
    file set is returned without contacting the oracle. Only successful
    answers are cached.
    """

    def __init__(
        self,
        oracle: Oracle,
        *,
        cache: ResultCache | None = None,
        config: QueryConfig | None = None,
        trace_store: TraceStore | None = None,
    ) -> None:
        self.oracle = oracle
        self.cache = cache
        self.config = config or QueryConfig()
        self.trace_store = trace_store

    def query(
        self,
        question: str,
        files: list[str],
        mode: str = MODE_ANSWER,
        *,
        cancel: threading.Event | None = None,
    ) -> QueryResult:
        mode = mode or MODE_ANSWER
        if mode not in QUERY_MODES:
            return QueryResult(
                status=STATUS_ERROR,
                mode=mode,
                error=f'invalid mode "{mode}": must be answer, summarize, or extract',
            )
        if mode == MODE_ANSWER and not question.strip():
            return QueryResult(
                status=STATUS_ERROR, mode=mode, error="question is required for answer mode"
            )
        if not files:
            return QueryResult(
                status=STATUS_ERROR, mode=mode, error="at least one file is required"
            )

        cache_key = ""
        mtimes: dict[str, float] = {}
        if self.cache is not None:
            cache_key = self.cache.make_key(question, files, mode)
            cached = self.cache.get(cache_key)
            if cached is not None:
                logger.debug("Query cache hit for %s", cache_key)
                cached.cached = True
                return cached
            mtimes = self.cache.snapshot_mtimes(files)

        contents: dict[str, str] = {}
        total_lines = 0
        for path in files:
            try:
                size = os.stat(path).st_size
            except OSError:
                return self._error(mode, files, f"file not found: {path}")
            if size > self.config.max_file_bytes:
                return self._error(
                    mode,
                    files,
                    f"file too large ({size} bytes, max {self.config.max_file_bytes}): {path}",
                )
            try:
                with open(path, encoding="utf-8") as handle:
                    content = handle.read()
            except (OSError, UnicodeDecodeError) as exc:
                return self._error(mode, files, f"read {path}: {exc}")
            contents[path] = content
            total_lines += len(content.split("\n"))

        prompt = build_query_prompt(question, contents, mode, self.config)
        try:
            raw = call_oracle(
                self.oracle,
                prompt,
                operation="document_query",
                cancel=cancel,
                trace_store=self.trace_store,
            )
        except OracleError as exc:
            logger.warning("Query dispatch failed: %s", exc)
            return self._error(mode, files, f"dispatch failed: {exc}")

        answer = strip_code_fences(raw)
        if not answer:
            return self._error(mode, files, "dispatch returned empty output")

        result = QueryResult(
            status=STATUS_SUCCESS,
            mode=mode,
            answer=answer,
            files_analyzed=list(files),
            line_count_saved=total_lines,
        )
        if self.cache is not None:
            self.cache.put(cache_key, result, mtimes)
        return result

    @staticmethod
    def _error(mode: str, files: list[str], error: str) -> QueryResult:
        return QueryResult(status=STATUS_ERROR, mode=mode, files_analyzed=list(files), error=error)
