import os
import threading
from pathlib import Path

from section_router.config import QueryConfig
from section_router.obs.tracing import TraceStore
from section_router.oracle.dispatch import OracleError
from section_router.query.cache import ResultCache
from section_router.query.prompt import build_query_prompt
from section_router.query.service import DocumentQueryService


class _ScriptedOracle:
    def __init__(self, output: str = "answer text", error: str | None = None) -> None:
        self.output = output
        self.error = error
        self.prompts: list[str] = []

    def run(self, prompt: str, *, cancel: threading.Event | None = None) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise OracleError(self.error)
        return self.output


def _write(tmp_path: Path, name: str, content: str) -> str:
    path = tmp_path / name
    path.write_text(content, encoding="utf-8")
    return str(path)


def test_answer_prompt_has_question_and_numbered_lines() -> None:
    prompt = build_query_prompt(
        "What does main do?",
        {"/tmp/main.go": "package main\n\nfunc main() {}\n"},
        "answer",
    )

    assert "Be EXTREMELY concise" in prompt
    assert "Question: What does main do?" in prompt
    assert "--- /tmp/main.go (4 lines) ---" in prompt
    assert "/tmp/main.go:1\tpackage main" in prompt
    assert "/tmp/main.go:3\tfunc main() {}" in prompt


def test_summarize_and_extract_prompts() -> None:
    files = {"/tmp/a.py": "class Foo: ...\n"}

    summary = build_query_prompt("", files, "summarize")
    extract = build_query_prompt("Find Foo", files, "extract")

    assert "structural overview" in summary
    assert "key types, functions" in summary
    assert "Extract the specific code snippets relevant to: Find Foo" in extract


def test_large_file_prompt_keeps_head_and_tail() -> None:
    config = QueryConfig(max_file_lines=100, head_lines=10, tail_lines=5)
    content = "\n".join(f"line {n}" for n in range(1, 151))

    prompt = build_query_prompt("q", {"/tmp/big.txt": content}, "answer", config)

    assert "[... 135 lines omitted ...]" in prompt
    assert "/tmp/big.txt:10\tline 10" in prompt
    assert "/tmp/big.txt:11\t" not in prompt
    assert "/tmp/big.txt:146\tline 146" in prompt
    assert "/tmp/big.txt:150\tline 150" in prompt


def test_input_errors_skip_oracle(tmp_path: Path) -> None:
    oracle = _ScriptedOracle()
    service = DocumentQueryService(oracle)
    doc = _write(tmp_path, "a.md", "text")

    invalid = service.query("q", [doc], "translate")
    no_question = service.query("   ", [doc], "answer")
    no_files = service.query("q", [], "answer")

    assert invalid.error == 'invalid mode "translate": must be answer, summarize, or extract'
    assert no_question.error == "question is required for answer mode"
    assert no_files.error == "at least one file is required"
    assert all(r.status == "error" for r in (invalid, no_question, no_files))
    assert oracle.prompts == []


def test_summarize_allows_empty_question(tmp_path: Path) -> None:
    service = DocumentQueryService(_ScriptedOracle("overview"))

    result = service.query("", [_write(tmp_path, "a.py", "x = 1")], "summarize")

    assert result.status == "success"
    assert result.answer == "overview"


def test_missing_and_oversized_files(tmp_path: Path) -> None:
    service = DocumentQueryService(_ScriptedOracle(), config=QueryConfig(max_file_bytes=8))
    missing = str(tmp_path / "missing.md")
    big = _write(tmp_path, "big.md", "x" * 9)

    not_found = service.query("q", [missing])
    too_large = service.query("q", [big])

    assert not_found.error == f"file not found: {missing}"
    assert too_large.error == f"file too large (9 bytes, max 8): {big}"
    assert too_large.files_analyzed == [big]


def test_success_strips_fences_and_counts_lines(tmp_path: Path) -> None:
    oracle = _ScriptedOracle("```\nIt prints hello.\n```")
    service = DocumentQueryService(oracle)
    first = _write(tmp_path, "a.go", "a\nb\nc")
    second = _write(tmp_path, "b.go", "d\ne")

    result = service.query("what?", [first, second])

    assert result.status == "success"
    assert result.mode == "answer"
    assert result.answer == "It prints hello."
    assert result.line_count_saved == 5
    assert result.files_analyzed == [first, second]
    assert result.cached is False


def test_oracle_failure_and_empty_output(tmp_path: Path) -> None:
    doc = _write(tmp_path, "a.md", "text")

    failed = DocumentQueryService(_ScriptedOracle(error="boom")).query("q", [doc])
    empty = DocumentQueryService(_ScriptedOracle("  ")).query("q", [doc])

    assert failed.error == "dispatch failed: boom"
    assert empty.error == "dispatch returned empty output"


def test_cache_serves_repeat_queries_until_file_changes(tmp_path: Path) -> None:
    oracle = _ScriptedOracle("cached answer")
    store = TraceStore()
    service = DocumentQueryService(oracle, cache=ResultCache(), trace_store=store)
    doc = _write(tmp_path, "a.md", "text")

    first = service.query("q", [doc])
    second = service.query("q", [doc])

    assert first.cached is False
    assert second.cached is True
    assert second.answer == "cached answer"
    assert len(oracle.prompts) == 1

    stat = os.stat(doc)
    os.utime(doc, (stat.st_atime, stat.st_mtime + 10))
    third = service.query("q", [doc])

    assert third.cached is False
    assert len(oracle.prompts) == 2
    assert store.summary()["total_dispatches"] == 2


def test_failed_queries_are_not_cached(tmp_path: Path) -> None:
    oracle = _ScriptedOracle(error="boom")
    cache = ResultCache()
    service = DocumentQueryService(oracle, cache=cache)
    doc = _write(tmp_path, "a.md", "text")

    service.query("q", [doc])
    service.query("q", [doc])

    assert len(oracle.prompts) == 2
    assert len(cache) == 0
