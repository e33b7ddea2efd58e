"""Tracing for oracle invocations."""

from __future__ import annotations

import threading
import time
import uuid
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone

from section_router.types import ToolCall


@dataclass(slots=True)
class DispatchTrace:
    trace_id: str
    timestamp_utc: str
    operation: str
    prompt_chars: int
    output_chars: int
    latency_ms: float
    success: bool
    error: str = ""


class TraceStore:
    """In-memory trace storage for oracle calls and tool executions.

    Records live only as long as the process; nothing is written to disk.
    """

    def __init__(self, *, max_records: int = 1000) -> None:
        self._records: dict[str, DispatchTrace] = {}
        self._tool_calls: deque[ToolCall] = deque(maxlen=max_records)
        self._max_records = max_records
        self._lock = threading.Lock()

    def create_record(
        self,
        *,
        operation: str,
        prompt_chars: int,
        output_chars: int,
        latency_ms: float,
        success: bool,
        error: str = "",
    ) -> DispatchTrace:
        record = DispatchTrace(
            trace_id=str(uuid.uuid4()),
            timestamp_utc=datetime.now(timezone.utc).isoformat(),
            operation=operation,
            prompt_chars=prompt_chars,
            output_chars=output_chars,
            latency_ms=latency_ms,
            success=success,
            error=error,
        )
        with self._lock:
            if len(self._records) >= self._max_records:
                self._records.pop(next(iter(self._records)))
            self._records[record.trace_id] = record
        return record

    def get(self, trace_id: str) -> DispatchTrace:
        with self._lock:
            record = self._records.get(trace_id)
        if record is None:
            raise KeyError(f"Trace not found: {trace_id}")
        return record

    def list_recent(self, limit: int = 20) -> list[DispatchTrace]:
        with self._lock:
            return list(self._records.values())[-limit:]

    def record_tool_call(self, call: ToolCall) -> None:
        """Registry observer hook."""
        with self._lock:
            self._tool_calls.append(call)

    def list_tool_calls(self, limit: int = 20) -> list[ToolCall]:
        with self._lock:
            return list(self._tool_calls)[-limit:]

    def summary(self) -> dict[str, float | int]:
        """Aggregate dispatch metrics for dashboard display."""
        with self._lock:
            records = list(self._records.values())
            tool_calls = len(self._tool_calls)
        total = len(records)
        if total == 0:
            return {
                "total_dispatches": 0,
                "failed_dispatches": 0,
                "avg_latency_ms": 0.0,
                "p95_latency_ms": 0.0,
                "tool_calls": tool_calls,
            }

        latencies = sorted(record.latency_ms for record in records)
        p95_index = max(0, int((len(latencies) * 0.95) - 1))
        return {
            "total_dispatches": total,
            "failed_dispatches": sum(1 for record in records if not record.success),
            "avg_latency_ms": sum(latencies) / total,
            "p95_latency_ms": latencies[p95_index],
            "tool_calls": tool_calls,
        }


class Timer:
    """Simple context timer used around oracle calls."""

    def __init__(self) -> None:
        self._start = 0.0
        self.elapsed_ms = 0.0

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> None:
        self.elapsed_ms = (time.perf_counter() - self._start) * 1000.0
