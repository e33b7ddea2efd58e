"""Classification oracle contract and the dispatch-script implementation."""

from __future__ import annotations

import logging
import os
import signal
import subprocess
import tempfile
import threading
import time
from pathlib import Path
from typing import Protocol

from section_router.config import DispatchConfig
from section_router.obs.tracing import Timer, TraceStore

logger = logging.getLogger(__name__)

_FENCE_FAMILIES = ("```", "~~~")


class OracleError(RuntimeError):
    """Raised when the oracle could not produce output."""


class Oracle(Protocol):
    """Maps a prompt to raw text output.

    Implementations raise `OracleError` on any failure, including
    cancellation through the supplied event.
    """

    def run(self, prompt: str, *, cancel: threading.Event | None = None) -> str:
        """Return the oracle's raw text output for `prompt`."""


class DispatchOracle:
    """Runs an external dispatch script with a prompt file and an output file.

    The script is invoked as
    `bash <script> --tier <tier> --sandbox <sandbox> --prompt-file <p> -o <o>`.
    Its output file is preferred; when it is empty the combined stdout/stderr
    of the process is used instead. The child is killed as soon as the cancel
    event is set or the configured timeout elapses.
    """

    def __init__(self, dispatch_path: str | Path, config: DispatchConfig | None = None) -> None:
        self.dispatch_path = Path(dispatch_path)
        self.config = config or DispatchConfig()

    def run(self, prompt: str, *, cancel: threading.Event | None = None) -> str:
        try:
            tempdir = tempfile.TemporaryDirectory(prefix="section-router-")
        except OSError as exc:
            raise OracleError(f"create temp dir: {exc}") from exc

        with tempdir as workdir:
            prompt_path = Path(workdir) / "prompt.txt"
            output_path = Path(workdir) / "output.txt"
            try:
                prompt_path.write_text(prompt, encoding="utf-8")
            except OSError as exc:
                raise OracleError(f"write prompt temp file: {exc}") from exc
            try:
                output_path.touch()
            except OSError as exc:
                raise OracleError(f"create output temp file: {exc}") from exc

            combined = self._execute(prompt_path, output_path, cancel)

            try:
                raw_output = output_path.read_text(encoding="utf-8", errors="replace")
            except OSError as exc:
                raise OracleError(f"read dispatch output: {exc}") from exc

        payload = raw_output.strip()
        if not payload:
            payload = combined.strip()
        return payload

    def _execute(
        self, prompt_path: Path, output_path: Path, cancel: threading.Event | None
    ) -> str:
        command = [
            "bash",
            str(self.dispatch_path),
            "--tier",
            self.config.tier,
            "--sandbox",
            self.config.sandbox,
            "--prompt-file",
            str(prompt_path),
            "-o",
            str(output_path),
        ]
        try:
            process = subprocess.Popen(
                command,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                encoding="utf-8",
                errors="replace",
                start_new_session=True,
            )
        except OSError as exc:
            raise OracleError(f"start dispatch: {exc}") from exc

        timeout = self.config.timeout_seconds
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            if cancel is not None and cancel.is_set():
                _terminate(process)
                raise OracleError("dispatch cancelled")
            if deadline is not None and time.monotonic() >= deadline:
                _terminate(process)
                raise OracleError(f"dispatch timed out after {timeout:g}s")
            try:
                combined, _ = process.communicate(timeout=self.config.poll_interval_seconds)
                break
            except subprocess.TimeoutExpired:
                continue

        combined = combined or ""
        if process.returncode != 0:
            diagnostic = combined.strip() or f"exit status {process.returncode}"
            logger.warning(
                "Dispatch %s exited with status %s", self.dispatch_path, process.returncode
            )
            raise OracleError(diagnostic)
        return combined


def call_oracle(
    oracle: Oracle,
    prompt: str,
    *,
    operation: str,
    cancel: threading.Event | None = None,
    trace_store: TraceStore | None = None,
) -> str:
    """Run the oracle once and record the call in `trace_store` when given."""

    timer = Timer()
    try:
        with timer:
            output = oracle.run(prompt, cancel=cancel)
    except OracleError as exc:
        if trace_store is not None:
            trace_store.create_record(
                operation=operation,
                prompt_chars=len(prompt),
                output_chars=0,
                latency_ms=timer.elapsed_ms,
                success=False,
                error=str(exc),
            )
        raise

    if trace_store is not None:
        trace_store.create_record(
            operation=operation,
            prompt_chars=len(prompt),
            output_chars=len(output),
            latency_ms=timer.elapsed_ms,
            success=True,
        )
    return output


def strip_code_fences(raw: str) -> str:
    """Remove one outer markdown fence from oracle output.

    The opening line may carry a language tag. Trailing blank lines are
    dropped before looking for a closing marker of the same family; a
    missing closing marker is tolerated.
    """

    trimmed = raw.strip()
    family = next((f for f in _FENCE_FAMILIES if trimmed.startswith(f)), "")
    if not family:
        return trimmed

    lines = trimmed.split("\n")[1:]
    while lines and not lines[-1].strip():
        lines.pop()
    if lines and lines[-1].strip().startswith(family):
        lines.pop()
    return "\n".join(lines).strip()


def _terminate(process: subprocess.Popen[str]) -> None:
    # The script runs in its own session; kill its children along with it.
    try:
        os.killpg(process.pid, signal.SIGKILL)
    except (AttributeError, OSError):
        process.kill()
    process.communicate()
