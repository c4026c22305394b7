"""Utilities for running ffmpeg/ffprobe with consistent decoding."""
from __future__ import annotations

from dataclasses import dataclass
import subprocess
import time
from typing import List, Optional


@dataclass
class CmdResult:
    """Normalized result of a subprocess invocation."""

    cmd: List[str]
    returncode: int
    stdout: str
    stderr: str
    duration_ms: int

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class CommandTimeout(RuntimeError):
    """Raised when a subprocess exceeds the allowed timeout."""

    def __init__(self, cmd: List[str], timeout_sec: float, duration_ms: int) -> None:
        message = f"Command timed out after {timeout_sec}s: {' '.join(cmd)}"
        super().__init__(message)
        self.cmd = cmd
        self.timeout_sec = timeout_sec
        self.duration_ms = duration_ms


def run_cmd(cmd: List[str], timeout_sec: Optional[float] = None) -> CmdResult:
    """Run a command and return a normalized :class:`CmdResult`.

    Text output is decoded as UTF-8 with replacement to handle locale differences.
    ``timeout_sec=None`` blocks until the process exits. A timeout kills the
    child and raises :class:`CommandTimeout` so callers can map it to domain
    errors. Spawn failures propagate as :class:`OSError`.

    A process killed by a signal reports a negative return code, which callers
    treat as failure like any other non-zero code.
    """

    start = time.monotonic()
    try:
        completed = subprocess.run(
            cmd,
            check=False,
            capture_output=True,
            text=True,
            errors="replace",
            timeout=timeout_sec,
        )
    except subprocess.TimeoutExpired:
        duration_ms = int((time.monotonic() - start) * 1000)
        raise CommandTimeout(list(cmd), timeout_sec=timeout_sec or 0, duration_ms=duration_ms)

    duration_ms = int((time.monotonic() - start) * 1000)
    return CmdResult(
        cmd=list(cmd),
        returncode=completed.returncode,
        stdout=completed.stdout,
        stderr=completed.stderr,
        duration_ms=duration_ms,
    )
