"""FFprobe helper for reading container durations."""
from __future__ import annotations

import shutil
from pathlib import Path
from typing import Any, Dict, List, Optional

from .logging_utils import get_logger
from .subprocess_utils import CommandTimeout, run_cmd
from .timecode import parse_duration

logger = get_logger(__name__)


class ProbeError(RuntimeError):
    """Raised when ffprobe cannot report a usable duration for a file."""

    def __init__(self, path: Path, message: str, detail: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(f"{message}: {path}")
        self.path = path
        self.reason = message
        self.detail = detail


def build_ffprobe_command(input_path: Path, ffprobe_path: Optional[str] = None) -> List[str]:
    ffprobe_bin = ffprobe_path or shutil.which("ffprobe") or "ffprobe"
    return [
        ffprobe_bin,
        str(input_path),
        "-show_entries",
        "format=duration",
        "-v",
        "quiet",
        "-of",
        "default=noprint_wrappers=1:nokey=1",
    ]


def probe_duration(
    input_path: Path,
    ffprobe_path: Optional[str] = None,
    timeout_sec: Optional[float] = None,
) -> float:
    """Return the container duration of ``input_path`` in seconds.

    Raises :class:`ProbeError` when ffprobe cannot be started, times out, exits
    non-zero, or prints something that is not a duration. Corrupt downloads and
    unsupported containers end up here.
    """

    cmd = build_ffprobe_command(input_path, ffprobe_path)
    try:
        result = run_cmd(cmd, timeout_sec=timeout_sec)
    except CommandTimeout as exc:
        raise ProbeError(input_path, f"ffprobe timed out after {exc.timeout_sec}s") from exc
    except OSError as exc:
        raise ProbeError(input_path, f"ffprobe could not be started ({exc})") from exc

    if result.returncode != 0:
        raise ProbeError(
            input_path,
            f"ffprobe returned {result.returncode}",
            detail={"stderr": result.stderr},
        )

    try:
        duration = parse_duration(result.stdout)
    except ValueError as exc:
        raise ProbeError(
            input_path,
            "ffprobe output is not a duration",
            detail={"stdout": result.stdout.strip()},
        ) from exc

    logger.debug("Probed %s: %.2fs (%dms)", input_path, duration, result.duration_ms)
    return duration
