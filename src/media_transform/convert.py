"""FFmpeg command construction and execution for videos and images."""
from __future__ import annotations

from dataclasses import dataclass
import shutil
from pathlib import Path
from typing import List, Optional

from .constants import FFMPEG_LOGLEVEL, IMAGE_QUALITY, VIDEO_SEEK_START
from .logging_utils import get_logger
from .subprocess_utils import CommandTimeout, run_cmd
from .timecode import format_timecode

logger = get_logger(__name__)


@dataclass
class ConvertResult:
    """Structured result of an ffmpeg conversion."""

    cmd: List[str]
    returncode: int
    stderr: str
    duration_ms: int

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def _ffmpeg_bin(ffmpeg_path: Optional[str]) -> str:
    return ffmpeg_path or shutil.which("ffmpeg") or "ffmpeg"


def build_video_command(
    input_path: Path,
    output_path: Path,
    duration_sec: float,
    ffmpeg_path: Optional[str] = None,
    seek_start: str = VIDEO_SEEK_START,
) -> List[str]:
    """Trim a video between ``seek_start`` and its end without re-encoding.

    Streams are copied as-is (``-c copy``); the end point comes from
    :func:`format_timecode` so it stays just inside the probed duration.
    """

    return [
        _ffmpeg_bin(ffmpeg_path),
        "-i",
        str(input_path),
        "-ss",
        seek_start,
        "-to",
        format_timecode(duration_sec),
        "-c",
        "copy",
        "-y",
        "-loglevel",
        FFMPEG_LOGLEVEL,
        str(output_path),
    ]


def build_image_command(
    input_path: Path,
    output_path: Path,
    ffmpeg_path: Optional[str] = None,
    quality: int = IMAGE_QUALITY,
) -> List[str]:
    return [
        _ffmpeg_bin(ffmpeg_path),
        "-i",
        str(input_path),
        "-q:v",
        str(quality),
        "-y",
        "-loglevel",
        FFMPEG_LOGLEVEL,
        str(output_path),
    ]


def run_ffmpeg(cmd: List[str], timeout_sec: Optional[float] = None) -> ConvertResult:
    """Run an ffmpeg command, folding spawn failures and timeouts into ``returncode=-1``."""

    try:
        result = run_cmd(cmd, timeout_sec=timeout_sec)
    except CommandTimeout as exc:
        logger.debug("ffmpeg timed out: %s", exc)
        return ConvertResult(cmd=list(cmd), returncode=-1, stderr=str(exc), duration_ms=exc.duration_ms)
    except OSError as exc:
        logger.debug("ffmpeg could not be started: %s", exc)
        return ConvertResult(cmd=list(cmd), returncode=-1, stderr=str(exc), duration_ms=0)

    if result.returncode != 0 and result.stderr.strip():
        logger.debug("ffmpeg stderr: %s", result.stderr.strip())
    return ConvertResult(
        cmd=list(cmd),
        returncode=result.returncode,
        stderr=result.stderr,
        duration_ms=result.duration_ms,
    )


def convert_video(
    input_path: Path,
    output_path: Path,
    duration_sec: float,
    ffmpeg_path: Optional[str] = None,
    seek_start: str = VIDEO_SEEK_START,
    timeout_sec: Optional[float] = None,
) -> ConvertResult:
    cmd = build_video_command(input_path, output_path, duration_sec, ffmpeg_path, seek_start)
    return run_ffmpeg(cmd, timeout_sec=timeout_sec)


def convert_image(
    input_path: Path,
    output_path: Path,
    ffmpeg_path: Optional[str] = None,
    quality: int = IMAGE_QUALITY,
    timeout_sec: Optional[float] = None,
) -> ConvertResult:
    cmd = build_image_command(input_path, output_path, ffmpeg_path, quality)
    return run_ffmpeg(cmd, timeout_sec=timeout_sec)
