"""Pytest fixtures and helpers for media-transform tests."""
from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Dict, Iterable, List, Tuple

import pytest

from media_transform.convert import ConvertResult
from media_transform.probe import ProbeError
from media_transform.subprocess_utils import run_cmd


def has_ffmpeg() -> bool:
    """Check if ffmpeg is available in PATH."""
    return shutil.which("ffmpeg") is not None


def has_ffprobe() -> bool:
    """Check if ffprobe is available in PATH."""
    return shutil.which("ffprobe") is not None


def require_ffmpeg_ffprobe() -> None:
    """Skip test if ffmpeg or ffprobe is not available."""
    if not has_ffmpeg() or not has_ffprobe():
        pytest.skip("ffmpeg/ffprobe required for this test")


def _clear_package_handlers() -> None:
    root_logger = logging.getLogger("media_transform")
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop handlers bound to streams of a previous test (e.g. CliRunner output)."""
    _clear_package_handlers()
    yield
    _clear_package_handlers()


class StubTools:
    """In-memory stand-in for ffprobe/ffmpeg.

    Converted targets are written as small marker files so tests can assert on
    what ended up in the output tree without any external binary.
    """

    def __init__(
        self,
        duration: float = 12.5,
        corrupt: Iterable[str] = (),
        failing: Iterable[str] = (),
    ) -> None:
        self.duration = duration
        self.corrupt = set(corrupt)
        self.failing = set(failing)
        self.calls: List[Tuple[str, Path]] = []

    def probe_duration(self, source: Path) -> float:
        self.calls.append(("probe", source))
        if source.name in self.corrupt:
            raise ProbeError(source, "ffprobe returned 1", detail={"stderr": "Invalid data found"})
        return self.duration

    def _result(self, source: Path) -> ConvertResult:
        if source.name in self.failing:
            stderr = f"[in#0 @ 0x1] Error opening input: Invalid data found\n{source}: Invalid data found when processing input\n"
            return ConvertResult(cmd=["ffmpeg"], returncode=1, stderr=stderr, duration_ms=1)
        return ConvertResult(cmd=["ffmpeg"], returncode=0, stderr="", duration_ms=1)

    def convert_video(self, source: Path, target: Path, duration_sec: float) -> ConvertResult:
        self.calls.append(("video", source))
        result = self._result(source)
        if result.ok:
            target.write_bytes(b"video:" + source.read_bytes())
        return result

    def convert_image(self, source: Path, target: Path) -> ConvertResult:
        self.calls.append(("image", source))
        result = self._result(source)
        if result.ok:
            target.write_bytes(b"image:" + source.read_bytes())
        return result

    @property
    def conversions(self) -> int:
        return sum(1 for kind, _ in self.calls if kind in {"video", "image"})


@pytest.fixture
def stub_tools() -> StubTools:
    return StubTools()


def make_tree(root: Path, files: Dict[str, bytes]) -> Path:
    """Create ``files`` (relative path -> content) under ``root``.

    Parameters
    ----------
    root: Path
        Directory to populate; created if missing.
    files: Dict[str, bytes]
        Mapping of relative POSIX paths to file contents.

    Returns
    -------
    Path
        The populated root.
    """
    root.mkdir(parents=True, exist_ok=True)
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
    return root


@pytest.fixture
def dirs(tmp_path: Path) -> Tuple[Path, Path, Path]:
    """Return ``(input_root, output_root, ledger_path)`` inside ``tmp_path``."""
    input_root = tmp_path / "library" / "media"
    input_root.mkdir(parents=True)
    output_root = tmp_path / "backup"
    output_root.mkdir()
    return input_root, output_root, tmp_path / "state" / "ledger.log"


def gen_test_video(tmp_path: Path, name: str = "clip.mp4", duration: float = 1.0) -> Path:
    """Generate a short test-pattern video with ffmpeg.

    Parameters
    ----------
    tmp_path: Path
        Directory the video is written to.
    name: str
        Output file name; the extension picks the container.
    duration: float
        Duration in seconds.

    Returns
    -------
    Path
        Path to generated video file
    """
    require_ffmpeg_ffprobe()
    output_path = tmp_path / name
    output_path.parent.mkdir(parents=True, exist_ok=True)
    cmd = [
        shutil.which("ffmpeg") or "ffmpeg",
        "-y",
        "-hide_banner",
        "-loglevel",
        "error",
        "-f",
        "lavfi",
        "-i",
        f"testsrc=duration={duration}:size=160x120:rate=10",
        "-pix_fmt",
        "yuv420p",
        str(output_path),
    ]
    result = run_cmd(cmd, timeout_sec=30)
    if result.returncode != 0:
        raise RuntimeError(f"ffmpeg failed: {result.stderr}")
    return output_path


def gen_test_image(tmp_path: Path, name: str = "still.png") -> Path:
    """Generate a single-frame test image with ffmpeg."""
    require_ffmpeg_ffprobe()
    output_path = tmp_path / name
    output_path.parent.mkdir(parents=True, exist_ok=True)
    cmd = [
        shutil.which("ffmpeg") or "ffmpeg",
        "-y",
        "-hide_banner",
        "-loglevel",
        "error",
        "-f",
        "lavfi",
        "-i",
        "testsrc=size=64x48:rate=1",
        "-frames:v",
        "1",
        str(output_path),
    ]
    result = run_cmd(cmd, timeout_sec=30)
    if result.returncode != 0:
        raise RuntimeError(f"ffmpeg failed: {result.stderr}")
    return output_path


def read_ledger_targets(ledger_path: Path) -> List[str]:
    """Return the target paths recorded in a ledger file, in file order."""
    if not ledger_path.exists():
        return []
    targets = []
    for line in ledger_path.read_text(encoding="utf-8", errors="surrogateescape").splitlines():
        if line.strip():
            targets.append(line.split(": ", 1)[1])
    return targets