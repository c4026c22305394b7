"""Transcoding capability used by the pipeline, plus verbatim copying.

The pipeline only talks to a :class:`MediaTools` object, so tests can pass a
stub instead of the real :class:`FfmpegTools`.
"""
from __future__ import annotations

import shutil
from pathlib import Path
from typing import Optional, Protocol

from .convert import ConvertResult, convert_image, convert_video
from .params import TransformParams
from .probe import probe_duration


class MediaTools(Protocol):
    def probe_duration(self, source: Path) -> float:
        """Return the duration in seconds or raise ``ProbeError``."""

    def convert_video(self, source: Path, target: Path, duration_sec: float) -> ConvertResult:
        """Run the conversion; ``returncode`` 0 is success, ``stderr`` explains failures."""

    def convert_image(self, source: Path, target: Path) -> ConvertResult:
        """Run the conversion; ``returncode`` 0 is success, ``stderr`` explains failures."""


class FfmpegTools:
    """:class:`MediaTools` backed by the ``ffprobe`` and ``ffmpeg`` binaries."""

    def __init__(self, params: Optional[TransformParams] = None) -> None:
        self.params = params or TransformParams()

    def probe_duration(self, source: Path) -> float:
        return probe_duration(
            source,
            ffprobe_path=self.params.ffprobe_path,
            timeout_sec=self.params.probe_timeout_sec,
        )

    def convert_video(self, source: Path, target: Path, duration_sec: float) -> ConvertResult:
        return convert_video(
            source,
            target,
            duration_sec,
            ffmpeg_path=self.params.ffmpeg_path,
            seek_start=self.params.video_seek_start,
            timeout_sec=self.params.convert_timeout_sec,
        )

    def convert_image(self, source: Path, target: Path) -> ConvertResult:
        return convert_image(
            source,
            target,
            ffmpeg_path=self.params.ffmpeg_path,
            quality=self.params.image_quality,
            timeout_sec=self.params.convert_timeout_sec,
        )


def copy_verbatim(source: Path, target: Path) -> None:
    """Byte-for-byte copy of ``source`` to ``target``, creating parent dirs.

    ``OSError`` propagates; the pipeline treats it as fatal.
    """

    target.parent.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(source, target)
