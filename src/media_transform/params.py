"""Parameter handling utilities for transform configuration merging."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from .constants import DEFAULT_LEDGER_PATH, IMAGE_QUALITY, VIDEO_SEEK_START


@dataclass
class TransformParams:
    """Normalized parameters shared by the transcoder and the pipeline."""

    ffmpeg_path: Optional[str] = None
    ffprobe_path: Optional[str] = None
    video_seek_start: str = VIDEO_SEEK_START
    image_quality: int = IMAGE_QUALITY
    probe_timeout_sec: Optional[float] = None
    convert_timeout_sec: Optional[float] = None
    follow_symlinks: bool = False
    ledger_path: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ffmpeg_path": self.ffmpeg_path,
            "ffprobe_path": self.ffprobe_path,
            "video_seek_start": self.video_seek_start,
            "image_quality": int(self.image_quality),
            "probe_timeout_sec": self.probe_timeout_sec,
            "convert_timeout_sec": self.convert_timeout_sec,
            "follow_symlinks": bool(self.follow_symlinks),
            "ledger_path": self.ledger_path,
        }

    def resolved_ledger_path(self) -> Path:
        """Return the ledger location, expanding ``~`` in configured paths."""
        if self.ledger_path:
            return Path(self.ledger_path).expanduser()
        return DEFAULT_LEDGER_PATH


def _params_from_dict(config: Dict[str, Any]) -> TransformParams:
    def _optional_float(value: Any) -> Optional[float]:
        return float(value) if value is not None else None

    return TransformParams(
        ffmpeg_path=config.get("ffmpeg_path"),
        ffprobe_path=config.get("ffprobe_path"),
        video_seek_start=str(config.get("video_seek_start", VIDEO_SEEK_START)),
        image_quality=int(config.get("image_quality", IMAGE_QUALITY)),
        probe_timeout_sec=_optional_float(config.get("probe_timeout_sec")),
        convert_timeout_sec=_optional_float(config.get("convert_timeout_sec")),
        follow_symlinks=bool(config.get("follow_symlinks", False)),
        ledger_path=config.get("ledger_path"),
    )


def merge_params(
    config: Dict[str, Any],
    cli_overrides: Dict[str, Any],
) -> Tuple[TransformParams, Dict[str, str]]:
    """Merge params with precedence cli > config > default, tracking sources.

    ``None`` values in ``cli_overrides`` mean "not given on the command line"
    and fall through to the config value.
    """

    defaults = TransformParams()
    from_config = _params_from_dict(config)
    merged = TransformParams()
    sources: Dict[str, str] = {}
    for field_name, default_value in defaults.to_dict().items():
        cli_value = cli_overrides.get(field_name)
        config_value = getattr(from_config, field_name)
        if cli_value is not None:
            value, source = cli_value, "cli"
        elif field_name in config and config_value != default_value:
            value, source = config_value, "config"
        else:
            value, source = default_value, "default"
        setattr(merged, field_name, value)
        sources[field_name] = source
    return merged, sources
