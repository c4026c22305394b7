"""Conversion between probe durations and ffmpeg ``HH:MM:SS.CC`` timecodes."""
from __future__ import annotations

import math

from .constants import TIMECODE_EPSILON

_CENTIS_PER_SECOND = 100
_CENTIS_PER_MINUTE = 60 * _CENTIS_PER_SECOND
_CENTIS_PER_HOUR = 60 * _CENTIS_PER_MINUTE


def format_timecode(seconds: float) -> str:
    """Format ``seconds`` as ``HH:MM:SS.CC`` for use as an ffmpeg ``-to`` point.

    ``TIMECODE_EPSILON`` is subtracted first so the trim point lands strictly
    before the reported end of stream. Components are floored, and inputs
    shorter than the epsilon clamp to ``00:00:00.00``.

    The decomposition runs on whole centiseconds so float noise such as
    ``61.21999999`` cannot drop a centisecond. Rounding to six places before
    flooring absorbs that noise without changing any real value.
    """

    if math.isnan(seconds) or math.isinf(seconds):
        raise ValueError(f"Cannot format non-finite duration: {seconds!r}")

    total = math.floor(round((seconds - TIMECODE_EPSILON) * _CENTIS_PER_SECOND, 6))
    total = max(total, 0)

    hours, remainder = divmod(total, _CENTIS_PER_HOUR)
    minutes, remainder = divmod(remainder, _CENTIS_PER_MINUTE)
    secs, centis = divmod(remainder, _CENTIS_PER_SECOND)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}.{centis:02d}"


def parse_duration(text: str) -> float:
    """Parse ffprobe's bare ``format=duration`` output into seconds.

    The value is rounded to centiseconds, the precision the timecode keeps.
    Raises ``ValueError`` for empty, non-numeric, negative or non-finite text
    (``N/A`` is what ffprobe prints for streams without a duration).
    """

    value = float(text.strip())
    if math.isnan(value) or math.isinf(value) or value < 0:
        raise ValueError(f"Invalid duration: {text.strip()!r}")
    return round(value, 2)
