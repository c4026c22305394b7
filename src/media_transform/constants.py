"""Constants and path conventions for media-transform."""
from __future__ import annotations

from pathlib import Path

DEFAULT_LEDGER_NAME = ".media-transform.log"
DEFAULT_LEDGER_PATH = Path.home() / DEFAULT_LEDGER_NAME
LEDGER_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

CONFIGS_DIR = Path(__file__).parent / "configs"
SCHEMAS_DIR = Path(__file__).parent / "schemas"

# Extensions are matched lower-cased and without the leading dot
VIDEO_EXTENSIONS = frozenset(
    {
        "mp4",
        "mkv",
        "avi",
        "mwv",
        "rm",
        "rmvb",
        "flv",
        "mov",
        "vob",
        "mpg",
        "qt",
        "mpeg",
        "ogg",
        "3gp",
    }
)

IMAGE_EXTENSIONS = frozenset({"jpeg", "png", "gif", "bmp", "tiff", "webp", "heif"})

# Trim leading frames that are often malformed in downloaded media
VIDEO_SEEK_START = "00:00:00.05"
# Bias the end trim point before the reported end of stream
TIMECODE_EPSILON = 0.01
IMAGE_QUALITY = 2
FFMPEG_LOGLEVEL = "error"
