"""Media classification by file extension."""
from __future__ import annotations

import os
from enum import Enum
from typing import Union

from .constants import IMAGE_EXTENSIONS, VIDEO_EXTENSIONS


class FileCategory(str, Enum):
    VIDEO = "video"
    IMAGE = "image"
    OTHER = "other"


def extension_of(path: Union[str, "os.PathLike[str]"]) -> str:
    """Return the lower-cased extension of ``path`` without the dot, or ``""``."""

    name = os.path.basename(os.fspath(path))
    _, ext = os.path.splitext(name)
    return ext[1:].lower()


def classify(path: Union[str, "os.PathLike[str]"]) -> FileCategory:
    """Classify a file as video, image or other from its extension alone."""

    ext = extension_of(path)
    if ext in VIDEO_EXTENSIONS:
        return FileCategory.VIDEO
    if ext in IMAGE_EXTENSIONS:
        return FileCategory.IMAGE
    return FileCategory.OTHER
