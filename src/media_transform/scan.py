"""Recursive input tree walker."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Iterator

from .logging_utils import get_logger

logger = get_logger(__name__)


def _log_walk_error(exc: OSError) -> None:
    logger.warning("Cannot read directory %s: %s", exc.filename, exc.strerror or exc)


def is_empty_dir(root: Path) -> bool:
    """Return True when ``root`` has no entries at all."""

    with os.scandir(root) as entries:
        return next(entries, None) is None


def walk_files(root: Path, follow_symlinks: bool = False) -> Iterator[Path]:
    """Yield every regular file under ``root``.

    Symlinked directories are not descended into and symlinked files are
    skipped unless ``follow_symlinks`` is set. Unreadable directories are
    logged and skipped. Within a directory, names are visited in sorted order;
    callers must not rely on any cross-directory order.
    """

    for dirpath, dirnames, filenames in os.walk(root, onerror=_log_walk_error, followlinks=follow_symlinks):
        dirnames.sort()
        for name in sorted(filenames):
            path = Path(dirpath) / name
            if path.is_symlink() and not follow_symlinks:
                logger.debug("Skipping symlink %s", path)
                continue
            if not path.is_file():
                continue
            yield path
