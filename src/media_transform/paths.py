"""Output path computation for mirrored trees."""
from __future__ import annotations

import os
from pathlib import Path
from typing import Union

PathLike = Union[str, "os.PathLike[str]"]


def map_path(source_path: PathLike, input_root: PathLike, output_root: PathLike) -> Path:
    """Mirror ``source_path`` under ``output_root``.

    The input root's own directory name is kept: for input root ``/a/b/c`` and
    output root ``/x/y``, ``/a/b/c/d/e.mp4`` maps to ``/x/y/c/d/e.mp4``.
    The ``parent(input_root)`` prefix of the source is swapped for the output
    root. When the input root is a filesystem root it has no parent, and the
    whole source path (minus its leading separator) goes under the output root.

    Sources are expected to come from walking ``input_root``. A source outside
    that prefix is placed under the output root as-is rather than rejected.
    """

    source = os.fspath(source_path)
    root = Path(input_root)
    output = Path(output_root)
    parent = root.parent

    if parent == root:
        return output / source.lstrip(os.sep + "/")

    prefix = str(parent)
    remainder = source[len(prefix):] if source.startswith(prefix) else source
    return output / remainder.lstrip(os.sep + "/")
