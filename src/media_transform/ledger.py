"""Append-only completion ledger that makes reruns resumable.

Each completed target is one line, UTF-8 with undecodable filename bytes kept
as-is (``surrogateescape``)::

    2024-03-01 12:00:00: /backup/videos/trip/day1.mp4

The whole file is read once at open time into a set keyed on the exact target
path, so membership is an O(1) lookup rather than a substring search over the
log text. Lines are only ever appended; existing lines are never rewritten.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from types import TracebackType
from typing import IO, Iterator, List, Optional, Set, Tuple, Type, Union

from .constants import LEDGER_TIMESTAMP_FORMAT
from .logging_utils import get_logger

logger = get_logger(__name__)

_SEPARATOR = ": "
# Suffix written by older releases of the tool after each path
_LEGACY_SUFFIX = " ok!"


@dataclass(frozen=True)
class CompletionRecord:
    timestamp: str
    target_path: str

    def to_line(self) -> str:
        return f"{self.timestamp}{_SEPARATOR}{self.target_path}\n"


def _normalize(target_path: Union[str, "os.PathLike[str]"]) -> str:
    return os.path.normpath(os.fspath(target_path))


def parse_line(line: str) -> Optional[CompletionRecord]:
    """Parse one ledger line, returning ``None`` for blank or malformed lines."""

    text = line.rstrip("\r\n")
    if not text.strip():
        return None
    timestamp, sep, target = text.partition(_SEPARATOR)
    if not sep or not target:
        return None
    if target.endswith(_LEGACY_SUFFIX):
        target = target[: -len(_LEGACY_SUFFIX)]
    return CompletionRecord(timestamp=timestamp, target_path=_normalize(target))


def _load(ledger_path: Path, content: str) -> Tuple[List[CompletionRecord], bool]:
    """Parse ledger text, returning the records and whether a partial line was found."""

    lines = content.split("\n")
    # Only newline-terminated lines were fully written
    partial = lines.pop()
    records: List[CompletionRecord] = []
    skipped = 0
    for line in lines:
        record = parse_line(line)
        if record is None:
            if line.strip():
                skipped += 1
            continue
        records.append(record)

    if partial:
        logger.warning("Ignoring unterminated last line in ledger %s: %r", ledger_path, partial)
    if skipped:
        logger.warning("Ignored %d malformed line(s) in ledger %s", skipped, ledger_path)
    logger.debug("Loaded %d completion record(s) from %s", len(records), ledger_path)
    return records, bool(partial)


class Ledger:
    """Completion ledger bound to one open file for the duration of a run.

    Use :meth:`open` as a context manager so the handle is released on every
    exit path::

        with Ledger.open(path) as ledger:
            if not ledger.is_complete(target):
                ...
                ledger.record(target)
    """

    def __init__(self, path: Path, handle: Optional[IO[str]], records: List[CompletionRecord]) -> None:
        self.path = path
        self._handle = handle
        self._records = records
        self._completed: Set[str] = {record.target_path for record in records}

    @classmethod
    def open(cls, path: Union[str, "os.PathLike[str]"], read_only: bool = False) -> "Ledger":
        """Open (creating if absent) the ledger at ``path`` and load its records.

        With ``read_only`` the file is neither created nor kept open, and
        :meth:`record` refuses to write. Dry runs use this.
        """

        ledger_path = Path(path)
        if read_only:
            content = ledger_path.read_text(encoding="utf-8", errors="surrogateescape") if ledger_path.exists() else ""
            records, _ = _load(ledger_path, content)
            return cls(ledger_path, None, records)

        ledger_path.parent.mkdir(parents=True, exist_ok=True)
        handle = ledger_path.open("a+", encoding="utf-8", errors="surrogateescape", newline="\n")
        try:
            handle.seek(0)
            records, partial = _load(ledger_path, handle.read())
            if partial:
                # Keep the next record off the unterminated line
                handle.write("\n")
                handle.flush()
        except BaseException:
            handle.close()
            raise
        return cls(ledger_path, handle, records)

    @property
    def closed(self) -> bool:
        return self._handle is None

    def is_complete(self, target_path: Union[str, "os.PathLike[str]"]) -> bool:
        return _normalize(target_path) in self._completed

    def record(
        self,
        target_path: Union[str, "os.PathLike[str]"],
        timestamp: Optional[Union[datetime, str]] = None,
    ) -> CompletionRecord:
        """Append a completion line and mark ``target_path`` complete.

        The line is flushed and fsynced before returning, so a crash after
        ``record`` returns cannot lose it.
        """

        if self._handle is None:
            raise ValueError(f"Ledger {self.path} is closed")

        if timestamp is None:
            timestamp = datetime.now()
        if isinstance(timestamp, datetime):
            timestamp = timestamp.strftime(LEDGER_TIMESTAMP_FORMAT)

        record = CompletionRecord(timestamp=timestamp, target_path=_normalize(target_path))
        self._handle.write(record.to_line())
        self._handle.flush()
        os.fsync(self._handle.fileno())

        self._records.append(record)
        self._completed.add(record.target_path)
        return record

    def records(self) -> List[CompletionRecord]:
        return list(self._records)

    def close(self) -> None:
        if self._handle is not None:
            self._handle.close()
            self._handle = None

    def __contains__(self, target_path: object) -> bool:
        if not isinstance(target_path, (str, os.PathLike)):
            return False
        return self.is_complete(target_path)

    def __len__(self) -> int:
        return len(self._completed)

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._completed))

    def __enter__(self) -> "Ledger":
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        self.close()

    def __del__(self) -> None:
        # Last-resort release when the ledger is dropped without close()
        handle = getattr(self, "_handle", None)
        if handle is not None:
            handle.close()
