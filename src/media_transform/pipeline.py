"""Tree transform driver: walk, map, skip, dispatch, record."""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from .convert import ConvertResult
from .errors import ErrorCode, FatalError, TransformError, safe_detail
from .ledger import Ledger
from .logging_utils import get_logger
from .media import FileCategory, classify
from .paths import map_path
from .probe import ProbeError
from .scan import is_empty_dir, walk_files
from .transcoder import MediaTools, copy_verbatim

logger = get_logger(__name__)

STATUS_SUCCESS = "success"
STATUS_SKIPPED = "skipped"
STATUS_FAILED = "failed"
STATUS_PLANNED = "planned"


@dataclass
class PipelineOptions:
    dry_run: bool = False
    follow_symlinks: bool = False


@dataclass
class FileOutcome:
    """Terminal state of one discovered file."""

    source: Path
    target: Path
    category: FileCategory
    status: str
    error: Optional[TransformError] = None
    duration_ms: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": str(self.source),
            "target": str(self.target),
            "category": self.category.value,
            "status": self.status,
            "error": self.error.to_dict() if self.error else None,
            "duration_ms": self.duration_ms,
        }


@dataclass
class RunSummary:
    input_root: Path
    output_root: Path
    dry_run: bool = False
    outcomes: List[FileOutcome] = field(default_factory=list)
    started_at: datetime = field(default_factory=datetime.now)
    ended_at: Optional[datetime] = None

    def add(self, outcome: FileOutcome) -> None:
        self.outcomes.append(outcome)

    def count(self, status: str) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status == status)

    @property
    def discovered(self) -> int:
        return len(self.outcomes)

    @property
    def succeeded(self) -> int:
        return self.count(STATUS_SUCCESS)

    @property
    def skipped(self) -> int:
        return self.count(STATUS_SKIPPED)

    @property
    def failed(self) -> int:
        return self.count(STATUS_FAILED)

    @property
    def planned(self) -> int:
        return self.count(STATUS_PLANNED)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "input_root": str(self.input_root),
            "output_root": str(self.output_root),
            "dry_run": self.dry_run,
            "discovered": self.discovered,
            "succeeded": self.succeeded,
            "skipped": self.skipped,
            "failed": self.failed,
            "planned": self.planned,
            "started_at": self.started_at.isoformat(timespec="seconds"),
            "ended_at": self.ended_at.isoformat(timespec="seconds") if self.ended_at else None,
            "outcomes": [outcome.to_dict() for outcome in self.outcomes],
        }


def _absolute(path: Union[str, "os.PathLike[str]"]) -> Path:
    # abspath keeps symlinked roots under their own name, unlike resolve()
    return Path(os.path.abspath(os.fspath(path)))


def check_roots(
    input_root: Union[str, "os.PathLike[str]"],
    output_root: Union[str, "os.PathLike[str]"],
) -> Tuple[Path, Path]:
    """Validate and absolutize both roots, raising :class:`FatalError` when missing."""

    input_dir = _absolute(input_root)
    output_dir = _absolute(output_root)
    if not input_dir.is_dir():
        raise FatalError(
            TransformError(
                code=ErrorCode.INPUT_NOT_FOUND,
                message=f"Input directory does not exist: {input_dir}",
                hint="Pass an existing directory with --input.",
            )
        )
    if not output_dir.is_dir():
        raise FatalError(
            TransformError(
                code=ErrorCode.OUTPUT_NOT_FOUND,
                message=f"Output directory does not exist: {output_dir}",
                hint="Create the output directory before running.",
            )
        )
    return input_dir, output_dir


def _ensure_parent(target: Path) -> None:
    parent = target.parent
    if parent.is_dir():
        return
    try:
        parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise FatalError(
            TransformError(
                code=ErrorCode.OUTPUT_NOT_WRITABLE,
                message=f"Failed to create directory {parent}: {exc}",
                hint="Check permissions and free space on the output volume.",
            )
        ) from exc


def _convert_failed(kind: str, source: Path, result: ConvertResult) -> TransformError:
    stderr = result.stderr.strip()
    # ffmpeg prints the cause last
    reason = stderr.splitlines()[-1] if stderr else "no output"
    return TransformError(
        code=ErrorCode.CONVERT_FAILED,
        message=f"ffmpeg {kind} conversion failed (code={result.returncode}): {source}: {reason}",
        detail=safe_detail({"returncode": result.returncode, "stderr": stderr}),
    )


def _transcode_video(tools: MediaTools, source: Path, target: Path) -> Optional[TransformError]:
    try:
        duration = tools.probe_duration(source)
    except ProbeError as exc:
        return TransformError(
            code=ErrorCode.PROBE_FAILED,
            message=str(exc),
            hint="The file may be corrupt or in an unsupported container.",
            detail=safe_detail(exc.detail),
        )

    result = tools.convert_video(source, target, duration)
    if result.returncode != 0:
        return _convert_failed("video", source, result)
    return None


def _transcode_image(tools: MediaTools, source: Path, target: Path) -> Optional[TransformError]:
    result = tools.convert_image(source, target)
    if result.returncode != 0:
        return _convert_failed("image", source, result)
    return None


def _copy(source: Path, target: Path) -> None:
    try:
        copy_verbatim(source, target)
    except OSError as exc:
        raise FatalError(
            TransformError(
                code=ErrorCode.COPY_FAILED,
                message=f"Failed to copy {source} -> {target}: {exc}",
                hint="Copy failures usually mean a full disk or missing permissions.",
            )
        ) from exc


def _record(ledger: Ledger, target: Path) -> None:
    try:
        ledger.record(target)
    except OSError as exc:
        raise FatalError(
            TransformError(
                code=ErrorCode.LEDGER_NOT_WRITABLE,
                message=f"Failed to append to ledger {ledger.path}: {exc}",
            )
        ) from exc


def process_file(
    source: Path,
    input_root: Path,
    output_root: Path,
    tools: MediaTools,
    ledger: Ledger,
    dry_run: bool = False,
) -> FileOutcome:
    """Drive one file to a terminal state.

    Probe and convert failures come back as a ``failed`` outcome. Directory
    creation, copy and ledger failures raise :class:`FatalError`.
    """

    started = time.monotonic()
    target = map_path(source, input_root, output_root)
    category = classify(source)

    def _outcome(status: str, error: Optional[TransformError] = None) -> FileOutcome:
        elapsed = int((time.monotonic() - started) * 1000)
        return FileOutcome(source, target, category, status, error=error, duration_ms=elapsed)

    if ledger.is_complete(target):
        return _outcome(STATUS_SKIPPED)
    if dry_run:
        return _outcome(STATUS_PLANNED)

    _ensure_parent(target)
    error: Optional[TransformError] = None
    if category is FileCategory.VIDEO:
        error = _transcode_video(tools, source, target)
    elif category is FileCategory.IMAGE:
        error = _transcode_image(tools, source, target)
    else:
        _copy(source, target)

    if error is not None:
        return _outcome(STATUS_FAILED, error)

    _record(ledger, target)
    return _outcome(STATUS_SUCCESS)


def report_outcome(outcome: FileOutcome) -> None:
    line = "%s [%s] %s -> %s"
    args = (outcome.status, outcome.category.value, outcome.source, outcome.target)
    if outcome.status == STATUS_FAILED:
        # Fatal failures end the run, so they are logged one level up
        level = logging.WARNING if outcome.error is None or outcome.error.recoverable else logging.ERROR
        logger.log(level, line + ": %s", *args, outcome.error.message if outcome.error else "unknown error")
    else:
        logger.info(line, *args)


def run_pipeline(
    input_root: Union[str, "os.PathLike[str]"],
    output_root: Union[str, "os.PathLike[str]"],
    tools: MediaTools,
    ledger: Ledger,
    options: Optional[PipelineOptions] = None,
    on_outcome: Optional[Callable[[FileOutcome], None]] = None,
) -> RunSummary:
    """Transform every regular file under ``input_root`` into ``output_root``.

    Files run strictly one after another; each is fully processed, ledger
    update included, before the next begins. Per-file failures are logged and
    counted in the returned summary. A :class:`FatalError` stops the run and
    carries the partial summary as ``exc.summary``.
    """

    options = options or PipelineOptions()
    input_dir, output_dir = check_roots(input_root, output_root)
    summary = RunSummary(input_root=input_dir, output_root=output_dir, dry_run=options.dry_run)
    report = on_outcome or report_outcome

    if is_empty_dir(input_dir):
        logger.info("No files under %s; nothing to do", input_dir)
        summary.ended_at = datetime.now()
        return summary

    logger.info("Transforming %s -> %s (ledger: %s)", input_dir, output_dir, ledger.path)
    for source in walk_files(input_dir, follow_symlinks=options.follow_symlinks):
        try:
            outcome = process_file(source, input_dir, output_dir, tools, ledger, dry_run=options.dry_run)
        except FatalError as exc:
            target = map_path(source, input_dir, output_dir)
            failed = FileOutcome(source, target, classify(source), STATUS_FAILED, error=exc.error)
            summary.add(failed)
            report(failed)
            summary.ended_at = datetime.now()
            exc.summary = summary
            logger.error("Aborting run: %s", exc.error.message)
            raise
        summary.add(outcome)
        report(outcome)

    summary.ended_at = datetime.now()
    logger.info(
        "Done: %d discovered, %d succeeded, %d skipped, %d failed%s",
        summary.discovered,
        summary.succeeded,
        summary.skipped,
        summary.failed,
        f", {summary.planned} planned" if options.dry_run else "",
    )
    return summary
