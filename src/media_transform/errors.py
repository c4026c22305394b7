"""Unified error model and exit code constants for media-transform."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional


# Error codes (string constants)
class ErrorCode:
    """Error code constants for structured error reporting."""

    # Dependency errors
    DEPS_MISSING = "deps_missing"
    DEPS_BROKEN = "deps_broken"

    # Precondition errors
    INPUT_NOT_FOUND = "input_not_found"
    OUTPUT_NOT_FOUND = "output_not_found"
    OUTPUT_NOT_WRITABLE = "output_not_writable"
    LEDGER_NOT_WRITABLE = "ledger_not_writable"

    # Configuration errors
    INVALID_CONFIG = "invalid_config"

    # Per-file errors (recoverable)
    PROBE_FAILED = "probe_failed"
    CONVERT_FAILED = "convert_failed"

    # Per-file errors (fatal)
    COPY_FAILED = "copy_failed"

    # Internal errors
    INTERNAL_ERROR = "internal_error"


# Exit codes (int constants)
class ExitCode:
    """Exit code constants for the CLI."""

    SUCCESS = 0
    GENERAL_FAILED = 1
    DEPS_MISSING = 2
    INPUT_NOT_FOUND = 10
    OUTPUT_NOT_FOUND = 11
    OUTPUT_NOT_WRITABLE = 11
    LEDGER_NOT_WRITABLE = 12
    INVALID_CONFIG = 13
    COPY_FAILED = 14
    INTERNAL_ERROR = 99


ERROR_TO_EXIT_CODE: Dict[str, int] = {
    ErrorCode.DEPS_MISSING: ExitCode.DEPS_MISSING,
    ErrorCode.DEPS_BROKEN: ExitCode.DEPS_MISSING,
    ErrorCode.INPUT_NOT_FOUND: ExitCode.INPUT_NOT_FOUND,
    ErrorCode.OUTPUT_NOT_FOUND: ExitCode.OUTPUT_NOT_FOUND,
    ErrorCode.OUTPUT_NOT_WRITABLE: ExitCode.OUTPUT_NOT_WRITABLE,
    ErrorCode.LEDGER_NOT_WRITABLE: ExitCode.LEDGER_NOT_WRITABLE,
    ErrorCode.INVALID_CONFIG: ExitCode.INVALID_CONFIG,
    ErrorCode.COPY_FAILED: ExitCode.COPY_FAILED,
    ErrorCode.INTERNAL_ERROR: ExitCode.INTERNAL_ERROR,
}

# Per-file failures that never abort a run
RECOVERABLE_CODES = frozenset({ErrorCode.PROBE_FAILED, ErrorCode.CONVERT_FAILED})


@dataclass
class TransformError:
    """Structured error entry attached to a file outcome or a fatal abort."""

    code: str
    message: str
    hint: Optional[str] = None
    detail: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.hint is not None:
            result["hint"] = self.hint
        if self.detail is not None:
            result["detail"] = self.detail
        return result

    @property
    def recoverable(self) -> bool:
        return self.code in RECOVERABLE_CODES


class FatalError(RuntimeError):
    """Raised when the pipeline cannot continue with any further file."""

    def __init__(self, error: TransformError) -> None:
        super().__init__(error.message)
        self.error = error
        # Partial run summary, attached by the pipeline when it aborts
        self.summary: Optional[Any] = None

    @property
    def code(self) -> str:
        return self.error.code

    @property
    def exit_code(self) -> int:
        return exit_code_for(self.error.code)


def exit_code_for(code: str) -> int:
    """Map an error code to the CLI exit code, defaulting to a general failure."""

    return ERROR_TO_EXIT_CODE.get(code, ExitCode.GENERAL_FAILED)


def safe_detail(obj: Any, max_len: int = 2000) -> Optional[Dict[str, Any]]:
    """Create a safe detail dictionary, truncating long strings.

    Parameters
    ----------
    obj: Any
        Object to convert to detail dict. If dict, truncates string values.
    max_len: int
        Maximum length for string values in detail.

    Returns
    -------
    Optional[Dict[str, Any]]
        Detail dictionary with truncated strings, or None if obj is None.
    """
    if obj is None:
        return None

    if isinstance(obj, dict):
        result: Dict[str, Any] = {}
        for key, value in obj.items():
            if isinstance(value, str) and len(value) > max_len:
                result[key] = value[:max_len] + f"... (truncated, original length: {len(value)})"
            else:
                result[key] = value
        return result

    if isinstance(obj, str):
        if len(obj) > max_len:
            return {"message": obj[:max_len] + f"... (truncated, original length: {len(obj)})"}
        return {"message": obj}

    return {"data": str(obj)[:max_len]}
