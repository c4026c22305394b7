"""Locate ffmpeg/ffprobe and report whether a transform run can start.

Each tool is resolved through ``shutil.which`` and asked for ``-version``; the
banner's first line carries the version and a ``configuration:`` line the
build flags. Nothing is converted here.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
import platform
import re
import shutil
from typing import Any, Dict, List, Optional, Tuple

from .errors import ErrorCode, ExitCode
from .subprocess_utils import CommandTimeout, run_cmd

REQUIRED_TOOLS = ("ffmpeg", "ffprobe")
VERSION_TIMEOUT_SEC = 10

_VERSION_RE = re.compile(r"\bversion\s+(\S+)")


@dataclass
class ToolInfo:
    name: str
    path: str
    returncode: int
    version: Optional[str] = None
    build: Dict[str, str] = field(default_factory=dict)

    @property
    def usable(self) -> bool:
        return self.returncode == 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "path": self.path,
            "returncode": self.returncode,
            "version": self.version,
            "build": dict(self.build),
        }


@dataclass
class DepsReport:
    """Outcome of probing every tool in ``REQUIRED_TOOLS``."""

    tools: Dict[str, Optional[ToolInfo]]
    errors: List[Dict[str, Optional[str]]] = field(default_factory=list)
    created_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat(timespec="seconds"))
    platform: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": self.ok,
            "tools": {name: info.to_dict() if info else None for name, info in self.tools.items()},
            "errors": list(self.errors),
            "created_at": self.created_at,
            "platform": dict(self.platform),
        }


def parse_banner(banner: str) -> Tuple[Optional[str], Dict[str, str]]:
    """Split ``<tool> -version`` output into a version token and build details.

    ``ffmpeg version 6.1.1-3ubuntu5 Copyright ...`` yields ``"6.1.1-3ubuntu5"``;
    distribution builds such as ``6.0-essentials_build-www.gyan.dev`` come back
    whole. Only the first non-empty line is searched for the version.
    """

    version: Optional[str] = None
    build: Dict[str, str] = {}
    lines = [line.strip() for line in banner.splitlines() if line.strip()]
    if lines:
        match = _VERSION_RE.search(lines[0])
        version = match.group(1) if match else None
    for line in lines:
        lowered = line.lower()
        if lowered.startswith("configuration:"):
            build["configuration"] = line.split(":", 1)[1].strip()
        elif lowered.startswith("built with "):
            build["built_with"] = line[len("built with "):].strip()
    return version, build


def detect_tool(name: str, configured_path: Optional[str] = None) -> Optional[ToolInfo]:
    """Return details for ``name``, or ``None`` when it is not installed.

    ``configured_path`` may be absolute or a bare command; either way it is
    resolved with ``shutil.which``, so a non-executable file counts as missing.
    ``CommandTimeout`` and ``OSError`` from running the binary propagate.
    """

    path = shutil.which(configured_path or name)
    if path is None:
        return None

    result = run_cmd([path, "-version"], timeout_sec=VERSION_TIMEOUT_SEC)
    banner = result.stdout.strip() or result.stderr.strip()
    version, build = parse_banner(banner)
    return ToolInfo(name=name, path=path, returncode=result.returncode, version=version, build=build)


def _platform_info() -> Dict[str, str]:
    return {
        "system": platform.system(),
        "release": platform.release(),
        "machine": platform.machine(),
        "python_version": platform.python_version(),
    }


def _problem(code: str, message: str, hint: Optional[str] = None) -> Dict[str, Optional[str]]:
    return {"code": code, "message": message, "hint": hint}


def _check_one(
    name: str, configured_path: Optional[str]
) -> Tuple[Optional[ToolInfo], Optional[Dict[str, Optional[str]]]]:
    try:
        info = detect_tool(name, configured_path)
    except CommandTimeout as exc:
        return None, _problem(ErrorCode.DEPS_BROKEN, f"{name} -version timed out after {exc.timeout_sec}s")
    except OSError as exc:
        return None, _problem(ErrorCode.DEPS_BROKEN, f"{name} could not be started: {exc}")

    if info is None:
        where = configured_path or "PATH"
        return None, _problem(
            ErrorCode.DEPS_MISSING,
            f"{name} not found in {where}",
            hint="Install ffmpeg (it ships ffprobe) or set ffmpeg_path/ffprobe_path in the config.",
        )
    if not info.usable:
        return info, _problem(
            ErrorCode.DEPS_BROKEN,
            f"{name} -version exited with code {info.returncode}",
            hint=f"Reinstall {name}.",
        )
    return info, None


def determine_exit_code(report: DepsReport) -> int:
    return ExitCode.SUCCESS if report.ok else ExitCode.DEPS_MISSING


def check_deps(ffmpeg_path: Optional[str] = None, ffprobe_path: Optional[str] = None) -> DepsReport:
    """Probe ffmpeg and ffprobe, honouring configured binary paths."""

    configured = {"ffmpeg": ffmpeg_path, "ffprobe": ffprobe_path}
    report = DepsReport(tools={}, platform=_platform_info())
    for name in REQUIRED_TOOLS:
        info, problem = _check_one(name, configured[name])
        report.tools[name] = info
        if problem is not None:
            report.errors.append(problem)
    return report
