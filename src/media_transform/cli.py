"""Command-line interface for media-transform."""
from __future__ import annotations

import json
from pathlib import Path
import sys
from typing import Any, Dict, Optional

import typer

from .config import ConfigError, load_config
from .deps import check_deps, determine_exit_code
from .errors import ErrorCode, ExitCode, FatalError, exit_code_for
from .ledger import Ledger
from .logging_utils import get_logger, setup_logging
from .params import TransformParams, merge_params
from .pipeline import PipelineOptions, check_roots, run_pipeline
from .transcoder import FfmpegTools

app = typer.Typer(help="media-transform: mirror a directory tree, re-encoding videos and images with ffmpeg")
logger = get_logger(__name__)


def _load_params(config: Optional[str], cli_overrides: Dict[str, Any]) -> TransformParams:
    try:
        config_data = load_config(Path(config)) if config else load_config()
    except ConfigError as exc:
        typer.echo(f"Failed to load config: {exc}", err=True)
        raise typer.Exit(code=ExitCode.INVALID_CONFIG)
    params, sources = merge_params(config_data, cli_overrides)
    for name, source in sorted(sources.items()):
        if source != "default":
            logger.debug("param %s=%r (from %s)", name, getattr(params, name), source)
    return params


def _echo_fatal(exc: FatalError) -> None:
    hint = f" (hint: {exc.error.hint})" if exc.error.hint else ""
    typer.echo(f"ERROR: {exc.error.message}{hint}", err=True)


@app.command("check-deps")
def check_deps_command(
    config: Optional[str] = typer.Option(None, help="Path to YAML config file"),
    json_output: bool = typer.Option(False, "--json", help="Output report as JSON"),
    verbose: bool = typer.Option(False, "--verbose", help="Show verbose details"),
) -> None:
    """Check that ffmpeg and ffprobe are installed."""

    params = _load_params(config, {})
    report = check_deps(ffmpeg_path=params.ffmpeg_path, ffprobe_path=params.ffprobe_path)
    exit_code = determine_exit_code(report)

    if json_output:
        indent = 2 if verbose else None
        typer.echo(json.dumps(report.to_dict(), ensure_ascii=False, indent=indent))
        raise typer.Exit(code=exit_code)

    typer.echo(f"check-deps: {'OK' if report.ok else 'FAIL'}")
    for name, info in report.tools.items():
        if info is None:
            typer.echo(f"{name}: not found")
        else:
            version_str = f" (version: {info.version})" if info.version else ""
            typer.echo(f"{name}: {info.path}{version_str}")

    if verbose:
        typer.echo("platform:")
        for key, value in report.platform.items():
            typer.echo(f"  - {key}: {value}")

    for err in report.errors:
        hint = f" (hint: {err['hint']})" if err.get("hint") else ""
        typer.echo(f"ERROR: {err['message']}{hint}", err=True)

    raise typer.Exit(code=exit_code)


@app.command()
def run(
    input_dir: str = typer.Option(..., "--input", "-i", help="Root of the source tree"),
    output_dir: str = typer.Option(".", "--output", "-o", help="Directory the mirrored tree is written under"),
    ledger_path: Optional[str] = typer.Option(None, "--ledger", help="Completion ledger file (default: ~/.media-transform.log)"),
    config: Optional[str] = typer.Option(None, help="Path to YAML config file"),
    follow_symlinks: Optional[bool] = typer.Option(
        None, "--follow-symlinks/--no-follow-symlinks", help="Descend into symlinked directories and files"
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="List planned work without converting or recording"),
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging"),
    log_file: Optional[str] = typer.Option(None, "--log-file", help="Also write logs to this file"),
    json_output: bool = typer.Option(False, "--json", help="Print the run summary as JSON"),
) -> None:
    """Transform every file under --input into a mirrored tree under --output."""

    setup_logging(verbose=verbose, log_file=Path(log_file) if log_file else None)
    params = _load_params(config, {"ledger_path": ledger_path, "follow_symlinks": follow_symlinks})

    try:
        input_root, output_root = check_roots(input_dir, output_dir)
    except FatalError as exc:
        _echo_fatal(exc)
        raise typer.Exit(code=exc.exit_code)

    if not dry_run:
        deps_report = check_deps(ffmpeg_path=params.ffmpeg_path, ffprobe_path=params.ffprobe_path)
        deps_exit = determine_exit_code(deps_report)
        if deps_exit != ExitCode.SUCCESS:
            for err in deps_report.errors:
                typer.echo(f"ERROR: {err['message']}", err=True)
            raise typer.Exit(code=deps_exit)

    ledger_file = params.resolved_ledger_path()
    options = PipelineOptions(dry_run=dry_run, follow_symlinks=params.follow_symlinks)
    try:
        ledger = Ledger.open(ledger_file, read_only=dry_run)
    except OSError as exc:
        typer.echo(f"ERROR: Cannot open ledger {ledger_file}: {exc}", err=True)
        raise typer.Exit(code=exit_code_for(ErrorCode.LEDGER_NOT_WRITABLE))

    with ledger:
        try:
            summary = run_pipeline(input_root, output_root, FfmpegTools(params), ledger, options)
        except FatalError as exc:
            _echo_fatal(exc)
            if json_output and exc.summary is not None:
                typer.echo(json.dumps(exc.summary.to_dict(), ensure_ascii=False, indent=2))
            raise typer.Exit(code=exc.exit_code)
        except Exception as exc:  # pragma: no cover
            logger.exception("Unhandled error during run")
            typer.echo(f"ERROR: Unhandled error: {exc}", err=True)
            raise typer.Exit(code=ExitCode.INTERNAL_ERROR)

    if json_output:
        typer.echo(json.dumps(summary.to_dict(), ensure_ascii=False, indent=2))
    raise typer.Exit(code=ExitCode.SUCCESS)


def main(argv: Optional[list[str]] = None) -> int:
    """Entrypoint for console script."""

    argv = argv if argv is not None else sys.argv[1:]
    app(prog_name="media-transform", args=list(argv))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
