"""CLI `run` wiring: preconditions, exit codes and ledger handling."""
from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner

from media_transform import cli
from media_transform.cli import app
from media_transform.deps import DepsReport
from tests.conftest import StubTools, make_tree, read_ledger_targets


def _ok_report(**kwargs) -> DepsReport:
    return DepsReport(tools={"ffmpeg": None, "ffprobe": None})


def _missing_report(**kwargs) -> DepsReport:
    return DepsReport(
        tools={"ffmpeg": None, "ffprobe": None},
        errors=[{"code": "deps_missing", "message": "ffmpeg not found in PATH", "hint": None}],
    )


@pytest.fixture
def stubbed_cli(monkeypatch: pytest.MonkeyPatch) -> StubTools:
    tools = StubTools()
    monkeypatch.setattr(cli, "check_deps", _ok_report)
    monkeypatch.setattr(cli, "FfmpegTools", lambda params=None: tools)
    return tools


def _run(*args: str):
    return CliRunner().invoke(app, ["run", *args])


def test_run_success_writes_mirror_and_ledger(tmp_path: Path, stubbed_cli: StubTools) -> None:
    input_root = make_tree(tmp_path / "in", {"a.mp4": b"v", "b.png": b"i", "c.txt": b"t"})
    output_root = tmp_path / "out"
    output_root.mkdir()
    ledger_path = tmp_path / "ledger.log"

    result = _run("--input", str(input_root), "--output", str(output_root), "--ledger", str(ledger_path))

    assert result.exit_code == 0, result.output
    assert (output_root / "in" / "c.txt").read_bytes() == b"t"
    assert len(read_ledger_targets(ledger_path)) == 3
    assert stubbed_cli.conversions == 2


def test_run_with_corrupt_media_still_exits_zero(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    tools = StubTools(corrupt={"bad.mp4"})
    monkeypatch.setattr(cli, "check_deps", _ok_report)
    monkeypatch.setattr(cli, "FfmpegTools", lambda params=None: tools)
    input_root = make_tree(tmp_path / "in", {"bad.mp4": b"junk", "good.mp4": b"v"})
    output_root = tmp_path / "out"
    output_root.mkdir()

    result = _run("-i", str(input_root), "-o", str(output_root), "--ledger", str(tmp_path / "ledger.log"))

    assert result.exit_code == 0, result.output
    assert read_ledger_targets(tmp_path / "ledger.log") == [str(output_root / "in" / "good.mp4")]


def test_run_missing_input_exits_10(tmp_path: Path, stubbed_cli: StubTools) -> None:
    result = _run("--input", str(tmp_path / "nope"), "--output", str(tmp_path), "--ledger", str(tmp_path / "l.log"))
    assert result.exit_code == 10
    assert not (tmp_path / "l.log").exists()


def test_run_missing_output_exits_11(tmp_path: Path, stubbed_cli: StubTools) -> None:
    input_root = make_tree(tmp_path / "in", {"a.txt": b"t"})
    result = _run("--input", str(input_root), "--output", str(tmp_path / "nope"), "--ledger", str(tmp_path / "l.log"))
    assert result.exit_code == 11


def test_run_invalid_config_exits_13(tmp_path: Path, stubbed_cli: StubTools) -> None:
    config_path = tmp_path / "bad.yaml"
    config_path.write_text("image_quality: 99\n", encoding="utf-8")
    input_root = make_tree(tmp_path / "in", {"a.txt": b"t"})

    result = _run("--input", str(input_root), "--output", str(tmp_path), "--config", str(config_path))
    assert result.exit_code == 13


def test_run_copy_failure_exits_14(tmp_path: Path, stubbed_cli: StubTools, monkeypatch: pytest.MonkeyPatch) -> None:
    def _deny_copy(src, dst, *args, **kwargs):
        raise PermissionError(13, "Permission denied", str(dst))

    monkeypatch.setattr("media_transform.transcoder.shutil.copyfile", _deny_copy)
    input_root = make_tree(tmp_path / "in", {"a.txt": b"t", "b.mp4": b"v"})
    output_root = tmp_path / "out"
    output_root.mkdir()

    result = _run("-i", str(input_root), "-o", str(output_root), "--ledger", str(tmp_path / "l.log"))

    assert result.exit_code == 14
    assert stubbed_cli.calls == []


def test_run_missing_deps_exits_2_before_any_work(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    tools = StubTools()
    monkeypatch.setattr(cli, "check_deps", _missing_report)
    monkeypatch.setattr(cli, "FfmpegTools", lambda params=None: tools)
    input_root = make_tree(tmp_path / "in", {"a.txt": b"t"})
    output_root = tmp_path / "out"
    output_root.mkdir()

    result = _run("-i", str(input_root), "-o", str(output_root), "--ledger", str(tmp_path / "l.log"))

    assert result.exit_code == 2
    assert list(output_root.iterdir()) == []
    assert not (tmp_path / "l.log").exists()


def test_run_dry_run_skips_deps_and_writes_nothing(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    tools = StubTools()
    monkeypatch.setattr(cli, "check_deps", _missing_report)
    monkeypatch.setattr(cli, "FfmpegTools", lambda params=None: tools)
    input_root = make_tree(tmp_path / "in", {"a.mp4": b"v"})
    output_root = tmp_path / "out"
    output_root.mkdir()

    result = _run("-i", str(input_root), "-o", str(output_root), "--ledger", str(tmp_path / "l.log"), "--dry-run")

    assert result.exit_code == 0, result.output
    assert tools.calls == []
    assert list(output_root.iterdir()) == []
    assert not (tmp_path / "l.log").exists()


def test_run_unwritable_ledger_exits_12(tmp_path: Path, stubbed_cli: StubTools) -> None:
    input_root = make_tree(tmp_path / "in", {"a.txt": b"t"})
    # A directory where the ledger file should be cannot be opened for appending
    ledger_path = tmp_path / "ledger_dir"
    ledger_path.mkdir()

    result = _run("-i", str(input_root), "-o", str(tmp_path), "--ledger", str(ledger_path))
    assert result.exit_code == 12


@pytest.mark.parametrize("extra", [[], ["--dry-run"]])
def test_run_accepts_ledger_with_non_utf8_bytes(tmp_path: Path, stubbed_cli: StubTools, extra) -> None:
    input_root = make_tree(tmp_path / "in", {"a.txt": b"t"})
    output_root = tmp_path / "out"
    output_root.mkdir()
    ledger_path = tmp_path / "ledger.log"
    ledger_path.write_bytes(b"2024-01-01 00:00:00: /elsewhere/caf\xe9.mp4\n")

    result = _run("-i", str(input_root), "-o", str(output_root), "--ledger", str(ledger_path), *extra)

    assert result.exit_code == 0, result.output
    assert ledger_path.read_bytes().startswith(b"2024-01-01 00:00:00: /elsewhere/caf\xe9.mp4\n")


def test_run_writes_log_file(tmp_path: Path, stubbed_cli: StubTools) -> None:
    input_root = make_tree(tmp_path / "in", {"a.txt": b"t"})
    output_root = tmp_path / "out"
    output_root.mkdir()
    log_file = tmp_path / "logs" / "run.log"

    result = _run(
        "-i",
        str(input_root),
        "-o",
        str(output_root),
        "--ledger",
        str(tmp_path / "l.log"),
        "--log-file",
        str(log_file),
    )

    assert result.exit_code == 0, result.output
    content = log_file.read_text(encoding="utf-8")
    assert "success [other]" in content
    assert "Done: 1 discovered" in content


def test_ledger_from_config_file(tmp_path: Path, stubbed_cli: StubTools) -> None:
    ledger_path = tmp_path / "from_config.log"
    config_path = tmp_path / "config.yaml"
    config_path.write_text(f"ledger_path: '{ledger_path}'\n", encoding="utf-8")
    input_root = make_tree(tmp_path / "in", {"a.txt": b"t"})
    output_root = tmp_path / "out"
    output_root.mkdir()

    result = _run("-i", str(input_root), "-o", str(output_root), "--config", str(config_path))

    assert result.exit_code == 0, result.output
    assert read_ledger_targets(ledger_path) == [str(output_root / "in" / "a.txt")]


def test_cli_help() -> None:
    result = CliRunner().invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "media-transform" in result.stdout
    assert "run" in result.stdout
    assert "check-deps" in result.stdout
