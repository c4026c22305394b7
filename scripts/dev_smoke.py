#!/usr/bin/env python3
"""Quick smoke test for local development.

Builds a small media tree with ffmpeg, runs ``media-transform run`` on it twice
and checks that the second run is a no-op. No network access is needed.
"""
from __future__ import annotations

import json
import shutil
import subprocess
import sys
import tempfile
from pathlib import Path

from media_transform.subprocess_utils import run_cmd


def check_deps() -> bool:
    """Check if dependencies are available."""
    print("Checking dependencies...")
    result = subprocess.run(
        ["media-transform", "check-deps", "--json"],
        capture_output=True,
        text=True,
    )
    try:
        report = json.loads(result.stdout)
    except json.JSONDecodeError:
        print("ERROR: Failed to parse check-deps output")
        print(result.stderr)
        return False

    if not report.get("ok", False):
        print("WARNING: Dependencies check reported issues")
        for err in report.get("errors", []):
            print(f"  - {err.get('code')}: {err.get('message')}")
        return False

    print("Dependencies OK")
    return True


def build_tree(root: Path) -> None:
    """Create one video, one image and one text file under ``root``."""
    print("Generating test media...")
    ffmpeg_path = shutil.which("ffmpeg")
    if not ffmpeg_path:
        print("ERROR: ffmpeg not found")
        sys.exit(1)

    (root / "clips").mkdir(parents=True)
    (root / "stills").mkdir()
    sources = {
        root / "clips" / "smoke.mp4": ["-i", "testsrc=duration=2:size=160x120:rate=10", "-pix_fmt", "yuv420p"],
        root / "stills" / "smoke.png": ["-i", "testsrc=size=64x48:rate=1", "-frames:v", "1"],
    }
    for output_path, args in sources.items():
        cmd = [ffmpeg_path, "-y", "-hide_banner", "-loglevel", "error", "-f", "lavfi", *args, str(output_path)]
        result = run_cmd(cmd, timeout_sec=30)
        if result.returncode != 0:
            print(f"ERROR: Failed to generate {output_path.name}: {result.stderr}")
            sys.exit(1)
    (root / "notes.txt").write_text("smoke\n", encoding="utf-8")


def run_transform(input_dir: Path, out_dir: Path, ledger: Path) -> dict | None:
    """Run the transform and return the parsed JSON summary."""
    result = subprocess.run(
        [
            "media-transform",
            "run",
            "--input",
            str(input_dir),
            "--output",
            str(out_dir),
            "--ledger",
            str(ledger),
            "--json",
        ],
        capture_output=True,
        text=True,
    )
    if result.returncode != 0:
        print(f"ERROR: run failed ({result.returncode}): {result.stderr}")
        return None
    return json.loads(result.stdout)


def main() -> int:
    """Main entry point."""
    with tempfile.TemporaryDirectory() as tmpdir:
        tmp_path = Path(tmpdir)
        input_dir = tmp_path / "library"
        out_dir = tmp_path / "backup"
        out_dir.mkdir()
        ledger = tmp_path / "ledger.log"

        if not check_deps():
            return 1

        build_tree(input_dir)

        print("Running transform...")
        first = run_transform(input_dir, out_dir, ledger)
        if first is None:
            return 1
        print(f"  first run: {first['succeeded']} succeeded, {first['failed']} failed")

        print("Running transform again...")
        second = run_transform(input_dir, out_dir, ledger)
        if second is None:
            return 1
        print(f"  second run: {second['skipped']} skipped")
        if second["skipped"] != first["succeeded"]:
            print("ERROR: second run was not a no-op")
            return 1

        print("\nOutput files:")
        for f in sorted(out_dir.rglob("*")):
            if f.is_file():
                print(f"  {f.relative_to(out_dir)} ({f.stat().st_size} bytes)")

    print("\nSmoke test passed")
    return 0


if __name__ == "__main__":
    sys.exit(main())
