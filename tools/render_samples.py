"""Render every sample report in a directory to a sibling .html page."""

import argparse
import subprocess
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SAMPLES_DIR = ROOT / "data" / "samples"
CLI_CMD = [sys.executable, "-m", "lighthouse_viewer.cli", "view"]


def render_sample(path: Path) -> bool:
    out_path = path.with_suffix(".html")
    cmd = CLI_CMD + [str(path), "--out", str(out_path)]
    print(f"[run] {path.name}")
    result = subprocess.run(cmd, capture_output=True, text=True)
    if result.returncode == 0:
        print(f"[ok ] wrote {out_path}")
        return True
    print(f"[fail] {path.name} (exit {result.returncode})")
    return False


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("samples", nargs="?", type=Path, default=SAMPLES_DIR)
    args = parser.parse_args(argv)

    if not args.samples.exists():
        print(f"{args.samples} not found; nothing to do.")
        return 0
    results = [render_sample(path) for path in sorted(args.samples.glob("*.json"))]
    print(f"{results.count(True)} rendered, {results.count(False)} failed.")
    return 0 if all(results) else 1


if __name__ == "__main__":
    sys.exit(main())
