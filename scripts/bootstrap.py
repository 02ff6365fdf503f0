"""Development bootstrap helpers.

- Installs Python dependencies (pip install -e .[dev] - optional).
- Creates runtime directories and optionally runs the test suite.
"""
from __future__ import annotations

import argparse
import subprocess
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent


def run(cmd: list[str]) -> None:
    """Run a command and stream output."""
    print(f"$ {' '.join(cmd)}")
    subprocess.run(cmd, check=True, cwd=ROOT)


def ensure_runtime_dirs() -> None:
    from tour_search.config.settings import Settings

    settings = Settings()
    settings.ensure_directories()
    print(f"Log directory ready at {settings.log_dir}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Bootstrap local development")
    parser.add_argument(
        "--skip-deps",
        action="store_true",
        help="Skip pip install -e .[dev] if dependencies already installed",
    )
    parser.add_argument(
        "--run-tests",
        action="store_true",
        help="Run pytest once dependencies are installed",
    )
    args = parser.parse_args()

    if not args.skip_deps:
        run([sys.executable, "-m", "pip", "install", "-e", ".[dev]"])

    ensure_runtime_dirs()
    if args.run_tests:
        run([sys.executable, "-m", "pytest"])
    print("Bootstrap complete")


if __name__ == "__main__":
    main()
