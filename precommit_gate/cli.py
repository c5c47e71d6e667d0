"""
Command line entry point for the pre-commit gate.

Usage:
    precommit-gate                  # check staged files
    precommit-gate --all-files      # check every tracked file
    precommit-gate src/lib.rs ...   # check the given files
"""

import argparse
import asyncio
import json
import logging
import signal
import subprocess
import sys
from pathlib import Path

from precommit_gate.aggregator import Report
from precommit_gate.formatter import ReportFormatter
from precommit_gate.gate import PreCommitGate
from precommit_gate.registry import ConfigError

logger = logging.getLogger(__name__)

CONFIG_ERROR_EXIT = 2


def run_git(args: list[str], cwd: Path) -> list[str]:
    """Run a git command and return its non-empty output lines."""
    result = subprocess.run(
        ["git", *args],
        cwd=cwd,
        capture_output=True,
        text=True,
        check=False,
    )
    if result.returncode != 0:
        raise RuntimeError(result.stderr.strip() or f"git {' '.join(args)} failed")
    return [line for line in result.stdout.splitlines() if line.strip()]


def staged_files(cwd: Path) -> list[str]:
    return run_git(["diff", "--cached", "--name-only", "--diff-filter=ACMR"], cwd)


def tracked_files(cwd: Path) -> list[str]:
    return run_git(["ls-files"], cwd)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="precommit-gate",
        description="Run the pre-commit checks that apply to changed files.",
    )
    parser.add_argument("files", nargs="*", help="Files to check (default: staged files)")
    parser.add_argument("--all-files", action="store_true", help="Check every tracked file")
    parser.add_argument("--config", help="Hook declarations file or directory")
    parser.add_argument("--project-dir", default=".", help="Working tree root (default: .)")
    parser.add_argument("--concurrency", type=int, help="Maximum hooks running at once")
    parser.add_argument("--timeout", type=float, help="Default per-hook timeout in seconds")
    parser.add_argument("--verbose", "-v", action="store_true", help="Show output of passing hooks")
    parser.add_argument("--json", action="store_true", help="Print the report as JSON")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING)",
    )
    return parser


async def run_gate(gate: PreCommitGate, changeset: list[str]) -> Report:
    """Run the gate, turning SIGINT into a graceful cancellation."""
    cancel_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, cancel_event.set)
        installed = True
    except (NotImplementedError, RuntimeError):
        installed = False

    try:
        return await gate.run(changeset, cancel_event)
    finally:
        if installed:
            loop.remove_signal_handler(signal.SIGINT)


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    project_dir = Path(args.project_dir).resolve()
    config = {
        "hooks": args.config,
        "concurrency": args.concurrency,
        "timeout": args.timeout,
    }

    try:
        gate = PreCommitGate(config, project_dir)
    except ConfigError as e:
        print(f"Invalid hook configuration: {e}", file=sys.stderr)
        return CONFIG_ERROR_EXIT

    try:
        if args.files:
            changeset = args.files
        elif args.all_files:
            changeset = tracked_files(project_dir)
        else:
            changeset = staged_files(project_dir)
    except (RuntimeError, OSError) as e:
        print(f"Could not list files to check: {e}", file=sys.stderr)
        return CONFIG_ERROR_EXIT

    try:
        report = asyncio.run(run_gate(gate, changeset))
    except ValueError as e:
        print(f"Invalid changeset: {e}", file=sys.stderr)
        return CONFIG_ERROR_EXIT

    formatter = ReportFormatter()
    if args.json:
        print(json.dumps(formatter.to_dict(report), indent=2))
    else:
        print(formatter.to_text(report, verbose=args.verbose))

    return formatter.exit_code(report)


if __name__ == "__main__":
    sys.exit(main())
