"""
Report formatter for presenting run results.

Renders a Report as console text or JSON-ready data and maps the
verdict to a process exit code.
"""

from datetime import UTC, datetime
from typing import Any

from precommit_gate.aggregator import Report
from precommit_gate.executor import ExecutionResult, ExecutionStatus

LINE_WIDTH = 79

STATUS_LABELS = {
    ExecutionStatus.SUCCESS: "Passed",
    ExecutionStatus.NON_ZERO_EXIT: "Failed",
    ExecutionStatus.PROCESS_FAILED_TO_START: "Failed to start",
    ExecutionStatus.TIMEOUT: "Timed out",
    ExecutionStatus.CANCELLED: "Cancelled",
}


class ReportFormatter:
    """Translate reports into console text and serializable data."""

    def __init__(self, line_width: int = LINE_WIDTH):
        self.line_width = line_width

    def to_text(self, report: Report, verbose: bool = False) -> str:
        """
        Render a report for the console.

        One status line per hook, then the output of each failing hook
        (every hook when verbose), then the overall verdict.
        """
        if not report.results:
            return "No hooks matched the changed files.\nAll checks passed."

        lines = [self._status_line(name, result) for name, result in report.results]

        for name, result in report.results:
            if result.succeeded and not verbose:
                continue
            details = self._details(result)
            if details:
                lines.append("")
                lines.append(f"- hook: {name}")
                lines.append(details)

        lines.append("")
        if report.passed:
            lines.append("All checks passed.")
        else:
            summary = []
            failed = report.failed_names
            if failed:
                summary.append(f"{len(failed)} check(s) failed: {', '.join(failed)}")
            cancelled = report.cancelled_names
            if cancelled:
                summary.append(f"{len(cancelled)} check(s) cancelled: {', '.join(cancelled)}")
            lines.append("; ".join(summary))

        return "\n".join(lines)

    def _status_line(self, name: str, result: ExecutionResult) -> str:
        label = STATUS_LABELS[result.status]
        dots = "." * max(self.line_width - len(name) - len(label), 3)
        return f"{name}{dots}{label}"

    def _details(self, result: ExecutionResult) -> str:
        parts = []
        if result.returncode not in (None, 0):
            parts.append(f"- exit code: {result.returncode}")
        if result.error and result.status is not ExecutionStatus.PROCESS_FAILED_TO_START:
            parts.append(f"- {result.error}")
        output = (result.stdout_text + result.stderr_text).rstrip()
        if output:
            parts.append("")
            parts.append(output)
        return "\n".join(parts)

    def to_dict(self, report: Report) -> dict[str, Any]:
        """
        Translate a report into JSON-serializable data.

        Returns:
            Dictionary with timestamp, verdict and per-hook results
        """
        timestamp = datetime.now(UTC).isoformat().replace("+00:00", "Z")

        return {
            "timestamp": timestamp,
            "passed": report.passed,
            "failed": report.failed_names,
            "cancelled": report.cancelled_names,
            "results": [
                {
                    "name": name,
                    "status": result.status.value,
                    "returncode": result.returncode,
                    "duration": round(result.duration, 3),
                    "truncated": result.truncated,
                    "error": result.error,
                    "stdout": result.stdout_text,
                    "stderr": result.stderr_text,
                }
                for name, result in report.results
            ],
        }

    def exit_code(self, report: Report) -> int:
        """0 when the verdict passes, 1 otherwise."""
        return 0 if report.passed else 1
