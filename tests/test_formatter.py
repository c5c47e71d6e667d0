"""Tests for report formatter."""

import json

from precommit_gate.aggregator import aggregate
from precommit_gate.executor import ExecutionResult, ExecutionStatus
from precommit_gate.formatter import ReportFormatter


def make_report():
    return aggregate(
        [
            ("fmt", ExecutionResult(status=ExecutionStatus.SUCCESS, returncode=0, stdout=b"ok\n")),
            (
                "lint",
                ExecutionResult(
                    status=ExecutionStatus.NON_ZERO_EXIT,
                    returncode=2,
                    stdout=b"src/lib.rs:1: unused import\n",
                    duration=0.25,
                ),
            ),
            (
                "doctest",
                ExecutionResult(
                    status=ExecutionStatus.TIMEOUT,
                    error="Hook timed out after 1.0s",
                ),
            ),
        ]
    )


def test_text_status_lines():
    """Test one padded status line per hook."""
    text = ReportFormatter().to_text(make_report())
    lines = text.splitlines()

    assert lines[0].startswith("fmt...")
    assert lines[0].endswith("Passed")
    assert len(lines[0]) == 79
    assert lines[1].endswith("Failed")
    assert lines[2].endswith("Timed out")


def test_text_shows_failing_output_before_verdict():
    text = ReportFormatter().to_text(make_report())

    assert "- hook: lint" in text
    assert "- exit code: 2" in text
    assert "unused import" in text
    assert "Hook timed out after 1.0s" in text
    # Passing output hidden unless verbose
    assert "- hook: fmt" not in text
    assert text.rstrip().endswith("2 check(s) failed: lint, doctest")
    assert text.index("unused import") < text.index("check(s) failed")


def test_text_verbose_shows_passing_output():
    text = ReportFormatter().to_text(make_report(), verbose=True)

    assert "- hook: fmt" in text


def test_text_failed_to_start():
    report = aggregate(
        [
            (
                "missing",
                ExecutionResult(
                    status=ExecutionStatus.PROCESS_FAILED_TO_START,
                    stderr=b"Failed to start 'nope': not found",
                    error="Failed to start 'nope': not found",
                ),
            )
        ]
    )

    text = ReportFormatter().to_text(report)

    assert "Failed to start" in text.splitlines()[0]
    assert text.count("Failed to start 'nope'") == 1


def test_text_empty_report():
    text = ReportFormatter().to_text(aggregate([]))

    assert "No hooks matched" in text
    assert "All checks passed." in text


def test_to_dict_is_serializable():
    data = ReportFormatter().to_dict(make_report())

    json.dumps(data)
    assert data["passed"] is False
    assert data["failed"] == ["lint", "doctest"]
    assert data["cancelled"] == []
    assert data["timestamp"].endswith("Z")
    assert [r["name"] for r in data["results"]] == ["fmt", "lint", "doctest"]
    assert data["results"][1]["status"] == "non_zero_exit"
    assert data["results"][1]["returncode"] == 2
    assert data["results"][1]["duration"] == 0.25
    assert data["results"][2]["returncode"] is None


def test_exit_code():
    formatter = ReportFormatter()

    assert formatter.exit_code(make_report()) == 1
    assert formatter.exit_code(aggregate([])) == 0


def cancelled(error="Cancelled before start"):
    return ExecutionResult(status=ExecutionStatus.CANCELLED, error=error)


def test_text_cancelled_not_counted_as_failed():
    report = aggregate([("fmt", cancelled()), ("lint", cancelled())])

    text = ReportFormatter().to_text(report)

    assert text.rstrip().endswith("2 check(s) cancelled: fmt, lint")
    assert "failed" not in text
    assert text.splitlines()[0].endswith("Cancelled")


def test_text_failed_and_cancelled_summary():
    report = aggregate(
        [
            ("x", ExecutionResult(status=ExecutionStatus.NON_ZERO_EXIT, returncode=1)),
            ("y", cancelled("Cancelled while running")),
            ("z", cancelled()),
        ]
    )

    text = ReportFormatter().to_text(report)

    assert text.rstrip().endswith("1 check(s) failed: x; 2 check(s) cancelled: y, z")
    assert ReportFormatter().exit_code(report) == 1


def test_to_dict_lists_cancelled_separately():
    report = aggregate(
        [
            ("x", ExecutionResult(status=ExecutionStatus.NON_ZERO_EXIT, returncode=1)),
            ("y", cancelled()),
        ]
    )

    data = ReportFormatter().to_dict(report)

    assert data["passed"] is False
    assert data["failed"] == ["x"]
    assert data["cancelled"] == ["y"]
    assert data["results"][1]["status"] == "cancelled"
