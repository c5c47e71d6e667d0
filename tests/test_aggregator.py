"""Tests for result aggregation."""

from precommit_gate.aggregator import Report, aggregate
from precommit_gate.executor import ExecutionResult, ExecutionStatus

OK = ExecutionResult(status=ExecutionStatus.SUCCESS, returncode=0)
FAILED = ExecutionResult(status=ExecutionStatus.NON_ZERO_EXIT, returncode=1, stdout=b"bad\n")
TIMED_OUT = ExecutionResult(status=ExecutionStatus.TIMEOUT, error="Hook timed out after 1s")
CANCELLED = ExecutionResult(status=ExecutionStatus.CANCELLED, error="Cancelled before start")


def test_empty_results_pass():
    """No triggered hooks is a vacuous pass."""
    report = aggregate([])

    assert report.passed
    assert len(report) == 0
    assert report.failed == []


def test_all_success_passes():
    report = aggregate([("fmt", OK), ("lint", OK)])

    assert report.passed
    assert report.failed_names == []


def test_any_failure_fails():
    report = aggregate([("fmt", OK), ("lint", FAILED)])

    assert not report.passed
    assert report.failed_names == ["lint"]


def test_every_failure_reported():
    """All failing hooks are discoverable, not just the first. Cancelled ones are kept apart."""
    report = aggregate([("a", FAILED), ("b", OK), ("c", TIMED_OUT), ("d", CANCELLED)])

    assert not report.passed
    assert report.failed_names == ["a", "c"]
    assert report.cancelled_names == ["d"]
    assert report.result_for("c").status is ExecutionStatus.TIMEOUT


def test_order_preserved():
    results = [("z", OK), ("a", FAILED), ("m", OK)]

    report = aggregate(results)

    assert [name for name, _ in report] == ["z", "a", "m"]
    assert report.result_for("missing") is None


def test_truncated_output_does_not_fail():
    truncated = ExecutionResult(status=ExecutionStatus.SUCCESS, returncode=0, truncated=True)

    assert aggregate([("noisy", truncated)]).passed


def test_default_report_passes():
    assert Report().passed


def test_cancelled_only_fails_without_failures():
    report = aggregate([("fmt", OK), ("lint", CANCELLED)])

    assert not report.passed
    assert report.failed == []
    assert report.cancelled_names == ["lint"]


def test_verdict_derived_from_results():
    """The verdict cannot disagree with the results it was built from."""
    assert Report(results=(("x", FAILED),)).passed is False
    assert Report(results=(("x", OK),)).passed is True
