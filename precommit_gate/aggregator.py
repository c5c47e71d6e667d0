"""Combine per-hook execution results into a single verdict."""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from precommit_gate.executor import ExecutionResult, ExecutionStatus


@dataclass(frozen=True)
class Report:
    """Ordered per-hook results and the overall verdict of a run."""

    results: tuple[tuple[str, ExecutionResult], ...] = ()

    @property
    def passed(self) -> bool:
        """True iff every hook succeeded; a run with no hooks passes."""
        return all(result.succeeded for _, result in self.results)

    @property
    def failed(self) -> list[tuple[str, ExecutionResult]]:
        """Hooks that ran and failed, in run order. Cancelled hooks are not included."""
        return [
            (name, result)
            for name, result in self.results
            if not result.succeeded and result.status is not ExecutionStatus.CANCELLED
        ]

    @property
    def failed_names(self) -> list[str]:
        return [name for name, _ in self.failed]

    @property
    def cancelled(self) -> list[tuple[str, ExecutionResult]]:
        """Hooks stopped or skipped by cancellation. They fail the verdict too."""
        return [
            (name, result)
            for name, result in self.results
            if result.status is ExecutionStatus.CANCELLED
        ]

    @property
    def cancelled_names(self) -> list[str]:
        return [name for name, _ in self.cancelled]

    def result_for(self, name: str) -> ExecutionResult | None:
        for hook_name, result in self.results:
            if hook_name == name:
                return result
        return None

    def __iter__(self) -> Iterator[tuple[str, ExecutionResult]]:
        return iter(self.results)

    def __len__(self) -> int:
        return len(self.results)


def aggregate(results: Iterable[tuple[str, ExecutionResult]]) -> Report:
    """
    Build a report from execution results.

    The verdict passes iff every result succeeded; no results is a pass.
    """
    return Report(results=tuple(results))
