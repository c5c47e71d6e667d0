"""
Pre-commit Gate

Matches declared checks against a changeset, runs the triggered ones as
isolated processes and aggregates their results into a commit verdict.
"""

from precommit_gate.aggregator import Report, aggregate
from precommit_gate.executor import ExecutionResult, ExecutionStatus, HookExecutor
from precommit_gate.formatter import ReportFormatter
from precommit_gate.gate import PreCommitGate
from precommit_gate.loader import ConfigFileError, HookConfigLoader
from precommit_gate.matcher import ChangesetError, Trigger, match
from precommit_gate.registry import (
    ConfigError,
    DuplicateName,
    HookDefinition,
    HookRegistry,
    InvalidDefinition,
    InvalidPattern,
)

__version__ = "0.1.0"

__all__ = [
    "ChangesetError",
    "ConfigError",
    "ConfigFileError",
    "DuplicateName",
    "ExecutionResult",
    "ExecutionStatus",
    "HookConfigLoader",
    "HookDefinition",
    "HookExecutor",
    "HookRegistry",
    "InvalidDefinition",
    "InvalidPattern",
    "PreCommitGate",
    "Report",
    "ReportFormatter",
    "Trigger",
    "aggregate",
    "match",
]
