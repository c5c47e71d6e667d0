"""
Pre-commit gate.

Coordinates loading, matching, execution and aggregation of hooks.
"""

import asyncio
import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from precommit_gate.aggregator import Report, aggregate
from precommit_gate.executor import DEFAULT_GRACE_PERIOD, DEFAULT_MAX_OUTPUT_BYTES, HookExecutor
from precommit_gate.loader import HookConfigLoader, parse_hooks
from precommit_gate.matcher import Trigger, match
from precommit_gate.registry import ConfigError, HookRegistry

logger = logging.getLogger(__name__)

DEFAULT_HOOKS_LOCATION = ".precommit-gate"


class PreCommitGate:
    """Run the hooks that apply to a changeset and report a verdict."""

    def __init__(self, config: dict[str, Any], project_dir: Path | None = None):
        """
        Initialize gate and build the hook registry.

        Args:
            config: Gate configuration. "hooks" is a declarations file or
                directory, "definitions" an already parsed hooks block.
                Engine settings here override those from files.
            project_dir: Working tree root, defaults to the current directory

        Raises:
            ConfigError: If the hook configuration is invalid
        """
        self.config = config
        self.enabled = config.get("enabled", True)
        self.project_dir = Path(project_dir) if project_dir is not None else Path.cwd()

        settings: dict[str, Any] = {}

        if "definitions" in config:
            definitions = parse_hooks(config["definitions"])
            logger.info(f"Using {len(definitions)} hook definitions from configuration")
        else:
            hooks_path = config.get("hooks")
            if hooks_path is None:
                hooks_path = self.project_dir / DEFAULT_HOOKS_LOCATION
                if not hooks_path.exists():
                    logger.info(f"Hooks configuration not found at {hooks_path}")
                    hooks_path = None
            else:
                hooks_path = Path(hooks_path)
                if not hooks_path.is_absolute():
                    hooks_path = self.project_dir / hooks_path

            if hooks_path is None:
                definitions = []
            else:
                loader = HookConfigLoader(hooks_path)
                definitions = loader.load_definitions()
                settings = loader.load_settings()
                logger.info(f"Loaded hooks from {hooks_path}: {[d.name for d in definitions]}")

        for key in ("concurrency", "timeout", "max_output_bytes", "grace_period"):
            if config.get(key) is not None:
                settings[key] = config[key]

        self.registry = HookRegistry.from_definitions(definitions)
        self.executor = HookExecutor(self.project_dir, **_validate_settings(settings))

    def match(self, changeset: Iterable[str]) -> list[Trigger]:
        """Select the triggered hooks for a changeset."""
        return match(self.registry, changeset)

    async def run(
        self, changeset: Iterable[str], cancel_event: asyncio.Event | None = None
    ) -> Report:
        """
        Run every triggered hook and aggregate the results.

        Args:
            changeset: Relative paths of the files under consideration
            cancel_event: Optional signal to stop the run

        Returns:
            Report with per-hook results in registration order
        """
        if not self.enabled:
            logger.info("Pre-commit gate is disabled")
            return aggregate([])

        triggers = self.match(changeset)
        if not triggers:
            logger.info("No hooks triggered")
            return aggregate([])

        logger.info(f"Running {len(triggers)} triggered hooks: {[t.name for t in triggers]}")

        results = await self.executor.run(triggers, cancel_event)
        report = aggregate(results)

        if report.passed:
            logger.info("All hooks passed")
        else:
            logger.info(
                f"Failed hooks: {report.failed_names}, cancelled hooks: {report.cancelled_names}"
            )
        return report

    def run_sync(self, changeset: Iterable[str]) -> Report:
        """Run the gate from synchronous code."""
        return asyncio.run(self.run(changeset))


def _validate_settings(settings: dict[str, Any]) -> dict[str, Any]:
    """Check engine settings and map them to HookExecutor arguments."""
    concurrency = settings.get("concurrency", 1)
    if isinstance(concurrency, bool) or not isinstance(concurrency, int) or concurrency < 1:
        raise ConfigError(f"'concurrency' must be a positive integer, got {concurrency!r}")

    timeout = settings.get("timeout")
    if timeout is not None and (
        isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0
    ):
        raise ConfigError(f"'timeout' must be a positive number, got {timeout!r}")

    max_output_bytes = settings.get("max_output_bytes", DEFAULT_MAX_OUTPUT_BYTES)
    if (
        isinstance(max_output_bytes, bool)
        or not isinstance(max_output_bytes, int)
        or max_output_bytes < 0
    ):
        raise ConfigError(f"'max_output_bytes' must be a non-negative integer, got {max_output_bytes!r}")

    grace_period = settings.get("grace_period", DEFAULT_GRACE_PERIOD)
    if isinstance(grace_period, bool) or not isinstance(grace_period, (int, float)) or grace_period < 0:
        raise ConfigError(f"'grace_period' must be a non-negative number, got {grace_period!r}")

    return {
        "concurrency": concurrency,
        "timeout": float(timeout) if timeout is not None else None,
        "max_output_bytes": max_output_bytes,
        "grace_period": float(grace_period),
    }
