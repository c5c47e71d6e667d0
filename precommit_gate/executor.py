"""
Hook executor for running check commands.

Runs triggered hooks as isolated child processes with bounded output
capture, timeouts and cooperative cancellation.
"""

import asyncio
import logging
import os
import shlex
import signal
import time
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from precommit_gate.matcher import Trigger
from precommit_gate.registry import HookDefinition

logger = logging.getLogger(__name__)

DEFAULT_MAX_OUTPUT_BYTES = 1024 * 1024
DEFAULT_GRACE_PERIOD = 5.0
TRUNCATION_MARKER = b"\n[... output truncated ...]\n"

_CHUNK_SIZE = 64 * 1024


class ExecutionStatus(Enum):
    """Outcome of a single hook invocation."""

    SUCCESS = "success"
    NON_ZERO_EXIT = "non_zero_exit"
    PROCESS_FAILED_TO_START = "process_failed_to_start"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class ExecutionResult:
    """Captured outcome of one hook invocation."""

    status: ExecutionStatus
    returncode: int | None = None
    stdout: bytes = b""
    stderr: bytes = b""
    duration: float = 0.0
    truncated: bool = False
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.status is ExecutionStatus.SUCCESS

    @property
    def stdout_text(self) -> str:
        return self.stdout.decode("utf-8", errors="replace")

    @property
    def stderr_text(self) -> str:
        return self.stderr.decode("utf-8", errors="replace")


def build_argv(trigger: Trigger) -> list[str]:
    """
    Build the argument vector for a trigger.

    The entry is split shell-style after expanding environment variables.
    Matched files are appended only for hooks that take filenames.

    Raises:
        ValueError: If the entry cannot be split (e.g. unbalanced quotes)
    """
    argv = shlex.split(os.path.expandvars(trigger.hook.entry))
    if trigger.hook.pass_filenames:
        argv.extend(trigger.files)
    return argv


class _BoundedCapture:
    """Keeps at most `limit` bytes of a stream while draining all of it."""

    def __init__(self, limit: int):
        self.limit = limit
        self.buffer = bytearray()
        self.truncated = False

    async def drain(self, stream: asyncio.StreamReader | None) -> None:
        if stream is None:
            return
        while True:
            chunk = await stream.read(_CHUNK_SIZE)
            if not chunk:
                break
            room = self.limit - len(self.buffer)
            if room > 0:
                self.buffer.extend(chunk[:room])
            if len(chunk) > room:
                self.truncated = True

    def value(self) -> bytes:
        if self.truncated:
            return bytes(self.buffer) + TRUNCATION_MARKER
        return bytes(self.buffer)


class HookExecutor:
    """Execute triggered hooks as child processes."""

    def __init__(
        self,
        project_dir: Path,
        concurrency: int = 1,
        timeout: float | None = None,
        max_output_bytes: int = DEFAULT_MAX_OUTPUT_BYTES,
        grace_period: float = DEFAULT_GRACE_PERIOD,
    ):
        """
        Initialize executor.

        Args:
            project_dir: Working directory for every hook
            concurrency: Maximum number of hooks running at once
            timeout: Default wall-clock limit in seconds, None for no limit
            max_output_bytes: Cap for each captured stream
            grace_period: Seconds a cancelled hook gets before it is killed
        """
        if concurrency < 1:
            raise ValueError(f"concurrency must be at least 1, got {concurrency}")
        self.project_dir = Path(project_dir)
        self.concurrency = concurrency
        self.timeout = timeout
        self.max_output_bytes = max_output_bytes
        self.grace_period = grace_period

    async def run(
        self, triggers: Iterable[Trigger], cancel_event: asyncio.Event | None = None
    ) -> list[tuple[str, ExecutionResult]]:
        """
        Execute triggers, at most `concurrency` at a time.

        Args:
            triggers: Triggers in registration order
            cancel_event: Optional signal to stop the run

        Returns:
            (hook name, result) pairs in the order the triggers were given
        """
        triggers = list(triggers)
        # One slot per trigger, each written exactly once by its worker
        slots: list[ExecutionResult | None] = [None] * len(triggers)
        semaphore = asyncio.Semaphore(self.concurrency)

        async def worker(index: int, trigger: Trigger) -> None:
            async with semaphore:
                try:
                    slots[index] = await self.execute(trigger, cancel_event)
                except Exception as e:
                    logger.exception(f"Hook '{trigger.name}' crashed the executor")
                    slots[index] = ExecutionResult(
                        status=ExecutionStatus.PROCESS_FAILED_TO_START,
                        error=f"Hook execution failed: {e}",
                    )

        await asyncio.gather(*(worker(i, t) for i, t in enumerate(triggers)))

        return [(trigger.name, result) for trigger, result in zip(triggers, slots)]

    async def execute(
        self, trigger: Trigger, cancel_event: asyncio.Event | None = None
    ) -> ExecutionResult:
        """
        Execute one hook invocation.

        Args:
            trigger: Hook and the files it receives
            cancel_event: Optional signal to stop the invocation

        Returns:
            ExecutionResult. Failures are recorded, never raised.
        """
        hook = trigger.hook
        start = time.monotonic()

        if cancel_event is not None and cancel_event.is_set():
            logger.info(f"Skipping hook '{hook.name}': run cancelled")
            return ExecutionResult(
                status=ExecutionStatus.CANCELLED, error="Cancelled before start"
            )

        try:
            argv = build_argv(trigger)
        except ValueError as e:
            return self._failed_to_start(hook, f"Invalid entry {hook.entry!r}: {e}", start)
        if not argv:
            return self._failed_to_start(hook, "Entry expands to an empty command", start)

        logger.info(f"Executing hook '{hook.name}': {shlex.join(argv)}")

        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=self._prepare_environment(hook),
                cwd=str(self.project_dir),
                start_new_session=os.name == "posix",
            )
        except OSError as e:
            return self._failed_to_start(hook, f"Failed to start {argv[0]!r}: {e}", start)

        stdout = _BoundedCapture(self.max_output_bytes)
        stderr = _BoundedCapture(self.max_output_bytes)
        communicate = asyncio.ensure_future(self._communicate(proc, stdout, stderr))
        waiters = {communicate}
        cancel_waiter = None
        if cancel_event is not None:
            cancel_waiter = asyncio.ensure_future(cancel_event.wait())
            waiters.add(cancel_waiter)

        timeout = hook.timeout if hook.timeout is not None else self.timeout

        try:
            done, _ = await asyncio.wait(
                waiters, timeout=timeout, return_when=asyncio.FIRST_COMPLETED
            )

            if communicate in done:
                communicate.result()
                status = (
                    ExecutionStatus.SUCCESS
                    if proc.returncode == 0
                    else ExecutionStatus.NON_ZERO_EXIT
                )
                error = None
            elif cancel_waiter is not None and cancel_waiter in done:
                logger.info(f"Cancelling hook '{hook.name}'")
                await self._terminate(proc)
                status = ExecutionStatus.CANCELLED
                error = "Cancelled while running"
            else:
                logger.warning(f"Hook '{hook.name}' timed out after {timeout}s")
                self._kill(proc)
                await proc.wait()
                status = ExecutionStatus.TIMEOUT
                error = f"Hook timed out after {timeout}s"

            if not communicate.done():
                # Pipes may still be held open by orphaned grandchildren
                await asyncio.wait({communicate}, timeout=self.grace_period)

            truncated = stdout.truncated or stderr.truncated
            if truncated:
                logger.warning(
                    f"Output of hook '{hook.name}' exceeded {self.max_output_bytes} bytes"
                )

            result = ExecutionResult(
                status=status,
                returncode=proc.returncode if status is not ExecutionStatus.TIMEOUT else None,
                stdout=stdout.value(),
                stderr=stderr.value(),
                duration=time.monotonic() - start,
                truncated=truncated,
                error=error,
            )
            logger.info(
                f"Hook '{hook.name}' finished: {result.status.value} "
                f"(returncode={result.returncode}, {result.duration:.2f}s)"
            )
            return result

        finally:
            for task in waiters:
                if not task.done():
                    task.cancel()
            # Leftover group members die with the hook, whatever the outcome
            self._kill(proc)
            await proc.wait()

    async def _communicate(
        self,
        proc: asyncio.subprocess.Process,
        stdout: _BoundedCapture,
        stderr: _BoundedCapture,
    ) -> None:
        await asyncio.gather(stdout.drain(proc.stdout), stderr.drain(proc.stderr))
        await proc.wait()

    async def _terminate(self, proc: asyncio.subprocess.Process) -> None:
        """Ask the hook to stop, then kill what is left after the grace period."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.grace_period
        self._signal(proc, graceful=True)
        try:
            await asyncio.wait_for(proc.wait(), timeout=self.grace_period)
        except asyncio.TimeoutError:
            pass

        while self._group_alive(proc) and loop.time() < deadline:
            await asyncio.sleep(0.05)

        if self._group_alive(proc):
            logger.warning(f"Process group {proc.pid} ignored termination, killing it")
        self._kill(proc)
        await proc.wait()

    def _group_alive(self, proc: asyncio.subprocess.Process) -> bool:
        if os.name != "posix":
            return proc.returncode is None
        try:
            os.killpg(proc.pid, 0)
        except ProcessLookupError:
            return False
        except PermissionError:
            return True
        return True

    def _kill(self, proc: asyncio.subprocess.Process) -> None:
        self._signal(proc, graceful=False)

    def _signal(self, proc: asyncio.subprocess.Process, graceful: bool) -> None:
        try:
            if os.name == "posix":
                # Hooks run in their own session; the group outlives its leader
                os.killpg(proc.pid, signal.SIGTERM if graceful else signal.SIGKILL)
            elif proc.returncode is not None:
                return
            elif graceful:
                proc.terminate()
            else:
                proc.kill()
        except (ProcessLookupError, PermissionError):
            pass

    def _failed_to_start(self, hook: HookDefinition, message: str, start: float) -> ExecutionResult:
        logger.warning(f"Hook '{hook.name}' could not start: {message}")
        return ExecutionResult(
            status=ExecutionStatus.PROCESS_FAILED_TO_START,
            stderr=message.encode("utf-8"),
            duration=time.monotonic() - start,
            error=message,
        )

    def _prepare_environment(self, hook: HookDefinition) -> dict[str, str]:
        """
        Prepare environment variables for hook execution.

        Returns:
            Copy of the current environment with pre-commit variables
        """
        env = os.environ.copy()

        env["PRE_COMMIT"] = "1"
        env["PRECOMMIT_GATE_PROJECT_DIR"] = str(self.project_dir)
        env["PRECOMMIT_GATE_HOOK"] = hook.name

        return env
