"""Run external programs with a hard timeout and cooperative cancellation."""

import logging
import os
import signal
import subprocess
import threading
import time
from dataclasses import dataclass

from netpulse.errors import ProbeCancelledError, ProbeTimeoutError, SpawnFailedError

logger = logging.getLogger(__name__)

# How often a running process is checked for cancellation
POLL_INTERVAL_S = 0.1


class CancellationToken:
    """Thread-safe cancellation flag shared by a task and its sub-operations."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: float) -> bool:
        """Sleep up to ``timeout`` seconds; return True if cancelled meanwhile."""
        return self._event.wait(timeout)


@dataclass(frozen=True)
class ProcessResult:
    """Captured output of a finished process."""

    stdout: str
    stderr: str
    exit_code: int


class ProcessRunner:
    """Launches one OS process per call and never leaves it running.

    A non-zero exit code is returned as data, not raised. Failures are
    ``SpawnFailedError``, ``ProbeTimeoutError`` and ``ProbeCancelledError``;
    cancellation is checked before the deadline, so it wins when both are due.
    """

    def __init__(self, poll_interval: float = POLL_INTERVAL_S):
        if poll_interval <= 0:
            raise ValueError("poll_interval must be positive")
        self.poll_interval = poll_interval

    def run(
        self,
        program: str,
        args: list[str],
        timeout: float,
        token: CancellationToken | None = None,
    ) -> ProcessResult:
        if timeout <= 0:
            raise ValueError("timeout must be positive")
        if token is not None and token.cancelled:
            raise ProbeCancelledError(program)

        cmd = [program, *args]
        logger.debug("Executing: %s (timeout=%.1fs)", " ".join(cmd), timeout)

        try:
            proc = subprocess.Popen(
                cmd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                shell=False,
                start_new_session=True,  # Own process group, killed as a whole
            )
        except (OSError, ValueError) as e:
            logger.warning("Spawn failed: program=%s, error=%s", program, e)
            raise SpawnFailedError(program, str(e)) from e

        deadline = time.monotonic() + timeout
        try:
            while True:
                if token is not None and token.cancelled:
                    logger.debug("Cancelled: program=%s, pid=%d", program, proc.pid)
                    raise ProbeCancelledError(program)

                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    logger.debug("Timeout: program=%s, pid=%d", program, proc.pid)
                    raise ProbeTimeoutError(program, timeout)

                try:
                    stdout, stderr = proc.communicate(timeout=min(self.poll_interval, remaining))
                except subprocess.TimeoutExpired:
                    continue

                logger.debug("Process exited: program=%s, returncode=%d", program, proc.returncode)
                return ProcessResult(stdout=stdout or "", stderr=stderr or "", exit_code=proc.returncode)
        finally:
            if proc.poll() is None:
                _terminate(proc)


def _terminate(proc: subprocess.Popen) -> None:
    """Kill the process group and reap the child."""
    try:
        if hasattr(os, "killpg"):
            os.killpg(proc.pid, signal.SIGKILL)
        else:
            proc.kill()
    except ProcessLookupError:
        pass
    except PermissionError:
        proc.kill()
    try:
        proc.communicate(timeout=5)
    except subprocess.TimeoutExpired:
        logger.error("Process %d did not exit after SIGKILL", proc.pid)


_default_runner = ProcessRunner()


def run_process(
    program: str,
    args: list[str],
    timeout: float,
    token: CancellationToken | None = None,
) -> ProcessResult:
    """Run a program using the default runner."""
    return _default_runner.run(program, args, timeout, token)
