"""Tests for ProcessRunner using real short-lived processes."""

import os
import sys
import threading
import time

import pytest

from netpulse.errors import ProbeCancelledError, ProbeTimeoutError, SpawnFailedError
from netpulse.process_runner import CancellationToken, ProcessRunner, run_process

pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="POSIX shell required")


def pid_alive(pid: int) -> bool:
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    return True


def read_pid(path, deadline_s=2.0) -> int:
    end = time.monotonic() + deadline_s
    while time.monotonic() < end:
        text = path.read_text().strip() if path.exists() else ""
        if text:
            return int(text)
        time.sleep(0.01)
    raise AssertionError("child never wrote its pid")


class TestCancellationToken:
    """Test the cancellation flag."""

    def test_initial_state(self):
        """Test that a new token is not cancelled."""
        assert CancellationToken().cancelled is False

    def test_cancel(self):
        """Test that cancel() sets the flag and wakes waiters."""
        token = CancellationToken()
        token.cancel()
        assert token.cancelled is True
        assert token.wait(0) is True


class TestProcessRunnerOutput:
    """Test output capture and spawn errors."""

    def test_captures_stdout_and_stderr(self):
        """Test that both streams are captured."""
        result = run_process("sh", ["-c", "echo out; echo err >&2"], timeout=5)
        assert result.stdout == "out\n"
        assert result.stderr == "err\n"
        assert result.exit_code == 0

    def test_non_zero_exit_is_data(self):
        """Test that a non-zero exit code is returned, not raised."""
        result = run_process("sh", ["-c", "exit 3"], timeout=5)
        assert result.exit_code == 3

    def test_spawn_failure(self):
        """Test that a missing program is SpawnFailed."""
        with pytest.raises(SpawnFailedError) as exc_info:
            run_process("/nonexistent/netpulse-tool", [], timeout=5)
        assert exc_info.value.kind == "SpawnFailed"

    def test_invalid_timeout(self):
        """Test that a non-positive timeout is rejected."""
        with pytest.raises(ValueError, match="timeout must be positive"):
            run_process("true", [], timeout=0)

    def test_invalid_poll_interval(self):
        """Test that a non-positive poll interval is rejected."""
        with pytest.raises(ValueError):
            ProcessRunner(poll_interval=0)


class TestProcessRunnerTimeoutAndCancellation:
    """Test that timeouts and cancellation kill the child."""

    def test_timeout_kills_process(self, tmp_path):
        """Test that a timed-out child is killed."""
        pid_file = tmp_path / "pid"
        start = time.monotonic()

        with pytest.raises(ProbeTimeoutError):
            run_process("sh", ["-c", f"echo $$ > {pid_file}; exec sleep 5"], timeout=0.5)

        assert time.monotonic() - start < 3
        assert not pid_alive(read_pid(pid_file))

    def test_cancellation_kills_process(self, tmp_path):
        """Test a 5 s command cancelled mid-run fails with Cancelled, not Timeout."""
        pid_file = tmp_path / "pid"
        token = CancellationToken()
        timer = threading.Timer(0.5, token.cancel)
        timer.start()
        start = time.monotonic()

        try:
            with pytest.raises(ProbeCancelledError):
                run_process(
                    "sh",
                    ["-c", f"echo $$ > {pid_file}; exec sleep 5"],
                    timeout=5,
                    token=token,
                )
        finally:
            timer.cancel()

        assert time.monotonic() - start < 2
        assert not pid_alive(read_pid(pid_file))

    def test_cancellation_wins_over_timeout(self):
        """Test that when both are due, cancellation is reported."""
        token = CancellationToken()
        runner = ProcessRunner(poll_interval=0.5)

        def cancel_late():
            time.sleep(0.2)
            token.cancel()

        thread = threading.Thread(target=cancel_late)
        thread.start()
        try:
            # Deadline and cancellation both pass during the first poll slice
            with pytest.raises(ProbeCancelledError):
                runner.run("sleep", ["5"], timeout=0.3, token=token)
        finally:
            thread.join()

    def test_already_cancelled_spawns_nothing(self, tmp_path):
        """Test that a cancelled token prevents the spawn."""
        marker = tmp_path / "ran"
        token = CancellationToken()
        token.cancel()

        with pytest.raises(ProbeCancelledError):
            run_process("sh", ["-c", f"touch {marker}"], timeout=5, token=token)
        time.sleep(0.1)
        assert not marker.exists()
