"""Fake prober for NetPulse testing and simulation."""

import random
import threading

from netpulse.errors import InvalidHostError, ProbeCancelledError, ProbeTimeoutError
from netpulse.process_runner import CancellationToken


class FakeProber:
    """Generates simulated latencies and remote-command output.

    Hosts listed in ``scripted`` always return the scripted latency, or time
    out when it is None. Other hosts get random samples.
    """

    def __init__(
        self,
        seed: int | None = None,
        scripted: dict[str, float | None] | None = None,
        remote_output: str = "",
    ):
        """Initialize with optional random seed for deterministic behavior."""
        # Isolated random instance; probes run on several threads
        self._random = random.Random(seed)
        self._lock = threading.Lock()
        self.scripted = dict(scripted or {})
        self.remote_output = remote_output
        self.remote_calls: list[tuple[str, str, str]] = []

        # Simulation parameters
        self.base_latency = 25.0  # Base latency in ms
        self.latency_variance = 5.0  # Normal variance
        self.loss_probability = 0.02  # 2% chance of an unreachable sample

    def ping(self, host: str, token: CancellationToken | None = None) -> float:
        if not host or not host.strip():
            raise InvalidHostError(host)
        if token is not None and token.cancelled:
            raise ProbeCancelledError("ping")

        if host in self.scripted:
            latency = self.scripted[host]
            if latency is None:
                raise ProbeTimeoutError("ping", 2.0)
            return latency

        with self._lock:
            if self._random.random() < self.loss_probability:
                raise ProbeTimeoutError("ping", 2.0)
            latency = self.base_latency + self._random.gauss(0, self.latency_variance)

        # Ensure latency is positive
        return round(max(0.1, latency), 2)

    def run_remote(
        self,
        user: str,
        host: str,
        command: str,
        token: CancellationToken | None = None,
    ) -> str:
        if not host or not host.strip():
            raise InvalidHostError(host)
        if token is not None and token.cancelled:
            raise ProbeCancelledError("ssh")
        with self._lock:
            self.remote_calls.append((user, host, command))
        return self.remote_output

    def test_connection(self, user: str, host: str) -> tuple[bool, str]:
        return True, "SSH connection established (simulated)."
