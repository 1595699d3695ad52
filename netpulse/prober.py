"""Prober abstraction for NetPulse reachability and remote-command checks."""

from typing import Protocol

from netpulse.process_runner import CancellationToken, ProcessRunner
from netpulse.probe_ping import PingProbe
from netpulse.probe_ssh import SshProbe


class Prober(Protocol):
    """Protocol defining the probes used by the reconciler and dispatcher."""

    def ping(self, host: str, token: CancellationToken | None = None) -> float:
        """Return round-trip latency in ms, or raise a ProbeError."""
        ...

    def run_remote(
        self,
        user: str,
        host: str,
        command: str,
        token: CancellationToken | None = None,
    ) -> str:
        """Return stdout of a remote command, or raise a ProbeError."""
        ...


class SystemProber:
    """Prober backed by the system ping and ssh binaries."""

    def __init__(
        self,
        key_path: str,
        ping_timeout_ms: int = 2000,
        command_timeout: float = 30.0,
        runner: ProcessRunner | None = None,
    ):
        runner = runner if runner is not None else ProcessRunner()
        self.ping_probe = PingProbe(runner=runner, timeout_ms=ping_timeout_ms)
        self.ssh_probe = SshProbe(key_path, runner=runner, command_timeout=command_timeout)

    def ping(self, host: str, token: CancellationToken | None = None) -> float:
        return self.ping_probe.ping(host, token=token)

    def run_remote(
        self,
        user: str,
        host: str,
        command: str,
        token: CancellationToken | None = None,
    ) -> str:
        return self.ssh_probe.run_remote(user, host, command, token=token)

    def test_connection(self, user: str, host: str) -> tuple[bool, str]:
        return self.ssh_probe.test_connection(user, host)
