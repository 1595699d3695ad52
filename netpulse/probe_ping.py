"""Latency probe built on the system ping command."""

import logging
import platform
from math import ceil

from netpulse.errors import InvalidHostError, ParseFailedError, ProbeError
from netpulse.process_runner import CancellationToken, ProcessRunner

logger = logging.getLogger(__name__)

TIME_MARKER = "time="
MS_MARKER = " ms"


def parse_round_trip_ms(output: str) -> float:
    """Parse the round-trip time from ping output (pure function).

    Reads the text between the first ``time=`` marker and the following
    `` ms`` marker, as printed by Linux and macOS ping:

        64 bytes from 1.1.1.1: icmp_seq=0 ttl=57 time=12.3 ms

    Args:
        output: Raw ping stdout

    Returns:
        Round-trip time in milliseconds

    Raises:
        ParseFailedError: If either marker is missing or the value between
            them is not a number.

    Examples:
        >>> parse_round_trip_ms("time=12.3 ms")
        12.3
    """
    if not output:
        raise ParseFailedError(output or "")

    start = output.find(TIME_MARKER)
    if start < 0:
        raise ParseFailedError(output)
    start += len(TIME_MARKER)

    end = output.find(MS_MARKER, start)
    if end < 0:
        raise ParseFailedError(output)

    try:
        return float(output[start:end])
    except ValueError as e:
        raise ParseFailedError(output) from e


class PingProbe:
    """Measures reachability and round-trip time with one ping packet.

    Linux ``ping -W`` takes whole seconds; macOS/BSD ``ping -W`` takes
    milliseconds. The process runner enforces the overall timeout either way.
    """

    def __init__(
        self,
        runner: ProcessRunner | None = None,
        program: str = "ping",
        timeout_ms: int = 2000,
    ):
        """Initialize ping probe.

        Args:
            runner: Process runner (a default one is created if omitted)
            program: Path or name of the ping binary
            timeout_ms: Default reply deadline in milliseconds
        """
        if timeout_ms <= 0:
            raise ValueError("timeout_ms must be positive")

        self.runner = runner if runner is not None else ProcessRunner()
        self.program = program
        self.timeout_ms = timeout_ms
        self.system = platform.system()

        logger.debug(
            "PingProbe initialized: program=%s, timeout_ms=%d, system=%s",
            program,
            timeout_ms,
            self.system,
        )

    def ping(
        self,
        host: str,
        timeout_ms: int | None = None,
        token: CancellationToken | None = None,
    ) -> float:
        """Ping ``host`` once and return the latency in milliseconds.

        Raises:
            InvalidHostError: Empty host; no process is spawned.
            ProbeError: Any other failure (spawn, timeout, cancellation,
                non-zero exit, unparseable output).
        """
        if not host or not host.strip():
            raise InvalidHostError(host)

        timeout_ms = timeout_ms or self.timeout_ms
        # Allow the tool to report its own deadline before the runner kills it
        result = self.runner.run(
            self.program,
            self.build_args(host, timeout_ms),
            timeout=timeout_ms / 1000.0 + 0.5,
            token=token,
        )

        if result.exit_code != 0:
            detail = result.stderr.strip() or f"ping exited with code {result.exit_code}"
            logger.debug("Ping failed: host=%s, returncode=%d", host, result.exit_code)
            raise ProbeError(detail)

        latency = parse_round_trip_ms(result.stdout)
        logger.debug("Ping succeeded: host=%s, latency=%.2fms", host, latency)
        return latency

    def build_args(self, host: str, timeout_ms: int) -> list[str]:
        """Build platform-specific ping arguments.

        Args:
            host: Target host to ping
            timeout_ms: Reply deadline in milliseconds

        Returns:
            Argument list (without the program name)
        """
        if self.system == "Linux":
            timeout_secs = max(1, ceil(timeout_ms / 1000.0))
            return ["-c", "1", "-W", str(timeout_secs), host]

        return ["-c", "1", "-W", str(timeout_ms), host]
