"""Probe error taxonomy.

Every failure of the process runner or a probe is a ``ProbeError``. The
``kind`` attribute names the failure in logs; the polling cycle collapses all
of them to Unreachable while the command dispatcher reports them to the user.
"""


class ProbeError(Exception):
    """Base class for all probe and process-runner failures."""

    kind = "ProbeError"


class InvalidHostError(ProbeError):
    kind = "InvalidHost"

    def __init__(self, host: str = ""):
        super().__init__(f"Invalid host: {host!r}")
        self.host = host


class SpawnFailedError(ProbeError):
    kind = "SpawnFailed"

    def __init__(self, program: str, reason: str):
        super().__init__(f"Failed to start {program}: {reason}")
        self.program = program
        self.reason = reason


class ProbeTimeoutError(ProbeError):
    kind = "Timeout"

    def __init__(self, program: str, timeout: float):
        super().__init__(f"{program} timed out after {timeout:g}s")
        self.program = program
        self.timeout = timeout


class ProbeCancelledError(ProbeError):
    kind = "Cancelled"

    def __init__(self, program: str = ""):
        super().__init__(f"{program} cancelled" if program else "Cancelled")
        self.program = program


class ParseFailedError(ProbeError):
    kind = "ParseFailed"

    def __init__(self, output: str):
        preview = output[:100] if output else "(empty)"
        super().__init__(f"Could not parse round-trip time from output: {preview}")
        self.output = output


class RemoteCommandFailedError(ProbeError):
    kind = "RemoteCommandFailed"

    def __init__(self, detail: str, exit_code: int | None = None):
        super().__init__(detail)
        self.detail = detail
        self.exit_code = exit_code
