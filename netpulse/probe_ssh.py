"""Remote-command probe built on the system ssh client."""

import logging
import os

from netpulse.errors import InvalidHostError, ProbeError, RemoteCommandFailedError
from netpulse.process_runner import CancellationToken, ProcessRunner

logger = logging.getLogger(__name__)

SSH_OK = "SSH OK"


class SshProbe:
    """Runs a command on a remote entity over a non-interactive ssh session.

    Host-key checking and known-hosts persistence are disabled so the call
    never blocks on a prompt. ``connect_timeout`` bounds connection setup and
    is independent of the overall command timeout.
    """

    def __init__(
        self,
        key_path: str,
        runner: ProcessRunner | None = None,
        program: str = "ssh",
        connect_timeout: int = 5,
        command_timeout: float = 30.0,
    ):
        if connect_timeout <= 0:
            raise ValueError("connect_timeout must be positive")
        if command_timeout <= 0:
            raise ValueError("command_timeout must be positive")

        self.key_path = key_path
        self.runner = runner if runner is not None else ProcessRunner()
        self.program = program
        self.connect_timeout = connect_timeout
        self.command_timeout = command_timeout

    def build_args(self, user: str, host: str, command: str) -> list[str]:
        key_path = os.path.expanduser(self.key_path)
        return [
            "-i", key_path,
            "-o", "StrictHostKeyChecking=no",
            "-o", "UserKnownHostsFile=/dev/null",
            "-o", f"ConnectTimeout={self.connect_timeout}",
            f"{user}@{host}",
            command,
        ]

    def run_remote(
        self,
        user: str,
        host: str,
        command: str,
        timeout: float | None = None,
        token: CancellationToken | None = None,
    ) -> str:
        """Run ``command`` as ``user@host`` and return its stdout verbatim.

        Raises:
            RemoteCommandFailedError: Non-zero exit. The detail is stderr when
                present, otherwise a message with the exit code.
            ProbeCancelledError: The token was cancelled during the call.
            ProbeTimeoutError: The command outlived ``timeout``.
        """
        if not host or not host.strip():
            raise InvalidHostError(host)

        result = self.runner.run(
            self.program,
            self.build_args(user, host, command),
            timeout=timeout or self.command_timeout,
            token=token,
        )

        if result.exit_code != 0:
            detail = result.stderr.strip() or f"Remote command exited with code {result.exit_code}"
            logger.error(
                "Remote command failed: %s@%s, command=%r, error=%s",
                user,
                host,
                command,
                detail,
            )
            raise RemoteCommandFailedError(detail, result.exit_code)

        logger.info("Remote command succeeded: %s@%s, command=%r", user, host, command)
        return result.stdout

    def test_connection(
        self,
        user: str,
        host: str,
        token: CancellationToken | None = None,
    ) -> tuple[bool, str]:
        """Check that a key-based ssh login to ``user@host`` works."""
        if not user or not host:
            return False, "Host and user must not be empty."
        if not os.path.isfile(os.path.expanduser(self.key_path)):
            return False, "SSH key path is not a valid file."

        try:
            output = self.run_remote(user, host, f"echo '{SSH_OK}'", token=token)
        except ProbeError as e:
            return False, f"Connection failed: {e}"

        if output.strip() == SSH_OK:
            return True, "SSH connection established."
        return False, f"Unexpected response: {output}"
