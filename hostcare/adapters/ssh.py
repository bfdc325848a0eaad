"""
SSH transport — run commands on a remote host through the ssh client.

Uses the system ``ssh`` binary in batch mode; key management and
known-hosts policy stay with the user's ssh configuration.
"""

from __future__ import annotations

import logging
import shlex
import shutil
import subprocess
import time

from hostcare.adapters.base import Transport, TransportError
from hostcare.core.models.command import CommandResult
from hostcare.core.models.host import Host

logger = logging.getLogger(__name__)

# ssh reserves 255 for its own errors (connection, auth, host key)
SSH_ERROR_EXIT_CODE = 255


class SshTransport(Transport):
    """Execute argv on a remote host over ssh.

    Args:
        ssh_binary: Path or name of the ssh client.
        connect_timeout: Seconds allowed for establishing the connection.
    """

    def __init__(self, ssh_binary: str = "ssh", connect_timeout: int = 10):
        self._ssh = ssh_binary
        self._connect_timeout = connect_timeout

    @property
    def name(self) -> str:
        return "ssh"

    def is_available(self) -> bool:
        return shutil.which(self._ssh) is not None

    def build_argv(self, host: Host, argv: list[str]) -> list[str]:
        """The local ssh invocation that runs ``argv`` on ``host``."""
        cmd = [
            self._ssh,
            "-o", "BatchMode=yes",
            "-o", f"ConnectTimeout={self._connect_timeout}",
        ]
        if host.port != 22:
            cmd += ["-p", str(host.port)]
        for option in host.ssh_options:
            cmd += ["-o", option]
        cmd += [host.target, "--", shlex.join(argv)]
        return cmd

    def run(self, host: Host, argv: list[str], timeout: float) -> CommandResult:
        ssh_argv = self.build_argv(host, argv)
        logger.debug("[%s] ssh: %s", host.name, " ".join(argv))
        start = time.monotonic()

        try:
            result = subprocess.run(
                ssh_argv,
                capture_output=True,
                encoding="utf-8",
                errors="replace",
                timeout=timeout,
                start_new_session=True,  # Ctrl-C cancels between steps, never mid-command
            )
        except subprocess.TimeoutExpired:
            elapsed_ms = int((time.monotonic() - start) * 1000)
            return CommandResult.timeout(argv, timeout, duration_ms=elapsed_ms)
        except OSError as e:
            raise TransportError(host.name, f"cannot start {self._ssh}: {e}") from e

        if result.returncode == SSH_ERROR_EXIT_CODE:
            message = result.stderr.strip() or "ssh connection failed"
            raise TransportError(host.name, message)

        return CommandResult(
            argv=argv,
            exit_code=result.returncode,
            stdout=result.stdout,
            stderr=result.stderr,
            duration_ms=int((time.monotonic() - start) * 1000),
        )
