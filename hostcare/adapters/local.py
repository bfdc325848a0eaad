"""
Local transport — run commands on the machine hostcare itself runs on.

Used for ``localhost`` entries and for maintaining the control node.
"""

from __future__ import annotations

import logging
import subprocess
import time

from hostcare.adapters.base import Transport
from hostcare.core.models.command import NOT_FOUND_EXIT_CODE, CommandResult
from hostcare.core.models.host import Host

logger = logging.getLogger(__name__)


class LocalTransport(Transport):
    """Execute argv directly with subprocess (never through a shell)."""

    @property
    def name(self) -> str:
        return "local"

    def is_available(self) -> bool:
        return True

    def run(self, host: Host, argv: list[str], timeout: float) -> CommandResult:
        logger.debug("[%s] local: %s", host.name, " ".join(argv))
        start = time.monotonic()

        try:
            result = subprocess.run(
                argv,
                capture_output=True,
                encoding="utf-8",
                errors="replace",
                timeout=timeout,
                start_new_session=True,  # Ctrl-C cancels between steps, never mid-command
            )
        except subprocess.TimeoutExpired:
            elapsed_ms = int((time.monotonic() - start) * 1000)
            return CommandResult.timeout(argv, timeout, duration_ms=elapsed_ms)
        except FileNotFoundError:
            return CommandResult(
                argv=argv,
                exit_code=NOT_FOUND_EXIT_CODE,
                stderr=f"{argv[0]}: command not found",
            )
        except PermissionError as e:
            return CommandResult(argv=argv, exit_code=126, stderr=str(e))

        return CommandResult(
            argv=argv,
            exit_code=result.returncode,
            stdout=result.stdout,
            stderr=result.stderr,
            duration_ms=int((time.monotonic() - start) * 1000),
        )
