"""
Transport base — the contract between the engine and a host.

A transport runs one argv on one host and hands back a CommandResult.
The engine only talks to hosts through this protocol, never directly
through subprocess or ssh.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from hostcare.core.models.command import CommandResult
from hostcare.core.models.host import Host


class TransportError(Exception):
    """The host could not be reached (connection refused, auth, DNS, ...).

    This is the only failure a transport raises. A command that ran and
    exited non-zero, or timed out, is a CommandResult, not an exception.
    """

    def __init__(self, host: str, message: str):
        super().__init__(f"{host}: {message}")
        self.host = host
        self.message = message


class Transport(ABC):
    """Abstract base class for all transports.

    To create a new transport:
        1. Subclass Transport
        2. Implement name, is_available, run
        3. Register it in the TransportRegistry
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """The transport identifier (e.g., 'local', 'ssh')."""

    @abstractmethod
    def is_available(self) -> bool:
        """Check if the transport's client tooling exists locally.

        Should be fast and never raise.
        """

    @abstractmethod
    def run(self, host: Host, argv: list[str], timeout: float) -> CommandResult:
        """Run ``argv`` on ``host``, bounded by ``timeout`` seconds.

        MUST NOT raise for non-zero exit codes or timeouts.

        Raises:
            TransportError: if the host is unreachable.
        """

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
