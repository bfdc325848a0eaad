"""
Mock transport — universal test double for host commands.

Used by ``--mock`` runs and by the test-suite to simulate hosts without
touching real machines. Every command succeeds with empty output unless
a response has been scripted for it.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass

from hostcare.adapters.base import Transport, TransportError
from hostcare.core.models.command import CommandResult
from hostcare.core.models.host import Host


@dataclass(frozen=True)
class _Response:
    exit_code: int = 0
    stdout: str = ""
    stderr: str = ""
    timed_out: bool = False
    unreachable: bool = False


class MockTransport(Transport):
    """Scripted transport for testing.

    Responses are matched by argv prefix, optionally per host. A
    host-specific response wins over a generic one, and a longer prefix
    wins over a shorter one.
    """

    def __init__(self, transport_name: str = "mock", available: bool = True):
        self._name = transport_name
        self._available = available
        self._responses: dict[tuple[str | None, tuple[str, ...]], _Response] = {}
        self._unreachable: set[str] = set()
        self._calls: list[tuple[str, list[str]]] = []
        self._lock = threading.Lock()

    @property
    def name(self) -> str:
        return self._name

    @property
    def call_log(self) -> list[tuple[str, list[str]]]:
        """All (host name, argv) pairs this mock has received."""
        with self._lock:
            return list(self._calls)

    @property
    def call_count(self) -> int:
        return len(self.call_log)

    def is_available(self) -> bool:
        return self._available

    def on(
        self,
        argv: list[str] | str,
        stdout: str = "",
        exit_code: int = 0,
        stderr: str = "",
        host: str | None = None,
        timed_out: bool = False,
        unreachable: bool = False,
    ) -> MockTransport:
        """Script the response for commands starting with ``argv``."""
        prefix = tuple(argv.split()) if isinstance(argv, str) else tuple(argv)
        self._responses[(host, prefix)] = _Response(
            exit_code=exit_code,
            stdout=stdout,
            stderr=stderr,
            timed_out=timed_out,
            unreachable=unreachable,
        )
        return self

    def set_unreachable(self, host: str) -> None:
        """Make every command on ``host`` raise TransportError."""
        self._unreachable.add(host)

    def calls_for(self, host: str) -> list[list[str]]:
        return [argv for name, argv in self.call_log if name == host]

    def was_called(self, argv: list[str] | str, host: str | None = None) -> bool:
        """Whether any recorded command starts with ``argv``."""
        prefix = argv.split() if isinstance(argv, str) else list(argv)
        for name, called in self.call_log:
            if host is not None and name != host:
                continue
            if called[: len(prefix)] == prefix:
                return True
        return False

    def run(self, host: Host, argv: list[str], timeout: float) -> CommandResult:
        with self._lock:
            self._calls.append((host.name, list(argv)))

        if host.name in self._unreachable:
            raise TransportError(host.name, "mock host unreachable")

        response = self._match(host.name, argv)
        if response.unreachable:
            raise TransportError(host.name, "mock connection lost")
        if response.timed_out:
            return CommandResult.timeout(list(argv), timeout)

        return CommandResult(
            argv=list(argv),
            exit_code=response.exit_code,
            stdout=response.stdout,
            stderr=response.stderr,
        )

    def _match(self, host: str, argv: list[str]) -> _Response:
        best: tuple[tuple[int, int], _Response] | None = None
        for (for_host, prefix), response in self._responses.items():
            if for_host is not None and for_host != host:
                continue
            if tuple(argv[: len(prefix)]) != prefix:
                continue
            rank = (1 if for_host is not None else 0, len(prefix))
            if best is None or rank > best[0]:
                best = (rank, response)
        return best[1] if best else _Response()
