"""
Command executor — the single path from a step to an external tool.

Every command a step issues goes through ``CommandExecutor.execute``:
it resolves the host's transport, applies privilege escalation and the
timeout, and logs the outcome. A non-zero exit is returned to the caller
to interpret; only an unreachable host raises (TransportError).
"""

from __future__ import annotations

import logging

from hostcare.adapters.registry import TransportRegistry
from hostcare.core.models.command import CommandResult
from hostcare.core.models.host import Host

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 300.0


class CommandExecutor:
    """Run commands on hosts through the transport registry.

    Args:
        registry: Transport registry used to reach hosts.
        default_timeout: Seconds allowed per command when the caller
            does not pass one.
    """

    def __init__(self, registry: TransportRegistry, default_timeout: float = DEFAULT_TIMEOUT):
        self._registry = registry
        self._default_timeout = default_timeout

    @property
    def registry(self) -> TransportRegistry:
        return self._registry

    @property
    def default_timeout(self) -> float:
        return self._default_timeout

    def execute(
        self,
        host: Host,
        argv: list[str],
        timeout: float | None = None,
    ) -> CommandResult:
        """Run ``argv`` on ``host`` and return what happened.

        No retries are attempted here.

        Raises:
            TransportError: if the host cannot be reached.
        """
        if host.become:
            argv = ["sudo", "-n", *argv]
        timeout = timeout if timeout is not None else self._default_timeout

        transport = self._registry.for_host(host)
        result = transport.run(host, argv, timeout)

        if result.ok:
            logger.debug("[%s] ✓ %s (%dms)", host.name, result.command, result.duration_ms)
        else:
            logger.info("[%s] ✗ %s", host.name, result.describe_failure())
        return result
