"""
Host state — marker files read from the host.

The apt freshness stamp and the reboot-required marker live on the
host. They are read fresh through the executor every time a step asks,
never cached in this process, so a long-lived process cannot act on a
stale view from an earlier run.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from hostcare.core.engine.executor import CommandExecutor
from hostcare.core.models.host import Host

logger = logging.getLogger(__name__)


class HostState:
    """Read-only view of marker files on one host."""

    def __init__(self, host: Host, executor: CommandExecutor):
        self._host = host
        self._executor = executor

    def marker_exists(self, path: str) -> bool:
        """Whether ``path`` exists on the host."""
        return self._executor.execute(self._host, ["test", "-e", path]).ok

    def marker_timestamp(self, path: str) -> datetime | None:
        """Modification time of ``path``, or None if absent/unreadable."""
        result = self._executor.execute(self._host, ["stat", "-c", "%Y", path])
        if not result.ok:
            return None
        try:
            epoch = int(result.stdout.strip())
        except ValueError:
            logger.debug("[%s] unparsable stat output for %s: %r", self._host.name, path, result.stdout)
            return None
        return datetime.fromtimestamp(epoch, UTC)
