"""
Transport registry — resolves which transport reaches a given host.

The engine never picks a transport itself: it asks the registry, which
also implements mock mode (every host routed to one mock transport).
"""

from __future__ import annotations

import logging
from typing import Any

from hostcare.adapters.base import Transport, TransportError
from hostcare.adapters.mock import MockTransport
from hostcare.core.models.host import Host

logger = logging.getLogger(__name__)


class TransportRegistry:
    """Central registry of transports.

    Features:
        - Register transports by name
        - Mock mode: route every host to a mock transport
        - Resolve the transport for a host
    """

    def __init__(self, mock_mode: bool = False):
        self._transports: dict[str, Transport] = {}
        self._mock_mode = mock_mode
        self._mock: Transport | None = None

    @property
    def mock_mode(self) -> bool:
        return self._mock_mode

    def set_mock_mode(self, enabled: bool, mock_transport: Transport | None = None) -> None:
        """Enable or disable mock mode.

        Args:
            enabled: Whether to use mock mode.
            mock_transport: Optional custom mock. If None, a default
                MockTransport is created on first use.
        """
        self._mock_mode = enabled
        self._mock = mock_transport

    def register(self, transport: Transport) -> None:
        name = transport.name
        if name in self._transports:
            logger.warning("Overwriting existing transport: %s", name)
        self._transports[name] = transport
        logger.debug("Registered transport: %s", name)

    def transport_status(self) -> dict[str, dict[str, Any]]:
        """Availability of all registered transports."""
        status = {}
        for name, transport in self._transports.items():
            try:
                available = transport.is_available()
            except Exception:
                available = False
            status[name] = {
                "name": name,
                "available": available,
                "type": transport.__class__.__name__,
            }
        return status

    def for_host(self, host: Host) -> Transport:
        """Resolve the transport used to reach ``host``.

        Raises:
            TransportError: if no transport is registered for the host's
                transport name.
        """
        if self._mock_mode:
            if self._mock is None:
                self._mock = MockTransport()
            return self._mock

        transport = self._transports.get(host.transport or "")
        if transport is None:
            raise TransportError(host.name, f"no transport registered for '{host.transport}'")
        return transport


def default_registry(mock_mode: bool = False) -> TransportRegistry:
    """Registry with the built-in local, ssh, and mock transports."""
    from hostcare.adapters.local import LocalTransport
    from hostcare.adapters.ssh import SshTransport

    registry = TransportRegistry(mock_mode=mock_mode)
    registry.register(LocalTransport())
    registry.register(SshTransport())
    registry.register(MockTransport())
    return registry
