"""Transports — how hostcare reaches hosts.

Public re-exports for convenient access.
"""

from hostcare.adapters.base import Transport, TransportError
from hostcare.adapters.local import LocalTransport
from hostcare.adapters.mock import MockTransport
from hostcare.adapters.registry import TransportRegistry, default_registry
from hostcare.adapters.ssh import SshTransport

__all__ = [
    "LocalTransport",
    "MockTransport",
    "SshTransport",
    "Transport",
    "TransportError",
    "TransportRegistry",
    "default_registry",
]
