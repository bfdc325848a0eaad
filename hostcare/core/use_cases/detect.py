"""
Detect use case — report host capabilities without changing anything.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from hostcare.adapters.base import TransportError
from hostcare.adapters.registry import TransportRegistry
from hostcare.core.config.loader import ConfigError, load_or_default, resolve_hosts
from hostcare.core.engine.detector import detect
from hostcare.core.engine.orchestrator import STEPS
from hostcare.core.models.capability import CapabilityRecord
from hostcare.core.use_cases.run import build_executor

logger = logging.getLogger(__name__)


@dataclass
class HostDetection:
    """Capabilities of one host, or why they could not be read."""

    host: str
    capabilities: CapabilityRecord | None = None
    error: str | None = None

    @property
    def reachable(self) -> bool:
        return self.capabilities is not None

    @property
    def applicable_steps(self) -> list[str]:
        if self.capabilities is None:
            return []
        return [s.name for s in STEPS if s.applies(self.capabilities)]

    def to_dict(self) -> dict:
        return {
            "host": self.host,
            "reachable": self.reachable,
            "capabilities": self.capabilities.to_dict() if self.capabilities else None,
            "steps": self.applicable_steps,
            "error": self.error,
        }


@dataclass
class DetectResult:
    """Result of the detect use case."""

    hosts: list[HostDetection] = field(default_factory=list)
    config_path: Path | None = None
    no_hosts: bool = False
    error: str | None = None

    @property
    def all_reachable(self) -> bool:
        return all(h.reachable for h in self.hosts)

    def to_dict(self) -> dict:
        if self.error:
            return {"error": self.error}
        return {
            "config_path": str(self.config_path) if self.config_path else None,
            "hosts": [h.to_dict() for h in self.hosts],
        }


def detect_capabilities(
    host_names: list[str] | None = None,
    config_path: Path | None = None,
    mock_mode: bool = False,
    registry: TransportRegistry | None = None,
) -> DetectResult:
    """Probe each target host and report its capabilities.

    Args:
        host_names: Hosts to probe. None = every inventory host.
        config_path: Optional explicit path to hostcare.yml.
        mock_mode: If True, route every host to the mock transport.
        registry: Optional pre-configured transport registry.
    """
    result = DetectResult()

    try:
        config, result.config_path = load_or_default(config_path)
    except ConfigError as e:
        result.error = str(e)
        return result

    hosts = resolve_hosts(config, host_names)
    if not hosts:
        result.no_hosts = True
        result.error = "No target hosts: pass host names or declare hosts in hostcare.yml."
        return result

    executor = build_executor(config.settings, mock_mode=mock_mode, registry=registry)
    for host in hosts:
        try:
            capabilities = detect(host, executor, config.settings)
            result.hosts.append(HostDetection(host=host.name, capabilities=capabilities))
        except TransportError as e:
            logger.warning("[%s] unreachable: %s", host.name, e.message)
            result.hosts.append(HostDetection(host=host.name, error=e.message))

    return result
