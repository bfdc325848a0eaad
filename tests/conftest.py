"""
Shared test fixtures and configuration.
"""

from datetime import UTC, datetime
from pathlib import Path

import pytest

from hostcare.adapters.mock import MockTransport
from hostcare.adapters.registry import TransportRegistry
from hostcare.core.engine.executor import CommandExecutor
from hostcare.core.models.capability import CapabilityRecord
from hostcare.core.models.host import Host
from hostcare.core.models.settings import MaintenanceSettings
from hostcare.core.services.base import StepContext

# Fixed "now" for freshness checks
NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=UTC)


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def mock_transport() -> MockTransport:
    return MockTransport()


@pytest.fixture
def registry(mock_transport: MockTransport) -> TransportRegistry:
    """Registry that routes every host to ``mock_transport``."""
    reg = TransportRegistry()
    reg.set_mock_mode(True, mock_transport)
    return reg


@pytest.fixture
def executor(registry: TransportRegistry) -> CommandExecutor:
    return CommandExecutor(registry, default_timeout=30)


@pytest.fixture
def settings() -> MaintenanceSettings:
    return MaintenanceSettings()


@pytest.fixture
def host() -> Host:
    return Host(name="web1", transport="mock")


@pytest.fixture
def make_context(host: Host, executor: CommandExecutor, settings: MaintenanceSettings):
    """Build a StepContext for ``host`` with the given capabilities."""

    def _make(**capabilities: bool) -> StepContext:
        return StepContext(
            host=host,
            capabilities=CapabilityRecord(**capabilities),
            executor=executor,
            settings=settings,
            clock=lambda: NOW,
        )

    return _make


@pytest.fixture
def now() -> datetime:
    """The fixed clock used by ``make_context``."""
    return NOW
