"""
Capability detector — probe a host once per run.

Each probe is an independent command whose exit code answers one
question. A probe that fails or times out means "absent"; detection
never fails the run. Only an unreachable host propagates, as
TransportError, for the orchestrator to handle.
"""

from __future__ import annotations

import logging

from hostcare.core.engine.executor import CommandExecutor
from hostcare.core.models.capability import Capability, CapabilityRecord
from hostcare.core.models.host import Host
from hostcare.core.models.settings import MaintenanceSettings

logger = logging.getLogger(__name__)

PROBE_TIMEOUT = 30.0


def probe_commands(settings: MaintenanceSettings) -> dict[Capability, list[str]]:
    """The probe command for each capability."""
    return {
        Capability.PACKAGE_MANAGER: ["which", "apt-get"],
        Capability.CONTAINER_RUNTIME: ["which", "docker"],
        Capability.CONTAINER_HYPERVISOR: ["which", "pct"],
        Capability.CUSTOM_UPDATE_SCRIPT: ["test", "-x", settings.custom_update_script],
    }


def detect(
    host: Host,
    executor: CommandExecutor,
    settings: MaintenanceSettings,
) -> CapabilityRecord:
    """Detect which optional subsystems ``host`` has.

    Raises:
        TransportError: if the host is unreachable.
    """
    found: dict[str, bool] = {}
    for capability, argv in probe_commands(settings).items():
        result = executor.execute(host, argv, timeout=min(PROBE_TIMEOUT, executor.default_timeout))
        found[f"has_{capability.value}"] = result.ok
        logger.info(
            "[%s] probe %s: %s",
            host.name,
            capability.value,
            "present" if result.ok else "absent",
        )

    return CapabilityRecord(**found)
