"""
Domain models — Pydantic types for hostcare.

All models are re-exported here for convenient access:

    from hostcare.core.models import Host, CapabilityRecord, StepResult
"""

from hostcare.core.models.capability import Capability, CapabilityRecord
from hostcare.core.models.command import CommandResult
from hostcare.core.models.container import Container
from hostcare.core.models.fleet import FleetConfig
from hostcare.core.models.host import Host
from hostcare.core.models.result import Outcome, StepResult, SubStepResult
from hostcare.core.models.settings import MaintenanceSettings

__all__ = [
    # capability.py
    "Capability",
    "CapabilityRecord",
    # command.py
    "CommandResult",
    # container.py
    "Container",
    # fleet.py
    "FleetConfig",
    # host.py
    "Host",
    # settings.py
    "MaintenanceSettings",
    # result.py
    "Outcome",
    "StepResult",
    "SubStepResult",
]
