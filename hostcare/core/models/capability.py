"""
Capability record — which optional subsystems a host has.

Populated once per host at the start of a run and passed unchanged into
every step. Steps never re-probe.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict


class Capability(StrEnum):
    """Optional subsystems that gate maintenance steps."""

    PACKAGE_MANAGER = "package_manager"
    CONTAINER_RUNTIME = "container_runtime"
    CONTAINER_HYPERVISOR = "container_hypervisor"
    CUSTOM_UPDATE_SCRIPT = "custom_update_script"


class CapabilityRecord(BaseModel):
    """Detected capabilities of a single host (immutable)."""

    model_config = ConfigDict(frozen=True)

    has_package_manager: bool = False
    has_container_runtime: bool = False
    has_container_hypervisor: bool = False
    has_custom_update_script: bool = False

    def has(self, capability: Capability) -> bool:
        return getattr(self, f"has_{capability.value}")

    @property
    def present(self) -> list[Capability]:
        """Capabilities the host has, in declaration order."""
        return [c for c in Capability if self.has(c)]

    def to_dict(self) -> dict[str, bool]:
        return {c.value: self.has(c) for c in Capability}
