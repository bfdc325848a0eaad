"""
Fleet configuration — the parsed content of hostcare.yml.

    settings:
      disk_space_threshold_kb: 512000
      cache_valid_time: 3600
    hosts:
      - name: pve1
        user: root
      - name: web1
        address: 10.0.0.12
        become: true
      - localhost
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from hostcare.core.models.host import Host
from hostcare.core.models.settings import MaintenanceSettings


class FleetConfig(BaseModel):
    """Settings plus the host inventory."""

    settings: MaintenanceSettings = Field(default_factory=MaintenanceSettings)
    hosts: list[Host] = Field(default_factory=list)

    @field_validator("hosts", mode="before")
    @classmethod
    def _expand_shorthand(cls, value: Any) -> Any:
        # A bare string entry is shorthand for {name: <string>}
        if value is None:
            return []
        if isinstance(value, list):
            return [{"name": item} if isinstance(item, str) else item for item in value]
        return value

    @model_validator(mode="after")
    def _unique_names(self) -> FleetConfig:
        seen: set[str] = set()
        for host in self.hosts:
            if host.name in seen:
                raise ValueError(f"duplicate host name: {host.name}")
            seen.add(host.name)
        return self

    def get_host(self, name: str) -> Host | None:
        for host in self.hosts:
            if host.name == name:
                return host
        return None
