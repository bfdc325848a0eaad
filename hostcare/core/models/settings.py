"""
Maintenance settings — every tunable that changes behaviour without code.

Read from the ``settings`` mapping in hostcare.yml; individual values can
be overridden from the command line.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class MaintenanceSettings(BaseModel):
    """Thresholds, timeouts, and well-known host paths."""

    # ── Package update ───────────────────────────────────────────
    disk_space_threshold_kb: int = Field(default=512_000, ge=0)
    cache_valid_time: int = Field(default=3600, ge=0)        # seconds
    custom_update_script: str = "/usr/local/sbin/update-host"
    cache_marker: str = "/var/lib/apt/periodic/update-success-stamp"
    reboot_marker: str = "/var/run/reboot-required"
    disk_check_path: str = "/"

    # ── Execution ────────────────────────────────────────────────
    command_timeout: float = Field(default=300, gt=0)        # seconds, per command
    upgrade_timeout: float = Field(default=1800, gt=0)       # full upgrade / autoremove
    max_workers: int = Field(default=4, ge=1)                # hosts in parallel

    def with_overrides(self, **overrides: object) -> MaintenanceSettings:
        """Return a copy with the non-None overrides applied (validated)."""
        values = {k: v for k, v in overrides.items() if v is not None}
        if not values:
            return self
        return MaintenanceSettings.model_validate({**self.model_dump(), **values})
