"""
Config check use case — validate hostcare.yml and report issues.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from hostcare.adapters.registry import TransportRegistry, default_registry
from hostcare.core.config.loader import ConfigError, find_config_file, load_config
from hostcare.core.models.fleet import FleetConfig


@dataclass
class ConfigCheckResult:
    """Result of configuration validation."""

    valid: bool = False
    config: FleetConfig | None = None
    config_path: Path | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "valid": self.valid,
            "config_path": str(self.config_path) if self.config_path else None,
            "errors": self.errors,
            "warnings": self.warnings,
            "host_count": len(self.config.hosts) if self.config else 0,
            "settings": self.config.settings.model_dump(mode="json") if self.config else None,
        }


def check_config(
    config_path: Path | None = None,
    registry: TransportRegistry | None = None,
) -> ConfigCheckResult:
    """Validate configuration and report issues.

    Args:
        config_path: Optional explicit path to hostcare.yml.
        registry: Transports checked for availability (default: built-in).
    """
    result = ConfigCheckResult()

    if config_path is None:
        config_path = find_config_file()
    if config_path is None:
        result.errors.append("No hostcare.yml found.")
        return result
    result.config_path = config_path

    try:
        config = load_config(config_path)
        result.config = config
    except ConfigError as e:
        result.errors.append(str(e))
        return result

    settings = config.settings

    # Semantic checks
    if not config.hosts:
        result.warnings.append("No hosts declared. Hosts must be given on the command line.")

    if settings.disk_space_threshold_kb == 0:
        result.warnings.append("disk_space_threshold_kb is 0: the low-disk warning is disabled.")

    if settings.cache_valid_time == 0:
        result.warnings.append("cache_valid_time is 0: the package index is refreshed on every run.")

    if settings.upgrade_timeout < settings.command_timeout:
        result.warnings.append(
            "upgrade_timeout is shorter than command_timeout; full upgrades usually need longer."
        )

    if config.hosts and settings.max_workers > len(config.hosts):
        result.warnings.append(
            f"max_workers ({settings.max_workers}) exceeds the number of hosts ({len(config.hosts)})."
        )

    become_local = [h.name for h in config.hosts if h.transport == "local" and h.become]
    if become_local:
        result.warnings.append(
            f"Local host(s) with become: {', '.join(become_local)} need passwordless sudo."
        )

    status = (registry or default_registry()).transport_status()
    for name, info in status.items():
        users = [h.name for h in config.hosts if h.transport == name]
        if users and not info["available"]:
            result.warnings.append(
                f"Transport '{name}' is not available on this machine; "
                f"cannot reach: {', '.join(users)}."
            )

    result.valid = len(result.errors) == 0
    return result
