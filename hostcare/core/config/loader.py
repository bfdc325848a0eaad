"""
Configuration loader — reads hostcare.yml into domain models.

This is the primary entry point for loading settings and the host
inventory. It reads YAML, validates against Pydantic schemas, and
returns typed domain objects.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from hostcare.core.models.fleet import FleetConfig
from hostcare.core.models.host import Host

logger = logging.getLogger(__name__)

# Default config filename
CONFIG_FILE = "hostcare.yml"


class ConfigError(Exception):
    """Raised when the configuration is invalid or missing."""


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Search for hostcare.yml starting from the given directory, walking up.

    Args:
        start_dir: Directory to start searching from (default: cwd).

    Returns:
        Path to hostcare.yml, or None if not found.
    """
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        candidate = current / CONFIG_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break  # filesystem root
        current = parent

    return None


def load_config(path: Path) -> FleetConfig:
    """Load and validate a configuration file.

    Args:
        path: Path to hostcare.yml.

    Returns:
        Validated FleetConfig model.

    Raises:
        ConfigError: If the file is missing or invalid.
    """
    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    logger.debug("Loading config from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    try:
        config = FleetConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {path}: {e}") from e

    logger.info("Loaded %d host(s) from %s", len(config.hosts), path)
    return config


def load_or_default(path: Path | None) -> tuple[FleetConfig, Path | None]:
    """Load ``path`` (or the auto-detected file); defaults when there is none.

    An explicit path that does not exist is an error; a missing
    auto-detected file is not, since hosts can be given on the command line.
    """
    if path is not None:
        return load_config(path), path

    found = find_config_file()
    if found is None:
        logger.debug("No %s found, using default settings", CONFIG_FILE)
        return FleetConfig(), None
    return load_config(found), found


def resolve_hosts(config: FleetConfig, names: list[str] | None = None) -> list[Host]:
    """Pick target hosts.

    No names means every host in the inventory. A name that is not in
    the inventory becomes an ad-hoc host with default connection
    parameters (ssh to that name, or local for ``localhost``).
    """
    if not names:
        return list(config.hosts)

    hosts = []
    for name in dict.fromkeys(names):  # de-duplicate, keep order
        host = config.get_host(name)
        if host is None:
            logger.debug("Host '%s' not in inventory, using defaults", name)
            host = Host(name=name)
        hosts.append(host)
    return hosts


def base_dir(config_path: Path | None) -> Path:
    """Directory that holds run state: next to the config file, else cwd."""
    return config_path.parent.resolve() if config_path else Path.cwd()
