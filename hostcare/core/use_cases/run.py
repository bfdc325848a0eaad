"""
Run use case — perform maintenance across the fleet.

This is the top-level entry: it loads config, resolves target hosts,
applies overrides, builds the executor, runs the orchestrator, and
writes the audit ledger. The full vertical slice from user intent to
audited execution.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from hostcare.adapters.registry import TransportRegistry, default_registry
from hostcare.core.config.loader import ConfigError, base_dir, load_or_default, resolve_hosts
from hostcare.core.engine.executor import CommandExecutor
from hostcare.core.engine.orchestrator import RunReport, run_fleet, select_steps, write_audit_entry
from hostcare.core.models.host import Host
from hostcare.core.models.settings import MaintenanceSettings
from hostcare.core.persistence.audit import AuditWriter, default_audit_path

logger = logging.getLogger(__name__)


@dataclass
class RunResult:
    """Result of a maintenance run."""

    report: RunReport | None = None
    hosts: list[Host] = field(default_factory=list)
    settings: MaintenanceSettings | None = None
    config_path: Path | None = None
    audit_path: Path | None = None
    no_hosts: bool = False
    error: str | None = None

    @property
    def exit_code(self) -> int:
        if self.error or self.report is None:
            return 1
        return self.report.exit_code

    def to_dict(self) -> dict:
        result: dict[str, Any] = {}
        if self.error:
            result["error"] = self.error
            return result

        result["config_path"] = str(self.config_path) if self.config_path else None
        result["audit_path"] = str(self.audit_path) if self.audit_path else None
        if self.report:
            result["report"] = self.report.to_dict()
        return result


def build_executor(
    settings: MaintenanceSettings,
    mock_mode: bool = False,
    registry: TransportRegistry | None = None,
) -> CommandExecutor:
    """Command executor over the given (or default) transport registry."""
    if registry is None:
        registry = default_registry(mock_mode=mock_mode)
    return CommandExecutor(registry, default_timeout=settings.command_timeout)


def run_maintenance(
    host_names: list[str] | None = None,
    config_path: Path | None = None,
    step_names: list[str] | None = None,
    overrides: dict[str, Any] | None = None,
    mock_mode: bool = False,
    registry: TransportRegistry | None = None,
    cancel: threading.Event | None = None,
    audit: bool = True,
    clock: Callable[[], datetime] | None = None,
) -> RunResult:
    """Run maintenance steps on the target hosts.

    Args:
        host_names: Hosts to target. None = every inventory host.
        config_path: Optional explicit path to hostcare.yml.
        step_names: Steps to run. None = all, in fixed order.
        overrides: Setting overrides (None values are ignored).
        mock_mode: If True, route every host to the mock transport.
        registry: Optional pre-configured transport registry.
        cancel: Event that stops the run between steps.
        audit: Whether to append the run to the audit ledger.
        clock: Time source for freshness checks (tests).

    Returns:
        RunResult with the run report.
    """
    result = RunResult()

    # ── Load config ──────────────────────────────────────────────
    try:
        config, result.config_path = load_or_default(config_path)
    except ConfigError as e:
        result.error = str(e)
        return result

    try:
        settings = config.settings.with_overrides(**(overrides or {}))
        steps = select_steps(step_names)
    except (ValidationError, ValueError) as e:
        result.error = str(e)
        return result
    result.settings = settings

    # ── Resolve hosts ────────────────────────────────────────────
    hosts = resolve_hosts(config, host_names)
    result.hosts = hosts
    if not hosts:
        result.no_hosts = True
        result.error = "No target hosts: pass host names or declare hosts in hostcare.yml."
        return result

    # ── Execute ──────────────────────────────────────────────────
    executor = build_executor(settings, mock_mode=mock_mode, registry=registry)
    report = run_fleet(
        hosts,
        executor,
        settings,
        steps=steps,
        cancel=cancel,
        clock=clock,
    )
    result.report = report

    # ── Write audit log ──────────────────────────────────────────
    if audit:
        audit_path = default_audit_path(base_dir(result.config_path))
        write_audit_entry(report, AuditWriter(audit_path))
        result.audit_path = audit_path

    return result
