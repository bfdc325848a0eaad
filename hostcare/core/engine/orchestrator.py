"""
Orchestrator — the central maintenance loop.

For each host: detect capabilities once, then run the maintenance steps
in fixed order, each gated by the capability it needs, and append one
StepResult per step to the run report. Hosts are independent and may be
processed in parallel; within a host, steps run strictly in sequence.

Flow:
    hosts → detect → [apt-update, docker-cleanup, lxc-filesystem-trim] → report → audit
"""

from __future__ import annotations

import logging
import threading
import time
import uuid
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from hostcare.adapters.base import TransportError
from hostcare.core.engine.detector import detect
from hostcare.core.engine.executor import CommandExecutor
from hostcare.core.models.capability import CapabilityRecord
from hostcare.core.models.host import Host
from hostcare.core.models.result import StepResult
from hostcare.core.models.settings import MaintenanceSettings
from hostcare.core.persistence.audit import AuditEntry, AuditWriter
from hostcare.core.services.base import MaintenanceStep, StepContext
from hostcare.core.services.filesystem_trim import FilesystemTrimStep
from hostcare.core.services.package_update import PackageUpdateStep
from hostcare.core.services.runtime_cleanup import RuntimeCleanupStep

logger = logging.getLogger(__name__)

# Pseudo-step names used when a host fails outside a maintenance step
DETECT_STEP = "detect"
INTERNAL_STEP = "internal"

# Fixed execution order
STEPS: tuple[MaintenanceStep, ...] = (
    PackageUpdateStep(),
    RuntimeCleanupStep(),
    FilesystemTrimStep(),
)

STEP_NAMES: tuple[str, ...] = tuple(s.name for s in STEPS)


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


@dataclass
class RunReport:
    """Results of one maintenance run across all hosts.

    ``add`` is safe to call from several host workers at once; each
    host's own results keep the order they were added in.
    """

    operation_id: str = ""
    hosts: list[str] = field(default_factory=list)
    steps: list[str] = field(default_factory=list)
    started_at: str = field(default_factory=_now_iso)
    ended_at: str = ""
    duration_ms: int = 0
    cancelled: bool = False
    results: list[StepResult] = field(default_factory=list)
    capabilities: dict[str, CapabilityRecord] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)
    _start: float = field(default_factory=time.monotonic, repr=False, compare=False)

    def add(self, result: StepResult) -> None:
        with self._lock:
            self.results.append(result)

    def set_capabilities(self, host: str, capabilities: CapabilityRecord) -> None:
        with self._lock:
            self.capabilities[host] = capabilities

    def finalize(self) -> None:
        """Stamp the end of the run."""
        self.ended_at = _now_iso()
        self.duration_ms = int((time.monotonic() - self._start) * 1000)

    def for_host(self, host: str) -> list[StepResult]:
        with self._lock:
            return [r for r in self.results if r.host == host]

    def by_host(self) -> dict[str, list[StepResult]]:
        """Results grouped per host, hosts in the order they were given."""
        return {name: self.for_host(name) for name in self.hosts}

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.ok)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if r.failed)

    @property
    def skipped(self) -> int:
        return sum(1 for r in self.results if r.skipped)

    @property
    def all_ok(self) -> bool:
        return self.failed == 0

    @property
    def status(self) -> str:
        if self.failed == 0:
            return "ok"
        if self.succeeded > 0:
            return "partial"
        return "failed"

    @property
    def exit_code(self) -> int:
        """Process exit status: 0 only if no step failed anywhere."""
        return 0 if self.all_ok else 1

    @property
    def failed_hosts(self) -> list[str]:
        return [name for name in self.hosts if any(r.failed for r in self.for_host(name))]

    def to_dict(self) -> dict[str, Any]:
        return {
            "operation_id": self.operation_id,
            "status": self.status,
            "started_at": self.started_at,
            "ended_at": self.ended_at,
            "duration_ms": self.duration_ms,
            "cancelled": self.cancelled,
            "steps": self.steps,
            "total": self.total,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "skipped": self.skipped,
            "hosts": {
                name: {
                    "capabilities": (
                        self.capabilities[name].to_dict() if name in self.capabilities else None
                    ),
                    "results": [r.model_dump(mode="json") for r in results],
                }
                for name, results in self.by_host().items()
            },
        }


def select_steps(names: list[str] | tuple[str, ...] | None = None) -> list[MaintenanceStep]:
    """Resolve step names to steps, always in the fixed execution order.

    ``None`` or an empty selection means every step.

    Raises:
        ValueError: for an unknown step name.
    """
    if not names:
        return list(STEPS)
    unknown = sorted(set(names) - set(STEP_NAMES))
    if unknown:
        raise ValueError(
            f"Unknown step(s): {', '.join(unknown)}. Valid: {', '.join(STEP_NAMES)}"
        )
    return [s for s in STEPS if s.name in names]


def run_host(
    host: Host,
    executor: CommandExecutor,
    settings: MaintenanceSettings,
    steps: list[MaintenanceStep],
    report: RunReport,
    cancel: threading.Event | None = None,
    clock: Callable[[], datetime] | None = None,
) -> None:
    """Run the selected steps on one host, appending results to ``report``.

    Cancellation is honoured between steps only, so a step that has
    started always finishes.
    """
    if cancel is not None and cancel.is_set():
        for step in steps:
            report.add(step.skipped(host, "run cancelled"))
        return

    logger.info("[%s] detecting capabilities", host.name)
    try:
        capabilities = detect(host, executor, settings)
    except TransportError as e:
        logger.warning("[%s] unreachable: %s", host.name, e.message)
        report.add(
            StepResult.failure(
                step=DETECT_STEP,
                host=host.name,
                detail=f"host unreachable: {e.message}",
                aborted=True,
            )
        )
        for step in steps:
            report.add(step.skipped(host, "host unreachable"))
        return

    report.set_capabilities(host.name, capabilities)
    ctx = StepContext(
        host=host,
        capabilities=capabilities,
        executor=executor,
        settings=settings,
    )
    if clock is not None:
        ctx.clock = clock

    for index, step in enumerate(steps):
        if cancel is not None and cancel.is_set():
            logger.warning("[%s] run cancelled before %s", host.name, step.name)
            for rest in steps[index:]:
                report.add(rest.skipped(host, "run cancelled"))
            return

        if not step.applies(capabilities):
            logger.info("[%s] ⊘ %s (%s)", host.name, step.name, step.skip_reason)
            report.add(step.skipped(host))
            continue

        logger.info("[%s] ▶ %s", host.name, step.name)
        result = step.run(ctx)
        report.add(result)

        status_marker = "✓" if result.ok else "✗" if result.failed else "⊘"
        logger.info("[%s] %s %s → %s", host.name, status_marker, step.name, result.outcome.value)

        if result.aborted:
            for rest in steps[index + 1:]:
                report.add(rest.skipped(host, "host unreachable"))
            return


def _run_host_guarded(host: Host, report: RunReport, **kwargs: Any) -> None:
    """run_host, with any unexpected error confined to this host."""
    try:
        run_host(host, report=report, **kwargs)
    except Exception as e:
        logger.exception("[%s] unexpected error during maintenance", host.name)
        report.add(
            StepResult.failure(
                step=INTERNAL_STEP,
                host=host.name,
                detail=f"unexpected error: {e}",
            )
        )


def run_fleet(
    hosts: list[Host],
    executor: CommandExecutor,
    settings: MaintenanceSettings,
    steps: list[MaintenanceStep] | None = None,
    max_workers: int | None = None,
    cancel: threading.Event | None = None,
    clock: Callable[[], datetime] | None = None,
    operation_id: str | None = None,
) -> RunReport:
    """Run maintenance on every host and return the finalized report.

    Args:
        hosts: Target hosts.
        executor: Command executor used for every host.
        settings: Thresholds, timeouts, and paths.
        steps: Steps to run (default: all, fixed order).
        max_workers: Hosts processed concurrently (default: settings.max_workers).
        cancel: Event that stops the run between steps.
        clock: Time source for freshness checks (tests).
        operation_id: Identifier for the run (default: generated).
    """
    steps = list(steps) if steps is not None else list(STEPS)
    report = RunReport(
        operation_id=operation_id or generate_operation_id(),
        hosts=[h.name for h in hosts],
        steps=[s.name for s in steps],
    )
    workers = max(1, min(max_workers or settings.max_workers, len(hosts)))
    kwargs: dict[str, Any] = {
        "executor": executor,
        "settings": settings,
        "steps": steps,
        "cancel": cancel,
        "clock": clock,
    }

    logger.info(
        "Run %s: %d host(s), steps=%s, workers=%d",
        report.operation_id,
        len(hosts),
        ",".join(report.steps),
        workers,
    )

    if workers == 1:
        for host in hosts:
            _run_host_guarded(host, report, **kwargs)
    else:
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="hostcare") as pool:
            futures = [pool.submit(_run_host_guarded, host, report, **kwargs) for host in hosts]
            for future in as_completed(futures):
                future.result()

    report.cancelled = cancel is not None and cancel.is_set()
    report.finalize()
    logger.info(
        "Run %s finished: %s (%d ok, %d failed, %d skipped)",
        report.operation_id,
        report.status,
        report.succeeded,
        report.failed,
        report.skipped,
    )
    return report


def write_audit_entry(report: RunReport, audit_writer: AuditWriter) -> None:
    """Append a summary of ``report`` to the audit ledger."""
    entry = AuditEntry(
        operation_id=report.operation_id,
        operation_type="maintenance",
        hosts=report.hosts,
        steps=report.steps,
        status=report.status,
        results_total=report.total,
        results_succeeded=report.succeeded,
        results_failed=report.failed,
        results_skipped=report.skipped,
        duration_ms=report.duration_ms,
        failed_hosts=report.failed_hosts,
        errors=[f"{r.host}:{r.step}: {r.detail}" for r in report.results if r.failed],
        context={"cancelled": report.cancelled},
    )
    audit_writer.write(entry)


def generate_operation_id() -> str:
    """Generate a unique operation ID."""
    now = datetime.now(UTC).strftime("%Y%m%d-%H%M%S")
    short = uuid.uuid4().hex[:6]
    return f"run-{now}-{short}"
