"""
Maintenance step base — shared plumbing for the three steps.

A step is a sequence of sub-steps, each one usually a single external
command. Sub-steps are attempted independently and recorded as they go;
the step's outcome is derived from them afterwards. A step never raises:
command failures become Failed sub-steps, and an unreachable host turns
into a Failed, ``aborted`` StepResult.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime

from hostcare.adapters.base import TransportError
from hostcare.core.engine.executor import CommandExecutor
from hostcare.core.engine.host_state import HostState
from hostcare.core.models.capability import CapabilityRecord
from hostcare.core.models.command import CommandResult
from hostcare.core.models.host import Host
from hostcare.core.models.result import Outcome, StepResult, SubStepResult
from hostcare.core.models.settings import MaintenanceSettings

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass
class StepContext:
    """Everything a step needs to run against one host."""

    host: Host
    capabilities: CapabilityRecord
    executor: CommandExecutor
    settings: MaintenanceSettings
    clock: Callable[[], datetime] = _utcnow

    @property
    def state(self) -> HostState:
        return HostState(self.host, self.executor)

    def run(self, argv: list[str], timeout: float | None = None) -> CommandResult:
        """Shorthand for executing a command on this context's host."""
        return self.executor.execute(self.host, argv, timeout=timeout)


@dataclass
class SubStepRecorder:
    """Collects sub-step results, annotations, and counters for one step."""

    host: str = ""
    substeps: list[SubStepResult] = field(default_factory=list)
    annotations: list[str] = field(default_factory=list)
    counters: dict[str, int] = field(default_factory=dict)

    def record(
        self,
        name: str,
        outcome: Outcome,
        detail: str = "",
        exit_code: int | None = None,
        duration_ms: int = 0,
    ) -> SubStepResult:
        sub = SubStepResult(
            name=name,
            outcome=outcome,
            detail=detail,
            exit_code=exit_code,
            duration_ms=duration_ms,
        )
        self.substeps.append(sub)
        marker = {"success": "✓", "failed": "✗"}.get(outcome.value, "⊘")
        logger.info("[%s]   %s %s%s", self.host, marker, name, f" — {detail}" if detail else "")
        return sub

    def command(self, name: str, result: CommandResult, detail: str = "") -> SubStepResult:
        """Record a sub-step from a command result.

        Failed unless the command exited 0; a failed sub-step always
        carries the failure description rather than ``detail``.
        """
        if result.ok:
            return self.record(
                name,
                Outcome.SUCCESS,
                detail=detail,
                exit_code=result.exit_code,
                duration_ms=result.duration_ms,
            )
        return self.record(
            name,
            Outcome.FAILED,
            detail=result.describe_failure(),
            exit_code=result.exit_code,
            duration_ms=result.duration_ms,
        )

    def skip(self, name: str, reason: str) -> SubStepResult:
        return self.record(name, Outcome.SKIPPED, detail=reason)

    def annotate(self, text: str) -> None:
        self.annotations.append(text)

    def count(self, key: str, n: int = 1) -> None:
        self.counters[key] = self.counters.get(key, 0) + n

    def failed(self, names: set[str] | None = None) -> list[SubStepResult]:
        """Failed sub-steps, optionally limited to ``names``."""
        return [
            s for s in self.substeps
            if s.failed and (names is None or s.name in names)
        ]

    @property
    def outcome(self) -> Outcome:
        return Outcome.worst([s.outcome for s in self.substeps])


class MaintenanceStep(ABC):
    """Abstract base class for maintenance steps.

    To create a new step:
        1. Subclass MaintenanceStep and set ``name``
        2. Implement applies() and execute()
        3. Add it to ``STEPS`` in the orchestrator
    """

    name: str = ""
    description: str = ""

    @abstractmethod
    def applies(self, capabilities: CapabilityRecord) -> bool:
        """Whether the host has what this step needs."""

    @property
    def skip_reason(self) -> str:
        return "required capability not present"

    @abstractmethod
    def execute(self, ctx: StepContext, recorder: SubStepRecorder) -> str:
        """Run the sub-steps and return a one-line summary.

        May let TransportError propagate; everything else is recorded.
        """

    def outcome(self, recorder: SubStepRecorder) -> Outcome:
        """Overall outcome; by default the worst sub-step outcome."""
        return recorder.outcome

    def run(self, ctx: StepContext) -> StepResult:
        """Execute the step against ``ctx.host`` and build its result."""
        started_at = _utcnow().isoformat()
        recorder = SubStepRecorder(host=ctx.host.name)

        try:
            detail = self.execute(ctx, recorder)
        except TransportError as e:
            logger.warning("[%s] %s aborted: %s", ctx.host.name, self.name, e.message)
            return StepResult.failure(
                step=self.name,
                host=ctx.host.name,
                detail=f"host unreachable: {e.message}",
                annotations=recorder.annotations,
                counters=recorder.counters,
                substeps=recorder.substeps,
                started_at=started_at,
                aborted=True,
            )

        return StepResult(
            step=self.name,
            host=ctx.host.name,
            outcome=self.outcome(recorder),
            detail=detail,
            annotations=recorder.annotations,
            counters=recorder.counters,
            substeps=recorder.substeps,
            started_at=started_at,
        )

    def skipped(self, host: Host, reason: str | None = None) -> StepResult:
        """Explicit Skipped record for a host this step does not apply to."""
        return StepResult.skip(step=self.name, host=host.name, reason=reason or self.skip_reason)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
