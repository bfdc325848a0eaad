"""
StepResult and SubStepResult — the outcome contract of maintenance steps.

Steps run commands and return results. They never raise for a failing
command: the failure is captured here, next to the sub-steps that did
succeed, and the run carries on.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class Outcome(StrEnum):
    """Outcome of a step or sub-step."""

    SUCCESS = "success"
    SKIPPED = "skipped"
    FAILED = "failed"

    @property
    def severity(self) -> int:
        return _SEVERITY[self]

    @classmethod
    def worst(cls, outcomes: list[Outcome]) -> Outcome:
        """Most severe outcome; Failed > Success > Skipped."""
        if not outcomes:
            return cls.SKIPPED
        return max(outcomes, key=lambda o: o.severity)


_SEVERITY = {Outcome.SKIPPED: 0, Outcome.SUCCESS: 1, Outcome.FAILED: 2}


class SubStepResult(BaseModel):
    """One command (or check) inside a step."""

    model_config = ConfigDict(frozen=True)

    name: str
    outcome: Outcome
    exit_code: int | None = None
    detail: str = ""
    duration_ms: int = 0

    @property
    def failed(self) -> bool:
        return self.outcome == Outcome.FAILED


class StepResult(BaseModel):
    """Result of one maintenance step on one host.

    Immutable once created; appended to the run report.
    """

    model_config = ConfigDict(frozen=True)

    step: str
    host: str
    outcome: Outcome = Outcome.SUCCESS

    detail: str = ""
    annotations: list[str] = Field(default_factory=list)
    counters: dict[str, int] = Field(default_factory=dict)
    substeps: list[SubStepResult] = Field(default_factory=list)

    started_at: str = Field(default_factory=_now_iso)
    ended_at: str = Field(default_factory=_now_iso)

    aborted: bool = False   # transport failure: the host's run stops here

    @property
    def ok(self) -> bool:
        return self.outcome == Outcome.SUCCESS

    @property
    def failed(self) -> bool:
        return self.outcome == Outcome.FAILED

    @property
    def skipped(self) -> bool:
        return self.outcome == Outcome.SKIPPED

    def substep(self, name: str) -> SubStepResult | None:
        """Look up a sub-step result by name."""
        for sub in self.substeps:
            if sub.name == name:
                return sub
        return None

    @classmethod
    def success(cls, step: str, host: str, detail: str = "", **kwargs: Any) -> StepResult:
        """Create a success result."""
        return cls(step=step, host=host, outcome=Outcome.SUCCESS, detail=detail, **kwargs)

    @classmethod
    def failure(cls, step: str, host: str, detail: str, **kwargs: Any) -> StepResult:
        """Create a failure result."""
        return cls(step=step, host=host, outcome=Outcome.FAILED, detail=detail, **kwargs)

    @classmethod
    def skip(cls, step: str, host: str, reason: str = "", **kwargs: Any) -> StepResult:
        """Create a skip result."""
        return cls(step=step, host=host, outcome=Outcome.SKIPPED, detail=reason, **kwargs)
