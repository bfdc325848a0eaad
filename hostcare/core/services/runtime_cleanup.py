"""
Container runtime cleanup step (``docker-cleanup``).

Prunes what docker itself considers unused: dangling and unreferenced
images, stopped containers, unused volumes and networks, and the build
cache. Resources in use by a running container are never targeted; the
step relies on docker's own ``prune`` semantics for that.
"""

from __future__ import annotations

import logging

from hostcare.core.models.capability import CapabilityRecord
from hostcare.core.models.result import Outcome
from hostcare.core.services.base import MaintenanceStep, StepContext, SubStepRecorder
from hostcare.core.services.parsers import format_size, parse_prune_output

logger = logging.getLogger(__name__)

STEP_NAME = "docker-cleanup"

DISK_USAGE_CMD = ["docker", "system", "df"]

# (sub-step name, counter name, command), in execution order
PRUNE_OPERATIONS: tuple[tuple[str, str, list[str]], ...] = (
    ("prune-images", "images_deleted", ["docker", "image", "prune", "-a", "-f"]),
    ("prune-containers", "containers_deleted", ["docker", "container", "prune", "-f"]),
    ("prune-volumes", "volumes_deleted", ["docker", "volume", "prune", "-f"]),
    ("prune-networks", "networks_deleted", ["docker", "network", "prune", "-f"]),
    ("prune-build-cache", "build_cache_deleted", ["docker", "builder", "prune", "-f"]),
)

PRUNE_SUBSTEPS = frozenset(name for name, _, _ in PRUNE_OPERATIONS)


class RuntimeCleanupStep(MaintenanceStep):
    """Reclaim disk space held by unused docker resources."""

    name = STEP_NAME
    description = "Prune unused docker images, containers, volumes, networks, build cache"

    def applies(self, capabilities: CapabilityRecord) -> bool:
        return capabilities.has_container_runtime

    @property
    def skip_reason(self) -> str:
        return "no container runtime"

    def outcome(self, recorder: SubStepRecorder) -> Outcome:
        # Disk-usage snapshots are informational; only prunes decide
        if recorder.failed(PRUNE_SUBSTEPS):
            return Outcome.FAILED
        return Outcome.SUCCESS

    def execute(self, ctx: StepContext, recorder: SubStepRecorder) -> str:
        self._disk_usage(ctx, recorder, "disk-usage-before")

        reclaimed = 0
        for substep, counter, argv in PRUNE_OPERATIONS:
            result = ctx.run(argv)
            if not result.ok:
                recorder.command(substep, result)
                recorder.count(counter, 0)
                continue

            summary = parse_prune_output(result.stdout)
            reclaimed += summary.reclaimed_bytes
            recorder.count(counter, summary.deleted)
            recorder.command(
                substep,
                result,
                detail=f"{summary.deleted} deleted, {format_size(summary.reclaimed_bytes)} reclaimed",
            )

        recorder.count("bytes_reclaimed", reclaimed)
        self._disk_usage(ctx, recorder, "disk-usage-after")

        counts = ", ".join(
            f"{recorder.counters[counter]} {counter.removesuffix('_deleted').replace('_', ' ')}"
            for _, counter, _ in PRUNE_OPERATIONS
        )
        summary_line = f"reclaimed {format_size(reclaimed)} ({counts})"
        failed = recorder.failed(PRUNE_SUBSTEPS)
        if failed:
            summary_line += f"; failed: {', '.join(s.name for s in failed)}"
        return summary_line

    def _disk_usage(self, ctx: StepContext, recorder: SubStepRecorder, substep: str) -> None:
        result = ctx.run(DISK_USAGE_CMD)
        if result.ok:
            recorder.record(substep, Outcome.SUCCESS, detail=result.stdout.strip(), exit_code=0)
        else:
            recorder.command(substep, result)
            recorder.annotate(f"{substep} unavailable")
