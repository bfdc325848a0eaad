"""
Container filesystem trim step (``lxc-filesystem-trim``).

Lists the containers a Proxmox host knows about and runs ``pct fstrim``
on each running one. Stopped containers are left alone: their backing
storage may not be mounted.
"""

from __future__ import annotations

import logging

from hostcare.core.models.capability import CapabilityRecord
from hostcare.core.models.result import Outcome
from hostcare.core.services.base import MaintenanceStep, StepContext, SubStepRecorder
from hostcare.core.services.parsers import ParseSkip, containers_only, parse_container_list

logger = logging.getLogger(__name__)

STEP_NAME = "lxc-filesystem-trim"

LIST_CMD = ["pct", "list"]
TRIM_CMD = ["pct", "fstrim"]


class FilesystemTrimStep(MaintenanceStep):
    """Trim the filesystems of running containers."""

    name = STEP_NAME
    description = "Run fstrim inside every running LXC container"

    def applies(self, capabilities: CapabilityRecord) -> bool:
        return capabilities.has_container_hypervisor

    @property
    def skip_reason(self) -> str:
        return "no container hypervisor"

    def outcome(self, recorder: SubStepRecorder) -> Outcome:
        # Individual trim failures are annotated; only the listing decides
        if recorder.failed({"list-containers"}):
            return Outcome.FAILED
        return Outcome.SUCCESS

    def execute(self, ctx: StepContext, recorder: SubStepRecorder) -> str:
        listing = ctx.run(LIST_CMD)
        if not listing.ok:
            recorder.command("list-containers", listing)
            return "container listing failed"

        parsed = parse_container_list(listing.stdout)
        for skip in parsed:
            if isinstance(skip, ParseSkip):
                logger.info(
                    "[%s] skipping container list line %d (%s): %r",
                    ctx.host.name,
                    skip.line_no,
                    skip.reason,
                    skip.line,
                )

        containers = containers_only(parsed)
        running = [c for c in containers if c.running]
        recorder.command(
            "list-containers",
            listing,
            detail=f"{len(containers)} containers, {len(running)} running",
        )
        recorder.count("containers_running", len(running))

        trimmed = failed = 0
        for container in running:
            result = ctx.run([*TRIM_CMD, str(container.id)])
            label = f"fstrim {container.id}" + (f" ({container.name})" if container.name else "")
            recorder.command(label, result, detail=result.stdout.strip())
            if result.ok:
                trimmed += 1
            else:
                failed += 1

        recorder.count("containers_trimmed", trimmed)
        recorder.count("containers_failed", failed)
        if failed:
            recorder.annotate(f"{failed} of {len(running)} running containers failed to trim")

        return f"trimmed {trimmed}/{len(running)} running containers"
