"""
Package update step (``apt-update``).

Runs either the host's own update script or the standard apt sequence:

    cache-clean → index-refresh → disk-check → upgrade → autoremove
                → purge-residual → reboot-check

The index refresh is skipped while the apt success stamp is younger than
``cache_valid_time``. A low-disk reading only annotates the result; the
upgrade still runs. Every sub-step is attempted even after an earlier
one failed.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from hostcare.core.models.capability import CapabilityRecord
from hostcare.core.models.result import Outcome
from hostcare.core.services.base import MaintenanceStep, StepContext, SubStepRecorder
from hostcare.core.services.parsers import (
    parse_apt_summary,
    parse_df_available,
    parse_residual_packages,
)

logger = logging.getLogger(__name__)

STEP_NAME = "apt-update"

APT_GET = ["env", "DEBIAN_FRONTEND=noninteractive", "apt-get"]
DPKG_OPTIONS = ["-o", "Dpkg::Options::=--force-confdef", "-o", "Dpkg::Options::=--force-confold"]

CLEAN_CMD = [*APT_GET, "clean"]
REFRESH_CMD = [*APT_GET, "update"]
UPGRADE_CMD = [*APT_GET, "-y", *DPKG_OPTIONS, "dist-upgrade"]
AUTOREMOVE_CMD = [*APT_GET, "-y", "autoremove", "--purge"]
RESIDUAL_QUERY_CMD = ["dpkg-query", "-W", "-f", "${db:Status-Abbrev} ${Package}\\n"]
PURGE_CMD = ["dpkg", "--purge"]

# Sub-steps of the standard sequence, in order
STANDARD_SUBSTEPS = (
    "cache-clean",
    "index-refresh",
    "disk-check",
    "upgrade",
    "autoremove",
    "purge-residual",
    "reboot-check",
)


def is_cache_fresh(stamp: datetime | None, now: datetime, valid_seconds: int) -> bool:
    """Whether the last index refresh is recent enough to skip another.

    An age exactly equal to the window is stale.
    """
    if stamp is None:
        return False
    return now - stamp < timedelta(seconds=valid_seconds)


class PackageUpdateStep(MaintenanceStep):
    """Bring system packages up to date."""

    name = STEP_NAME
    description = "Update system packages (apt) or run the host's update script"

    def applies(self, capabilities: CapabilityRecord) -> bool:
        return capabilities.has_custom_update_script or capabilities.has_package_manager

    @property
    def skip_reason(self) -> str:
        return "no package manager and no custom update script"

    def execute(self, ctx: StepContext, recorder: SubStepRecorder) -> str:
        if ctx.capabilities.has_custom_update_script:
            return self._custom_update(ctx, recorder)
        return self._standard_update(ctx, recorder)

    # ── Custom script ───────────────────────────────────────────

    def _custom_update(self, ctx: StepContext, recorder: SubStepRecorder) -> str:
        script = ctx.settings.custom_update_script
        logger.info("[%s] running custom update script %s", ctx.host.name, script)
        result = ctx.run([script], timeout=ctx.settings.upgrade_timeout)
        recorder.command("custom-update", result, detail=f"exit {result.exit_code}")
        return result.stdout

    # ── Standard apt sequence ───────────────────────────────────

    def _standard_update(self, ctx: StepContext, recorder: SubStepRecorder) -> str:
        settings = ctx.settings

        recorder.command("cache-clean", ctx.run(CLEAN_CMD))

        stamp = ctx.state.marker_timestamp(settings.cache_marker)
        if is_cache_fresh(stamp, ctx.clock(), settings.cache_valid_time):
            recorder.skip("index-refresh", f"cache refreshed at {stamp.isoformat()}")
        else:
            recorder.command("index-refresh", ctx.run(REFRESH_CMD))

        self._check_disk(ctx, recorder)

        upgrade = ctx.run(UPGRADE_CMD, timeout=settings.upgrade_timeout)
        upgraded, installed, _ = parse_apt_summary(upgrade.stdout)
        recorder.command("upgrade", upgrade, detail=f"{upgraded} upgraded, {installed} newly installed")
        recorder.count("packages_upgraded", upgraded)
        recorder.count("packages_installed", installed)

        autoremove = ctx.run(AUTOREMOVE_CMD, timeout=settings.upgrade_timeout)
        _, _, removed = parse_apt_summary(autoremove.stdout)
        recorder.command("autoremove", autoremove, detail=f"{removed} removed")
        recorder.count("packages_removed", removed)

        purged = self._purge_residual(ctx, recorder)

        if ctx.state.marker_exists(settings.reboot_marker):
            recorder.record("reboot-check", Outcome.SUCCESS, detail="reboot required")
            recorder.annotate("reboot required")
            recorder.count("reboot_required", 1)
        else:
            recorder.record("reboot-check", Outcome.SUCCESS, detail="no reboot required")
            recorder.count("reboot_required", 0)

        summary = f"{upgraded} upgraded, {removed} removed, {purged} purged"
        failed = recorder.failed()
        if failed:
            summary += f"; failed: {', '.join(s.name for s in failed)}"
        return summary

    def _check_disk(self, ctx: StepContext, recorder: SubStepRecorder) -> None:
        threshold = ctx.settings.disk_space_threshold_kb
        result = ctx.run(["df", "-Pk", ctx.settings.disk_check_path])
        available = parse_df_available(result.stdout) if result.ok else None
        if available is None:
            reason = "unparsable df output" if result.ok else result.describe_failure()
            recorder.skip("disk-check", reason)
            recorder.annotate("disk space unknown")
            return

        recorder.count("disk_available_kb", available)
        if available < threshold:
            warning = f"low disk space: {available} KB free (threshold {threshold} KB)"
            recorder.annotate(warning)
            recorder.record("disk-check", Outcome.SUCCESS, detail=warning, exit_code=0)
            logger.warning("[%s] %s", ctx.host.name, warning)
        else:
            recorder.record("disk-check", Outcome.SUCCESS, detail=f"{available} KB free", exit_code=0)

    def _purge_residual(self, ctx: StepContext, recorder: SubStepRecorder) -> int:
        query = ctx.run(RESIDUAL_QUERY_CMD)
        if not query.ok:
            recorder.command("purge-residual", query)
            return 0

        packages = parse_residual_packages(query.stdout)
        if not packages:
            recorder.record("purge-residual", Outcome.SUCCESS, detail="no residual packages", exit_code=0)
            return 0

        purge = ctx.run([*PURGE_CMD, *packages], timeout=ctx.settings.upgrade_timeout)
        recorder.command("purge-residual", purge, detail=f"{len(packages)} purged")
        if purge.ok:
            recorder.count("packages_purged", len(packages))
            return len(packages)
        return 0
