"""
Tests for the package update step (apt-update).
"""

from datetime import datetime, timedelta

from hostcare.core.models.capability import CapabilityRecord
from hostcare.core.models.result import Outcome
from hostcare.core.services.package_update import (
    AUTOREMOVE_CMD,
    CLEAN_CMD,
    PURGE_CMD,
    REFRESH_CMD,
    RESIDUAL_QUERY_CMD,
    STANDARD_SUBSTEPS,
    UPGRADE_CMD,
    PackageUpdateStep,
    is_cache_fresh,
)

DF_LOW = (
    "Filesystem     1024-blocks     Used Available Capacity Mounted on\n"
    "/dev/sda1         20511312 20000000    400000      98% /\n"
)
DF_OK = (
    "Filesystem     1024-blocks     Used Available Capacity Mounted on\n"
    "/dev/sda1         20511312  9000000   9000000      50% /\n"
)


def _stamp(now: datetime, seconds_ago: int) -> str:
    return str(int((now - timedelta(seconds=seconds_ago)).timestamp()))


def _apt_host(mock, now: datetime):
    """Script a healthy apt host with a stale index."""
    mock.on("df", stdout=DF_OK)
    mock.on("stat", stdout=_stamp(now, 7200))
    mock.on("test -e /var/run/reboot-required", exit_code=1)
    return mock


# ── Freshness ────────────────────────────────────────────────────────


class TestCacheFreshness:
    def test_fresh(self, now):
        assert is_cache_fresh(now - timedelta(seconds=600), now, 3600)

    def test_equal_to_window_is_stale(self, now):
        assert not is_cache_fresh(now - timedelta(seconds=3600), now, 3600)

    def test_stale(self, now):
        assert not is_cache_fresh(now - timedelta(seconds=7200), now, 3600)

    def test_absent_is_stale(self, now):
        assert not is_cache_fresh(None, now, 3600)


# ── Applicability ────────────────────────────────────────────────────


class TestApplies:
    def test_needs_apt_or_script(self):
        step = PackageUpdateStep()
        assert step.applies(CapabilityRecord(has_package_manager=True))
        assert step.applies(CapabilityRecord(has_custom_update_script=True))
        assert not step.applies(CapabilityRecord(has_container_runtime=True))


# ── Custom update script ─────────────────────────────────────────────


class TestCustomScript:
    def test_script_replaces_standard_sequence(self, make_context, mock_transport):
        mock_transport.on("/usr/local/sbin/update-host", stdout="3 packages updated\n")
        ctx = make_context(has_custom_update_script=True, has_package_manager=True)

        result = PackageUpdateStep().run(ctx)

        assert result.ok
        assert result.detail == "3 packages updated\n"
        assert [s.name for s in result.substeps] == ["custom-update"]
        for argv in (CLEAN_CMD, REFRESH_CMD, UPGRADE_CMD, AUTOREMOVE_CMD, PURGE_CMD):
            assert not mock_transport.was_called(argv)

    def test_script_failure(self, make_context, mock_transport):
        mock_transport.on("/usr/local/sbin/update-host", exit_code=2, stderr="mirror down")
        result = PackageUpdateStep().run(make_context(has_custom_update_script=True))
        assert result.failed
        assert "mirror down" in result.substep("custom-update").detail


# ── Standard sequence ────────────────────────────────────────────────


class TestStandardSequence:
    def test_all_substeps_in_order(self, make_context, mock_transport, now):
        _apt_host(mock_transport, now)
        result = PackageUpdateStep().run(make_context(has_package_manager=True))
        assert result.ok
        assert [s.name for s in result.substeps] == list(STANDARD_SUBSTEPS)
        assert result.annotations == []
        assert result.counters["reboot_required"] == 0

    def test_fresh_cache_skips_refresh(self, make_context, mock_transport, now):
        _apt_host(mock_transport, now)
        mock_transport.on("stat", stdout=_stamp(now, 600))
        result = PackageUpdateStep().run(make_context(has_package_manager=True))
        assert result.substep("index-refresh").outcome == Outcome.SKIPPED
        assert not mock_transport.was_called(REFRESH_CMD)
        assert result.ok

    def test_cache_age_equal_to_window_refreshes(self, make_context, mock_transport, now):
        _apt_host(mock_transport, now)
        mock_transport.on("stat", stdout=_stamp(now, 3600))
        PackageUpdateStep().run(make_context(has_package_manager=True))
        assert mock_transport.was_called(REFRESH_CMD)

    def test_missing_stamp_refreshes(self, make_context, mock_transport, now):
        _apt_host(mock_transport, now)
        mock_transport.on("stat", exit_code=1, stderr="No such file or directory")
        PackageUpdateStep().run(make_context(has_package_manager=True))
        assert mock_transport.was_called(REFRESH_CMD)

    def test_low_disk_warns_but_upgrades(self, make_context, mock_transport, now):
        _apt_host(mock_transport, now)
        mock_transport.on("df", stdout=DF_LOW)
        result = PackageUpdateStep().run(make_context(has_package_manager=True))
        assert result.ok
        assert "low disk space: 400000 KB free (threshold 512000 KB)" in result.annotations
        assert result.counters["disk_available_kb"] == 400000
        assert mock_transport.was_called(UPGRADE_CMD)

    def test_unreadable_disk_space(self, make_context, mock_transport, now):
        _apt_host(mock_transport, now)
        mock_transport.on("df", stdout="")
        result = PackageUpdateStep().run(make_context(has_package_manager=True))
        assert result.substep("disk-check").outcome == Outcome.SKIPPED
        assert "disk space unknown" in result.annotations
        assert result.ok

    def test_failed_df_skips_disk_check(self, make_context, mock_transport, now):
        _apt_host(mock_transport, now)
        mock_transport.on("df", exit_code=1, stderr="df: /: No such file or directory")
        result = PackageUpdateStep().run(make_context(has_package_manager=True))

        disk = result.substep("disk-check")
        assert disk.outcome == Outcome.SKIPPED
        assert "exited 1: df: /: No such file or directory" in disk.detail
        assert "disk space unknown" in result.annotations
        assert "disk_available_kb" not in result.counters
        assert result.ok
        assert mock_transport.was_called(UPGRADE_CMD)

    def test_upgrade_failure_continues(self, make_context, mock_transport, now):
        _apt_host(mock_transport, now)
        mock_transport.on(UPGRADE_CMD, exit_code=100, stderr="E: Sub-process /usr/bin/dpkg returned an error code (1)")
        result = PackageUpdateStep().run(make_context(has_package_manager=True))

        assert result.failed
        assert result.substep("upgrade").failed
        assert result.substep("upgrade").exit_code == 100
        assert mock_transport.was_called(AUTOREMOVE_CMD)
        assert result.substep("reboot-check").outcome == Outcome.SUCCESS
        assert result.detail.endswith("failed: upgrade")

    def test_upgrade_timeout(self, make_context, mock_transport, now):
        _apt_host(mock_transport, now)
        mock_transport.on(UPGRADE_CMD, timed_out=True)
        result = PackageUpdateStep().run(make_context(has_package_manager=True))
        assert result.failed
        assert "timed out" in result.substep("upgrade").detail

    def test_counters_from_apt_output(self, make_context, mock_transport, now):
        _apt_host(mock_transport, now)
        mock_transport.on(UPGRADE_CMD, stdout="5 upgraded, 2 newly installed, 0 to remove and 0 not upgraded.\n")
        mock_transport.on(AUTOREMOVE_CMD, stdout="0 upgraded, 0 newly installed, 4 to remove and 0 not upgraded.\n")
        result = PackageUpdateStep().run(make_context(has_package_manager=True))
        assert result.counters["packages_upgraded"] == 5
        assert result.counters["packages_installed"] == 2
        assert result.counters["packages_removed"] == 4
        assert result.detail == "5 upgraded, 4 removed, 0 purged"

    def test_residual_packages_purged(self, make_context, mock_transport, now):
        _apt_host(mock_transport, now)
        mock_transport.on(RESIDUAL_QUERY_CMD, stdout="ii bash\nrc old-kernel\nrc libfoo1\n")
        result = PackageUpdateStep().run(make_context(has_package_manager=True))
        assert mock_transport.was_called([*PURGE_CMD, "old-kernel", "libfoo1"])
        assert result.counters["packages_purged"] == 2

    def test_no_residual_packages(self, make_context, mock_transport, now):
        _apt_host(mock_transport, now)
        result = PackageUpdateStep().run(make_context(has_package_manager=True))
        assert not mock_transport.was_called(PURGE_CMD)
        assert result.substep("purge-residual").detail == "no residual packages"

    def test_reboot_required(self, make_context, mock_transport, now):
        _apt_host(mock_transport, now)
        mock_transport.on("test -e /var/run/reboot-required", exit_code=0)
        result = PackageUpdateStep().run(make_context(has_package_manager=True))
        assert "reboot required" in result.annotations
        assert result.counters["reboot_required"] == 1

    def test_host_lost_mid_step(self, make_context, mock_transport, now):
        _apt_host(mock_transport, now)
        mock_transport.on(UPGRADE_CMD, unreachable=True)
        result = PackageUpdateStep().run(make_context(has_package_manager=True))
        assert result.failed
        assert result.aborted
        assert result.detail.startswith("host unreachable")
        assert result.substep("cache-clean").outcome == Outcome.SUCCESS
        assert not mock_transport.was_called(AUTOREMOVE_CMD)
