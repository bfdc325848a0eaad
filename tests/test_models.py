"""
Tests for domain models — hosts, settings, capabilities, results.
"""

import pytest
from pydantic import ValidationError

from hostcare.core.models import (
    Capability,
    CapabilityRecord,
    CommandResult,
    Container,
    FleetConfig,
    Host,
    MaintenanceSettings,
    Outcome,
    StepResult,
    SubStepResult,
)
from hostcare.core.models.command import TIMEOUT_EXIT_CODE

# ── Host ─────────────────────────────────────────────────────────────


class TestHost:
    def test_defaults_to_ssh_by_name(self):
        host = Host(name="web1")
        assert host.address == "web1"
        assert host.transport == "ssh"
        assert host.port == 22
        assert host.become is False

    def test_localhost_uses_local_transport(self):
        assert Host(name="localhost").transport == "local"
        assert Host(name="ctl", address="127.0.0.1").transport == "local"

    def test_explicit_transport_kept(self):
        assert Host(name="localhost", transport="ssh").transport == "ssh"

    def test_target_includes_user(self):
        assert Host(name="pve1", user="root").target == "root@pve1"
        assert Host(name="pve1", address="10.0.0.5").target == "10.0.0.5"

    def test_invalid_port(self):
        with pytest.raises(ValidationError):
            Host(name="x", port=0)

    def test_invalid_transport(self):
        with pytest.raises(ValidationError):
            Host(name="x", transport="telnet")


# ── Settings ─────────────────────────────────────────────────────────


class TestMaintenanceSettings:
    def test_defaults(self):
        s = MaintenanceSettings()
        assert s.disk_space_threshold_kb == 512000
        assert s.cache_valid_time == 3600
        assert s.custom_update_script == "/usr/local/sbin/update-host"
        assert s.max_workers == 4

    def test_overrides_ignore_none(self):
        s = MaintenanceSettings().with_overrides(disk_space_threshold_kb=1000, cache_valid_time=None)
        assert s.disk_space_threshold_kb == 1000
        assert s.cache_valid_time == 3600

    def test_no_overrides_returns_same(self):
        s = MaintenanceSettings()
        assert s.with_overrides(max_workers=None) is s

    def test_overrides_validated(self):
        with pytest.raises(ValidationError):
            MaintenanceSettings().with_overrides(max_workers=0)

    def test_negative_threshold_rejected(self):
        with pytest.raises(ValidationError):
            MaintenanceSettings(disk_space_threshold_kb=-1)


# ── Capabilities ─────────────────────────────────────────────────────


class TestCapabilityRecord:
    def test_has(self):
        record = CapabilityRecord(has_package_manager=True)
        assert record.has(Capability.PACKAGE_MANAGER)
        assert not record.has(Capability.CONTAINER_RUNTIME)

    def test_present_in_order(self):
        record = CapabilityRecord(has_container_hypervisor=True, has_package_manager=True)
        assert record.present == [Capability.PACKAGE_MANAGER, Capability.CONTAINER_HYPERVISOR]

    def test_to_dict(self):
        d = CapabilityRecord(has_container_runtime=True).to_dict()
        assert d == {
            "package_manager": False,
            "container_runtime": True,
            "container_hypervisor": False,
            "custom_update_script": False,
        }

    def test_immutable(self):
        record = CapabilityRecord()
        with pytest.raises(ValidationError):
            record.has_package_manager = True


# ── CommandResult ────────────────────────────────────────────────────


class TestCommandResult:
    def test_ok(self):
        assert CommandResult(argv=["true"]).ok
        assert not CommandResult(argv=["false"], exit_code=1).ok

    def test_timeout(self):
        result = CommandResult.timeout(["sleep", "10"], 2)
        assert result.timed_out
        assert result.exit_code == TIMEOUT_EXIT_CODE
        assert not result.ok
        assert result.describe_failure() == "'sleep 10' timed out"

    def test_describe_failure_uses_last_stderr_line(self):
        result = CommandResult(argv=["apt-get", "update"], exit_code=100, stderr="W: a\nE: lock held\n")
        assert result.describe_failure() == "'apt-get update' exited 100: E: lock held"

    def test_describe_failure_without_stderr(self):
        result = CommandResult(argv=["false"], exit_code=1)
        assert result.describe_failure() == "'false' exited 1"

    def test_stdout_lines(self):
        assert CommandResult(stdout="a\nb\n").stdout_lines == ["a", "b"]


class TestContainer:
    def test_running(self):
        assert Container(id=100, state="running").running
        assert not Container(id=101, state="stopped").running


# ── Results ──────────────────────────────────────────────────────────


class TestOutcome:
    def test_worst(self):
        assert Outcome.worst([Outcome.SUCCESS, Outcome.FAILED, Outcome.SKIPPED]) == Outcome.FAILED
        assert Outcome.worst([Outcome.SUCCESS, Outcome.SKIPPED]) == Outcome.SUCCESS
        assert Outcome.worst([Outcome.SKIPPED]) == Outcome.SKIPPED

    def test_worst_of_nothing_is_skipped(self):
        assert Outcome.worst([]) == Outcome.SKIPPED


class TestStepResult:
    def test_factories(self):
        assert StepResult.success(step="apt-update", host="h").ok
        assert StepResult.failure(step="apt-update", host="h", detail="boom").failed
        skipped = StepResult.skip(step="apt-update", host="h", reason="no apt")
        assert skipped.skipped
        assert skipped.detail == "no apt"

    def test_substep_lookup(self):
        result = StepResult.success(
            step="apt-update",
            host="h",
            substeps=[SubStepResult(name="upgrade", outcome=Outcome.FAILED, exit_code=100)],
        )
        assert result.substep("upgrade").failed
        assert result.substep("autoremove") is None

    def test_serializes(self):
        result = StepResult.success(step="docker-cleanup", host="h", counters={"images_deleted": 2})
        data = result.model_dump(mode="json")
        assert data["outcome"] == "success"
        assert data["counters"] == {"images_deleted": 2}


# ── FleetConfig ──────────────────────────────────────────────────────


class TestFleetConfig:
    def test_string_shorthand(self):
        config = FleetConfig.model_validate({"hosts": ["web1", {"name": "pve1", "user": "root"}]})
        assert [h.name for h in config.hosts] == ["web1", "pve1"]
        assert config.get_host("pve1").user == "root"
        assert config.get_host("nope") is None

    def test_duplicate_names_rejected(self):
        with pytest.raises(ValidationError, match="duplicate host name"):
            FleetConfig.model_validate({"hosts": ["web1", "web1"]})

    def test_null_hosts(self):
        assert FleetConfig.model_validate({"hosts": None}).hosts == []
