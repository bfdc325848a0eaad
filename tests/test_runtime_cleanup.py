"""
Tests for the container runtime cleanup step (docker-cleanup).
"""

from hostcare.core.models.capability import CapabilityRecord
from hostcare.core.models.result import Outcome
from hostcare.core.services.runtime_cleanup import (
    DISK_USAGE_CMD,
    PRUNE_OPERATIONS,
    RuntimeCleanupStep,
)

IMAGE_PRUNE_OUT = """\
Deleted Images:
untagged: nginx:1.25
deleted: sha256:1111
deleted: sha256:2222

Total reclaimed space: 1.5GB
"""

VOLUME_PRUNE_OUT = """\
Deleted Volumes:
pgdata-old

Total reclaimed space: 500MB
"""


class TestRuntimeCleanup:
    def test_applies_only_with_runtime(self):
        step = RuntimeCleanupStep()
        assert step.applies(CapabilityRecord(has_container_runtime=True))
        assert not step.applies(CapabilityRecord(has_package_manager=True))

    def test_all_prunes_run_in_order(self, make_context, mock_transport):
        result = RuntimeCleanupStep().run(make_context(has_container_runtime=True))
        assert result.ok
        prune_calls = [argv for argv in mock_transport.calls_for("web1") if "prune" in argv]
        assert prune_calls == [argv for _, _, argv in PRUNE_OPERATIONS]
        assert [s.name for s in result.substeps] == [
            "disk-usage-before",
            "prune-images",
            "prune-containers",
            "prune-volumes",
            "prune-networks",
            "prune-build-cache",
            "disk-usage-after",
        ]

    def test_counters_and_summary(self, make_context, mock_transport):
        mock_transport.on("docker image prune", stdout=IMAGE_PRUNE_OUT)
        mock_transport.on("docker volume prune", stdout=VOLUME_PRUNE_OUT)
        result = RuntimeCleanupStep().run(make_context(has_container_runtime=True))

        assert result.counters["images_deleted"] == 2
        assert result.counters["volumes_deleted"] == 1
        assert result.counters["containers_deleted"] == 0
        assert result.counters["bytes_reclaimed"] == 2_000_000_000
        assert result.detail == (
            "reclaimed 2.00GB (2 images, 0 containers, 1 volumes, 0 networks, 0 build cache)"
        )

    def test_failed_prune_does_not_stop_others(self, make_context, mock_transport):
        mock_transport.on(
            "docker image prune",
            exit_code=1,
            stderr="Error response from daemon: a prune operation is already running",
        )
        result = RuntimeCleanupStep().run(make_context(has_container_runtime=True))

        assert result.failed
        assert result.substep("prune-images").failed
        for name in ("prune-containers", "prune-volumes", "prune-networks", "prune-build-cache"):
            assert result.substep(name).outcome == Outcome.SUCCESS
        assert mock_transport.was_called("docker builder prune")
        assert result.detail.endswith("failed: prune-images")
        assert result.counters["images_deleted"] == 0

    def test_disk_usage_failure_is_informational(self, make_context, mock_transport):
        mock_transport.on(DISK_USAGE_CMD, exit_code=1, stderr="permission denied")
        result = RuntimeCleanupStep().run(make_context(has_container_runtime=True))
        assert result.ok
        assert "disk-usage-before unavailable" in result.annotations
        assert "disk-usage-after unavailable" in result.annotations

    def test_daemon_down(self, make_context, mock_transport):
        mock_transport.on(
            "docker",
            exit_code=1,
            stderr="Cannot connect to the Docker daemon at unix:///var/run/docker.sock",
        )
        result = RuntimeCleanupStep().run(make_context(has_container_runtime=True))
        assert result.failed
        assert len([s for s in result.substeps if s.failed]) == 7
        assert not result.aborted
