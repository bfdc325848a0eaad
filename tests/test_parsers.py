"""
Tests for output parsers — pct list, df, docker prune, apt, dpkg.
"""

from hostcare.core.models.container import Container
from hostcare.core.services.parsers import (
    ParseSkip,
    containers_only,
    format_size,
    parse_apt_summary,
    parse_container_list,
    parse_df_available,
    parse_prune_output,
    parse_residual_packages,
    parse_size,
)

# ── pct list ─────────────────────────────────────────────────────────


class TestParseContainerList:
    def test_basic(self):
        text = "VMID Status Lock Name\n1 running web\n2 stopped db\n"
        assert parse_container_list(text) == [
            Container(id=1, state="running", name="web"),
            Container(id=2, state="stopped", name="db"),
        ]

    def test_lock_column_set(self):
        text = (
            "VMID       Status     Lock         Name\n"
            "100        running                 web\n"
            "101        stopped    backup       db\n"
        )
        containers = containers_only(parse_container_list(text))
        assert containers[1] == Container(id=101, state="stopped", name="db")

    def test_no_name(self):
        parsed = parse_container_list("VMID Status\n105 running\n")
        assert parsed == [Container(id=105, state="running", name="")]

    def test_header_only(self):
        assert parse_container_list("VMID Status Lock Name\n") == []

    def test_empty(self):
        assert parse_container_list("") == []

    def test_malformed_lines_skipped(self):
        text = "VMID Status Lock Name\nwarning: something\n200 weird\n201 running ok\n"
        parsed = parse_container_list(text)
        skips = [p for p in parsed if isinstance(p, ParseSkip)]
        assert [s.line_no for s in skips] == [2, 3]
        assert skips[0].reason == "first field is not a numeric id"
        assert skips[1].reason == "no state field"
        assert containers_only(parsed) == [Container(id=201, state="running", name="ok")]

    def test_without_header(self):
        parsed = parse_container_list("1 running web\n", has_header=False)
        assert containers_only(parsed) == [Container(id=1, state="running", name="web")]


# ── df ───────────────────────────────────────────────────────────────


class TestParseDfAvailable:
    def test_posix_output(self):
        text = (
            "Filesystem     1024-blocks     Used Available Capacity Mounted on\n"
            "/dev/sda1         20511312 15000000    400000      98% /\n"
        )
        assert parse_df_available(text) == 400000

    def test_garbage(self):
        assert parse_df_available("") is None
        assert parse_df_available("df: /nope: No such file or directory") is None
        assert parse_df_available("header\n/dev/sda1 a b c d /\n") is None


# ── Docker sizes ─────────────────────────────────────────────────────


class TestSizes:
    def test_parse_size(self):
        assert parse_size("0B") == 0
        assert parse_size("212 B") == 212
        assert parse_size("512kB") == 512_000
        assert parse_size("1.5GB") == 1_500_000_000
        assert parse_size("2MiB") == 2 * 1024 * 1024
        assert parse_size("42") == 42

    def test_parse_size_unparsable(self):
        assert parse_size("") == 0
        assert parse_size("lots") == 0
        assert parse_size("3 parsecs") == 0

    def test_format_size(self):
        assert format_size(0) == "0B"
        assert format_size(999) == "999B"
        assert format_size(1_500_000_000) == "1.50GB"
        assert format_size(2_500_000) == "2.50MB"


# ── docker prune ─────────────────────────────────────────────────────


IMAGE_PRUNE = """\
Deleted Images:
untagged: nginx:1.25
untagged: nginx@sha256:aaaa
deleted: sha256:1111
deleted: sha256:2222

Total reclaimed space: 187.3MB
"""

CONTAINER_PRUNE = """\
Deleted Containers:
4a7f7eebae0f63178aff7eb0aa39cd3f0627a203ab2df258c1a00b456cf20063
f98f9c2aa1eaf727e4ec9c0283bc7d4aa4762fbdba7f26191f26c97f64090360

Total reclaimed space: 212 B
"""

BUILDER_PRUNE = """\
ID                                              RECLAIMABLE     SIZE            LAST ACCESSED
k1w6c0udkx1q1j4d6l5zrm4o7                       true            1.2MB           2 days ago
zq3yf8nbxj2z2f3v6v0d3ixu2                       true            3.4kB           2 days ago
Total:  1.204MB
"""


class TestParsePruneOutput:
    def test_images_count_only_deleted(self):
        summary = parse_prune_output(IMAGE_PRUNE)
        assert summary.deleted == 2
        assert summary.items == ["sha256:1111", "sha256:2222"]
        assert summary.reclaimed_bytes == 187_300_000

    def test_containers(self):
        summary = parse_prune_output(CONTAINER_PRUNE)
        assert summary.deleted == 2
        assert summary.reclaimed_bytes == 212

    def test_build_cache_table(self):
        summary = parse_prune_output(BUILDER_PRUNE)
        assert summary.deleted == 2
        assert summary.items[0] == "k1w6c0udkx1q1j4d6l5zrm4o7"
        assert summary.reclaimed_bytes == 1_204_000

    def test_nothing_to_prune(self):
        summary = parse_prune_output("Total reclaimed space: 0B\n")
        assert summary.deleted == 0
        assert summary.reclaimed_bytes == 0

    def test_empty(self):
        summary = parse_prune_output("")
        assert summary.deleted == 0
        assert summary.items == []


# ── apt / dpkg ───────────────────────────────────────────────────────


class TestApt:
    def test_summary(self):
        text = "Reading package lists...\n12 upgraded, 1 newly installed, 3 to remove and 0 not upgraded.\n"
        assert parse_apt_summary(text) == (12, 1, 3)

    def test_no_summary(self):
        assert parse_apt_summary("") == (0, 0, 0)

    def test_residual_packages(self):
        text = "ii bash\nrc old-kernel\nrc libfoo1\nii  \nun gone\n"
        assert parse_residual_packages(text) == ["old-kernel", "libfoo1"]
