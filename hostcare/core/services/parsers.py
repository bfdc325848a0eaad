"""
Output parsers — turn tool output into structured records.

All parsers are tolerant: malformed input never raises. Line-oriented
parsers return a ``ParseSkip`` for each line they could not use, so the
caller can log it and carry on.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from hostcare.core.models.container import Container


# ═══════════════════════════════════════════════════════════════════
#  Container listing (pct list)
# ═══════════════════════════════════════════════════════════════════

# State words printed by `pct list` (and `lxc-ls -f`)
CONTAINER_STATES = frozenset({"running", "stopped", "paused", "frozen", "unknown"})

_CONTAINER_ID = re.compile(r"^\d+$")


@dataclass(frozen=True)
class ParseSkip:
    """A line that could not be turned into a record."""

    line_no: int
    line: str
    reason: str


ParsedLine = Container | ParseSkip


def parse_container_list(text: str, has_header: bool = True) -> list[ParsedLine]:
    """Parse ``pct list`` output into containers.

    Expected layout (whitespace separated, header first)::

        VMID       Status     Lock         Name
        100        running                 web
        101        stopped    backup       db

    The first field must be the numeric id; the state is the first later
    field that is a known state word (the Lock column may be empty or
    set). The name is the last field when one follows the state.
    """
    parsed: list[ParsedLine] = []
    for line_no, raw in enumerate(text.splitlines(), start=1):
        if has_header and line_no == 1:
            continue
        line = raw.strip()
        if not line:
            continue

        fields = line.split()
        if not _CONTAINER_ID.match(fields[0]):
            parsed.append(ParseSkip(line_no, raw, "first field is not a numeric id"))
            continue

        state_idx = next(
            (i for i, f in enumerate(fields[1:], start=1) if f.lower() in CONTAINER_STATES),
            None,
        )
        if state_idx is None:
            parsed.append(ParseSkip(line_no, raw, "no state field"))
            continue

        name = fields[-1] if len(fields) > state_idx + 1 else ""
        parsed.append(
            Container(id=int(fields[0]), state=fields[state_idx].lower(), name=name)
        )

    return parsed


def containers_only(parsed: list[ParsedLine]) -> list[Container]:
    return [p for p in parsed if isinstance(p, Container)]


# ═══════════════════════════════════════════════════════════════════
#  df
# ═══════════════════════════════════════════════════════════════════


def parse_df_available(text: str) -> int | None:
    """Available KB from ``df -Pk <path>`` output (4th column of the last row)."""
    lines = [ln for ln in text.strip().splitlines() if ln.strip()]
    if len(lines) < 2:
        return None
    fields = lines[-1].split()
    if len(fields) < 4:
        return None
    try:
        return int(fields[3])
    except ValueError:
        return None


# ═══════════════════════════════════════════════════════════════════
#  Docker sizes and prune output
# ═══════════════════════════════════════════════════════════════════

_SIZE = re.compile(r"^\s*([\d.]+)\s*([kKMGTP]?i?B)?\s*$")

_UNITS = {
    "": 1,
    "B": 1,
    "kB": 1000,
    "KB": 1000,
    "MB": 1000**2,
    "GB": 1000**3,
    "TB": 1000**4,
    "PB": 1000**5,
    "KiB": 1024,
    "kiB": 1024,
    "MiB": 1024**2,
    "GiB": 1024**3,
    "TiB": 1024**4,
}

_RECLAIMED = re.compile(r"^Total(?: reclaimed space)?:\s*([\d.]+\s*[A-Za-z]*)", re.MULTILINE)


def parse_size(text: str) -> int:
    """Bytes from a docker size string such as ``1.5GB`` or ``512kB``.

    Unparsable input counts as 0.
    """
    match = _SIZE.match(text or "")
    if not match:
        return 0
    unit = match.group(2) or ""
    multiplier = _UNITS.get(unit)
    if multiplier is None:
        return 0
    try:
        return round(float(match.group(1)) * multiplier)
    except ValueError:
        return 0


def format_size(num_bytes: int) -> str:
    """Human-readable size in docker's decimal units."""
    size = float(num_bytes)
    for unit in ("B", "kB", "MB", "GB", "TB"):
        if size < 1000 or unit == "TB":
            return f"{size:.0f}{unit}" if unit == "B" else f"{size:.2f}{unit}"
        size /= 1000
    return f"{num_bytes}B"


@dataclass
class PruneSummary:
    """What a ``docker <kind> prune`` reported."""

    deleted: int = 0
    reclaimed_bytes: int = 0
    items: list[str] = field(default_factory=list)


def parse_prune_output(text: str) -> PruneSummary:
    """Parse the output of ``docker {image,container,volume,network,builder} prune``.

    Counts the entries listed under a ``Deleted ...:`` header (for images,
    only ``deleted:`` lines count; ``untagged:`` lines are references) and
    the rows of the build-cache table (``ID ...`` header). The reclaimed
    space comes from the ``Total reclaimed space:`` / ``Total:`` line.
    """
    summary = PruneSummary()
    in_section = False

    for raw in text.splitlines():
        line = raw.strip()
        if not line:
            in_section = False
            continue
        if line.startswith("Deleted ") and line.endswith(":"):
            in_section = True
            continue
        if line.split()[0] == "ID":
            in_section = True
            continue
        if line.startswith("Total"):
            in_section = False
            continue
        if not in_section:
            continue
        if line.startswith("untagged:"):
            continue
        item = line.split(":", 1)[1].strip() if line.startswith("deleted:") else line.split()[0]
        summary.items.append(item)

    summary.deleted = len(summary.items)
    match = _RECLAIMED.search(text)
    if match:
        summary.reclaimed_bytes = parse_size(match.group(1))
    return summary


# ═══════════════════════════════════════════════════════════════════
#  apt / dpkg
# ═══════════════════════════════════════════════════════════════════

_APT_SUMMARY = re.compile(
    r"(\d+) upgraded, (\d+) newly installed, (\d+) to remove"
)


def parse_apt_summary(text: str) -> tuple[int, int, int]:
    """(upgraded, newly installed, removed) from apt-get's summary line.

    Returns zeros when apt printed no summary (nothing to do).
    """
    match = _APT_SUMMARY.search(text)
    if not match:
        return 0, 0, 0
    return int(match.group(1)), int(match.group(2)), int(match.group(3))


def parse_residual_packages(text: str) -> list[str]:
    """Packages removed but not purged (dpkg status ``rc``).

    Input is ``dpkg-query -W -f='${db:Status-Abbrev} ${Package}\\n'``.
    """
    packages = []
    for line in text.splitlines():
        fields = line.split()
        if len(fields) == 2 and fields[0] == "rc":
            packages.append(fields[1])
    return packages
