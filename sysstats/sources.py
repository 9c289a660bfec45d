"""Metric sources: one blocking OS query each, no shared state.

Every reader either returns a fresh, immutable sample or raises a
:class:`~sysstats.errors.MetricError`. They are safe to run concurrently.
"""

from __future__ import annotations

import os
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import psutil

from sysstats.errors import ParseFailed, QueryFailed, Unavailable

GIB = 1024**3
PROC_STAT = "/proc/stat"
CPU_FIELDS = ("user", "nice", "system", "idle", "iowait", "irq", "softirq")


# ── Data types ──────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class MemorySample:
    total_physical_gb: float
    used_physical_gb: float
    total_virtual_gb: float
    used_virtual_gb: float


@dataclass(frozen=True)
class CpuCounterSnapshot:
    """Cumulative jiffies from the aggregate ``cpu`` line of /proc/stat."""

    user: int
    nice: int
    system: int
    idle: int
    iowait: int
    irq: int
    softirq: int

    @property
    def busy_ticks(self) -> int:
        """Every field except idle."""
        return self.user + self.nice + self.system + self.iowait + self.irq + self.softirq

    @property
    def total_ticks(self) -> int:
        return self.busy_ticks + self.idle


@dataclass(frozen=True)
class SessionRecord:
    user: str
    terminal_line: str
    host: str


# ── Memory ──────────────────────────────────────────────────────────────────


def read_memory() -> MemorySample:
    """Physical and virtual (RAM + swap) usage in GiB.

    "Used" is total minus free, matching what sysinfo(2) reports, rather than
    psutil's cache-adjusted ``used``.
    """
    try:
        ram = psutil.virtual_memory()
        swap = psutil.swap_memory()
    except OSError as e:
        raise QueryFailed(f"memory query failed: {e}") from e

    used = ram.total - ram.free
    return MemorySample(
        total_physical_gb=ram.total / GIB,
        used_physical_gb=used / GIB,
        total_virtual_gb=(ram.total + swap.total) / GIB,
        used_virtual_gb=(used + swap.total - swap.free) / GIB,
    )


# ── CPU ─────────────────────────────────────────────────────────────────────


def parse_cpu_line(line: str) -> CpuCounterSnapshot:
    """Parse ``cpu  user nice system idle iowait irq softirq ...``."""
    parts = line.split()
    if not parts or parts[0] != "cpu":
        raise ParseFailed(f"expected aggregate 'cpu' line, got {line.strip()[:40]!r}")

    values: list[int] = []
    for raw in parts[1 : 1 + len(CPU_FIELDS)]:
        try:
            values.append(int(raw))
        except ValueError:
            break
    if len(values) != len(CPU_FIELDS):
        raise ParseFailed(
            f"failed to read CPU values: read {len(values)} items instead of {len(CPU_FIELDS)}"
        )
    return CpuCounterSnapshot(**dict(zip(CPU_FIELDS, values)))


def read_cpu_counters(path: str = PROC_STAT) -> CpuCounterSnapshot:
    """Read aggregate CPU jiffies from /proc/stat."""
    try:
        with open(path) as f:
            line = f.readline()
    except FileNotFoundError as e:
        raise Unavailable(f"{path} not found") from e
    except OSError as e:
        raise QueryFailed(f"failed to open {path}: {e}") from e
    return parse_cpu_line(line)


def core_count() -> int:
    """Number of online logical CPUs."""
    return psutil.cpu_count() or os.cpu_count() or 1


# ── Sessions ────────────────────────────────────────────────────────────────


def read_sessions() -> list[SessionRecord]:
    """Logged-in user sessions, in the order the OS lists them."""
    try:
        users = psutil.users()
    except (AttributeError, NotImplementedError) as e:
        raise Unavailable("session enumeration not supported") from e
    except OSError as e:
        raise QueryFailed(f"failed to read login records: {e}") from e

    return [
        SessionRecord(
            user=u.name or "",
            terminal_line=u.terminal or "",
            host=u.host or "",
        )
        for u in users
    ]


# Launch order of the per-round workers
DEFAULT_SOURCES: dict[str, Callable[[], Any]] = {
    "memory": read_memory,
    "sessions": read_sessions,
    "cpu": read_cpu_counters,
}
