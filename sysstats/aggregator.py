"""Turns raw per-round samples into deltas and rates.

Rolling state lives in explicit objects owned by the coordinator's thread;
worker threads never see it.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from sysstats.sources import CpuCounterSnapshot, MemorySample

# Guards the division when two snapshots fall inside the same clock tick
CPU_EPSILON = 1e-6


# ── Data types ──────────────────────────────────────────────────────────────


@dataclass
class RollingCpuState:
    previous_total_ticks: int = 0  # non-idle ticks only
    previous_idle_ticks: int = 0
    seeded: bool = False


@dataclass
class RollingMemoryState:
    previous_used_gb: float = 0.0
    has_previous: bool = False


class DeltaSign(Enum):
    POSITIVE_OR_ZERO = "+"
    NEGATIVE = "-"


@dataclass(frozen=True)
class MemoryReading:
    used_physical_gb: float
    total_physical_gb: float
    used_virtual_gb: float
    total_virtual_gb: float
    delta_abs: float
    delta_sign: DeltaSign


@dataclass(frozen=True)
class CpuUtilization:
    percent_used: float  # 0.0 - 100.0
    core_count: int


# ── Aggregator ──────────────────────────────────────────────────────────────


class RateAggregator:
    """Single writer of the rolling CPU and memory state."""

    def __init__(
        self,
        cpu_state: RollingCpuState | None = None,
        memory_state: RollingMemoryState | None = None,
    ) -> None:
        self.cpu_state = cpu_state if cpu_state is not None else RollingCpuState()
        self.memory_state = memory_state if memory_state is not None else RollingMemoryState()

    def update_memory(self, sample: MemorySample) -> MemoryReading:
        """Compute the change in physical memory used since the last call.

        The first call compares the sample against itself, so its delta is 0.
        """
        state = self.memory_state
        if not state.has_previous:
            state.previous_used_gb = sample.used_physical_gb
            state.has_previous = True

        diff = sample.used_physical_gb - state.previous_used_gb
        state.previous_used_gb = sample.used_physical_gb

        return MemoryReading(
            used_physical_gb=sample.used_physical_gb,
            total_physical_gb=sample.total_physical_gb,
            used_virtual_gb=sample.used_virtual_gb,
            total_virtual_gb=sample.total_virtual_gb,
            delta_abs=abs(diff),
            delta_sign=DeltaSign.NEGATIVE if diff < 0 else DeltaSign.POSITIVE_OR_ZERO,
        )

    def seed(self, snapshot: CpuCounterSnapshot) -> None:
        """Prime the CPU state so the first real round has a baseline."""
        self.cpu_state.previous_total_ticks = snapshot.busy_ticks
        self.cpu_state.previous_idle_ticks = snapshot.idle
        self.cpu_state.seeded = True

    def update_cpu(self, snapshot: CpuCounterSnapshot, core_count: int) -> CpuUtilization:
        """CPU utilization between the stored baseline and *snapshot*.

        ``total_prev`` is rebuilt as stored busy + stored idle. The result is
        clamped to [0, 100]; no elapsed ticks means 0.
        """
        state = self.cpu_state
        if not state.seeded:
            self.seed(snapshot)

        total_cur = snapshot.idle + snapshot.busy_ticks
        total_prev = state.previous_total_ticks + state.previous_idle_ticks
        total_delta = float(total_cur - total_prev)
        idle_delta = float(snapshot.idle - state.previous_idle_ticks)

        if total_delta == 0:
            percent = 0.0
        else:
            percent = abs((1000 * (total_delta - idle_delta) / (total_delta + CPU_EPSILON) + 1) / 10)
            percent = min(max(percent, 0.0), 100.0)

        state.previous_total_ticks = snapshot.busy_ticks
        state.previous_idle_ticks = snapshot.idle

        return CpuUtilization(percent_used=percent, core_count=core_count)
