"""Text rendering for the dashboard: panels, graphics and round history.

Every round appends exactly one line per panel to an append-only history and
the whole history is replayed, so the screen shows all rounds so far.
"""

from __future__ import annotations

from sysstats.aggregator import CpuUtilization, DeltaSign, MemoryReading
from sysstats.errors import BufferOverflow, MetricError, RenderError
from sysstats.identity import SystemIdentity
from sysstats.sources import SessionRecord

# ── Constants ──────────────────────────────────────────────────────────────

DIVIDER = "-" * 44
CLEAR_SCREEN = "\033[2J \033[1;1H"

MEMORY_STEP_GB = 0.01  # one bar character per 0.01 GB of change
MEMORY_PREFIX = "   |"
CPU_INDENT = 9
CPU_BAR_BASE = 12  # bar field width at 0%, including the indent


# ── History buffer ─────────────────────────────────────────────────────────


class RenderHistory:
    """Fixed-capacity, write-once list of rendered lines (one per round)."""

    def __init__(self, capacity: int) -> None:
        self.capacity = capacity
        self._lines: list[str] = []

    def __len__(self) -> int:
        return len(self._lines)

    def __getitem__(self, index: int) -> str:
        return self._lines[index]

    def append(self, index: int, line: str) -> None:
        if index >= self.capacity:
            raise BufferOverflow(
                f"round {index} exceeds history capacity of {self.capacity}"
            )
        if index != len(self._lines):
            raise RenderError(
                f"history slot {index} written out of order (next slot is {len(self._lines)})"
            )
        self._lines.append(line)

    def replay(self, upto: int | None = None) -> list[str]:
        """Lines 0..upto inclusive (all lines by default)."""
        if upto is None:
            return list(self._lines)
        return self._lines[: upto + 1]


# ── Graphics ───────────────────────────────────────────────────────────────


def memory_graphic(delta_abs: float, delta_sign: DeltaSign, current_used: float) -> str:
    """``   |####* 0.04 (2.04)``: one mark per 0.01 GB of change."""
    # Round away float noise such as 0.049999... before flooring
    bar_len = int(round(delta_abs / MEMORY_STEP_GB, 6))
    if delta_sign is DeltaSign.NEGATIVE:
        bar = ":" * bar_len + "@"
    else:
        bar = "#" * bar_len + ("*" if bar_len else "o")
    return f"{MEMORY_PREFIX}{bar} {delta_abs:.2f} ({current_used:.2f})"


def cpu_graphic(percent: float) -> str:
    """Indented bar whose field is ``floor(percent) + 12`` characters wide."""
    width = int(percent) + CPU_BAR_BASE
    return " " * CPU_INDENT + "|" * (width - CPU_INDENT) + f" {percent:.2f}"


def format_memory(reading: MemoryReading) -> str:
    return (
        f"{reading.used_physical_gb:.2f} GB / {reading.total_physical_gb:.2f} GB -- "
        f"{reading.used_virtual_gb:.2f} GB / {reading.total_virtual_gb:.2f} GB"
    )


def unavailable(error: MetricError) -> str:
    return f"metric unavailable: {error}"


# ── Renderer ───────────────────────────────────────────────────────────────


class HistoryRenderer:
    """Owns the memory and CPU histories for one run."""

    def __init__(self, capacity: int, graphics: bool = False) -> None:
        self.graphics = graphics
        self.memory_history = RenderHistory(capacity)
        self.cpu_history = RenderHistory(capacity)

    def append_memory_line(self, index: int, reading: MemoryReading) -> str:
        line = format_memory(reading)
        if self.graphics:
            line += memory_graphic(reading.delta_abs, reading.delta_sign, reading.used_physical_gb)
        self.memory_history.append(index, line)
        return line

    def append_cpu_line(self, index: int, utilization: CpuUtilization) -> str:
        line = cpu_graphic(utilization.percent_used)
        self.cpu_history.append(index, line)
        return line

    def append_unavailable(self, panel: str, index: int, error: MetricError) -> str:
        """Record a degraded line for *panel* ("memory" or "cpu")."""
        history = self.memory_history if panel == "memory" else self.cpu_history
        line = unavailable(error)
        history.append(index, line)
        return line


# ── Panels ─────────────────────────────────────────────────────────────────


def iteration_marker(index: int) -> str:
    return f">>> iteration {index}"


def header_block(samples: int, tdelay: int, memory_kb: int) -> list[str]:
    return [
        f"Nbr of samples: {samples} -- every {tdelay} secs",
        f"Memory usage: {memory_kb} kilobytes",
    ]


def memory_panel(history_lines: list[str], padding: int = 0) -> list[str]:
    """Memory history, padded with blank lines for the rounds still to come."""
    return [
        DIVIDER,
        "### Memory ### (Phys.Used/Tot -- Virtual Used/Tot)",
        *history_lines,
        *([""] * max(padding, 0)),
    ]


def sessions_panel(sessions: list[SessionRecord] | MetricError) -> list[str]:
    lines = [DIVIDER, "### Sessions/users ###"]
    if isinstance(sessions, MetricError):
        lines.append(unavailable(sessions))
        return lines
    for s in sessions:
        lines.append(f"{s.user}\t {s.terminal_line} ({s.host})")
    return lines


def cpu_panel(
    utilization: CpuUtilization | MetricError,
    history_lines: list[str],
    core_count: int,
    graphics: bool = False,
) -> list[str]:
    lines = [DIVIDER, f"Number of Cores: {core_count}"]
    if isinstance(utilization, MetricError):
        lines.append(f" total cpu use: {unavailable(utilization)}")
    else:
        lines.append(f" total cpu use: {utilization.percent_used:.2f}%")
    if graphics:
        lines.extend(history_lines)
    return lines


def footer_block(identity: SystemIdentity) -> list[str]:
    return [
        DIVIDER,
        "### System Information ###",
        f" System Name = {identity.system}",
        f" Machine Name = {identity.node}",
        f" Version = {identity.version}",
        f" Release = {identity.release}",
        f" Architecture = {identity.machine}",
        DIVIDER,
    ]
