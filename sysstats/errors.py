"""Exception types shared across sysstats."""

from __future__ import annotations


# ── Metric sources ──────────────────────────────────────────────────────────


class MetricError(Exception):
    """A metric source could not produce a sample this round."""

    def __init__(self, reason: str = "") -> None:
        super().__init__(reason)
        self.reason = reason

    def __str__(self) -> str:
        return self.reason


class QueryFailed(MetricError):
    """The OS query itself failed."""


class ParseFailed(MetricError):
    """The OS answered, but not in a format we understand."""


class Unavailable(MetricError):
    """The metric does not exist on this platform."""

    def __init__(self, reason: str = "not available on this platform") -> None:
        super().__init__(reason)


# ── Rendering ───────────────────────────────────────────────────────────────


class RenderError(Exception):
    """A history buffer was written out of order."""


class BufferOverflow(RenderError):
    """More rounds were rendered than the history was sized for."""


# ── Interrupt governor ──────────────────────────────────────────────────────


class GovernorError(Exception):
    pass


class SignalRaceDuringConfirm(GovernorError):
    """A second interrupt arrived while the exit prompt was waiting."""


# ── Fatal ───────────────────────────────────────────────────────────────────


class ResourceError(Exception):
    """A worker or its result channel could not be created."""
