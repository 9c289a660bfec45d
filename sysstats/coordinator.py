"""Per-round fan-out/fan-in of the metric sources.

Each round starts one daemon thread per source. A worker owns a private
one-slot queue and writes exactly one item to it: the sample, or the error
that replaced it. The coordinator drains every queue before returning, so
rounds never overlap.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from queue import Queue
from typing import Any

from sysstats.errors import MetricError, QueryFailed, ResourceError
from sysstats.sources import DEFAULT_SOURCES, CpuCounterSnapshot, MemorySample, SessionRecord

logger = logging.getLogger(__name__)

# (ok, payload): payload is the sample when ok, else a MetricError
ChannelItem = tuple[bool, Any]


@dataclass
class RoundResult:
    """Whatever the sources produced for one round."""

    index: int
    memory: MemorySample | None = None
    cpu: CpuCounterSnapshot | None = None
    sessions: list[SessionRecord] | None = None
    errors: dict[str, MetricError] = field(default_factory=lambda: {})

    def failed(self, name: str) -> bool:
        return name in self.errors


def _worker(source: Callable[[], Any], channel: Queue[ChannelItem]) -> None:
    """Run one source and post its single result."""
    try:
        channel.put((True, source()))
    except MetricError as e:
        channel.put((False, e))
    except Exception as e:  # the channel must always yield
        channel.put((False, QueryFailed(f"{type(e).__name__}: {e}")))


class SamplingCoordinator:
    """Runs the metric sources concurrently, one round at a time."""

    def __init__(self, sources: Mapping[str, Callable[[], Any]] | None = None) -> None:
        self._sources = dict(sources if sources is not None else DEFAULT_SOURCES)

    @property
    def source_names(self) -> list[str]:
        return list(self._sources)

    def read_once(self, name: str) -> Any:
        """Call one source on the current thread (used for the CPU baseline)."""
        source = self._sources.get(name)
        if source is None:
            raise ResourceError(f"no {name!r} source configured")
        return source()

    def run_round(self, index: int) -> RoundResult:
        """Sample every source once and wait for all of them.

        There is no timeout: a source that never returns stalls the round.

        Raises:
            ResourceError: If a worker thread could not be started.
        """
        started = time.monotonic()
        channels: dict[str, Queue[ChannelItem]] = {}

        for name, source in self._sources.items():
            channel: Queue[ChannelItem] = Queue(maxsize=1)
            worker = threading.Thread(
                target=_worker,
                args=(source, channel),
                daemon=True,
                name=f"sysstats-{name}-{index}",
            )
            try:
                worker.start()
            except RuntimeError as e:
                raise ResourceError(f"cannot start {name} worker: {e}") from e
            channels[name] = channel

        result = RoundResult(index=index)
        for name, channel in channels.items():
            ok, payload = channel.get()
            if ok:
                setattr(result, name, payload)
            else:
                logger.debug("round %d: %s source failed: %s", index, name, payload)
                result.errors[name] = payload

        logger.debug(
            "round %d sampled in %.3fs (%d failed)",
            index,
            time.monotonic() - started,
            len(result.errors),
        )
        return result
