"""Ctrl-C confirmation and Ctrl-Z suppression for the monitoring loop.

Python runs signal handlers on the main thread, which is also the thread
driving the rounds, so the prompt interrupts the loop wherever it happens
to be (sampling, rendering or sleeping) and resumes it afterwards.

Without an explicit ``out`` stream the handlers write straight to the
stdout file descriptor. A handler can fire while the loop is inside a
buffered ``print`` to ``sys.stdout``, and re-entering that buffer raises
``RuntimeError``.
"""

from __future__ import annotations

import logging
import os
import signal
import sys
from collections.abc import Callable
from enum import Enum
from types import FrameType
from typing import Any, TextIO

from sysstats.errors import SignalRaceDuringConfirm

logger = logging.getLogger(__name__)

PROMPT = "\nCtrl-C detected: Do you want to quit? (press 'y' if yes) "


class GovernorState(Enum):
    RUNNING = "running"
    CONFIRMING_EXIT = "confirming_exit"


class InterruptGovernor:
    """Asks before letting SIGINT end the process; ignores SIGTSTP."""

    def __init__(
        self,
        read_answer: Callable[[], str] | None = None,
        out: TextIO | None = None,
    ) -> None:
        self._read_answer = read_answer if read_answer is not None else input
        self._out = out
        self.state = GovernorState.RUNNING
        self._previous: dict[int, Any] = {}

    def _write(self, text: str) -> None:
        if self._out is not None:
            self._out.write(text)
            self._out.flush()
        else:
            os.write(sys.stdout.fileno(), text.encode())

    # ── Installation ───────────────────────────────────────────────────

    def install(self) -> None:
        """Register the handlers. Must be called from the main thread."""
        self._previous[signal.SIGINT] = signal.signal(signal.SIGINT, self.on_interrupt)
        if hasattr(signal, "SIGTSTP"):
            self._previous[signal.SIGTSTP] = signal.signal(signal.SIGTSTP, self.on_suspend)

    def uninstall(self) -> None:
        for signum, handler in self._previous.items():
            signal.signal(signum, handler)
        self._previous.clear()

    def __enter__(self) -> InterruptGovernor:
        self.install()
        return self

    def __exit__(self, *exc: object) -> None:
        self.uninstall()

    # ── Handlers ───────────────────────────────────────────────────────

    def on_suspend(self, signum: int, frame: FrameType | None) -> None:
        """Swallow Ctrl-Z instead of stopping the process.

        During the exit prompt it abandons the pending read like a second
        Ctrl-C would.
        """
        if self.state is GovernorState.CONFIRMING_EXIT:
            raise SignalRaceDuringConfirm("suspend received while confirming exit")
        logger.debug("ignoring suspend signal %d", signum)

    def on_interrupt(self, signum: int, frame: FrameType | None) -> None:
        if self.state is GovernorState.CONFIRMING_EXIT:
            # Unwinds out of the pending read in the outer handler call
            raise SignalRaceDuringConfirm("interrupt received while confirming exit")

        self.state = GovernorState.CONFIRMING_EXIT
        try:
            self._confirm()
        except SignalRaceDuringConfirm as e:
            logger.info("%s; resuming", e)
            self._write("\nSignal detected during confirmation, resuming...\n")
        finally:
            self.state = GovernorState.RUNNING

    def _confirm(self) -> None:
        self._write(PROMPT)
        try:
            answer = self._read_answer().strip()
        except EOFError:
            print("\nsysstats: no answer on stdin, exiting.", file=sys.stderr)
            raise SystemExit(1)

        if answer[:1] in ("y", "Y"):
            raise SystemExit(0)
        self._write("Resuming...\n")
