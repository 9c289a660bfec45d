"""Tests for the Ctrl-C / Ctrl-Z interrupt governor."""

from __future__ import annotations

import io
import signal
from unittest.mock import MagicMock, patch

import pytest

from sysstats.errors import SignalRaceDuringConfirm
from sysstats.governor import PROMPT, GovernorState, InterruptGovernor


def _governor(*answers: str) -> tuple[InterruptGovernor, io.StringIO]:
    out = io.StringIO()
    replies = iter(answers)
    return InterruptGovernor(read_answer=lambda: next(replies), out=out), out


class TestInterrupt:
    def test_no_resumes(self) -> None:
        gov, out = _governor("n")
        gov.on_interrupt(signal.SIGINT, None)
        assert gov.state is GovernorState.RUNNING
        assert PROMPT in out.getvalue()
        assert out.getvalue().endswith("Resuming...\n")

    @pytest.mark.parametrize("answer", ["y", "Y", "  yes"])
    def test_yes_exits_successfully(self, answer: str) -> None:
        gov, _ = _governor(answer)
        with pytest.raises(SystemExit) as exc:
            gov.on_interrupt(signal.SIGINT, None)
        assert exc.value.code == 0

    @pytest.mark.parametrize("answer", ["", "N", "nope", "x"])
    def test_anything_else_resumes(self, answer: str) -> None:
        gov, out = _governor(answer)
        gov.on_interrupt(signal.SIGINT, None)
        assert "Resuming..." in out.getvalue()

    def test_state_during_prompt(self) -> None:
        seen: list[GovernorState] = []
        gov = InterruptGovernor(out=io.StringIO())

        def answer() -> str:
            seen.append(gov.state)
            return "n"

        gov._read_answer = answer
        gov.on_interrupt(signal.SIGINT, None)
        assert seen == [GovernorState.CONFIRMING_EXIT]

    def test_eof_exits_with_failure(self) -> None:
        def closed() -> str:
            raise EOFError

        gov = InterruptGovernor(read_answer=closed, out=io.StringIO())
        with pytest.raises(SystemExit) as exc:
            gov.on_interrupt(signal.SIGINT, None)
        assert exc.value.code == 1

    def test_second_interrupt_during_prompt_resumes(self) -> None:
        out = io.StringIO()
        asked: list[int] = []
        gov = InterruptGovernor(out=out)

        def interrupted_read() -> str:
            asked.append(1)
            gov.on_interrupt(signal.SIGINT, None)  # nested delivery
            return "y"

        gov._read_answer = interrupted_read
        gov.on_interrupt(signal.SIGINT, None)

        assert asked == [1]
        assert gov.state is GovernorState.RUNNING
        assert "Signal detected during confirmation, resuming..." in out.getvalue()

    def test_nested_interrupt_raises_race(self) -> None:
        gov, _ = _governor()
        gov.state = GovernorState.CONFIRMING_EXIT
        with pytest.raises(SignalRaceDuringConfirm):
            gov.on_interrupt(signal.SIGINT, None)


class TestSuspend:
    def test_suspend_is_ignored(self) -> None:
        gov, out = _governor()
        gov.on_suspend(getattr(signal, "SIGTSTP", 20), None)
        assert gov.state is GovernorState.RUNNING
        assert out.getvalue() == ""

    def test_suspend_during_prompt_resumes(self) -> None:
        out = io.StringIO()
        asked: list[int] = []
        gov = InterruptGovernor(out=out)

        def suspended_read() -> str:
            asked.append(1)
            gov.on_suspend(getattr(signal, "SIGTSTP", 20), None)  # nested delivery
            return "y"

        gov._read_answer = suspended_read
        gov.on_interrupt(signal.SIGINT, None)

        assert asked == [1]
        assert gov.state is GovernorState.RUNNING
        assert "Signal detected during confirmation, resuming..." in out.getvalue()

    def test_nested_suspend_raises_race(self) -> None:
        gov, _ = _governor()
        gov.state = GovernorState.CONFIRMING_EXIT
        with pytest.raises(SignalRaceDuringConfirm):
            gov.on_suspend(getattr(signal, "SIGTSTP", 20), None)


class TestOutput:
    @patch("sysstats.governor.os.write")
    def test_writes_to_stdout_descriptor_by_default(self, mock_write: MagicMock) -> None:
        gov = InterruptGovernor(read_answer=lambda: "n")
        with patch("sysstats.governor.sys.stdout") as mock_stdout:
            mock_stdout.fileno.return_value = 1
            gov.on_interrupt(signal.SIGINT, None)

        mock_stdout.write.assert_not_called()
        written = [c.args for c in mock_write.call_args_list]
        assert written == [(1, PROMPT.encode()), (1, b"Resuming...\n")]


class TestInstall:
    def test_install_and_restore(self) -> None:
        before = signal.getsignal(signal.SIGINT)
        gov, _ = _governor()
        with gov:
            assert signal.getsignal(signal.SIGINT) == gov.on_interrupt
            if hasattr(signal, "SIGTSTP"):
                assert signal.getsignal(signal.SIGTSTP) == gov.on_suspend
        assert signal.getsignal(signal.SIGINT) == before
