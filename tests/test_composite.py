"""Tests for multi-step instructions."""

from __future__ import annotations

import pytest

from deskhand.commands import Command, CommandKind, CommandResult
from deskhand.dispatch.composite import CompositeHandler
from deskhand.dispatch.dispatcher import CommandDispatcher

from conftest import FakeKeyboard, RecordingHandler


@pytest.fixture
def launch() -> RecordingHandler:
    return RecordingHandler([CommandKind.LAUNCH], result=CommandResult.ok("Launched application: notepad"))


@pytest.fixture
def wired(
    offline_dispatcher: CommandDispatcher, composite: CompositeHandler, launch: RecordingHandler
) -> CommandDispatcher:
    offline_dispatcher.register(launch)
    offline_dispatcher.register(composite)
    return offline_dispatcher


class TestLaunchAndWrite:
    """The launch step and the write step run as one unit."""

    def test_types_into_launched_app(
        self, wired: CommandDispatcher, launch: RecordingHandler, keyboard: FakeKeyboard
    ) -> None:
        result = wired.process("open notepad and write hello world")

        assert result.success
        assert [c.target for c in launch.received] == ["notepad"]
        assert keyboard.typed == ["hello world"]
        assert "Typed 'hello world' into notepad" in result.message
        steps = result.additional_data["steps"]
        assert [s["status"] for s in steps] == ["ok", "ok"]

    def test_failed_launch_skips_the_write(
        self, offline_dispatcher: CommandDispatcher, composite: CompositeHandler, keyboard: FakeKeyboard
    ) -> None:
        offline_dispatcher.register(
            RecordingHandler([CommandKind.LAUNCH], result=CommandResult.fail("Application 'notpad' not found"))
        )
        offline_dispatcher.register(composite)

        result = offline_dispatcher.process("open notpad then type hello")

        assert result.success is False
        assert keyboard.typed == []
        steps = result.additional_data["steps"]
        assert [s["status"] for s in steps] == ["failed", "skipped"]
        assert "launching notpad did not succeed" in result.message
        assert result.suggestions[0] == "Application 'notpad' not found"

    def test_no_keyboard_fails_the_write_step(
        self, offline_dispatcher: CommandDispatcher, launch: RecordingHandler
    ) -> None:
        handler = CompositeHandler(keyboard=None, step_delay=0, app_init_delay=0, sleep=lambda s: None)
        offline_dispatcher.register(launch)
        offline_dispatcher.register(handler)

        result = offline_dispatcher.process("open notepad and write hello")

        # the launch still counts
        assert result.success
        assert "No keyboard input is available to type text" in result.message

    def test_init_delay_before_typing(self, offline_dispatcher: CommandDispatcher, launch: RecordingHandler) -> None:
        pauses: list[float] = []
        handler = CompositeHandler(
            keyboard=FakeKeyboard(), step_delay=0, app_init_delay=2.0, sleep=pauses.append
        )
        offline_dispatcher.register(launch)
        offline_dispatcher.register(handler)

        offline_dispatcher.process("open notepad and write hello")

        assert 2.0 in pauses


class TestGeneralSequence:
    """Tests for sequences without a write step."""

    def test_steps_run_in_order(self, wired: CommandDispatcher) -> None:
        close = RecordingHandler([CommandKind.CLOSE], result=CommandResult.ok("Closed notepad (1 process)"))
        wired.register(close)

        result = wired.process("open notepad then close notepad")

        assert result.success
        assert result.message.splitlines() == [
            "Step 1: Launched application: notepad",
            "Step 2: Closed notepad (1 process)",
        ]
        assert result.additional_data["completed"] == 2

    def test_later_steps_run_after_a_failure(self, wired: CommandDispatcher) -> None:
        close = RecordingHandler([CommandKind.CLOSE], result=CommandResult.fail("nothing to close"))
        wired.register(close)

        result = wired.process("close notepad then open notepad")

        assert result.success
        assert [s["status"] for s in result.additional_data["steps"]] == ["failed", "ok"]

    def test_single_step_goes_straight_through(self, wired: CommandDispatcher, launch: RecordingHandler) -> None:
        result = wired.dispatch(Command("composite", target="open notepad"))

        assert result.message == "Launched application: notepad"
        assert "steps" not in result.additional_data

    def test_nothing_to_split(self, wired: CommandDispatcher) -> None:
        result = wired.dispatch(Command("composite", target=" and "))
        assert result.success is False
        assert result.message == "Could not parse command sequence"

    def test_too_many_steps(self, offline_dispatcher: CommandDispatcher, launch: RecordingHandler) -> None:
        handler = CompositeHandler(step_delay=0, max_steps=3, sleep=lambda s: None)
        offline_dispatcher.register(launch)
        offline_dispatcher.register(handler)

        result = offline_dispatcher.process("open a then open b then open c then open d")

        assert result.success is False
        assert result.message == "Sequence has 4 steps; the limit is 3"
        assert launch.received == []


def test_unregistered_composite_raises() -> None:
    handler = CompositeHandler(sleep=lambda s: None)
    with pytest.raises(RuntimeError):
        handler.execute(Command("composite", target="open a then open b"))
