"""Tests for the command dispatcher."""

from __future__ import annotations

from unittest.mock import patch

from deskhand.commands import Command, CommandKind, CommandResult
from deskhand.dispatch.composite import CompositeHandler
from deskhand.dispatch.dispatcher import CommandDispatcher
from deskhand.errors import AutomationError

from conftest import RecordingHandler


class TestRegistry:
    """Tests for registration and handler lookup."""

    def test_first_capable_handler_wins(self, offline_dispatcher: CommandDispatcher) -> None:
        first = RecordingHandler([CommandKind.LAUNCH], result=CommandResult.ok("first"))
        second = RecordingHandler([CommandKind.LAUNCH], result=CommandResult.ok("second"))
        offline_dispatcher.register(first)
        offline_dispatcher.register(second)

        result = offline_dispatcher.dispatch(Command("launch", target="notepad"))

        assert result.message == "first"
        assert second.received == []
        assert offline_dispatcher.handlers == (first, second)

    def test_composite_gets_back_reference(
        self, offline_dispatcher: CommandDispatcher, composite: CompositeHandler
    ) -> None:
        offline_dispatcher.register(composite)
        assert composite.dispatcher is offline_dispatcher

    def test_suggest_alternatives_merges_handlers(self, offline_dispatcher: CommandDispatcher) -> None:
        a = RecordingHandler([CommandKind.LAUNCH])
        b = RecordingHandler([CommandKind.CLOSE])
        a.suggest_alternatives = lambda name: ["notepad", "wordpad"]  # type: ignore[method-assign]
        b.suggest_alternatives = lambda name: ["wordpad", "write"]  # type: ignore[method-assign]
        offline_dispatcher.register(a)
        offline_dispatcher.register(b)
        assert offline_dispatcher.suggest_alternatives("notpad") == ["notepad", "wordpad", "write"]


class TestDispatchFallback:
    """Tests for unclaimed commands."""

    def test_unknown_type_goes_to_fallback_with_target(self, offline_dispatcher: CommandDispatcher) -> None:
        smart = RecordingHandler([CommandKind.SMART, CommandKind.CUSTOM], command_type="smart")
        offline_dispatcher.register(RecordingHandler([CommandKind.LAUNCH]))
        offline_dispatcher.register(smart, fallback=True)

        command = Command("teleport", target="to the moon", action="now")
        offline_dispatcher.dispatch(command)

        assert len(smart.received) == 1
        received = smart.received[0]
        assert received.kind is CommandKind.SMART
        assert received.target == "to the moon"
        assert received.action == "now"

    def test_no_handler_is_a_failure_naming_the_type(self, offline_dispatcher: CommandDispatcher) -> None:
        offline_dispatcher.register(RecordingHandler([CommandKind.LAUNCH]))
        result = offline_dispatcher.dispatch(Command("teleport", target="x"))
        assert result.success is False
        assert result.message == "No handler found for command type: teleport"

    def test_handler_exception_becomes_failure(self, offline_dispatcher: CommandDispatcher) -> None:
        offline_dispatcher.register(RecordingHandler([CommandKind.LAUNCH], error=RuntimeError("kaboom")))
        result = offline_dispatcher.dispatch(Command("launch", target="notepad"))
        assert result.success is False
        assert result.message == "Error executing launch command: kaboom"

    def test_domain_error_message_is_kept(self, offline_dispatcher: CommandDispatcher) -> None:
        offline_dispatcher.register(
            RecordingHandler([CommandKind.UI], error=AutomationError("No active window found"))
        )
        result = offline_dispatcher.dispatch(Command("ui", target="active", action="click"))
        assert result.message == "No active window found"


class TestProcess:
    """Tests for the full text pipeline."""

    def test_empty_input(self, offline_dispatcher: CommandDispatcher) -> None:
        for text in ("", "   "):
            result = offline_dispatcher.process(text)
            assert result.success is False
            assert result.message == "No command provided"

    def test_resolves_then_dispatches(self, offline_dispatcher: CommandDispatcher) -> None:
        launch = RecordingHandler([CommandKind.LAUNCH], result=CommandResult.ok("Launched application: notepad"))
        offline_dispatcher.register(launch)

        result = offline_dispatcher.process("open notepad")

        assert result.success
        assert launch.received[0].target == "notepad"

    def test_history_recorded(self, offline_dispatcher: CommandDispatcher) -> None:
        offline_dispatcher.register(RecordingHandler([CommandKind.LAUNCH]))
        offline_dispatcher.process("open notepad")
        offline_dispatcher.process("fly away")

        history = offline_dispatcher.session.history
        assert [h.text for h in history] == ["open notepad", "fly away"]
        assert history[0].command_type == "launch"
        assert history[0].success is True
        assert history[1].success is False

    def test_composite_checked_before_resolution(
        self, offline_dispatcher: CommandDispatcher, composite: CompositeHandler
    ) -> None:
        launch = RecordingHandler([CommandKind.LAUNCH])
        close = RecordingHandler([CommandKind.CLOSE])
        offline_dispatcher.register(launch)
        offline_dispatcher.register(close)
        offline_dispatcher.register(composite)

        result = offline_dispatcher.process("open notepad then close notepad")

        assert result.success
        assert [c.target for c in launch.received] == ["notepad"]
        assert [c.target for c in close.received] == ["notepad"]

    def test_composite_ignored_when_disabled(
        self, offline_dispatcher: CommandDispatcher, composite: CompositeHandler
    ) -> None:
        launch = RecordingHandler([CommandKind.LAUNCH])
        offline_dispatcher.register(launch)
        offline_dispatcher.register(composite)

        offline_dispatcher.process("open notepad and close it", allow_composite=False)

        assert [c.target for c in launch.received] == ["notepad"]

    def test_resolver_crash_is_contained(self, offline_dispatcher: CommandDispatcher) -> None:
        with patch.object(offline_dispatcher.resolver, "resolve", side_effect=RuntimeError("bad")):
            result = offline_dispatcher.process("open notepad")
        assert result.success is False
        assert result.message == "Error processing command: bad"
