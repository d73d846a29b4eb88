from __future__ import annotations

from collections.abc import Iterable
from typing import Any, ClassVar

import pytest

from deskhand.commands import Command, CommandKind, CommandResult
from deskhand.dispatch.composite import CompositeHandler
from deskhand.dispatch.dispatcher import CommandDispatcher
from deskhand.errors import LLMConnectionError
from deskhand.handlers.base import CommandHandler
from deskhand.intent.resolver import IntentResolver
from deskhand.providers.base import ModelInfo, ProviderHealth
from deskhand.session import SessionContext


class FakeProvider:
    """Scripted LLM backend.

    Each call pops the next reply. A reply that is an exception is raised.
    With no replies left, the backend behaves as unreachable.
    """

    def __init__(self, replies: Iterable[Any] = ()) -> None:
        self.replies = list(replies)
        self.calls: list[dict[str, Any]] = []

    @property
    def provider_type(self) -> str:
        return "fake"

    def _next(self, **kwargs: Any) -> str:
        self.calls.append(kwargs)
        if not self.replies:
            raise LLMConnectionError("fake backend is down", provider="fake")
        reply = self.replies.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        return reply

    def chat_text(self, *, system: str, user: str, **kwargs: Any) -> str:
        return self._next(system=system, user=user, **kwargs)

    def chat_json(self, *, system: str, user: str, **kwargs: Any) -> str:
        return self._next(system=system, user=user, **kwargs)

    def list_models(self) -> list[ModelInfo]:
        return [ModelInfo(name="fake-model")]

    def check_health(self) -> ProviderHealth:
        return ProviderHealth(reachable=True, model_count=1, current_model="fake-model")


class RecordingHandler(CommandHandler):
    """Handler that records commands and returns a fixed result."""

    name: ClassVar[str] = "recording"

    def __init__(
        self,
        kinds: Iterable[CommandKind],
        *,
        command_type: str = "",
        result: CommandResult | None = None,
        error: Exception | None = None,
    ) -> None:
        self.kinds = frozenset(kinds)  # type: ignore[misc]
        self.command_type = command_type or next(iter(self.kinds)).value  # type: ignore[misc]
        self.result = result or CommandResult.ok("done")
        self.error = error
        self.received: list[Command] = []

    def execute(self, command: Command) -> CommandResult:
        self.received.append(command)
        if self.error is not None:
            raise self.error
        return self.result


class FakeKeyboard:
    def __init__(self) -> None:
        self.typed: list[str] = []
        self.hotkeys: list[tuple[str, ...]] = []

    def type_text(self, text: str) -> None:
        self.typed.append(text)

    def hotkey(self, *keys: str) -> None:
        self.hotkeys.append(keys)


@pytest.fixture
def session() -> SessionContext:
    return SessionContext(session_id="test")


@pytest.fixture
def keyboard() -> FakeKeyboard:
    return FakeKeyboard()


@pytest.fixture
def composite(keyboard: FakeKeyboard) -> CompositeHandler:
    """Composite handler with no real pauses."""
    return CompositeHandler(keyboard=keyboard, step_delay=0, app_init_delay=0, sleep=lambda s: None)


@pytest.fixture
def offline_dispatcher(session: SessionContext) -> CommandDispatcher:
    """Dispatcher whose resolver always uses the local parser."""
    return CommandDispatcher(IntentResolver(None), session=session)
