"""Handler contract shared by every capability handler."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import ClassVar

from deskhand.commands import Command, CommandKind, CommandResult


class CommandHandler(ABC):
    """A capability that claims and executes one or more command kinds.

    Subclasses declare ``kinds`` (what ``can_handle`` accepts) and
    ``command_type`` (the canonical tag used when a command is coerced to
    this handler). ``execute`` reports failures as failed CommandResults;
    exceptions that escape are turned into failures by the dispatcher.
    """

    name: ClassVar[str] = "handler"
    command_type: ClassVar[str] = ""
    kinds: ClassVar[frozenset[CommandKind]] = frozenset()

    def can_handle(self, command: Command) -> bool:
        return command.kind in self.kinds

    @abstractmethod
    def execute(self, command: Command) -> CommandResult:
        """Carry out the command."""

    def suggest_alternatives(self, name: str) -> list[str]:
        """Names similar to one this handler could not find."""
        return []

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"
