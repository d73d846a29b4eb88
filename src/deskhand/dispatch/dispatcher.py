"""Command dispatcher - the top-level instruction pipeline.

    text ──> composite check ──> resolver ──> first capable handler
                                              └─> smart fallback
                                                  └─> "No handler found"

``process`` never raises; every outcome is a CommandResult.
"""

from __future__ import annotations

import logging

from deskhand.commands import Command, CommandKind, CommandResult
from deskhand.errors import DeskhandError
from deskhand.handlers.base import CommandHandler
from deskhand.intent.resolver import IntentResolver
from deskhand.session import SessionContext

from .composite import CompositeHandler

logger = logging.getLogger(__name__)


class CommandDispatcher:
    """Ordered handler registry plus the resolve-and-dispatch pipeline.

    Example:
        dispatcher = CommandDispatcher(IntentResolver(provider))
        dispatcher.register(LaunchHandler(session))
        dispatcher.register(CompositeHandler())
        dispatcher.register(SmartHandler(provider), fallback=True)
        result = dispatcher.process("open notepad then type hello")
    """

    def __init__(self, resolver: IntentResolver, *, session: SessionContext | None = None) -> None:
        self._resolver = resolver
        self.session = session or SessionContext()
        self._handlers: list[CommandHandler] = []
        self._composite: CompositeHandler | None = None
        self._fallback: CommandHandler | None = None

    # -------------------------------------------------------------------------
    # Registry
    # -------------------------------------------------------------------------

    def register(self, handler: CommandHandler, *, fallback: bool = False) -> None:
        """Append a handler. Order matters: the first capable handler wins.

        Args:
            handler: Handler to add. No de-duplication is done.
            fallback: Marks the generic handler that unclaimed commands are
                coerced to.
        """
        self._handlers.append(handler)
        if isinstance(handler, CompositeHandler):
            handler.dispatcher = self
            if self._composite is None:
                self._composite = handler
        if fallback:
            self._fallback = handler
        logger.debug("Registered %s (fallback=%s)", handler.name, fallback)

    @property
    def handlers(self) -> tuple[CommandHandler, ...]:
        return tuple(self._handlers)

    @property
    def resolver(self) -> IntentResolver:
        return self._resolver

    def find_handler(self, command: Command) -> CommandHandler | None:
        for handler in self._handlers:
            if handler.can_handle(command):
                return handler
        return None

    def suggest_alternatives(self, name: str) -> list[str]:
        """Similar names offered by any handler, first offer wins order."""
        names: list[str] = []
        for handler in self._handlers:
            for candidate in handler.suggest_alternatives(name):
                if candidate not in names:
                    names.append(candidate)
        return names

    # -------------------------------------------------------------------------
    # Dispatch
    # -------------------------------------------------------------------------

    def dispatch(self, command: Command) -> CommandResult:
        """Execute a resolved command with the first handler that claims it."""
        if command.kind is CommandKind.COMPOSITE and self._composite is not None:
            return self._execute(self._composite, command)

        handler = self.find_handler(command)
        if handler is None and self._fallback is not None:
            coerced = command.with_type(self._fallback.command_type)
            handler = self.find_handler(coerced)
            if handler is not None:
                logger.info(
                    "No handler for %r; passing %r to %s",
                    command.command_type,
                    command.target,
                    handler.name,
                )
                command = coerced

        if handler is None:
            logger.warning("No handler found for command type %r", command.command_type)
            return CommandResult.fail(
                f"No handler found for command type: {command.command_type}",
                ["Try rephrasing the instruction, e.g. 'open notepad' or 'search for ...'"],
            )

        return self._execute(handler, command)

    def process(self, text: str, *, allow_composite: bool = True) -> CommandResult:
        """Interpret and execute one natural-language instruction.

        Args:
            text: The user's instruction.
            allow_composite: Check for multi-step instructions first. Turned
                off when processing the steps of a sequence.
        """
        if not text or not text.strip():
            return CommandResult.fail(
                "No command provided",
                ["Type an instruction such as 'open notepad' or 'start calculator'"],
            )
        text = text.strip()

        command: Command | None = None
        try:
            composite = Command("composite", target=text)
            if allow_composite and self._composite is not None and self._composite.can_handle(composite):
                command = composite
                result = self._execute(self._composite, composite)
            else:
                command = self._resolver.resolve(text)
                result = self.dispatch(command)
        except Exception as e:
            logger.exception("Failed to process %r", text)
            result = CommandResult.fail(f"Error processing command: {e}")

        self.session.record(text, command, result)
        return result

    def _execute(self, handler: CommandHandler, command: Command) -> CommandResult:
        logger.debug("Dispatching %s %r to %s", command.type_name, command.target, handler.name)
        try:
            return handler.execute(command)
        except DeskhandError as e:
            logger.warning("%s failed: %s", handler.name, e.message)
            return CommandResult.fail(e.message)
        except Exception as e:
            logger.exception("%s raised while executing %r", handler.name, command.target)
            return CommandResult.fail(f"Error executing {command.type_name} command: {e}")
