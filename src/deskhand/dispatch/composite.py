"""Composite handler - multi-step instructions.

Splits the instruction, short-circuits single steps, runs the
launch-and-write shape as a coordinated unit, and otherwise hands the
steps to the sequence executor.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import TYPE_CHECKING, ClassVar

from deskhand.commands import Command, CommandKind, CommandResult
from deskhand.config import DELAYS, SEQUENCE
from deskhand.handlers.automation import Keyboard
from deskhand.handlers.base import CommandHandler

from .sequence import SequenceExecutor, StepStatus
from .splitter import LaunchWritePlan, find_launch_write, has_sequence_delimiter, split_instructions

if TYPE_CHECKING:
    from .dispatcher import CommandDispatcher

logger = logging.getLogger(__name__)


class CompositeHandler(CommandHandler):
    """Runs instructions joined by "then", "and", "after that" and friends.

    The dispatcher gives this handler a back-reference on registration so
    sub-instructions can be fed through the full pipeline again.
    """

    name: ClassVar[str] = "composite"
    command_type: ClassVar[str] = "composite"
    kinds: ClassVar[frozenset[CommandKind]] = frozenset({CommandKind.COMPOSITE})

    def __init__(
        self,
        *,
        keyboard: Keyboard | None = None,
        step_delay: float = DELAYS.STEP,
        app_init_delay: float = DELAYS.APP_INIT,
        max_seconds: float = SEQUENCE.MAX_SECONDS,
        max_steps: int = SEQUENCE.MAX_STEPS,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.dispatcher: CommandDispatcher | None = None
        self._keyboard = keyboard
        self._step_delay = step_delay
        self._app_init_delay = app_init_delay
        self._max_seconds = max_seconds
        self._max_steps = max_steps
        self._sleep = sleep
        self._clock = clock

    def can_handle(self, command: Command) -> bool:
        return command.kind is CommandKind.COMPOSITE or has_sequence_delimiter(command.target)

    def execute(self, command: Command) -> CommandResult:
        dispatcher = self._require_dispatcher()
        steps = split_instructions(command.target)

        if not steps:
            return CommandResult.fail(
                "Could not parse command sequence",
                ["Separate steps with 'then' or 'and', e.g. 'open notepad then type hello'"],
            )

        if len(steps) == 1:
            return dispatcher.process(steps[0], allow_composite=False)

        if len(steps) > self._max_steps:
            return CommandResult.fail(
                f"Sequence has {len(steps)} steps; the limit is {self._max_steps}",
                ["Split the instruction into smaller groups"],
            )

        logger.info("Running %d-step sequence: %s", len(steps), steps)
        executor = self._executor(dispatcher)
        plan = find_launch_write(steps)
        if plan is None:
            return executor.run(steps)
        return self._run_launch_write(steps, plan, executor, dispatcher)

    # -------------------------------------------------------------------------
    # Private Methods
    # -------------------------------------------------------------------------

    def _require_dispatcher(self) -> "CommandDispatcher":
        if self.dispatcher is None:
            raise RuntimeError("CompositeHandler used before being registered with a dispatcher")
        return self.dispatcher

    def _executor(self, dispatcher: "CommandDispatcher") -> SequenceExecutor:
        return SequenceExecutor(
            lambda text: dispatcher.process(text, allow_composite=False),
            step_delay=self._step_delay,
            max_seconds=self._max_seconds,
            alternatives=dispatcher.suggest_alternatives,
            sleep=self._sleep,
            clock=self._clock,
        )

    def _run_launch_write(
        self,
        steps: list[str],
        plan: LaunchWritePlan,
        executor: SequenceExecutor,
        dispatcher: "CommandDispatcher",
    ) -> CommandResult:
        logger.info("Launch-and-write: launching %r then typing %d chars", plan.app_name, len(plan.text))
        report = executor.new_report()

        for i in range(plan.launch_index):
            executor.run_step(report, i + 1, steps[i])

        launch = Command("launch", target=plan.app_name)
        outcome = executor.run_step(
            report,
            plan.launch_index + 1,
            steps[plan.launch_index],
            action=lambda: dispatcher.dispatch(launch),
        )
        if outcome.status is not StepStatus.OK:
            if outcome.message not in outcome.suggestions:
                outcome.suggestions.insert(0, outcome.message)
            reason = f"launching {plan.app_name} did not succeed"
            for i in range(plan.launch_index + 1, len(steps)):
                executor.skip(report, i + 1, steps[i], reason)
            return report.to_result()

        for i in range(plan.launch_index + 1, plan.write_index):
            executor.run_step(report, i + 1, steps[i])

        executor.pause(self._app_init_delay)
        executor.run_step(
            report,
            plan.write_index + 1,
            steps[plan.write_index],
            action=lambda: self._type_text(plan),
        )

        for i in range(plan.write_index + 1, len(steps)):
            executor.run_step(report, i + 1, steps[i])

        return report.to_result()

    def _type_text(self, plan: LaunchWritePlan) -> CommandResult:
        if self._keyboard is None:
            return CommandResult.fail(
                "No keyboard input is available to type text",
                ["Install pyautogui and run inside a desktop session"],
            )
        self._keyboard.type_text(plan.text)
        return CommandResult.ok(f"Typed '{plan.text}' into {plan.app_name}", text=plan.text)
