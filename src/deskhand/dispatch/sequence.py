"""Sequential execution of sub-instructions and result aggregation.

Each sub-instruction goes back through the full pipeline (resolve then
dispatch). The aggregate result succeeds when any step succeeded; the
per-step statuses travel in ``additional_data["steps"]``.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from deskhand.commands import CommandResult
from deskhand.config import DELAYS, LIMITS, SEQUENCE

from .splitter import LAUNCH_VERBS, extract_app_name, starts_with_verb

logger = logging.getLogger(__name__)

FAILURE_MARKERS = ("error", "not found", "failed")


class StepStatus(str, Enum):
    OK = "ok"
    FAILED = "failed"
    ERROR = "error"
    SKIPPED = "skipped"


@dataclass
class StepOutcome:
    """What happened to one sub-instruction."""

    index: int
    instruction: str
    status: StepStatus
    message: str
    suggestions: list[str] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)

    @property
    def line(self) -> str:
        if self.status is StepStatus.OK:
            return f"Step {self.index}: {self.message}"
        return f"Step {self.index} {self.status.value}: {self.message}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "instruction": self.instruction,
            "status": self.status.value,
            "message": self.message,
        }


class SequenceReport:
    """Accumulates step outcomes for one sequence run."""

    def __init__(self, deadline: float) -> None:
        self.deadline = deadline
        self.outcomes: list[StepOutcome] = []
        self.halted_reason: str | None = None

    def add(self, outcome: StepOutcome) -> StepOutcome:
        self.outcomes.append(outcome)
        return outcome

    @property
    def any_success(self) -> bool:
        return any(o.status is StepStatus.OK for o in self.outcomes)

    @property
    def suggestions(self) -> list[str]:
        seen: list[str] = []
        for outcome in self.outcomes:
            for s in outcome.suggestions:
                if s not in seen:
                    seen.append(s)
        return seen

    def to_result(self) -> CommandResult:
        lines: list[str] = []
        for outcome in self.outcomes:
            lines.append(outcome.line)
            lines.extend(outcome.notes)
        completed = sum(1 for o in self.outcomes if o.status is StepStatus.OK)
        return CommandResult(
            success=self.any_success,
            message="\n".join(lines) if lines else "No steps were executed",
            suggestions=self.suggestions,
            additional_data={
                "steps": [o.to_dict() for o in self.outcomes],
                "completed": completed,
                "total": len(self.outcomes),
            },
        )


class SequenceExecutor:
    """Runs sub-instructions in order through a processing callable.

    Args:
        process: Full pipeline entry point for one instruction.
        step_delay: Pause between steps so processes and windows can settle.
        max_seconds: Wall-clock budget; later steps are skipped once spent.
        stop_on_failure: Skip the remaining steps after the first failure.
        alternatives: Looks up names similar to an application that could
            not be launched.
    """

    def __init__(
        self,
        process: Callable[[str], CommandResult],
        *,
        step_delay: float = DELAYS.STEP,
        max_seconds: float = SEQUENCE.MAX_SECONDS,
        stop_on_failure: bool = SEQUENCE.STOP_ON_FAILURE,
        alternatives: Callable[[str], list[str]] | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._process = process
        self._step_delay = step_delay
        self._max_seconds = max_seconds
        self._stop_on_failure = stop_on_failure
        self._alternatives = alternatives
        self._sleep = sleep
        self._clock = clock

    def new_report(self) -> SequenceReport:
        return SequenceReport(deadline=self._clock() + self._max_seconds)

    def pause(self, seconds: float) -> None:
        if seconds > 0:
            self._sleep(seconds)

    def run(self, instructions: Sequence[str]) -> CommandResult:
        """Run every instruction in order and aggregate the outcomes."""
        report = self.new_report()
        for offset, instruction in enumerate(instructions):
            self.run_step(report, offset + 1, instruction)
        result = report.to_result()
        logger.info(
            "Sequence finished: %d/%d steps succeeded",
            result.additional_data["completed"],
            result.additional_data["total"],
        )
        return result

    def run_step(
        self,
        report: SequenceReport,
        index: int,
        instruction: str,
        action: Callable[[], CommandResult] | None = None,
    ) -> StepOutcome:
        """Run one step and record its outcome.

        ``action`` replaces the default of processing ``instruction`` as
        natural language.
        """
        if report.halted_reason is None and self._clock() > report.deadline:
            report.halted_reason = f"sequence time limit of {self._max_seconds:g}s reached"
        if report.halted_reason is not None:
            return self.skip(report, index, instruction, report.halted_reason)

        if report.outcomes:
            self.pause(self._step_delay)

        try:
            result = action() if action is not None else self._process(instruction)
        except Exception as e:
            logger.warning("Step %d (%r) raised: %s", index, instruction, e, exc_info=True)
            message = str(e) or type(e).__name__
            outcome = report.add(
                StepOutcome(index, instruction, StepStatus.ERROR, message, suggestions=[message])
            )
            self._after_failure(report, outcome)
            return outcome

        if result.success:
            logger.debug("Step %d succeeded: %s", index, result.message)
            return report.add(StepOutcome(index, instruction, StepStatus.OK, result.message))

        outcome = report.add(
            StepOutcome(
                index,
                instruction,
                StepStatus.FAILED,
                result.message,
                suggestions=list(result.suggestions),
            )
        )
        self._enrich(outcome)
        self._after_failure(report, outcome)
        return outcome

    def skip(self, report: SequenceReport, index: int, instruction: str, reason: str) -> StepOutcome:
        logger.info("Skipping step %d (%r): %s", index, instruction, reason)
        return report.add(StepOutcome(index, instruction, StepStatus.SKIPPED, reason))

    def _after_failure(self, report: SequenceReport, outcome: StepOutcome) -> None:
        logger.info("Step %d %s: %s", outcome.index, outcome.status.value, outcome.message)
        if self._stop_on_failure and report.halted_reason is None:
            report.halted_reason = f"step {outcome.index} did not succeed"

    def _enrich(self, outcome: StepOutcome) -> None:
        """Offer similarly named applications for a failed launch step."""
        if self._alternatives is None:
            return
        lowered = outcome.message.lower()
        if not any(marker in lowered for marker in FAILURE_MARKERS):
            return
        if not starts_with_verb(outcome.instruction, LAUNCH_VERBS):
            return

        app_name = extract_app_name(outcome.instruction)
        if not app_name:
            return
        try:
            names = self._alternatives(app_name)[: LIMITS.MAX_SUGGESTIONS]
        except Exception as e:
            logger.debug("Alternative lookup for %r failed: %s", app_name, e)
            return
        if names:
            outcome.notes.append(f"  Similar applications: {', '.join(names)}")
            outcome.suggestions.extend(f"Did you mean '{n}'?" for n in names)
