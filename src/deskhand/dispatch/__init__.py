"""Dispatch: handler registry, composite splitting and sequence execution."""

from deskhand.dispatch.composite import CompositeHandler
from deskhand.dispatch.dispatcher import CommandDispatcher
from deskhand.dispatch.sequence import SequenceExecutor, SequenceReport, StepOutcome, StepStatus
from deskhand.dispatch.splitter import (
    SEQUENCE_DELIMITERS,
    LaunchWritePlan,
    find_launch_write,
    split_instructions,
)

__all__ = [
    "SEQUENCE_DELIMITERS",
    "CommandDispatcher",
    "CompositeHandler",
    "LaunchWritePlan",
    "SequenceExecutor",
    "SequenceReport",
    "StepOutcome",
    "StepStatus",
    "find_launch_write",
    "split_instructions",
]
