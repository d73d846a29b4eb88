"""Splitting one instruction into ordered sub-instructions.

Also recognises the launch-and-write shape ("open notepad and write
hello"), where the typed text depends on the launched window.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass

SEQUENCE_DELIMITERS = (
    " then ",
    " and then ",
    " followed by ",
    ", then ",
    " after that ",
    " next ",
    ", next ",
    " and next ",
    ", and then ",
    " and ",
    "; ",
)

# Longest first so that at equal positions " and then " beats " and "
_DELIMITER_PATTERN = re.compile(
    "|".join(re.escape(d) for d in sorted(SEQUENCE_DELIMITERS, key=len, reverse=True)),
    re.IGNORECASE,
)

WRITE_VERBS = ("write ", "type ")
LAUNCH_VERBS = ("open ", "launch ", "start ")
APP_SUFFIXES = (" app", " application", " program")
TEXT_SUFFIXES = (
    " in it",
    " inside",
    " in notepad",
    " in the notepad",
    " in document",
    " inside it",
    " to it",
    " there",
    " in app",
    " in application",
    " in window",
)

_QUOTES = "\"'“”‘’"


def has_sequence_delimiter(text: str) -> bool:
    return _DELIMITER_PATTERN.search(text) is not None


def split_instructions(text: str) -> list[str]:
    """Split text at sequence delimiters, left to right.

    At each point the earliest delimiter in the remaining text wins; empty
    segments are dropped.

    >>> split_instructions("open chrome and then search for cats")
    ['open chrome', 'search for cats']
    """
    parts: list[str] = []
    pos = 0
    while True:
        match = _DELIMITER_PATTERN.search(text, pos)
        if match is None:
            parts.append(text[pos:])
            break
        parts.append(text[pos:match.start()])
        pos = match.end()
    return [p.strip() for p in parts if p.strip()]


# =============================================================================
# Launch-and-write pattern
# =============================================================================


@dataclass(frozen=True)
class LaunchWritePlan:
    """Positions and extracted values of a launch step and its write step."""

    launch_index: int
    write_index: int
    app_name: str
    text: str


def find_launch_write(steps: Sequence[str]) -> LaunchWritePlan | None:
    """Find the last write step and the nearest launch step before it."""
    write_index = None
    for i in range(len(steps) - 1, -1, -1):
        if starts_with_verb(steps[i], WRITE_VERBS):
            write_index = i
            break
    if write_index is None:
        return None

    launch_index = None
    for i in range(write_index - 1, -1, -1):
        if starts_with_verb(steps[i], LAUNCH_VERBS):
            launch_index = i
            break
    if launch_index is None:
        return None

    app_name = extract_app_name(steps[launch_index])
    text = extract_write_text(steps[write_index], app_name=app_name)
    if not app_name or not text:
        return None
    return LaunchWritePlan(launch_index, write_index, app_name, text)


def starts_with_verb(step: str, verbs: Sequence[str]) -> bool:
    lowered = step.lower()
    return any(lowered.startswith(v) for v in verbs)


def _after_verb(step: str, verbs: Sequence[str]) -> str:
    lowered = step.lower()
    for verb in verbs:
        if lowered.startswith(verb):
            return step[len(verb):].strip()
    return step.strip()


def extract_app_name(step: str) -> str:
    """Application named by a launch step: first word, filler removed.

    >>> extract_app_name("open the notepad app")
    'notepad'
    """
    rest = _after_verb(step, LAUNCH_VERBS)
    if rest.lower().startswith("the "):
        rest = rest[4:].lstrip()
    for suffix in APP_SUFFIXES:
        if rest.lower().endswith(suffix):
            rest = rest[: -len(suffix)].rstrip()
    words = rest.split()
    return words[0].strip(_QUOTES) if words else ""


def extract_write_text(step: str, *, app_name: str = "") -> str:
    """Literal text of a write step.

    Only the first matching trailing filler phrase is removed.

    >>> extract_write_text("write call me there")
    'call me'
    """
    text = _after_verb(step, WRITE_VERBS)
    suffixes = list(TEXT_SUFFIXES)
    if app_name:
        suffixes += [f" in {app_name.lower()}", f" in the {app_name.lower()}"]
    lowered = text.lower()
    for suffix in suffixes:
        if lowered.endswith(suffix):
            text = text[: -len(suffix)]
            break
    text = text.strip()
    if len(text) >= 2 and text[0] in _QUOTES and text[-1] in _QUOTES:
        text = text[1:-1]
    return text
