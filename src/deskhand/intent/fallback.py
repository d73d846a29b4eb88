"""Local phrase parser used when no language model answers.

Covers the most common instruction shapes with fixed rules. Matching runs
on a lower-cased copy; captured text keeps the user's casing.
"""

from __future__ import annotations

import logging
import re

from deskhand.commands import ACTIVE_APP, Command, ParameterBag

logger = logging.getLogger(__name__)

LAUNCH_PREFIXES = ("open ", "launch ", "start ", "run ")
CLOSE_PREFIXES = ("close ", "quit ", "exit ", "stop ")
SCREENSHOT_PREFIXES = ("take a screenshot", "take screenshot", "screenshot")

_QUOTES = "\"'“”‘’`"
_TOKEN_SPLIT = re.compile(r"[\s,]+")


def parse_locally(text: str) -> Command:
    """Turn an instruction into a Command without a language model.

    Unmatched input becomes a ``custom`` command carrying the original text.
    """
    source = text.strip()
    lower = source.lower()
    # A few code points change length when lower-cased; fall back to the lowered text then
    original = source if len(lower) == len(source) else lower

    for prefix in LAUNCH_PREFIXES:
        if lower.startswith(prefix):
            target = _first_token(original[len(prefix):])
            if target:
                return Command("launch", target=target)

    for prefix in CLOSE_PREFIXES:
        if lower.startswith(prefix):
            target = _first_token(original[len(prefix):])
            if target:
                return Command("close", target=target)

    if lower.startswith("click "):
        return _parse_click(original[len("click "):], lower[len("click "):])

    if lower.startswith("type "):
        return _parse_type(original[len("type "):], lower[len("type "):])

    for prefix in SCREENSHOT_PREFIXES:
        if lower == prefix or lower.startswith(prefix + " "):
            return _parse_screenshot(original[len(prefix):], lower[len(prefix):])

    logger.debug("No local rule matched %r; using custom command", text)
    return Command("custom", target=text)


def _parse_click(rest: str, rest_lower: str) -> Command:
    cut = max(rest_lower.rfind(" in "), rest_lower.rfind(" on "))
    app = ""
    if cut >= 0:
        app = rest[cut + 4:].strip()
        rest = rest[:cut]
        rest_lower = rest_lower[:cut]

    element = rest.strip()
    for filler in ("on ", "the "):
        if element.lower().startswith(filler):
            element = element[len(filler):].lstrip()
    return Command(
        "ui",
        target=_unquote(app) or ACTIVE_APP,
        action="click",
        parameters=ParameterBag(element=_unquote(element)),
    )


def _parse_type(rest: str, rest_lower: str) -> Command:
    cut = rest_lower.rfind(" in ")
    target = ACTIVE_APP
    params: dict[str, str] = {}
    if cut >= 0:
        clause = rest[cut + 4:].strip()
        rest = rest[:cut]
        if _is_quoted(clause):
            params["element"] = _unquote(clause)
        elif clause:
            target = clause
    params["text"] = _unquote(rest.strip())
    return Command("ui", target=target, action="type", parameters=ParameterBag(params))


def _parse_screenshot(rest: str, rest_lower: str) -> Command:
    cut = rest_lower.find(" of ")
    if cut >= 0:
        app = _unquote(rest[cut + 4:].strip())
        if app:
            return Command(
                "ui",
                target=app,
                action="screenshot",
                parameters=ParameterBag(application=app),
            )
    return Command("ui", target=ACTIVE_APP, action="screenshot")


def _first_token(text: str) -> str:
    for token in _TOKEN_SPLIT.split(text.strip()):
        if token:
            return _unquote(token)
    return ""


def _is_quoted(text: str) -> bool:
    return len(text) >= 2 and text[0] in _QUOTES and text[-1] in _QUOTES


def _unquote(text: str) -> str:
    return text.strip().strip(_QUOTES).strip()
