"""Smart handler - catch-all for instructions no other handler claimed.

Order of attempts:
1. Text that starts with a UI verb becomes a ``ui`` command locally, and
   "system info" requests go to the system information handler.
2. The language model analyses the request; the analysis is converted
   into an executable command and dispatched again.
3. Questions become searches; a named application is launched.
4. Otherwise the request fails with suggestions.
"""

from __future__ import annotations

import json
import logging
import re
from typing import TYPE_CHECKING, Any, ClassVar

from deskhand.commands import ACTIVE_APP, Command, CommandKind, CommandResult, ParameterBag
from deskhand.config import TIMEOUTS
from deskhand.errors import LLMError
from deskhand.intent.prompts import SMART_ANALYSIS_INSTRUCTIONS
from deskhand.intent.resolver import extract_json_object
from deskhand.providers.base import LLMProvider

from .base import CommandHandler

if TYPE_CHECKING:
    from deskhand.dispatch.dispatcher import CommandDispatcher

logger = logging.getLogger(__name__)

# Verb -> ui action. Longest verbs are matched first.
UI_VERBS: dict[str, str] = {
    "right-click": "rightclick",
    "right click": "rightclick",
    "double-click": "doubleclick",
    "double click": "doubleclick",
    "screenshot": "screenshot",
    "uncheck": "click",
    "capture": "screenshot",
    "toggle": "click",
    "select": "click",
    "choose": "click",
    "scroll": "scroll",
    "check": "click",
    "click": "click",
    "press": "click",
    "input": "type",
    "enter": "type",
    "write": "type",
    "type": "type",
    "push": "click",
    "pick": "click",
    "drag": "drag",
    "move": "drag",
    "tap": "click",
}
_UI_VERB_ORDER = sorted(UI_VERBS, key=len, reverse=True)

QUESTION_WORDS = ("what", "how", "why", "when", "where", "who", "which")
QUERY_PHRASES = (
    "tell me about",
    "search for",
    "look up",
    "find information",
    "i want to know",
    "explain",
    "definition of",
    "meaning of",
    "search",
    "find",
    "look for",
)

_ELEMENT_KEYS = ("element", "button", "control", "field", "target")
_TEXT_KEYS = ("text", "content", "input")
_PATH_KEYS = ("path", "filePath", "file")
_QUERY_KEYS = ("query", "searchQuery", "term")
_SERVICE_KEYS = ("service", "serviceName", "name")

_WRITE_PREFIXES = ("write ", "type ", "input ", "enter ")
_WRITE_SUFFIXES = (
    " in it",
    " inside",
    " in notepad",
    " in the notepad",
    " in document",
    " inside it",
    " to it",
    " there",
)

SUGGESTIONS = [
    "Try being more specific",
    "Try breaking your request into smaller steps",
    "Try using a simpler command",
]


def _unquote(text: str) -> str:
    text = text.strip()
    if len(text) >= 2 and text[0] == text[-1] and text[0] in "'\"":
        return text[1:-1].strip()
    return text


def is_question(text: str) -> bool:
    """True for questions and knowledge lookups."""
    lowered = text.lower().strip()
    if lowered.startswith(QUESTION_WORDS) or "?" in lowered:
        return True
    return any(phrase in lowered for phrase in QUERY_PHRASES)


def is_system_info_request(text: str) -> bool:
    lower = text.lower()
    return "system" in lower and "info" in lower


def ui_command_from_text(text: str) -> Command | None:
    """Build a ``ui`` command from text starting with a UI verb.

    "click on the Save button in notepad" ->
        ui(target="notepad", action="click", element="Save button")
    """
    stripped = text.strip()
    lowered = stripped.lower()
    verb = next(
        (v for v in _UI_VERB_ORDER if lowered == v or re.match(rf"{re.escape(v)}\b", lowered)),
        None,
    )
    if verb is None:
        return None

    action = UI_VERBS[verb]
    rest = stripped[len(verb):].strip()

    app = ACTIVE_APP
    split_at = rest.lower().rfind(" in ")
    if split_at >= 0:
        app = rest[split_at + 4:].strip() or ACTIVE_APP
        rest = rest[:split_at]

    for filler in ("on ", "the "):
        if rest.lower().startswith(filler):
            rest = rest[len(filler):]
    element = _unquote(rest)

    params: dict[str, Any] = {}
    if action == "type":
        params["text"] = element
    elif action == "scroll":
        params["direction"] = element.lower() if element.lower() in ("up", "down") else "down"
    elif action == "drag":
        source, _, destination = element.partition(" to ")
        params["element"] = _unquote(source)
        if destination:
            params["toElement"] = _unquote(destination)
    elif action == "screenshot":
        if element and app == ACTIVE_APP and element.lower() not in ("screen", "the screen"):
            app = element
    elif element:
        params["element"] = element
    return Command("ui", target=app, action=action, parameters=ParameterBag(params))


def _first(params: ParameterBag, keys: tuple[str, ...]) -> str:
    for key in keys:
        value = params.get_str(key)
        if value:
            return value
    return ""


def _ui_action(specific: str) -> str:
    if "right" in specific and "click" in specific:
        return "rightclick"
    if "double" in specific and "click" in specific:
        return "doubleclick"
    if "click" in specific:
        return "click"
    if any(word in specific for word in ("type", "write", "enter")):
        return "type"
    if "select" in specific:
        return "select"
    if "scroll" in specific:
        return "scroll"
    return "click"


def _text_from_instruction(text: str) -> str:
    lowered = text.lower()
    for prefix in _WRITE_PREFIXES:
        index = lowered.find(prefix)
        if index < 0:
            continue
        extracted = text[index + len(prefix):].strip()
        for suffix in _WRITE_SUFFIXES:
            if extracted.lower().endswith(suffix):
                extracted = extracted[: -len(suffix)].strip()
        return _unquote(extracted)
    return ""


def command_from_analysis(analysis: ParameterBag, instruction: str) -> Command | None:
    """Convert a model analysis into an executable command, or None."""
    action_type = (analysis.get_str("actionType") or "").lower()
    specific = (analysis.get_str("specificAction") or "").lower()
    app = (analysis.get_str("appRequired") or "").strip()
    params = analysis.get_map("parameters")

    if action_type == "launch":
        if not app or app.lower() == "system":
            return None
        return Command("launch", target=app, parameters=params)

    if action_type == "search":
        return Command("search", target=_first(params, _QUERY_KEYS) or instruction)

    if action_type == "ui_interact":
        action = _ui_action(specific)
        ui_params: dict[str, Any] = {}
        element = _first(params, _ELEMENT_KEYS)
        if element:
            ui_params["element"] = element
        if action == "type":
            ui_params["text"] = _first(params, _TEXT_KEYS) or _text_from_instruction(instruction)
        elif action == "select":
            ui_params["item"] = _first(params, ("item", "value", "option"))
        target = app if app and app.lower() != "system" else ACTIVE_APP
        return Command("ui", target=target, action=action, parameters=ParameterBag(ui_params))

    if action_type == "file_operation":
        path = _first(params, _PATH_KEYS)
        if not path:
            return None
        if any(word in specific for word in ("write", "save", "create")):
            return Command(
                "writefile",
                target=path,
                parameters=ParameterBag(content=_first(params, _TEXT_KEYS), append=False),
            )
        if any(word in specific for word in ("read", "open", "show")):
            return Command("readfile", target=path)
        return None

    if action_type == "system_control":
        service = _first(params, _SERVICE_KEYS)
        if not service:
            return None
        verb = next((v for v in ("restart", "start", "stop", "status") if v in specific), "status")
        return Command("servicecontrol", target=service, parameters=ParameterBag(action=verb))

    if action_type == "system_info":
        return Command("systeminfo", target=_first(params, ("topic", "info", "type")) or "general")

    return None


class SmartHandler(CommandHandler):
    """Fallback handler for ``custom`` and ``smart`` commands.

    Args:
        llm: Backend used to analyse requests. None skips the analysis.
        dispatcher: Where converted commands are sent. Set by
            ``build_dispatcher`` after registration.
    """

    name: ClassVar[str] = "smart"
    command_type: ClassVar[str] = "smart"
    kinds: ClassVar[frozenset[CommandKind]] = frozenset({CommandKind.SMART, CommandKind.CUSTOM})

    def __init__(
        self,
        llm: LLMProvider | None,
        dispatcher: CommandDispatcher | None = None,
        *,
        timeout_seconds: float = TIMEOUTS.LLM_DEFAULT,
    ) -> None:
        self._llm = llm
        self.dispatcher = dispatcher
        self._timeout = timeout_seconds

    def execute(self, command: Command) -> CommandResult:
        text = command.target.strip()
        if not text:
            return CommandResult.fail("No command provided", ["Please provide a command to execute"])

        ui_command = ui_command_from_text(text)
        if ui_command is not None:
            logger.info("Rerouting %r as ui %s", text, ui_command.action)
            return self._dispatch(ui_command)

        if is_system_info_request(text):
            return self._dispatch(Command("systeminfo", target="general"))

        analysis = self.analyse(text)
        if analysis is not None:
            converted = command_from_analysis(analysis, text)
            if converted is not None:
                logger.info("Analysis of %r -> %s %r", text, converted.type_name, converted.target)
                return self._dispatch(converted)

        if is_question(text):
            return self._dispatch(Command("search", target=text))

        app = (analysis.get_str("appRequired") or "").strip() if analysis is not None else ""
        if app and app.lower() != "system":
            return self._dispatch(Command("launch", target=app))

        understood = analysis.get_str("analysis") if analysis is not None else None
        if understood:
            message = f"I understand you want to: {understood}, but I'm not sure how to do that yet."
        else:
            message = f"I'm not sure how to do that: {text}"
        return CommandResult.fail(message, list(SUGGESTIONS))

    def analyse(self, text: str) -> ParameterBag | None:
        """Ask the model what the user wants. None when unavailable."""
        if self._llm is None:
            return None
        try:
            reply = self._llm.chat_json(
                system=SMART_ANALYSIS_INSTRUCTIONS,
                user=text,
                timeout_seconds=self._timeout,
                temperature=0.0,
            )
        except LLMError as e:
            logger.info("Smart analysis unavailable: %s", e.message)
            return None

        payload = extract_json_object(reply)
        if payload is None:
            logger.warning("Smart analysis reply has no JSON: %r", reply[:200])
            return None
        try:
            data = json.loads(payload)
        except json.JSONDecodeError as e:
            logger.warning("Smart analysis reply is malformed: %s", e.msg)
            return None
        if not isinstance(data, dict):
            return None
        return ParameterBag(data)

    def _dispatch(self, command: Command) -> CommandResult:
        if command.kind in self.kinds:
            return CommandResult.fail(f"I'm not sure how to do that: {command.target}", list(SUGGESTIONS))
        if self.dispatcher is None:
            return CommandResult.fail(f"Cannot run {command.type_name} commands here")
        return self.dispatcher.dispatch(command)
