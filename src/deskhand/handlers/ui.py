"""UI handler - drive application windows through the automation tree."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from typing import Any, ClassVar

from deskhand.commands import ACTIVE_APP, Command, CommandKind, CommandResult, ParameterBag
from deskhand.config import TIMEOUTS
from deskhand.errors import AutomationError, AutomationUnavailableError, ElementNotFoundError
from deskhand.settings import settings

from .automation import DesktopAutomation, UIElement, find_element
from .base import CommandHandler

logger = logging.getLogger(__name__)

UI_ACTIONS = (
    "click",
    "doubleclick",
    "rightclick",
    "type",
    "select",
    "drag",
    "scroll",
    "gettext",
    "wait",
    "screenshot",
    "hotkey",
)

ACTION_ALIASES = {
    "double-click": "doubleclick",
    "double_click": "doubleclick",
    "right-click": "rightclick",
    "right_click": "rightclick",
    "tap": "click",
    "press": "click",
    "push": "click",
    "choose": "select",
    "pick": "select",
    "input": "type",
    "enter": "type",
    "write": "type",
    "settext": "type",
    "readtext": "gettext",
    "read": "gettext",
    "capture": "screenshot",
    "waitfor": "wait",
    "keys": "hotkey",
    "shortcut": "hotkey",
}


def normalize_action(action: str | None) -> str | None:
    if not action:
        return None
    key = action.strip().lower()
    return ACTION_ALIASES.get(key, key)


class UIHandler(CommandHandler):
    """Clicks, types, selects, scrolls, reads and captures application windows.

    Parameters read from the command:
        element: element name or automation id
        text: text to type
        item: item to select
        toElement: drop target for drag
        direction, amount: scroll direction (up/down) and clicks
        timeout: seconds to wait for an element
        keys: hotkey such as "ctrl+s"
        path: screenshot destination
    """

    name: ClassVar[str] = "ui"
    command_type: ClassVar[str] = "ui"
    kinds: ClassVar[frozenset[CommandKind]] = frozenset({CommandKind.UI})

    def __init__(
        self,
        *,
        automation: DesktopAutomation | None = None,
        launcher: Callable[[Command], CommandResult] | None = None,
        screenshot_dir: Path | None = None,
        app_ready_timeout: float = TIMEOUTS.APP_READY,
        poll_interval: float = TIMEOUTS.POLL_INTERVAL,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._automation = automation or DesktopAutomation()
        self._launcher = launcher
        self._screenshot_dir = screenshot_dir or settings.screenshot_dir
        self._app_ready_timeout = app_ready_timeout
        self._poll = poll_interval
        self._sleep = sleep
        self._clock = clock

    def execute(self, command: Command) -> CommandResult:
        action, app = self._action_and_app(command)
        if not action:
            return CommandResult.fail(
                "No UI action specified",
                [f"Supported actions: {', '.join(UI_ACTIONS)}"],
            )
        if action not in UI_ACTIONS:
            return CommandResult.fail(
                f"Unknown UI action: '{action}'",
                [f"Supported actions: {', '.join(UI_ACTIONS)}"],
            )

        params = command.parameters
        logger.info("UI %s in %s (%s)", action, app, params.to_dict())
        try:
            if action == "screenshot":
                return self._screenshot(app, params)
            if action == "hotkey":
                return self._hotkey(params)
            if action == "type" and not params.get_str("element"):
                return self._type_focused(app, params)

            window = self._window_for(app)
            return getattr(self, f"_{action}")(app, window, params)

        except ElementNotFoundError as e:
            return CommandResult.fail(
                e.message,
                ["Check the element name as shown on screen", "Wait for the window to finish loading"],
            )
        except AutomationUnavailableError as e:
            return CommandResult.fail(e.message, ["Use keyboard actions such as 'type <text>' instead"])
        except AutomationError as e:
            return CommandResult.fail(e.message)
        except Exception as e:
            logger.warning("UI action %s on %s failed: %s", action, app, e, exc_info=True)
            return CommandResult.fail(f"Error performing UI action '{action}' on '{app}': {e}")

    # -------------------------------------------------------------------------
    # Resolution helpers
    # -------------------------------------------------------------------------

    def _action_and_app(self, command: Command) -> tuple[str | None, str]:
        params = command.parameters
        target = command.target.strip()
        action = normalize_action(command.action or params.get_str("action"))

        tag = command.type_name
        if action is None and tag in ("click", "type"):
            action = tag

        # Some replies put the action in target and the app in a parameter
        if normalize_action(target) in UI_ACTIONS:
            action = action or normalize_action(target)
            target = ""

        app = target or params.get_str("application") or params.get_str("app") or ACTIVE_APP
        return action, app

    def _window_for(self, app: str) -> Any:
        window = self._automation.find_window(app)
        if window is not None:
            self._automation.focus(window)
            return window

        if app.lower() == ACTIVE_APP:
            raise AutomationError("No active window found")
        if self._launcher is None:
            raise AutomationError(f"Application '{app}' is not running", application=app)

        launched = self._launcher(Command("launch", target=app))
        if not launched.success:
            raise AutomationError(f"Could not find application '{app}': {launched.message}", application=app)

        deadline = self._clock() + self._app_ready_timeout
        while self._clock() < deadline:
            self._sleep(self._poll)
            window = self._automation.find_window(app)
            if window is not None:
                self._automation.focus(window)
                return window
        raise AutomationError(
            f"Application '{app}' did not open a window within {self._app_ready_timeout:g}s",
            application=app,
            recoverable=True,
        )

    def _element(self, app: str, window: Any, params: ParameterBag, key: str = "element") -> UIElement:
        query = params.get_str(key)
        if not query:
            raise AutomationError(f"No {key} specified", application=app)
        element = find_element(self._automation.list_elements(window), query)
        if element is None:
            raise ElementNotFoundError(
                f"Could not find element '{query}' in application '{app}'",
                element=query,
                application=app,
            )
        if element.is_offscreen:
            raise AutomationError(f"Element '{query}' is not visible on screen", application=app)
        return element

    # -------------------------------------------------------------------------
    # Actions
    # -------------------------------------------------------------------------

    def _click(self, app: str, window: Any, params: ParameterBag) -> CommandResult:
        element = self._element(app, window, params)
        self._automation.click(element)
        return CommandResult.ok(f"Clicked on '{element.name}' in '{app}'")

    def _doubleclick(self, app: str, window: Any, params: ParameterBag) -> CommandResult:
        element = self._element(app, window, params)
        self._automation.click(element, double=True)
        return CommandResult.ok(f"Double-clicked on '{element.name}' in '{app}'")

    def _rightclick(self, app: str, window: Any, params: ParameterBag) -> CommandResult:
        element = self._element(app, window, params)
        self._automation.click(element, button="right")
        return CommandResult.ok(f"Right-clicked on '{element.name}' in '{app}'")

    def _type(self, app: str, window: Any, params: ParameterBag) -> CommandResult:
        text = params.get_str("text")
        if text is None:
            return CommandResult.fail("No text specified to type")
        element = self._element(app, window, params)
        self._automation.set_text(element, text)
        return CommandResult.ok(f"Typed '{text}' into '{element.name}' in '{app}'")

    def _type_focused(self, app: str, params: ParameterBag) -> CommandResult:
        text = params.get_str("text")
        if text is None:
            return CommandResult.fail("No text specified to type")
        if app.lower() != ACTIVE_APP:
            try:
                self._window_for(app)
            except AutomationUnavailableError:
                return CommandResult.fail(
                    f"Cannot bring '{app}' to the front on this platform",
                    [f"Focus {app} yourself and say 'type {text}'"],
                )
        self._automation.keyboard.type_text(text)
        where = "the active window" if app.lower() == ACTIVE_APP else f"'{app}'"
        return CommandResult.ok(f"Typed '{text}' into {where}", text=text)

    def _select(self, app: str, window: Any, params: ParameterBag) -> CommandResult:
        item = params.get_str("item") or params.get_str("value")
        if not item:
            return CommandResult.fail("No item specified to select")
        element = self._element(app, window, params)
        self._automation.select(element, item)
        return CommandResult.ok(f"Selected '{item}' in '{element.name}'")

    def _drag(self, app: str, window: Any, params: ParameterBag) -> CommandResult:
        source = self._element(app, window, params)
        key = "toElement" if params.get_str("toElement") else "target"
        target = self._element(app, window, params, key=key)
        self._automation.drag(source, target)
        return CommandResult.ok(f"Dragged '{source.name}' to '{target.name}'")

    def _scroll(self, app: str, window: Any, params: ParameterBag) -> CommandResult:
        element = self._element(app, window, params) if params.get_str("element") else None
        direction = (params.get_str("direction") or "down").lower()
        amount = params.get_int("amount", 3) or 3
        self._automation.scroll(element, direction, amount)
        where = f"'{element.name}'" if element else f"'{app}'"
        return CommandResult.ok(f"Scrolled {direction} {amount} in {where}")

    def _gettext(self, app: str, window: Any, params: ParameterBag) -> CommandResult:
        element = self._element(app, window, params)
        text = self._automation.read_text(element)
        return CommandResult.ok(f"Text of '{element.name}': {text}", text=text)

    def _wait(self, app: str, window: Any, params: ParameterBag) -> CommandResult:
        query = params.get_str("element")
        if not query:
            return CommandResult.fail("No element specified to wait for")
        timeout = params.get_float("timeout", TIMEOUTS.ELEMENT_WAIT) or 0.0

        deadline = self._clock() + timeout
        while True:
            element = find_element(self._automation.list_elements(window), query)
            if element is not None and not element.is_offscreen:
                return CommandResult.ok(f"Element '{element.name}' is available in '{app}'")
            if self._clock() >= deadline:
                break
            self._sleep(self._poll)

        return CommandResult.fail(
            f"Element '{query}' did not appear in '{app}' within {timeout:g}s",
            ["Increase the timeout", "Check that the window shows the element"],
            timed_out=True,
        )

    def _screenshot(self, app: str, params: ParameterBag) -> CommandResult:
        raw = params.get_str("path")
        if raw:
            path = Path(raw).expanduser()
        else:
            stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            path = self._screenshot_dir / f"screenshot_{stamp}.png"

        region = None
        if app.lower() != ACTIVE_APP:
            try:
                window = self._automation.find_window(app)
                if window is not None:
                    region = self._automation.window_region(window)
            except AutomationUnavailableError:
                logger.debug("Window lookup unavailable; capturing the full screen")

        saved = self._automation.screenshot(path, region)
        what = "full screen" if region is None else f"'{app}'"
        return CommandResult.ok(f"Screenshot of {what} saved to {saved}", path=str(saved))

    def _hotkey(self, params: ParameterBag) -> CommandResult:
        raw = params.get_str("keys") or params.get_str("key")
        if not raw:
            return CommandResult.fail("No keys specified", ["Example: keys = 'ctrl+s'"])
        keys = [k.strip().lower() for k in raw.split("+") if k.strip()]
        self._automation.keyboard.hotkey(*keys)
        return CommandResult.ok(f"Pressed {'+'.join(keys)}")
