"""Desktop automation primitives.

Two layers:
- Keyboard, mouse and screenshots through pyautogui (every platform).
- The UI Automation element tree through pywinauto (Windows only).

Both libraries are imported on first use; pyautogui needs a display and
pywinauto needs Windows, so importing this module never touches either.
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass, field
from difflib import SequenceMatcher
from pathlib import Path
from typing import Any, Protocol

from deskhand.commands import ACTIVE_APP
from deskhand.config import DELAYS, LIMITS
from deskhand.errors import AutomationError, AutomationUnavailableError

logger = logging.getLogger(__name__)


def _pyautogui() -> Any:
    try:
        import pyautogui
    except Exception as e:  # pyautogui raises on import without a display
        raise AutomationUnavailableError(f"Desktop input is unavailable: {e}") from e
    pyautogui.FAILSAFE = True
    pyautogui.PAUSE = 0.05
    return pyautogui


def _pywinauto() -> Any:
    if sys.platform != "win32":
        raise AutomationUnavailableError(
            "Finding UI elements needs Windows UI Automation; "
            "only keyboard, mouse and screenshot actions work on this platform"
        )
    import pywinauto

    return pywinauto


# =============================================================================
# Element model and matching
# =============================================================================


@dataclass
class UIElement:
    """One element of an application's automation tree."""

    name: str
    control_type: str = ""
    automation_id: str = ""
    rect: tuple[int, int, int, int] = (0, 0, 0, 0)
    is_offscreen: bool = False
    handle: Any = field(default=None, repr=False, compare=False)

    @property
    def center(self) -> tuple[int, int]:
        left, top, width, height = self.rect
        return left + width // 2, top + height // 2


def fuzzy_score(needle: str, haystack: str) -> float:
    """Return 0.0-1.0 similarity score using SequenceMatcher."""
    if not needle or not haystack:
        return 0.0
    return SequenceMatcher(None, needle.lower(), haystack.lower()).ratio()


def find_element(
    elements: list[UIElement],
    query: str,
    *,
    cutoff: float = LIMITS.FUZZY_CUTOFF,
) -> UIElement | None:
    """Locate an element by exact name, automation id, then fuzzy name."""
    wanted = query.strip().lower()
    if not wanted:
        return None

    for element in elements:
        if element.name.strip().lower() == wanted:
            return element
    for element in elements:
        if element.automation_id and element.automation_id.lower() == wanted:
            return element

    best: UIElement | None = None
    best_score = cutoff
    for element in elements:
        score = fuzzy_score(wanted, element.name.strip())
        if score > best_score:
            best, best_score = element, score
    if best is not None:
        logger.debug("Fuzzy matched %r to %r (%.2f)", query, best.name, best_score)
    return best


def title_score(app_name: str, title: str) -> int:
    """How well a window title matches an application name.

    0 = no match, 1 = fuzzy, 2 = first word, 3 = all words, 4 = exact phrase.
    """
    app = app_name.lower().strip()
    title = title.lower().strip()
    if not app or not title:
        return 0
    if app in title:
        return 4
    words = [w for w in app.split() if len(w) > 1]
    if words and all(w in title for w in words):
        return 3
    if words and any(t.startswith(words[0]) for t in title.split()):
        return 2
    if any(fuzzy_score(app, t) > 0.7 for t in title.split()):
        return 1
    return 0


# =============================================================================
# Keyboard
# =============================================================================


class Keyboard(Protocol):
    def type_text(self, text: str) -> None: ...

    def hotkey(self, *keys: str) -> None: ...


class PyAutoGUIKeyboard:
    """Types into whatever window has focus."""

    def __init__(self, *, interval: float = DELAYS.TYPING_INTERVAL) -> None:
        self._interval = interval

    def type_text(self, text: str) -> None:
        _pyautogui().write(text, interval=self._interval)

    def hotkey(self, *keys: str) -> None:
        gui = _pyautogui()
        if len(keys) == 1:
            gui.press(keys[0])
        else:
            gui.hotkey(*keys)


# =============================================================================
# Automation backend
# =============================================================================


class DesktopAutomation:
    """Window, element and input operations used by the UI handler."""

    def __init__(self, *, keyboard: Keyboard | None = None, max_depth: int = 4) -> None:
        self.keyboard = keyboard or PyAutoGUIKeyboard()
        self._max_depth = max_depth

    # -- windows ---------------------------------------------------------------

    def find_window(self, app_name: str) -> Any | None:
        """Top-level window for an application, or None."""
        pywinauto = _pywinauto()
        desktop = pywinauto.Desktop(backend="uia")

        if app_name.lower() == ACTIVE_APP:
            active = desktop.windows(active_only=True)
            return active[0] if active else None

        best, best_score = None, 0
        for window in desktop.windows():
            try:
                score = title_score(app_name, window.window_text())
            except Exception:
                continue
            if score > best_score:
                best, best_score = window, score
        if best is None:
            return None

        try:
            app = pywinauto.Application(backend="uia").connect(handle=best.handle)
            return app.top_window()
        except Exception as e:
            logger.debug("Could not connect to %r by handle: %s", app_name, e)
            return best

    def focus(self, window: Any) -> None:
        try:
            if window.is_minimized():
                window.restore()
            window.set_focus()
        except Exception as e:
            raise AutomationError(f"Could not focus window: {e}") from e

    def window_region(self, window: Any) -> tuple[int, int, int, int]:
        rect = window.rectangle()
        return rect.left, rect.top, rect.width(), rect.height()

    def list_elements(self, window: Any) -> list[UIElement]:
        """Walk the UIA tree and return the visible elements."""
        elements: list[UIElement] = []

        def _walk(ctrl: Any, depth: int) -> None:
            if depth > self._max_depth:
                return
            try:
                children = ctrl.children()
            except Exception:
                return
            for child in children:
                try:
                    info = child.element_info
                    rect = child.rectangle()
                    if rect.width() > 0 and rect.height() > 0:
                        elements.append(
                            UIElement(
                                name=child.window_text() or info.name or "",
                                control_type=info.control_type or "",
                                automation_id=info.automation_id or "",
                                rect=(rect.left, rect.top, rect.width(), rect.height()),
                                is_offscreen=bool(getattr(info, "is_offscreen", False)),
                                handle=child,
                            )
                        )
                except Exception:
                    continue
                _walk(child, depth + 1)

        _walk(window, 0)
        return elements

    # -- element actions -------------------------------------------------------

    def click(self, element: UIElement, *, button: str = "left", double: bool = False) -> None:
        if element.handle is not None and hasattr(element.handle, "click_input"):
            element.handle.click_input(button=button, double=double)
            return
        x, y = element.center
        gui = _pyautogui()
        if double:
            gui.doubleClick(x, y)
        else:
            gui.click(x, y, button=button)

    def set_text(self, element: UIElement, text: str) -> None:
        handle = element.handle
        if handle is not None and hasattr(handle, "set_edit_text"):
            try:
                handle.set_edit_text(text)
                return
            except Exception as e:
                logger.debug("set_edit_text failed on %r, typing instead: %s", element.name, e)
        self.click(element)
        self.keyboard.type_text(text)

    def select(self, element: UIElement, item: str) -> None:
        handle = element.handle
        if handle is None or not hasattr(handle, "select"):
            raise AutomationError(f"Element '{element.name}' does not support selection")
        handle.select(item)

    def drag(self, source: UIElement, target: UIElement) -> None:
        gui = _pyautogui()
        gui.moveTo(*source.center)
        gui.dragTo(*target.center, duration=0.5)

    def scroll(self, element: UIElement | None, direction: str, amount: int) -> None:
        clicks = amount if direction.lower() == "up" else -amount
        gui = _pyautogui()
        if element is not None:
            gui.scroll(clicks, *element.center)
        else:
            gui.scroll(clicks)

    def read_text(self, element: UIElement) -> str:
        handle = element.handle
        if handle is None:
            return element.name
        for getter in ("get_value", "window_text"):
            if hasattr(handle, getter):
                try:
                    value = getattr(handle, getter)()
                except Exception:
                    continue
                if value:
                    return str(value)
        return element.name

    # -- screen ----------------------------------------------------------------

    def screenshot(self, path: Path, region: tuple[int, int, int, int] | None = None) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        image = _pyautogui().screenshot(region=region)
        image.save(str(path))
        return path
