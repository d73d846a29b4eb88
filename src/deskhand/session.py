"""Per-session state shared by handlers.

One SessionContext lives for one interactive session and is handed to the
handlers that need it, instead of a module-level registry.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from .config import LIMITS

if TYPE_CHECKING:
    from .commands import Command, CommandResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TrackedApp:
    """An application started during this session."""

    name: str
    pid: int
    path: str | None = None
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass(frozen=True)
class HistoryEntry:
    """One processed instruction, kept for the session log only."""

    text: str
    command_type: str | None
    success: bool
    message: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))


class SessionContext:
    """Running-application registry and instruction history.

    Registry access is serialised with a lock so the context can be shared
    by overlapping pipelines.
    """

    def __init__(self, *, session_id: str | None = None, max_history: int = LIMITS.MAX_HISTORY) -> None:
        self.session_id = session_id or datetime.now(UTC).strftime("%Y%m%d%H%M%S")
        self._apps: dict[str, TrackedApp] = {}
        self._history: deque[HistoryEntry] = deque(maxlen=max_history)
        self._lock = threading.Lock()

    # -------------------------------------------------------------------------
    # Running applications
    # -------------------------------------------------------------------------

    def track(self, name: str, pid: int, path: str | None = None) -> TrackedApp:
        app = TrackedApp(name=name, pid=pid, path=path)
        with self._lock:
            self._apps[name.lower()] = app
        logger.debug("Tracking %s (pid=%d)", name, pid)
        return app

    def untrack(self, name: str) -> TrackedApp | None:
        with self._lock:
            return self._apps.pop(name.lower(), None)

    def get(self, name: str) -> TrackedApp | None:
        with self._lock:
            return self._apps.get(name.lower())

    def running(self) -> list[TrackedApp]:
        with self._lock:
            return list(self._apps.values())

    # -------------------------------------------------------------------------
    # History
    # -------------------------------------------------------------------------

    def record(self, text: str, command: "Command | None", result: "CommandResult") -> None:
        entry = HistoryEntry(
            text=text,
            command_type=command.type_name if command else None,
            success=result.success,
            message=result.message,
        )
        with self._lock:
            self._history.append(entry)

    @property
    def history(self) -> list[HistoryEntry]:
        with self._lock:
            return list(self._history)
