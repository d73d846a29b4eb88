"""Launch and close handlers."""

from __future__ import annotations

import difflib
import logging
import os
import shlex
import subprocess
import sys
import webbrowser
from collections.abc import Callable
from pathlib import Path
from typing import Any, ClassVar

import psutil

from deskhand.commands import Command, CommandKind, CommandResult
from deskhand.config import LIMITS, TIMEOUTS
from deskhand.session import SessionContext

from .apps import AppLocation, ApplicationLocator, elevate_argv, open_path_argv
from .base import CommandHandler

logger = logging.getLogger(__name__)

_URL_PREFIXES = ("http://", "https://", "www.")


def _looks_like_url(target: str) -> bool:
    return target.lower().startswith(_URL_PREFIXES)


def _looks_like_path(target: str) -> bool:
    return os.sep in target or "/" in target or target.startswith("~") or Path(target).suffix != ""


def spawn(argv: list[str], popen: Callable[..., Any] = subprocess.Popen) -> Any:
    """Start a detached process with no inherited stdio."""
    return popen(
        argv,
        stdin=subprocess.DEVNULL,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
        start_new_session=True,
    )


class LaunchHandler(CommandHandler):
    """Starts applications, opens URLs and files.

    Parameters read from the command:
        runAsAdmin: request elevation (bool)
        arguments: extra command line arguments (string)
    """

    name: ClassVar[str] = "launch"
    command_type: ClassVar[str] = "launch"
    kinds: ClassVar[frozenset[CommandKind]] = frozenset({CommandKind.LAUNCH})

    def __init__(
        self,
        session: SessionContext,
        *,
        locator: ApplicationLocator | None = None,
        popen: Callable[..., Any] = subprocess.Popen,
        open_url: Callable[[str], Any] = webbrowser.open,
        platform: str = sys.platform,
    ) -> None:
        self._session = session
        self._locator = locator or ApplicationLocator(platform=platform)
        self._popen = popen
        self._open_url = open_url
        self._platform = platform

    @property
    def locator(self) -> ApplicationLocator:
        return self._locator

    def execute(self, command: Command) -> CommandResult:
        target = command.target.strip() or (command.parameters.get_str("application") or "")
        if not target:
            return CommandResult.fail(
                "No application specified to launch",
                ["Name the application, e.g. 'open notepad'"],
            )

        params = command.parameters
        elevated = params.get_bool("runAsAdmin") or params.get_bool("elevated")
        extra_args = shlex.split(params.get_str("arguments", "") or "")

        if _looks_like_url(target):
            url = target if "://" in target else f"https://{target}"
            self._open_url(url)
            return CommandResult.ok(f"Opened {url} in the default browser", url=url)

        if _looks_like_path(target):
            path = Path(target).expanduser()
            if path.exists():
                location = AppLocation(
                    path.name,
                    tuple(open_path_argv(str(path), self._platform)),
                    "file",
                    str(path),
                )
                return self._start(location, target, elevated=False, extra_args=[])

        location = self._locator.locate(target)
        if location is None:
            similar = self._locator.similar(target)
            suggestions = [f"Did you mean '{s}'?" for s in similar]
            suggestions.append("Check the spelling or give the full path to the program")
            return CommandResult.fail(f"Application '{target}' not found", suggestions)

        return self._start(location, target, elevated=elevated, extra_args=extra_args)

    def suggest_alternatives(self, name: str) -> list[str]:
        return self._locator.similar(name)

    def _start(
        self,
        location: AppLocation,
        target: str,
        *,
        elevated: bool,
        extra_args: list[str],
    ) -> CommandResult:
        argv = [*location.argv, *extra_args]
        if elevated:
            argv = elevate_argv(argv, self._platform)
        logger.info("Launching %s: %s", target, argv)
        try:
            proc = spawn(argv, self._popen)
        except OSError as e:
            logger.warning("Failed to launch %s: %s", target, e)
            suggestions = ["Check that the program is installed and executable"]
            if not elevated:
                suggestions.append("Try again with administrator privileges")
            return CommandResult.fail(f"Failed to launch application '{target}': {e}", suggestions)

        self._session.track(target, proc.pid, location.path)
        return CommandResult.ok(
            f"Launched application: {target}",
            pid=proc.pid,
            path=location.path or argv[0],
            source=location.source,
        )


class CloseHandler(CommandHandler):
    """Closes applications: terminate, wait, then kill survivors."""

    name: ClassVar[str] = "close"
    command_type: ClassVar[str] = "close"
    kinds: ClassVar[frozenset[CommandKind]] = frozenset({CommandKind.CLOSE})

    def __init__(
        self,
        session: SessionContext,
        *,
        locator: ApplicationLocator | None = None,
        process_iter: Callable[..., Any] = psutil.process_iter,
        wait_procs: Callable[..., Any] = psutil.wait_procs,
        grace_seconds: float = TIMEOUTS.PROCESS_EXIT,
    ) -> None:
        self._session = session
        self._locator = locator or ApplicationLocator()
        self._process_iter = process_iter
        self._wait_procs = wait_procs
        self._grace = grace_seconds

    def execute(self, command: Command) -> CommandResult:
        target = command.target.strip()
        if not target:
            return CommandResult.fail(
                "No application specified to close",
                ["Name the application, e.g. 'close notepad'"],
            )

        procs, running_names = self._matching_processes(target)
        if not procs:
            similar = difflib.get_close_matches(
                target.lower(), sorted(running_names), n=LIMITS.MAX_SUGGESTIONS, cutoff=LIMITS.FUZZY_CUTOFF
            )
            suggestions = [f"Did you mean '{s}'?" for s in similar]
            suggestions.append("Check that the application is running")
            return CommandResult.fail(f"No running application named '{target}' was found", suggestions)

        targets, denied = [], []
        for proc in procs:
            try:
                proc.terminate()
                targets.append(proc)
            except psutil.NoSuchProcess:
                continue
            except psutil.AccessDenied:
                denied.append(proc)

        _, alive = self._wait_procs(targets, timeout=self._grace)
        for proc in alive:
            try:
                logger.info("Killing %s (pid=%d) after %.1fs", target, proc.pid, self._grace)
                proc.kill()
            except psutil.NoSuchProcess:
                continue
            except psutil.AccessDenied:
                denied.append(proc)

        self._session.untrack(target)

        if denied and not targets:
            return CommandResult.fail(
                f"Permission denied closing '{target}'",
                ["Make sure you have administrator privileges"],
            )

        count = len(targets)
        noun = "process" if count == 1 else "processes"
        return CommandResult.ok(
            f"Closed {target} ({count} {noun})",
            pids=[p.pid for p in targets],
            denied=[p.pid for p in denied],
        )

    def _matching_processes(self, target: str) -> tuple[list[Any], set[str]]:
        names = self._locator.executable_names(target)
        tracked = self._session.get(target)
        own_pid = os.getpid()
        matches, running = [], set()
        for proc in self._process_iter(["pid", "name"]):
            pname = (proc.info.get("name") or "").lower()
            stem = pname.removesuffix(".exe")
            if stem:
                running.add(stem)
            if proc.pid == own_pid:
                continue
            if (tracked is not None and proc.pid == tracked.pid) or stem in names or pname in names:
                matches.append(proc)
        return matches, running
