"""Service control handler - start, stop, restart and query OS services.

Linux uses systemd through ``systemctl``; Windows enumerates services with
psutil and changes them with ``sc``.
"""

from __future__ import annotations

import difflib
import json
import logging
import shutil
import subprocess
import sys
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, ClassVar, Protocol

import psutil

from deskhand.commands import Command, CommandKind, CommandResult
from deskhand.config import LIMITS, TIMEOUTS
from deskhand.errors import ServiceError

from .base import CommandHandler

logger = logging.getLogger(__name__)

SERVICE_ACTIONS = ("start", "stop", "restart", "status")

_ADMIN_SUGGESTIONS = [
    "Make sure you have administrator privileges",
    "Check that the service is not disabled",
]


@dataclass(frozen=True)
class ServiceInfo:
    """One service as reported by the OS."""

    name: str
    display_name: str
    status: str

    @property
    def running(self) -> bool:
        return self.status.lower() in {"running", "active"}


class ServiceManager(Protocol):
    def list_services(self) -> list[ServiceInfo]: ...

    def status(self, name: str) -> ServiceInfo | None: ...

    def start(self, name: str) -> None: ...

    def stop(self, name: str) -> None: ...


def _run_command(cmd: list[str], timeout: int = TIMEOUTS.SERVICE_COMMAND) -> subprocess.CompletedProcess[str]:
    try:
        return subprocess.run(cmd, capture_output=True, text=True, timeout=timeout)
    except subprocess.TimeoutExpired as e:
        raise ServiceError(f"'{' '.join(cmd)}' timed out after {timeout}s", recoverable=True) from e
    except (FileNotFoundError, OSError) as e:
        raise ServiceError(f"Cannot run {cmd[0]}: {e}") from e


# =============================================================================
# systemd
# =============================================================================


class SystemdServiceManager:
    """Services through systemctl."""

    def list_services(self) -> list[ServiceInfo]:
        cmd = ["systemctl", "list-units", "--type=service", "--all", "--no-pager", "--output=json"]
        result = _run_command(cmd)
        if result.returncode == 0:
            try:
                units = json.loads(result.stdout)
                return [
                    ServiceInfo(
                        name=u.get("unit", "").removesuffix(".service"),
                        display_name=u.get("description", ""),
                        status=u.get("active", ""),
                    )
                    for u in units
                ]
            except (json.JSONDecodeError, AttributeError):
                pass
        return self._list_text()

    def _list_text(self) -> list[ServiceInfo]:
        cmd = ["systemctl", "list-units", "--type=service", "--all", "--no-pager", "--no-legend", "--plain"]
        result = _run_command(cmd)
        services = []
        for line in result.stdout.strip().split("\n"):
            parts = line.split(None, 4)
            if len(parts) >= 4:
                services.append(
                    ServiceInfo(
                        name=parts[0].removesuffix(".service"),
                        display_name=parts[4] if len(parts) > 4 else "",
                        status=parts[2],
                    )
                )
        return services

    def status(self, name: str) -> ServiceInfo | None:
        result = _run_command(["systemctl", "show", f"{name}.service", "--no-pager",
                               "--property=LoadState,ActiveState,Description"])
        fields = {}
        for line in result.stdout.strip().split("\n"):
            key, _, value = line.partition("=")
            fields[key.strip()] = value.strip()
        if result.returncode != 0 or fields.get("LoadState") == "not-found":
            return None
        return ServiceInfo(name, fields.get("Description", ""), fields.get("ActiveState", "unknown"))

    def start(self, name: str) -> None:
        self._change("start", name)

    def stop(self, name: str) -> None:
        self._change("stop", name)

    def _change(self, verb: str, name: str) -> None:
        result = _run_command(["systemctl", verb, f"{name}.service"])
        if result.returncode != 0:
            detail = (result.stderr or result.stdout).strip()[:500]
            raise ServiceError(f"systemctl {verb} {name} failed: {detail}", service=name)


# =============================================================================
# Windows
# =============================================================================


class WindowsServiceManager:
    """Services through psutil (enumeration) and sc (changes)."""

    def list_services(self) -> list[ServiceInfo]:
        services = []
        for svc in psutil.win_service_iter():
            try:
                services.append(ServiceInfo(svc.name(), svc.display_name(), svc.status()))
            except (psutil.NoSuchProcess, psutil.AccessDenied):
                continue
        return services

    def status(self, name: str) -> ServiceInfo | None:
        try:
            svc = psutil.win_service_get(name)
            return ServiceInfo(svc.name(), svc.display_name(), svc.status())
        except psutil.NoSuchProcess:
            return None

    def start(self, name: str) -> None:
        self._change("start", name)

    def stop(self, name: str) -> None:
        self._change("stop", name)

    def _change(self, verb: str, name: str) -> None:
        result = _run_command(["sc", verb, name])
        if result.returncode != 0:
            detail = (result.stdout or result.stderr).strip()[:500]
            raise ServiceError(f"sc {verb} {name} failed: {detail}", service=name)


def default_service_manager(platform: str = sys.platform) -> ServiceManager | None:
    if platform == "win32":
        return WindowsServiceManager()
    if shutil.which("systemctl"):
        return SystemdServiceManager()
    return None


def resolve_service(name: str, services: list[ServiceInfo]) -> ServiceInfo | None:
    """Exact name or display name, then substring, then fuzzy match."""
    wanted = name.strip().lower()
    if not wanted:
        return None
    for svc in services:
        if svc.name.lower() == wanted or svc.display_name.lower() == wanted:
            return svc
    for svc in services:
        if wanted in svc.name.lower() or wanted in svc.display_name.lower():
            return svc
    by_name = {svc.name.lower(): svc for svc in services}
    close = difflib.get_close_matches(wanted, list(by_name), n=1, cutoff=0.75)
    return by_name[close[0]] if close else None


# =============================================================================
# Handler
# =============================================================================


class ServiceControlHandler(CommandHandler):
    """Controls a named OS service. ``action`` parameter defaults to status."""

    name: ClassVar[str] = "service"
    command_type: ClassVar[str] = "servicecontrol"
    kinds: ClassVar[frozenset[CommandKind]] = frozenset({CommandKind.SERVICE})

    def __init__(
        self,
        *,
        manager: ServiceManager | None = None,
        transition_timeout: float = TIMEOUTS.SERVICE_TRANSITION,
        poll_interval: float = TIMEOUTS.POLL_INTERVAL,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._manager = manager if manager is not None else default_service_manager()
        self._timeout = transition_timeout
        self._poll = poll_interval
        self._sleep = sleep
        self._clock = clock

    def execute(self, command: Command) -> CommandResult:
        if self._manager is None:
            return CommandResult.fail("Service control is not supported on this system")

        wanted = command.target.strip() or command.parameters.get_str("service") or ""
        if not wanted:
            return CommandResult.fail("No service specified", ["Name the service, e.g. 'restart spooler'"])

        action = (command.action or command.parameters.get_str("action") or "status").lower()
        if action not in SERVICE_ACTIONS:
            return CommandResult.fail(
                f"Unknown service action: '{action}'",
                [f"Supported actions: {', '.join(SERVICE_ACTIONS)}"],
            )

        try:
            services = self._manager.list_services()
            service = resolve_service(wanted, services)
            if service is None:
                names = [s.name for s in services]
                similar = difflib.get_close_matches(
                    wanted.lower(), names, n=LIMITS.MAX_SUGGESTIONS, cutoff=0.5
                )
                suggestions = [f"Did you mean '{s}'?" for s in similar] or ["Check the service name"]
                return CommandResult.fail(f"Service '{wanted}' not found", suggestions)

            logger.info("Service %s: %s (currently %s)", action, service.name, service.status)
            return getattr(self, f"_{action}")(service)

        except ServiceError as e:
            logger.warning("Service %s on %s failed: %s", action, wanted, e.message)
            return CommandResult.fail(e.message, list(_ADMIN_SUGGESTIONS))

    def _status(self, service: ServiceInfo) -> CommandResult:
        current = self._manager.status(service.name) or service
        label = f"{current.display_name} ({current.name})" if current.display_name else current.name
        return CommandResult.ok(
            f"Service {label} is {current.status}",
            service=current.name,
            status=current.status,
        )

    def _start(self, service: ServiceInfo) -> CommandResult:
        if service.running:
            return CommandResult.ok(f"Service {service.name} is already running", service=service.name)
        self._manager.start(service.name)
        return self._await_state(service, running=True, verb="Started")

    def _stop(self, service: ServiceInfo) -> CommandResult:
        if not service.running:
            return CommandResult.ok(f"Service {service.name} is already stopped", service=service.name)
        self._manager.stop(service.name)
        return self._await_state(service, running=False, verb="Stopped")

    def _restart(self, service: ServiceInfo) -> CommandResult:
        if service.running:
            self._manager.stop(service.name)
            stopped = self._await_state(service, running=False, verb="Stopped")
            if not stopped.success:
                return stopped
        self._manager.start(service.name)
        return self._await_state(service, running=True, verb="Restarted")

    def _await_state(self, service: ServiceInfo, *, running: bool, verb: str) -> CommandResult:
        deadline = self._clock() + self._timeout
        current: Any = None
        while True:
            current = self._manager.status(service.name)
            if current is not None and current.running == running:
                return CommandResult.ok(
                    f"{verb} service {service.name}",
                    service=service.name,
                    status=current.status,
                )
            if self._clock() >= deadline:
                break
            self._sleep(self._poll)

        state = current.status if current is not None else "unknown"
        return CommandResult.fail(
            f"Service {service.name} did not reach the expected state within "
            f"{self._timeout:g}s (currently {state})",
            list(_ADMIN_SUGGESTIONS),
        )
