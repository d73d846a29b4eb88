"""Tests for service control."""

from __future__ import annotations

import pytest

from deskhand.commands import Command
from deskhand.errors import ServiceError
from deskhand.handlers.service import ServiceControlHandler, ServiceInfo, resolve_service

SERVICES = [
    ServiceInfo("cups", "CUPS Scheduler", "active"),
    ServiceInfo("sshd", "OpenSSH server daemon", "inactive"),
    ServiceInfo("bluetooth", "Bluetooth service", "active"),
]


class FakeServiceManager:
    """In-memory services. ``stuck`` services ignore start and stop."""

    def __init__(self, services: list[ServiceInfo], *, stuck: tuple[str, ...] = (), error: str | None = None) -> None:
        self.services = {s.name: s for s in services}
        self.stuck = stuck
        self.error = error
        self.calls: list[tuple[str, str]] = []

    def list_services(self) -> list[ServiceInfo]:
        return list(self.services.values())

    def status(self, name: str) -> ServiceInfo | None:
        return self.services.get(name)

    def start(self, name: str) -> None:
        self._set(name, "start", "active")

    def stop(self, name: str) -> None:
        self._set(name, "stop", "inactive")

    def _set(self, name: str, verb: str, state: str) -> None:
        self.calls.append((verb, name))
        if self.error:
            raise ServiceError(self.error, service=name)
        if name not in self.stuck:
            old = self.services[name]
            self.services[name] = ServiceInfo(old.name, old.display_name, state)


class Ticker:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.now += seconds


def make_handler(manager: FakeServiceManager | None, ticker: Ticker | None = None) -> ServiceControlHandler:
    ticker = ticker or Ticker()
    handler = ServiceControlHandler(
        manager=manager, transition_timeout=5, poll_interval=1, sleep=ticker.sleep, clock=ticker
    )
    return handler


def svc(target: str, action: str | None = None) -> Command:
    params = {"action": action} if action else {}
    return Command("servicecontrol", target=target, parameters=params)


class TestResolveService:
    """Tests for service name matching."""

    def test_exact_name(self) -> None:
        assert resolve_service("CUPS", SERVICES).name == "cups"

    def test_display_name(self) -> None:
        assert resolve_service("openssh server daemon", SERVICES).name == "sshd"

    def test_substring(self) -> None:
        assert resolve_service("blue", SERVICES).name == "bluetooth"

    def test_fuzzy(self) -> None:
        assert resolve_service("bluetoth", SERVICES).name == "bluetooth"

    def test_no_match(self) -> None:
        assert resolve_service("postgres", SERVICES) is None
        assert resolve_service("", SERVICES) is None


class TestServiceControlHandler:
    """Tests for ServiceControlHandler."""

    def test_status_is_default(self) -> None:
        result = make_handler(FakeServiceManager(SERVICES)).execute(svc("cups"))
        assert result.success
        assert result.message == "Service CUPS Scheduler (cups) is active"
        assert result.additional_data["status"] == "active"

    def test_start(self) -> None:
        manager = FakeServiceManager(SERVICES)
        result = make_handler(manager).execute(svc("sshd", "start"))
        assert result.success
        assert result.message == "Started service sshd"
        assert manager.calls == [("start", "sshd")]

    def test_action_from_command(self) -> None:
        manager = FakeServiceManager(SERVICES)
        result = make_handler(manager).execute(Command("servicecontrol", target="cups", action="stop"))
        assert result.message == "Stopped service cups"

    def test_already_running(self) -> None:
        manager = FakeServiceManager(SERVICES)
        result = make_handler(manager).execute(svc("cups", "start"))
        assert result.message == "Service cups is already running"
        assert manager.calls == []

    def test_already_stopped(self) -> None:
        result = make_handler(FakeServiceManager(SERVICES)).execute(svc("sshd", "stop"))
        assert result.message == "Service sshd is already stopped"

    def test_restart_running_service(self) -> None:
        manager = FakeServiceManager(SERVICES)
        result = make_handler(manager).execute(svc("cups", "restart"))
        assert result.success
        assert result.message == "Restarted service cups"
        assert manager.calls == [("stop", "cups"), ("start", "cups")]

    def test_restart_stopped_service_just_starts(self) -> None:
        manager = FakeServiceManager(SERVICES)
        make_handler(manager).execute(svc("sshd", "restart"))
        assert manager.calls == [("start", "sshd")]

    def test_transition_timeout(self) -> None:
        ticker = Ticker()
        manager = FakeServiceManager(SERVICES, stuck=("sshd",))

        result = make_handler(manager, ticker).execute(svc("sshd", "start"))

        assert result.success is False
        assert result.message == "Service sshd did not reach the expected state within 5s (currently inactive)"
        assert ticker.now == 5

    def test_not_found(self) -> None:
        result = make_handler(FakeServiceManager(SERVICES)).execute(svc("postgresql"))
        assert result.success is False
        assert result.message == "Service 'postgresql' not found"

    def test_unknown_action(self) -> None:
        result = make_handler(FakeServiceManager(SERVICES)).execute(svc("cups", "reload"))
        assert result.message == "Unknown service action: 'reload'"

    def test_permission_error(self) -> None:
        manager = FakeServiceManager(SERVICES, error="systemctl start sshd failed: Access denied")
        result = make_handler(manager).execute(svc("sshd", "start"))
        assert result.success is False
        assert result.message == "systemctl start sshd failed: Access denied"
        assert "Make sure you have administrator privileges" in result.suggestions

    @pytest.mark.parametrize("target", ["", "   "])
    def test_missing_name(self, target: str) -> None:
        result = make_handler(FakeServiceManager(SERVICES)).execute(svc(target))
        assert result.message == "No service specified"

    def test_unsupported_platform(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("deskhand.handlers.service.default_service_manager", lambda: None)
        result = ServiceControlHandler().execute(svc("cups"))
        assert result.message == "Service control is not supported on this system"
