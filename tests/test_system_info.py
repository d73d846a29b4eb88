"""Tests for the system information handler."""

from __future__ import annotations

from types import SimpleNamespace

import psutil
import pytest

from deskhand.app import build_dispatcher
from deskhand.commands import Command
from deskhand.handlers import system_info
from deskhand.handlers.system_info import (
    GB,
    DiskUsage,
    MemoryUsage,
    SystemInfoHandler,
    SystemStats,
    resolve_topic,
)
from deskhand.session import SessionContext

from conftest import FakeProvider


class FakeStats(SystemStats):
    """Fixed figures for a 16 GB, 8-thread machine."""

    def __init__(self, processes: list[str] | None = None, error: Exception | None = None) -> None:
        self.processes = processes or []
        self.error = error

    def os_name(self) -> str:
        return "Linux-6.8.0-x86_64-with-glibc2.39"

    def architecture(self) -> str:
        return "x86_64"

    def processor(self) -> str:
        return "x86_64"

    def hostname(self) -> str:
        return "workstation"

    def cpu_counts(self) -> tuple[int | None, int | None]:
        return 4, 8

    def cpu_percent(self) -> float:
        return 12.4

    def memory(self) -> MemoryUsage:
        if self.error is not None:
            raise self.error
        return MemoryUsage(total_bytes=16 * GB, available_bytes=4 * GB, percent=75.0)

    def disks(self) -> list[DiskUsage]:
        return [DiskUsage("/", 500 * GB, 120 * GB)]

    def username(self) -> str:
        return "alex"

    def process_names(self, username: str) -> list[str]:
        return list(self.processes)


def run(target: str, **kwargs) -> str:
    result = SystemInfoHandler(stats=FakeStats(**kwargs)).execute(Command("systeminfo", target=target))
    assert result.success
    return result.message


# =============================================================================
# Topic resolution
# =============================================================================


class TestResolveTopic:
    """Tests for mapping targets to topics."""

    @pytest.mark.parametrize(
        ("target", "topic"),
        [
            ("memory", "memory"),
            ("RAM", "memory"),
            ("free disk space", "disk"),
            ("operating system", "os"),
            ("which processor", "cpu"),
            ("running applications", "running"),
            ("user", "user"),
            ("", "general"),
            ("everything", "general"),
        ],
    )
    def test_topics(self, target: str, topic: str) -> None:
        assert resolve_topic(target) == topic

    def test_whole_words_only(self) -> None:
        """Should not find 'os' inside other words."""
        assert resolve_topic("cosmos") == "general"


# =============================================================================
# Handler
# =============================================================================


class TestSystemInfoHandler:
    """Tests for the reported figures."""

    def test_memory(self) -> None:
        assert run("memory").splitlines() == [
            "System information:",
            "Total memory: 16.0 GB",
            "Available memory: 4.0 GB (25% free)",
        ]

    def test_cpu(self) -> None:
        message = run("cpu")
        assert "Cores: 4 physical, 8 logical" in message
        assert "CPU usage: 12%" in message

    def test_disk(self) -> None:
        assert "Drive /: 500.0 GB total, 120.0 GB free" in run("disk")

    def test_os_and_user(self) -> None:
        assert "Operating system: Linux-6.8.0-x86_64-with-glibc2.39" in run("os")
        assert "User name: alex" in run("user")

    def test_general_is_default(self) -> None:
        lines = run("general").splitlines()
        assert lines[0] == "System information:"
        assert "Machine name: workstation" in lines
        assert "Processors: 8 logical (4 physical)" in lines
        assert "Total memory: 16.0 GB" in lines

    def test_topic_from_parameters(self) -> None:
        handler = SystemInfoHandler(stats=FakeStats())
        result = handler.execute(Command("systeminfo", parameters={"topic": "disk"}))
        assert result.additional_data["topic"] == "disk"

    def test_running_lists_session_apps_and_processes(self) -> None:
        session = SessionContext(session_id="info")
        session.track("notepad", 101)
        handler = SystemInfoHandler(session, stats=FakeStats(processes=["bash", "Code", "bash"]))

        lines = handler.execute(Command("systeminfo", target="running")).message.splitlines()

        assert lines == [
            "Running applications:",
            "Started this session: notepad",
            "Processes for alex (3):",
            "- bash (2)",
            "- Code (1)",
        ]

    def test_running_without_session_apps(self) -> None:
        assert "No applications were started this session." in run("apps")

    def test_read_failure(self) -> None:
        handler = SystemInfoHandler(stats=FakeStats(error=psutil.AccessDenied()))
        result = handler.execute(Command("systeminfo", target="memory"))
        assert result.success is False
        assert result.message.startswith("Could not read system information")


class TestSystemStats:
    """Tests for the psutil-backed reader."""

    def test_unready_drive_skipped(self, monkeypatch: pytest.MonkeyPatch) -> None:
        parts = [SimpleNamespace(mountpoint="C:\\"), SimpleNamespace(mountpoint="D:\\"), SimpleNamespace(mountpoint="C:\\")]
        monkeypatch.setattr(system_info.psutil, "disk_partitions", lambda all=False: parts)

        def disk_usage(path: str):
            if path == "D:\\":
                raise OSError("The device is not ready")
            return SimpleNamespace(total=100 * GB, free=40 * GB)

        monkeypatch.setattr(system_info.psutil, "disk_usage", disk_usage)

        assert SystemStats().disks() == [DiskUsage("C:\\", 100 * GB, 40 * GB)]

    def test_processes_filtered_by_owner(self, monkeypatch: pytest.MonkeyPatch) -> None:
        procs = [
            SimpleNamespace(info={"name": "explorer.exe", "username": "DESKTOP-1\\alex"}),
            SimpleNamespace(info={"name": "svchost.exe", "username": "NT AUTHORITY\\SYSTEM"}),
            SimpleNamespace(info={"name": "bash", "username": "alex"}),
            SimpleNamespace(info={"name": "hidden", "username": None}),
        ]
        monkeypatch.setattr(system_info.psutil, "process_iter", lambda attrs=None: iter(procs))

        assert SystemStats().process_names("alex") == ["explorer.exe", "bash"]


# =============================================================================
# Through the dispatcher
# =============================================================================


class TestSystemInfoPipeline:
    """System questions reach the handler through the full pipeline."""

    @pytest.fixture(autouse=True)
    def fake_stats(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(system_info, "SystemStats", FakeStats)

    def test_model_reply(self) -> None:
        llm = FakeProvider(['{"commandType": "systeminfo", "target": "memory"}'])
        result = build_dispatcher(llm=llm).process("how much memory do I have left")

        assert result.success is True
        assert "Available memory: 4.0 GB (25% free)" in result.message

    def test_offline_system_info_request(self) -> None:
        """Should answer 'system info' without a model."""
        result = build_dispatcher(offline=True).process("show me the system information")

        assert result.success is True
        assert result.message.startswith("System information:")
        assert "Total memory: 16.0 GB" in result.message
