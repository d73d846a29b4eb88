"""System information handler - OS, CPU, memory, disks, user and running apps.

Live figures come from psutil and the platform module. The command target
picks the topic; anything not recognised gets the general overview.
"""

from __future__ import annotations

import getpass
import logging
import platform
import re
from collections import Counter
from dataclasses import dataclass
from typing import ClassVar

import psutil

from deskhand.commands import Command, CommandKind, CommandResult
from deskhand.session import SessionContext

from .base import CommandHandler

logger = logging.getLogger(__name__)

GB = 1024**3
CPU_SAMPLE_SECONDS = 0.2

TOPIC_WORDS: dict[str, str] = {
    "operating system": "os",
    "os": "os",
    "cpu": "cpu",
    "processor": "cpu",
    "memory": "memory",
    "ram": "memory",
    "disk": "disk",
    "disks": "disk",
    "drive": "disk",
    "drives": "disk",
    "storage": "disk",
    "user": "user",
    "username": "user",
    "running": "running",
    "apps": "running",
    "applications": "running",
    "processes": "running",
    "general": "general",
}
_TOPIC_ORDER = sorted(TOPIC_WORDS, key=len, reverse=True)


def resolve_topic(target: str) -> str:
    """Map a free-form target such as "RAM" or "disk space" to a topic."""
    text = target.strip().lower()
    if not text:
        return "general"
    if text in TOPIC_WORDS:
        return TOPIC_WORDS[text]
    for word in _TOPIC_ORDER:
        if re.search(rf"\b{re.escape(word)}\b", text):
            return TOPIC_WORDS[word]
    return "general"


@dataclass(frozen=True)
class DiskUsage:
    """Space on one mounted volume."""

    mount_point: str
    total_bytes: int
    free_bytes: int


@dataclass(frozen=True)
class MemoryUsage:
    total_bytes: int
    available_bytes: int
    percent: float


class SystemStats:
    """Reads live figures from psutil and platform."""

    def os_name(self) -> str:
        return platform.platform()

    def architecture(self) -> str:
        return platform.machine() or "unknown"

    def processor(self) -> str:
        return platform.processor() or self.architecture()

    def hostname(self) -> str:
        return platform.node() or "unknown"

    def cpu_counts(self) -> tuple[int | None, int | None]:
        """Physical cores and logical processors; None when unknown."""
        return psutil.cpu_count(logical=False), psutil.cpu_count(logical=True)

    def cpu_percent(self) -> float:
        return psutil.cpu_percent(interval=CPU_SAMPLE_SECONDS)

    def memory(self) -> MemoryUsage:
        vm = psutil.virtual_memory()
        return MemoryUsage(total_bytes=vm.total, available_bytes=vm.available, percent=vm.percent)

    def disks(self) -> list[DiskUsage]:
        seen: set[str] = set()
        disks: list[DiskUsage] = []
        for part in psutil.disk_partitions(all=False):
            if part.mountpoint in seen:
                continue
            try:
                usage = psutil.disk_usage(part.mountpoint)
            except OSError as e:
                # Empty card readers and optical drives are not ready
                logger.debug("Skipping %s: %s", part.mountpoint, e)
                continue
            seen.add(part.mountpoint)
            disks.append(DiskUsage(part.mountpoint, usage.total, usage.free))
        return disks

    def username(self) -> str:
        try:
            return getpass.getuser()
        except (KeyError, OSError):
            return "unknown"

    def process_names(self, username: str) -> list[str]:
        """Names of processes owned by ``username``."""
        names: list[str] = []
        for proc in psutil.process_iter(["name", "username"]):
            owner = proc.info.get("username") or ""
            name = proc.info.get("name")
            # Windows reports DOMAIN\user
            if name and owner.rsplit("\\", 1)[-1] == username:
                names.append(name)
        return names


def _gb(value: int) -> str:
    return f"{value / GB:.1f} GB"


class SystemInfoHandler(CommandHandler):
    """Reports facts about the machine.

    target: os | cpu | memory | disk | user | running | general
    """

    name: ClassVar[str] = "systeminfo"
    command_type: ClassVar[str] = "systeminfo"
    kinds: ClassVar[frozenset[CommandKind]] = frozenset({CommandKind.SYSTEM_INFO})

    def __init__(self, session: SessionContext | None = None, *, stats: SystemStats | None = None) -> None:
        self._session = session
        self._stats = stats or SystemStats()

    def execute(self, command: Command) -> CommandResult:
        topic = resolve_topic(command.target or command.parameters.get_str("topic") or "")
        try:
            lines = getattr(self, f"_{topic}_lines")()
        except (psutil.Error, OSError) as e:
            logger.warning("Reading %s information failed: %s", topic, e)
            return CommandResult.fail(f"Could not read system information: {e}")

        heading = "Running applications:" if topic == "running" else "System information:"
        return CommandResult.ok("\n".join([heading, *lines]), topic=topic)

    # -------------------------------------------------------------------------
    # Topics
    # -------------------------------------------------------------------------

    def _os_lines(self) -> list[str]:
        p = self._stats
        return [
            f"Operating system: {p.os_name()}",
            f"Architecture: {p.architecture()}",
            f"Machine name: {p.hostname()}",
        ]

    def _cpu_lines(self) -> list[str]:
        physical, logical = self._stats.cpu_counts()
        return [
            f"Processor: {self._stats.processor()}",
            f"Cores: {physical or 'unknown'} physical, {logical or 'unknown'} logical",
            f"CPU usage: {self._stats.cpu_percent():.0f}%",
        ]

    def _memory_lines(self) -> list[str]:
        mem = self._stats.memory()
        return [
            f"Total memory: {_gb(mem.total_bytes)}",
            f"Available memory: {_gb(mem.available_bytes)} ({100 - mem.percent:.0f}% free)",
        ]

    def _disk_lines(self) -> list[str]:
        disks = self._stats.disks()
        if not disks:
            return ["No mounted drives could be read"]
        return [f"Drive {d.mount_point}: {_gb(d.total_bytes)} total, {_gb(d.free_bytes)} free" for d in disks]

    def _user_lines(self) -> list[str]:
        return [f"User name: {self._stats.username()}", f"Machine name: {self._stats.hostname()}"]

    def _running_lines(self) -> list[str]:
        lines: list[str] = []
        tracked = self._session.running() if self._session is not None else []
        if tracked:
            lines.append("Started this session: " + ", ".join(app.name for app in tracked))
        else:
            lines.append("No applications were started this session.")

        user = self._stats.username()
        counts = Counter(self._stats.process_names(user))
        lines.append(f"Processes for {user} ({sum(counts.values())}):")
        lines.extend(f"- {name} ({n})" for name, n in sorted(counts.items(), key=lambda kv: kv[0].lower()))
        return lines

    def _general_lines(self) -> list[str]:
        physical, logical = self._stats.cpu_counts()
        mem = self._stats.memory()
        return [
            f"Operating system: {self._stats.os_name()}",
            f"Machine name: {self._stats.hostname()}",
            f"Processors: {logical or 'unknown'} logical ({physical or 'unknown'} physical)",
            f"Total memory: {_gb(mem.total_bytes)}",
            f"User name: {self._stats.username()}",
        ]
