"""Application lookup for launching and closing.

Search layers, in order:
1. Known-application table (per platform)
2. Executables on PATH
3. Common install directories
4. Desktop entries (Linux), Start Menu shortcuts (Windows), app bundles (macOS)
5. Fuzzy name match, used only for suggestions
"""

from __future__ import annotations

import configparser
import difflib
import logging
import os
import re
import shlex
import shutil
import sys
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from pathlib import Path

from deskhand.config import LIMITS

logger = logging.getLogger(__name__)


KNOWN_APPS_WINDOWS: dict[str, list[str]] = {
    "notepad": ["notepad.exe"],
    "calculator": ["calc.exe"],
    "calc": ["calc.exe"],
    "paint": ["mspaint.exe"],
    "wordpad": ["write.exe"],
    "cmd": ["cmd.exe"],
    "command prompt": ["cmd.exe"],
    "powershell": ["powershell.exe"],
    "terminal": ["wt.exe", "cmd.exe"],
    "explorer": ["explorer.exe"],
    "file explorer": ["explorer.exe"],
    "task manager": ["taskmgr.exe"],
    "control panel": ["control.exe"],
    "chrome": ["chrome.exe"],
    "edge": ["msedge.exe"],
    "firefox": ["firefox.exe"],
    "word": ["winword.exe"],
    "excel": ["excel.exe"],
    "powerpoint": ["powerpnt.exe"],
    "outlook": ["outlook.exe"],
    "vscode": ["code.cmd", "code.exe"],
    "code": ["code.cmd", "code.exe"],
}

KNOWN_APPS_POSIX: dict[str, list[str]] = {
    "notepad": ["gnome-text-editor", "gedit", "kate", "mousepad", "xed", "leafpad"],
    "text editor": ["gnome-text-editor", "gedit", "kate", "mousepad", "xed"],
    "calculator": ["gnome-calculator", "kcalc", "galculator", "qalculate-gtk"],
    "calc": ["gnome-calculator", "kcalc", "galculator"],
    "terminal": ["gnome-terminal", "konsole", "xfce4-terminal", "x-terminal-emulator", "xterm"],
    "files": ["nautilus", "dolphin", "thunar", "nemo"],
    "explorer": ["nautilus", "dolphin", "thunar", "nemo"],
    "file explorer": ["nautilus", "dolphin", "thunar", "nemo"],
    "browser": ["xdg-open", "firefox", "google-chrome", "chromium"],
    "chrome": ["google-chrome", "google-chrome-stable", "chromium", "chromium-browser"],
    "firefox": ["firefox"],
    "paint": ["kolourpaint", "pinta", "gimp"],
    "task manager": ["gnome-system-monitor", "plasma-systemmonitor", "ksysguard"],
    "system monitor": ["gnome-system-monitor", "plasma-systemmonitor", "ksysguard"],
    "settings": ["gnome-control-center", "systemsettings", "xfce4-settings-manager"],
    "vscode": ["code", "codium"],
    "code": ["code", "codium"],
}

KNOWN_APPS_MACOS: dict[str, list[str]] = {
    "notepad": ["TextEdit"],
    "text editor": ["TextEdit"],
    "calculator": ["Calculator"],
    "calc": ["Calculator"],
    "terminal": ["Terminal"],
    "explorer": ["Finder"],
    "files": ["Finder"],
    "chrome": ["Google Chrome"],
    "safari": ["Safari"],
    "firefox": ["Firefox"],
    "settings": ["System Settings", "System Preferences"],
    "task manager": ["Activity Monitor"],
    "vscode": ["Visual Studio Code"],
    "code": ["Visual Studio Code"],
}

# Process names that differ from the launcher executable
PROCESS_ALIASES: dict[str, list[str]] = {
    "calculator": ["calculatorapp", "calculator", "calc"],
    "calc": ["calculatorapp", "calculator", "calc"],
    "edge": ["msedge"],
    "word": ["winword"],
    "powerpoint": ["powerpnt"],
    "vscode": ["code"],
    "chrome": ["chrome", "google-chrome", "chromium"],
}

_FIELD_CODE = re.compile(r"\s*%[a-zA-Z]")


@dataclass(frozen=True)
class AppLocation:
    """Where an application was found and how to start it."""

    name: str
    argv: tuple[str, ...]
    source: str
    path: str | None = None


def _windows_dirs() -> list[Path]:
    dirs = []
    for var in ("PROGRAMFILES", "PROGRAMFILES(X86)", "LOCALAPPDATA"):
        value = os.environ.get(var)
        if value:
            dirs.append(Path(value))
    local = os.environ.get("LOCALAPPDATA")
    if local:
        dirs.append(Path(local) / "Programs")
    return dirs


def _posix_dirs() -> list[Path]:
    home = Path.home()
    return [
        Path("/usr/local/bin"),
        Path("/opt"),
        Path("/snap/bin"),
        Path("/var/lib/flatpak/exports/bin"),
        home / ".local" / "bin",
        home / ".local" / "share" / "flatpak" / "exports" / "bin",
        home / "Applications",
    ]


def _shortcut_dirs(platform: str) -> list[Path]:
    if platform == "win32":
        dirs = []
        for var in ("PROGRAMDATA", "APPDATA"):
            value = os.environ.get(var)
            if value:
                dirs.append(Path(value) / "Microsoft" / "Windows" / "Start Menu" / "Programs")
        return dirs
    if platform == "darwin":
        return [Path("/Applications"), Path("/System/Applications"), Path.home() / "Applications"]
    data_home = Path(os.environ.get("XDG_DATA_HOME", str(Path.home() / ".local" / "share")))
    return [
        data_home / "applications",
        Path("/usr/share/applications"),
        Path("/usr/local/share/applications"),
        Path("/var/lib/flatpak/exports/share/applications"),
    ]


def open_path_argv(path: str, platform: str = sys.platform) -> list[str]:
    """Command that opens a file or URL with its default application."""
    if platform == "win32":
        return ["cmd", "/c", "start", "", path]
    if platform == "darwin":
        return ["open", path]
    return ["xdg-open", path]


def elevate_argv(argv: list[str], platform: str = sys.platform) -> list[str]:
    """Wrap a command so it asks for administrator rights."""
    if platform == "win32":
        exe = argv[0].replace("'", "''")
        rest = " ".join(argv[1:]).replace("'", "''")
        script = f"Start-Process -FilePath '{exe}' -Verb RunAs"
        if rest:
            script += f" -ArgumentList '{rest}'"
        return ["powershell", "-NoProfile", "-Command", script]
    if platform == "darwin":
        quoted = shlex.join(argv).replace('"', '\\"')
        return ["osascript", "-e", f'do shell script "{quoted}" with administrator privileges']
    return ["pkexec", *argv]


class ApplicationLocator:
    """Resolves an application name to something that can be started.

    Args:
        platform: sys.platform value to search for.
        which: PATH lookup function.
        search_dirs: Install directories to scan; defaults per platform.
        shortcut_dirs: Start Menu / desktop entry / bundle directories.
    """

    def __init__(
        self,
        *,
        platform: str = sys.platform,
        which: Callable[[str], str | None] = shutil.which,
        search_dirs: Iterable[Path] | None = None,
        shortcut_dirs: Iterable[Path] | None = None,
    ) -> None:
        self._platform = platform
        self._which = which
        if search_dirs is None:
            search_dirs = _windows_dirs() if platform == "win32" else _posix_dirs()
        self._search_dirs = list(search_dirs)
        self._shortcut_dirs = list(shortcut_dirs) if shortcut_dirs is not None else _shortcut_dirs(platform)
        self._shortcuts: dict[str, AppLocation] | None = None

    @property
    def known_apps(self) -> dict[str, list[str]]:
        if self._platform == "win32":
            return KNOWN_APPS_WINDOWS
        if self._platform == "darwin":
            return KNOWN_APPS_MACOS
        return KNOWN_APPS_POSIX

    def locate(self, name: str) -> AppLocation | None:
        """Find an application, or None when every layer misses."""
        key = name.strip().lower()
        if not key:
            return None
        for finder in (self._from_known, self._from_path, self._from_directories, self._from_shortcuts):
            location = finder(name.strip(), key)
            if location is not None:
                logger.debug("Found %r via %s: %s", name, location.source, location.argv)
                return location
        logger.info("Application %r not found", name)
        return None

    def similar(self, name: str, limit: int = LIMITS.MAX_SUGGESTIONS) -> list[str]:
        """Known or installed names that look like ``name``."""
        key = name.strip().lower()
        if not key:
            return []
        candidates = sorted(set(self.known_apps) | set(self._load_shortcuts()))
        matches = difflib.get_close_matches(key, candidates, n=limit, cutoff=LIMITS.FUZZY_CUTOFF)
        if len(key) >= 3:
            for candidate in candidates:
                if len(matches) >= limit:
                    break
                if candidate not in matches and (key in candidate or candidate in key):
                    matches.append(candidate)
        return [m for m in matches if m != key][:limit]

    def executable_names(self, name: str) -> set[str]:
        """Lower-cased process names an application may run under."""
        key = name.strip().lower()
        names = {key, key.replace(" ", "")}
        for candidate in self.known_apps.get(key, []):
            names.add(Path(candidate).stem.lower())
            names.add(candidate.lower())
        names.update(PROCESS_ALIASES.get(key, []))
        names.discard("")
        return names

    # -------------------------------------------------------------------------
    # Search layers
    # -------------------------------------------------------------------------

    def _from_known(self, name: str, key: str) -> AppLocation | None:
        for candidate in self.known_apps.get(key, []):
            if self._platform == "darwin":
                bundle = self._find_bundle(candidate)
                if bundle is not None:
                    return AppLocation(name, ("open", "-a", str(bundle)), "known", str(bundle))
                continue
            found = self._which(candidate)
            if found:
                return AppLocation(name, (found,), "known", found)
        return None

    def _from_path(self, name: str, key: str) -> AppLocation | None:
        for candidate in (name, key, key.replace(" ", "-"), key.replace(" ", "")):
            found = self._which(candidate)
            if found:
                return AppLocation(name, (found,), "path", found)
        return None

    def _from_directories(self, name: str, key: str) -> AppLocation | None:
        wanted = {key, key.replace(" ", ""), key.replace(" ", "-")}
        if self._platform == "win32":
            wanted |= {f"{w}.exe" for w in wanted}
        for base in self._search_dirs:
            if not base.is_dir():
                continue
            try:
                entries = list(base.iterdir())
            except OSError:
                continue
            for entry in entries:
                if entry.is_file() and entry.name.lower() in wanted:
                    return AppLocation(name, (str(entry),), "directory", str(entry))
            # One level down: <base>/<vendor or app>/<exe>
            for entry in entries:
                if not entry.is_dir() or key.replace(" ", "") not in entry.name.lower().replace(" ", ""):
                    continue
                try:
                    for child in entry.iterdir():
                        if child.is_file() and child.name.lower() in wanted:
                            return AppLocation(name, (str(child),), "directory", str(child))
                except OSError:
                    continue
        return None

    def _from_shortcuts(self, name: str, key: str) -> AppLocation | None:
        shortcuts = self._load_shortcuts()
        if key in shortcuts:
            return shortcuts[key]
        if len(key) >= 4:
            for label, location in shortcuts.items():
                if label.startswith(key) or key in label.split():
                    return location
        return None

    # -------------------------------------------------------------------------
    # Shortcut index
    # -------------------------------------------------------------------------

    def _load_shortcuts(self) -> dict[str, AppLocation]:
        if self._shortcuts is not None:
            return self._shortcuts
        index: dict[str, AppLocation] = {}
        for base in self._shortcut_dirs:
            if not base.is_dir():
                continue
            if self._platform == "win32":
                self._index_start_menu(base, index)
            elif self._platform == "darwin":
                self._index_bundles(base, index)
            else:
                self._index_desktop_entries(base, index)
        self._shortcuts = index
        return index

    def _index_start_menu(self, base: Path, index: dict[str, AppLocation]) -> None:
        for lnk in base.rglob("*.lnk"):
            label = lnk.stem.lower()
            if label.startswith("uninstall"):
                continue
            index.setdefault(label, AppLocation(lnk.stem, tuple(open_path_argv(str(lnk), "win32")), "shortcut", str(lnk)))

    def _index_bundles(self, base: Path, index: dict[str, AppLocation]) -> None:
        for bundle in base.glob("*.app"):
            index.setdefault(bundle.stem.lower(), AppLocation(bundle.stem, ("open", "-a", str(bundle)), "bundle", str(bundle)))

    def _index_desktop_entries(self, base: Path, index: dict[str, AppLocation]) -> None:
        for entry in base.glob("*.desktop"):
            parser = configparser.ConfigParser(interpolation=None, strict=False)
            try:
                parser.read(entry, encoding="utf-8")
                section = parser["Desktop Entry"]
            except (configparser.Error, KeyError, UnicodeDecodeError, OSError):
                continue
            if section.get("NoDisplay", "false").lower() == "true":
                continue
            exec_line = _FIELD_CODE.sub("", section.get("Exec", "")).strip()
            if not exec_line:
                continue
            try:
                argv = tuple(shlex.split(exec_line))
            except ValueError:
                continue
            label = section.get("Name", entry.stem)
            location = AppLocation(label, argv, "desktop", str(entry))
            index.setdefault(label.lower(), location)
            index.setdefault(entry.stem.lower(), location)

    def _find_bundle(self, bundle_name: str) -> Path | None:
        for base in self._shortcut_dirs:
            candidate = base / f"{bundle_name}.app"
            if candidate.exists():
                return candidate
        return None
