"""Project/script handler - find a script or project and run it."""

from __future__ import annotations

import logging
import shlex
import subprocess
import sys
import webbrowser
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Any, ClassVar

from deskhand.commands import Command, CommandKind, CommandResult
from deskhand.settings import settings

from .apps import elevate_argv, open_path_argv
from .base import CommandHandler
from .launch import spawn

logger = logging.getLogger(__name__)

# Extension -> runner prefix. None means "open in the browser".
RUNNERS: dict[str, list[str] | None] = {
    ".py": [sys.executable],
    ".js": ["node"],
    ".mjs": ["node"],
    ".ts": ["npx", "ts-node"],
    ".html": None,
    ".htm": None,
    ".jar": ["java", "-jar"],
    ".java": ["java"],
    ".php": ["php"],
    ".rb": ["ruby"],
    ".ipynb": ["jupyter", "notebook"],
    ".sh": ["bash"],
    ".ps1": ["powershell", "-ExecutionPolicy", "Bypass", "-File"],
    ".bat": ["cmd", "/c"],
    ".csproj": ["dotnet", "run", "--project"],
    ".fsproj": ["dotnet", "run", "--project"],
}

# Words in an instruction that hint at a file type
EXTENSION_HINTS: dict[str, tuple[str, ...]] = {
    "python": (".py", ".ipynb"),
    "notebook": (".ipynb",),
    "jupyter": (".ipynb",),
    "javascript": (".js", ".mjs"),
    "node": (".js", ".mjs"),
    "typescript": (".ts",),
    "html": (".html", ".htm"),
    "webpage": (".html", ".htm"),
    "java": (".jar", ".java"),
    "php": (".php",),
    "ruby": (".rb",),
    "shell": (".sh",),
    "bash": (".sh",),
    "powershell": (".ps1",),
    "batch": (".bat",),
    "csharp": (".csproj",),
    "dotnet": (".csproj", ".fsproj"),
}

# Directory marker file -> command run inside the directory
PROJECT_MARKERS: list[tuple[str, list[str]]] = [
    ("package.json", ["npm", "start"]),
    ("manage.py", [sys.executable, "manage.py", "runserver"]),
    ("main.py", [sys.executable, "main.py"]),
    ("app.py", [sys.executable, "app.py"]),
    ("Makefile", ["make"]),
]

_FILLER = ("my", "the", "a", "an")
_KIND_WORDS = ("script", "project", "file", "program", "app")
_MAX_DEPTH = 3


def _strip_hints(name: str) -> tuple[str, tuple[str, ...]]:
    """Drop filler and file-type words; return the bare name and extensions.

    "the backup python script" -> ("backup", (".py", ".ipynb"))
    "my python script" -> ("", (".py", ".ipynb"))
    """
    words = name.lower().split()
    while words and words[0] in _FILLER:
        words.pop(0)
    described = len(words) > 1 and words[-1] in _KIND_WORDS
    if described:
        words.pop()
    extensions: tuple[str, ...] = ()
    if len(words) > 1 or (described and words):
        for i in (len(words) - 1, 0):
            if words[i] in EXTENSION_HINTS:
                extensions = EXTENSION_HINTS[words.pop(i)]
                break
    return " ".join(words), extensions


class ProjectHandler(CommandHandler):
    """Runs scripts and projects with the matching runner.

    Parameters read from the command:
        arguments: extra arguments (string)
        runAsAdmin: request elevation (bool)
    """

    name: ClassVar[str] = "project"
    command_type: ClassVar[str] = "project"
    kinds: ClassVar[frozenset[CommandKind]] = frozenset({CommandKind.PROJECT})

    def __init__(
        self,
        *,
        search_dirs: Iterable[Path] | None = None,
        popen: Callable[..., Any] = subprocess.Popen,
        open_url: Callable[[str], Any] = webbrowser.open,
        platform: str = sys.platform,
    ) -> None:
        self._search_dirs = list(search_dirs) if search_dirs is not None else list(settings.project_dirs)
        self._popen = popen
        self._open_url = open_url
        self._platform = platform

    def execute(self, command: Command) -> CommandResult:
        name = command.target.strip() or command.parameters.get_str("name") or ""
        if not name:
            return CommandResult.fail(
                "Project name is missing",
                ["run my python script", "run the backup script", "run ~/projects/site/index.html"],
            )

        path = self.find(name)
        if path is None:
            return CommandResult.fail(
                f"Could not find project or script '{name}'",
                [
                    "Give the full path to the file",
                    f"Searched: {', '.join(str(d) for d in self._search_dirs)}",
                ],
            )

        argv, cwd = self._command_for(path)
        if argv is None:
            self._open_url(path.resolve().as_uri())
            return CommandResult.ok(f"Opened {path.name} in the browser", path=str(path))

        params = command.parameters
        argv = argv + shlex.split(params.get_str("arguments", "") or "")
        elevated = params.get_bool("runAsAdmin")
        if elevated:
            argv = elevate_argv(argv, self._platform)

        logger.info("Running %s: %s (cwd=%s)", path, argv, cwd)
        try:
            proc = spawn_in(argv, cwd, self._popen)
        except OSError as e:
            return CommandResult.fail(
                f"Failed to run {path.name}: {e}",
                [f"Make sure '{argv[0]}' is installed and on PATH"],
            )
        return CommandResult.ok(f"Started {path.name} with {argv[0]}", path=str(path), pid=proc.pid)

    def find(self, name: str) -> Path | None:
        """Resolve a path, a file name, or a described project."""
        direct = Path(name).expanduser()
        if direct.exists():
            return direct

        bare, extensions = _strip_hints(name)
        if not bare and not extensions:
            return None
        wanted_names = set() if not bare else {
            bare, bare.replace(" ", "_"), bare.replace(" ", "-"), bare.replace(" ", "")
        }

        for base in self._search_dirs:
            base = base.expanduser()
            if not base.is_dir():
                continue
            found = self._search(base, wanted_names, extensions)
            if found is not None:
                return found
        return None

    def _search(self, base: Path, wanted: set[str], extensions: tuple[str, ...]) -> Path | None:
        pending = [(base, 0)]
        while pending:
            directory, depth = pending.pop(0)
            try:
                entries = sorted(directory.iterdir())
            except OSError:
                continue
            for entry in entries:
                if entry.name.startswith("."):
                    continue
                stem = entry.stem.lower() if entry.is_file() else entry.name.lower()
                if not wanted and entry.is_file() and entry.suffix.lower() in extensions:
                    return entry
                if entry.name.lower() in wanted or stem in wanted:
                    if entry.is_file() and (not extensions or entry.suffix.lower() in extensions):
                        return entry
                    if entry.is_dir() and not extensions:
                        return entry
                if entry.is_dir() and depth < _MAX_DEPTH:
                    pending.append((entry, depth + 1))
        return None

    def _command_for(self, path: Path) -> tuple[list[str] | None, Path]:
        """Runner argv and working directory. None means the browser."""
        if path.is_dir():
            for marker, argv in PROJECT_MARKERS:
                if (path / marker).exists():
                    return list(argv), path
            for child in sorted(path.iterdir()):
                if child.suffix in (".csproj", ".fsproj"):
                    return [*RUNNERS[child.suffix], str(child)], path
            return open_path_argv(str(path), self._platform), path

        suffix = path.suffix.lower()
        if suffix not in RUNNERS:
            return open_path_argv(str(path), self._platform), path.parent
        runner = RUNNERS[suffix]
        if runner is None:
            return None, path.parent
        return [*runner, str(path)], path.parent


def spawn_in(argv: list[str], cwd: Path, popen: Callable[..., Any] = subprocess.Popen) -> Any:
    """Start a detached process in a working directory."""
    return spawn(argv, lambda args, **kw: popen(args, cwd=str(cwd), **kw))
