"""File read/write handler."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import ClassVar

from deskhand.commands import Command, CommandKind, CommandResult
from deskhand.config import LIMITS

from .base import CommandHandler

logger = logging.getLogger(__name__)

# Leading folder names that stand for folders in the home directory
HOME_FOLDERS = {"desktop": "Desktop", "documents": "Documents"}


def resolve_path(raw: str, home: Path | None = None) -> Path:
    """Expand ~ and map a leading "desktop/" or "documents/" into the home directory."""
    path = Path(raw).expanduser()
    if path.is_absolute() or not path.parts:
        return path
    folder = HOME_FOLDERS.get(path.parts[0].lower())
    if folder is None:
        return path
    return (home or Path.home()).joinpath(folder, *path.parts[1:])


class FileHandler(CommandHandler):
    """Reads and writes text files.

    Paths starting with "desktop/" or "documents/" land in those folders
    under the home directory.

    readfile parameters: path, encoding, maxChars
    writefile parameters: path, content (or text), append, encoding
    """

    name: ClassVar[str] = "files"
    command_type: ClassVar[str] = "readfile"
    kinds: ClassVar[frozenset[CommandKind]] = frozenset({CommandKind.READ_FILE, CommandKind.WRITE_FILE})

    def __init__(self, *, max_display_chars: int = LIMITS.MAX_FILE_DISPLAY, home: Path | None = None) -> None:
        self._max_display = max_display_chars
        self._home = home

    def execute(self, command: Command) -> CommandResult:
        raw = command.target.strip() or command.parameters.get_str("path") or ""
        if not raw:
            return CommandResult.fail("No file path specified", ["Give a path, e.g. '~/notes.txt'"])
        path = resolve_path(raw, self._home)

        if command.kind is CommandKind.WRITE_FILE:
            return self._write(path, command)
        return self._read(path, command)

    def _read(self, path: Path, command: Command) -> CommandResult:
        params = command.parameters
        encoding = params.get_str("encoding", "utf-8") or "utf-8"
        limit = params.get_int("maxChars", self._max_display) or self._max_display

        if not path.exists():
            return CommandResult.fail(
                f"File not found: {path}",
                ["Check the path", "Use an absolute path or one starting with ~"],
            )
        if path.is_dir():
            return CommandResult.fail(f"{path} is a directory, not a file")

        try:
            content = path.read_text(encoding=encoding, errors="replace")
        except LookupError:
            return CommandResult.fail(f"Unknown encoding: {encoding}")
        except OSError as e:
            return CommandResult.fail(
                f"Failed to read {path}: {e.strerror or e}",
                ["Make sure you have permission to read the file"],
            )

        truncated = len(content) > limit
        shown = content[:limit] + "\n... (truncated)" if truncated else content
        logger.info("Read %d characters from %s", len(content), path)
        return CommandResult.ok(
            f"Contents of {path}:\n{shown}",
            path=str(path),
            content=content,
            truncated=truncated,
        )

    def _write(self, path: Path, command: Command) -> CommandResult:
        params = command.parameters
        content = params.get("content")
        if content is None:
            content = params.get("text")
        if content is None:
            return CommandResult.fail("No content specified to write", ["Add the text to write"])
        text = str(content)
        encoding = params.get_str("encoding", "utf-8") or "utf-8"
        append = params.get_bool("append")

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with path.open("a" if append else "w", encoding=encoding) as fh:
                fh.write(text)
        except LookupError:
            return CommandResult.fail(f"Unknown encoding: {encoding}")
        except OSError as e:
            return CommandResult.fail(
                f"Failed to write {path}: {e.strerror or e}",
                ["Make sure you have permission to write to this location"],
            )

        verb = "Appended" if append else "Wrote"
        logger.info("%s %d characters to %s", verb, len(text), path)
        return CommandResult.ok(f"{verb} {len(text)} characters to {path}", path=str(path))
