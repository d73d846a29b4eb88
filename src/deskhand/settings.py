from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    val = raw.strip().lower()
    if val in {"1", "true", "yes", "y", "on"}:
        return True
    if val in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_paths(name: str, default: list[Path]) -> list[Path]:
    raw = os.environ.get(name)
    if not raw:
        return default
    return [Path(p).expanduser() for p in raw.split(os.pathsep) if p.strip()]


def _default_project_dirs() -> list[Path]:
    home = Path.home()
    return [
        Path.cwd(),
        home / "Desktop",
        home / "Documents",
        home / "projects",
        home / "source" / "repos",
    ]


@dataclass(frozen=True)
class Settings:
    """Static settings for the desktop assistant.

    Everything is read from DESKHAND_* environment variables at import time.
    """

    data_dir: Path = Path(os.environ.get("DESKHAND_DATA_DIR", str(Path.home() / ".deskhand")))
    log_path: Path = data_dir / "deskhand.log"
    log_level: str = os.environ.get("DESKHAND_LOG_LEVEL", "INFO")
    log_max_bytes: int = int(os.environ.get("DESKHAND_LOG_MAX_BYTES", str(1_000_000)))
    log_backup_count: int = int(os.environ.get("DESKHAND_LOG_BACKUP_COUNT", "3"))

    # Language model backend: "ollama", "gemini" or "none" (local parser only)
    provider: str = os.environ.get("DESKHAND_PROVIDER", "ollama").strip().lower()
    ollama_url: str = os.environ.get("DESKHAND_OLLAMA_URL", "http://127.0.0.1:11434")
    ollama_model: str | None = os.environ.get("DESKHAND_OLLAMA_MODEL")
    gemini_url: str = os.environ.get(
        "DESKHAND_GEMINI_URL", "https://generativelanguage.googleapis.com/v1beta"
    )
    gemini_model: str = os.environ.get("DESKHAND_GEMINI_MODEL", "gemini-1.5-flash")

    # Web search (DuckDuckGo instant answer API)
    search_url: str = os.environ.get("DESKHAND_SEARCH_URL", "https://api.duckduckgo.com/")
    search_synthesize: bool = _env_bool("DESKHAND_SEARCH_SYNTHESIZE", True)

    screenshot_dir: Path = Path(
        os.environ.get("DESKHAND_SCREENSHOT_DIR", str(data_dir / "screenshots"))
    )
    project_dirs: list[Path] = field(
        default_factory=lambda: _env_paths("DESKHAND_PROJECT_DIRS", _default_project_dirs())
    )


settings = Settings()
