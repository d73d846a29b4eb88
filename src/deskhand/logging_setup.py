"""Process-wide logging configuration."""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler

from .settings import settings

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_configured = False


def configure_logging(level: str | None = None, *, stderr_level: int = logging.WARNING) -> None:
    """Install the rotating file handler and a stderr handler.

    Safe to call more than once; only the first call installs handlers.

    Args:
        level: Root log level for the file log. Defaults to settings.log_level.
        stderr_level: Minimum level echoed to stderr.
    """
    global _configured
    if _configured:
        return

    root = logging.getLogger()
    root.setLevel((level or settings.log_level).upper())

    formatter = logging.Formatter(_FORMAT)

    try:
        settings.log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            settings.log_path,
            maxBytes=settings.log_max_bytes,
            backupCount=settings.log_backup_count,
            encoding="utf-8",
        )
    except OSError as e:
        # Read-only home directories still get stderr logging
        print(f"deskhand: cannot open log file {settings.log_path}: {e}", file=sys.stderr)
    else:
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setLevel(stderr_level)
    stream_handler.setFormatter(formatter)
    root.addHandler(stream_handler)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)

    _configured = True
