"""Session log for Chors.

The terminal belongs to the TUI, so every record goes to a rotating file in
the platformdirs log directory and nothing reaches stderr. Modules log
through a named child (``get_logger("store")`` becomes ``chors.store``) so a
line in the file shows which part of the program wrote it.
"""

from __future__ import annotations

import logging
import logging.handlers
from pathlib import Path

from platformdirs import user_log_dir

_ROOT_NAME = "chors"
_LOG_FILE = "chors.log"
_MAX_BYTES = 1024 * 1024
_BACKUP_COUNT = 2
_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"

_logger: logging.Logger | None = None


def log_path() -> Path:
    return Path(user_log_dir(_ROOT_NAME)) / _LOG_FILE


def _file_handler(path: Path) -> logging.Handler:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.handlers.RotatingFileHandler(
        path, maxBytes=_MAX_BYTES, backupCount=_BACKUP_COUNT, encoding="utf-8"
    )
    handler.setFormatter(logging.Formatter(_FORMAT, datefmt="%H:%M:%S"))
    return handler


def get_logger(component: str | None = None) -> logging.Logger:
    """Return the Chors logger, or its child for ``component``.

    The first call attaches the file handler.
    """
    global _logger
    if _logger is None:
        root = logging.getLogger(_ROOT_NAME)
        if not any(isinstance(h, logging.handlers.RotatingFileHandler) for h in root.handlers):
            root.addHandler(_file_handler(log_path()))
        root.setLevel(logging.INFO)
        root.propagate = False
        _logger = root
    return _logger.getChild(component) if component else _logger


def set_level(level: int | str) -> None:
    """Apply ``logging.level`` from the config (a name such as ``"DEBUG"``)."""
    get_logger().setLevel(level.upper() if isinstance(level, str) else level)
