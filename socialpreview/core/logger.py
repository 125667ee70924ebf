from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from .settings import _work_dir


ROOT_NAME = "socialpreview"
LOG_FILE = "app.log"

_FILE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
_CONSOLE_FORMAT = "%(levelname)-7s %(message)s"

_LOGGER: logging.Logger | None = None


def _configure(log_dir: Path | None) -> logging.Logger:
    base = Path(log_dir) if log_dir is not None else _work_dir() / "logs"
    base.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger(ROOT_NAME)
    root.setLevel(logging.INFO)
    root.propagate = False
    # Tests and repeated CLI invocations re-run this in one process.
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    # The file keeps a timestamped record of every run; the console stays short
    # because it interleaves with the prompts shown during init-auth.
    file_handler = RotatingFileHandler(
        base / LOG_FILE, maxBytes=2 * 1024 * 1024, backupCount=3, encoding="utf-8"
    )
    file_handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    root.addHandler(file_handler)

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
    root.addHandler(console)
    return root


def get_logger(name: str | None = None, *, log_dir: Path | None = None) -> logging.Logger:
    """Return the application logger, or a ``socialpreview.<name>`` child.

    Handlers live on the root ``socialpreview`` logger and are installed on
    first use; children only tag records with the stage that emitted them
    (``browser``, ``capture``, ``upload``, ``session``).
    """
    global _LOGGER
    if _LOGGER is None:
        _LOGGER = _configure(log_dir)
    if not name:
        return _LOGGER
    return _LOGGER.getChild(name)


def set_level(level: str) -> int:
    """Apply a level name such as ``DEBUG`` to the application logger."""

    value = logging.getLevelName(level.strip().upper())
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level: {level}")
    get_logger().setLevel(value)
    return value


def log_file_path() -> Path | None:
    for handler in get_logger().handlers:
        if isinstance(handler, RotatingFileHandler):
            return Path(handler.baseFilename)
    return None


__all__ = ["get_logger", "set_level", "log_file_path", "ROOT_NAME"]
