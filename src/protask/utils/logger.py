"""Application-wide logger writing to platformdirs user_log_dir."""

from __future__ import annotations

import logging
import logging.handlers
from pathlib import Path

from platformdirs import user_log_dir

_APP_NAME = "protask"
_LOG_FILE = "protask.log"
_MAX_BYTES = 5 * 1024 * 1024  # 5 MB
_BACKUP_COUNT = 3

_logger: logging.Logger | None = None


def get_logger(name: str | None = None) -> logging.Logger:
    """Return the application logger, initialising it on first call.

    Args:
        name: Optional component name; returns a child of the app logger
    """
    global _logger
    if _logger is None:
        log_dir = Path(user_log_dir(_APP_NAME))
        log_dir.mkdir(parents=True, exist_ok=True)

        handler = logging.handlers.RotatingFileHandler(
            log_dir / _LOG_FILE,
            maxBytes=_MAX_BYTES,
            backupCount=_BACKUP_COUNT,
            encoding="utf-8",
        )
        handler.setFormatter(
            logging.Formatter(
                fmt="%(asctime)s %(levelname)-8s [%(name)s] %(message)s",
                datefmt="%Y-%m-%dT%H:%M:%S",
            )
        )

        logger = logging.getLogger(_APP_NAME)
        logger.setLevel(logging.DEBUG)
        if not logger.handlers:
            logger.addHandler(handler)
        logger.propagate = False
        _logger = logger

    if name:
        return _logger.getChild(name)
    return _logger


def set_level(level: str) -> None:
    """Set the threshold of the application logger (e.g. "INFO")."""
    get_logger().setLevel(level.upper())
