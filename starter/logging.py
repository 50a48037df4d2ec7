"""Logging helpers for the starter CLI and daemon."""

from __future__ import annotations

import logging
from pathlib import Path

_LOGGER_NAME = "starter"
_CONSOLE_FORMAT = "[starter] %(levelname)s %(message)s"
_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(threadName)s]: %(message)s"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a logger nested under the ``starter`` hierarchy."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def configure_logging(
    *, verbose: bool = False, log_file: Path | None = None
) -> logging.Logger:
    """Install console output and an optional file sink on the starter logger."""
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
    logger.addHandler(console)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
        logger.addHandler(file_handler)

    return logger


__all__ = ["configure_logging", "get_logger"]
