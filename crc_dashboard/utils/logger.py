"""Logging setup for the CRC dashboard."""

import logging
import sys
from pathlib import Path
from typing import Optional

LOGGER_NAME = "crc_dashboard"

_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"


def setup_logger(
    name: str = LOGGER_NAME,
    level: int | str = logging.INFO,
    log_file: Optional[Path] = None,
) -> logging.Logger:
    """
    Configure and return the dashboard logger.

    Args:
        name: Logger name.
        level: Logging level (int or level name such as "DEBUG").
        log_file: Also append to this file (see config.log_file()).

    Returns:
        Configured logger. Calling again returns it unchanged.
    """
    log = logging.getLogger(name)
    if log.handlers:
        return log
    log.setLevel(level)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(path, encoding="utf-8"))

    fmt = logging.Formatter(_FORMAT, datefmt=_DATEFMT)
    for h in handlers:
        h.setFormatter(fmt)
        log.addHandler(h)
    return log


def get_logger(name: str = LOGGER_NAME) -> logging.Logger:
    """Return the dashboard logger (or a child of it). Use after setup_logger."""
    return logging.getLogger(name)
