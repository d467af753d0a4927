from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path


LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"

# Library loggers stay silent until the host (or the CLI) configures logging
logging.getLogger("chore").addHandler(logging.NullHandler())

_configured = False


def _level_from_env(default: str = "INFO") -> int:
    name = os.getenv("CHORE_LOG_LEVEL", default).upper()
    return getattr(logging, name, logging.INFO)


def configure(level: int | str | None = None, log_file: Path | None = None) -> None:
    """Set up root logging for the command line tool.

    Level comes from ``level`` or CHORE_LOG_LEVEL; a rotating file handler is
    attached to the ``chore`` logger when ``log_file`` or CHORE_LOG_FILE is set.
    """
    global _configured
    if not _configured:
        logging.basicConfig(level=_level_from_env(), format=LOG_FORMAT)
        _configured = True
    if level is not None:
        set_level(level)
    if log_file is None:
        env_file = os.getenv("CHORE_LOG_FILE")
        log_file = Path(env_file) if env_file else None
    logger = logging.getLogger("chore")
    # Do not stack file handlers on repeated calls
    if log_file and not any(
        isinstance(h, RotatingFileHandler) for h in logger.handlers
    ):
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(log_file, maxBytes=1_000_000, backupCount=3)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)


def set_level(level: int | str) -> None:
    """Override the level of every chore logger."""
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)
    logging.getLogger("chore").setLevel(level)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
