"""Logging helpers."""

from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler

LOG_FILENAME = "turnmark.log"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def _has_file_handler(logger: logging.Logger, path: str) -> bool:
    return any(
        isinstance(h, RotatingFileHandler) and h.baseFilename == path
        for h in logger.handlers
    )


def setup_logging(
    log_dir: str = "logs", level: int = logging.INFO
) -> tuple[logging.Logger, str]:
    """Send the ``turnmark`` logger to ``<log_dir>/turnmark.log``.

    Safe to call more than once; a second call for the same directory only
    updates the level.
    """
    os.makedirs(log_dir, exist_ok=True)
    log_path = os.path.abspath(os.path.join(log_dir, LOG_FILENAME))

    logger = logging.getLogger("turnmark")
    logger.setLevel(level)

    if not _has_file_handler(logger, log_path):
        handler = RotatingFileHandler(
            log_path, maxBytes=2_000_000, backupCount=3, encoding="utf-8"
        )
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        logger.addHandler(handler)

    return logger, log_path
