"""Logging configuration helpers."""

from __future__ import annotations

import logging
from pathlib import Path
import sys


def setup_logging(
    name: str = "caffeinate2",
    *,
    verbose: bool = False,
    debug: bool = False,
    log_file: Path | None = None,
) -> logging.Logger:
    """Configure stderr (and optional file) logging and return the package logger."""
    logger = logging.getLogger(name)
    if debug:
        logger.setLevel(logging.DEBUG)
    elif verbose:
        logger.setLevel(logging.INFO)
    else:
        logger.setLevel(logging.WARNING)
    logger.handlers.clear()

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(stream_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s"))
        logger.addHandler(file_handler)

    return logger
