from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
import os


LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"

_configured = False


def _ensure_base_logger() -> None:
    global _configured
    if _configured:
        return
    level = os.getenv("GTFS_IMPORT_LOG_LEVEL", "INFO").upper()
    logging.basicConfig(level=getattr(logging, level, logging.INFO), format=LOG_FORMAT)
    _configured = True


def get_logger(name: str, log_file: Path | None = None) -> logging.Logger:
    """Return `name`'s logger, attaching a rotating handler for `log_file` once."""
    _ensure_base_logger()
    logger = logging.getLogger(name)
    if log_file is None:
        return logger
    target = os.path.abspath(log_file)
    if not any(
        isinstance(h, RotatingFileHandler) and h.baseFilename == target
        for h in logger.handlers
    ):
        Path(target).parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(target, maxBytes=1_000_000, backupCount=3)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    return logger
