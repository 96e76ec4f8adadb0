"""Shared logger for the traffic worker."""

import logging
import sys

LOG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"

logger = logging.getLogger("traffic_worker")


def configure_logging(level: str | int = "INFO") -> logging.Logger:
    """Attach a stream handler to the package logger (once) and set its level."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    if not any(getattr(h, "_traffic_worker", False) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%H:%M:%S"))
        handler._traffic_worker = True
        logger.addHandler(handler)

    logger.setLevel(level)
    return logger
