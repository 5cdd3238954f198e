"""Logging setup for the typedrpc command line."""

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_handler: logging.Handler | None = None


def setup_logging(level: str | int = "INFO") -> None:
    """Attach a single stream handler to the ``typedrpc`` logger.

    Idempotent: later calls only adjust the level.
    """
    global _handler

    logger = logging.getLogger("typedrpc")
    logger.setLevel(level)
    if _handler is not None:
        return

    _handler = logging.StreamHandler()
    _handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(_handler)


__all__ = ["LOG_FORMAT", "setup_logging"]
