"""Package-scoped logging for smartchat.

The core runs inside a host application that owns the root logger, so the
stream handler is attached to the ``smartchat`` logger only. Every module
calls ``get_logger(__name__)``; names outside the package are re-parented
under ``smartchat.`` so they share the handler.
"""

from __future__ import annotations

import logging
import os
from typing import Final

PACKAGE_LOGGER: Final[str] = "smartchat"
_FORMAT: Final[str] = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_handler: logging.Handler | None = None


def _resolve_level() -> int:
    level_name = os.getenv("SMARTCHAT_LOG_LEVEL", "INFO").upper()
    return getattr(logging, level_name, logging.INFO)


def configure_logging(level: int | None = None) -> logging.Logger:
    """Attach the package stream handler once and (re)apply the level."""
    global _handler

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    if _handler is None:
        _handler = logging.StreamHandler()
        _handler.setFormatter(logging.Formatter(_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        package_logger.addHandler(_handler)
        package_logger.propagate = False

    package_logger.setLevel(level if level is not None else _resolve_level())
    return package_logger


def get_logger(name: str) -> logging.Logger:
    """Return a logger under the ``smartchat`` namespace."""
    configure_logging()
    if name != PACKAGE_LOGGER and not name.startswith(PACKAGE_LOGGER + "."):
        name = f"{PACKAGE_LOGGER}.{name}"
    return logging.getLogger(name)
