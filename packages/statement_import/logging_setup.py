"""Logging for the ``statement_import`` package.

Library modules call ``get_logger(__name__)`` and never attach handlers. The
host (or the developer CLI) calls ``configure_logging()``, which owns a single
``StreamHandler`` on the ``"statement_import"`` logger. Calling it again
retunes that handler (level, format, stream) instead of stacking another one,
so a CLI invocation with ``--log-level DEBUG`` takes effect even when an
earlier command already configured logging in the same process.

The level comes from the argument, else ``STATEMENT_IMPORT_LOG_LEVEL``, else
``INFO``.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO

PACKAGE_LOGGER = "statement_import"
LEVEL_ENV_VAR = "STATEMENT_IMPORT_LOG_LEVEL"
LOG_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"

_handler: logging.StreamHandler | None = None


def resolve_level(level: int | str | None = None) -> int:
    """Map an int, a digit string or a level name to a numeric level.

    ``None`` reads :data:`LEVEL_ENV_VAR`. Unknown names raise ``ValueError``.
    """

    if level is None:
        level = os.getenv(LEVEL_ENV_VAR) or logging.INFO
    if isinstance(level, int):
        return level
    name = level.strip().upper()
    if name.isdigit():
        return int(name)
    try:
        return logging.getLevelNamesMapping()[name]
    except KeyError:
        raise ValueError(f"unknown log level: {level!r}") from None


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] = sys.stderr,
) -> logging.Logger:
    """Install (or retune) the package handler and return the package logger."""

    global _handler
    resolved = resolve_level(level)
    logger = logging.getLogger(PACKAGE_LOGGER)

    for h in list(logger.handlers):
        if isinstance(h, logging.NullHandler):
            logger.removeHandler(h)

    if _handler is None:
        _handler = logging.StreamHandler(stream)
        logger.addHandler(_handler)
    else:
        _handler.setStream(stream)
    _handler.setLevel(resolved)
    _handler.setFormatter(logging.Formatter(fmt or LOG_FORMAT))

    logger.setLevel(resolved)
    logger.propagate = False
    return logger


def reset_logging() -> None:
    """Detach the package handler, returning to library (silent) mode."""

    global _handler
    logger = logging.getLogger(PACKAGE_LOGGER)
    if _handler is not None:
        logger.removeHandler(_handler)
        _handler = None
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


def get_logger(name: str) -> logging.Logger:
    pkg_logger = logging.getLogger(PACKAGE_LOGGER)
    if _handler is None and not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)


__all__ = [
    "LOG_FORMAT",
    "configure_logging",
    "get_logger",
    "reset_logging",
    "resolve_level",
]
