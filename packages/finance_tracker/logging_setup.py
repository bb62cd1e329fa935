"""Logging setup shared by every ``finance_tracker`` module.

Library modules only ever call ``get_logger("finance_tracker.<module>")``;
they never attach handlers. Entry points (the CLI) call
``configure_logging()`` once, which installs a single handler on the
``finance_tracker`` logger:

- a ``FileHandler`` when ``log_file`` (or ``FINANCE_TRACKER_LOG_FILE``) is
  given, otherwise
- a ``StreamHandler`` on ``stream`` (``sys.stderr`` by default).

The level comes from the ``level`` argument, then
``FINANCE_TRACKER_LOG_LEVEL``, then ``INFO``. Until configured, the package
logger carries a ``NullHandler`` so embedding applications see no output.
"""

from __future__ import annotations

import logging
import os
import sys
from os import PathLike
from typing import IO

_PKG_LOGGER_NAME = "finance_tracker"
_LEVEL_ENV = "FINANCE_TRACKER_LOG_LEVEL"
_FILE_ENV = "FINANCE_TRACKER_LOG_FILE"
_DEFAULT_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"

_CONFIGURED = False


def _parse_level(level: int | str | None) -> int:
    if level is None:
        level = os.getenv(_LEVEL_ENV) or logging.INFO
    if isinstance(level, int):
        return level
    name = level.strip().upper()
    if name.isdigit():
        return int(name)
    mapped = logging.getLevelNamesMapping().get(name)
    return mapped if mapped is not None else logging.INFO


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] | None = None,
    log_file: str | PathLike[str] | None = None,
) -> None:
    """Install the package handler; later calls are no-ops until reset."""

    global _CONFIGURED
    if _CONFIGURED:
        return

    logger = logging.getLogger(_PKG_LOGGER_NAME)
    for h in list(logger.handlers):
        if isinstance(h, logging.NullHandler):
            logger.removeHandler(h)

    target = log_file if log_file is not None else os.getenv(_FILE_ENV) or None
    handler: logging.Handler
    if target:
        handler = logging.FileHandler(target, encoding="utf-8")
    else:
        handler = logging.StreamHandler(stream if stream is not None else sys.stderr)

    resolved = _parse_level(level)
    handler.setLevel(resolved)
    handler.setFormatter(logging.Formatter(fmt or _DEFAULT_FORMAT))
    logger.setLevel(resolved)
    logger.addHandler(handler)
    # Records stop here; the root logger would print them twice.
    logger.propagate = False

    _CONFIGURED = True


def reset_logging() -> None:
    """Detach the package handler(s) and restore library defaults."""

    global _CONFIGURED
    logger = logging.getLogger(_PKG_LOGGER_NAME)
    for h in list(logger.handlers):
        logger.removeHandler(h)
        h.close()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
    _CONFIGURED = False


def get_logger(name: str) -> logging.Logger:
    pkg_logger = logging.getLogger(_PKG_LOGGER_NAME)
    if not _CONFIGURED and not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)


__all__ = ["configure_logging", "get_logger", "reset_logging"]
