"""Logging setup helpers."""

from __future__ import annotations

import logging
import warnings

from rich.logging import RichHandler

from .config import settings
from .exceptions import ConfigWarning

logger = logging.getLogger("harmonia")


def setup_logging(level: str | int | None = None) -> logging.Logger:
    """
    Attach a :class:`rich.logging.RichHandler` to the package logger.

    Parameters
    ----------
    level : str or int, optional
        Log level. If unset, the ``LOG_LEVEL`` setting is used. An unknown level
        name emits a :class:`.ConfigWarning` and falls back to ``WARNING``.

    Returns
    -------
    logging.Logger
        The package logger.
    """
    if level is None:
        level = settings.log_level

    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        if not isinstance(resolved, int):
            warnings.warn(
                f"unknown log level '{level}', falling back to 'WARNING'",
                ConfigWarning,
            )
            resolved = logging.WARNING
        level = resolved

    # Calling this function repeatedly must not duplicate output
    for handler in [h for h in logger.handlers if isinstance(h, RichHandler)]:
        logger.removeHandler(handler)

    handler = RichHandler(rich_tracebacks=True)
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    logger.addHandler(handler)
    logger.setLevel(level)

    return logger
