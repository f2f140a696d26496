"""Central logging configuration using loguru.

Minimal stderr output for human readability. The agreement kernel itself never
logs; the instance, factory and registry shells log through `logger`. Sinks are
installed only by `configure_logging()`, which the command-line tools call.
"""

from __future__ import annotations

import logging
import os
import sys

from loguru import logger as _BASE_LOGGER


logger = _BASE_LOGGER

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _env_flag(name: str, default: bool) -> bool:
    """Return boolean environment flag with common truthy values."""
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUE_VALUES


_FORMAT = "<green>{time:HH:mm:ss}</green> | <level>{level:<8}</level> | <level>{message}</level>\n"


class _InterceptHandler(logging.Handler):
    """Forward stdlib logging records to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno
        logger.opt(exception=record.exc_info).log(level, record.getMessage())


def configure_logging(level: str | None = None) -> None:
    """Configure loguru and capture stdlib logging.

    Entry points call this once; importing the package leaves the host's
    sinks and stdlib handlers alone.
    """
    level = level or os.getenv("GRIEFING_LOG_LEVEL", "INFO")
    colorize = _env_flag("GRIEFING_LOG_COLOR", default=sys.stderr.isatty())

    logger.remove()
    logger.add(
        sys.stderr,
        level=level.upper(),
        format=_FORMAT,
        colorize=colorize,
        backtrace=False,
        diagnose=False,
    )

    logging.basicConfig(handlers=[_InterceptHandler()], level=0, force=True)


__all__ = ["logger", "configure_logging"]
