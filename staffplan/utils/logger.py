"""Process-wide logging setup for the planner."""

from __future__ import annotations

import logging
import sys
from typing import Optional

from staffplan.utils.config import Settings, get_settings


_LOGGER_INITIALIZED = False

LOG_FIELDS = ("%(asctime)s", "%(levelname)s", "%(name)s")


def build_log_format(settings: Settings) -> str:
    """Pipe-delimited record layout; thread names appear once comparisons run in parallel."""
    fields = list(LOG_FIELDS)
    if settings.comparison_workers > 1:
        fields.append("%(threadName)s")
    fields.append("%(message)s")
    return " | ".join(fields)


def configure_logging(level: Optional[str] = None, settings: Optional[Settings] = None) -> None:
    global _LOGGER_INITIALIZED
    if _LOGGER_INITIALIZED:
        return

    settings = settings or get_settings()
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format=build_log_format(settings),
        stream=sys.stdout,
    )
    _LOGGER_INITIALIZED = True


def get_logger(name: str) -> logging.Logger:
    configure_logging()
    return logging.getLogger(name)
