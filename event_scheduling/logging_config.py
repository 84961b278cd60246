"""
Central logging configuration for event_scheduling.

Installs a single colorized console handler and quiets third-party libraries
whose debug output drowns the engine's own diagnostics.
"""

import logging
import os
import sys
from typing import Optional

from colorlog import ColoredFormatter

PACKAGE_LOGGER = "event_scheduling"

LOG_FORMAT = "%(asctime)s %(log_color)s%(levelname)-7s%(reset)s %(name)s: %(message)s"
PLAIN_LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"

LOG_COLORS = {
    "DEBUG": "cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "bold_red",
}

THIRD_PARTY_LOGGERS = ("httpx", "httpcore", "asyncio")


def _resolve_level(level_name: Optional[str], default: int) -> int:
    if not level_name:
        return default
    level = logging.getLevelName(level_name.upper())
    return level if isinstance(level, int) else default


def configure_logging(
    level: Optional[str] = None,
    colors: bool = True,
    third_party_level: str = "WARNING",
) -> logging.Logger:
    """Configure console logging for the package.

    Args:
        level: Package log level name; defaults to INFO
        colors: Colorize the level name (only when stderr is a TTY)
        third_party_level: Level applied to noisy third-party loggers

    Environment Variables:
        EVENT_SCHEDULING_DEBUG: '1', 'true', 'yes' or 'on' forces DEBUG
        EVENT_SCHEDULING_LOG_LEVEL: overrides ``level``

    Returns:
        The package logger
    """
    env_debug = os.getenv("EVENT_SCHEDULING_DEBUG", "").strip().lower() in ("1", "true", "yes", "on")
    env_level = os.getenv("EVENT_SCHEDULING_LOG_LEVEL", "")

    final_level = _resolve_level(env_level or level, logging.INFO)
    if env_debug:
        final_level = logging.DEBUG

    handler = logging.StreamHandler(stream=sys.stderr)
    if colors and hasattr(sys.stderr, "isatty") and sys.stderr.isatty():
        formatter: logging.Formatter = ColoredFormatter(
            LOG_FORMAT, datefmt="%H:%M:%S", log_colors=LOG_COLORS
        )
    else:
        formatter = logging.Formatter(PLAIN_LOG_FORMAT, datefmt="%H:%M:%S")
    handler.setFormatter(formatter)

    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.handlers.clear()
    logger.addHandler(handler)
    logger.setLevel(final_level)
    logger.propagate = False

    third_party = _resolve_level(third_party_level, logging.WARNING)
    for name in THIRD_PARTY_LOGGERS:
        logging.getLogger(name).setLevel(third_party)

    logger.debug("Logging configured at %s", logging.getLevelName(final_level))
    return logger


def configure_from_settings(settings: object) -> logging.Logger:
    """Configure logging from a settings object with a ``logging`` section."""
    log_settings = getattr(settings, "logging", None)
    if log_settings is None:
        return configure_logging()
    return configure_logging(
        level=log_settings.level,
        colors=log_settings.colors,
        third_party_level=log_settings.third_party_level,
    )
