"""
Central logging configuration for calendargrid.

Sets up a colorized console handler (colorlog) and per-module levels so the
per-event DEBUG tracing of the grid engine can be switched on without
touching code.
"""

import logging
import os
import sys
from typing import Optional

from colorlog import ColoredFormatter

_TRUTHY = ("1", "true", "yes", "on")
_LEVEL_NAMES = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

GRID_MODULES = [
    "calendargrid",
    "calendargrid.calendar.grid_rrule_parser",
    "calendargrid.calendar.grid_occurrence_generator",
    "calendargrid.calendar.grid_span_assigner",
    "calendargrid.domain.bucket_assembler",
    "calendargrid.domain.event_deduplicator",
    "calendargrid.domain.pipeline",
]

# Third-party loggers kept quiet outside troubleshooting
SUPPRESSED_LOGGERS = {
    "icalendar": logging.INFO,
    "asyncio": logging.WARNING,
}

LOG_COLORS = {
    "DEBUG": "cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "bold_red",
}


def build_console_handler(level: int = logging.NOTSET) -> logging.Handler:
    """Stream handler writing colorized records to stderr.

    Format: ``HH:MM:SS  LEVEL   logger.name: message`` with only the level
    colorized.
    """
    handler = logging.StreamHandler(stream=sys.stderr)
    handler.setLevel(level)
    fmt = "%(asctime)s %(log_color)s%(levelname)-7s%(reset)s %(name)s: %(message)s"
    handler.setFormatter(ColoredFormatter(fmt, datefmt="%H:%M:%S", log_colors=LOG_COLORS))
    return handler


def configure_grid_logging(debug_mode: bool = False, force_debug: Optional[bool] = None) -> None:
    """
    Configure logging levels for calendargrid.

    Args:
        debug_mode: Whether to enable debug logging for calendargrid modules
        force_debug: Override debug mode setting (None to use env var detection)

    Environment Variables:
        CALENDARGRID_DEBUG: Set to '1', 'true', 'yes', 'on' to force debug logging
        CALENDARGRID_LOG_LEVEL: Override root log level (DEBUG, INFO, WARNING, ERROR)
    """
    env_debug = os.getenv("CALENDARGRID_DEBUG", "").strip().lower() in _TRUTHY
    env_log_level = os.getenv("CALENDARGRID_LOG_LEVEL", "").strip().upper()

    if force_debug is not None:
        final_debug = force_debug
    elif env_debug:
        final_debug = True
    else:
        final_debug = debug_mode

    root_level = logging.DEBUG if final_debug else logging.INFO
    if env_log_level in _LEVEL_NAMES:
        root_level = getattr(logging, env_log_level)

    root_logger = logging.getLogger()
    root_logger.setLevel(root_level)

    # Only add a handler if none exist, so repeated calls do not duplicate output
    if not root_logger.handlers:
        root_logger.addHandler(build_console_handler())

    logger_config: dict[str, int] = dict(SUPPRESSED_LOGGERS)
    grid_level = logging.DEBUG if final_debug else logging.INFO
    for module in GRID_MODULES:
        logger_config[module] = grid_level

    for logger_name, level in logger_config.items():
        logging.getLogger(logger_name).setLevel(level)

    if final_debug:
        root_logger.debug("Debug logging enabled for calendargrid modules")


def reset_logging_to_debug() -> None:
    """
    Reset all loggers to DEBUG level for troubleshooting.
    """
    logging.getLogger().setLevel(logging.DEBUG)
    for logger_name in [*SUPPRESSED_LOGGERS, *GRID_MODULES]:
        logging.getLogger(logger_name).setLevel(logging.DEBUG)

    logging.getLogger().info("All loggers reset to DEBUG level for troubleshooting")


def get_logging_status() -> dict[str, str]:
    """
    Get current logging configuration status.

    Returns:
        Dictionary mapping logger names to their current levels
    """
    status = {"root": logging.getLevelName(logging.getLogger().level)}
    for logger_name in ["calendargrid", *SUPPRESSED_LOGGERS]:
        status[logger_name] = logging.getLevelName(logging.getLogger(logger_name).level)
    return status
