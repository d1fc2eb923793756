"""Logging configuration for sunvoxpy front ends such as the CLI player."""

from __future__ import annotations

import logging
import os
import sys

from . import diagnostics

PACKAGE_LOGGER = "sunvoxpy"
LOG_LEVEL_ENV = "SUNVOXPY_LOG_LEVEL"
FALLBACK_LOG_LEVEL_ENV = "LOG_LEVEL"
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_HANDLER_NAME = "sunvoxpy-stderr"


def _requested_level(default_level: str) -> tuple[int, str | None]:
    level_name = os.environ.get(LOG_LEVEL_ENV) or os.environ.get(FALLBACK_LOG_LEVEL_ENV) or default_level
    level = logging.getLevelName(level_name.upper())
    if isinstance(level, int):
        return level, None
    fallback = logging.getLevelName(default_level.upper())
    return (fallback if isinstance(fallback, int) else logging.WARNING), level_name


def configure_logging(default_level: str = "WARNING", *, trace_native_calls: bool | None = None) -> int:
    """Send the ``sunvoxpy`` loggers to stderr and return the resolved level.

    The level name comes from ``SUNVOXPY_LOG_LEVEL``, then ``LOG_LEVEL``;
    ``default_level`` applies when neither is set or the name is unknown.
    Calling this again replaces the handler installed by the previous call.

    ``trace_native_calls`` switches the native call trace file on or off.
    ``None`` keeps whatever ``SUNVOX_TRACE_NATIVE_CALLS`` selected.
    """

    level, invalid_name = _requested_level(default_level)

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(package_logger.handlers):
        if handler.get_name() == _HANDLER_NAME:
            package_logger.removeHandler(handler)
            handler.close()

    handler = logging.StreamHandler(sys.stderr)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    package_logger.addHandler(handler)
    package_logger.setLevel(level)

    if trace_native_calls is not None:
        diagnostics.enable_native_call_logging(trace_native_calls)

    logger = logging.getLogger(__name__)
    if invalid_name is not None:
        logger.warning("Invalid log level '%s'; using %s", invalid_name, logging.getLevelName(level))
    if diagnostics.native_call_logging_enabled():
        logger.info("Tracing native calls")

    return level


__all__ = [
    "FALLBACK_LOG_LEVEL_ENV",
    "LOG_FORMAT",
    "LOG_LEVEL_ENV",
    "PACKAGE_LOGGER",
    "configure_logging",
]
