"""rasterkit.utils.log – colourised logging for the rasterkit package.

Every module asks for ``get_logger(__name__)``. The colour handler hangs off
the ``rasterkit`` package logger only; module loggers inherit its level and
handler through the logger hierarchy and still propagate to the root.
"""

from __future__ import annotations

import logging

import colorlog

from rasterkit.utils import config

PACKAGE_LOGGER = "rasterkit"

LOG_FORMAT = "%(log_color)s[%(levelname).1s] %(name)s: %(message)s"

LOG_COLORS = {
    "DEBUG": "cyan",
    "INFO": "white",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "red,bold",
}

_handler: logging.Handler | None = None


def level_from_name(name: str) -> int:
    """Map a level name from the config file to a logging constant, INFO when unknown."""
    return logging.getLevelNamesMapping().get(name.upper(), logging.INFO)


def _build_handler() -> logging.Handler:
    handler = colorlog.StreamHandler()
    handler.setFormatter(colorlog.ColoredFormatter(fmt=LOG_FORMAT, log_colors=LOG_COLORS))
    return handler


def _package_logger() -> logging.Logger:
    """Return the ``rasterkit`` logger, attaching the colour handler on first use."""
    global _handler

    package = logging.getLogger(PACKAGE_LOGGER)
    if _handler is None:
        _handler = _build_handler()
        package.addHandler(_handler)
        package.setLevel(level_from_name(config.get_logging_level()))
    return package


def get_logger(name: str | None = None) -> logging.Logger:
    """Return the logger for ``name``, a module inside the rasterkit package.

    Names outside the package get the colour handler attached directly.
    """
    package = _package_logger()
    if not name or name == PACKAGE_LOGGER:
        return package

    logger = logging.getLogger(name)
    if not name.startswith(f"{PACKAGE_LOGGER}.") and _handler not in logger.handlers:
        logger.addHandler(_handler)
    return logger


def set_level(debug_mode: bool) -> None:
    """Switch the package between DEBUG and INFO."""
    _package_logger().setLevel(logging.DEBUG if debug_mode else logging.INFO)


def set_global_log_level(level: int) -> None:
    """Configure the root logger with a single colour handler at ``level``."""
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    root_logger.addHandler(_build_handler())
    root_logger.setLevel(level)
    root_logger.info("Log level set to %s", logging.getLevelName(level))
