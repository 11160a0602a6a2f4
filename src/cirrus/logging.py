"""Logging helpers for CIRRUS.

This module provides utilities for configuring console logging with Rich
and an in-memory "flight recorder" that buffers log records and writes them
to disk on flush. It also provides a filter that annotates third-party log
records with a short prefix used by console formatting, and a parser for
``NAME=LEVEL`` per-logger overrides.
"""

from __future__ import annotations

import logging
import os
import platform
import re
import sys
from collections.abc import Iterable, Mapping
from logging.handlers import MemoryHandler
from pathlib import Path
from typing import TYPE_CHECKING, Literal, TypeAlias

import sqlalchemy
from rich.console import Console
from rich.logging import RichHandler

from cirrus import __version__
from cirrus.interfaces.errors import ConfigurationError

if TYPE_CHECKING:
    from logging import Logger

# pylint: disable=too-few-public-methods

PROJECT_PREFIX = "cirrus"

DEFAULT_LIB_LEVELS: Mapping[str, int] = {"sqlalchemy": logging.WARNING}

logger = logging.getLogger(__name__)


class ThirdPartyPrefixFilter(logging.Filter):
    """Annotate third-party log records with a short prefix.

    For records whose logger name does not start with the project prefix,
    sets `record.prefix` to a short bracketed token like "[sqlalchemy]". For
    project loggers the prefix is set to an empty string. The filter always
    returns True to allow the record to be processed.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if not record.name.startswith(PROJECT_PREFIX):
            record.prefix = f"[{record.name.split('.')[0]}]"
        else:
            record.prefix = ""
        return True


# --------------------------------------------------------------------------- #
# Level parsing
# --------------------------------------------------------------------------- #


def parse_level(value: str | int) -> int:
    """Convert a level name (``"debug"``, ``"INFO"``) or number to a numeric level.

    Raises:
        ConfigurationError: if the level name is unknown.
    """
    if isinstance(value, int):
        return value
    lvl = getattr(logging, value.strip().upper(), None)
    if not isinstance(lvl, int):
        raise ConfigurationError(f"Invalid log level: {value}")
    return lvl


def _normalize_items(value: str | Iterable[str]) -> list[str]:
    """Split the input on commas and whitespace and drop empty fragments."""
    values = [value] if isinstance(value, str) else list(value)
    items: list[str] = []
    for v in values:
        items.extend(s for s in re.split(r"[,\s]+", v) if s)
    return items


def parse_logger_levels(value: str | Iterable[str] = ()) -> dict[str, int]:
    """Parse ``NAME=LEVEL`` pairs into a name -> level dict.

    Combines `DEFAULT_LIB_LEVELS` with the given overrides.

    Raises:
        ConfigurationError: if an item is not NAME=LEVEL or LEVEL is invalid.
    """
    levels = dict(DEFAULT_LIB_LEVELS)
    for item in _normalize_items(value):
        try:
            name, level_str = item.split("=", 1)
        except ValueError as e:
            raise ConfigurationError(f"Expected NAME=LEVEL, got {item!r}") from e
        levels[name.strip()] = parse_level(level_str)
    return levels


# --------------------------------------------------------------------------- #
# Handlers
# --------------------------------------------------------------------------- #


def config_console_handler(
    level: int = logging.INFO, debug_mode: bool = False, color: bool = True
) -> RichHandler:
    """Configure and return a RichHandler for console output.

    The handler writes to stderr. In debug mode it is set to DEBUG and
    includes timestamps and source paths; otherwise a short third-party
    prefix is applied.
    """
    ColorSystem: TypeAlias = Literal["auto", "standard", "256", "truecolor", "windows"]
    color_system: ColorSystem | None = "auto" if color else None
    console = Console(color_system=color_system, stderr=True)

    if debug_mode:
        level = logging.DEBUG

    handler = RichHandler(
        level=level,
        console=console,
        rich_tracebacks=True,
        show_time=False,
        show_path=debug_mode,
        enable_link_path=debug_mode,
    )

    fmt = (
        "%(prefix)s %(message)s"
        if not debug_mode
        else "%(asctime)s %(name)s: %(message)s"
    )
    handler.setFormatter(logging.Formatter(fmt=fmt))

    if not debug_mode:
        handler.addFilter(ThirdPartyPrefixFilter())

    return handler


def config_flight_recorder(
    path: Path,
    capacity: int = 2000,
    flush_level: int = logging.WARNING,
    flush_on_close: bool = False,
) -> MemoryHandler:
    """Configure and return an in-memory flight recorder backed by a file.

    The flight recorder buffers up to `capacity` log records and flushes
    them to `path` when a record at `flush_level` or higher is emitted (or
    on close if `flush_on_close` is True).
    """
    file_handler = logging.FileHandler(path, mode="w", encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(
        logging.Formatter(
            "[%(asctime)s] [%(process)d:%(threadName)s] %(levelname)s %(name)s:%(lineno)d: %(message)s"
        )
    )

    return MemoryHandler(
        capacity=capacity,
        flushLevel=flush_level,
        target=file_handler,
        flushOnClose=flush_on_close,
    )


# --------------------------------------------------------------------------- #
# Setup
# --------------------------------------------------------------------------- #


def configure_logging(  # pylint: disable=too-many-arguments
    *,
    level: int = logging.WARNING,
    logger_levels: Mapping[str, int] | None = None,
    log_path: Path | None = None,
    flight_capacity: int = 2000,
    debug_mode: bool = False,
    color: bool = True,
) -> list[logging.Handler]:
    """Configure root logging for an application embedding CIRRUS.

    1. a Rich console handler at ``level``;
    2. a flight recorder writing to ``log_path``, if given;
    3. the root logger at DEBUG (handlers filter);
    4. per-logger level overrides (defaults quiet SQLAlchemy).

    Returns:
        The handlers attached to the root logger.
    """
    handlers: list[logging.Handler] = [
        config_console_handler(level=level, debug_mode=debug_mode, color=color)
    ]
    if log_path is not None:
        handlers.append(config_flight_recorder(path=log_path, capacity=flight_capacity))

    logging.basicConfig(level=logging.DEBUG, handlers=handlers, force=True)

    levels = dict(logger_levels) if logger_levels is not None else dict(DEFAULT_LIB_LEVELS)
    for name, lvl in levels.items():
        logging.getLogger(name).setLevel(lvl)

    log_startup(
        logger,
        level=level,
        handlers=handlers,
        log_path=log_path,
        logger_levels=levels,
    )
    return handlers


def log_startup(
    log: Logger,
    *,
    level: int,
    handlers: list[logging.Handler],
    log_path: Path | None,
    logger_levels: Mapping[str, int],
) -> None:
    """Log a one-line summary at INFO and diagnostics at DEBUG."""
    log.info(
        "CIRRUS %s: console=%s, flight-recorder=%s",
        __version__,
        logging.getLevelName(level),
        "ON" if log_path is not None else "OFF",
    )

    log.debug("Python: %s", sys.version.split()[0])
    log.debug("Platform: %s %s", platform.system(), platform.release())
    log.debug("PID: %s", os.getpid())
    log.debug("SQLAlchemy: %s", sqlalchemy.__version__)
    log.debug("Handlers: %s", [type(h).__name__ for h in handlers])
    if log_path is not None:
        log.debug("Flight recorder: path=%s", log_path)
    log.debug(
        "Per-logger overrides: %s",
        {name: logging.getLevelName(lvl) for name, lvl in logger_levels.items()}
        or "<none>",
    )
