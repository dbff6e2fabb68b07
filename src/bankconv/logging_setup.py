"""Centralized logging configuration for the ``bankconv`` package.

- ``configure_logging(...)`` attaches a single ``StreamHandler`` to the
  package logger; the CLI calls it once at startup.
- ``get_logger(name)`` returns a logger and makes sure the package logger has
  a ``NullHandler`` while nothing has been configured.

Library modules use ``logging.getLogger(__name__)`` and never attach handlers.
"""

import logging
import os
import sys
from typing import IO, Optional, Union

PACKAGE_LOGGER_NAME = "bankconv"
LOG_LEVEL_ENV = "BANKCONV_LOG_LEVEL"
DEFAULT_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"

_configured = False


def parse_level(level: Union[int, str, None]) -> int:
    """Resolve a level given as int, name or numeric string.

    ``None`` falls back to the BANKCONV_LOG_LEVEL environment variable, then
    to INFO.
    """
    if isinstance(level, int):
        return level
    if isinstance(level, str) and level.strip():
        name = level.strip().upper()
        if name.isdigit():
            return int(name)
        numeric = logging.getLevelName(name)
        if isinstance(numeric, int):
            return numeric
        raise ValueError(f"Unknown log level '{level}'")
    env_value = os.getenv(LOG_LEVEL_ENV)
    if env_value:
        return parse_level(env_value)
    return logging.INFO


def configure_logging(
    level: Union[int, str, None] = None,
    *,
    fmt: Optional[str] = None,
    stream: IO[str] = sys.stderr,
) -> None:
    """Configure the package logger exactly once.

    Args:
        level: Level as int or name; see ``parse_level``
        fmt: Log format, defaults to ``DEFAULT_FORMAT``
        stream: Output stream of the handler
    """
    global _configured
    resolved = parse_level(level)
    if _configured:
        return

    logger = logging.getLogger(PACKAGE_LOGGER_NAME)
    for handler in list(logger.handlers):
        if isinstance(handler, logging.NullHandler):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(stream)
    handler.setLevel(resolved)
    handler.setFormatter(logging.Formatter(fmt or DEFAULT_FORMAT))

    logger.setLevel(resolved)
    logger.addHandler(handler)
    logger.propagate = False

    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Return a logger, adding a NullHandler to the package logger if unconfigured."""
    package_logger = logging.getLogger(PACKAGE_LOGGER_NAME)
    if not _configured and not package_logger.handlers:
        package_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)
