"""Logging configuration for the api-spawner CLI.

Library modules only call ``logging.getLogger(__name__)``. The CLI
entry point calls configure_logging() once to attach a Rich handler
on stderr so log records never mix with --json output on stdout.
"""

from __future__ import annotations

import logging
import os

from rich.console import Console
from rich.logging import RichHandler

LOG_LEVEL_ENV = "API_SPAWNER_LOG_LEVEL"
DEFAULT_LOG_LEVEL = "WARNING"

_PACKAGE_LOGGER = "api_spawner"


def resolve_log_level(level: str | None = None) -> int:
    """Turn a level name (or the environment default) into a logging constant.

    Unknown names fall back to WARNING rather than raising, so a typo in
    the environment never prevents the CLI from starting.
    """
    name = (level or os.environ.get(LOG_LEVEL_ENV) or DEFAULT_LOG_LEVEL).upper()
    value = logging.getLevelName(name)
    if isinstance(value, int):
        return value
    return logging.WARNING


def configure_logging(level: str | None = None, console: Console | None = None) -> logging.Logger:
    """Attach a single RichHandler to the package logger.

    Calling this more than once replaces the previous handler instead of
    stacking duplicates (the Typer callback runs once per invocation, but
    tests invoke the app many times in one process).
    """
    logger = logging.getLogger(_PACKAGE_LOGGER)
    logger.setLevel(resolve_log_level(level))

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=False,
        markup=False,
    )
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    logger.addHandler(handler)
    logger.propagate = False
    return logger
