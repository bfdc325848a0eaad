"""
Logging configuration for the hostcare CLI.

``main.py`` calls ``setup_logging(resolve_level(...))`` once per process;
modules log through ``logging.getLogger(__name__)``.

Console level: ``--debug`` > ``--verbose`` > ``--quiet`` > HOSTCARE_LOG_LEVEL
> WARNING. At INFO every probe and sub-step is logged, prefixed with the
worker thread since hosts are maintained in parallel. HOSTCARE_LOG_FILE adds
a file handler (level HOSTCARE_LOG_FILE_LEVEL, default: the console level).
"""

from __future__ import annotations

import logging
import os
import sys

ENV_LEVEL = "HOSTCARE_LOG_LEVEL"
ENV_FILE = "HOSTCARE_LOG_FILE"
ENV_FILE_LEVEL = "HOSTCARE_LOG_FILE_LEVEL"

_TIME = "%H:%M:%S"
_THREADED = "%(asctime)s [%(threadName)s] %(message)s"
_DIAGNOSTIC = "%(asctime)s %(levelname)-5s [%(threadName)s] %(name)s:%(lineno)d — %(message)s"


def resolve_level(debug: bool = False, verbose: bool = False, quiet: bool = False) -> str:
    """Console level name from the global CLI flags and the environment."""
    if debug:
        return "DEBUG"
    if verbose:
        return "INFO"
    if quiet:
        return "ERROR"
    return os.environ.get(ENV_LEVEL, "WARNING")


def _console_formatter(level: int) -> logging.Formatter:
    if level <= logging.DEBUG:
        return logging.Formatter(_DIAGNOSTIC, datefmt=_TIME)
    if level <= logging.INFO:
        return logging.Formatter(_THREADED, datefmt=_TIME)
    # Warnings and errors read as plain CLI messages
    return logging.Formatter("%(message)s")


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
) -> None:
    """Replace the root handlers with a stderr handler and, optionally, a file.

    ``log_file`` and ``log_file_level`` default to HOSTCARE_LOG_FILE and
    HOSTCARE_LOG_FILE_LEVEL.
    """
    console_level = _parse_level(level)
    log_file = log_file or os.environ.get(ENV_FILE)
    log_file_level = log_file_level or os.environ.get(ENV_FILE_LEVEL)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(_console_formatter(console_level))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(console)
    root_level = console_level

    if log_file:
        file_level = _parse_level(log_file_level) if log_file_level else console_level
        handler = logging.FileHandler(log_file, encoding="utf-8")
        handler.setLevel(file_level)
        handler.setFormatter(logging.Formatter(_DIAGNOSTIC, datefmt="%Y-%m-%d %H:%M:%S"))
        root.addHandler(handler)
        root_level = min(root_level, file_level)

    root.setLevel(root_level)


def _parse_level(level: str | None) -> int:
    """Numeric level for a name; unknown or empty names mean WARNING."""
    numeric = logging.getLevelName(level.upper()) if level else None
    return numeric if isinstance(numeric, int) else logging.WARNING
