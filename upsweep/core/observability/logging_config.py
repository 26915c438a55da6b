"""
Logging configuration — set up once by the CLI at process start.

Every module that does ``logger = logging.getLogger(__name__)`` inherits
this config. Levels are resolved in precedence order:

    --debug  >  -v  >  -q  >  UPSWEEP_LOG_LEVEL  >  WARNING

Optional file output via UPSWEEP_LOG_FILE / UPSWEEP_LOG_FILE_LEVEL.

On a remote host the dispatcher sets UPSWEEP_PREFIX to the host's label;
console lines then start with ``[label]`` so interleaved ssh output can
be told apart.
"""

from __future__ import annotations

import logging
import os
import sys

LOG_LEVEL_VAR = "UPSWEEP_LOG_LEVEL"
LOG_FILE_VAR = "UPSWEEP_LOG_FILE"
LOG_FILE_LEVEL_VAR = "UPSWEEP_LOG_FILE_LEVEL"
PREFIX_VAR = "UPSWEEP_PREFIX"

_DETAILED = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d %(message)s"

# (most verbose level covered, format, date format), checked in order
_CONSOLE_FORMATS: tuple[tuple[int, str, str | None], ...] = (
    (logging.DEBUG, _DETAILED, "%H:%M:%S"),
    (logging.INFO, "%(asctime)s [%(name)s] %(message)s", "%H:%M:%S"),
)
_PLAIN = "%(message)s"


def resolve_level(debug: bool = False, verbose: bool = False, quiet: bool = False) -> str:
    """Pick the console level from CLI flags and the environment."""
    if debug:
        return "DEBUG"
    if verbose:
        return "INFO"
    if quiet:
        return "ERROR"
    return os.environ.get(LOG_LEVEL_VAR, "WARNING")


def console_handler(level: int, prefix: str | None = None) -> logging.Handler:
    """A stderr handler whose format gets more detailed as ``level`` drops."""
    fmt, datefmt = next(
        ((f, d) for limit, f, d in _CONSOLE_FORMATS if level <= limit), (_PLAIN, None)
    )
    if prefix:
        fmt = f"[{prefix}] {fmt}"
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))
    return handler


def file_handler(path: str, level: int) -> logging.Handler:
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(_DETAILED, datefmt="%Y-%m-%d %H:%M:%S"))
    return handler


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
    prefix: str | None = None,
) -> None:
    """Replace the root logger's handlers for this process.

    Args:
        level: Console log level name.
        log_file: Optional path to a log file, appended to.
        log_file_level: Separate level for the log file (default: ``level``).
        prefix: Label put in front of every console line.
    """
    console_level = _parse_level(level)
    handlers = [console_handler(console_level, prefix)]
    if log_file:
        file_level = _parse_level(log_file_level) if log_file_level else console_level
        handlers.append(file_handler(log_file, file_level))

    root = logging.getLogger()
    root.handlers[:] = handlers
    root.setLevel(min(h.level for h in handlers))
    logging.raiseExceptions = False


def setup_from_env(debug: bool = False, verbose: bool = False, quiet: bool = False) -> str:
    """``setup_logging`` with the level and file taken from flags and env vars.

    Returns the console level name that was applied.
    """
    level = resolve_level(debug=debug, verbose=verbose, quiet=quiet)
    setup_logging(
        level=level,
        log_file=os.environ.get(LOG_FILE_VAR),
        log_file_level=os.environ.get(LOG_FILE_LEVEL_VAR),
        prefix=os.environ.get(PREFIX_VAR),
    )
    return level


def _parse_level(level: str | None) -> int:
    """Convert a level name string to its numeric constant."""
    if not level:
        return logging.WARNING
    numeric = getattr(logging, level.upper(), None)
    if not isinstance(numeric, int):
        return logging.WARNING
    return numeric
