"""
Logging configuration — set up once by the CLI before any command runs.

Modules log through ``logging.getLogger(__name__)``; jobs run on worker
threads named ``plugpack-job_N``, which the detailed formats show.

Console level precedence:
    --debug / --verbose / --quiet  >  PLUGPACK_LOG_LEVEL  >  WARNING

A second, file handler is added when PLUGPACK_LOG_FILE is set. Its level
comes from PLUGPACK_LOG_FILE_LEVEL and defaults to the console level.
"""

from __future__ import annotations

import logging
import os
import sys

LEVEL_ENV_VAR = "PLUGPACK_LOG_LEVEL"
FILE_ENV_VAR = "PLUGPACK_LOG_FILE"
FILE_LEVEL_ENV_VAR = "PLUGPACK_LOG_FILE_LEVEL"

_DETAILED = "%(asctime)s %(levelname)-5s %(threadName)s %(name)s:%(lineno)d — %(message)s"

# (max level, format, date format), first match wins
_CONSOLE_FORMATS: tuple[tuple[int, str, str | None], ...] = (
    (logging.DEBUG, _DETAILED, "%H:%M:%S"),
    (logging.INFO, "%(asctime)s [%(name)s] %(message)s", "%H:%M:%S"),
    (logging.CRITICAL, "%(message)s", None),
)
_FILE_FORMAT = (_DETAILED, "%Y-%m-%d %H:%M:%S")


def resolve_level(debug: bool = False, verbose: bool = False, quiet: bool = False) -> str:
    """Console level name from the CLI flags, falling back to the environment."""
    if debug:
        return "DEBUG"
    if verbose:
        return "INFO"
    if quiet:
        return "ERROR"
    return os.environ.get(LEVEL_ENV_VAR) or "WARNING"


def setup_logging(
    level: str | None = None,
    log_file: str | None = None,
    log_file_level: str | None = None,
) -> None:
    """Replace the root logger's handlers.

    Args:
        level: Console level name. Unknown names mean WARNING.
            Defaults to ``resolve_level()``.
        log_file: Optional log file path. Defaults to ``$PLUGPACK_LOG_FILE``.
        log_file_level: Level of the file handler. Defaults to
            ``$PLUGPACK_LOG_FILE_LEVEL``, then to the console level.
    """
    console_level = _parse_level(level or resolve_level())
    log_file = log_file or os.environ.get(FILE_ENV_VAR)
    log_file_level = log_file_level or os.environ.get(FILE_LEVEL_ENV_VAR)

    fmt, datefmt = next(
        (f, d) for max_level, f, d in _CONSOLE_FORMATS if console_level <= max_level
    )
    handlers = [_handler(logging.StreamHandler(sys.stderr), console_level, fmt, datefmt)]

    if log_file:
        file_level = _parse_level(log_file_level) if log_file_level else console_level
        handlers.append(
            _handler(logging.FileHandler(log_file, encoding="utf-8"), file_level, *_FILE_FORMAT)
        )

    root = logging.getLogger()
    root.handlers.clear()
    for handler in handlers:
        root.addHandler(handler)
    # Root passes everything that at least one handler wants
    root.setLevel(min(h.level for h in handlers))

    logging.raiseExceptions = False


def _handler(
    handler: logging.Handler, level: int, fmt: str, datefmt: str | None
) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))
    return handler


def _parse_level(level: str | None) -> int:
    numeric = logging.getLevelName(level.upper()) if level else None
    return numeric if isinstance(numeric, int) else logging.WARNING
