"""
Logging for sitepipe runs.

Three kinds of output share the root logger:

- build stages (``sitepipe.core.services.stages.*``) report what they
  compiled, copied or rewrote, and the warnings a build collects;
- the watcher reports each debounced rebuild and its failures;
- the dev server's request log comes through ``werkzeug``, whose level
  follows ``dev.logLevel`` (see :func:`dev_server_level`).

``setup_logging`` runs once from the CLI group. The console level comes
from ``--debug`` / ``--verbose`` / ``--quiet``, then ``SITEPIPE_LOG_LEVEL``,
then WARNING, so a plain ``sitepipe build`` prints only stage warnings
and errors. A log file (``SITEPIPE_LOG_FILE``) can record a chattier
level than the console, which is how a CI build keeps full stage detail.
"""

from __future__ import annotations

import logging
import sys

# Build warnings read as "WARNING: Style entry not found: ..."
_FMT_WARNINGS = "%(levelname)s: %(message)s"

# Stage progress; the logger name tells which stage spoke
_FMT_PROGRESS = "%(asctime)s [%(name)s] %(message)s"

_FMT_TRACE = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s"
_DATEFMT_CONSOLE = "%H:%M:%S"
_DATEFMT_FILE = "%Y-%m-%d %H:%M:%S"

# Request lines and inotify chatter drown out rebuild messages below DEBUG
_NOISY_LOGGERS = ("werkzeug", "watchdog")


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
    quiet_third_party: bool = True,
) -> None:
    """Install the console (and optional file) handler on the root logger.

    Args:
        level: Console level name; unknown names mean WARNING.
        log_file: Also append records to this file.
        log_file_level: Level for the file, defaults to ``level``.
        quiet_third_party: Hold the dev server and file-watcher loggers
            at WARNING unless the console is at DEBUG.
    """
    console_level = _parse_level(level)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(_console_formatter(console_level))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(console)
    root_level = console_level

    if log_file:
        file_level = _parse_level(log_file_level) if log_file_level else console_level
        root_level = min(root_level, file_level)

        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(file_level)
        file_handler.setFormatter(logging.Formatter(_FMT_TRACE, datefmt=_DATEFMT_FILE))
        root.addHandler(file_handler)

    # Records below the console level still reach the file
    root.setLevel(root_level)

    if quiet_third_party and console_level > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    logging.raiseExceptions = False


def dev_server_level(log_level: str) -> int:
    """Map the dev-server ``logLevel`` option onto a logging level.

    ``silent`` silences request logging entirely; anything unknown
    falls back to INFO.
    """
    if log_level.lower() == "silent":
        return logging.CRITICAL + 1
    numeric = getattr(logging, log_level.upper(), None)
    return numeric if isinstance(numeric, int) else logging.INFO


def _console_formatter(level: int) -> logging.Formatter:
    if level <= logging.DEBUG:
        return logging.Formatter(_FMT_TRACE, datefmt=_DATEFMT_CONSOLE)
    if level <= logging.INFO:
        return logging.Formatter(_FMT_PROGRESS, datefmt=_DATEFMT_CONSOLE)
    return logging.Formatter(_FMT_WARNINGS)


def _parse_level(level: str | None) -> int:
    if not level:
        return logging.WARNING
    numeric = getattr(logging, level.upper(), None)
    return numeric if isinstance(numeric, int) else logging.WARNING
