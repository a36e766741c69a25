"""
Logging configuration — one setup call per process.

main.py calls ``setup_from_env`` once with the level picked from its
``--debug`` / ``--verbose`` / ``--quiet`` flags. Every module that does
``logger = logging.getLogger(__name__)`` inherits the result.

Level precedence:
    CLI flag  >  PIAPPS_LOG_LEVEL  >  WARNING

A second, usually more detailed, copy of the log can be written to
PIAPPS_LOG_FILE at PIAPPS_LOG_FILE_LEVEL. Refresh runs triggered from
cron or the updater are debugged from that file.
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Mapping

LEVEL_ENV = "PIAPPS_LOG_LEVEL"
FILE_ENV = "PIAPPS_LOG_FILE"
FILE_LEVEL_ENV = "PIAPPS_LOG_FILE_LEVEL"

DEFAULT_LEVEL = "WARNING"

# ── Formats ─────────────────────────────────────────────────────

# (upper bound level, format, datefmt), first match wins
_CONSOLE_FORMATS = (
    (logging.DEBUG, "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d  %(message)s", "%H:%M:%S"),
    (logging.INFO, "%(asctime)s [%(name)s] %(message)s", "%H:%M:%S"),
    (logging.CRITICAL, "%(message)s", None),
)

_FILE_FORMAT = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d  %(message)s"
_FILE_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Pillow logs every PNG chunk at DEBUG
_NOISY_LOGGERS = ("PIL", "urllib")


def level_from_flags(debug: bool = False, verbose: bool = False, quiet: bool = False) -> str | None:
    """Console level selected by CLI flags (None when no flag is set).

    ``--debug`` beats ``--verbose`` beats ``--quiet``.
    """
    if debug:
        return "DEBUG"
    if verbose:
        return "INFO"
    if quiet:
        return "ERROR"
    return None


def _parse_level(level: str | None) -> int:
    if not level:
        return logging.WARNING
    numeric = getattr(logging, level.upper(), None)
    if not isinstance(numeric, int):
        return logging.WARNING
    return numeric


def _console_formatter(numeric_level: int) -> logging.Formatter:
    for bound, fmt, datefmt in _CONSOLE_FORMATS:
        if numeric_level <= bound:
            return logging.Formatter(fmt, datefmt=datefmt)
    return logging.Formatter("%(message)s")


def setup_logging(
    level: str = DEFAULT_LEVEL,
    log_file: str | None = None,
    log_file_level: str | None = None,
    quiet_third_party: bool = True,
) -> None:
    """Replace the root logger's handlers with a stderr (and optional file) handler.

    Args:
        level: Console level name. Unknown names fall back to WARNING.
        log_file: Optional log file path (appended to).
        log_file_level: Level for the file; defaults to ``level``.
        quiet_third_party: Pin Pillow/urllib loggers at WARNING unless
            the console runs at DEBUG.
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

        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(file_level)
        fh.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt=_FILE_DATEFMT))
        root.addHandler(fh)

    root.setLevel(root_level)

    if quiet_third_party and console_level > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    logging.raiseExceptions = False


def setup_from_env(
    flag_level: str | None = None,
    environ: Mapping[str, str] | None = None,
) -> str:
    """Resolve flag / PIAPPS_* precedence and call ``setup_logging``.

    Returns:
        The console level that was applied.
    """
    env = os.environ if environ is None else environ
    level = flag_level or env.get(LEVEL_ENV) or DEFAULT_LEVEL
    setup_logging(
        level=level,
        log_file=env.get(FILE_ENV),
        log_file_level=env.get(FILE_LEVEL_ENV),
        quiet_third_party=_parse_level(level) > logging.DEBUG,
    )
    return level
