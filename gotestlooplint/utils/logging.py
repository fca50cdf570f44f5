"""Centralized logging configuration using Loguru.

Diagnostics are the tool's real output and go to stdout; logging is for the
operator and goes to stderr (or NDJSON, for CI log collectors).

Usage:
    from gotestlooplint.utils.logging import logger
    logger.info("Message")
    logger.debug("Debug message")  # Only shows if GOTESTLOOPLINT_LOG_LEVEL=DEBUG

Environment Variables:
    GOTESTLOOPLINT_LOG_LEVEL: DEBUG|INFO|WARNING|ERROR (default: WARNING)
    GOTESTLOOPLINT_LOG_JSON: 0|1 (default: 0, human-readable)
    GOTESTLOOPLINT_LOG_FILE: path to an NDJSON log file (optional)
"""

import json
import os
import sys

from loguru import logger

from .constants import ENV_LOG_FILE, ENV_LOG_JSON, ENV_LOG_LEVEL

# Remove default handler
logger.remove()

# Numeric levels for NDJSON records
NUMERIC_LEVELS = {
    "TRACE": 10,
    "DEBUG": 20,
    "INFO": 30,
    "SUCCESS": 30,
    "WARNING": 40,
    "ERROR": 50,
    "CRITICAL": 60,
}

_log_level = os.environ.get(ENV_LOG_LEVEL, "WARNING").upper()
_json_mode = os.environ.get(ENV_LOG_JSON, "0") == "1"
_log_file = os.environ.get(ENV_LOG_FILE)


def _to_ndjson(record) -> str:
    """Render a loguru record as a single JSON line."""
    entry = {
        "level": NUMERIC_LEVELS.get(record["level"].name, 30),
        "time": int(record["time"].timestamp() * 1000),
        "msg": record["message"],
        "pid": record["process"].id,
        "module": record["name"],
    }

    for key, value in record["extra"].items():
        entry[key] = value if isinstance(value, (str, int, float, bool)) or value is None else str(value)

    if record["exception"]:
        entry["err"] = {
            "type": record["exception"].type.__name__ if record["exception"].type else "Error",
            "message": str(record["exception"].value) if record["exception"].value else "",
        }

    return json.dumps(entry)


def ndjson_sink(message):
    """Write records as NDJSON to stderr.

    Never call logger.* inside a sink - causes infinite recursion.
    """
    sys.stderr.write(_to_ndjson(message.record) + "\n")
    sys.stderr.flush()


# Human-readable format (no emojis - Windows CP1252 compatibility)
_human_format = (
    "<green>{time:HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}:{function}:{line}</cyan> - "
    "<level>{message}</level>"
)

logger.level("DEBUG", color="<blue>")
logger.level("INFO", color="<white>")
logger.level("WARNING", color="<yellow>")
logger.level("ERROR", color="<red>")
logger.level("CRITICAL", color="<red><bold>")

# Track the console handler so the CLI can change its level
_console_handler_id: int | None = None

if _json_mode:
    _console_handler_id = logger.add(
        ndjson_sink,
        level=_log_level,
        colorize=False,
    )
else:
    _console_handler_id = logger.add(
        sys.stderr,
        level=_log_level,
        format=_human_format,
        colorize=None,  # Auto-detect: colors if TTY, plain if piped
    )

if _log_file:
    def _file_sink(message):
        """Append NDJSON records to the configured log file."""
        with open(_log_file, "a", encoding="utf-8") as f:
            f.write(_to_ndjson(message.record) + "\n")

    logger.add(
        _file_sink,
        level="DEBUG",  # File always captures everything
    )


def set_level(level: str) -> int:
    """Replace the console handler with one at ``level``.

    Used by the CLI ``--verbose`` flag. Returns the new handler id.
    """
    global _log_level, _console_handler_id

    _log_level = level.upper()
    if _console_handler_id is not None:
        try:
            logger.remove(_console_handler_id)
        except ValueError:
            pass  # Already removed

    if _json_mode:
        _console_handler_id = logger.add(ndjson_sink, level=_log_level, colorize=False)
    else:
        _console_handler_id = logger.add(
            sys.stderr, level=_log_level, format=_human_format, colorize=None
        )
    return _console_handler_id


__all__ = [
    "logger",
    "ndjson_sink",
    "set_level",
]
