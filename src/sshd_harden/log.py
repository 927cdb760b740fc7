"""Logging setup for sshd-harden.

Everything logs through structlog. Console output goes to stderr; when a log
file is configured every event is also appended to it as
``[<timestamp>] [<LEVEL>] <message> key=value ...``. Timestamps are UTC,
like backup names.
"""

import logging
import sys
from pathlib import Path
from typing import Any, MutableMapping, Optional

import structlog

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def format_log_line(event_dict: MutableMapping[str, Any]) -> str:
    """Render an event as a single append-only log file line."""
    timestamp = event_dict.get("timestamp", "")
    level = str(event_dict.get("level", "info")).upper()
    message = str(event_dict.get("event", ""))
    extras = " ".join(
        f"{key}={value}"
        for key, value in event_dict.items()
        if key not in ("timestamp", "level", "event")
    )
    if extras:
        message = f"{message} {extras}"
    return f"[{timestamp}] [{level}] {message}"


class LogFileWriter:
    """structlog processor appending each event to the log file."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def __call__(
        self, logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
    ) -> MutableMapping[str, Any]:
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(format_log_line(event_dict) + "\n")
        return event_dict


def configure_logging(
    level: str = "INFO", log_file: Optional[Path] = None, quiet: bool = False
) -> None:
    """Configure structlog for the whole process.

    Args:
        level: Minimum level name (DEBUG, INFO, WARNING, ERROR)
        log_file: Append-only log file, or None to log to the console only
        quiet: Only show errors on the console; the log file still gets
            every event at or above ``level``
    """
    min_level = getattr(logging, level.upper(), logging.INFO)

    processors: list = [
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt=TIMESTAMP_FORMAT, utc=True),
    ]
    if log_file is not None:
        processors.append(LogFileWriter(log_file))
    if quiet:
        processors.append(_drop_below(logging.ERROR))
    processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(min_level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


def _drop_below(min_level: int) -> Any:
    def processor(
        logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
    ) -> MutableMapping[str, Any]:
        level = getattr(logging, str(event_dict.get("level", "info")).upper(), logging.INFO)
        if level < min_level:
            raise structlog.DropEvent
        return event_dict

    return processor
