"""
Logging Configuration

Two renderings of the same records:
- console: one line per record, level colored when stderr is a terminal
- JSON lines: for collecting logs off a field device (``LOG_JSON=true`` or
  any ``LOG_FILE``)

Context passed through ``extra=`` (sheet, row count, storage key...) is kept
as top-level fields of the JSON document.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Optional, TextIO

# Attributes every LogRecord carries; anything else came from ``extra=``.
_RECORD_ATTRS = set(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime", "taskName"}

_QUIET_LOGGERS = ("PIL", "sqlalchemy.engine", "pyexcel", "pyexcel_io")


class JSONFormatter(logging.Formatter):
    """Render each record as a single JSON object.

    Keys: ``timestamp`` (UTC, ISO 8601), ``level``, ``logger``, ``message``,
    ``exception`` when one is attached, then the ``extra=`` fields.
    """

    def format(self, record: logging.LogRecord) -> str:
        doc: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            doc["exception"] = self.formatException(record.exc_info)
        doc.update(
            (key, value)
            for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRS and not key.startswith("_")
        )
        return json.dumps(doc, default=str)


class ColoredFormatter(logging.Formatter):
    """Console formatter that colors the level name."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[1;31m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname)
        if not color:
            return super().format(record)
        original = record.levelname
        record.levelname = f"{color}{original}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = original


def _console_formatter(stream: TextIO, json_format: bool) -> logging.Formatter:
    if json_format:
        return JSONFormatter()
    fmt = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    if getattr(stream, "isatty", lambda: False)():
        return ColoredFormatter(fmt, datefmt=datefmt)
    return logging.Formatter(fmt, datefmt=datefmt)


def configure_logging(
    level: str = "INFO",
    json_format: bool = False,
    log_file: Optional[str] = None,
) -> None:
    """
    Configure application logging on the root logger.

    Console output goes to stderr so command results on stdout stay
    pipeable. ``log_file`` always receives JSON lines.

    Example:
        configure_logging(level="DEBUG")
        configure_logging(level="INFO", json_format=True, log_file="inventory.log")
    """
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(_console_formatter(sys.stderr, json_format))
    root.addHandler(console)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(JSONFormatter())
        root.addHandler(file_handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
