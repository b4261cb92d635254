"""Logging configuration and logger factory for the backend."""

from __future__ import annotations

import json
import logging
import sys
import time
from typing import TYPE_CHECKING, Any

from tasksync.core.config import settings

if TYPE_CHECKING:
    from tasksync.core.config import Settings

_ROOT_LOGGER_NAME = "tasksync"
_TEXT_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Attributes present on every LogRecord; anything else came from `extra=`.
_RESERVED_RECORD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__.keys()
) | {"message", "asctime", "taskName"}


def _record_extras(record: logging.LogRecord) -> dict[str, Any]:
    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in _RESERVED_RECORD_ATTRS and not key.startswith("_")
    }


def _json_default(value: object) -> str:
    return str(value)


class TextFormatter(logging.Formatter):
    """Human-readable formatter that appends `extra` fields as key=value pairs."""

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        extras = _record_extras(record)
        if not extras:
            return base
        rendered = " ".join(f"{key}={value}" for key, value in sorted(extras.items()))
        return f"{base} {rendered}"


class JsonFormatter(logging.Formatter):
    """One JSON object per line, suitable for log shipping."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": self.formatTime(record, _DATE_FORMAT),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(_record_extras(record))
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=_json_default)


def _build_formatter(log_format: str, *, use_utc: bool) -> logging.Formatter:
    formatter: logging.Formatter
    if log_format.strip().lower() == "json":
        formatter = JsonFormatter()
    else:
        formatter = TextFormatter(fmt=_TEXT_FORMAT, datefmt=_DATE_FORMAT)
    if use_utc:
        formatter.converter = time.gmtime
    return formatter


def configure_logging(app_settings: Settings | None = None) -> None:
    """Install a single stderr handler on the package and uvicorn loggers.

    Safe to call more than once; existing handlers installed here are replaced.
    """
    app_settings = app_settings or settings
    level = logging.getLevelName(app_settings.log_level.strip().upper())
    if not isinstance(level, int):
        level = logging.INFO

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        _build_formatter(app_settings.log_format, use_utc=app_settings.log_use_utc),
    )

    for name in (_ROOT_LOGGER_NAME, "uvicorn", "uvicorn.error"):
        target = logging.getLogger(name)
        for existing in list(target.handlers):
            target.removeHandler(existing)
        target.addHandler(handler)
        target.setLevel(level)
        target.propagate = False

    logging.captureWarnings(True)


def get_logger(name: str) -> logging.Logger:
    """Return a module logger under the package namespace."""
    if name == _ROOT_LOGGER_NAME or name.startswith(f"{_ROOT_LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{_ROOT_LOGGER_NAME}.{name}")
