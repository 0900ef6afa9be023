"""Logging setup for ``gora`` loggers.

The library logs through named stdlib loggers (``gora.router``,
``gora.access``, ``gora.ws``, ``gora.http``) and never configures
handlers on import. Applications call ``configure_logging`` once:

- development: ``12:00:01 INFO  gora.access GET / 200 0.41ms method=GET ...``
- production: one JSON object per line, ``extra=`` fields included

Usage::

    configure_logging(production=settings.production, level="debug")
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime
from typing import Any, TextIO

_ROOT = "gora"

# Attributes every LogRecord has; everything else came in through ``extra=``.
_STANDARD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None)).keys()
) | {"message", "asctime", "taskName"}


def record_extras(record: logging.LogRecord) -> dict[str, Any]:
    """Fields passed through ``extra=`` on the logging call."""
    return {
        key: value
        for key, value in vars(record).items()
        if key not in _STANDARD_ATTRS and not key.startswith("_")
    }


class ConsoleFormatter(logging.Formatter):
    """Human-readable lines with ``key=value`` extras appended."""

    def __init__(self) -> None:
        super().__init__("%(asctime)s %(levelname)-5s %(name)s %(message)s", "%H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        extras = record_extras(record)
        if not extras:
            return line
        fields = " ".join(f"{key}={value}" for key, value in extras.items())
        head, sep, tail = line.partition("\n")
        return f"{head} {fields}{sep}{tail}"


class JSONFormatter(logging.Formatter):
    """One JSON object per record, for log aggregation."""

    def format(self, record: logging.LogRecord) -> str:
        data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in record_extras(record).items():
            data[key] = _sanitize(value)
        if record.exc_info:
            data["exception"] = self.formatException(record.exc_info)
        return json.dumps(data, separators=(",", ":"))


def _sanitize(value: Any) -> Any:
    try:
        json.dumps(value)
    except (TypeError, ValueError):
        return str(value)
    return value


def configure_logging(
    *,
    production: bool = False,
    stream: TextIO | None = None,
    level: str | int = "info",
) -> logging.Handler:
    """Install one handler on the ``gora`` logger.

    Replaces handlers installed by an earlier call. Returns the handler.
    """
    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(JSONFormatter() if production else ConsoleFormatter())

    logger = logging.getLogger(_ROOT)
    for old in list(logger.handlers):
        if getattr(old, "_gora_handler", False):
            logger.removeHandler(old)
    handler._gora_handler = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    logger.setLevel(level.upper() if isinstance(level, str) else level)
    logger.propagate = False
    return handler
