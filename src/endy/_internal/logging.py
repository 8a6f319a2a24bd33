"""Structured logging setup for Endy."""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from endy._internal.types import LogFields


def _record_fields(record: logging.LogRecord) -> LogFields:
    """Return the structured fields attached to a record, if any."""
    fields = getattr(record, "fields", None)
    return fields if isinstance(fields, dict) else {}


class _JsonFormatter(logging.Formatter):
    """Structured JSON log formatter.

    Emits one-line JSON objects with keys: timestamp, level, logger, message,
    followed by any structured fields passed as ``extra={"fields": {...}}``.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format a log record as a JSON string.

        Args:
            record: The log record to format.

        Returns:
            A single-line JSON string.
        """
        log_entry: dict[str, object] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in _record_fields(record).items():
            log_entry.setdefault(key, value)
        if record.exc_info and record.exc_info[1] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, default=str)


class _KeyValueFormatter(logging.Formatter):
    """Human-readable formatter that appends structured fields as key=value."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        fields = _record_fields(record)
        if not fields:
            return line
        pairs = " ".join(f"{key}={value!r}" for key, value in fields.items())
        return f"{line} {pairs}"


def setup_logging(
    level: int = logging.INFO,
    *,
    json_format: bool = False,
) -> logging.Logger:
    """Configure and return the root Endy logger.

    Sets up a handler on the ``endy`` logger namespace. Subsequent calls are
    idempotent: handlers are not duplicated.

    Args:
        level: Logging level (e.g., ``logging.DEBUG``). Defaults to INFO.
        json_format: If True, emit structured JSON logs. If False, emit
            human-readable logs with trailing ``key=value`` fields.

    Returns:
        The configured ``endy`` root logger.
    """
    logger = logging.getLogger("endy")
    logger.setLevel(level)

    # Idempotent: update existing handler levels and return early
    if logger.handlers:
        for handler in logger.handlers:
            handler.setLevel(level)
        return logger

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)

    if json_format:
        formatter: logging.Formatter = _JsonFormatter()
    else:
        formatter = _KeyValueFormatter(
            "%(asctime)s [%(levelname)-8s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    handler.setFormatter(formatter)
    logger.addHandler(handler)

    # Prevent propagation to root logger to avoid duplicate output
    logger.propagate = False

    return logger


def get_logger(name: str) -> logging.Logger:
    """Return a child logger under the ``endy`` namespace.

    Args:
        name: Logger name, appended to ``endy.`` prefix.
            Example: ``get_logger("engine.api")`` returns
            ``logging.getLogger("endy.engine.api")``.

    Returns:
        A configured child logger.
    """
    return logging.getLogger(f"endy.{name}")
