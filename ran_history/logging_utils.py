"""
Logging setup for the ``ran`` CLI and the indexing library.

Everything logs to stderr, since stdout carries command listings. Plain
text is the default; ``--log-json`` switches to one JSON object per
line for when another tool collects the output.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

PACKAGE_LOGGER = "ran_history"

CONSOLE_FORMAT = "%(levelname)s  %(name)s: %(message)s"

# Attributes every LogRecord carries; anything else came in through ``extra``
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))
) | {"message", "asctime", "taskName"}


def _extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    fields: dict[str, Any] = {}
    for key, value in vars(record).items():
        if key in _RECORD_ATTRS or key.startswith("_"):
            continue
        try:
            json.dumps(value)
        except (TypeError, ValueError):
            value = str(value)
        fields[key] = value
    return fields


class StructuredJsonFormatter(logging.Formatter):
    """
    Renders each record as a single JSON line.

    Keys: ``timestamp`` (UTC ISO 8601 of when the record was created),
    ``level``, ``logger``, ``message``, ``exception`` when one is
    attached, and every field passed through ``extra``.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        payload.update(_extra_fields(record))
        return json.dumps(payload, default=str)


def configure_structured_logging(
    level: int = logging.INFO,
    logger_name: str | None = None,
) -> logging.Logger:
    """
    Send ``logger_name`` (the root logger when None) to stderr as JSON lines.

    Calling it again replaces the handler rather than adding a second one.
    """
    return _install_handler(StructuredJsonFormatter(), level, logger_name)


def configure_console_logging(
    level: int = logging.WARNING,
    logger_name: str | None = None,
) -> logging.Logger:
    """Send ``logger_name`` to stderr as ``LEVEL  name: message`` text."""
    return _install_handler(logging.Formatter(CONSOLE_FORMAT), level, logger_name)


def _install_handler(
    formatter: logging.Formatter, level: int, logger_name: str | None
) -> logging.Logger:
    logger = logging.getLogger(logger_name)
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    logger.setLevel(level)
    return logger


def get_history_logger(name: str) -> logging.Logger:
    """Logger for one component, named ``ran_history.<name>``."""
    return logging.getLogger(f"{PACKAGE_LOGGER}.{name}")


class HistoryLoggerAdapter(logging.LoggerAdapter):
    """
    Stamps fixed context onto every record, merged with any per-call ``extra``.

    The indexer wraps its logger in one per transcript so each message
    carries the ``transcript`` path.
    """

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        kwargs["extra"] = {**kwargs.get("extra", {}), **self.extra}
        return msg, kwargs
