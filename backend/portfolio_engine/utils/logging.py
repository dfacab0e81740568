# backend/portfolio_engine/utils/logging.py
"""
Logging setup for embedding applications.

Engine modules only ever call logging.getLogger(__name__); nothing is
configured on import. A host process (CLI, worker, test run) calls
setup_logging() once to get correlation-aware output on stdout.

Usage:
    from portfolio_engine.utils import setup_logging

    setup_logging()                      # settings.log_level / log_format
    setup_logging("DEBUG", "json")       # explicit

What gets logged where:
    DEBUG   - Undefined performance, solver fallback, chart point counts
    INFO    - Statistics computed for a portfolio
    ERROR   - A position could not be converted (the error is re-raised)
"""

import json
import logging
import sys
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, TextIO

from portfolio_engine.config import settings
from portfolio_engine.utils.context import get_correlation_id

TEXT_FORMAT = "%(asctime)s %(levelname)-8s [%(correlation_id)s] %(name)s: %(message)s"

NO_CORRELATION_ID = "-"

# Attributes every LogRecord carries; anything else came in via `extra`
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
    "message",
    "asctime",
    "correlation_id",
}


class CorrelationIdFilter(logging.Filter):
    """Stamp each record with the current correlation ID (%(correlation_id)s)."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id() or NO_CORRELATION_ID
        return True


class JsonFormatter(logging.Formatter):
    """
    One JSON object per record.

    {"timestamp": ..., "level": ..., "logger": ..., "correlation_id": ...,
     "message": ..., "extra": {...}}

    Decimals in `extra` are written as strings, datetimes as ISO 8601,
    anything else json cannot encode via str().
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "correlation_id": getattr(record, "correlation_id", NO_CORRELATION_ID),
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        extra = {k: v for k, v in vars(record).items() if k not in _RECORD_ATTRS}
        if extra:
            entry["extra"] = extra

        return json.dumps(entry, default=_json_default)


class _EngineHandler(logging.StreamHandler):
    """Marker type so setup_logging() can find what it installed before."""


# =============================================================================
# SETUP
# =============================================================================

def setup_logging(
        level: str | None = None,
        log_format: str | None = None,
        stream: TextIO | None = None,
) -> logging.Handler:
    """
    Install a correlation-aware handler on the root logger.

    Calling it again replaces the handler installed by the previous call;
    handlers added by the host application are left alone.

    Args:
        level: Root log level name (default: settings.log_level)
        log_format: "text" or "json" (default: settings.log_format)
        stream: Output stream (default: sys.stdout)

    Returns:
        The installed handler

    Raises:
        ValueError: If the level name is unknown
    """
    level_name = level or settings.log_level
    format_name = (log_format or settings.log_format).lower()

    handler = _EngineHandler(stream or sys.stdout)
    handler.addFilter(CorrelationIdFilter())
    if format_name == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))

    root = logging.getLogger()
    for previous in [h for h in root.handlers if isinstance(h, _EngineHandler)]:
        root.removeHandler(previous)
    root.addHandler(handler)
    root.setLevel(_get_log_level(level_name))

    logging.getLogger(__name__).debug(f"Logging configured: level={level_name}, format={format_name}")
    return handler


def _get_log_level(name: str) -> int:
    """Resolve a level name such as "info" or " WARN " to its number."""
    level = logging.getLevelName(name.strip().upper())
    if not isinstance(level, int):
        raise ValueError(f"Invalid log level: '{name}'")
    return level


def _json_default(value: Any) -> str:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)
