"""JSON-lines log formatter carrying the run correlation context."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from .correlation import get_log_context

# Attributes every LogRecord carries; anything else came in through ``extra``.
_RESERVED_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys() | {"message", "asctime"}
)


class _DecimalEncoder(json.JSONEncoder):
    def default(self, o: Any) -> Any:
        if isinstance(o, Decimal):
            return str(o)
        return super().default(o)


class StructuredJSONFormatter(logging.Formatter):
    """Render each record as one JSON object with run context and extra fields."""

    SENSITIVE_KEYS = {"auth_token", "authorization", "token", "secret", "password"}

    def __init__(self, *, sort_keys: bool = True) -> None:
        super().__init__()
        self.sort_keys = sort_keys

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        log_entry.update(get_log_context())

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and key not in log_entry:
                log_entry[key] = value

        if record.exc_info and record.exc_info[0] is not None:
            exc_type, exc_value, _ = record.exc_info
            log_entry["exception"] = {"type": exc_type.__name__, "message": str(exc_value)}

        log_entry = {
            key: "[REDACTED]" if key.lower() in self.SENSITIVE_KEYS else value
            for key, value in log_entry.items()
        }
        return json.dumps(log_entry, sort_keys=self.sort_keys, cls=_DecimalEncoder, default=str)


__all__ = ["StructuredJSONFormatter"]
