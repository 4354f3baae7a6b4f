"""
Structured JSON Logging
-----------------------
Every log line is a single JSON object on stdout:

  - timestamp   ISO-8601, UTC
  - level       DEBUG | INFO | WARNING | ERROR
  - logger      module path
  - message     the event name
  - **fields    structured data passed via `extra=`

Credentials are never passed as fields; log the model id and status instead.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from docsum.core.config import get_settings

# Attributes every LogRecord carries; anything else came in through `extra=`.
_RESERVED_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__
) | {"message", "asctime", "taskName"}


class JSONFormatter(logging.Formatter):
    """Emit each log record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                payload[key] = value

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str)


def get_logger(name: str) -> logging.Logger:
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JSONFormatter())
        logger.addHandler(handler)
        logger.setLevel(get_settings().log_level.upper())
        logger.propagate = False
    return logger


def log_event(
    logger: logging.Logger,
    event: str,
    *,
    request_id: str | None = None,
    level: int = logging.INFO,
    **fields: Any,
) -> None:
    """Emit `event` with a consistent shape; request_id is added when known."""
    if request_id is not None:
        fields["request_id"] = request_id
    logger.log(level, event, extra=fields)
