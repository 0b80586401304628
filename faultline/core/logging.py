from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

from faultline.utils.request_id import get_request_id


_RECORD_FIELDS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__
) | {"message", "asctime"}


class JsonFormatter(logging.Formatter):
    """One JSON object per record, carrying the request id and structured ``extra``.

    Exceptions are split into type, message and traceback so failure events
    can be grouped by exception type.
    """

    def __init__(self, service: str = "faultline") -> None:
        super().__init__()
        self.service = service

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "service": self.service,
            "logger": record.name,
            "message": record.getMessage(),
        }
        request_id = get_request_id()
        if request_id:
            payload["request_id"] = request_id
        if record.exc_info and record.exc_info[1] is not None:
            exc_type, exc_value, _ = record.exc_info
            payload["exception"] = {
                "type": exc_type.__name__ if exc_type else None,
                "message": str(exc_value),
                "traceback": self.formatException(record.exc_info),
            }
        for key, value in record.__dict__.items():
            if key in _RECORD_FIELDS or key.startswith("_"):
                continue
            payload[key] = value
        return json.dumps(payload, default=str)


def configure_logging(level: str, *, service: str = "faultline") -> None:
    logging.basicConfig(level=level)
    root = logging.getLogger()
    for handler in root.handlers:
        handler.setFormatter(JsonFormatter(service))
