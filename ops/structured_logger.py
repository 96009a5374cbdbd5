from __future__ import annotations

import json
import logging
import os
import sys
import time
from typing import Any, Dict

from utils.request_context import get_request_id

# Third-party loggers that emit a line per HTTP request or auth refresh.
_NOISY_LOGGERS = ("httpx", "httpcore", "google.auth", "urllib3")


class JsonFormatter(logging.Formatter):
    """One JSON object per line; fields passed as extra={"extra": {...}} are merged in."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "severity": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
            "time_unix": time.time(),
            "environment": os.getenv("ENVIRONMENT") or "",
            "revision": os.getenv("K_REVISION") or "",
        }
        rid = get_request_id()
        if rid:
            payload["request_id"] = rid
        fields = getattr(record, "extra", None)
        if isinstance(fields, dict):
            payload.update(fields)
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        # Pydantic values and dates fall back to str().
        return json.dumps(payload, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO") -> None:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())
    root = logging.getLogger()
    root.setLevel(level.upper())
    root.handlers[:] = [handler]
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
