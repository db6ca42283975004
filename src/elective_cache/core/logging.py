"""
JSON logging shared by the cache, the realtime listener and the API.
Why: one machine-readable line per event, same shape everywhere.
"""

import json
import logging
from typing import Any, Dict, Tuple

# Context passed through ``extra=``; emitted only when set.
CONTEXT_FIELDS: Tuple[str, ...] = (
    "cache_key",
    "cache_op",
    "ttl_class",
    "ttl_ms",
    "table",
    "event_type",
    "removed",
    "request_id",
    "path",
    "status",
    "duration_ms",
    "cache_misses",
)


class _JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                payload[field] = value
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def setup_logging(level: int = logging.INFO) -> None:
    root = logging.getLogger()
    if any(isinstance(h, logging.StreamHandler) for h in root.handlers):
        return
    handler = logging.StreamHandler()
    handler.setFormatter(_JsonFormatter())
    root.setLevel(level)
    root.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
