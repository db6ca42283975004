"""
FastAPI middleware for request_id + latency, with cache counters in the log line.
Why: a slow request next to a jump in cache misses is usually a cold key.
"""

import time
import uuid
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from .logging import get_logger
from .metrics import metrics

_LOG = get_logger(__name__)


class ObservabilityMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        misses_before = metrics.cache_misses
        start = time.perf_counter()
        response = None
        try:
            response = await call_next(request)
            return response
        finally:
            duration_ms = int((time.perf_counter() - start) * 1000)
            metrics.increment_requests()
            metrics.record_latency(duration_ms)
            if response is None or response.status_code >= 500:
                metrics.increment_errors()
            status = response.status_code if response is not None else "ERROR"
            _LOG.info(
                f"path={request.url.path} method={request.method} "
                f"status={status} duration_ms={duration_ms} "
                f"cache_misses={metrics.cache_misses - misses_before} "
                f"request_id={request_id}",
                extra={
                    "request_id": request_id,
                    "path": request.url.path,
                    "status": status,
                    "duration_ms": duration_ms,
                    "cache_misses": metrics.cache_misses - misses_before,
                },
            )
            if response is not None:
                response.headers["X-Request-ID"] = request_id
