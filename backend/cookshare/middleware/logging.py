"""
CookShare Backend — Access Log Middleware
===========================================

What:  One log line per API request on the `cookshare.access` logger:
       method, path, status, duration, request ID, client address.
How:   Level follows the status class so 4xx/5xx can be alerted on:

       ┌─────────┬─────────┐
       │ 5xx     │ ERROR   │
       │ 4xx     │ WARNING │
       │ other   │ INFO    │
       └─────────┴─────────┘

Privacy:
    Request bodies are never logged; they carry user ids and recipe text.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from cookshare.middleware.request_id import request_id_var

logger = logging.getLogger("cookshare.access")

# Probed every few seconds by orchestrators
QUIET_PATHS = frozenset({"/health"})


def _level_for(status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in QUIET_PATHS:
            return await call_next(request)

        started = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - started) * 1000

        client = request.client.host if request.client else "unknown"
        rid = request_id_var.get("")
        logger.log(
            _level_for(response.status_code),
            "%s %s %d %.1fms [%s] from %s",
            request.method,
            path,
            response.status_code,
            duration_ms,
            rid,
            client,
            extra={
                "request_id": rid,
                "method": request.method,
                "path": path,
                "status": response.status_code,
                "duration_ms": round(duration_ms, 2),
            },
        )
        return response
