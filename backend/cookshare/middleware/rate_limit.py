"""
CookShare Backend — Rate Limiting Middleware
==============================================

What:  Per-client sliding-window limit on /api requests.
How:   Each client address keeps a deque of request times. Times older than
       `rate_limit_window` seconds are dropped; once `rate_limit_requests`
       remain, the request is answered with 429 and a Retry-After header.
Scope: Single process only. The counters are the only in-process mutable
       state of the service and are not shared between workers.
"""

import logging
import time
from collections import defaultdict, deque
from typing import Deque, Dict

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from cookshare.config import settings
from cookshare.middleware.request_id import request_id_var

logger = logging.getLogger(__name__)

LIMITED_PREFIX = "/api/"
# Sweep clients with no recent requests after this many tracked clients
SWEEP_THRESHOLD = 10_000


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, **kwargs):
        super().__init__(app, **kwargs)
        self._hits: Dict[str, Deque[float]] = defaultdict(deque)

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if not request.url.path.startswith(LIMITED_PREFIX):
            return await call_next(request)

        client = request.client.host if request.client else "unknown"
        now = time.monotonic()
        window = settings.rate_limit_window
        hits = self._hits[client]

        while hits and hits[0] <= now - window:
            hits.popleft()

        if len(hits) >= settings.rate_limit_requests:
            retry_after = int(hits[0] + window - now) + 1
            logger.warning(
                "Rate limit exceeded for %s: %d requests in %ds",
                client, len(hits), window,
            )
            return JSONResponse(
                status_code=429,
                content={
                    "error": "rate_limit_exceeded",
                    "message": f"Too many requests. Please wait {retry_after} seconds before retrying.",
                    "details": {"retry_after": retry_after},
                    "request_id": request_id_var.get(""),
                },
                headers={"Retry-After": str(retry_after)},
            )

        hits.append(now)
        if len(self._hits) > SWEEP_THRESHOLD:
            self._sweep(now - window)

        return await call_next(request)

    def _sweep(self, window_start: float) -> None:
        idle = [c for c, h in self._hits.items() if not h or h[-1] <= window_start]
        for client in idle:
            del self._hits[client]
        logger.debug("Dropped rate-limit state for %d idle clients", len(idle))
