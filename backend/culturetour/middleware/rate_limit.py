"""
CultureTour Backend — Rate Limiting Middleware
===============================================

What:  Per-IP sliding window limiter (RATE_LIMIT_REQUESTS per
       RATE_LIMIT_WINDOW seconds).
How:   Each IP keeps a deque of request timestamps; expired entries are
       dropped from the left on every request. Over the limit the request is
       answered with 429, a Retry-After header and the standard error body.

State is per process. Several uvicorn workers each count separately.
"""

import logging
import time
from collections import defaultdict, deque
from typing import Deque, Dict

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from culturetour.config import settings
from culturetour.middleware.request_id import request_id_var

logger = logging.getLogger(__name__)

EXCLUDED_PATHS = {"/health", "/docs", "/openapi.json", "/redoc"}
SWEEP_EVERY = 1000


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, max_requests: int = None, window_seconds: int = None):
        super().__init__(app)
        self.max_requests = max_requests or settings.rate_limit_requests
        self.window_seconds = window_seconds or settings.rate_limit_window
        self._hits: Dict[str, Deque[float]] = defaultdict(deque)
        self._seen = 0

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in EXCLUDED_PATHS:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        now = time.monotonic()
        window_start = now - self.window_seconds

        hits = self._hits[client_ip]
        while hits and hits[0] <= window_start:
            hits.popleft()

        if len(hits) >= self.max_requests:
            retry_after = int(hits[0] + self.window_seconds - now) + 1
            logger.warning(
                "Rate limit exceeded for %s: %d requests in %ds",
                client_ip,
                len(hits),
                self.window_seconds,
            )
            return JSONResponse(
                status_code=429,
                content={
                    "success": False,
                    "error": "rate_limit_exceeded",
                    "message": f"Too many requests. Please retry in {retry_after} seconds.",
                    "details": {"retry_after": retry_after},
                    "request_id": request_id_var.get() or None,
                },
                headers={"Retry-After": str(retry_after)},
            )

        hits.append(now)
        self._seen += 1
        if self._seen % SWEEP_EVERY == 0:
            self._sweep(window_start)
        return await call_next(request)

    def _sweep(self, window_start: float) -> None:
        """Forget IPs whose newest request is outside the window."""
        idle = [ip for ip, hits in self._hits.items() if not hits or hits[-1] <= window_start]
        for ip in idle:
            del self._hits[ip]
        if idle:
            logger.debug("Dropped rate-limit state for %d idle clients", len(idle))
