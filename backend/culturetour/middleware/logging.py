"""
CultureTour Backend — Access Log Middleware
============================================

What:  One log line per request on the `culturetour.access` logger.
How:   Method, path, status, duration and request id; the level follows the
       status class (5xx ERROR, 4xx WARNING, otherwise INFO).

Request bodies are never logged: they carry passwords and image bytes.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from culturetour.middleware.request_id import request_id_var

logger = logging.getLogger("culturetour.access")

QUIET_PATHS = {"/health"}


def level_for_status(status: int) -> int:
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

        client_ip = request.client.host if request.client else "unknown"
        rid = request_id_var.get() or getattr(request.state, "request_id", "")
        logger.log(
            level_for_status(response.status_code),
            "%s %s -> %d in %.1fms [%s] %s",
            request.method,
            path,
            response.status_code,
            duration_ms,
            rid,
            client_ip,
        )
        return response
