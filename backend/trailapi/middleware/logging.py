"""
Trail API Backend — Access Log Middleware
==========================================

What:  One log line per request: method, path, status, duration, request id.
Why:   4xx refusals (401/403/406) are the normal way this API says no; the
       access log is where a burst of them shows up.
How:   Times the downstream call and logs on the `trailapi.access` logger.
       Level follows the status: ERROR for 5xx, WARNING for 4xx, INFO
       otherwise. `/health` is skipped.

Privacy:
    Bodies and the Authorization header are never logged; the bearer token
    is a live credential.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from trailapi.middleware.request_id import request_id_var

logger = logging.getLogger("trailapi.access")

UNLOGGED_PATHS = {"/health"}


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs method, path, status and duration of each request."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in UNLOGGED_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        client_ip = request.client.host if request.client else "unknown"
        rid = request_id_var.get("")

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000
        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        logger.log(
            log_level,
            "%s %s %d %.1fms [%s] from %s",
            request.method,
            path,
            status,
            duration_ms,
            rid,
            client_ip,
            extra={
                "request_id": rid,
                "method": request.method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )
        return response
