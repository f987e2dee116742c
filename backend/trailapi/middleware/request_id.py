"""
Trail API Backend — Request ID Middleware
==========================================

What:  Tags every request with a short correlation id.
Why:   The access log, service warnings and error bodies all carry the same
       id, so one failing call can be followed through the logs.
How:   Reuses the client's `X-Request-ID` when present, otherwise generates
       one. The id lives in a ContextVar for loggers and exception handlers,
       in `request.state` for route handlers, and goes back in the response
       header.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests on one event loop each see their own id
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

REQUEST_ID_HEADER = "X-Request-ID"


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Assigns `X-Request-ID` to each request and echoes it on the response."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        # 8 hex chars are enough to correlate log lines
        rid = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:8]

        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)

        response.headers[REQUEST_ID_HEADER] = rid
        return response
