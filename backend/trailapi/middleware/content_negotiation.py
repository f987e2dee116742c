"""
Trail API Backend — Accept Header Gate
=======================================

What:  Rejects resource requests whose `Accept` header rules out JSON.
Why:   Every resource route answers with JSON only. A client that cannot take
       JSON gets 406 before its body is parsed or its token is verified.
How:   Parses the comma-separated media ranges, drops parameters (`;q=...`),
       and lets the request through when any range is `*/*` or
       `application/json`. A missing header is treated as `*/*`.

Scope:
    Only the resource paths (/trails, /trailheads, /users and below). Health,
    login and the OpenAPI docs are not gated.
"""

import logging
from typing import Iterable, List

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from trailapi.middleware.request_id import request_id_var
from trailapi.resources import REGISTRY

logger = logging.getLogger(__name__)

ACCEPTABLE_MEDIA_RANGES = {"*/*", "application/json"}


def media_ranges(header: str) -> List[str]:
    """`"text/html;q=0.9, application/json"` → `["text/html", "application/json"]`"""
    ranges = []
    for part in header.split(","):
        media = part.split(";", 1)[0].strip().lower()
        if media:
            ranges.append(media)
    return ranges


def accepts_json(header: str) -> bool:
    if not header.strip():
        return True
    return any(media in ACCEPTABLE_MEDIA_RANGES for media in media_ranges(header))


class AcceptHeaderMiddleware(BaseHTTPMiddleware):
    """
    Returns 406 Not Acceptable for resource requests that refuse JSON.

    Response on refusal:
        HTTP 406, same JSON error shape as the exception handlers.
    """

    def __init__(self, app, prefixes: Iterable[str] = ()):
        super().__init__(app)
        self._prefixes = tuple(prefixes) or tuple(
            f"/{descriptor.segment}" for descriptor in REGISTRY.values()
        )

    def _is_gated(self, path: str) -> bool:
        return any(
            path == prefix or path.startswith(prefix + "/") for prefix in self._prefixes
        )

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if not self._is_gated(request.url.path):
            return await call_next(request)

        accept = request.headers.get("Accept")
        if accept is None or accepts_json(accept):
            return await call_next(request)

        rid = request_id_var.get("")
        logger.warning(
            "[%s] Not acceptable: %s %s Accept=%r",
            rid,
            request.method,
            request.url.path,
            accept,
        )
        return JSONResponse(
            status_code=406,
            content={
                "error": "not_acceptable",
                "message": "This resource only responds with application/json",
                "details": {"accept": accept},
                "request_id": rid,
            },
        )
