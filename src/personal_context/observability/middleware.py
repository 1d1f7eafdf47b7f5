"""Request ID middleware for HTTP request tracing.

Every response carries an ``X-Request-ID`` header and the ID is bound into
structlog contextvars for the request, together with the ``user_id`` query
parameter when the route is keyed by user.  Handlers read the same ID from
``request.state.request_id`` so ids returned in response bodies match the
request's log lines.
"""

from __future__ import annotations

import re
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"

# Client-supplied ids end up in logs and response headers
_CLIENT_ID_PATTERN = re.compile(r"^[A-Za-z0-9._-]{1,64}$")


def resolve_request_id(header_value: str | None) -> str:
    """Return the client's request ID if well-formed, else a fresh UUID4."""
    if header_value and _CLIENT_ID_PATTERN.match(header_value):
        return header_value
    return str(uuid.uuid4())


def get_request_id(request: Request) -> str:
    """Return the ID bound by ``RequestIdMiddleware``, or a fresh one outside it."""
    request_id = getattr(request.state, "request_id", None)
    if request_id is None:
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
    return request_id


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Attach a request ID to every request/response cycle and its log context."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        request.state.request_id = request_id

        structlog.contextvars.clear_contextvars()
        context = {"request_id": request_id, "service": "personal-context"}
        user_id = request.query_params.get("user_id")
        if user_id:
            context["user_id"] = user_id
        structlog.contextvars.bind_contextvars(**context)

        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
