"""
Mosaic Backend — Request ID Middleware
========================================

What:  Tags every request with a short correlation ID and echoes it back in
       the X-Request-ID response header.
How:   Uses the caller's X-Request-ID when present, otherwise the first 8
       characters of a UUID4. The ID lives in a ContextVar so loggers and
       exception handlers can read it without access to the request.

Error bodies carry the same ID in their `request_id` field.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"

# Coroutine-local; concurrent requests share the event loop thread
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


def new_request_id() -> str:
    return uuid.uuid4().hex[:8]


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Assigns the correlation ID before any other middleware runs."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get(REQUEST_ID_HEADER) or new_request_id()
        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = rid
        return response
