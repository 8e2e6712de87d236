"""
HelpFlow Backend: Request ID Middleware
========================================

What:  Assigns a correlation id to each request, exposes it to every log record
       and returns it in the X-Request-ID response header.
How:   The id lives in a ContextVar; RequestIDLogFilter copies it onto each
       LogRecord so the root format can print %(request_id)s.
Who:   Applied to every request via Starlette middleware.
When:  Runs before RequestLoggingMiddleware.

Client-supplied ids are accepted so the dashboard can correlate its own error
reports with server logs. Error responses carry the same id in `request_id`.
"""

import logging
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests on one event loop each see their own id
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

# Upper bound on accepted client ids; longer values are replaced
_MAX_CLIENT_ID_LENGTH = 64


class RequestIDLogFilter(logging.Filter):
    """Adds `request_id` to every record ("-" outside a request)."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get("") or "-"
        return True


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Middleware that assigns a unique ID to each request for tracing.

    Behavior:
        1. Use the client's X-Request-ID header when present and reasonably short
        2. Otherwise generate a short UUID
        3. Store it in the ContextVar (loggers, exception handlers)
           and in request.state (route handlers)
        4. Echo it in the response headers
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get("X-Request-ID", "")
        if not rid or len(rid) > _MAX_CLIENT_ID_LENGTH:
            rid = str(uuid.uuid4())[:8]

        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)

        response.headers["X-Request-ID"] = rid
        return response
