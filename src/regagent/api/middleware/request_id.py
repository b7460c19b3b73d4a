"""Request ID middleware and log correlation.

Every response carries an X-Request-ID header. A client-supplied ID is
kept; otherwise a new UUID is generated. The ID is available to handlers
through get_request_id() and to log formatters as %(request_id)s once
RequestIDLogFilter is installed on a handler.
"""

import logging
import uuid
from collections.abc import Callable
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)

REQUEST_ID_HEADER = "X-Request-ID"

# Client-supplied IDs longer than this are replaced
MAX_REQUEST_ID_LENGTH = 128


def get_request_id() -> str | None:
    """Get the request ID of the current request, None outside a request."""
    return request_id_ctx.get()


class RequestIDLogFilter(logging.Filter):
    """Adds the current request ID (or "-") to every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id() or "-"
        return True


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Ensures every request has an X-Request-ID, echoed on the response."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Response]
    ) -> Response:
        incoming = request.headers.get(REQUEST_ID_HEADER, "").strip()
        if not incoming or len(incoming) > MAX_REQUEST_ID_LENGTH:
            incoming = str(uuid.uuid4())

        token = request_id_ctx.set(incoming)
        try:
            response = await call_next(request)
        finally:
            request_id_ctx.reset(token)

        response.headers[REQUEST_ID_HEADER] = incoming
        return response
