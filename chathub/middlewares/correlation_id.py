"""
Correlation ID tracking for HTTP requests and hub connections.

HTTP requests get their ID from the middleware below, websocket
connections set it from the upgrade request in the hub endpoint.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

# Context variable for storing correlation ID per request/connection
correlation_id: ContextVar[str] = ContextVar("correlation_id", default="")

CORRELATION_ID_HEADER = "X-Correlation-ID"
CORRELATION_ID_LENGTH = 8


def resolve_correlation_id(header_value: str | None) -> str:
    """
    Return the 8-char correlation ID from a header value, or a new one.

    Args:
        header_value: Value of the X-Correlation-ID header, if any.

    Returns:
        Correlation ID limited to 8 characters.
    """
    cid = header_value or str(uuid.uuid4())
    return cid[:CORRELATION_ID_LENGTH]


class CorrelationIDMiddleware(BaseHTTPMiddleware):  # type: ignore[misc]
    """
    Middleware to add correlation IDs to requests for distributed tracing.

    This middleware:
    - Extracts correlation ID from X-Correlation-ID header or generates one
    - Stores it in request.state.request_id and in a context variable
    - Adds it to the response headers
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        cid = resolve_correlation_id(
            request.headers.get(CORRELATION_ID_HEADER)
        )

        request.state.request_id = cid
        correlation_id.set(cid)

        response = await call_next(request)
        response.headers[CORRELATION_ID_HEADER] = cid

        return response


def get_correlation_id() -> str:
    """
    Get the correlation ID for the current context.

    Returns:
        The correlation ID string, or empty string if not set.
    """
    return correlation_id.get()
