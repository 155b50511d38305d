"""
Middleware for injecting contextual fields into structured logs.
"""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from chathub.logging import clear_log_context, set_log_context


class LoggingContextMiddleware(BaseHTTPMiddleware):  # type: ignore[misc]
    """
    Adds endpoint, method and status_code to the log context of every
    HTTP request and clears it once the response is produced.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        set_log_context(
            endpoint=request.url.path,
            method=request.method,
        )

        try:
            response = await call_next(request)
            set_log_context(status_code=response.status_code)
            return response
        finally:
            clear_log_context()
