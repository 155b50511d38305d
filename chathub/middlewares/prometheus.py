"""
Prometheus metrics middleware for HTTP requests.

Websocket traffic is not seen here, hub metrics are recorded by the hub
endpoint through MetricsCollector.
"""

import time

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from chathub.utils.metrics import (
    http_request_duration_seconds,
    http_requests_in_progress,
    http_requests_total,
)


class PrometheusMiddleware(BaseHTTPMiddleware):  # type: ignore[misc]
    """
    Middleware to track Prometheus metrics for HTTP requests.

    Tracks the following metrics:
    - http_requests_total: Counter of total requests by method, endpoint, and status
    - http_request_duration_seconds: Histogram of request durations
    - http_requests_in_progress: Gauge of in-progress requests
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        method = request.method
        path = request.url.path

        http_requests_in_progress.labels(method=method, endpoint=path).inc()
        start_time = time.time()
        status_code = 500

        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            http_request_duration_seconds.labels(
                method=method, endpoint=path
            ).observe(time.time() - start_time)
            http_requests_total.labels(
                method=method, endpoint=path, status_code=status_code
            ).inc()
            http_requests_in_progress.labels(
                method=method, endpoint=path
            ).dec()
