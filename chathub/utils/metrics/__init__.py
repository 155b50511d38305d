"""
Prometheus metrics definitions and utilities.

All metrics are re-exported here:

    from chathub.utils.metrics import hub_connections_active

New code should prefer the MetricsCollector facade:

    from chathub.utils.metrics import MetricsCollector
    MetricsCollector.record_broadcast("ReceiveMessage")
"""

from chathub.utils.metrics._helpers import _get_or_create_gauge
from chathub.utils.metrics.collector import MetricsCollector
from chathub.utils.metrics.http import (
    http_request_duration_seconds,
    http_requests_in_progress,
    http_requests_total,
)
from chathub.utils.metrics.hub import (
    hub_broadcasts_total,
    hub_connections_active,
    hub_connections_total,
    hub_deliveries_dropped_total,
    hub_invocation_duration_seconds,
    hub_invocations_total,
    hub_protocol_errors_total,
)

app_info = _get_or_create_gauge(
    "app_info",
    "Application information",
    ["version", "python_version", "environment"],
)

__all__ = [
    "MetricsCollector",
    # HTTP metrics
    "http_requests_total",
    "http_request_duration_seconds",
    "http_requests_in_progress",
    # Hub metrics
    "hub_connections_active",
    "hub_connections_total",
    "hub_invocations_total",
    "hub_invocation_duration_seconds",
    "hub_broadcasts_total",
    "hub_deliveries_dropped_total",
    "hub_protocol_errors_total",
    # Application metrics
    "app_info",
]
