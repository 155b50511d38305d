"""
Prometheus metrics for hub connections, invocations and broadcasts.
"""

from chathub.utils.metrics._helpers import (
    _get_or_create_counter,
    _get_or_create_gauge,
    _get_or_create_histogram,
)

hub_connections_active = _get_or_create_gauge(
    "hub_connections_active", "Number of registered hub connections"
)

hub_connections_total = _get_or_create_counter(
    "hub_connections_total",
    "Total hub connection attempts",
    ["status"],  # accepted, rejected_handshake
)

hub_invocations_total = _get_or_create_counter(
    "hub_invocations_total",
    "Total hub method invocations",
    ["target", "status"],  # status: ok, error, unknown
)

hub_invocation_duration_seconds = _get_or_create_histogram(
    "hub_invocation_duration_seconds",
    "Hub method invocation duration in seconds",
    ["target"],
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0),
)

hub_broadcasts_total = _get_or_create_counter(
    "hub_broadcasts_total",
    "Total broadcast dispatches",
    ["target"],
)

hub_deliveries_dropped_total = _get_or_create_counter(
    "hub_deliveries_dropped_total",
    "Broadcast frames that could not be queued for a recipient",
)

hub_protocol_errors_total = _get_or_create_counter(
    "hub_protocol_errors_total",
    "Sessions closed because of malformed hub messages",
)


__all__ = [
    "hub_connections_active",
    "hub_connections_total",
    "hub_invocations_total",
    "hub_invocation_duration_seconds",
    "hub_broadcasts_total",
    "hub_deliveries_dropped_total",
    "hub_protocol_errors_total",
]
