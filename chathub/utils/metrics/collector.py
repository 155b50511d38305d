"""
Facade for centralized metrics emission.

Provides high-level methods for recording metrics without exposing
Prometheus implementation details to the rest of the codebase.
"""


class MetricsCollector:
    """
    Centralized facade for hub Prometheus metrics.

    All methods are static for easy use without instantiation.
    """

    # ========== Connection Metrics ==========

    @staticmethod
    def record_connection_accepted() -> None:
        """Record a connection that completed the handshake."""
        from chathub.utils.metrics import hub_connections_total

        hub_connections_total.labels(status="accepted").inc()

    @staticmethod
    def record_connection_rejected(reason: str) -> None:
        """
        Record a rejected connection.

        Args:
            reason: Rejection reason, e.g. 'handshake'.
        """
        from chathub.utils.metrics import hub_connections_total

        hub_connections_total.labels(status=f"rejected_{reason}").inc()

    @staticmethod
    def record_connection_registered() -> None:
        """Record a connection joining the registry."""
        from chathub.utils.metrics import hub_connections_active

        hub_connections_active.inc()

    @staticmethod
    def record_connection_unregistered() -> None:
        """Record a connection leaving the registry."""
        from chathub.utils.metrics import hub_connections_active

        hub_connections_active.dec()

    # ========== Invocation Metrics ==========

    @staticmethod
    def record_invocation(target: str, status: str, duration: float) -> None:
        """
        Record a hub method invocation.

        Args:
            target: Invocation target name.
            status: One of 'ok', 'error', 'unknown'.
            duration: Processing duration in seconds.
        """
        from chathub.utils.metrics import (
            hub_invocation_duration_seconds,
            hub_invocations_total,
        )

        hub_invocations_total.labels(target=target, status=status).inc()
        hub_invocation_duration_seconds.labels(target=target).observe(
            duration
        )

    @staticmethod
    def record_protocol_error() -> None:
        """Record a session closed for a malformed message."""
        from chathub.utils.metrics import hub_protocol_errors_total

        hub_protocol_errors_total.inc()

    # ========== Broadcast Metrics ==========

    @staticmethod
    def record_broadcast(target: str) -> None:
        """Record one broadcast dispatch."""
        from chathub.utils.metrics import hub_broadcasts_total

        hub_broadcasts_total.labels(target=target).inc()

    @staticmethod
    def record_delivery_dropped() -> None:
        """Record a frame that could not be queued for a recipient."""
        from chathub.utils.metrics import hub_deliveries_dropped_total

        hub_deliveries_dropped_total.inc()
