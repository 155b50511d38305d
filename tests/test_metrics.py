"""Tests for the MetricsCollector facade."""

from prometheus_client import REGISTRY

from chathub.managers.connection_registry import ConnectionRegistry
from chathub.utils.metrics import MetricsCollector
from tests.mocks.websocket_mocks import create_mock_hub_connection


def sample(name: str, **labels) -> float:
    return REGISTRY.get_sample_value(name, labels) or 0.0


def test_record_invocation():
    before = sample(
        "hub_invocations_total", target="MetricsTest", status="error"
    )

    MetricsCollector.record_invocation("MetricsTest", "error", 0.01)

    assert (
        sample("hub_invocations_total", target="MetricsTest", status="error")
        == before + 1
    )
    assert sample(
        "hub_invocation_duration_seconds_count", target="MetricsTest"
    ) >= 1


def test_record_connection_rejected():
    before = sample("hub_connections_total", status="rejected_handshake")

    MetricsCollector.record_connection_rejected("handshake")

    assert (
        sample("hub_connections_total", status="rejected_handshake")
        == before + 1
    )


def test_active_gauge_follows_registry():
    registry = ConnectionRegistry()
    before = sample("hub_connections_active")

    registry.register(create_mock_hub_connection("m1"))
    registry.register(create_mock_hub_connection("m1"))
    assert sample("hub_connections_active") == before + 1

    registry.unregister("m1")
    registry.unregister("m1")
    assert sample("hub_connections_active") == before
