"""
Tests for the broadcast dispatcher.

This module tests fan-out to registry members, best-effort delivery and
concurrent use of the registry and dispatcher.
"""

import asyncio
import json

import pytest

from chathub.constants import RECORD_SEPARATOR
from chathub.managers.broadcast import BroadcastDispatcher
from chathub.managers.connection import HubConnection
from chathub.managers.connection_registry import ConnectionRegistry
from tests.mocks.websocket_mocks import (
    create_mock_hub_connection,
    create_mock_websocket,
    sent_frames,
)


def decode_frames(websocket) -> list[dict]:
    return [
        json.loads(frame.rstrip(RECORD_SEPARATOR))
        for frame in sent_frames(websocket)
    ]


async def open_connection(registry: ConnectionRegistry) -> HubConnection:
    connection = HubConnection(create_mock_websocket())
    connection.start()
    registry.register(connection)
    return connection


class TestBroadcastDispatcher:
    """Tests for BroadcastDispatcher class."""

    def test_send_message_without_connections(self):
        dispatcher = BroadcastDispatcher(ConnectionRegistry())

        assert dispatcher.send_message("Alice", "hi") == 0

    def test_send_message_frame(self):
        registry = ConnectionRegistry()
        connection = create_mock_hub_connection("c1")
        registry.register(connection)

        queued = BroadcastDispatcher(registry).send_message("Alice", "hi")

        assert queued == 1
        frame = connection.enqueue.call_args.args[0]
        assert frame.endswith(RECORD_SEPARATOR)
        assert json.loads(frame.rstrip(RECORD_SEPARATOR)) == {
            "type": 1,
            "target": "ReceiveMessage",
            "arguments": ["Alice", "hi"],
        }

    def test_content_is_passed_through_unchanged(self):
        registry = ConnectionRegistry()
        connection = create_mock_hub_connection("c1")
        registry.register(connection)
        message = "<b>" + "x" * 100_000 + "</b> ünïcode ☃"

        BroadcastDispatcher(registry).send_message("", message)

        frame = connection.enqueue.call_args.args[0]
        assert json.loads(frame.rstrip(RECORD_SEPARATOR))["arguments"] == [
            "",
            message,
        ]

    def test_closed_recipient_does_not_fail_broadcast(self):
        registry = ConnectionRegistry()
        closed = create_mock_hub_connection("closed")
        closed.enqueue.return_value = False
        broken = create_mock_hub_connection("broken")
        broken.enqueue.side_effect = RuntimeError("Event loop is closed")
        live = create_mock_hub_connection("live")
        for connection in (closed, broken, live):
            registry.register(connection)

        queued = BroadcastDispatcher(registry).send_message("Bob", "yo")

        assert queued == 1
        live.enqueue.assert_called_once()

    @pytest.mark.asyncio
    async def test_every_connection_receives_exactly_one_event(self):
        registry = ConnectionRegistry()
        dispatcher = BroadcastDispatcher(registry)
        connections = [await open_connection(registry) for _ in range(5)]

        assert dispatcher.send_message("Alice", "hi") == 5

        for connection in connections:
            await connection.drain(timeout=1)
            assert decode_frames(connection.websocket) == [
                {
                    "type": 1,
                    "target": "ReceiveMessage",
                    "arguments": ["Alice", "hi"],
                }
            ]
            await connection.close()

    @pytest.mark.asyncio
    async def test_unregistered_connection_receives_nothing(self):
        registry = ConnectionRegistry()
        dispatcher = BroadcastDispatcher(registry)
        gone = await open_connection(registry)
        stays = await open_connection(registry)

        registry.unregister(gone.connection_id)
        await gone.close()
        dispatcher.send_message("Bob", "yo")

        await stays.drain(timeout=1)
        assert len(sent_frames(stays.websocket)) == 1
        gone.websocket.send_text.assert_not_awaited()
        await stays.close()

    @pytest.mark.asyncio
    async def test_concurrent_connects_and_sends(self):
        """
        Connections joining and messages sent from many threads at once
        leave the registry intact and reach every stable connection.
        """
        registry = ConnectionRegistry()
        dispatcher = BroadcastDispatcher(registry)
        message_count = 25

        stable = [await open_connection(registry) for _ in range(10)]
        joining = [HubConnection(create_mock_websocket()) for _ in range(30)]
        for connection in joining:
            connection.start()

        results = await asyncio.gather(
            *[asyncio.to_thread(registry.register, c) for c in joining],
            *[
                asyncio.to_thread(
                    dispatcher.send_message, "user", f"message {i}"
                )
                for i in range(message_count)
            ],
        )

        assert len(registry) == 40
        assert all(
            isinstance(queued, int) for queued in results[len(joining) :]
        )

        expected = {f"message {i}" for i in range(message_count)}
        for connection in stable:
            await connection.drain(timeout=5)
            received = [
                frame["arguments"][1]
                for frame in decode_frames(connection.websocket)
            ]
            assert len(received) == message_count
            assert set(received) == expected

        for connection in stable + joining:
            await connection.close()
