"""
Mock factory functions for websocket and hub testing.
"""

from unittest.mock import AsyncMock, MagicMock

from starlette.websockets import WebSocketState


def create_mock_websocket():
    """
    Creates a mock WebSocket connection with common methods.

    Returns:
        MagicMock: Mocked WebSocket instance
    """
    from fastapi import WebSocket

    ws_mock = MagicMock(spec=WebSocket)

    # Send operations
    ws_mock.send_text = AsyncMock()
    ws_mock.send_json = AsyncMock()

    # Receive operations
    ws_mock.receive = AsyncMock()
    ws_mock.receive_text = AsyncMock(return_value="")

    # Connection lifecycle
    ws_mock.accept = AsyncMock()
    ws_mock.close = AsyncMock()

    # State and headers
    ws_mock.client_state = WebSocketState.CONNECTED
    ws_mock.application_state = WebSocketState.CONNECTED
    ws_mock.headers = {}
    ws_mock.query_params = {}

    return ws_mock


def create_mock_hub_connection(connection_id: str):
    """
    Creates a mock HubConnection for registry tests.

    Args:
        connection_id: Id the mock reports.

    Returns:
        MagicMock: Mocked HubConnection instance
    """
    from chathub.managers.connection import HubConnection

    connection_mock = MagicMock(spec=HubConnection)
    connection_mock.connection_id = connection_id
    connection_mock.enqueue = MagicMock(return_value=True)

    return connection_mock


def sent_frames(ws_mock) -> list[str]:
    """Text frames a mocked websocket was asked to send, in order."""
    return [call.args[0] for call in ws_mock.send_text.await_args_list]
