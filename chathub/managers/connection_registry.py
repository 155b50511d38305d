import threading

from chathub.logging import logger
from chathub.managers.connection import HubConnection
from chathub.utils.metrics import MetricsCollector


class ConnectionRegistry:
    """
    Authoritative set of live hub connections.

    Connections are keyed by their opaque connection id. Mutations and
    snapshots are guarded by a lock that is held only while the dict is
    touched, never while frames are delivered, so new clients can
    connect while a broadcast is in flight.

    One registry is created per application and stored on `app.state`.
    """

    def __init__(self) -> None:
        self._connections: dict[str, HubConnection] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._connections)

    def __contains__(self, connection_id: object) -> bool:
        with self._lock:
            return connection_id in self._connections

    def register(self, connection: HubConnection) -> None:
        """
        Add a connection. Called once the handshake succeeded.

        Args:
            connection: The connection to add.
        """
        with self._lock:
            is_new = connection.connection_id not in self._connections
            self._connections[connection.connection_id] = connection

        if is_new:
            MetricsCollector.record_connection_registered()

        logger.debug(
            f"Connection {connection.connection_id} added to registry"
        )

    def unregister(self, connection_id: str) -> HubConnection | None:
        """
        Remove a connection. Removing an absent connection is a no-op.

        Args:
            connection_id: Id of the connection to remove.

        Returns:
            The removed connection, or None if it was not registered.
        """
        with self._lock:
            connection = self._connections.pop(connection_id, None)

        if connection is None:
            return None

        MetricsCollector.record_connection_unregistered()
        logger.debug(f"Connection {connection_id} removed from registry")

        return connection

    def get(self, connection_id: str) -> HubConnection | None:
        """Get a live connection by id."""
        with self._lock:
            return self._connections.get(connection_id)

    def snapshot(self) -> list[HubConnection]:
        """
        All live connections at the time of the call.

        Returns:
            A new list that later registrations and removals do not affect.
        """
        with self._lock:
            return list(self._connections.values())
