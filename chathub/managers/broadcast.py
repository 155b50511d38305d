from typing import Any

from chathub.api.ws.protocol import HubProtocol, JSONHubProtocol
from chathub.constants import RECEIVE_MESSAGE_TARGET
from chathub.logging import logger
from chathub.managers.connection_registry import ConnectionRegistry
from chathub.schemas.hub import InvocationMessage
from chathub.utils.metrics import MetricsCollector


class BroadcastDispatcher:
    """
    Fan-out of client method invocations to every registered connection.

    Each dispatch works on a snapshot of the registry and only queues the
    encoded frame on every connection, delivery itself happens in the
    connections' writer tasks. Delivery is best-effort: a recipient that
    is closed or whose queue is full is skipped and the rest still get
    the frame.
    """

    def __init__(
        self,
        registry: ConnectionRegistry,
        protocol: HubProtocol | None = None,
    ) -> None:
        self.registry = registry
        self.protocol = protocol or JSONHubProtocol()

    def broadcast(self, target: str, *arguments: Any) -> int:
        """
        Invoke `target(*arguments)` on every live client.

        Args:
            target: Client-side method name.
            *arguments: Arguments passed through unchanged.

        Returns:
            Number of connections the frame was queued for. When called
            outside the event loop of the connections this counts frames
            handed over to that loop, see HubConnection.enqueue().
        """
        connections = self.registry.snapshot()
        MetricsCollector.record_broadcast(target)

        if not connections:
            return 0

        # Encode once, every recipient gets the same frame
        frame = self.protocol.write_message(
            InvocationMessage(target=target, arguments=list(arguments))
        )

        queued = 0
        for connection in connections:
            try:
                if connection.enqueue(frame):
                    queued += 1
                    continue
            except RuntimeError as e:
                # Event loop of the connection is already closed
                logger.warning(
                    f"Failed to queue {target} for connection "
                    f"{connection.connection_id}: {e}"
                )

            MetricsCollector.record_delivery_dropped()
            logger.debug(
                f"Skipped {target} for connection {connection.connection_id}"
            )

        logger.debug(
            f"Broadcast {target} queued for {queued}/{len(connections)} connections"
        )

        return queued

    def send_message(self, user: str, message: str) -> int:
        """
        Deliver a chat message to every live client, the sender included.

        Args:
            user: Sender-supplied user name.
            message: Sender-supplied message text.

        Returns:
            Number of connections the message was queued for.
        """
        return self.broadcast(RECEIVE_MESSAGE_TARGET, user, message)
