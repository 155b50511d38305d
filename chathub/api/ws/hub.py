from typing import Any

from starlette import status
from starlette.endpoints import WebSocketEndpoint
from starlette.types import Receive, Scope, Send
from starlette.websockets import WebSocket, WebSocketState

from chathub.api.ws.protocol import (
    HubProtocol,
    JSONHubProtocol,
    parse_handshake_request,
    select_hub_protocol,
    write_handshake_response,
)
from chathub.constants import WS_KEEPALIVE_INTERVAL_SECONDS
from chathub.exceptions import HandshakeError, HubProtocolError
from chathub.logging import clear_log_context, logger, set_log_context
from chathub.managers.connection import HubConnection
from chathub.middlewares.correlation_id import (
    CORRELATION_ID_HEADER,
    correlation_id,
    resolve_correlation_id,
)
from chathub.routing import HubCallerContext, HubMethodRouter, hub_router
from chathub.schemas.hub import CloseMessage, InvocationMessage, PingMessage
from chathub.settings import app_settings
from chathub.utils.metrics import MetricsCollector


class HubWebSocketEndpoint(WebSocketEndpoint):  # type: ignore[misc]
    """
    Websocket endpoint speaking the hub protocol.

    Connection lifecycle:
    1. The socket is accepted and the endpoint waits for the handshake.
    2. On a valid handshake the connection is created, its writer and
       keep-alive pings started and it is added to the application's
       ConnectionRegistry.
    3. Every text frame is split into hub messages: invocations are routed
       through `method_router`, pings are ignored, a close message ends
       the session.
    4. On disconnect the connection is always removed from the registry
       and its writer stopped.

    Malformed messages end the session with a close message carrying the
    error, followed by a websocket close with code 1003.
    """

    encoding = None  # Frames are decoded in decode(), binary is rejected
    method_router: HubMethodRouter = hub_router

    def __init__(self, scope: Scope, receive: Receive, send: Send) -> None:
        super().__init__(scope, receive, send)
        self.connection: HubConnection | None = None
        self.protocol: HubProtocol | None = None
        self.session_closed = False
        self.close_code = status.WS_1000_NORMAL_CLOSURE

    @property
    def registry(self):
        return self.scope["app"].state.registry

    @property
    def dispatcher(self):
        return self.scope["app"].state.dispatcher

    async def dispatch(self) -> None:
        """
        Run the receive loop of one connection.

        on_disconnect() runs whatever ends the loop: a client disconnect,
        the server closing the session, or an unexpected error (which is
        re-raised after cleanup with close code 1011).
        """
        websocket = WebSocket(self.scope, receive=self.receive, send=self.send)
        await self.on_connect(websocket)

        close_code = status.WS_1000_NORMAL_CLOSURE

        try:
            while True:
                if self.session_closed:
                    close_code = self.close_code
                    break

                message = await websocket.receive()
                if message["type"] == "websocket.receive":
                    data = await self.decode(websocket, message)
                    await self.on_receive(websocket, data)
                elif message["type"] == "websocket.disconnect":
                    close_code = int(
                        message.get("code") or status.WS_1000_NORMAL_CLOSURE
                    )
                    break
        except Exception as exc:
            close_code = status.WS_1011_INTERNAL_ERROR
            raise exc
        finally:
            await self.on_disconnect(websocket, close_code)

    async def decode(
        self, websocket: WebSocket, message: dict[str, Any]
    ) -> str | None:
        """
        Extract the text payload of a frame.

        Returns:
            The frame text, or None for binary frames.
        """
        return message.get("text")

    async def on_connect(self, websocket: WebSocket) -> None:
        """
        Accept the socket and bind the correlation ID of the upgrade request.

        The connection is only registered once the handshake arrives.
        """
        await super().on_connect(websocket)

        cid = resolve_correlation_id(
            websocket.headers.get(CORRELATION_ID_HEADER.lower())
        )
        correlation_id.set(cid)

        logger.debug("Websocket accepted, waiting for hub handshake")

    async def on_receive(self, websocket: WebSocket, data: str | None) -> None:
        if data is None:
            await self._close_with_error(
                websocket, "Binary messages are not supported."
            )
            return

        if self.connection is None:
            data = await self._complete_handshake(websocket, data)
            if not data:
                return

        try:
            messages = self.protocol.parse_messages(data)  # type: ignore[union-attr]
        except HubProtocolError as ex:
            await self._close_with_error(websocket, str(ex))
            return

        for message in messages:
            if isinstance(message, PingMessage):
                continue

            if isinstance(message, CloseMessage):
                logger.debug(
                    f"Client {self.connection.connection_id} requested close"  # type: ignore[union-attr]
                )
                await self._end_session(websocket, status.WS_1000_NORMAL_CLOSURE)
                return

            if isinstance(message, InvocationMessage):
                await self._handle_invocation(message)

    async def _complete_handshake(
        self, websocket: WebSocket, data: str
    ) -> str | None:
        """
        Validate the handshake and register the connection.

        Returns:
            Data that followed the handshake record in the same frame, or
            None if the handshake failed and the socket was closed.
        """
        try:
            request, remaining = parse_handshake_request(data)
            self.protocol = select_hub_protocol(
                request.protocol, request.version
            )
        except HandshakeError as ex:
            logger.warning(f"Hub handshake rejected: {ex}")
            MetricsCollector.record_connection_rejected("handshake")
            await websocket.send_text(write_handshake_response(str(ex)))
            await self._close_socket(
                websocket, status.WS_1003_UNSUPPORTED_DATA
            )
            return None

        self.connection = HubConnection(
            websocket,
            max_queue_size=app_settings.WS_OUTBOUND_QUEUE_SIZE,
            on_send_failure=self.registry.unregister,
            keepalive_frame=self.protocol.write_message(PingMessage()),
            keepalive_interval=WS_KEEPALIVE_INTERVAL_SECONDS,
        )
        set_log_context(connection_id=self.connection.connection_id)

        # Queued first so it always precedes broadcast frames
        self.connection.enqueue(write_handshake_response())
        self.connection.start()
        self.registry.register(self.connection)

        MetricsCollector.record_connection_accepted()
        logger.info(
            f"Client connected to hub (connection_id: {self.connection.connection_id}, "
            f"protocol: {self.protocol.name})"
        )

        return remaining

    async def _handle_invocation(self, invocation: InvocationMessage) -> None:
        context = HubCallerContext(
            connection=self.connection,  # type: ignore[arg-type]
            registry=self.registry,
            dispatcher=self.dispatcher,
        )
        completion = await self.method_router.handle_invocation(
            context, invocation
        )
        if completion is not None:
            self.connection.enqueue(  # type: ignore[union-attr]
                self.protocol.write_message(completion)  # type: ignore[union-attr]
            )

    async def _close_with_error(self, websocket: WebSocket, error: str) -> None:
        """End the session because the client sent something invalid."""
        logger.warning(f"Closing hub session after protocol error: {error}")
        MetricsCollector.record_protocol_error()

        if self.connection is None:
            await self._close_socket(websocket, status.WS_1003_UNSUPPORTED_DATA)
            return

        await self._end_session(
            websocket, status.WS_1003_UNSUPPORTED_DATA, error=error
        )

    async def _end_session(
        self, websocket: WebSocket, code: int, error: str | None = None
    ) -> None:
        """
        Send a close message, flush the outbound queue and close the socket.
        """
        protocol = self.protocol or JSONHubProtocol()
        self.registry.unregister(self.connection.connection_id)  # type: ignore[union-attr]
        await self.connection.shutdown(  # type: ignore[union-attr]
            protocol.write_message(CloseMessage(error=error)), code=code
        )
        self.close_code = code
        self.session_closed = True

    async def _close_socket(self, websocket: WebSocket, code: int) -> None:
        if websocket.application_state != WebSocketState.DISCONNECTED:
            await websocket.close(code=code)
        self.close_code = code
        self.session_closed = True

    async def on_disconnect(self, websocket: WebSocket, close_code: int) -> None:
        """
        Remove the connection from the registry and stop its writer.

        Runs for graceful closes, network failures and server-side errors
        alike, and is safe to run after the session was already ended.
        """
        await super().on_disconnect(websocket, close_code)

        if self.connection is not None:
            self.registry.unregister(self.connection.connection_id)
            await self.connection.close()
            logger.info(
                f"Client {self.connection.connection_id} disconnected with "
                f"code {close_code}"
            )
        else:
            logger.debug(
                f"Client disconnected before hub handshake with code {close_code}"
            )

        clear_log_context()

