import asyncio
import uuid
from typing import Callable

from starlette.websockets import WebSocket, WebSocketDisconnect, WebSocketState

from chathub.constants import (
    WS_CLOSE_TIMEOUT_SECONDS,
    WS_KEEPALIVE_INTERVAL_SECONDS,
    WS_NORMAL_CLOSURE_CODE,
)
from chathub.logging import logger
from chathub.utils.metrics import MetricsCollector


class HubConnection:
    """
    A live hub connection with its own outbound queue.

    Frames are written to the websocket by a dedicated writer task in the
    order they were queued. Producers never await the socket, so a slow
    or closed recipient cannot block whoever is sending to it.

    `enqueue()` may be called from any thread: calls made outside the
    event loop that owns the connection are handed over to that loop.

    When a `keepalive_frame` is given, it is queued whenever nothing was
    written for `keepalive_interval` seconds, so clients that time out
    silent servers keep the session open.
    """

    def __init__(
        self,
        websocket: WebSocket,
        connection_id: str | None = None,
        max_queue_size: int = 0,
        on_send_failure: Callable[[str], object] | None = None,
        keepalive_frame: str | None = None,
        keepalive_interval: float = WS_KEEPALIVE_INTERVAL_SECONDS,
    ) -> None:
        """
        Args:
            websocket: Accepted websocket of the client.
            connection_id: Opaque identifier, a uuid4 string by default.
            max_queue_size: Outbound queue bound, 0 means unbounded.
            on_send_failure: Called with the connection id when the writer
                fails to send (e.g. to unregister the connection).
            keepalive_frame: Encoded ping message, None disables keep-alive.
            keepalive_interval: Idle seconds before a ping is queued.
        """
        self.connection_id = connection_id or str(uuid.uuid4())
        self.websocket = websocket
        self.closed = False

        self._loop = asyncio.get_running_loop()
        self._outbound: asyncio.Queue[str] = asyncio.Queue(
            maxsize=max_queue_size
        )
        self._writer: asyncio.Task[None] | None = None
        self._on_send_failure = on_send_failure
        self._keepalive_frame = keepalive_frame
        self._keepalive_interval = keepalive_interval
        self._keepalive: asyncio.Task[None] | None = None
        self._last_write = self._loop.time()

    def __repr__(self) -> str:
        return f"<HubConnection {self.connection_id}>"

    @property
    def pending(self) -> int:
        """Number of frames waiting to be written."""
        return self._outbound.qsize()

    def enqueue(self, frame: str) -> bool:
        """
        Queue a text frame for delivery without blocking.

        Args:
            frame: Encoded hub message.

        Returns:
            False if the connection is closed or the frame was dropped.
            From another thread the frame is only handed over to the
            owning loop, so True means "handed over": a frame that then
            finds a full queue is dropped there (logged and counted in
            hub_deliveries_dropped_total) without changing the result.
        """
        if self.closed:
            return False

        try:
            running_loop = asyncio.get_running_loop()
        except RuntimeError:
            running_loop = None

        if running_loop is self._loop:
            return self._put(frame)

        self._loop.call_soon_threadsafe(self._put, frame)
        return True

    def _put(self, frame: str) -> bool:
        if self.closed:
            return False

        try:
            self._outbound.put_nowait(frame)
        except asyncio.QueueFull:
            logger.warning(
                f"Outbound queue full for connection {self.connection_id}, "
                "dropping frame"
            )
            MetricsCollector.record_delivery_dropped()
            return False

        return True

    def start(self) -> None:
        """Start the writer task, and the keep-alive task if enabled."""
        if self._writer is None:
            self._writer = self._loop.create_task(
                self._write_loop(), name=f"hub-writer-{self.connection_id}"
            )

        if self._keepalive_frame is not None and self._keepalive is None:
            self._keepalive = self._loop.create_task(
                self._keepalive_loop(),
                name=f"hub-keepalive-{self.connection_id}",
            )

    async def _keepalive_loop(self) -> None:
        while not self.closed:
            idle = self._loop.time() - self._last_write
            if idle < self._keepalive_interval:
                await asyncio.sleep(self._keepalive_interval - idle)
                continue

            if not self.enqueue(self._keepalive_frame) and self.closed:  # type: ignore[arg-type]
                return
            # Counts as traffic until the writer sends it
            self._last_write = self._loop.time()

    async def _write_loop(self) -> None:
        while True:
            frame = await self._outbound.get()
            try:
                await self.websocket.send_text(frame)
                self._last_write = self._loop.time()
            except (WebSocketDisconnect, ConnectionError, RuntimeError) as e:
                # WebSocketDisconnect: Client disconnected
                # ConnectionError: Network errors
                # RuntimeError: WebSocket in invalid state
                logger.warning(
                    f"Failed to send to connection {self.connection_id}: {e}"
                )
                self._fail()
                return
            except Exception as e:
                logger.warning(
                    f"Unexpected error sending to connection "
                    f"{self.connection_id}: {e}"
                )
                self._fail()
                return
            finally:
                self._outbound.task_done()

    def _fail(self) -> None:
        self.closed = True
        self._discard_pending()
        if self._on_send_failure is not None:
            self._on_send_failure(self.connection_id)

    def _discard_pending(self) -> None:
        while not self._outbound.empty():
            self._outbound.get_nowait()
            self._outbound.task_done()

    async def drain(self, timeout: float = WS_CLOSE_TIMEOUT_SECONDS) -> bool:
        """
        Wait until every queued frame has been written.

        Args:
            timeout: Maximum seconds to wait.

        Returns:
            True if the queue was flushed, False on timeout.
        """
        try:
            await asyncio.wait_for(self._outbound.join(), timeout)
        except asyncio.TimeoutError:
            logger.warning(
                f"Timed out flushing {self.pending} frames for connection "
                f"{self.connection_id}"
            )
            return False

        return True

    async def close(self) -> None:
        """Stop the writer and keep-alive tasks, drop pending frames. Idempotent."""
        self.closed = True

        tasks = [
            task
            for task in (self._keepalive, self._writer)
            if task is not None and not task.done()
        ]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

        self._discard_pending()

    async def shutdown(
        self, close_frame: str, code: int = WS_NORMAL_CLOSURE_CODE
    ) -> None:
        """
        Gracefully end the session from the server side.

        Queues `close_frame`, flushes the queue, closes the websocket and
        stops the writer.

        Args:
            close_frame: Encoded close message sent before the socket closes.
            code: Websocket close code.
        """
        if self.enqueue(close_frame) and self._writer is not None:
            await self.drain()

        self.closed = True
        if self.websocket.application_state != WebSocketState.DISCONNECTED:
            try:
                await self.websocket.close(code=code)
            except (RuntimeError, ConnectionError) as e:
                logger.debug(
                    f"Websocket of connection {self.connection_id} already "
                    f"closed: {e}"
                )

        await self.close()
