"""WebSocket transport using the websockets library."""

from __future__ import annotations

import asyncio
import json
import logging
import ssl
import time
from typing import Any

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed, WebSocketException

from rpclink.transport.base import (
    ConnectionError,
    SessionError,
    TimeoutError,
    TransportChannel,
    TransportError,
)
from rpclink.transport.types import (
    TransportConfig,
    TransportEvent,
    TransportEventType,
)

logger = logging.getLogger(__name__)


class WebSocketTransport(TransportChannel):
    """
    JSON-RPC over a WebSocket connection.

    Each message is one JSON text frame. A reader task delivers inbound
    frames and reports the close code and reason when the connection ends,
    whether the close was requested or not. Outbound frames go through a
    queue so send() never suspends and ordering is preserved.
    """

    def __init__(self, config: TransportConfig):
        super().__init__(config)
        self._ws: ClientConnection | None = None
        self._outbox: asyncio.Queue[tuple[dict[str, Any], str]] = asyncio.Queue()
        self._reader_task: asyncio.Task[None] | None = None
        self._writer_task: asyncio.Task[None] | None = None
        self._closing: bool = False

    async def connect(self) -> None:
        """
        Open the WebSocket connection.

        Raises:
            ConnectionError: If the handshake fails.
            TimeoutError: If the handshake takes longer than connect_timeout.
        """
        if self.is_connected():
            return

        self._emit_event(
            TransportEvent(
                type=TransportEventType.CONNECTING,
                timestamp=time.time(),
                data={"url": self.config.url},
            )
        )

        try:
            self._ws = await connect(
                self.config.url,
                additional_headers=self.config.headers or None,
                open_timeout=self.config.connect_timeout,
                ssl=self._ssl_context(),
            )
        except asyncio.TimeoutError as e:
            raise TimeoutError(f"Connection timed out: {self.config.url}", cause=e)
        except (OSError, WebSocketException) as e:
            raise ConnectionError(f"Failed to connect to {self.config.url}: {e}", cause=e)

        self._closing = False
        self._outbox = asyncio.Queue()
        self._writer_task = asyncio.create_task(self._write_loop(), name="rpclink-ws-writer")
        self._reader_task = asyncio.create_task(self._read_loop(), name="rpclink-ws-reader")

        self._emit_event(
            TransportEvent(type=TransportEventType.CONNECTED, timestamp=time.time())
        )

    def send(self, message: dict[str, Any]) -> None:
        """
        Encode and queue a message.

        Raises:
            SessionError: If the channel is not open.
            TransportError: If the message cannot be encoded as JSON.
        """
        if not self.is_connected():
            raise SessionError("Transport not connected")
        try:
            frame = json.dumps(message)
        except (TypeError, ValueError) as e:
            raise TransportError(f"Cannot encode message: {e}", cause=e)
        self._outbox.put_nowait((message, frame))

    def disconnect(self) -> None:
        if self._ws is None or self._closing:
            return

        self._closing = True
        self._emit_event(
            TransportEvent(type=TransportEventType.DISCONNECTING, timestamp=time.time())
        )
        asyncio.get_running_loop().create_task(self._ws.close())

    def is_connected(self) -> bool:
        return (
            self._ws is not None
            and not self._closing
            and self._reader_task is not None
            and not self._reader_task.done()
        )

    def _ssl_context(self) -> ssl.SSLContext | None:
        if not self.config.url.startswith("wss://"):
            return None
        context = ssl.create_default_context()
        if not self.config.verify_ssl:
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
        return context

    async def _write_loop(self) -> None:
        assert self._ws is not None
        while True:
            message, frame = await self._outbox.get()
            try:
                await asyncio.wait_for(
                    self._ws.send(frame),
                    timeout=self.config.timeout,
                )
            except ConnectionClosed:
                logger.debug("Dropping outbound message, connection closed")
                return
            except asyncio.TimeoutError as e:
                self._emit_event(
                    TransportEvent(
                        type=TransportEventType.ERROR,
                        timestamp=time.time(),
                        error=TimeoutError("WebSocket send timed out", cause=e),
                    )
                )
                continue

            self._emit_event(
                TransportEvent(
                    type=TransportEventType.MESSAGE_SENT,
                    timestamp=time.time(),
                    data={"method": message.get("method"), "id": message.get("id")},
                )
            )

    async def _read_loop(self) -> None:
        ws = self._ws
        assert ws is not None
        error: Exception | None = None

        try:
            async for frame in ws:
                try:
                    message = json.loads(frame)
                except ValueError:
                    logger.warning(f"Ignoring non-JSON frame: {str(frame)[:80]!r}")
                    continue
                self._deliver(message)
        except ConnectionClosed as e:
            error = e
        finally:
            if self._writer_task and not self._writer_task.done():
                self._writer_task.cancel()
            self._writer_task = None
            self._ws = None
            self._closing = False

            self._closed(
                {"code": ws.close_code, "reason": ws.close_reason},
                error,
            )
