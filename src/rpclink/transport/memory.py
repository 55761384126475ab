"""In-process transport for tests and loopback wiring."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Callable

from rpclink.transport.base import SessionError, TransportChannel
from rpclink.transport.types import TransportEvent, TransportEventType

logger = logging.getLogger(__name__)

# Produces zero, one or several inbound messages in reply to a sent message
Responder = Callable[[dict[str, Any]], Any]

NORMAL_CLOSURE = 1000
ABNORMAL_CLOSURE = 1006


class InMemoryTransport(TransportChannel):
    """
    Transport that keeps everything in process.

    Sent messages are recorded in `sent`. Inbound traffic is injected
    with deliver() or produced by an optional responder. Replies and
    disconnect notifications are delivered on the next loop iteration,
    the way a network channel would deliver them.
    """

    def __init__(
        self,
        responder: Responder | None = None,
        fail_connect: Exception | None = None,
    ):
        """
        Initialize in-memory transport.

        Args:
            responder: Called with every sent message. A dict return value is
                delivered as an inbound message, a list delivers each item,
                None delivers nothing.
            fail_connect: Exception raised by connect() instead of opening.
        """
        super().__init__()
        self.responder = responder
        self.fail_connect = fail_connect
        self.sent: list[dict[str, Any]] = []
        self.connect_calls = 0
        self.disconnect_calls = 0
        self._connected = False

    async def connect(self) -> None:
        self.connect_calls += 1
        self._emit_event(
            TransportEvent(type=TransportEventType.CONNECTING, timestamp=time.time())
        )
        await asyncio.sleep(0)

        if self.fail_connect is not None:
            raise self.fail_connect

        self._connected = True
        self._emit_event(
            TransportEvent(type=TransportEventType.CONNECTED, timestamp=time.time())
        )

    def send(self, message: dict[str, Any]) -> None:
        if not self._connected:
            raise SessionError("Transport not connected")

        self.sent.append(message)
        self._emit_event(
            TransportEvent(
                type=TransportEventType.MESSAGE_SENT,
                timestamp=time.time(),
                data={"method": message.get("method"), "id": message.get("id")},
            )
        )

        if self.responder is None:
            return

        reply = self.responder(message)
        if reply is None:
            return
        replies = reply if isinstance(reply, list) else [reply]
        loop = asyncio.get_running_loop()
        for item in replies:
            loop.call_soon(self._deliver_if_open, item)

    def deliver(self, message: Any) -> None:
        """Inject an inbound message immediately."""
        self._deliver(message)

    def disconnect(self) -> None:
        self.disconnect_calls += 1
        if not self._connected:
            return

        self._connected = False
        self._emit_event(
            TransportEvent(type=TransportEventType.DISCONNECTING, timestamp=time.time())
        )
        self._schedule_close({"code": NORMAL_CLOSURE, "reason": "Normal closure"})

    def drop(self, reason: str = "Connection lost") -> None:
        """Simulate the peer going away without a closing handshake."""
        if not self._connected:
            return
        self._connected = False
        self._schedule_close({"code": ABNORMAL_CLOSURE, "reason": reason})

    def is_connected(self) -> bool:
        return self._connected

    def _deliver_if_open(self, message: Any) -> None:
        if self._connected:
            self._deliver(message)
        else:
            logger.debug("Dropping reply for closed in-memory transport")

    def _schedule_close(self, data: dict[str, Any]) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._closed(data)
            return
        loop.call_soon(self._closed, data)
