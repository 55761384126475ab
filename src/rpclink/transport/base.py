"""Abstract transport channel and error types."""

import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Callable

from rpclink.transport.types import TransportConfig, TransportEvent, TransportEventType

logger = logging.getLogger(__name__)

MessageCallback = Callable[[Any], None]
DisconnectCallback = Callable[[TransportEvent], None]


class TransportError(Exception):
    """Base exception for transport errors."""

    def __init__(self, message: str, cause: Exception | None = None):
        super().__init__(message)
        self.cause = cause


class ConnectionError(TransportError):
    """Failed to establish connection to the peer."""

    pass


class TimeoutError(TransportError):
    """Send or connection timed out."""

    pass


class SessionError(TransportError):
    """Channel is not open (never connected, closing, or closed)."""

    pass


class TransportChannel(ABC):
    """
    Abstract base class for message transports.

    A channel opens and closes the connection, sends decoded JSON-RPC
    messages, and reports inbound messages and disconnects through
    callbacks. send() and disconnect() never block the caller; work that
    needs I/O is scheduled on the running loop.
    """

    def __init__(self, config: TransportConfig | None = None):
        self.config = config
        self._message_handlers: list[MessageCallback] = []
        self._disconnect_handlers: list[DisconnectCallback] = []
        self._event_handlers: list[Callable[[TransportEvent], None]] = []

    def on_message(self, handler: MessageCallback) -> None:
        """Register a callback for inbound messages."""
        self._message_handlers.append(handler)

    def on_disconnect(self, handler: DisconnectCallback) -> None:
        """Register a callback invoked once the channel has closed."""
        self._disconnect_handlers.append(handler)

    def on_event(self, handler: Callable[[TransportEvent], None]) -> None:
        """
        Register an event handler for transport events.

        Args:
            handler: Callback invoked when transport events occur.
        """
        self._event_handlers.append(handler)

    def _emit_event(self, event: TransportEvent) -> None:
        """Emit an event to all registered handlers."""
        for handler in self._event_handlers:
            try:
                handler(event)
            except Exception:
                logger.exception("Transport event handler failed")

    def _deliver(self, message: Any) -> None:
        """Hand an inbound message to the message callbacks."""
        self._emit_event(
            TransportEvent(
                type=TransportEventType.MESSAGE_RECEIVED,
                timestamp=time.time(),
                data=_summary(message),
            )
        )
        for handler in self._message_handlers:
            try:
                handler(message)
            except Exception:
                logger.exception("Inbound message handler failed")

    def _closed(self, data: dict[str, Any] | None = None, error: Exception | None = None) -> None:
        """Report that the channel has closed."""
        event = TransportEvent(
            type=TransportEventType.DISCONNECTED,
            timestamp=time.time(),
            data=data,
            error=error,
        )
        self._emit_event(event)
        for handler in self._disconnect_handlers:
            try:
                handler(event)
            except Exception:
                logger.exception("Disconnect handler failed")

    @abstractmethod
    async def connect(self) -> None:
        """
        Open the channel.

        Raises:
            ConnectionError: If connection cannot be established.
            TimeoutError: If connection times out.
        """
        pass

    @abstractmethod
    def send(self, message: dict[str, Any]) -> None:
        """
        Queue a JSON-RPC message for delivery.

        Raises:
            SessionError: If the channel is not open.
        """
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """
        Start closing the channel.

        Completion is reported through the disconnect callbacks. Safe to
        call more than once.
        """
        pass

    @abstractmethod
    def is_connected(self) -> bool:
        """
        Check if the channel is open.

        Returns:
            True if connected and ready for communication.
        """
        pass


def _summary(message: Any) -> dict[str, Any] | None:
    if isinstance(message, dict):
        return {"id": message.get("id"), "method": message.get("method")}
    return None
