"""JSON-RPC client: connection lifecycle, request correlation and message dispatch."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable

from rpclink.config import ClientConfig
from rpclink.events import ClientEvent, EventEmitter, Listener
from rpclink.protocol.classifier import classify, is_response, to_error
from rpclink.protocol.errors import (
    INVALID_STATE_ERR,
    NO_ERROR,
    TIMEOUT_EXCEEDED,
    InvalidStateError,
    RemoteError,
)
from rpclink.protocol.messages import (
    JSONRPCError,
    JSONRPCEvent,
    JSONRPCRequest,
    JSONRPCResponseError,
    JSONRPCResponseResult,
)
from rpclink.protocol.state import ConnectionState, ConnectionStateMachine
from rpclink.protocol.tracker import MatchContext, MessageTracker
from rpclink.transport.base import TransportChannel
from rpclink.transport.types import TransportEvent

logger = logging.getLogger(__name__)

__version__ = "0.1.0"


class JSONRPCClient:
    """
    Client side of a JSON-RPC 2.0 connection.

    Correlates responses with outstanding requests, sends events, and
    publishes everything else it receives on the `message` event:

        client = JSONRPCClient(ClientConfig(transport=transport))
        client.on("message", handle_inbound)
        await client.connect()
        response = await client.send_request(JSONRPCRequest("sum", [1, 2], id=1))

    Published events: connecting, connected, disconnected (payload is the
    transport's TransportEvent), message (a classified message, or the raw
    message of a request sent with enable_callbacks). `error` is declared
    for collaborators and never emitted here.
    """

    def __init__(self, config: ClientConfig):
        """
        Initialize client.

        Args:
            config: Client configuration; must carry a transport.

        Raises:
            ValueError: If config or its transport is missing.
        """
        if config is None:
            raise ValueError("Missing configuration object")
        if config.transport is None:
            raise ValueError("transport is required")

        self.config = config
        self.transport: TransportChannel = config.transport
        self._state = ConnectionStateMachine()
        self._emitter = EventEmitter()
        self._tracker = MessageTracker(
            timeout=config.message_timeout,
            check_interval=config.message_check_interval,
        )

        self.transport.on_message(self._on_message)
        self.transport.on_disconnect(self._on_disconnect)

    @property
    def version(self) -> str:
        return __version__

    @property
    def state(self) -> ConnectionState:
        """Current connection state."""
        return self._state.state

    @property
    def is_connected(self) -> bool:
        """Whether the transport reports an open channel."""
        return self.transport.is_connected()

    @property
    def pending_requests(self) -> int:
        """Number of requests awaiting a response."""
        return self._tracker.pending_count

    def on(self, event: str, listener: Listener) -> Callable[[], None]:
        """
        Subscribe to a client event.

        Returns:
            Function that removes the subscription.
        """
        return self._emitter.on(event, listener)

    def once(self, event: str, listener: Listener) -> Callable[[], None]:
        """Subscribe to the next emission of a client event."""
        return self._emitter.once(event, listener)

    def off(self, event: str, listener: Listener | None = None) -> None:
        """Remove a listener, or all listeners of the event."""
        self._emitter.off(event, listener)

    def on_state_change(
        self,
        callback: Callable[[ConnectionState, ConnectionState], None],
    ) -> None:
        """Register callback for connection state changes."""
        self._state.on_transition(callback)

    async def connect(self) -> None:
        """
        Open the transport.

        Emits `connecting` before and `connected` after a successful open.
        A failed open emits nothing and re-raises the transport's exception.
        Connecting while already connected is passed through to the transport.
        """
        self._state.try_transition(ConnectionState.CONNECTING)
        self._emitter.emit(ClientEvent.CONNECTING)

        try:
            await self.transport.connect()
        except BaseException as e:
            logger.debug(f"Connect failed: {e!r}")
            if self._state.state == ConnectionState.CONNECTING:
                self._state.transition(ConnectionState.DISCONNECTED)
            raise

        self._state.try_transition(ConnectionState.CONNECTED)
        self._emitter.emit(ClientEvent.CONNECTED)

    def send_request(
        self,
        request: JSONRPCRequest,
        enable_callbacks: bool = False,
    ) -> asyncio.Future[JSONRPCResponseResult]:
        """
        Send a request and return a future for its response.

        The future resolves with a JSONRPCResponseResult. It fails with:
        - RemoteError when the peer answers with an error
        - RequestTimeout after message_timeout seconds without an answer
          (error.data is the request)
        - InvalidStateError, already set on return, when the transport is
          not connected (error.data is the request)

        Args:
            request: Request to send; its id must not collide with a pending one.
            enable_callbacks: Also emit the raw response on `message` before
                the future completes.
        """
        loop = asyncio.get_running_loop()

        if not self.transport.is_connected():
            future: asyncio.Future[JSONRPCResponseResult] = loop.create_future()
            future.set_exception(
                InvalidStateError.for_request(request.id, INVALID_STATE_ERR.with_data(request))
            )
            return future

        future = self._tracker.register(
            message=request,
            filter=self._filter_message,
            timeout_reject_with=TIMEOUT_EXCEEDED.with_data(request),
            params={"enable_callbacks": enable_callbacks},
            context=self,
        )

        try:
            self.transport.send(request.to_dict())
        except Exception:
            self._tracker.discard(request.id)
            future.cancel()
            raise

        logger.debug(f"Sent {request}")
        return future

    def send_event(self, event: JSONRPCEvent) -> JSONRPCError:
        """
        Send an event.

        Events have no response, so the outcome is returned instead of
        raised.

        Returns:
            NO_ERROR if the event was handed to the transport,
            INVALID_STATE_ERR if the transport is not connected.
        """
        if not self.transport.is_connected():
            return INVALID_STATE_ERR

        self.transport.send(event.to_dict())
        logger.debug(f"Sent {event}")
        return NO_ERROR

    def disconnect(self) -> None:
        """
        Ask the transport to close.

        The `disconnected` event is emitted when the transport reports the
        close. Pending requests are not failed; they run into their timeout.
        """
        self.transport.disconnect()

    async def close(self) -> None:
        """Disconnect, stop the timeout sweep and cancel pending requests."""
        await self._tracker.stop(cancel_pending=True)
        if self.transport.is_connected():
            self.transport.disconnect()

    def _on_message(self, message: Any) -> None:
        if self._tracker.match_message(message):
            return

        classified = classify(message)
        if classified is None:
            logger.debug(f"Dropping unclassifiable message: {message!r:.120}")
            return

        self._emitter.emit(ClientEvent.MESSAGE, classified)

    def _on_disconnect(self, event: TransportEvent) -> None:
        self._state.try_transition(ConnectionState.DISCONNECTED)
        if self._tracker.pending_count:
            logger.debug(
                f"Disconnected with {self._tracker.pending_count} pending requests"
            )
        self._emitter.emit(ClientEvent.DISCONNECTED, event)

    def _filter_message(self, match: MatchContext) -> None:
        """Complete the pending request that this inbound message answers."""
        message = match.message
        if not is_response(message) or message["id"] != match.current.id:
            return

        if "error" in message:
            error: Exception | None = RemoteError(
                JSONRPCResponseError(id=message["id"], error=to_error(message["error"]))
            )
            response = None
        else:
            error = None
            response = JSONRPCResponseResult(id=message["id"], result=message["result"])

        if match.params.get("enable_callbacks") is True:
            self._emitter.emit(ClientEvent.MESSAGE, message)

        if error is not None:
            match.reject(error)
        else:
            match.resolve(response)

    async def __aenter__(self) -> "JSONRPCClient":
        """Async context manager entry."""
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()
