"""HTTP transport: one POST per message, replies read from the response body."""

from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import Any, AsyncIterator

import httpx

from rpclink.transport.base import (
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


class HTTPTransport(TransportChannel):
    """
    JSON-RPC over HTTP POST.

    Every sent message becomes a POST to the configured URL. The response
    body may be:
    - empty or 202 Accepted (nothing delivered)
    - an application/json message or batch (each delivered)
    - a text/event-stream whose `data:` frames are JSON messages

    Delivery failures cannot be reported to the sender, so they are emitted
    as ERROR transport events; affected requests run into their timeout.
    """

    def __init__(
        self,
        config: TransportConfig,
        http_transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize HTTP transport.

        Args:
            config: Endpoint and timeout settings.
            http_transport: Optional httpx transport, e.g. httpx.MockTransport.
        """
        super().__init__(config)
        self._http_transport = http_transport
        self._client: httpx.AsyncClient | None = None
        self._connected: bool = False
        self._closing: bool = False
        self._inflight: set[asyncio.Task[None]] = set()
        self._request_semaphore: asyncio.Semaphore | None = None

    async def connect(self) -> None:
        """
        Create the HTTP client.

        No request is made until the first send().

        Raises:
            SessionError: If a previous disconnect() has not finished.
        """
        if self._closing:
            raise SessionError("Transport is closing")
        if self._connected:
            return

        self._emit_event(
            TransportEvent(
                type=TransportEventType.CONNECTING,
                timestamp=time.time(),
                data={"url": self.config.url},
            )
        )

        timeout = httpx.Timeout(
            connect=self.config.connect_timeout,
            read=self.config.timeout,
            write=self.config.timeout,
            pool=self.config.timeout,
        )
        self._client = httpx.AsyncClient(
            timeout=timeout,
            headers=self.config.headers,
            verify=self.config.verify_ssl,
            transport=self._http_transport,
        )
        self._request_semaphore = asyncio.Semaphore(self.config.max_concurrent_requests)
        self._connected = True
        self._closing = False

        self._emit_event(
            TransportEvent(type=TransportEventType.CONNECTED, timestamp=time.time())
        )

    def send(self, message: dict[str, Any]) -> None:
        """Schedule a POST for the message."""
        if not self._client or not self._connected:
            raise SessionError("Transport not connected")
        if self._closing:
            raise SessionError("Transport is closing")
        try:
            body = json.dumps(message)
        except (TypeError, ValueError) as e:
            raise TransportError(f"Cannot encode message: {e}", cause=e)

        task = asyncio.get_running_loop().create_task(self._post(message, body))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    def disconnect(self) -> None:
        """Schedule shutdown; the disconnect callbacks fire once the client is closed."""
        if not self._connected or self._closing:
            return

        self._closing = True
        self._emit_event(
            TransportEvent(type=TransportEventType.DISCONNECTING, timestamp=time.time())
        )
        asyncio.get_running_loop().create_task(self._shutdown())

    def is_connected(self) -> bool:
        return self._connected and not self._closing

    async def _shutdown(self) -> None:
        for task in list(self._inflight):
            task.cancel()
        if self._inflight:
            await asyncio.gather(*self._inflight, return_exceptions=True)
        self._inflight.clear()

        if self._client:
            await self._client.aclose()
            self._client = None

        self._connected = False
        self._closing = False
        self._closed({"url": self.config.url, "reason": "Client disconnect"})

    async def _post(self, message: dict[str, Any], body: str) -> None:
        assert self._client is not None and self._request_semaphore is not None

        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json, text/event-stream",
        }

        self._emit_event(
            TransportEvent(
                type=TransportEventType.MESSAGE_SENT,
                timestamp=time.time(),
                data={"method": message.get("method"), "id": message.get("id")},
            )
        )

        async with self._request_semaphore:
            try:
                async with self._client.stream(
                    "POST",
                    self.config.url,
                    content=body,
                    headers=headers,
                ) as response:
                    await self._read_response(response)
            except asyncio.CancelledError:
                raise
            except httpx.TimeoutException as e:
                self._report(TimeoutError(f"Request timed out: {e}", cause=e))
            except httpx.HTTPError as e:
                self._report(TransportError(f"HTTP error: {e}", cause=e))
            except TransportError as e:
                self._report(e)

    async def _read_response(self, response: httpx.Response) -> None:
        if response.status_code == 202:
            return

        if response.status_code >= 400:
            body = (await response.aread()).decode(errors="replace")
            raise TransportError(f"HTTP {response.status_code}: {body}")

        content_type = response.headers.get("Content-Type", "")

        if "text/event-stream" in content_type:
            async for message in self._parse_sse_stream(response):
                self._deliver(message)
            return

        body = await response.aread()
        if not body.strip():
            return

        try:
            payload = json.loads(body)
        except ValueError as e:
            raise TransportError(f"Failed to parse response: {e}", cause=e)

        # JSON-RPC batch replies arrive as arrays
        for message in payload if isinstance(payload, list) else [payload]:
            self._deliver(message)

    async def _parse_sse_stream(self, response: httpx.Response) -> AsyncIterator[Any]:
        """Parse a Server-Sent Events stream into JSON-RPC messages."""
        buffer = ""

        async for chunk in response.aiter_text():
            buffer += chunk

            # Events are delimited by blank lines
            while "\n\n" in buffer:
                event_str, buffer = buffer.split("\n\n", 1)
                data = parse_sse_data(event_str)
                if data is None:
                    continue
                try:
                    yield json.loads(data)
                except ValueError:
                    logger.warning(f"Skipping malformed SSE data: {data[:80]!r}")

        data = parse_sse_data(buffer)
        if data is not None:
            try:
                yield json.loads(data)
            except ValueError:
                logger.warning(f"Skipping malformed SSE data: {data[:80]!r}")

    def _report(self, error: TransportError) -> None:
        logger.warning(f"HTTP send failed: {error}")
        self._emit_event(
            TransportEvent(
                type=TransportEventType.ERROR,
                timestamp=time.time(),
                error=error,
            )
        )


def parse_sse_data(event_str: str) -> str | None:
    """
    Extract the data payload of one SSE event.

    SSE format:
        event: <event-type>
        data: <data>
        id: <id>

    Multiple data lines are joined with newlines; comments are ignored.
    """
    data_lines: list[str] = []

    for line in event_str.split("\n"):
        line = line.rstrip("\r")
        if not line or line.startswith(":"):
            continue
        field, _, value = line.partition(":")
        if field == "data":
            data_lines.append(value[1:] if value.startswith(" ") else value)

    if not data_lines:
        return None
    return "\n".join(data_lines)
