"""Tests for JSONRPCClient."""

import asyncio

import pytest

from rpclink.config import ClientConfig
from rpclink.events import ClientEvent
from rpclink.protocol.client import JSONRPCClient
from rpclink.protocol.errors import (
    INVALID_STATE_ERR,
    NO_ERROR,
    TIMEOUT_EXCEEDED,
    InvalidStateError,
    RemoteError,
    RequestTimeout,
)
from rpclink.protocol.messages import (
    JSONRPCEvent,
    JSONRPCRequest,
    JSONRPCResponseError,
    JSONRPCResponseResult,
)
from rpclink.protocol.state import ConnectionState
from rpclink.transport.base import ConnectionError, SessionError
from rpclink.transport.memory import InMemoryTransport
from rpclink.transport.types import TransportEvent, TransportEventType


def names(recorded):
    return [name for name, _ in recorded]


class TestConstruction:
    """Tests for constructor validation."""

    def test_requires_config(self):
        with pytest.raises(ValueError, match="Missing configuration object"):
            JSONRPCClient(None)  # type: ignore[arg-type]

    def test_requires_transport(self):
        with pytest.raises(ValueError, match="transport is required"):
            JSONRPCClient(ClientConfig())

    def test_defaults(self, transport):
        client = JSONRPCClient(ClientConfig(transport=transport))
        assert client.config.message_timeout == 5.0
        assert client.config.message_check_interval == 1.0
        assert client.state == ConnectionState.DISCONNECTED
        assert client.version

    def test_registers_transport_callbacks(self, transport):
        JSONRPCClient(ClientConfig(transport=transport))
        assert len(transport._message_handlers) == 1
        assert len(transport._disconnect_handlers) == 1


class TestConnect:
    """Tests for connect()."""

    @pytest.mark.asyncio
    async def test_emits_connecting_then_connected(self, client, recorded):
        await client.connect()

        assert names(recorded) == ["connecting", "connected"]
        assert client.state == ConnectionState.CONNECTED
        assert client.is_connected

    @pytest.mark.asyncio
    async def test_failure_propagates_transport_error(self, recorded, client, transport):
        failure = ConnectionError("refused")
        transport.fail_connect = failure

        with pytest.raises(ConnectionError) as exc_info:
            await client.connect()

        assert exc_info.value is failure
        assert names(recorded) == ["connecting"]
        assert client.state == ConnectionState.DISCONNECTED

    @pytest.mark.asyncio
    async def test_connect_twice_reaches_transport(self, client, transport):
        await client.connect()
        await client.connect()

        assert transport.connect_calls == 2
        assert client.state == ConnectionState.CONNECTED

    @pytest.mark.asyncio
    async def test_state_change_callback(self, client):
        seen = []
        client.on_state_change(lambda old, new: seen.append(new))

        await client.connect()

        assert seen == [ConnectionState.CONNECTING, ConnectionState.CONNECTED]


    @pytest.mark.asyncio
    async def test_cancelled_connect_returns_to_disconnected(self):
        class SlowTransport(InMemoryTransport):
            async def connect(self):
                await asyncio.sleep(10)

        client = JSONRPCClient(ClientConfig(transport=SlowTransport()))

        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(client.connect(), timeout=0.01)

        assert client.state == ConnectionState.DISCONNECTED
        assert not client.is_connected


class TestSendRequest:
    """Tests for send_request()."""

    @pytest.mark.asyncio
    async def test_resolves_with_result(self, echo_client, echo_transport):
        await echo_client.connect()

        response = await echo_client.send_request(JSONRPCRequest("sum", [1, 2], id=1))

        assert response == JSONRPCResponseResult(id=1, result=[1, 2])
        assert echo_transport.sent == [
            {"jsonrpc": "2.0", "method": "sum", "id": 1, "params": [1, 2]}
        ]
        assert echo_client.pending_requests == 0

    @pytest.mark.asyncio
    async def test_rejects_with_remote_error(self, client, transport):
        await client.connect()
        future = client.send_request(JSONRPCRequest("fail", id="e1"))

        transport.deliver({"id": "e1", "error": {"code": -32601, "message": "Method not found"}})

        with pytest.raises(RemoteError) as exc_info:
            await future
        assert exc_info.value.code == -32601
        assert isinstance(exc_info.value.response, JSONRPCResponseError)
        assert exc_info.value.request_id == "e1"

    @pytest.mark.asyncio
    async def test_error_wins_over_result(self, client, transport):
        await client.connect()
        future = client.send_request(JSONRPCRequest("m", id=1))

        transport.deliver({"id": 1, "result": "ok", "error": {"code": -1, "message": "bad"}})

        with pytest.raises(RemoteError):
            await future

    @pytest.mark.asyncio
    async def test_request_with_same_id_does_not_resolve(self, client, transport):
        await client.connect()
        future = client.send_request(JSONRPCRequest("m", id=1))

        transport.deliver({"id": 1, "method": "ping"})
        await asyncio.sleep(0)
        assert not future.done()
        assert client.pending_requests == 1

        transport.deliver({"id": 1, "result": "pong"})
        assert (await future).result == "pong"

    @pytest.mark.asyncio
    async def test_times_out_with_request_attached(self, client):
        await client.connect()
        request = JSONRPCRequest("slow", id="t1")
        loop = asyncio.get_running_loop()
        started = loop.time()

        with pytest.raises(RequestTimeout) as exc_info:
            await client.send_request(request)

        assert loop.time() - started >= client.config.message_timeout
        assert exc_info.value.code == TIMEOUT_EXCEEDED.code
        assert exc_info.value.data is request
        assert TIMEOUT_EXCEEDED.data is None

    @pytest.mark.asyncio
    async def test_concurrent_timeouts_keep_their_own_request(self, client):
        await client.connect()
        first = JSONRPCRequest("a", id=1)
        second = JSONRPCRequest("b", id=2)

        results = await asyncio.gather(
            client.send_request(first),
            client.send_request(second),
            return_exceptions=True,
        )

        assert [r.data for r in results] == [first, second]

    @pytest.mark.asyncio
    async def test_not_connected_fails_immediately(self, client, transport):
        request = JSONRPCRequest("m", id=5)

        future = client.send_request(request)

        assert future.done()
        exc = future.exception()
        assert isinstance(exc, InvalidStateError)
        assert exc.code == INVALID_STATE_ERR.code
        assert exc.data is request
        assert exc.response.id == 5
        assert transport.sent == []
        assert client.pending_requests == 0

    @pytest.mark.asyncio
    async def test_concurrent_requests_complete_independently(self, client, transport):
        await client.connect()
        first = client.send_request(JSONRPCRequest("a", id=1))
        second = client.send_request(JSONRPCRequest("b", id=2))

        transport.deliver({"id": 2, "result": "two"})
        assert not first.done()
        transport.deliver({"id": 1, "error": {"code": -3, "message": "one failed"}})

        assert (await second).result == "two"
        with pytest.raises(RemoteError):
            await first

    @pytest.mark.asyncio
    async def test_duplicate_reply_is_published_as_message(self, client, transport, recorded):
        await client.connect()
        future = client.send_request(JSONRPCRequest("a", id=1))

        transport.deliver({"id": 1, "result": "first"})
        transport.deliver({"id": 1, "result": "again"})

        assert (await future).result == "first"
        messages = [args[0] for name, args in recorded if name == "message"]
        assert messages == [JSONRPCResponseResult(id=1, result="again")]

    @pytest.mark.asyncio
    async def test_matched_reply_not_published_by_default(self, client, transport, recorded):
        await client.connect()
        future = client.send_request(JSONRPCRequest("a", id=1))

        transport.deliver({"id": 1, "result": "ok"})
        await future

        assert "message" not in names(recorded)

    @pytest.mark.asyncio
    async def test_enable_callbacks_publishes_raw_reply_first(self, client, transport):
        await client.connect()
        order = []
        raw = {"id": 1, "result": "ok"}
        future = client.send_request(JSONRPCRequest("a", id=1), enable_callbacks=True)
        client.on("message", lambda m: order.append(("message", m, future.done())))

        transport.deliver(raw)

        assert order == [("message", raw, False)]
        assert (await future).result == "ok"

    @pytest.mark.asyncio
    async def test_reply_without_result_or_error_is_ignored(self, client, transport):
        await client.connect()
        future = client.send_request(JSONRPCRequest("a", id=1))

        transport.deliver({"id": 1, "method": "weird"})

        assert not future.done()
        assert client.pending_requests == 1
        await client.close()

    @pytest.mark.asyncio
    async def test_send_failure_discards_pending(self):
        class BrokenTransport(InMemoryTransport):
            def send(self, message):
                raise SessionError("pipe closed")

        transport = BrokenTransport()
        client = JSONRPCClient(ClientConfig(transport=transport))
        await client.connect()

        with pytest.raises(SessionError, match="pipe closed"):
            client.send_request(JSONRPCRequest("a", id=1))
        assert client.pending_requests == 0

    @pytest.mark.asyncio
    async def test_late_reply_after_timeout_is_published(self, client, transport, recorded):
        await client.connect()
        future = client.send_request(JSONRPCRequest("a", id=1))

        with pytest.raises(RequestTimeout):
            await future
        transport.deliver({"id": 1, "result": "late"})

        messages = [args[0] for name, args in recorded if name == "message"]
        assert messages == [JSONRPCResponseResult(id=1, result="late")]


class TestSendEvent:
    """Tests for send_event()."""

    @pytest.mark.asyncio
    async def test_connected_returns_no_error(self, client, transport):
        await client.connect()
        event = JSONRPCEvent("log", {"text": "hi"})

        assert client.send_event(event) is NO_ERROR
        assert transport.sent == [event.to_dict()]

    def test_disconnected_returns_invalid_state(self, client, transport):
        assert client.send_event(JSONRPCEvent("log")) is INVALID_STATE_ERR
        assert transport.sent == []


class TestInboundMessages:
    """Tests for publishing unsolicited messages."""

    @pytest.mark.asyncio
    async def test_event_published(self, client, transport, recorded):
        await client.connect()
        transport.deliver({"jsonrpc": "2.0", "method": "tick", "params": [1]})

        assert recorded[-1] == ("message", (JSONRPCEvent("tick", [1]),))

    @pytest.mark.asyncio
    async def test_inbound_request_published(self, client, transport, recorded):
        await client.connect()
        transport.deliver({"id": 10, "method": "confirm", "params": {"q": "?"}})

        name, (message,) = recorded[-1]
        assert name == "message"
        assert isinstance(message, JSONRPCRequest)
        assert message.id == 10
        assert message.params == {"q": "?"}

    @pytest.mark.asyncio
    async def test_unsolicited_error_classified(self, client, transport, recorded):
        await client.connect()
        transport.deliver({"id": 99, "result": 1, "error": {"code": -2, "message": "x"}})

        name, (message,) = recorded[-1]
        assert isinstance(message, JSONRPCResponseError)
        assert message.error.code == -2

    @pytest.mark.asyncio
    @pytest.mark.parametrize("raw", ["text", 3, None, {}, {"id": 4}, {"params": []}])
    async def test_unclassifiable_dropped(self, client, transport, recorded, raw):
        await client.connect()
        transport.deliver(raw)

        assert "message" not in names(recorded)

    @pytest.mark.asyncio
    async def test_error_event_never_emitted(self, client, transport, recorded):
        await client.connect()
        transport.deliver("garbage")
        transport.drop()
        await asyncio.sleep(0)

        assert ClientEvent.ERROR.value not in names(recorded)


class TestDisconnect:
    """Tests for disconnect handling."""

    @pytest.mark.asyncio
    async def test_disconnect_delegates_and_emits(self, client, transport, recorded):
        await client.connect()

        client.disconnect()
        assert transport.disconnect_calls == 1
        assert "disconnected" not in names(recorded)

        await asyncio.sleep(0)

        name, (event,) = recorded[-1]
        assert name == "disconnected"
        assert isinstance(event, TransportEvent)
        assert event.type == TransportEventType.DISCONNECTED
        assert event.data["code"] == 1000
        assert client.state == ConnectionState.DISCONNECTED

    @pytest.mark.asyncio
    async def test_drop_leaves_pending_requests_to_time_out(self, client, transport, recorded):
        await client.connect()
        future = client.send_request(JSONRPCRequest("a", id=1))

        transport.drop("peer vanished")
        await asyncio.sleep(0)

        assert recorded[-1][0] == "disconnected"
        assert recorded[-1][1][0].data["reason"] == "peer vanished"
        assert not future.done()

        with pytest.raises(RequestTimeout):
            await future

    @pytest.mark.asyncio
    async def test_requests_after_disconnect_fail_fast(self, client, transport):
        await client.connect()
        client.disconnect()
        await asyncio.sleep(0)

        future = client.send_request(JSONRPCRequest("a", id=1))
        assert isinstance(future.exception(), InvalidStateError)
        assert client.send_event(JSONRPCEvent("e")) is INVALID_STATE_ERR

    @pytest.mark.asyncio
    async def test_reconnect_after_disconnect(self, client, transport, recorded):
        await client.connect()
        client.disconnect()
        await asyncio.sleep(0)
        await client.connect()

        assert names(recorded) == ["connecting", "connected", "disconnected", "connecting", "connected"]
        assert client.state == ConnectionState.CONNECTED


class TestClose:
    """Tests for close() and the context manager."""

    @pytest.mark.asyncio
    async def test_close_cancels_pending_and_disconnects(self, client, transport):
        await client.connect()
        future = client.send_request(JSONRPCRequest("a", id=1))

        await client.close()

        assert future.cancelled()
        assert transport.disconnect_calls == 1
        assert not client.is_connected

    @pytest.mark.asyncio
    async def test_context_manager(self, echo_client, echo_transport):
        async with echo_client as client:
            assert client.is_connected
            response = await client.send_request(JSONRPCRequest("ping", id=1))
            assert response.id == 1
        assert not echo_transport.is_connected()
