"""Pytest configuration and fixtures."""

from typing import Any

import pytest

from rpclink.config import ClientConfig
from rpclink.protocol.client import JSONRPCClient
from rpclink.transport.memory import InMemoryTransport

# Enable async tests without marking each one
pytest_plugins = ["pytest_asyncio"]

FAST_TIMEOUT = 0.05
FAST_CHECK_INTERVAL = 0.01


def echo_responder(message: dict[str, Any]) -> dict[str, Any] | None:
    """Answer requests with their params; ignore events."""
    if "id" not in message:
        return None
    return {"jsonrpc": "2.0", "id": message["id"], "result": message.get("params")}


@pytest.fixture
def transport():
    """Silent in-memory transport: records sends, never replies."""
    return InMemoryTransport()


@pytest.fixture
def echo_transport():
    """In-memory transport that echoes request params back as results."""
    return InMemoryTransport(responder=echo_responder)


@pytest.fixture
def client(transport):
    """Client over the silent transport with short timeouts."""
    return JSONRPCClient(
        ClientConfig(
            transport=transport,
            message_timeout=FAST_TIMEOUT,
            message_check_interval=FAST_CHECK_INTERVAL,
        )
    )


@pytest.fixture
def echo_client(echo_transport):
    """Client over the echoing transport."""
    return JSONRPCClient(ClientConfig(transport=echo_transport))


@pytest.fixture
def recorded(client):
    """List of (event, args) tuples published by the client fixture."""
    events: list[tuple[str, tuple]] = []
    for name in ("connecting", "connected", "disconnected", "message", "error"):
        client.on(name, lambda *args, name=name: events.append((name, args)))
    return events
