"""
Transport channels.

The client talks to any TransportChannel; in-memory, HTTP and WebSocket
implementations are provided.
"""

from rpclink.transport.types import TransportConfig, TransportEvent, TransportEventType
from rpclink.transport.base import (
    TransportChannel,
    TransportError,
    ConnectionError,
    TimeoutError,
    SessionError,
)
from rpclink.transport.memory import InMemoryTransport
from rpclink.transport.http import HTTPTransport
from rpclink.transport.websocket import WebSocketTransport

__all__ = [
    "TransportChannel",
    "TransportConfig",
    "TransportEvent",
    "TransportEventType",
    "TransportError",
    "ConnectionError",
    "TimeoutError",
    "SessionError",
    "InMemoryTransport",
    "HTTPTransport",
    "WebSocketTransport",
]
