"""
rpclink: client-side JSON-RPC 2.0 over pluggable transports.

Submodules:
- protocol: messages, errors, classification, correlation, client
- transport: channel contract plus in-memory, HTTP and WebSocket channels
- events: named-event publish/subscribe
- config: client configuration
"""

from rpclink.config import ClientConfig, load_client_config
from rpclink.events import ClientEvent, EventEmitter

# Transport layer
from rpclink.transport import (
    TransportChannel,
    TransportConfig,
    TransportEvent,
    TransportEventType,
    TransportError,
    ConnectionError,
    TimeoutError,
    SessionError,
    InMemoryTransport,
    HTTPTransport,
    WebSocketTransport,
)

# Protocol layer
from rpclink.protocol import (
    JSONRPCClient,
    JSONRPCRequest,
    JSONRPCResponseResult,
    JSONRPCResponseError,
    JSONRPCEvent,
    JSONRPCError,
    NO_ERROR,
    TIMEOUT_EXCEEDED,
    INVALID_STATE_ERR,
    RequestError,
    RemoteError,
    RequestTimeout,
    InvalidStateError,
    ConnectionState,
    MessageTracker,
    classify,
)
from rpclink.protocol.client import __version__

__all__ = [
    "__version__",
    # Config and events
    "ClientConfig",
    "load_client_config",
    "ClientEvent",
    "EventEmitter",
    # Transport
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
    # Protocol
    "JSONRPCClient",
    "JSONRPCRequest",
    "JSONRPCResponseResult",
    "JSONRPCResponseError",
    "JSONRPCEvent",
    "JSONRPCError",
    "NO_ERROR",
    "TIMEOUT_EXCEEDED",
    "INVALID_STATE_ERR",
    "RequestError",
    "RemoteError",
    "RequestTimeout",
    "InvalidStateError",
    "ConnectionState",
    "MessageTracker",
    "classify",
]
