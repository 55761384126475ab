"""
JSON-RPC protocol core.

Message types, error taxonomy, inbound classification, request/response
correlation and the client that ties them to a transport.
"""

from rpclink.protocol.messages import (
    JSONRPCRequest,
    JSONRPCResponseResult,
    JSONRPCResponseError,
    JSONRPCEvent,
    JSONRPCError,
    InboundMessage,
)
from rpclink.protocol.errors import (
    NO_ERROR,
    TIMEOUT_EXCEEDED,
    INVALID_STATE_ERR,
    RequestError,
    RemoteError,
    RequestTimeout,
    InvalidStateError,
)
from rpclink.protocol.classifier import classify
from rpclink.protocol.tracker import MessageTracker, MatchContext, PendingCorrelation
from rpclink.protocol.state import (
    ConnectionState,
    ConnectionStateMachine,
    InvalidStateTransition,
)
from rpclink.protocol.client import JSONRPCClient

__all__ = [
    # Messages
    "JSONRPCRequest",
    "JSONRPCResponseResult",
    "JSONRPCResponseError",
    "JSONRPCEvent",
    "JSONRPCError",
    "InboundMessage",
    # Errors
    "NO_ERROR",
    "TIMEOUT_EXCEEDED",
    "INVALID_STATE_ERR",
    "RequestError",
    "RemoteError",
    "RequestTimeout",
    "InvalidStateError",
    # Classification and correlation
    "classify",
    "MessageTracker",
    "MatchContext",
    "PendingCorrelation",
    # State
    "ConnectionState",
    "ConnectionStateMachine",
    "InvalidStateTransition",
    # Client
    "JSONRPCClient",
]
