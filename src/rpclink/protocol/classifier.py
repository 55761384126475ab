"""Classification of inbound JSON-RPC messages."""

from collections.abc import Mapping
from typing import Any

from rpclink.protocol.errors import ERROR_MESSAGES, INTERNAL_ERROR
from rpclink.protocol.messages import (
    InboundMessage,
    JSONRPCError,
    JSONRPCEvent,
    JSONRPCRequest,
    JSONRPCResponseError,
    JSONRPCResponseResult,
)


def to_error(value: Any) -> JSONRPCError:
    """Build an error value from the raw `error` member of a response."""
    if isinstance(value, Mapping):
        return JSONRPCError.from_dict(dict(value))
    return JSONRPCError(INTERNAL_ERROR, ERROR_MESSAGES[INTERNAL_ERROR], data=value)


def classify(message: Any) -> InboundMessage | None:
    """
    Decide which kind of JSON-RPC message a raw inbound object is.

    Precedence for messages with an id: `error` over `result`, and either
    of those over `method`. Messages without an id are events.

    Args:
        message: Decoded inbound message, normally a dict.

    Returns:
        The typed message, or None if the object has no recognisable shape.
    """
    if not isinstance(message, Mapping):
        return None

    if "id" in message:
        msg_id = message["id"]
        if "error" in message:
            return JSONRPCResponseError(id=msg_id, error=to_error(message["error"]))
        if "result" in message:
            return JSONRPCResponseResult(id=msg_id, result=message["result"])
        if "method" in message:
            return JSONRPCRequest(
                method=message["method"],
                params=message.get("params"),
                id=msg_id,
            )
        return None

    if "method" in message:
        return JSONRPCEvent(method=message["method"], params=message.get("params"))

    return None


def is_response(message: Any) -> bool:
    """Check if message is a response (has id and a result or error)."""
    return isinstance(message, Mapping) and "id" in message and (
        "result" in message or "error" in message
    )
