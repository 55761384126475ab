"""JSON-RPC 2.0 message types."""

from dataclasses import dataclass, field, replace
from typing import Any
import uuid

Params = list[Any] | dict[str, Any] | None
MessageId = str | int


@dataclass(frozen=True)
class JSONRPCError:
    """
    JSON-RPC 2.0 error object.

    Instances are immutable so the reserved constants can be shared safely.
    Use with_data() to attach context to a copy.
    """

    code: int
    message: str
    data: Any = None

    def with_data(self, data: Any) -> "JSONRPCError":
        """Return a copy of this error carrying data."""
        return replace(self, data=data)

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict."""
        error: dict[str, Any] = {
            "code": self.code,
            "message": self.message,
        }
        if self.data is not None:
            error["data"] = self.data
        return error

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "JSONRPCError":
        """Create from JSON dict."""
        return cls(
            code=data.get("code", -32603),
            message=data.get("message", "Unknown error"),
            data=data.get("data"),
        )


@dataclass
class JSONRPCRequest:
    """
    JSON-RPC 2.0 request message.

    Requests expect a response carrying the same id. The id is chosen by the
    caller and must be unique among outstanding requests.
    """

    method: str
    params: Params = None
    id: MessageId = field(default_factory=lambda: str(uuid.uuid4()))
    jsonrpc: str = field(default="2.0", init=False)

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict."""
        msg: dict[str, Any] = {
            "jsonrpc": self.jsonrpc,
            "method": self.method,
            "id": self.id,
        }
        if self.params is not None:
            msg["params"] = self.params
        return msg

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "JSONRPCRequest":
        """Create from JSON dict."""
        return cls(
            method=data["method"],
            params=data.get("params"),
            id=data.get("id", str(uuid.uuid4())),
        )

    def __str__(self) -> str:
        return f"Request({self.method}, id={self.id})"


@dataclass
class JSONRPCResponseResult:
    """Successful JSON-RPC 2.0 response."""

    id: MessageId
    result: Any = None
    jsonrpc: str = field(default="2.0", init=False)

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return {"jsonrpc": self.jsonrpc, "id": self.id, "result": self.result}

    def __str__(self) -> str:
        return f"Response(id={self.id}, success)"


@dataclass
class JSONRPCResponseError:
    """Failed JSON-RPC 2.0 response."""

    id: MessageId | None
    error: JSONRPCError
    jsonrpc: str = field(default="2.0", init=False)

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return {"jsonrpc": self.jsonrpc, "id": self.id, "error": self.error.to_dict()}

    def __str__(self) -> str:
        return f"Response(id={self.id}, error={self.error.code})"


@dataclass
class JSONRPCEvent:
    """
    JSON-RPC 2.0 notification message.

    Events carry no id and never receive a reply.
    """

    method: str
    params: Params = None
    jsonrpc: str = field(default="2.0", init=False)

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict."""
        msg: dict[str, Any] = {
            "jsonrpc": self.jsonrpc,
            "method": self.method,
        }
        if self.params is not None:
            msg["params"] = self.params
        return msg

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "JSONRPCEvent":
        """Create from JSON dict."""
        return cls(
            method=data["method"],
            params=data.get("params"),
        )

    def __str__(self) -> str:
        return f"Event({self.method})"


JSONRPCResponse = JSONRPCResponseResult | JSONRPCResponseError
InboundMessage = JSONRPCResponseResult | JSONRPCResponseError | JSONRPCRequest | JSONRPCEvent
OutboundMessage = JSONRPCRequest | JSONRPCEvent
