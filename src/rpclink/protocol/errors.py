"""Protocol error types and error codes."""

from typing import Any

from rpclink.protocol.messages import JSONRPCError, JSONRPCResponseError, MessageId

# Standard JSON-RPC 2.0 error codes
PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603

# Client error codes (-32000 to -32099 reserved for implementation)
NO_ERROR_CODE = -32000
TIMEOUT_EXCEEDED_CODE = -32001
INVALID_STATE_ERR_CODE = -32002

# Error code to message mapping
ERROR_MESSAGES = {
    PARSE_ERROR: "Parse error",
    INVALID_REQUEST: "Invalid Request",
    METHOD_NOT_FOUND: "Method not found",
    INVALID_PARAMS: "Invalid params",
    INTERNAL_ERROR: "Internal error",
    NO_ERROR_CODE: "No error",
    TIMEOUT_EXCEEDED_CODE: "Waiting for response timeout exceeded",
    INVALID_STATE_ERR_CODE: "Transport is not connected",
}

# Reserved error values. These are shared and immutable; attach request
# context with .with_data(), which returns a copy.
NO_ERROR = JSONRPCError(NO_ERROR_CODE, ERROR_MESSAGES[NO_ERROR_CODE])
TIMEOUT_EXCEEDED = JSONRPCError(TIMEOUT_EXCEEDED_CODE, ERROR_MESSAGES[TIMEOUT_EXCEEDED_CODE])
INVALID_STATE_ERR = JSONRPCError(INVALID_STATE_ERR_CODE, ERROR_MESSAGES[INVALID_STATE_ERR_CODE])


class RequestError(Exception):
    """
    A request future failed.

    Carries the JSON-RPC error value and the equivalent error response,
    so callers can inspect the code or forward the response unchanged.
    """

    def __init__(self, response: JSONRPCResponseError):
        self.response = response
        super().__init__(response.error.message)

    @property
    def error(self) -> JSONRPCError:
        """The JSON-RPC error object."""
        return self.response.error

    @property
    def code(self) -> int:
        return self.response.error.code

    @property
    def data(self) -> Any:
        return self.response.error.data

    @property
    def request_id(self) -> MessageId | None:
        return self.response.id

    @classmethod
    def for_request(cls, request_id: MessageId | None, error: JSONRPCError) -> "RequestError":
        """Build the exception from a request id and an error value."""
        return cls(JSONRPCResponseError(id=request_id, error=error))

    def __str__(self) -> str:
        return f"{type(self).__name__}({self.code}): {self.error.message} id={self.request_id}"

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(id={self.request_id!r}, code={self.code}, "
            f"message={self.error.message!r})"
        )


class RemoteError(RequestError):
    """The peer answered the request with an error response."""

    pass


class RequestTimeout(RequestError):
    """No response arrived before the request deadline."""

    pass


class InvalidStateError(RequestError):
    """The request was not sent because the transport is not connected."""

    pass
