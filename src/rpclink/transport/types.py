"""Transport layer types and configuration."""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any
from urllib.parse import urlparse

INSECURE_SCHEMES = ("http", "ws")
SECURE_SCHEMES = ("https", "wss")


class TransportEventType(Enum):
    """Types of transport events for observability."""

    CONNECTING = auto()
    CONNECTED = auto()
    DISCONNECTING = auto()
    DISCONNECTED = auto()
    MESSAGE_SENT = auto()
    MESSAGE_RECEIVED = auto()
    ERROR = auto()


@dataclass
class TransportEvent:
    """Event emitted by a transport; also the payload of disconnect callbacks."""

    type: TransportEventType
    timestamp: float
    data: dict[str, Any] | None = None
    error: Exception | None = None

    def __str__(self) -> str:
        base = f"[{self.type.name}]"
        if self.data:
            base += f" {self.data}"
        if self.error:
            base += f" error={self.error}"
        return base


@dataclass
class TransportConfig:
    """Configuration for network transports."""

    url: str
    """Endpoint URL (https:// or wss:// for remote hosts)."""

    timeout: float = 30.0
    """I/O timeout in seconds."""

    connect_timeout: float = 10.0
    """Connection establishment timeout in seconds."""

    headers: dict[str, str] = field(default_factory=dict)
    """Additional headers sent when connecting or posting."""

    max_concurrent_requests: int = 10
    """Maximum number of concurrent in-flight sends."""

    verify_ssl: bool = True
    """Whether to verify TLS certificates."""

    def __post_init__(self) -> None:
        """Validate configuration."""
        if not self.url:
            raise ValueError("url is required")
        scheme = urlparse(self.url).scheme
        if scheme not in INSECURE_SCHEMES + SECURE_SCHEMES:
            raise ValueError(f"Unsupported URL scheme: {scheme or '(none)'}")
        # Allow plain text schemes only for localhost development
        if scheme in INSECURE_SCHEMES and not self._is_localhost():
            raise ValueError("Remote connections must use https:// or wss://")
        if self.timeout <= 0:
            raise ValueError("timeout must be positive")
        if self.connect_timeout <= 0:
            raise ValueError("connect_timeout must be positive")
        if self.max_concurrent_requests < 1:
            raise ValueError("max_concurrent_requests must be at least 1")

    def _is_localhost(self) -> bool:
        """Check if URL points to localhost."""
        host = urlparse(self.url).hostname or ""
        return host in ("localhost", "127.0.0.1", "::1", "[::1]")
