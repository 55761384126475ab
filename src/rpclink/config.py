"""Client configuration and config file loading."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

from rpclink.transport.base import TransportChannel

logger = logging.getLogger(__name__)

# Config file locations
CLIENT_CONFIG_FILENAME = "client.json"
GLOBAL_CLIENT_CONFIG = Path.home() / ".rpclink" / CLIENT_CONFIG_FILENAME
LOCAL_CLIENT_CONFIG_DIR = ".rpclink"


@dataclass
class ClientConfig:
    """Configuration for JSONRPCClient."""

    transport: TransportChannel | None = None
    """Channel used to exchange messages. Required."""

    message_check_interval: float = 1.0
    """Seconds between sweeps for requests past their deadline."""

    message_timeout: float = 5.0
    """Seconds a request may wait for its response."""

    reconnect: bool = False
    """Accepted for compatibility; reconnection is not implemented."""

    reconnect_after: float = 5.0
    """Accepted for compatibility; reconnection is not implemented."""

    def __post_init__(self) -> None:
        """Validate configuration."""
        if self.transport is None:
            raise ValueError("transport is required")
        if self.message_check_interval <= 0:
            raise ValueError("message_check_interval must be positive")
        if self.message_timeout <= 0:
            raise ValueError("message_timeout must be positive")
        if self.reconnect_after <= 0:
            raise ValueError("reconnect_after must be positive")
        if self.reconnect:
            logger.warning("reconnect is not implemented and will be ignored")

    @classmethod
    def from_dict(cls, transport: TransportChannel, data: dict[str, Any]) -> "ClientConfig":
        """Create from a config dict, ignoring unknown keys."""
        known = {f.name for f in fields(cls)} - {"transport"}
        options = {k: v for k, v in data.items() if k in known}
        unknown = set(data) - known
        if unknown:
            logger.debug(f"Ignoring unknown client options: {sorted(unknown)}")
        return cls(transport=transport, **options)


def _read_options(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text())
    except (OSError, ValueError) as e:
        logger.warning(f"Skipping unreadable client config {path}: {e}")
        return {}

    if not isinstance(data, dict):
        logger.warning(f"Skipping client config {path}: expected an object")
        return {}
    return data


def load_client_config(
    transport: TransportChannel,
    working_dir: Path | None = None,
    global_config: Path = GLOBAL_CLIENT_CONFIG,
) -> ClientConfig:
    """Load client options from global and local config files.

    Global config (~/.rpclink/client.json) is loaded first.
    Local config ({working_dir}/.rpclink/client.json) overrides global.

    Returns:
        ClientConfig bound to the given transport.
    """
    options: dict[str, Any] = {}

    if global_config.exists():
        options.update(_read_options(global_config))

    if working_dir:
        local_config = working_dir / LOCAL_CLIENT_CONFIG_DIR / CLIENT_CONFIG_FILENAME
        if local_config.exists():
            options.update(_read_options(local_config))

    return ClientConfig.from_dict(transport, options)
