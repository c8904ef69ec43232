"""Sails Python client: request/response calls over one persistent socket.

Usage::

    from sails_client import create_client

    async def main():
        client = create_client(url="ws://localhost:1337/socket")
        client.on("user", lambda payload: print("user event", payload))

        # Requests issued before the socket connects are queued and
        # replayed in order once it does.
        response = await client.get("/user/3")
        print(response.status_code, response.body)

        client.post("/event", {"title": "standup"}, lambda body, res: print(body))

Optional extras::

    pip install sails-client[msgpack]   # MessagePack binary frames
    pip install sails-client[all]       # msgpack + orjson
"""

from typing import Any

from ._version import __version__
from .connection import WebSocketConnection, WebSocketTransport
from .errors import (
    SailsConfigurationError,
    SailsConnectionError,
    SailsError,
    SailsProtocolError,
    SailsValidationError,
)
from .manager import ConnectionManager
from .placeholder import PlaceholderConnection
from .transport import ConnectionHandle, ConnectOptions, Transport
from .types import (
    ConnectionState,
    PendingRequest,
    ReconnectConfig,
    RequestMethod,
    SailsConfig,
    SailsResponse,
)


def create_client(
    transport: Transport | None = None,
    *,
    config: SailsConfig | None = None,
    **kwargs: Any,
) -> ConnectionManager:
    """Create a client whose default socket connects on the next loop turn.

    Must be called with a running event loop. Keyword arguments build a
    :class:`SailsConfig` when *config* is not given -- common ones: ``url``,
    ``auto_connect``, ``environment``, ``query``, ``headers``, ``reconnect``.

    Args:
        transport: Connection factory. Defaults to :class:`WebSocketTransport`.
        config: Client configuration.
        **kwargs: Passed to :class:`SailsConfig`.

    Returns:
        A :class:`ConnectionManager` with its auto-connect scheduled.

    Example::

        client = create_client(url="ws://localhost:1337/socket")
        response = await client.get("/user/3")
    """
    if config is None:
        config = SailsConfig(**kwargs)
    if transport is None:
        transport = WebSocketTransport(reconnect=config.reconnect)
    manager = ConnectionManager(transport, config)
    manager.schedule_auto_connect()
    return manager


__all__ = [
    "__version__",
    "create_client",
    "ConnectionManager",
    "PlaceholderConnection",
    "WebSocketConnection",
    "WebSocketTransport",
    "ConnectionHandle",
    "ConnectOptions",
    "Transport",
    "ConnectionState",
    "PendingRequest",
    "ReconnectConfig",
    "RequestMethod",
    "SailsConfig",
    "SailsResponse",
    "SailsError",
    "SailsConfigurationError",
    "SailsConnectionError",
    "SailsProtocolError",
    "SailsValidationError",
]
