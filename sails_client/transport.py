# =============================================================================
# Sails Python Client -- Transport Capability Surface
# =============================================================================
#
# The manager only talks to connections through these protocols, so any
# event-based transport with acknowledged emits can be plugged in.
# =============================================================================

from __future__ import annotations

from typing import Any, Callable, Protocol, TypedDict, runtime_checkable

from .constants import SDK_VERSION_STRING

EventHandler = Callable[..., Any]
AckHandler = Callable[[Any], Any]


class ConnectOptions(TypedDict, total=False):
    """Options passed to :meth:`Transport.establish`.

    Attributes:
        query: Query string appended to the connection URL.
        headers: Additional HTTP headers for the handshake.
    """

    query: str
    headers: dict[str, str]


@runtime_checkable
class ConnectionHandle(Protocol):
    """A live (or reconnecting) connection produced by a transport."""

    @property
    def identifier(self) -> str | None: ...

    def on(self, event: str, handler: EventHandler) -> Any: ...

    def emit(self, event: str, payload: Any, ack: AckHandler | None = None) -> None: ...

    def is_usable(self) -> bool: ...

    async def close(self) -> None: ...


@runtime_checkable
class Transport(Protocol):
    """Factory for connection handles."""

    def establish(self, address: str | None, options: ConnectOptions) -> ConnectionHandle: ...


def with_sdk_metadata(options: ConnectOptions | None = None) -> ConnectOptions:
    """Return a copy of *options* whose query carries the SDK metadata.

    A caller-supplied query string is kept and the metadata appended
    with ``&``; otherwise the metadata becomes the whole query.
    """
    opts: ConnectOptions = dict(options or {})  # type: ignore[assignment]
    query = opts.get("query")
    if isinstance(query, str) and query:
        opts["query"] = f"{query}&{SDK_VERSION_STRING}"
    else:
        opts["query"] = SDK_VERSION_STRING
    return opts
