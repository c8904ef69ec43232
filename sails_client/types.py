# =============================================================================
# Sails Python Client -- Type Definitions
# =============================================================================

from __future__ import annotations

import asyncio

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

from .constants import (
    DEFAULT_ENVIRONMENT,
    RECONNECT_BASE_DELAY,
    RECONNECT_FACTOR,
    RECONNECT_MAX_ATTEMPTS,
    RECONNECT_MAX_DELAY,
)

# Completion handler: ``cb(body, response)`` or ``cb(response)``
ResponseCallback = Callable[..., Any]


class ConnectionState(str, Enum):
    """Connection lifecycle state.

    Typical flow: PENDING -> USABLE -> CLOSED. A transport that reconnects
    moves CLOSED -> USABLE again.
    """

    PENDING = "pending"
    USABLE = "usable"
    CLOSED = "closed"


class RequestMethod(str, Enum):
    """Virtual HTTP verbs understood by the server's socket router.

    The value doubles as the name of the event the request is emitted on.
    """

    GET = "get"
    POST = "post"
    PUT = "put"
    DELETE = "delete"


@dataclass(frozen=True, slots=True)
class SailsResponse:
    """A response received from the server as an acknowledgment.

    Attributes:
        status_code: HTTP-style status code (default 200).
        headers: Response headers (default empty).
        body: Response body (default empty).
    """

    status_code: int = 200
    headers: dict[str, Any] = field(default_factory=dict)
    body: Any = field(default_factory=dict)

    @classmethod
    def from_ack(cls, payload: Any) -> SailsResponse:
        """Normalize a raw acknowledgment payload.

        Missing or falsy fields fall back to their defaults. A payload that
        is not a mapping is treated as the body itself. Mapping headers
        and bodies are copied.
        """
        if not isinstance(payload, dict):
            payload = {"body": payload}
        headers = payload.get("headers") or {}
        body = payload.get("body") or {}
        return cls(
            status_code=payload.get("statusCode") or 200,
            headers=dict(headers) if isinstance(headers, dict) else headers,
            body=dict(body) if isinstance(body, dict) else body,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "body": self.body,
            "headers": self.headers,
            "statusCode": self.status_code,
        }

    def __str__(self) -> str:
        return (
            f"[ResponseFromSails]  -- Status: {self.status_code}"
            f"  -- Headers: {self.headers}  -- Body: {self.body}"
        )


@dataclass(slots=True)
class PendingRequest:
    """One unit of work waiting to be sent, or in flight.

    Attributes:
        method: One of :class:`RequestMethod`.
        url: Normalized destination URL.
        data: Parameters sent with the request.
        headers: Virtual request headers.
        callback: Local completion handler, never transmitted.
        future: Resolved once with the :class:`SailsResponse`.
        completed: Set when the acknowledgment has been delivered.
    """

    method: RequestMethod
    url: str
    data: dict[str, Any] = field(default_factory=dict)
    headers: dict[str, Any] = field(default_factory=dict)
    callback: ResponseCallback | None = field(default=None, repr=False)
    future: asyncio.Future[SailsResponse] | None = field(default=None, repr=False)
    completed: bool = False

    def envelope(self) -> dict[str, Any]:
        """Wire payload for this request (the callback stays local)."""
        return {
            "method": self.method.value,
            "url": self.url,
            "data": self.data,
            "headers": self.headers,
        }


@dataclass
class ReconnectConfig:
    """Configuration for the websocket transport's reconnection.

    Attributes:
        enabled: Reconnect after an unexpected close.
        base_delay: Initial delay in seconds before first retry.
        max_delay: Maximum delay cap in seconds.
        max_attempts: Max retries, ``-1`` for infinite.
        factor: Multiplier per attempt for exponential backoff.
        jitter: Randomize delays to avoid thundering herd.
    """

    enabled: bool = True
    base_delay: float = RECONNECT_BASE_DELAY
    max_delay: float = RECONNECT_MAX_DELAY
    max_attempts: int = RECONNECT_MAX_ATTEMPTS
    factor: float = RECONNECT_FACTOR
    jitter: bool = True


@dataclass
class SailsConfig:
    """Client configuration, read when the deferred auto-connect runs.

    Attributes:
        url: Server URL. ``None`` uses the transport's default.
        auto_connect: Connect the default socket on the next loop turn.
        environment: Anything but ``"production"`` enables extra hints.
        query: Extra query string sent with the handshake.
        headers: Additional HTTP headers for the handshake.
        reconnect: Reconnection settings for the websocket transport.
    """

    url: str | None = None
    auto_connect: bool = True
    environment: str = DEFAULT_ENVIRONMENT
    query: str | None = None
    headers: dict[str, str] = field(default_factory=dict)
    reconnect: ReconnectConfig = field(default_factory=ReconnectConfig)
