# =============================================================================
# Sails Python Client -- Connection Manager
# =============================================================================
#
# Owns the default socket: placeholder until the deferred auto-connect,
# then the live connection. Requests issued while it is not usable are
# queued and replayed, in order, when it connects.
# =============================================================================

from __future__ import annotations

import asyncio

from typing import Any

from ._logging import logger
from .constants import DEFAULT_ENVIRONMENT, EVENT_CONNECT, EVENT_DISCONNECT, EVENT_ERROR
from .dispatcher import RequestDispatcher
from .errors import SailsConfigurationError, SailsConnectionError
from .placeholder import PlaceholderConnection
from .registry import ConnectionRegistry
from .request import build_request
from .request_queue import RequestQueue
from .transport import (
    ConnectionHandle,
    ConnectOptions,
    EventHandler,
    Transport,
    with_sdk_metadata,
)
from .types import (
    ConnectionState,
    PendingRequest,
    RequestMethod,
    ResponseCallback,
    SailsConfig,
    SailsResponse,
)


class ConnectionManager:
    """Request/response client over one persistent event connection.

    Args:
        transport: Creates live connections. Required.
        config: Client configuration. Read lazily by the deferred
            auto-connect, so it may be changed until the loop turns.

    Raises:
        SailsConfigurationError: If *transport* is ``None``.

    Example::

        manager = ConnectionManager(WebSocketTransport())
        manager.on("message", print)
        manager.schedule_auto_connect()
        response = await manager.get("/user/3")
    """

    def __init__(self, transport: Transport | None, config: SailsConfig | None = None) -> None:
        if transport is None:
            raise SailsConfigurationError(
                "sails_client requires a transport, but none was passed in"
            )
        self._transport = transport
        self.config = config or SailsConfig()

        self._placeholder: PlaceholderConnection | None = PlaceholderConnection()
        self._live: ConnectionHandle | None = None
        self._disabled = False
        self._promotions = 0

        self._queue = RequestQueue()
        self._registry = ConnectionRegistry()
        self._dispatcher = RequestDispatcher()

        self._auto_connect_handle: asyncio.Handle | None = None

    # -- Context manager ------------------------------------------------------

    async def __aenter__(self) -> ConnectionManager:
        if self._auto_connect_handle is None and self._placeholder is not None:
            self.schedule_auto_connect()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    # -- Properties -----------------------------------------------------------

    @property
    def socket(self) -> PlaceholderConnection | ConnectionHandle | None:
        """The default socket: placeholder, live connection, or ``None``."""
        if self._live is not None:
            return self._live
        return self._placeholder

    @property
    def is_usable(self) -> bool:
        return self._live is not None and self._live.is_usable()

    @property
    def state(self) -> ConnectionState:
        if self.is_usable:
            return ConnectionState.USABLE
        if self._promotions or self._disabled:
            return ConnectionState.CLOSED
        return ConnectionState.PENDING

    @property
    def identifier(self) -> str | None:
        return self._live.identifier if self._live is not None else None

    @property
    def queue_size(self) -> int:
        """Requests issued but not yet dispatched."""
        return len(self._queue)

    @property
    def registry(self) -> ConnectionRegistry:
        return self._registry

    # -- Listeners ------------------------------------------------------------

    def on(self, event: str, handler: EventHandler) -> Any:
        """Bind *handler* on the default socket.

        Before the auto-connect the binding is recorded and replayed on the
        live connection.

        Raises:
            SailsConnectionError: If auto-connect is disabled.
        """
        socket = self.socket
        if socket is None:
            raise SailsConnectionError("Default socket disabled (auto_connect=False)")
        return socket.on(event, handler)

    # -- Connect --------------------------------------------------------------

    def connect(
        self,
        url: str | None = None,
        options: ConnectOptions | None = None,
    ) -> ConnectionHandle:
        """Establish a connection with the SDK metadata in its query string."""
        opts: ConnectOptions = dict(options or {})  # type: ignore[assignment]
        if self.config.query and "query" not in opts:
            opts["query"] = self.config.query
        if self.config.headers:
            opts["headers"] = {**self.config.headers, **opts.get("headers", {})}
        return self._transport.establish(url or self.config.url, with_sdk_metadata(opts))

    def schedule_auto_connect(
        self, loop: asyncio.AbstractEventLoop | None = None
    ) -> asyncio.Handle:
        """Connect the default socket on the next turn of *loop*.

        Code running before that turn can still bind listeners on the
        placeholder and adjust :attr:`config`.
        """
        if self._auto_connect_handle is not None:
            return self._auto_connect_handle
        loop = loop or asyncio.get_running_loop()
        self._auto_connect_handle = loop.call_soon(self._auto_connect)
        return self._auto_connect_handle

    def _auto_connect(self) -> None:
        placeholder = self._placeholder
        if placeholder is None or placeholder.promoted:
            return

        if not self.config.auto_connect:
            logger.info("Auto-connect disabled, default socket discarded")
            self._placeholder = None
            self._disabled = True
            return

        live = placeholder.promote(self.connect(self.config.url))
        self._live = live
        self._placeholder = None

        live.on(EVENT_CONNECT, lambda *args: self._on_connect(live))
        live.on(EVENT_DISCONNECT, lambda *args: self._on_disconnect(live, *args))
        live.on(EVENT_ERROR, lambda *args: self._on_error(*args))

    # -- Transport events -----------------------------------------------------

    def _on_connect(self, live: ConnectionHandle) -> None:
        """Register *live* and replay every request queued for it."""
        identifier = self._registry.register(live)
        self._promotions += 1

        if self.config.environment != DEFAULT_ENVIRONMENT:
            logger.info(
                "Socket is now connected and accessible as `manager.socket`. "
                "e.g. to send a GET request via the socket, try: "
                "`await manager.get('/foo')`"
            )

        # Requests issued before any identifier existed belong to this socket
        early = self._queue.drain(None)
        for queued_id in self._queue.identifiers():
            target = self._registry.get(queued_id)
            if target is None or not target.is_usable():
                continue
            pending = self._queue.drain(queued_id)
            if target is live:
                pending = early + pending
                early = []
            self._replay(target, queued_id, pending)
        if early:
            self._replay(live, identifier, early)

    def _replay(
        self,
        connection: ConnectionHandle,
        identifier: str | None,
        pending: list[PendingRequest],
    ) -> None:
        logger.info("Replaying %d queued requests on %s", len(pending), identifier)
        for i, request in enumerate(pending):
            if not connection.is_usable():
                remaining = pending[i:]
                logger.warning(
                    "Connection lost during replay, re-queuing %d requests",
                    len(remaining),
                )
                for queued in remaining:
                    self._queue.enqueue(identifier, queued)
                return
            try:
                self._dispatcher.send(connection, request)
            except Exception as exc:
                logger.error(
                    "Failed to replay %s %s: %s",
                    request.method.value,
                    request.url,
                    exc,
                )
                request.completed = True
                if request.future is not None and not request.future.done():
                    request.future.set_exception(exc)

    def _on_disconnect(self, live: ConnectionHandle, *args: Any) -> None:
        reason = args[0] if args else ""
        logger.info("Socket %s disconnected: %s", live.identifier, reason)

    def _on_error(self, *args: Any) -> None:
        err = args[0] if args else None
        logger.warning(
            "Failed to connect socket (probably due to failed authorization "
            "on server). Error: %s",
            err,
        )

    # -- Requests -------------------------------------------------------------

    def request(
        self,
        method: RequestMethod | str,
        url: str,
        data: dict[str, Any] | ResponseCallback | None = None,
        callback: ResponseCallback | None = None,
        *,
        headers: dict[str, Any] | None = None,
    ) -> asyncio.Future[SailsResponse]:
        """Send a virtual request, or queue it until the socket connects.

        Never blocks. The returned future resolves with the
        :class:`SailsResponse` once the server acknowledges the request;
        *callback* is called at the same moment, with ``(body, response)``
        when the acknowledgment carries a body and with the raw
        acknowledgment payload otherwise.

        Must be called with a running event loop.

        Raises:
            SailsValidationError: If *url* or *method* is invalid.
        """
        pending = build_request(method, url, data, callback, headers=headers)
        pending.future = asyncio.get_running_loop().create_future()
        self._route(pending)
        return pending.future

    def get(
        self,
        url: str,
        data: dict[str, Any] | ResponseCallback | None = None,
        callback: ResponseCallback | None = None,
        **kwargs: Any,
    ) -> asyncio.Future[SailsResponse]:
        return self.request(RequestMethod.GET, url, data, callback, **kwargs)

    def post(
        self,
        url: str,
        data: dict[str, Any] | ResponseCallback | None = None,
        callback: ResponseCallback | None = None,
        **kwargs: Any,
    ) -> asyncio.Future[SailsResponse]:
        return self.request(RequestMethod.POST, url, data, callback, **kwargs)

    def put(
        self,
        url: str,
        data: dict[str, Any] | ResponseCallback | None = None,
        callback: ResponseCallback | None = None,
        **kwargs: Any,
    ) -> asyncio.Future[SailsResponse]:
        return self.request(RequestMethod.PUT, url, data, callback, **kwargs)

    def delete(
        self,
        url: str,
        data: dict[str, Any] | ResponseCallback | None = None,
        callback: ResponseCallback | None = None,
        **kwargs: Any,
    ) -> asyncio.Future[SailsResponse]:
        return self.request(RequestMethod.DELETE, url, data, callback, **kwargs)

    def _route(self, request: PendingRequest) -> None:
        live = self._live
        if live is not None and live.is_usable():
            self._dispatcher.send(live, request)
            return
        self._queue.enqueue(self.identifier, request)

    # -- Shutdown -------------------------------------------------------------

    async def close(self) -> None:
        """Cancel a pending auto-connect and close the live connection.

        Queued requests stay queued.
        """
        if self._auto_connect_handle is not None:
            self._auto_connect_handle.cancel()
            self._auto_connect_handle = None
        live = self._live
        if live is not None:
            await live.close()
            if live.identifier is not None:
                self._registry.unregister(live.identifier)

    # -- Stats ----------------------------------------------------------------

    def get_stats(self) -> dict[str, Any]:
        """Return manager statistics."""
        return {
            "state": self.state.value,
            "identifier": self.identifier,
            "promotions": self._promotions,
            "registered_connections": len(self._registry),
            "request_queue": self._queue.get_stats(),
            "dispatcher": self._dispatcher.get_stats(),
        }
