# =============================================================================
# Sails Python Client -- WebSocket Transport
# =============================================================================
#
# Event/acknowledgment connection over a single WebSocket: open, receive,
# ack correlation, reconnect with backoff.
# =============================================================================

from __future__ import annotations

import asyncio
import random

from uuid import uuid4
from collections import defaultdict
from typing import Any

import websockets
import websockets.asyncio.client
from websockets.exceptions import ConnectionClosed, InvalidStatus

from ._logging import logger
from .constants import (
    CONNECTION_TIMEOUT,
    DEFAULT_URL,
    EVENT_CONNECT,
    EVENT_DISCONNECT,
    EVENT_ERROR,
    HTTP_FORBIDDEN,
    HTTP_UNAUTHORIZED,
    MAX_MESSAGE_SIZE,
    RECONNECT_ABSOLUTE_CAP,
    WS_CLOSE_AUTH_EXPIRED,
    WS_CLOSE_AUTH_FAILED,
    WS_CLOSE_GOING_AWAY,
    WS_CLOSE_NORMAL,
    WS_CLOSE_POLICY_VIOLATION,
)
from .errors import SailsConnectionError, SailsProtocolError
from .protocol import FrameCodec
from .transport import AckHandler, ConnectOptions, EventHandler
from .types import ConnectionState, ReconnectConfig

# Close codes after which reconnecting is pointless
_AUTH_CLOSE_CODES = frozenset(
    {WS_CLOSE_AUTH_FAILED, WS_CLOSE_AUTH_EXPIRED, WS_CLOSE_POLICY_VIOLATION}
)
_NORMAL_CLOSE_CODES = frozenset({WS_CLOSE_NORMAL, WS_CLOSE_GOING_AWAY})


class WebSocketConnection:
    """One logical connection to a Sails server over a WebSocket.

    Emits ``connect`` each time the socket opens, ``disconnect`` when it
    closes and ``error`` when an open attempt fails. The identifier is
    assigned on the first successful open and kept across reconnects.
    Server events that request an acknowledgment are acknowledged with
    ``None`` once their listeners have run.

    Args:
        url: WebSocket server URL, e.g. ``"ws://localhost:1337/socket"``.
        query: Query string appended to *url* for the handshake.
        headers: Additional HTTP headers for the handshake.
        reconnect: Reconnection config. Defaults to exponential backoff,
            infinite retries.
        codec: Frame codec. Defaults to :class:`FrameCodec`.
    """

    def __init__(
        self,
        url: str,
        *,
        query: str | None = None,
        headers: dict[str, str] | None = None,
        reconnect: ReconnectConfig | None = None,
        codec: FrameCodec | None = None,
    ) -> None:
        self._url = url
        self._query = query
        self._headers = dict(headers or {})
        self._reconnect_cfg = reconnect or ReconnectConfig()
        self._codec = codec or FrameCodec()

        self._listeners: dict[str, list[EventHandler]] = defaultdict(list)
        self._pending_acks: dict[int, AckHandler] = {}
        self._next_ack = 0

        # State
        self._ws: websockets.asyncio.client.ClientConnection | None = None
        self._state = ConnectionState.PENDING
        self._identifier: str | None = None
        self._reconnect_attempts = 0
        self._destroyed = False
        self._outbox: asyncio.Queue[str] | None = None

        # Tasks
        self._open_task: asyncio.Task[None] | None = None
        self._recv_task: asyncio.Task[None] | None = None
        self._write_task: asyncio.Task[None] | None = None
        self._reconnect_task: asyncio.Task[None] | None = None
        self._background_tasks: set[asyncio.Task[Any]] = set()

    def _fire_task(self, coro: Any) -> None:
        """Schedule a coroutine with a strong reference to prevent GC."""
        task = asyncio.ensure_future(coro)
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)

    # -- Properties -----------------------------------------------------------

    @property
    def identifier(self) -> str | None:
        return self._identifier

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def url(self) -> str:
        return self._build_url()

    @property
    def pending_acks(self) -> int:
        return len(self._pending_acks)

    def is_usable(self) -> bool:
        return (
            self._ws is not None
            and self._state == ConnectionState.USABLE
            and not self._destroyed
        )

    # -- Listeners ------------------------------------------------------------

    def on(self, event: str, handler: EventHandler) -> WebSocketConnection:
        """Register *handler* for *event*. Returns self for chaining."""
        self._listeners[event].append(handler)
        return self

    # -- Emit -----------------------------------------------------------------

    def emit(self, event: str, payload: Any, ack: AckHandler | None = None) -> None:
        """Queue *event* for sending, optionally waiting for an acknowledgment.

        Frames are written in call order. *ack* is called once with the
        server's acknowledgment payload; it is dropped if the connection
        closes first.

        Raises:
            SailsConnectionError: If the connection is not usable.
            TypeError: If *payload* cannot be encoded.
        """
        if not self.is_usable() or self._outbox is None:
            raise SailsConnectionError(f"Cannot emit '{event}': connection not usable")

        ack_id: int | None = None
        if ack is not None:
            ack_id = self._next_ack + 1
        frame = self._codec.encode(event, payload, ack=ack_id)
        if ack_id is not None:
            self._next_ack = ack_id
            self._pending_acks[ack_id] = ack

        self._outbox.put_nowait(frame)

    # -- Open / Close ---------------------------------------------------------

    def start(self) -> None:
        """Begin connecting on the running loop."""
        if self._destroyed:
            raise SailsConnectionError("Connection has been closed")
        if self._open_task is not None and not self._open_task.done():
            return
        self._open_task = asyncio.get_running_loop().create_task(self._open())

    async def _open(self) -> None:
        url = self._build_url()
        logger.debug("Opening %s", url)
        try:
            ws = await websockets.asyncio.client.connect(
                url,
                additional_headers=self._headers,
                max_size=MAX_MESSAGE_SIZE,
                open_timeout=CONNECTION_TIMEOUT,
            )
        except InvalidStatus as exc:
            status = exc.response.status_code
            self._report_failure(exc)
            if status in (HTTP_UNAUTHORIZED, HTTP_FORBIDDEN):
                logger.info("Handshake rejected with HTTP %d, not retrying", status)
                self._set_state(ConnectionState.CLOSED)
                return
            self._schedule_reconnect()
            return
        except Exception as exc:
            self._report_failure(exc)
            self._schedule_reconnect()
            return

        if self._destroyed:
            await ws.close(WS_CLOSE_NORMAL, "Client closed")
            return
        self._on_open(ws)

    def _on_open(self, ws: websockets.asyncio.client.ClientConnection) -> None:
        self._ws = ws
        if self._identifier is None:
            self._identifier = uuid4().hex
        self._reconnect_attempts = 0
        self._outbox = asyncio.Queue()
        self._recv_task = asyncio.ensure_future(self._recv_loop(ws))
        self._write_task = asyncio.ensure_future(self._write_loop(ws, self._outbox))
        self._set_state(ConnectionState.USABLE)
        logger.info("Connected to %s (id=%s)", self._url, self._identifier)
        self._dispatch(EVENT_CONNECT)

    async def close(self) -> None:
        """Graceful shutdown.  The connection cannot be reopened."""
        self._destroyed = True
        was_usable = self._state == ConnectionState.USABLE

        current = asyncio.current_task()
        tasks_to_await: list[asyncio.Task[Any]] = []
        for task in (
            self._open_task,
            self._reconnect_task,
            self._recv_task,
            self._write_task,
            *self._background_tasks,
        ):
            if task is not None and task is not current and not task.done():
                task.cancel()
                tasks_to_await.append(task)
        self._open_task = self._reconnect_task = None
        self._recv_task = self._write_task = None
        self._background_tasks.clear()
        if tasks_to_await:
            await asyncio.gather(*tasks_to_await, return_exceptions=True)

        ws = self._ws
        self._ws = None
        if ws is not None:
            try:
                await ws.close(WS_CLOSE_NORMAL, "Client disconnect")
            except ConnectionClosed:
                pass
        self._teardown()
        self._set_state(ConnectionState.CLOSED)
        if was_usable:
            self._dispatch(EVENT_DISCONNECT, "client disconnect")

    # -- Internal: receive / write loops --------------------------------------

    async def _recv_loop(self, ws: websockets.asyncio.client.ClientConnection) -> None:
        try:
            async for message in ws:
                self._handle_raw_message(message)
        except ConnectionClosed as exc:
            code = exc.rcvd.code if exc.rcvd is not None else 1006
            reason = exc.rcvd.reason if exc.rcvd is not None else ""
            self._handle_close(code, reason)
            return
        except asyncio.CancelledError:
            return
        # Iteration ends cleanly on a normal close
        self._handle_close(ws.close_code or WS_CLOSE_NORMAL, ws.close_reason or "")

    async def _write_loop(
        self,
        ws: websockets.asyncio.client.ClientConnection,
        outbox: asyncio.Queue[str],
    ) -> None:
        while True:
            try:
                frame = await outbox.get()
            except asyncio.CancelledError:
                return
            try:
                await ws.send(frame)
            except ConnectionClosed:
                logger.debug("Send failed: connection closed")
                return

    def _handle_raw_message(self, data: str | bytes) -> None:
        try:
            frame = self._codec.decode(data)
        except SailsProtocolError as exc:
            logger.warning("Dropping malformed frame: %s", exc)
            return

        if frame.is_ack:
            handler = self._pending_acks.pop(frame.ack, None)
            if handler is None:
                logger.debug("Ack %s has no pending handler", frame.ack)
                return
            try:
                handler(frame.payload)
            except Exception as exc:
                logger.error("Ack handler error for #%s: %s", frame.ack, exc)
            return

        self._dispatch(frame.event, frame.payload)
        if frame.ack is not None:
            self._acknowledge(frame.ack)

    def _acknowledge(self, ack: int) -> None:
        if self._outbox is None:
            logger.debug("Cannot acknowledge #%s: connection not usable", ack)
            return
        self._outbox.put_nowait(self._codec.encode_ack(ack, None))

    def _dispatch(self, event: str, *args: Any) -> None:
        """Call listeners for *event*; coroutine results are scheduled."""
        for handler in list(self._listeners.get(event, [])):
            try:
                result = handler(*args)
                if asyncio.iscoroutine(result):
                    self._fire_task(result)
            except Exception as exc:
                logger.error("Listener error for '%s': %s", event, exc)

    def _report_failure(self, exc: Exception) -> None:
        logger.debug("Open attempt to %s failed: %s", self._url, exc)
        self._dispatch(EVENT_ERROR, exc)

    # -- Internal: close / reconnect ------------------------------------------

    def _teardown(self) -> None:
        """Forget the socket and everything that was waiting on it."""
        current = asyncio.current_task()
        for task in (self._write_task, self._recv_task):
            if task is not None and task is not current and not task.done():
                task.cancel()
        self._write_task = self._recv_task = None
        self._outbox = None
        if self._pending_acks:
            logger.debug(
                "Dropping %d unacknowledged emits on %s",
                len(self._pending_acks),
                self._identifier,
            )
            self._pending_acks.clear()

    def _handle_close(self, code: int, reason: str) -> None:
        logger.debug("WebSocket closed: code=%d reason=%s", code, reason)
        self._ws = None
        self._teardown()
        self._set_state(ConnectionState.CLOSED)
        self._dispatch(EVENT_DISCONNECT, reason)

        if code in _NORMAL_CLOSE_CODES:
            return

        if code in _AUTH_CLOSE_CODES:
            logger.error("Auth/policy failure (code %d): %s", code, reason)
            return

        self._schedule_reconnect()

    def _schedule_reconnect(self) -> None:
        """Schedule a reconnection attempt with backoff."""
        cfg = self._reconnect_cfg
        if self._destroyed or not cfg.enabled:
            self._set_state(ConnectionState.CLOSED)
            return

        if cfg.max_attempts >= 0 and self._reconnect_attempts >= cfg.max_attempts:
            logger.error("Max reconnect attempts (%d) reached", cfg.max_attempts)
            self._set_state(ConnectionState.CLOSED)
            return

        delay = self._calculate_delay()
        logger.info(
            "Reconnecting in %.1fs (attempt %d/%s)",
            delay,
            self._reconnect_attempts + 1,
            cfg.max_attempts if cfg.max_attempts >= 0 else "inf",
        )
        self._reconnect_task = asyncio.ensure_future(self._reconnect_after(delay))

    async def _reconnect_after(self, delay: float) -> None:
        """Wait, then try to reconnect."""
        try:
            await asyncio.sleep(delay)
        except asyncio.CancelledError:
            return
        self._reconnect_attempts += 1
        await self._open()

    def _calculate_delay(self) -> float:
        """Exponential backoff with optional jitter."""
        cfg = self._reconnect_cfg
        delay = cfg.base_delay * (cfg.factor**self._reconnect_attempts)
        delay = min(delay, cfg.max_delay, RECONNECT_ABSOLUTE_CAP)

        if cfg.jitter:
            jitter_amount = delay * 0.2 * (random.random() - 0.5)
            delay = max(0.0, delay + jitter_amount)

        return delay

    # -- State management -----------------------------------------------------

    def _set_state(self, new_state: ConnectionState) -> None:
        if new_state == self._state:
            return
        old = self._state
        self._state = new_state
        logger.debug("State: %s -> %s", old.value, new_state.value)

    # -- URL building ---------------------------------------------------------

    def _build_url(self) -> str:
        """Append the handshake query string to the base URL."""
        if not self._query:
            return self._url
        sep = "&" if "?" in self._url else "?"
        return self._url + sep + self._query


class WebSocketTransport:
    """Default transport: one :class:`WebSocketConnection` per establish().

    Args:
        default_url: URL used when establish() gets no address.
        reconnect: Reconnection config shared by every connection.
        headers: HTTP headers sent with every handshake.
        use_msgpack: Accept MessagePack binary frames.
    """

    def __init__(
        self,
        *,
        default_url: str = DEFAULT_URL,
        reconnect: ReconnectConfig | None = None,
        headers: dict[str, str] | None = None,
        use_msgpack: bool = True,
    ) -> None:
        self._default_url = default_url
        self._reconnect = reconnect
        self._headers = dict(headers or {})
        self._use_msgpack = use_msgpack

    def establish(
        self, address: str | None, options: ConnectOptions
    ) -> WebSocketConnection:
        """Create a connection to *address* and start opening it."""
        connection = WebSocketConnection(
            address or self._default_url,
            query=options.get("query"),
            headers={**self._headers, **options.get("headers", {})},
            reconnect=self._reconnect,
            codec=FrameCodec(use_msgpack=self._use_msgpack),
        )
        connection.start()
        return connection
