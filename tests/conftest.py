"""Shared fixtures: an in-memory transport standing in for the websocket."""

from __future__ import annotations

import asyncio

from collections import defaultdict
from typing import Any

import pytest

from sails_client.errors import SailsConnectionError
from sails_client.manager import ConnectionManager
from sails_client.types import SailsConfig


class FakeConnection:
    """Connection handle driven by the test instead of a server."""

    def __init__(self, address: str | None, options: dict[str, Any]) -> None:
        self.address = address
        self.options = options
        self.listeners: dict[str, list[Any]] = defaultdict(list)
        self.emitted: list[tuple[str, Any, Any]] = []
        self.usable = False
        self.closed = False
        self._identifier: str | None = None

    @property
    def identifier(self) -> str | None:
        return self._identifier

    def on(self, event, handler):
        self.listeners[event].append(handler)
        return self

    def emit(self, event, payload, ack=None):
        if not self.usable:
            raise SailsConnectionError("not usable")
        self.emitted.append((event, payload, ack))

    def is_usable(self) -> bool:
        return self.usable

    async def close(self) -> None:
        self.closed = True
        self.usable = False

    # -- Test controls --------------------------------------------------------

    def fire(self, event, *args):
        for handler in list(self.listeners[event]):
            handler(*args)

    def open(self, identifier: str = "conn-1") -> None:
        if self._identifier is None:
            self._identifier = identifier
        self.usable = True
        self.fire("connect")

    def drop(self, reason: str = "transport close") -> None:
        self.usable = False
        self.fire("disconnect", reason)

    def ack(self, index: int, payload: Any) -> None:
        self.emitted[index][2](payload)


class FakeTransport:
    def __init__(self) -> None:
        self.connections: list[FakeConnection] = []

    def establish(self, address, options) -> FakeConnection:
        connection = FakeConnection(address, options)
        self.connections.append(connection)
        return connection


class FakeWebSocket:
    """Stands in for a websockets client connection; the test feeds frames."""

    def __init__(self) -> None:
        self.incoming: asyncio.Queue[Any] = asyncio.Queue()
        self.sent: list[Any] = []
        self.closed = False
        self.close_code: int | None = None
        self.close_reason: str | None = None

    async def send(self, data):
        self.sent.append(data)

    async def close(self, code=1000, reason=""):
        self.closed = True
        self.close_code = code
        await self.incoming.put(None)

    def __aiter__(self):
        return self

    async def __anext__(self):
        message = await self.incoming.get()
        if message is None:
            raise StopAsyncIteration
        return message


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def manager(transport):
    return ConnectionManager(transport, SailsConfig(url="ws://sails.test/socket"))
