# =============================================================================
# Sails Python Client -- Connection Registry
# =============================================================================

from __future__ import annotations

from typing import TYPE_CHECKING

from ._logging import logger

if TYPE_CHECKING:
    from .transport import ConnectionHandle


class ConnectionRegistry:
    """Maps connection identifiers to their live connection handles."""

    def __init__(self) -> None:
        self._connections: dict[str, ConnectionHandle] = {}

    def __len__(self) -> int:
        return len(self._connections)

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._connections

    def register(self, connection: ConnectionHandle) -> str:
        """Store *connection* under its identifier and return the identifier."""
        identifier = connection.identifier
        if identifier is None:
            raise ValueError("Cannot register a connection without an identifier")
        previous = self._connections.get(identifier)
        if previous is not None and previous is not connection:
            logger.debug("Replacing registered connection %s", identifier)
        self._connections[identifier] = connection
        return identifier

    def get(self, identifier: str | None) -> ConnectionHandle | None:
        if identifier is None:
            return None
        return self._connections.get(identifier)

    def unregister(self, identifier: str) -> ConnectionHandle | None:
        return self._connections.pop(identifier, None)
