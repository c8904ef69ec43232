# =============================================================================
# Sails Python Client -- Placeholder Connection
# =============================================================================
#
# Stands in for the default socket until the deferred auto-connect has
# produced a real one. Only records listener bindings.
# =============================================================================

from __future__ import annotations

from typing import TYPE_CHECKING

from ._logging import logger

if TYPE_CHECKING:
    from .transport import ConnectionHandle, EventHandler


class PlaceholderConnection:
    """Records ``on()`` bindings and replays them onto the live connection.

    Bindings made after :meth:`promote` are not forwarded. Register
    listeners before the first loop turn ends, or directly on the live
    connection afterwards.
    """

    def __init__(self) -> None:
        self._bindings: list[tuple[str, EventHandler]] = []
        self._promoted_to: ConnectionHandle | None = None

    @property
    def identifier(self) -> None:
        return None

    @property
    def promoted(self) -> bool:
        return self._promoted_to is not None

    def is_usable(self) -> bool:
        return False

    def on(self, event: str, handler: EventHandler) -> PlaceholderConnection:
        """Record *handler* for *event*. Returns self for chaining."""
        if self._promoted_to is not None:
            logger.warning(
                "Listener for '%s' bound on a promoted placeholder is ignored; "
                "bind it on the live connection instead",
                event,
            )
            return self
        self._bindings.append((event, handler))
        return self

    def promote(self, live: ConnectionHandle) -> ConnectionHandle:
        """Replay every recorded binding onto *live* and return it."""
        for event, handler in self._bindings:
            live.on(event, handler)
        logger.debug("Promoted placeholder with %d bindings", len(self._bindings))
        self._bindings.clear()
        self._promoted_to = live
        return live
