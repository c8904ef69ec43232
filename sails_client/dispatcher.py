# =============================================================================
# Sails Python Client -- Request Dispatcher
# =============================================================================
#
# Emits a request envelope on a live connection and turns the server's
# acknowledgment into a SailsResponse.
# =============================================================================

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ._logging import logger
from .types import PendingRequest, SailsResponse

if TYPE_CHECKING:
    from .transport import ConnectionHandle


class RequestDispatcher:
    """Sends :class:`PendingRequest` objects over a connection.

    The request's callback and future are resolved at most once, and only
    from a real acknowledgment. Requests lost with their connection before
    the acknowledgment arrives are never resolved.
    """

    def __init__(self) -> None:
        self._sent = 0
        self._completed = 0

    def send(self, connection: ConnectionHandle, request: PendingRequest) -> None:
        """Emit *request* on *connection* as an event named after its method."""
        envelope = request.envelope()

        def server_responded(payload: Any) -> None:
            self._complete(request, payload)

        connection.emit(request.method.value, envelope, server_responded)
        self._sent += 1
        logger.debug(
            "Sent %s %s on connection %s",
            request.method.value,
            request.url,
            connection.identifier,
        )

    def _complete(self, request: PendingRequest, payload: Any) -> None:
        if request.completed:
            logger.warning(
                "Duplicate acknowledgment for %s %s ignored",
                request.method.value,
                request.url,
            )
            return
        request.completed = True
        self._completed += 1

        response = SailsResponse.from_ack(payload)

        future = request.future
        if future is not None and not future.done():
            future.set_result(response)

        callback = request.callback
        if callback is None:
            return
        has_body = isinstance(payload, dict) and payload.get("body") is not None
        try:
            if has_body:
                callback(response.body, response)
            else:
                callback(payload)
        except Exception as exc:
            logger.error(
                "Callback error for %s %s: %s",
                request.method.value,
                request.url,
                exc,
            )

    def get_stats(self) -> dict[str, Any]:
        return {
            "sent": self._sent,
            "completed": self._completed,
            "in_flight": self._sent - self._completed,
        }
