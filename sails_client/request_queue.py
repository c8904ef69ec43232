# =============================================================================
# Sails Python Client -- Request Queue
# =============================================================================
#
# Holds requests issued while a connection is not usable and hands them
# back, in submission order, when it becomes usable.
#
# In-memory only; queued requests do not survive a process restart.
# =============================================================================

from __future__ import annotations

from collections import deque
from typing import Any

from ._logging import logger
from .types import PendingRequest


class RequestQueue:
    """Per-connection FIFO queues of :class:`PendingRequest`.

    Keys are connection identifiers. ``None`` holds requests issued before
    any connection had an identifier.

    A request leaves its queue exactly once, when :meth:`drain` hands it to
    the caller for dispatch, so sizes count requests not yet dispatched
    (as opposed to not yet completed).
    """

    def __init__(self) -> None:
        self._queues: dict[str | None, deque[PendingRequest]] = {}

    def __len__(self) -> int:
        return sum(len(q) for q in self._queues.values())

    def size(self, identifier: str | None = None) -> int:
        """Number of requests waiting under *identifier*."""
        queue = self._queues.get(identifier)
        return len(queue) if queue else 0

    def identifiers(self) -> list[str | None]:
        return [key for key, q in self._queues.items() if q]

    def enqueue(self, identifier: str | None, request: PendingRequest) -> None:
        """Append *request* to the queue for *identifier*."""
        queue = self._queues.get(identifier)
        if queue is None:
            queue = self._queues[identifier] = deque()
        queue.append(request)
        logger.debug(
            "Queued %s %s for connection %s (%d waiting)",
            request.method.value,
            request.url,
            identifier,
            len(queue),
        )

    def drain(self, identifier: str | None) -> list[PendingRequest]:
        """Remove and return every request for *identifier*, oldest first."""
        queue = self._queues.pop(identifier, None)
        if not queue:
            return []
        return list(queue)

    def get_stats(self) -> dict[str, Any]:
        return {
            "size": len(self),
            "queues": {str(key): len(q) for key, q in self._queues.items() if q},
        }
