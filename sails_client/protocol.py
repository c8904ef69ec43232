# =============================================================================
# Sails Python Client -- Wire Frame Codec
# =============================================================================
#
# Frames exchanged with the server:
#
#   Event:          {"t": <event>, "p": <payload>}
#   Acked event:    {"t": <event>, "p": <payload>, "ack": <id>}
#   Acknowledgment: {"t": "ack", "ack": <id>, "p": <payload>}
#
# Text frames are JSON. Binary frames are MessagePack (M: prefix) or
# UTF-8 JSON.
# =============================================================================

from __future__ import annotations

import json

from dataclasses import dataclass
from typing import Any

from ._logging import logger
from .constants import EVENT_ACK, MAX_MESSAGE_SIZE, PREFIX_MSGPACK
from .errors import SailsProtocolError

try:
    import msgpack

    _HAS_MSGPACK = True
except ImportError:
    _HAS_MSGPACK = False

try:
    import orjson

    def _json_loads(data: str | bytes) -> Any:
        return orjson.loads(data)

    def _json_dumps(obj: Any) -> str:
        return orjson.dumps(obj).decode()

except ImportError:

    def _json_loads(data: str | bytes) -> Any:
        return json.loads(data)

    def _json_dumps(obj: Any) -> str:
        return json.dumps(obj, separators=(",", ":"))


@dataclass(frozen=True, slots=True)
class Frame:
    """A decoded wire frame.

    Attributes:
        event: Event name, or ``"ack"`` for acknowledgments.
        payload: Event data or acknowledgment payload.
        ack: Acknowledgment id, when present.
    """

    event: str
    payload: Any = None
    ack: int | None = None

    @property
    def is_ack(self) -> bool:
        return self.event == EVENT_ACK and self.ack is not None


class FrameCodec:
    """Encode outgoing frames and decode incoming ones.

    Args:
        use_msgpack: Accept ``M:`` frames. Requires the ``msgpack`` extra.
    """

    def __init__(self, *, use_msgpack: bool = True) -> None:
        if use_msgpack and not _HAS_MSGPACK:
            logger.debug("msgpack not installed, M: frames will be rejected")
        self._use_msgpack = use_msgpack and _HAS_MSGPACK

    def encode(self, event: str, payload: Any, *, ack: int | None = None) -> str:
        message: dict[str, Any] = {"t": event, "p": payload}
        if ack is not None:
            message["ack"] = ack
        return _json_dumps(message)

    def encode_ack(self, ack: int, payload: Any) -> str:
        return _json_dumps({"t": EVENT_ACK, "ack": ack, "p": payload})

    def decode(self, data: str | bytes) -> Frame:
        """Decode one frame.

        Raises:
            SailsProtocolError: If the frame is oversized or malformed.
        """
        if len(data) > MAX_MESSAGE_SIZE:
            raise SailsProtocolError(f"Frame exceeds max size ({len(data)} bytes)")

        if isinstance(data, str):
            return self._decode_json(data)

        if data[:2] == PREFIX_MSGPACK:
            if not self._use_msgpack:
                raise SailsProtocolError(
                    "Received msgpack frame but msgpack not available"
                )
            try:
                parsed = msgpack.unpackb(data[2:], raw=False)
            except Exception as exc:
                raise SailsProtocolError(f"Corrupt msgpack frame: {exc}") from exc
            return self._to_frame(parsed)

        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise SailsProtocolError(
                f"Unable to decode binary frame ({len(data)} bytes)"
            ) from exc
        return self._decode_json(text)

    def _decode_json(self, text: str) -> Frame:
        try:
            parsed = _json_loads(text)
        except ValueError as exc:
            raise SailsProtocolError(f"Failed to parse JSON: {exc}") from exc
        return self._to_frame(parsed)

    def _to_frame(self, parsed: Any) -> Frame:
        if not isinstance(parsed, dict):
            raise SailsProtocolError(f"Expected an object, got {type(parsed).__name__}")

        event = parsed.get("t")
        if not isinstance(event, str) or not event:
            raise SailsProtocolError("Frame has no event name")

        ack = parsed.get("ack")
        if ack is not None and not isinstance(ack, int):
            logger.debug("Ignoring non-integer ack id %r", ack)
            ack = None

        payload = parsed.get("p")
        return Frame(event=event, payload=payload, ack=ack)
