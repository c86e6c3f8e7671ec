"""
Typed wrappers for values exchanged over mpv's JSON IPC.

mpv replies with untyped JSON data (numbers, strings, booleans, lists and
maps). ProtocolValue makes every read explicit and raises TypeMismatch instead
of silently casting.
"""

from dataclasses import dataclass, field
from typing import Any, Optional

from .errors import TypeMismatch


@dataclass(frozen=True)
class ProtocolValue:
    """A single JSON value returned by mpv."""

    raw: Any = None

    def is_none(self) -> bool:
        return self.raw is None

    def as_bool(self) -> bool:
        if isinstance(self.raw, bool):
            return self.raw
        raise TypeMismatch("bool", self.raw)

    def as_float(self) -> float:
        # bool is a subclass of int; mpv never sends flags where numbers belong
        if isinstance(self.raw, (int, float)) and not isinstance(self.raw, bool):
            return float(self.raw)
        raise TypeMismatch("number", self.raw)

    def as_int(self) -> int:
        return int(self.as_float())

    def as_str(self) -> str:
        if isinstance(self.raw, str):
            return self.raw
        raise TypeMismatch("string", self.raw)

    def as_list(self) -> list[Any]:
        if isinstance(self.raw, list):
            return self.raw
        raise TypeMismatch("list", self.raw)

    def as_map(self) -> dict[str, Any]:
        if isinstance(self.raw, dict):
            return self.raw
        raise TypeMismatch("map", self.raw)


@dataclass(frozen=True)
class MpvEvent:
    """An asynchronous notification from mpv.

    Attributes:
        name: Event name (e.g. "start-file", "property-change")
        id: Observer id for property changes, None otherwise
        data: Property value for property changes
        extra: Any remaining fields (playlist_entry_id, file_error, reason, ...)
    """

    name: str
    id: Optional[int] = None
    data: ProtocolValue = field(default_factory=ProtocolValue)
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_message(cls, message: dict[str, Any]) -> "MpvEvent":
        extra = {
            k: v for k, v in message.items() if k not in ("event", "id", "data", "name")
        }
        event_id = message.get("id")
        name = message.get("event", "")
        # property-change events carry the property name in "name"
        if name == "property-change" and "name" in message:
            extra["property"] = message["name"]
        return cls(
            name=name,
            id=event_id if isinstance(event_id, int) else None,
            data=ProtocolValue(message.get("data")),
            extra=extra,
        )

    def extra_int(self, key: str) -> Optional[int]:
        """Return an integer extra field, or None if absent or not numeric."""
        value = self.extra.get(key)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return int(value)
        return None
