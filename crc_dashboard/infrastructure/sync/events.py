"""
Change events carried over the broadcast channel, and their wire messages.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from crc_dashboard.utils.ids import now


class EventKind(str, Enum):
    DATA_CHANGED = "data-changed"
    AUTH_CHANGED = "auth-changed"
    AUTH_CLEARED = "auth-cleared"
    STORE_CLEARED = "store-cleared"


# EventKind -> wire "type" field read by the presentation layer.
_WIRE_TYPES: dict[EventKind, str] = {
    EventKind.DATA_CHANGED: "sync",
    EventKind.AUTH_CHANGED: "auth",
    EventKind.AUTH_CLEARED: "auth-logout",
    EventKind.STORE_CLEARED: "cleared",
}


@dataclass(frozen=True)
class ChangeEvent:
    kind: EventKind
    collection: str | None = None
    user_id: str | None = None
    timestamp: str = field(default_factory=now)

    @classmethod
    def data_changed(cls, collection: str) -> "ChangeEvent":
        return cls(EventKind.DATA_CHANGED, collection=collection)

    @classmethod
    def auth_changed(cls, user_id: str | None) -> "ChangeEvent":
        return cls(EventKind.AUTH_CHANGED, user_id=user_id)

    @classmethod
    def auth_cleared(cls) -> "ChangeEvent":
        return cls(EventKind.AUTH_CLEARED)

    @classmethod
    def store_cleared(cls) -> "ChangeEvent":
        return cls(EventKind.STORE_CLEARED)

    def to_message(self) -> dict[str, Any]:
        """Wire shape, e.g. {"type": "sync", "key": "users", "ts": "..."}."""
        msg: dict[str, Any] = {"type": _WIRE_TYPES[self.kind]}
        if self.kind is EventKind.DATA_CHANGED:
            msg["key"] = self.collection
            msg["ts"] = self.timestamp
        elif self.kind is EventKind.AUTH_CHANGED:
            msg["userId"] = self.user_id
        return msg

    @classmethod
    def from_message(cls, msg: dict[str, Any]) -> "ChangeEvent":
        """Inverse of to_message. Raises ValueError on an unknown type."""
        wire = msg.get("type")
        for kind, name in _WIRE_TYPES.items():
            if name == wire:
                break
        else:
            raise ValueError(f"Unknown broadcast message type: {wire!r}")
        if kind is EventKind.DATA_CHANGED:
            return cls(kind, collection=msg.get("key"), timestamp=msg.get("ts") or now())
        if kind is EventKind.AUTH_CHANGED:
            return cls(kind, user_id=msg.get("userId"))
        return cls(kind)
