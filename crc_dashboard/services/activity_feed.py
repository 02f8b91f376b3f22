"""Recent broadcast messages received by a tab, newest first."""

from __future__ import annotations

from collections import deque
from typing import Any

from crc_dashboard.infrastructure.sync.events import ChangeEvent
from crc_dashboard.infrastructure.sync.notifier import ChangeNotifier, Subscription


class ActivityFeed:
    def __init__(self, notifier: ChangeNotifier, maxlen: int = 50) -> None:
        self._items: deque[dict[str, Any]] = deque(maxlen=max(1, maxlen))
        self._sub: Subscription | None = notifier.subscribe(self._on_event)

    def _on_event(self, event: ChangeEvent) -> None:
        self._items.appendleft(event.to_message())

    def items(self, limit: int | None = None) -> list[dict[str, Any]]:
        out = list(self._items)
        return out if limit is None else out[:limit]

    def __len__(self) -> int:
        return len(self._items)

    def clear(self) -> None:
        self._items.clear()

    def close(self) -> None:
        if self._sub is not None:
            self._sub.unsubscribe()
            self._sub = None
