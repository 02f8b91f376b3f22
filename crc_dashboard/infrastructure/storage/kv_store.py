"""
KeyValueStore: typed read/write of whole collections over a text backend.

Every write replaces the full collection and then broadcasts a `data-changed`
event. Reads never fail: missing or corrupt text yields the caller's fallback.
"""

from __future__ import annotations

import copy
import json
from typing import Any, Protocol

from crc_dashboard.infrastructure.storage.keys import storage_key
from crc_dashboard.infrastructure.sync.events import ChangeEvent
from crc_dashboard.infrastructure.sync.notifier import ChangeNotifier
from crc_dashboard.utils.logger import get_logger

logger = get_logger()


class TextBackend(Protocol):
    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, text: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


def parse_or_default(text: str | None, fallback: Any, *, label: str = "") -> Any:
    """
    Decode stored JSON text, or return a copy of `fallback`.

    Absent text returns the fallback quietly. Text that fails to parse is
    logged and also returns the fallback.
    """
    if text is None:
        return copy.deepcopy(fallback)
    try:
        return json.loads(text)
    except (json.JSONDecodeError, TypeError) as e:
        logger.warning("Corrupt stored value for %s, using fallback: %s", label or "<unknown>", e)
        return copy.deepcopy(fallback)


class KeyValueStore:
    def __init__(
        self,
        backend: TextBackend,
        notifier: ChangeNotifier | None = None,
        *,
        version: str = "v3",
    ) -> None:
        self._backend = backend
        self._notifier = notifier
        self._version = version

    @property
    def notifier(self) -> ChangeNotifier | None:
        return self._notifier

    def key_for(self, name: str) -> str:
        return storage_key(name, self._version)

    def read(self, name: str, fallback: Any = None) -> Any:
        """
        Return the decoded collection `name`, or `fallback` ([] if omitted).

        A list or dict fallback also fixes the expected shape: valid JSON of
        another type reads as the fallback.
        """
        if fallback is None:
            fallback = []
        text = self._backend.get_item(self.key_for(name))
        value = parse_or_default(text, fallback, label=name)
        if isinstance(fallback, (list, dict)) and not isinstance(value, type(fallback)):
            logger.warning("Stored value for %s is a %s, using fallback", name, type(value).__name__)
            return copy.deepcopy(fallback)
        return value

    def read_obj(self, name: str, fallback: dict[str, Any] | None = None) -> Any:
        """`read` for singleton objects; fallback defaults to {}."""
        return self.read(name, {} if fallback is None else fallback)

    def has(self, name: str) -> bool:
        return self._backend.get_item(self.key_for(name)) is not None

    def write(self, name: str, value: Any) -> None:
        """Replace collection `name` with `value` and broadcast the change."""
        text = json.dumps(value, ensure_ascii=False)
        self._backend.set_item(self.key_for(name), text)
        logger.debug("Wrote %s (%d bytes)", name, len(text))
        self.publish(ChangeEvent.data_changed(name))

    def remove(self, name: str) -> None:
        """Delete collection `name`. Does not broadcast."""
        self._backend.remove_item(self.key_for(name))

    def publish(self, event: ChangeEvent) -> None:
        if self._notifier is not None:
            self._notifier.publish(event)
