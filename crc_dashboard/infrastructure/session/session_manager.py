"""
Per-tab "who is acting" state.

The session slot belongs to one tab only (a plain dict in tests,
`st.session_state` in the Streamlit page). It holds a JSON snapshot of the
user taken at login, so it can go stale if the stored user changes later.
Mutations are broadcast so other tabs can notice, but their own sessions are
never touched.
"""

from __future__ import annotations

import json
from collections.abc import MutableMapping
from typing import Any

from crc_dashboard.domains.errors import ValidationError
from crc_dashboard.domains.models import User
from crc_dashboard.infrastructure.storage.keys import SESSION_KEY_NAME, storage_key
from crc_dashboard.infrastructure.storage.kv_store import parse_or_default
from crc_dashboard.infrastructure.sync.events import ChangeEvent
from crc_dashboard.infrastructure.sync.notifier import ChangeNotifier
from crc_dashboard.utils.logger import get_logger

logger = get_logger()


class SessionManager:
    def __init__(
        self,
        slot: MutableMapping[str, Any],
        notifier: ChangeNotifier | None = None,
        *,
        version: str = "v3",
    ) -> None:
        self._slot = slot
        self._notifier = notifier
        self._key = storage_key(SESSION_KEY_NAME, version)

    def set_session(self, user: User) -> None:
        self._slot[self._key] = json.dumps(user.to_dict(), ensure_ascii=False)
        logger.info("Session set to %s (%s)", user.email, user.role.value)
        self._publish(ChangeEvent.auth_changed(user.id))

    def get_session(self) -> User | None:
        raw = parse_or_default(self._slot.get(self._key), None, label=SESSION_KEY_NAME)
        if not isinstance(raw, dict):
            return None
        try:
            return User.from_dict(raw)
        except ValidationError as e:
            logger.warning("Discarding unusable session snapshot: %s", e)
            return None

    def clear_session(self) -> None:
        self.discard()
        logger.info("Session cleared")
        self._publish(ChangeEvent.auth_cleared())

    def discard(self) -> None:
        """Drop the session without broadcasting (part of a store reset)."""
        if self._key in self._slot:
            del self._slot[self._key]

    def _publish(self, event: ChangeEvent) -> None:
        if self._notifier is not None:
            self._notifier.publish(event)
