"""
Wire one tab's engine: notifier endpoint, store, session and repository.

Tabs that should see each other share the same `BroadcastHub` and the same
storage backend, and each brings its own session slot.
"""

from __future__ import annotations

from collections.abc import MutableMapping
from dataclasses import dataclass
from typing import Any

from crc_dashboard.infrastructure.session.session_manager import SessionManager
from crc_dashboard.infrastructure.storage.kv_store import KeyValueStore, TextBackend
from crc_dashboard.infrastructure.sync.notifier import BroadcastHub, ChangeNotifier
from crc_dashboard.services.activity_feed import ActivityFeed
from crc_dashboard.services.repository import DomainRepository
from crc_dashboard.utils import config


@dataclass
class Workspace:
    notifier: ChangeNotifier
    store: KeyValueStore
    session: SessionManager
    repository: DomainRepository
    feed: ActivityFeed

    def close(self) -> None:
        self.feed.close()
        self.notifier.close()


def open_workspace(
    hub: BroadcastHub,
    backend: TextBackend,
    session_slot: MutableMapping[str, Any] | None = None,
    *,
    channel: str | None = None,
    version: str | None = None,
    default_commission: float | None = None,
    feed_size: int | None = None,
    inbox_size: int | None = None,
    deferred: bool = False,
    deliver_to_self: bool = False,
) -> Workspace:
    """
    Build a tab context and make sure the Defaults record exists.

    Unset keyword arguments come from the environment (see utils/config.py).
    """
    channel = channel or config.channel_name()
    version = version or config.key_version()
    commission = config.default_commission() if default_commission is None else default_commission

    notifier = hub.join(
        channel,
        deferred=deferred,
        deliver_to_self=deliver_to_self,
        inbox_size=max(1, inbox_size or config.inbox_size()),
    )
    feed = ActivityFeed(notifier, feed_size or config.feed_size())
    store = KeyValueStore(backend, notifier, version=version)
    session = SessionManager({} if session_slot is None else session_slot, notifier, version=version)
    repository = DomainRepository(store, session, default_commission=commission)
    repository.ensure_defaults()
    return Workspace(notifier, store, session, repository, feed)
