"""
Shared fixtures: an in-memory store and tabs joined to one broadcast hub.
"""

from __future__ import annotations

from typing import Callable

import pytest

from crc_dashboard.infrastructure.session.session_manager import SessionManager
from crc_dashboard.infrastructure.storage.backends import MemoryBackend
from crc_dashboard.infrastructure.storage.kv_store import KeyValueStore
from crc_dashboard.infrastructure.sync.events import ChangeEvent
from crc_dashboard.infrastructure.sync.notifier import BroadcastHub
from crc_dashboard.services.repository import DomainRepository
from crc_dashboard.services.workspace import Workspace, open_workspace

CHANNEL = "crc_test_channel"


@pytest.fixture
def hub() -> BroadcastHub:
    return BroadcastHub()


@pytest.fixture
def backend() -> MemoryBackend:
    return MemoryBackend()


@pytest.fixture
def open_tab(hub: BroadcastHub, backend: MemoryBackend) -> Callable[..., Workspace]:
    """Factory for tabs sharing one hub and one backend, each with its own session slot."""
    opened: list[Workspace] = []

    def _open(**kwargs) -> Workspace:
        kwargs.setdefault("channel", CHANNEL)
        kwargs.setdefault("version", "v3")
        kwargs.setdefault("default_commission", 6)
        kwargs.setdefault("feed_size", 20)
        ws = open_workspace(hub, backend, {}, **kwargs)
        opened.append(ws)
        return ws

    yield _open
    for ws in opened:
        ws.close()


@pytest.fixture
def repo(hub: BroadcastHub, backend: MemoryBackend) -> DomainRepository:
    """A single repository with no workspace wiring (defaults not pre-written)."""
    notifier = hub.join(CHANNEL)
    store = KeyValueStore(backend, notifier)
    session = SessionManager({}, notifier)
    return DomainRepository(store, session, default_commission=6)


@pytest.fixture
def listener(hub: BroadcastHub) -> list[ChangeEvent]:
    """Events seen by a passive second tab on the test channel."""
    events: list[ChangeEvent] = []
    hub.join(CHANNEL).subscribe(events.append)
    return events
