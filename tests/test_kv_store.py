"""
Tests for KeyValueStore: fallbacks, corrupt text, whole-collection writes, broadcasts.
"""

from __future__ import annotations

import json
import logging

from crc_dashboard.infrastructure.storage.backends import MemoryBackend
from crc_dashboard.infrastructure.storage.kv_store import KeyValueStore, parse_or_default
from crc_dashboard.infrastructure.sync.events import EventKind
from crc_dashboard.infrastructure.sync.notifier import BroadcastHub


def test_read_missing_returns_fallback() -> None:
    """Absent collections read as the fallback ([] when omitted)."""
    store = KeyValueStore(MemoryBackend())
    assert store.read("users") == []
    assert store.read("users", [{"id": "x"}]) == [{"id": "x"}]
    assert store.read_obj("defaults") == {}


def test_fallback_is_not_aliased() -> None:
    """Mutating a returned fallback must not change the next read."""
    store = KeyValueStore(MemoryBackend())
    fallback = {"defaultCommission": 6}
    got = store.read_obj("defaults", fallback)
    got["defaultCommission"] = 99
    assert store.read_obj("defaults", fallback) == {"defaultCommission": 6}


def test_corrupt_text_returns_fallback(caplog) -> None:
    """Unparseable stored text reads as the fallback and logs a warning."""
    backend = MemoryBackend({"crc_users_v3": "{not json"})
    store = KeyValueStore(backend)
    with caplog.at_level(logging.WARNING, logger="crc_dashboard"):
        assert store.read("users", []) == []
    assert "Corrupt stored value for users" in caplog.text


def test_parse_or_default_branches() -> None:
    assert parse_or_default(None, [1]) == [1]
    assert parse_or_default("[2]", [1]) == [2]
    assert parse_or_default("oops", [1]) == [1]
    assert parse_or_default("null", [1]) is None


def test_write_replaces_whole_collection() -> None:
    """A write stores the full serialized value under the versioned key."""
    backend = MemoryBackend()
    store = KeyValueStore(backend)
    store.write("leads", [{"id": "l_1"}, {"id": "l_2"}])
    store.write("leads", [{"id": "l_3"}])
    assert json.loads(backend.get_item("crc_leads_v3")) == [{"id": "l_3"}]
    assert store.read("leads") == [{"id": "l_3"}]
    assert store.has("leads")
    assert not store.has("projects")


def test_key_version_is_configurable() -> None:
    backend = MemoryBackend()
    store = KeyValueStore(backend, version="v9")
    store.write("users", [])
    assert backend.keys() == ["crc_users_v9"]


def test_write_broadcasts_data_changed() -> None:
    """Every write sends a data-changed event naming the collection to other tabs."""
    hub = BroadcastHub()
    writer = hub.join("c")
    other = hub.join("c")
    seen = []
    other.subscribe(seen.append)
    store = KeyValueStore(MemoryBackend(), writer)

    store.write("projects", [])

    assert len(seen) == 1
    assert seen[0].kind is EventKind.DATA_CHANGED
    assert seen[0].collection == "projects"
    msg = seen[0].to_message()
    assert msg["type"] == "sync" and msg["key"] == "projects" and msg["ts"]


def test_remove_does_not_broadcast() -> None:
    hub = BroadcastHub()
    writer = hub.join("c")
    seen = []
    hub.join("c").subscribe(seen.append)
    store = KeyValueStore(MemoryBackend(), writer)
    store.write("users", [])
    store.remove("users")
    assert len(seen) == 1
    assert not store.has("users")


def test_wrong_shape_returns_fallback(caplog) -> None:
    """Valid JSON of the wrong type is treated like corrupt text."""
    backend = MemoryBackend({"crc_users_v3": "{}", "crc_leads_v3": "null", "crc_defaults_v3": "[1]"})
    store = KeyValueStore(backend)
    with caplog.at_level(logging.WARNING, logger="crc_dashboard"):
        assert store.read("users", []) == []
        assert store.read("leads") == []
        assert store.read_obj("defaults", {"defaultCommission": 6}) == {"defaultCommission": 6}
    assert "Stored value for users is a dict" in caplog.text
