"""
Tests for several tabs sharing one store: visibility, broadcasts, lost updates.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable

from crc_dashboard.domains.models import ProjectStatus, Role
from crc_dashboard.infrastructure.storage.backends import FileBackend
from crc_dashboard.infrastructure.sync.notifier import BroadcastHub
from crc_dashboard.services.workspace import Workspace, open_workspace


def test_open_workspace_writes_defaults(open_tab: Callable[..., Workspace]) -> None:
    tab = open_tab(default_commission=8)
    assert tab.repository.read_defaults().default_commission == 8
    other = open_tab(default_commission=3)
    assert other.repository.read_defaults().default_commission == 8


def test_writes_are_visible_and_announced(open_tab: Callable[..., Workspace]) -> None:
    """A write in one tab reaches the other tab's feed and its next read."""
    a, b = open_tab(), open_tab()
    res = a.repository.register_user("a@x.com", "A", Role.ADMIN)

    assert b.repository.get_user(res.value.id) is not None
    msg = b.feed.items(limit=1)[0]
    assert msg["type"] == "sync" and msg["key"] == "users"
    assert a.feed.items() == []


def test_login_in_one_tab_does_not_change_another(open_tab: Callable[..., Workspace]) -> None:
    a, b = open_tab(), open_tab()
    a.repository.register_user("a@x.com", "A", Role.ADMIN)
    a.repository.register_user("b@x.com", "B", Role.CUSTOMER)
    b.repository.login_user("b@x.com")
    a.repository.login_user("a@x.com")

    assert a.repository.current_user().email == "a@x.com"
    assert b.repository.current_user().email == "b@x.com"
    assert b.feed.items(limit=1)[0]["type"] == "auth"


def test_clear_in_one_tab_keeps_other_session(open_tab: Callable[..., Workspace]) -> None:
    """Reset clears the shared store and only the resetting tab's session."""
    a, b = open_tab(), open_tab()
    a.repository.seed_demo()
    b.repository.login_user("carl@cust.com")
    a.repository.clear_all()
    assert b.repository.list_users() == []
    assert b.repository.current_user().email == "carl@cust.com"
    assert b.feed.items(limit=1) == [{"type": "cleared"}]


def test_stale_session_snapshot(open_tab: Callable[..., Workspace]) -> None:
    """A tab keeps acting as the user it logged in as, even after the record is gone."""
    a, b = open_tab(), open_tab()
    a.repository.register_user("a@x.com", "A", Role.ADMIN)
    b.repository.login_user("a@x.com")
    a.repository.write("users", [])
    assert b.repository.current_user().email == "a@x.com"


def test_interleaved_writes_lose_an_update(open_tab: Callable[..., Workspace]) -> None:
    """Read-modify-write from two tabs: the later write drops the earlier change."""
    a, b = open_tab(), open_tab()
    project = a.repository.add_project("u_1", {"location": "Site"})

    stale_copy_b = b.store.read("projects")
    a.repository.assign_contractor(project.id, "Acme")

    stale_copy_b[0]["budget"] = 99000
    b.store.write("projects", stale_copy_b)

    final = a.repository.get_project(project.id)
    assert final.budget == 99000
    assert final.assigned_contractor is None
    assert final.status is ProjectStatus.PENDING


def test_deferred_tab_sees_events_after_pump(open_tab: Callable[..., Workspace]) -> None:
    a = open_tab()
    b = open_tab(deferred=True)
    a.repository.add_lead("u_ref", "x@y.com", "")
    assert b.feed.items() == []
    assert b.notifier.pump() == 1
    assert b.feed.items(limit=1)[0]["key"] == "leads"


def test_idle_deferred_tab_inbox_is_bounded(open_tab: Callable[..., Workspace]) -> None:
    """A tab that stops rerunning does not accumulate every other tab's writes."""
    a = open_tab()
    idle = open_tab(deferred=True, inbox_size=5)
    for i in range(20):
        a.repository.add_lead("u_ref", f"l{i}@y.com", "")
    assert idle.notifier.pending() == 5


def test_tabs_share_a_file_store(tmp_path: Path) -> None:
    """Two workspaces over separate FileBackend instances on one directory see the same data."""
    hub = BroadcastHub()
    a = open_workspace(hub, FileBackend(tmp_path), {}, channel="files", version="v3", default_commission=6, feed_size=5)
    b = open_workspace(hub, FileBackend(tmp_path), {}, channel="files", version="v3", default_commission=6, feed_size=5)
    try:
        p = a.repository.add_project("u_1", {"budget": 10})
        toggled = b.repository.toggle_stage(p.id, "foundation")
        assert toggled.stage("foundation").done
        assert a.repository.get_project(p.id).stage("foundation").done
        assert (tmp_path / "crc_projects_v3.json").is_file()
        assert [m["type"] for m in a.feed.items()] == ["sync"]
    finally:
        a.close()
        b.close()
