"""
Tests for demo seeding, first-start defaults and store reset.
"""

from __future__ import annotations

from crc_dashboard.domains.models import LeadStatus, ProjectStatus, Role
from crc_dashboard.domains.rules import project_commission, stage_progress
from crc_dashboard.infrastructure.sync.events import EventKind
from crc_dashboard.services.repository import DomainRepository


def test_seed_demo_populates_empty_store(repo: DomainRepository) -> None:
    assert repo.seed_demo() is True
    users = repo.list_users()
    assert sorted(u.role for u in users) == sorted([Role.ADMIN, Role.REFERRER, Role.CUSTOMER])
    alice = next(u for u in users if u.email == "alice@ref.com")
    carl = next(u for u in users if u.email == "carl@cust.com")

    [lead] = repo.list_leads()
    assert lead.referrer_id == alice.id
    assert lead.email == "lead1@example.com"
    assert lead.status is LeadStatus.NEW

    [project] = repo.list_projects()
    assert project.customer_id == carl.id
    assert project.referrer_id == alice.id
    assert project.location == "Greenhill Estate"
    assert project.status is ProjectStatus.PENDING
    assert stage_progress(project) == (1, 4)
    assert project.stage("foundation").done is True
    assert project_commission(project) == 2940


def test_seed_demo_is_noop_when_users_exist(repo: DomainRepository) -> None:
    repo.register_user("me@x.com", "Me", Role.ADMIN)
    assert repo.seed_demo() is False
    assert len(repo.list_users()) == 1
    assert repo.list_projects() == []


def test_seed_twice(repo: DomainRepository) -> None:
    repo.seed_demo()
    assert repo.seed_demo() is False
    assert len(repo.list_users()) == 3


def test_ensure_defaults_only_once(repo: DomainRepository) -> None:
    assert repo.ensure_defaults() is True
    assert repo.read_obj("defaults") == {"defaultCommission": 6}
    repo.write_defaults({"defaultCommission": 10})
    assert repo.ensure_defaults() is False
    assert repo.read_defaults().default_commission == 10


def test_clear_all(repo: DomainRepository, listener) -> None:
    """Reset removes every collection and the session, then broadcasts once."""
    repo.seed_demo()
    repo.ensure_defaults()
    repo.login_user("bob@admin.com")
    listener.clear()

    repo.clear_all()

    assert repo.read("users") == []
    assert repo.read("projects") == []
    assert repo.read("leads") == []
    assert repo.read_obj("defaults") == {}
    assert repo.current_user() is None
    assert [e.kind for e in listener] == [EventKind.STORE_CLEARED]
    assert listener[0].to_message() == {"type": "cleared"}
