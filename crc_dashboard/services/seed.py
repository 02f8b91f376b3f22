"""
Demo data and first-start defaults.
"""

from __future__ import annotations

from crc_dashboard.domains.models import (
    Defaults,
    Lead,
    Project,
    ProjectStatus,
    Role,
    User,
    default_stages,
)
from crc_dashboard.infrastructure.storage.keys import (
    COLLECTION_DEFAULTS,
    COLLECTION_LEADS,
    COLLECTION_PROJECTS,
    COLLECTION_USERS,
)
from crc_dashboard.infrastructure.storage.kv_store import KeyValueStore
from crc_dashboard.utils.ids import now, uid
from crc_dashboard.utils.logger import get_logger

logger = get_logger()


class SeedInitializer:
    def __init__(self, store: KeyValueStore, default_commission: float = 6) -> None:
        self._store = store
        self._default_commission = default_commission

    def ensure_defaults(self) -> bool:
        """Write the Defaults record if it has never been written. Returns True if it wrote."""
        if self._store.has(COLLECTION_DEFAULTS):
            return False
        self._store.write(COLLECTION_DEFAULTS, Defaults(self._default_commission).to_dict())
        return True

    def seed_demo(self) -> bool:
        """
        Populate one user per role, a lead and a project, unless users already exist.

        Returns True if demo data was written.
        """
        if self._store.read(COLLECTION_USERS, []):
            return False

        alice = User(uid("u_"), "alice@ref.com", "Alice Referrer", Role.REFERRER, now())
        bob = User(uid("u_"), "bob@admin.com", "Bob Admin", Role.ADMIN, now())
        carl = User(uid("u_"), "carl@cust.com", "Carl Customer", Role.CUSTOMER, now())
        lead = Lead(
            id=uid("l_"),
            referrer_id=alice.id,
            email="lead1@example.com",
            notes="Interested in 3BHK",
            created_at=now(),
        )
        project = Project(
            id=uid("p_"),
            customer_id=carl.id,
            created_at=now(),
            location="Greenhill Estate",
            plot=120,
            budget=42000,
            materials="Premium",
            timeline=16,
            status=ProjectStatus.PENDING,
            referrer_id=alice.id,
            commission_percent=7,
            stages=default_stages(done_keys=("foundation",)),
        )

        self._store.write(COLLECTION_USERS, [u.to_dict() for u in (alice, bob, carl)])
        self._store.write(COLLECTION_LEADS, [lead.to_dict()])
        self._store.write(COLLECTION_PROJECTS, [project.to_dict()])
        logger.info("Seeded demo data: 3 users, 1 lead, 1 project")
        return True
