"""
DomainRepository: every dashboard operation on users, leads and projects.

Each operation reads the collection it needs from the store, changes an
in-memory copy and writes the whole collection back. Nothing is cached between
calls. Two tabs doing read-modify-write on the same collection at once will
lose one of the updates (last write wins); there is no locking or versioning.
"""

from __future__ import annotations

import random
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, TypeVar

from crc_dashboard.domains.errors import (
    ConflictError,
    NotFoundError,
    Result,
    ValidationError,
)
from crc_dashboard.domains.models import (
    Defaults,
    Lead,
    LeadStatus,
    Project,
    ProjectStatus,
    Role,
    Stage,
    User,
    default_stages,
    normalize_email,
    persisted_field_name,
)
from crc_dashboard.domains.rules import apply_completion, is_open
from crc_dashboard.infrastructure.session.session_manager import SessionManager
from crc_dashboard.infrastructure.storage.keys import (
    COLLECTION_DEFAULTS,
    COLLECTION_LEADS,
    COLLECTION_PROJECTS,
    COLLECTION_USERS,
    PERSISTED_COLLECTIONS,
)
from crc_dashboard.infrastructure.storage.kv_store import KeyValueStore
from crc_dashboard.infrastructure.sync.events import ChangeEvent
from crc_dashboard.services.seed import SeedInitializer
from crc_dashboard.utils import ids
from crc_dashboard.utils.logger import get_logger

logger = get_logger()

T = TypeVar("T")


@dataclass(frozen=True)
class OverviewStats:
    users: int
    projects: int
    open_projects: int
    pending_leads: int


def _index_of(records: list[dict[str, Any]], record_id: str) -> int:
    for i, r in enumerate(records):
        if isinstance(r, dict) and r.get("id") == record_id:
            return i
    return -1


def _plain(value: Any) -> Any:
    """Turn enums and Stage records into JSON-ready values."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Stage):
        return value.to_dict()
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


def _normalize_changes(changes: Mapping[str, Any] | None) -> dict[str, Any]:
    return {persisted_field_name(k): _plain(v) for k, v in (changes or {}).items()}


def _as_commission(value: Any) -> float | None:
    """float(value), or None when it is missing or not numeric."""
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        logger.warning("Ignoring non-numeric commission: %r", value)
        return None


def _decode_all(records: Any, factory: Callable[[dict[str, Any]], T], label: str) -> list[T]:
    out: list[T] = []
    if not isinstance(records, list):
        return out
    for r in records:
        try:
            out.append(factory(r))
        except (ValidationError, AttributeError, TypeError) as e:
            logger.warning("Skipping unreadable %s record: %s", label, e)
    return out


class DomainRepository:
    def __init__(
        self,
        store: KeyValueStore,
        session: SessionManager,
        *,
        default_commission: float = 6,
        rng: random.Random | None = None,
    ) -> None:
        self._store = store
        self._session = session
        self._default_commission = default_commission
        self._rng = rng or random.Random()
        self._seeder = SeedInitializer(store, default_commission)

    # ============================== RAW ACCESS ==============================

    def read(self, name: str, fallback: Any = None) -> Any:
        return self._store.read(name, fallback)

    def read_obj(self, name: str, fallback: dict[str, Any] | None = None) -> Any:
        return self._store.read_obj(name, fallback)

    def write(self, name: str, value: Any) -> None:
        self._store.write(name, value)

    now = staticmethod(ids.now)
    uid = staticmethod(ids.uid)

    @property
    def session(self) -> SessionManager:
        return self._session

    # ============================== USERS ==============================

    def _find_user_record(self, users: list[dict[str, Any]], email: str) -> dict[str, Any] | None:
        wanted = normalize_email(email)
        for u in users:
            if isinstance(u, dict) and normalize_email(u.get("email")) == wanted:
                return u
        return None

    def register_user(self, email: str | None, name: str | None, role: Role | str | None = Role.CUSTOMER) -> Result[User]:
        """Create a user. Fails with ValidationError (missing email/name) or ConflictError (email taken)."""
        users = self._store.read(COLLECTION_USERS, [])
        if not normalize_email(email) or not (name or "").strip():
            return Result.failure(ValidationError("Name and email required"))
        if self._find_user_record(users, email or "") is not None:
            logger.info("Registration rejected, email exists: %s", normalize_email(email))
            return Result.failure(ConflictError("Email already registered"))
        try:
            user = User(ids.uid("u_"), email or "", (name or "").strip(), role or Role.CUSTOMER, ids.now())
        except ValidationError as e:
            return Result.failure(e)
        users.append(user.to_dict())
        self._store.write(COLLECTION_USERS, users)
        logger.info("Registered %s as %s", user.email, user.role.value)
        return Result.success(user)

    def login_user(self, email: str | None) -> Result[User]:
        """Set this tab's session to the user with `email`. Fails with NotFoundError."""
        users = self._store.read(COLLECTION_USERS, [])
        record = self._find_user_record(users, email or "") if normalize_email(email) else None
        if record is None:
            logger.info("Login rejected, no user: %s", normalize_email(email))
            return Result.failure(NotFoundError("User not found. Register first."))
        try:
            user = User.from_dict(record)
        except ValidationError as e:
            return Result.failure(e)
        self._session.set_session(user)
        return Result.success(user)

    def register_or_get_user_by_email(
        self,
        email: str | None,
        name: str | None = "Unknown",
        role: Role | str | None = Role.CUSTOMER,
    ) -> User:
        """
        Return the user with `email`, creating it if needed.

        Never fails: a missing name falls back to "Unknown", a missing or
        unknown role to customer, and a blank email is stored as "" (later
        calls with a blank email return that same user).
        """
        users = self._store.read(COLLECTION_USERS, [])
        record = self._find_user_record(users, email)
        if record is not None:
            try:
                return User.from_dict(record)
            except ValidationError as e:
                logger.warning("Unreadable user record for %s, creating a new one: %s", normalize_email(email), e)
        try:
            role = Role(role or Role.CUSTOMER)
        except ValueError:
            role = Role.CUSTOMER
        user = User(ids.uid("u_"), email, (name or "").strip() or "Unknown", role, ids.now())
        users.append(user.to_dict())
        self._store.write(COLLECTION_USERS, users)
        logger.info("Created %s user for %s", user.role.value, user.email)
        return user

    def list_users(self) -> list[User]:
        return _decode_all(self._store.read(COLLECTION_USERS, []), User.from_dict, "user")

    def get_user(self, user_id: str) -> User | None:
        for u in self.list_users():
            if u.id == user_id:
                return u
        return None

    def current_user(self) -> User | None:
        return self._session.get_session()

    def logout(self) -> None:
        self._session.clear_session()

    def switch_user(self, rng: random.Random | None = None) -> User | None:
        """Act as a randomly chosen stored user. None when there are no users."""
        users = self.list_users()
        if not users:
            return None
        user = (rng or self._rng).choice(users)
        self._session.set_session(user)
        return user

    # ============================== LEADS ==============================

    def add_lead(self, referrer_id: str, email: str | None, notes: str | None = "") -> Lead:
        leads = self._store.read(COLLECTION_LEADS, [])
        lead = Lead(
            id=ids.uid("l_"),
            referrer_id=referrer_id,
            email=email or "",
            notes=notes or "",
            status=LeadStatus.NEW,
            created_at=ids.now(),
        )
        leads.insert(0, lead.to_dict())
        self._store.write(COLLECTION_LEADS, leads)
        logger.info("Lead %s added by %s", lead.id, referrer_id)
        return lead

    def list_leads(self) -> list[Lead]:
        return _decode_all(self._store.read(COLLECTION_LEADS, []), Lead.from_dict, "lead")

    def get_lead(self, lead_id: str) -> Lead | None:
        for lead in self.list_leads():
            if lead.id == lead_id:
                return lead
        return None

    def convert_lead_to_project(self, lead_id: str, customer_name: str | None, budget: float | None) -> Result[Project]:
        """
        Turn a new lead into a project for the lead's email address.

        The customer user is created if needed, the project carries the lead's
        referrer and the given budget, and the lead is marked converted.
        Fails with NotFoundError for an unknown lead and ConflictError for a
        lead that was already converted.
        """
        leads = self._store.read(COLLECTION_LEADS, [])
        idx = _index_of(leads, lead_id)
        if idx < 0:
            return Result.failure(NotFoundError("Lead not found"))
        try:
            lead = Lead.from_dict(leads[idx])
        except ValidationError as e:
            return Result.failure(e)
        if lead.is_converted:
            return Result.failure(
                ConflictError(f"Lead already converted to project {lead.converted_project_id}")
            )

        customer = self.register_or_get_user_by_email(lead.email, customer_name, Role.CUSTOMER)
        project = self.add_project(customer.id, {
            "location": "(from lead)",
            "budget": budget,
            "materials": "TBD",
            "timeline": 12,
            "referrerId": lead.referrer_id,
        })

        lead.mark_converted(project.id)
        leads[idx] = lead.to_dict()
        self._store.write(COLLECTION_LEADS, leads)
        logger.info("Lead %s converted to project %s", lead.id, project.id)
        return Result.success(project)

    # ============================== PROJECTS ==============================

    def read_defaults(self) -> Defaults:
        raw = self._store.read_obj(COLLECTION_DEFAULTS, {"defaultCommission": self._default_commission})
        return Defaults.from_dict(raw if isinstance(raw, dict) else {}, self._default_commission)

    def write_defaults(self, defaults: Defaults | Mapping[str, Any]) -> None:
        value = defaults.to_dict() if isinstance(defaults, Defaults) else dict(defaults)
        self._store.write(COLLECTION_DEFAULTS, value)

    def add_project(self, customer_id: str, payload: Mapping[str, Any] | None = None) -> Project:
        """
        Create a project with all four stages open, newest first.

        Missing payload fields get defaults; a missing or non-numeric
        commissionPercent falls back to the Defaults record as it is at call time.
        """
        p = _normalize_changes(payload)
        projects = self._store.read(COLLECTION_PROJECTS, [])
        commission = _as_commission(p.get("commissionPercent"))
        if commission is None:
            commission = self.read_defaults().default_commission
        project = Project(
            id=ids.uid("p_"),
            customer_id=customer_id,
            created_at=ids.now(),
            location=p.get("location") or "—",
            plot=p.get("plot") or 0,
            budget=p.get("budget") or 0,
            materials=p.get("materials") or "Standard",
            timeline=p.get("timeline") or 12,
            status=ProjectStatus.PENDING,
            verified=False,
            assigned_contractor=None,
            referrer_id=p.get("referrerId") or None,
            commission_percent=commission,
            stages=default_stages(),
        )
        projects.insert(0, project.to_dict())
        self._store.write(COLLECTION_PROJECTS, projects)
        logger.info("Project %s created for %s", project.id, customer_id)
        return project

    def update_project(self, project_id: str, changes: Mapping[str, Any] | None = None) -> Project | None:
        """
        Shallow-merge `changes` into the project and re-check completion.

        Keys may use the persisted ("assignedContractor") or attribute
        ("assigned_contractor") spelling. Returns None for an unknown project.
        Raises ValidationError (and writes nothing) if a change makes the
        record invalid, e.g. an unknown status.
        """
        projects = self._store.read(COLLECTION_PROJECTS, [])
        idx = _index_of(projects, project_id)
        if idx < 0:
            return None
        record = dict(projects[idx])
        record.update(_normalize_changes(changes))
        project = Project.from_dict(record)
        apply_completion(project)
        projects[idx] = project.to_dict()
        self._store.write(COLLECTION_PROJECTS, projects)
        return project

    def toggle_stage(self, project_id: str, stage_key: str) -> Project | None:
        """Flip one stage's done flag. None (and no write) if project or stage is missing."""
        projects = self._store.read(COLLECTION_PROJECTS, [])
        idx = _index_of(projects, project_id)
        if idx < 0:
            return None
        project = Project.from_dict(projects[idx])
        stage = project.stage(stage_key)
        if stage is None:
            return None
        stage.done = not stage.done
        if apply_completion(project):
            logger.info("Project %s completed", project.id)
        projects[idx] = project.to_dict()
        self._store.write(COLLECTION_PROJECTS, projects)
        return project

    def assign_contractor(self, project_id: str, contractor: str | None) -> Project | None:
        if not (contractor or "").strip():
            return None
        return self.update_project(project_id, {
            "assignedContractor": contractor.strip(),
            "status": ProjectStatus.IN_PROGRESS,
        })

    def approve_project(self, project_id: str) -> Project | None:
        return self.update_project(project_id, {"verified": True, "status": ProjectStatus.APPROVED})

    def set_commission(self, project_id: str, percent: float) -> Project | None:
        return self.update_project(project_id, {"commissionPercent": float(percent)})

    def create_project_for_customer_email(self, email: str, payload: Mapping[str, Any] | None = None) -> Project:
        """Admin quick-create: upsert the customer by email, then add the project."""
        local_part = normalize_email(email).split("@")[0]
        customer = self.register_or_get_user_by_email(email, local_part, Role.CUSTOMER)
        return self.add_project(customer.id, payload)

    def list_projects(self) -> list[Project]:
        return _decode_all(self._store.read(COLLECTION_PROJECTS, []), Project.from_dict, "project")

    def get_project(self, project_id: str) -> Project | None:
        for p in self.list_projects():
            if p.id == project_id:
                return p
        return None

    # ============================== VIEWS ==============================

    def visible_projects(self, user: User, query: str = "") -> list[Project]:
        """Projects `user` may see (customers: own, referrers: referred, admins: all), filtered by query."""
        projects = self.list_projects()
        if user.role is Role.CUSTOMER:
            projects = [p for p in projects if p.customer_id == user.id]
        elif user.role is Role.REFERRER:
            projects = [p for p in projects if p.referrer_id == user.id]
        q = (query or "").strip().lower()
        if q:
            projects = [p for p in projects if q in (p.location or "").lower() or q in p.id.lower()]
        return projects

    def visible_leads(self, user: User, query: str = "") -> list[Lead]:
        leads = self.list_leads()
        if user.role is Role.REFERRER:
            leads = [lead for lead in leads if lead.referrer_id == user.id]
        q = (query or "").strip().lower()
        if q:
            leads = [lead for lead in leads if q in lead.email]
        return leads

    def overview_stats(self) -> OverviewStats:
        projects = self.list_projects()
        leads = self.list_leads()
        return OverviewStats(
            users=len(self.list_users()),
            projects=len(projects),
            open_projects=sum(1 for p in projects if is_open(p)),
            pending_leads=sum(1 for lead in leads if lead.status is LeadStatus.NEW),
        )

    # ============================== STORE ==============================

    def clear_all(self) -> None:
        """Remove every persisted collection and this tab's session, then broadcast once."""
        for name in PERSISTED_COLLECTIONS:
            self._store.remove(name)
        self._session.discard()
        self._store.publish(ChangeEvent.store_cleared())
        logger.info("Store cleared")

    def seed_demo(self) -> bool:
        return self._seeder.seed_demo()

    def ensure_defaults(self) -> bool:
        return self._seeder.ensure_defaults()
