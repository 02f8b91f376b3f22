"""
Domain records for users, leads and projects.

Records are persisted as camelCase JSON objects (`to_dict` / `from_dict`).
Constructors check required fields and raise `ValidationError`, so a record
that exists in memory always has its identity fields set.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, TypeVar

from crc_dashboard.domains.errors import ValidationError

E = TypeVar("E", bound=Enum)


class Role(str, Enum):
    ADMIN = "admin"
    REFERRER = "referrer"
    CUSTOMER = "customer"


class LeadStatus(str, Enum):
    NEW = "new"
    CONVERTED = "converted"


class ProjectStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    APPROVED = "approved"
    COMPLETED = "completed"


def _coerce(enum_cls: type[E], value: Any, field_name: str) -> E:
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(f"Invalid {field_name}: {value!r} (expected one of: {allowed})") from None


def _require(value: Any, field_name: str) -> None:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"{field_name} is required")


def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


# ============================== USER ==============================

@dataclass
class User:
    id: str
    email: str
    name: str
    role: Role
    created_at: str

    def __post_init__(self) -> None:
        _require(self.id, "id")
        _require(self.name, "name")
        # Registration requires an email; users created from a lead may have none.
        self.email = normalize_email(self.email)
        self.role = _coerce(Role, self.role, "role")

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role.value,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "User":
        return cls(
            id=d.get("id"),
            email=d.get("email"),
            name=d.get("name"),
            role=d.get("role") or Role.CUSTOMER,
            created_at=d.get("createdAt") or "",
        )


# ============================== LEAD ==============================

@dataclass
class Lead:
    id: str
    referrer_id: str
    email: str
    notes: str = ""
    status: LeadStatus = LeadStatus.NEW
    created_at: str = ""
    converted_project_id: str | None = None

    def __post_init__(self) -> None:
        _require(self.id, "id")
        _require(self.referrer_id, "referrerId")
        self.email = normalize_email(self.email)
        self.notes = self.notes or ""
        self.status = _coerce(LeadStatus, self.status, "lead status")

    @property
    def is_converted(self) -> bool:
        return self.status is LeadStatus.CONVERTED

    def mark_converted(self, project_id: str) -> None:
        """new -> converted. Sets the project link in the same step."""
        _require(project_id, "convertedProjectId")
        self.status = LeadStatus.CONVERTED
        self.converted_project_id = project_id

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "referrerId": self.referrer_id,
            "email": self.email,
            "notes": self.notes,
            "status": self.status.value,
            "createdAt": self.created_at,
            "convertedProjectId": self.converted_project_id,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "Lead":
        return cls(
            id=d.get("id"),
            referrer_id=d.get("referrerId"),
            email=d.get("email"),
            notes=d.get("notes") or "",
            status=d.get("status") or LeadStatus.NEW,
            created_at=d.get("createdAt") or "",
            converted_project_id=d.get("convertedProjectId"),
        )


# ============================== PROJECT ==============================

# (key, label) in build order. Every project carries exactly these four stages.
STAGE_TEMPLATE: tuple[tuple[str, str], ...] = (
    ("foundation", "Foundation"),
    ("framing", "Framing"),
    ("roof", "Roof"),
    ("finishing", "Finishing"),
)


@dataclass
class Stage:
    key: str
    label: str
    done: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"key": self.key, "label": self.label, "done": self.done}

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "Stage":
        return cls(key=d.get("key", ""), label=d.get("label", ""), done=bool(d.get("done", False)))


def default_stages(done_keys: tuple[str, ...] = ()) -> list[Stage]:
    return [Stage(key, label, key in done_keys) for key, label in STAGE_TEMPLATE]


# Persisted camelCase name -> dataclass attribute.
PROJECT_FIELDS: dict[str, str] = {
    "id": "id",
    "customerId": "customer_id",
    "createdAt": "created_at",
    "location": "location",
    "plot": "plot",
    "budget": "budget",
    "materials": "materials",
    "timeline": "timeline",
    "status": "status",
    "verified": "verified",
    "assignedContractor": "assigned_contractor",
    "referrerId": "referrer_id",
    "commissionPercent": "commission_percent",
    "stages": "stages",
}
_PROJECT_ATTRS = {v: k for k, v in PROJECT_FIELDS.items()}


@dataclass
class Project:
    id: str
    customer_id: str
    created_at: str = ""
    location: str = "—"
    plot: float = 0
    budget: float = 0
    materials: str = "Standard"
    timeline: int = 12
    status: ProjectStatus = ProjectStatus.PENDING
    verified: bool = False
    assigned_contractor: str | None = None
    referrer_id: str | None = None
    commission_percent: float = 0
    stages: list[Stage] = field(default_factory=default_stages)
    # Keys merged in by update_project that are not part of the record shape.
    extra: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        _require(self.id, "id")
        _require(self.customer_id, "customerId")
        self.status = _coerce(ProjectStatus, self.status, "project status")
        self.stages = [s if isinstance(s, Stage) else Stage.from_dict(s) for s in (self.stages or [])]

    def stage(self, key: str) -> Stage | None:
        for s in self.stages:
            if s.key == key:
                return s
        return None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = dict(self.extra)
        d.update({
            "id": self.id,
            "customerId": self.customer_id,
            "createdAt": self.created_at,
            "location": self.location,
            "plot": self.plot,
            "budget": self.budget,
            "materials": self.materials,
            "timeline": self.timeline,
            "status": self.status.value,
            "verified": self.verified,
            "assignedContractor": self.assigned_contractor,
            "referrerId": self.referrer_id,
            "commissionPercent": self.commission_percent,
            "stages": [s.to_dict() for s in self.stages],
        })
        return d

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "Project":
        kwargs: dict[str, Any] = {}
        extra: dict[str, Any] = {}
        for key, value in d.items():
            attr = PROJECT_FIELDS.get(key)
            if attr is None:
                extra[key] = value
            else:
                kwargs[attr] = value
        kwargs.setdefault("id", None)
        kwargs.setdefault("customer_id", None)
        kwargs.setdefault("stages", default_stages())
        return cls(**kwargs, extra=extra)


def persisted_field_name(key: str) -> str:
    """Map "commission_percent" or "commissionPercent" to the persisted name "commissionPercent"."""
    return _PROJECT_ATTRS.get(key, key)


# ============================== DEFAULTS ==============================

@dataclass
class Defaults:
    default_commission: float = 6

    def to_dict(self) -> dict[str, Any]:
        return {"defaultCommission": self.default_commission}

    @classmethod
    def from_dict(cls, d: dict[str, Any], fallback: float = 6) -> "Defaults":
        raw = (d or {}).get("defaultCommission", fallback)
        try:
            return cls(float(raw))
        except (TypeError, ValueError):
            return cls(fallback)
