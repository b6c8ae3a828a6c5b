"""Record types for actors, projects and applications.

Stored documents use camelCase keys; ``from_dict`` validates a stored record
(migrating a few legacy shapes) and ``to_dict`` produces the stored form.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import Any

from mobility.errors import ValidationFailed


class Role(str, Enum):
    ASSOCIATE = "associate"
    MANAGER = "manager"

    @classmethod
    def parse(cls, value: Any) -> "Role | None":
        """Map a stored/cookie role to a Role; ``pm`` is the legacy manager name."""
        if isinstance(value, Role):
            return value
        v = str(value or "").strip().lower()
        if v in ("manager", "pm"):
            return cls.MANAGER
        if v == "associate":
            return cls.ASSOCIATE
        return None


class ApplicationStatus(str, Enum):
    PENDING = "Pending"
    ACCEPTED = "Accepted"
    DECLINED = "Declined"

    @property
    def terminal(self) -> bool:
        return self is not ApplicationStatus.PENDING

    @classmethod
    def parse(cls, value: Any) -> "ApplicationStatus":
        for status in cls:
            if str(value).strip().lower() == status.value.lower():
                return status
        raise ValidationFailed(f"Unknown application status {value!r}")


URGENCY_DAYS: dict[str, int] = {"high": 14, "medium": 21, "low": 30}
DEFAULT_DEADLINE_DAYS = 30

CATEGORY_NAMES: dict[str, str] = {
    "frontend": "Frontend",
    "backend": "Backend",
    "fullstack": "Full Stack",
    "mobile": "Mobile",
    "cloud": "Cloud/DevOps",
    "devops": "Cloud/DevOps",
    "ai": "AI/ML",
    "data": "Data",
    "security": "Security",
    "qa": "QA/Testing",
}


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def today() -> date:
    return datetime.now(timezone.utc).date()


def deadline_for(urgency: str | None, posted: date | None = None) -> str:
    days = URGENCY_DAYS.get((urgency or "").strip().lower(), DEFAULT_DEADLINE_DAYS)
    return ((posted or today()) + timedelta(days=days)).isoformat()


def category_display_name(category: str | None) -> str:
    return CATEGORY_NAMES.get((category or "").strip().lower(), category or "")


# --- field coercion -------------------------------------------------------


def _require(data: dict[str, Any], key: str, kind: str) -> Any:
    if key not in data or data[key] is None:
        raise ValidationFailed(f"{kind} record missing {key!r}", context={"record": data})
    return data[key]


def _int(value: Any, key: str) -> int:
    if isinstance(value, bool):
        raise ValidationFailed(f"{key} must be an integer, got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    raise ValidationFailed(f"{key} must be an integer, got {value!r}")


def _str(value: Any, key: str) -> str:
    if value is None:
        return ""
    if isinstance(value, (str, int, float)) and not isinstance(value, bool):
        return str(value)
    raise ValidationFailed(f"{key} must be a string, got {type(value).__name__}")


def _str_list(value: Any, key: str) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ValidationFailed(f"{key} must be a list of strings")
    return list(value)


def _bool(value: Any, key: str, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    raise ValidationFailed(f"{key} must be a boolean, got {value!r}")


def _opt(value: Any) -> str | None:
    return None if value is None else str(value)


# --- records --------------------------------------------------------------


@dataclass
class Actor:
    id: str
    name: str = ""
    role: Role = Role.ASSOCIATE
    email: str = ""
    skills: list[str] = field(default_factory=list)
    desired_tech: list[str] = field(default_factory=list)
    open_to_opportunities: bool = True
    experience: str = ""
    location: str = ""
    created_at: str | None = None
    updated_at: str | None = None

    @property
    def is_manager(self) -> bool:
        return self.role is Role.MANAGER

    @property
    def all_skills(self) -> list[str]:
        return self.skills + self.desired_tech

    @property
    def has_minimum_profile(self) -> bool:
        """At least one non-blank declared skill."""
        return any(s.strip() for s in self.skills)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Actor":
        # Legacy profiles keyed the identity as userId
        raw_id = data.get("id") if data.get("id") is not None else data.get("userId")
        if raw_id is None or str(raw_id).strip() == "":
            raise ValidationFailed("actor record missing 'id'", context={"record": data})

        role = Role.parse(data.get("role"))
        if role is None:
            # Legacy: only the isManager flag was stored
            role = Role.MANAGER if data.get("isManager") is True else Role.ASSOCIATE

        return cls(
            id=str(raw_id),
            name=_str(data.get("name"), "name"),
            role=role,
            email=_str(data.get("email"), "email"),
            skills=_str_list(data.get("skills"), "skills"),
            desired_tech=_str_list(data.get("desiredTech"), "desiredTech"),
            open_to_opportunities=_bool(data.get("openToOpportunities"), "openToOpportunities", True),
            experience=_str(data.get("experience"), "experience"),
            location=_str(data.get("location") or data.get("preferredLocation"), "location"),
            created_at=_opt(data.get("createdAt")),
            updated_at=_opt(data.get("updatedAt")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "role": self.role.value,
            "isManager": self.is_manager,
            "email": self.email,
            "skills": list(self.skills),
            "desiredTech": list(self.desired_tech),
            "openToOpportunities": self.open_to_opportunities,
            "experience": self.experience,
            "location": self.location,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


@dataclass
class Project:
    title: str
    posted_by: str
    id: int | None = None
    description: str = ""
    company: str = ""
    division: str = ""
    category: str = ""
    location: str = ""
    duration: str = ""
    commitment: str = ""
    urgency: str = ""
    required_skills: list[str] = field(default_factory=list)
    preferred_skills: list[str] = field(default_factory=list)
    posted_date: str = ""
    application_deadline: str = ""
    applications_open: bool = True
    application_count: int = 0
    view_count: int = 0
    created_at: str | None = None
    updated_at: str | None = None
    updated_by: str | None = None

    @property
    def all_skills(self) -> list[str]:
        return self.required_skills + self.preferred_skills

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Project":
        return cls(
            id=_int(_require(data, "id", "project"), "id"),
            title=_str(_require(data, "title", "project"), "title"),
            posted_by=_str(_require(data, "postedBy", "project"), "postedBy"),
            description=_str(data.get("description"), "description"),
            company=_str(data.get("company"), "company"),
            division=_str(data.get("division"), "division"),
            category=_str(data.get("category"), "category"),
            location=_str(data.get("location"), "location"),
            duration=_str(data.get("duration"), "duration"),
            commitment=_str(data.get("commitment"), "commitment"),
            urgency=_str(data.get("urgency"), "urgency"),
            required_skills=_str_list(data.get("requiredSkills"), "requiredSkills"),
            preferred_skills=_str_list(data.get("preferredSkills"), "preferredSkills"),
            posted_date=_str(data.get("postedDate"), "postedDate"),
            application_deadline=_str(data.get("applicationDeadline"), "applicationDeadline"),
            # Projects saved before the toggle existed are open
            applications_open=_bool(data.get("applicationsOpen"), "applicationsOpen", True),
            application_count=_int(data.get("applicationCount") or 0, "applicationCount"),
            view_count=_int(data.get("viewCount") or 0, "viewCount"),
            created_at=_opt(data.get("createdAt")),
            updated_at=_opt(data.get("updatedAt")),
            updated_by=_opt(data.get("updatedBy")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "company": self.company,
            "division": self.division,
            "category": self.category,
            "location": self.location,
            "duration": self.duration,
            "commitment": self.commitment,
            "urgency": self.urgency,
            "requiredSkills": list(self.required_skills),
            "preferredSkills": list(self.preferred_skills),
            "postedBy": self.posted_by,
            "postedDate": self.posted_date,
            "applicationDeadline": self.application_deadline,
            "applicationsOpen": self.applications_open,
            "applicationCount": self.application_count,
            "viewCount": self.view_count,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "updatedBy": self.updated_by,
        }


@dataclass
class Application:
    project_id: int
    associate_id: str
    id: int | None = None
    project_title: str = ""
    associate_name: str = ""
    associate_email: str = ""
    associate_skills: list[str] = field(default_factory=list)
    associate_experience: str = ""
    applied_at: str | None = None
    status: ApplicationStatus = ApplicationStatus.PENDING
    cover_letter: str = ""
    match_score: int = 0
    updated_at: str | None = None
    updated_by: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Application":
        score = _int(data.get("matchScore") or 0, "matchScore")
        if not 0 <= score <= 100:
            raise ValidationFailed(f"matchScore out of range: {score}")
        return cls(
            id=_int(_require(data, "id", "application"), "id"),
            project_id=_int(_require(data, "projectId", "application"), "projectId"),
            associate_id=_str(_require(data, "associateId", "application"), "associateId"),
            project_title=_str(data.get("projectTitle"), "projectTitle"),
            associate_name=_str(data.get("associateName"), "associateName"),
            associate_email=_str(data.get("associateEmail"), "associateEmail"),
            associate_skills=_str_list(data.get("associateSkills"), "associateSkills"),
            associate_experience=_str(data.get("associateExperience"), "associateExperience"),
            applied_at=_opt(data.get("appliedAt")),
            status=ApplicationStatus.parse(data.get("status", "Pending")),
            cover_letter=_str(data.get("coverLetter"), "coverLetter"),
            match_score=score,
            updated_at=_opt(data.get("updatedAt")),
            updated_by=_opt(data.get("updatedBy")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "projectId": self.project_id,
            "projectTitle": self.project_title,
            "associateId": self.associate_id,
            "associateName": self.associate_name,
            "associateEmail": self.associate_email,
            "associateSkills": list(self.associate_skills),
            "associateExperience": self.associate_experience,
            "appliedAt": self.applied_at,
            "status": self.status.value,
            "coverLetter": self.cover_letter,
            "matchScore": self.match_score,
            "updatedAt": self.updated_at,
            "updatedBy": self.updated_by,
        }
