from .errors import (
    Forbidden,
    MobilityError,
    NotFound,
    Outcome,
    ProfileIncomplete,
    RoleSelectionRequired,
    StateConflict,
    StorageFailure,
    Unauthenticated,
    ValidationFailed,
)
from .models import Actor, Application, ApplicationStatus, Project, Role
from .scorer import classify, rank_projects, score_project, skills_match
from .session import Session, resolve_actor, resolve_session
from .store import RecordStore

__all__ = [
    "MobilityError", "NotFound", "Forbidden", "ValidationFailed", "StateConflict",
    "StorageFailure", "Unauthenticated", "RoleSelectionRequired", "ProfileIncomplete",
    "Outcome", "Actor", "Project", "Application", "ApplicationStatus", "Role",
    "RecordStore", "Session", "resolve_session", "resolve_actor",
    "score_project", "rank_projects", "classify", "skills_match",
]
