"""Project operations: create, edit, delete, toggle and list postings."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from mobility.errors import ValidationFailed
from mobility.gate import Scope, authorize, require_owner
from mobility.log import audit, get_logger
from mobility.models import Actor, Project, category_display_name, deadline_for, now_iso, today
from mobility.scorer import ScoredProject, rank_projects
from mobility.session import Session
from mobility.store import RecordStore

log = get_logger(__name__)

# Fields a manager may set through create/update; everything else is server-owned.
EDITABLE_FIELDS: tuple[str, ...] = (
    "title", "description", "company", "division", "category", "location",
    "duration", "commitment", "urgency", "requiredSkills", "preferredSkills",
)


@dataclass
class OwnedProjects:
    projects: list[Project] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.projects)

    @property
    def total_applications(self) -> int:
        return sum(p.application_count for p in self.projects)

    @property
    def total_views(self) -> int:
        return sum(p.view_count for p in self.projects)

    @property
    def active(self) -> int:
        return sum(1 for p in self.projects if p.applications_open)


def _form_fields(form: dict[str, Any]) -> dict[str, Any]:
    if not str(form.get("title") or "").strip():
        raise ValidationFailed("Project title is required")
    # the posting form calls the division "department"
    if "department" in form and "division" not in form:
        form = {**form, "division": form["department"]}
    out = {k: form[k] for k in EDITABLE_FIELDS if k in form}
    for key in ("requiredSkills", "preferredSkills"):
        value = form.get(key) or []
        if isinstance(value, str):
            raise ValidationFailed(f"{key} must be a list of skills")
        out[key] = [s.strip() for s in value if isinstance(s, str) and s.strip()]
    if "category" in out:
        out["category"] = category_display_name(out["category"])
    return out


def create_project(session: Session, store: RecordStore, form: dict[str, Any]) -> Project:
    authorize(session, Scope.MANAGER)
    fields = _form_fields(form)
    posted = today()
    stamp = now_iso()
    project = Project(
        title=fields["title"].strip(),
        posted_by=session.user_id,
        description=fields.get("description") or "",
        company=fields.get("company") or "",
        division=fields.get("division") or "",
        category=fields.get("category") or "",
        location=fields.get("location") or "",
        duration=fields.get("duration") or "",
        commitment=fields.get("commitment") or "",
        urgency=fields.get("urgency") or "",
        required_skills=fields["requiredSkills"],
        preferred_skills=fields["preferredSkills"],
        posted_date=posted.isoformat(),
        application_deadline=deadline_for(fields.get("urgency"), posted),
        created_at=stamp,
        updated_at=stamp,
        updated_by=session.user_id,
    )
    created = store.insert("projects", project)
    audit("create-project", session.user_id, "projects", created.id, title=created.title)
    return created


def update_project(session: Session, store: RecordStore, project_id: int, form: dict[str, Any]) -> Project:
    """Full replace of the editable fields; id, owner, posting date and counters are kept."""
    authorize(session, Scope.MANAGER)
    fields = _form_fields(form)

    def _replace(current: Project) -> dict[str, Any]:
        # unspecified editable fields reset to blank
        patch: dict[str, Any] = {k: "" for k in EDITABLE_FIELDS}
        patch.update(fields)
        patch["updatedBy"] = session.user_id
        if patch["urgency"] != current.urgency:
            patch["applicationDeadline"] = deadline_for(patch["urgency"])
        return patch

    updated = store.update(
        "projects", project_id, _replace,
        guard=lambda p: require_owner(session, p.posted_by, "project"),
    )
    audit("update-project", session.user_id, "projects", project_id)
    return updated


def delete_project(session: Session, store: RecordStore, project_id: int) -> Project:
    authorize(session, Scope.MANAGER)
    removed = store.remove(
        "projects", project_id, guard=lambda p: require_owner(session, p.posted_by, "project"),
    )
    audit("delete-project", session.user_id, "projects", project_id, title=removed.title)
    return removed


def toggle_applications(session: Session, store: RecordStore, project_id: int) -> Project:
    authorize(session, Scope.MANAGER)
    updated = store.update(
        "projects", project_id,
        lambda p: {"applicationsOpen": not p.applications_open, "updatedBy": session.user_id},
        guard=lambda p: require_owner(session, p.posted_by, "project"),
    )
    log.info("Applications %s for project %s", "opened" if updated.applications_open else "closed", project_id)
    audit("toggle-applications", session.user_id, "projects", project_id, open=updated.applications_open)
    return updated


def list_owned(session: Session, store: RecordStore) -> OwnedProjects:
    authorize(session, Scope.MANAGER)
    return OwnedProjects(store.get("projects", lambda p: p.posted_by == session.user_id))


def _matches_search(project: Project, term: str) -> bool:
    needle = term.strip().lower()
    if not needle:
        return True
    text_fields = (
        project.title, project.description, project.company, project.division, project.location,
    )
    return any(needle in f.lower() for f in text_fields) or any(
        needle in s.lower() for s in project.all_skills
    )


def _filter(projects: list[Project], search: str | None, category: str | None) -> list[Project]:
    """Free-text search over the listing fields and skills, plus an exact category filter."""
    if search:
        projects = [p for p in projects if _matches_search(p, search)]
    if category and category.strip().lower() != "all":
        wanted = category_display_name(category).lower()
        projects = [p for p in projects if p.category.lower() == wanted]
    return projects


def browse(
    session: Session,
    store: RecordStore,
    *,
    search: str | None = None,
    category: str | None = None,
) -> list[Project]:
    """All postings, in stored order."""
    authorize(session, Scope.ANY)
    return _filter(store.get("projects"), search, category)


def discover(
    session: Session,
    store: RecordStore,
    actor: Actor,
    *,
    open_only: bool = False,
    search: str | None = None,
    category: str | None = None,
) -> list[ScoredProject]:
    """All postings ranked for an associate's skills."""
    authorize(session, Scope.DISCOVERY, actor)
    projects = store.get("projects", (lambda p: p.applications_open) if open_only else None)
    return rank_projects(_filter(projects, search, category), actor)


def get_project(session: Session, store: RecordStore, project_id: int, *, browsing: bool = False) -> Project:
    """Read one project; outside browse mode only its owner may read it."""
    authorize(session, Scope.ANY)
    project = store.get_by_id("projects", project_id)
    if not browsing:
        require_owner(session, project.posted_by, "project")
    return project


def record_view(session: Session, store: RecordStore, project_id: int) -> Project:
    """An associate opened the project page: bump its view counter."""
    authorize(session, Scope.ASSOCIATE)
    return store.update("projects", project_id, lambda p: {"viewCount": p.view_count + 1})
