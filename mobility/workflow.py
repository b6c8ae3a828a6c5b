"""Application lifecycle: Pending -> Accepted | Declined (terminal)."""
from __future__ import annotations

from mobility.errors import Forbidden, MobilityError, NotFound, StateConflict, ValidationFailed
from mobility.gate import Scope, authorize, require_owner
from mobility.log import audit, get_logger
from mobility.models import Actor, Application, ApplicationStatus, Project, Role, now_iso
from mobility.scorer import score_project
from mobility.session import Session, find_actor
from mobility.store import RecordStore

log = get_logger(__name__)

OPEN_STATUSES = (ApplicationStatus.PENDING, ApplicationStatus.ACCEPTED)


def _check_duplicate(store: RecordStore, policy: str, associate_id: str, project_id: int) -> None:
    if policy == "allow":
        return
    earlier = store.get(
        "applications",
        lambda a: a.associate_id == associate_id and a.project_id == project_id,
    )
    if not earlier:
        return
    if policy == "reject_all":
        raise StateConflict(f"Already applied to project {project_id}")
    blocking = [a for a in earlier if a.status in OPEN_STATUSES]
    if blocking:
        raise StateConflict(
            f"Application {blocking[0].id} for project {project_id} is still {blocking[0].status.value}"
        )


def _applicant(session: Session, store: RecordStore) -> Actor:
    try:
        _, actor = find_actor(store, session.user_id)
    except NotFound:
        raise ValidationFailed("Create your profile before applying") from None
    if not actor.has_minimum_profile:
        raise ValidationFailed("Declare at least one skill before applying")
    return actor


def submit(
    session: Session,
    store: RecordStore,
    project_id: int,
    cover_text: str = "",
    *,
    duplicate_policy: str = "allow",
) -> Application:
    """Apply to an open project; the match score is frozen at submission."""
    authorize(session, Scope.ASSOCIATE)
    actor = _applicant(session, store)
    project = store.get_by_id("projects", project_id)
    if not project.applications_open:
        raise StateConflict(f"Applications are closed for project {project_id}")
    _check_duplicate(store, duplicate_policy, actor.id, project.id)

    scored = score_project(project, actor)
    application = Application(
        project_id=project.id,
        associate_id=actor.id,
        project_title=project.title,
        associate_name=actor.name,
        associate_email=actor.email,
        associate_skills=list(actor.skills),
        associate_experience=actor.experience,
        applied_at=now_iso(),
        status=ApplicationStatus.PENDING,
        cover_letter=(cover_text or "").strip(),
        match_score=scored.percent,
    )
    created = store.insert("applications", application)

    def _still_open(current: Project) -> None:
        if not current.applications_open:
            raise StateConflict(f"Applications closed for project {project_id} while submitting")

    try:
        store.update(
            "projects", project.id,
            lambda p: {"applicationCount": p.application_count + 1},
            guard=_still_open,
        )
    except MobilityError:
        # undo the insert so no half-submitted application remains
        try:
            store.remove("applications", created.id)
        except MobilityError as exc:
            log.error("Could not roll back application %s: %s", created.id, exc)
        raise

    audit(
        "submit", session.user_id, "applications", created.id,
        project=project.id, score=created.match_score,
    )
    return created


def decide(session: Session, store: RecordStore, application_id: int, decision: str) -> Application:
    """Accept or decline a pending application on one of the manager's projects."""
    authorize(session, Scope.MANAGER)
    status = ApplicationStatus.parse(decision)
    if not status.terminal:
        raise ValidationFailed("Decision must be Accepted or Declined")

    def _guard(current: Application) -> None:
        try:
            project = store.get_by_id("projects", current.project_id)
        except NotFound:
            raise Forbidden(
                f"Project {current.project_id} no longer exists; nobody can decide on it"
            ) from None
        require_owner(session, project.posted_by, "application")
        if current.status.terminal:
            raise StateConflict(f"Application {current.id} is already {current.status.value}")

    updated = store.update(
        "applications", application_id,
        {"status": status.value, "updatedBy": session.user_id},
        guard=_guard,
    )
    audit("decide", session.user_id, "applications", application_id, status=status.value)
    return updated


def list_for(
    session: Session,
    store: RecordStore,
    *,
    project_id: int | None = None,
    status: str | None = None,
) -> list[Application]:
    """Managers see applications to their projects; associates see their own."""
    authorize(session, Scope.ANY)
    if session.role is Role.MANAGER:
        owned = {p.id for p in store.get("projects", lambda p: p.posted_by == session.user_id)}
        apps = store.get("applications", lambda a: a.project_id in owned)
    else:
        apps = store.get("applications", lambda a: a.associate_id == session.user_id)

    if project_id is not None:
        apps = [a for a in apps if a.project_id == int(project_id)]
    if status:
        wanted = ApplicationStatus.parse(status)
        apps = [a for a in apps if a.status is wanted]
    return apps
