"""Profile operations: read, create and replace an actor's own profile."""
from __future__ import annotations

from typing import Any

from mobility.errors import NotFound, ValidationFailed
from mobility.gate import Scope, authorize
from mobility.log import audit, get_logger
from mobility.models import Actor, Role, now_iso
from mobility.session import Session, find_actor
from mobility.store import ACTOR_COLLECTIONS, RecordStore

log = get_logger(__name__)

PROFILE_FIELDS: tuple[str, ...] = (
    "name", "email", "skills", "desiredTech", "openToOpportunities", "experience", "location",
)


def _clean_skills(values: Any, key: str) -> list[str]:
    if values is None:
        return []
    if isinstance(values, str) or not isinstance(values, list):
        raise ValidationFailed(f"{key} must be a list of strings")
    # de-duplicate case-insensitively, keep first spelling
    seen: dict[str, str] = {}
    for v in values:
        if not isinstance(v, str):
            raise ValidationFailed(f"{key} must be a list of strings")
        if v.strip():
            seen.setdefault(v.strip().lower(), v.strip())
    return list(seen.values())


def _profile_fields(form: dict[str, Any], role: Role | None) -> dict[str, Any]:
    out = {k: form[k] for k in PROFILE_FIELDS if k in form}
    out["skills"] = _clean_skills(form.get("skills"), "skills")
    out["desiredTech"] = _clean_skills(form.get("desiredTech"), "desiredTech")
    if role is not Role.MANAGER and not out["skills"]:
        raise ValidationFailed("Declare at least one skill")
    return out


def get_profile(session: Session, store: RecordStore) -> Actor:
    authorize(session, Scope.ANY)
    _, actor = find_actor(store, session.user_id)
    return actor


def create_profile(session: Session, store: RecordStore, form: dict[str, Any]) -> Actor:
    """Complete the session's own profile (profile-creation step).

    The actor record normally exists already (created on first login); it
    is then filled in, keeping its createdAt. Otherwise a self-service
    profile is inserted.
    """
    authorize(session, Scope.ANY)
    fields = _profile_fields(form, session.role)
    try:
        collection, existing = find_actor(store, session.user_id)
    except NotFound:
        collection, existing = "userProfiles", None

    if existing is not None:
        updated = store.update(collection, session.user_id, fields)
        audit("complete-profile", session.user_id, collection, updated.id, skills=len(updated.skills))
        return updated

    stamp = now_iso()
    actor = Actor.from_dict({
        **fields,
        "id": session.user_id,
        "name": fields.get("name") or session.name,
        "role": (session.role or Role.ASSOCIATE).value,
        "createdAt": stamp,
        "updatedAt": stamp,
    })
    created = store.insert(collection, actor)
    audit("create-profile", session.user_id, collection, created.id, skills=len(created.skills))
    return created


def update_profile(session: Session, store: RecordStore, form: dict[str, Any]) -> Actor:
    """Full replace of the profile fields; id, role and createdAt are kept."""
    authorize(session, Scope.ANY)
    collection, _ = find_actor(store, session.user_id)
    fields = _profile_fields(form, session.role)
    patch: dict[str, Any] = {
        "name": "", "email": "", "openToOpportunities": True, "experience": "", "location": "",
    }
    patch.update(fields)
    updated = store.update(collection, session.user_id, patch)
    audit("update-profile", session.user_id, collection, session.user_id)
    return updated


def list_available_associates(session: Session, store: RecordStore) -> list[Actor]:
    """Associates open to opportunities, for managers staffing a project."""
    authorize(session, Scope.MANAGER)
    out: list[Actor] = []
    seen: set[str] = set()
    for collection in ACTOR_COLLECTIONS:
        for actor in store.get(collection, lambda a: a.role is Role.ASSOCIATE and a.open_to_opportunities):
            if actor.id not in seen:
                seen.add(actor.id)
                out.append(actor)
    log.debug("%d associates open to opportunities", len(out))
    return out


def get_associate(session: Session, store: RecordStore, associate_id: str) -> Actor:
    """A manager's read of one associate's profile."""
    authorize(session, Scope.MANAGER)
    _, actor = find_actor(store, str(associate_id))
    if actor.role is not Role.ASSOCIATE:
        raise NotFound(f"No associate {associate_id}")
    return actor
