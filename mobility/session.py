"""Identity resolution: session key/value pairs -> Session -> Actor."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping
from urllib.parse import unquote

from mobility.config import Settings
from mobility.errors import NotFound, Unauthenticated
from mobility.gate import Scope, authorize
from mobility.log import audit, get_logger
from mobility.models import Actor, Role, now_iso
from mobility.store import ACTOR_COLLECTIONS, RecordStore

log = get_logger(__name__)

UNKNOWN_IDENTITY = "unknown"

TOKEN_KEY = "auth-token"
USER_ID_KEY = "user-id"
USER_NAME_KEY = "user-name"
ROLE_KEY = "user-role"


@dataclass(frozen=True)
class Session:
    token: str | None
    user_id: str
    name: str = ""
    role: Role | None = None

    @property
    def authenticated(self) -> bool:
        return bool(self.token)


def resolve_session(pairs: Mapping[str, str], settings: Settings | None = None) -> Session:
    """Build a Session from cookie/header pairs.

    A missing ``user-id`` is an Unauthenticated error unless the settings
    allow the legacy "unknown" identity.
    """
    token = (pairs.get(TOKEN_KEY) or "").strip() or None
    user_id = (pairs.get(USER_ID_KEY) or "").strip()
    name = unquote(pairs.get(USER_NAME_KEY) or "").strip()
    role = Role.parse(pairs.get(ROLE_KEY))

    if not user_id:
        if settings is not None and settings.allow_unknown_identity:
            log.warning("Request without %s, falling back to %r identity", USER_ID_KEY, UNKNOWN_IDENTITY)
            user_id = UNKNOWN_IDENTITY
        else:
            raise Unauthenticated(f"Session carries no {USER_ID_KEY}")

    return Session(token=token, user_id=user_id, name=name or user_id, role=role)


def find_actor(store: RecordStore, actor_id: str) -> tuple[str, Actor]:
    """Look the actor up in the predefined lists first, then self-service profiles."""
    for collection in ACTOR_COLLECTIONS:
        matches = store.get(collection, lambda a: a.id == actor_id)
        if matches:
            return collection, matches[0]
    raise NotFound(f"No actor {actor_id}")


def resolve_actor(session: Session, store: RecordStore) -> Actor:
    """Map the session to its Actor, creating one on first login.

    The session must pass the gate first: no record is written for a
    signed-out session or one that has not selected a role yet.
    """
    authorize(session, Scope.ANY)
    try:
        _, actor = find_actor(store, session.user_id)
        return actor
    except NotFound:
        pass

    role = session.role
    collection = "projectManagers" if role is Role.MANAGER else "userProfiles"
    stamp = now_iso()
    actor = Actor(
        id=session.user_id,
        name=session.name,
        role=role,
        created_at=stamp,
        updated_at=stamp,
    )
    created = store.insert(collection, actor)
    audit("create-actor", session.user_id, collection, created.id, role=role.value)
    log.info("First session for %s, created %s record", session.user_id, role.value)
    return created
