"""Authorization gate: role, ownership and profile-completion checks.

Every operation that lists or mutates projects/applications goes through
``authorize``; owner-only mutations additionally call ``require_owner``.
Rules are evaluated in a fixed order:

1. no session token             -> Unauthenticated
2. no role selected             -> RoleSelectionRequired
3. manager scope, not a manager -> Forbidden
4. associate scope, not one     -> Forbidden
5. record owned by someone else -> Forbidden   (require_owner)
6. associate discovery/analytics with no declared skill -> ProfileIncomplete

``route_decision`` applies the same rules to navigation paths.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING
from urllib.parse import urlencode

from mobility.errors import (
    Forbidden,
    MobilityError,
    ProfileIncomplete,
    RoleSelectionRequired,
    Unauthenticated,
)
from mobility.log import get_logger
from mobility.models import Actor, Role

if TYPE_CHECKING:
    from mobility.session import Session

log = get_logger(__name__)


class Scope(str, Enum):
    ANY = "any"                  # any authenticated role
    MANAGER = "manager"
    ASSOCIATE = "associate"
    DISCOVERY = "discovery"      # associate-only, needs a minimum profile


PUBLIC_ROUTES: tuple[str, ...] = ("/login", "/unauthorized")
API_ROUTES: tuple[str, ...] = ("/api/",)
MANAGER_ROUTES: tuple[str, ...] = ("/pm-dashboard",)
ASSOCIATE_ROUTES: tuple[str, ...] = (
    "/dashboard", "/projects", "/about", "/analytics", "/profile", "/settings", "/admin",
)
DISCOVERY_ROUTES: tuple[str, ...] = ("/projects", "/analytics")
PROFILE_CREATE_ROUTE = "/profile/create"

HOME_BY_ROLE: dict[Role, str] = {
    Role.MANAGER: "/pm-dashboard",
    Role.ASSOCIATE: "/dashboard",
}


def authorize(session: Session | None, scope: Scope = Scope.ANY, actor: Actor | None = None) -> Session:
    """Apply rules 1-4 and 6; returns the session on success."""
    if session is None or not session.authenticated:
        raise Unauthenticated("Sign in required")
    if session.role is None:
        raise RoleSelectionRequired("Select a role before continuing")

    if scope is Scope.MANAGER and session.role is not Role.MANAGER:
        log.info("Manager scope denied for %s (role=%s)", session.user_id, session.role.value)
        raise Forbidden("Manager access required", context={"user": session.user_id})

    if scope in (Scope.ASSOCIATE, Scope.DISCOVERY) and session.role is not Role.ASSOCIATE:
        log.info("Associate scope denied for %s (role=%s)", session.user_id, session.role.value)
        raise Forbidden("Associate access required", context={"user": session.user_id})

    if scope is Scope.DISCOVERY and (actor is None or not actor.has_minimum_profile):
        raise ProfileIncomplete("Add at least one skill to your profile first")

    return session


def require_owner(session: Session, owner_id: str, what: str = "record") -> None:
    """Rule 5: only the owning manager may mutate, whatever the role says."""
    if session.user_id != owner_id:
        log.warning("Ownership check failed: %s tried to modify %s owned by %s", session.user_id, what, owner_id)
        raise Forbidden(f"You can only modify your own {what}s", context={"owner": owner_id})


@dataclass(frozen=True)
class RouteDecision:
    allowed: bool
    redirect: str | None = None
    reason: str | None = None


def _matches(path: str, prefixes: tuple[str, ...]) -> bool:
    return any(path.startswith(p) for p in prefixes)


def _redirect(path: str, **params: str) -> str:
    return f"{path}?{urlencode(params)}" if params else path


def route_decision(session: Session | None, path: str, actor: Actor | None = None) -> RouteDecision:
    """Decide whether a navigation request is served or redirected."""
    if _matches(path, PUBLIC_ROUTES):
        return RouteDecision(True)

    if session is None or not session.authenticated:
        return RouteDecision(False, _redirect("/login", redirect=path), "unauthenticated")

    if _matches(path, API_ROUTES):
        return RouteDecision(True)

    if session.role is None:
        return RouteDecision(False, "/role-selection", "role-selection")

    if path == "/":
        return RouteDecision(False, HOME_BY_ROLE[session.role], "home")

    scope = Scope.ANY
    if _matches(path, MANAGER_ROUTES):
        scope = Scope.MANAGER
    elif _matches(path, DISCOVERY_ROUTES):
        scope = Scope.DISCOVERY
    elif _matches(path, ASSOCIATE_ROUTES):
        scope = Scope.ASSOCIATE

    try:
        authorize(session, scope, actor)
    except ProfileIncomplete as exc:
        return RouteDecision(False, exc.redirect, "profile-incomplete")
    except Forbidden:
        return RouteDecision(False, _redirect("/unauthorized", route=path), "forbidden")
    except MobilityError as exc:
        return RouteDecision(False, "/login", exc.code.lower())
    return RouteDecision(True)
