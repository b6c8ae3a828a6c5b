from __future__ import annotations

import pytest

from mobility.errors import Forbidden, ProfileIncomplete, RoleSelectionRequired, Unauthenticated
from mobility.gate import Scope, authorize, require_owner, route_decision
from mobility.models import Actor

from tests.conftest import make_session

SKILLED = Actor(id="a1", skills=["Python"])
UNSKILLED = Actor(id="a1", skills=["   "])


class TestAuthorize:
    def test_no_token_is_unauthenticated(self):
        with pytest.raises(Unauthenticated):
            authorize(make_session("a1", "associate", token=None), Scope.ANY)

    def test_no_session_is_unauthenticated(self):
        with pytest.raises(Unauthenticated):
            authorize(None)

    def test_missing_role_checked_before_scope(self):
        with pytest.raises(RoleSelectionRequired) as exc_info:
            authorize(make_session("a1", None), Scope.MANAGER)
        assert exc_info.value.redirect == "/role-selection"

    def test_manager_scope(self):
        authorize(make_session("pm1", "manager"), Scope.MANAGER)
        with pytest.raises(Forbidden):
            authorize(make_session("a1", "associate"), Scope.MANAGER)

    def test_associate_scope(self):
        authorize(make_session("a1", "associate"), Scope.ASSOCIATE)
        with pytest.raises(Forbidden):
            authorize(make_session("pm1", "manager"), Scope.ASSOCIATE)

    def test_role_forbidden_before_profile_incomplete(self):
        with pytest.raises(Forbidden):
            authorize(make_session("pm1", "manager"), Scope.DISCOVERY, UNSKILLED)

    def test_discovery_needs_non_blank_skill(self):
        session = make_session("a1", "associate")
        with pytest.raises(ProfileIncomplete) as exc_info:
            authorize(session, Scope.DISCOVERY, UNSKILLED)
        assert exc_info.value.redirect == "/profile/create"
        assert authorize(session, Scope.DISCOVERY, SKILLED) is session

    def test_require_owner(self):
        session = make_session("pm1", "manager")
        require_owner(session, "pm1")
        with pytest.raises(Forbidden):
            require_owner(session, "pm2", "project")


class TestRouteDecision:
    def test_public_routes_always_served(self):
        assert route_decision(None, "/login").allowed
        assert route_decision(None, "/unauthorized").allowed

    def test_unauthenticated_redirects_to_login(self):
        d = route_decision(make_session("a1", "associate", token=None), "/dashboard")
        assert not d.allowed
        assert d.redirect == "/login?redirect=%2Fdashboard"

    def test_api_served_without_role(self):
        assert route_decision(make_session("a1", None), "/api/projects").allowed

    def test_role_selection(self):
        d = route_decision(make_session("a1", None), "/dashboard")
        assert d.redirect == "/role-selection"

    @pytest.mark.parametrize("role,home", [("manager", "/pm-dashboard"), ("associate", "/dashboard")])
    def test_root_redirects_home(self, role, home):
        assert route_decision(make_session("u", role), "/").redirect == home

    def test_associate_on_manager_route(self):
        d = route_decision(make_session("a1", "associate"), "/pm-dashboard")
        assert not d.allowed
        assert d.redirect == "/unauthorized?route=%2Fpm-dashboard"

    def test_manager_on_associate_route(self):
        d = route_decision(make_session("pm1", "manager"), "/dashboard")
        assert d.reason == "forbidden"

    def test_discovery_without_skills(self):
        session = make_session("a1", "associate")
        d = route_decision(session, "/projects", UNSKILLED)
        assert d.redirect == "/profile/create"
        assert route_decision(session, "/analytics", SKILLED).allowed

    def test_profile_creation_reachable_without_skills(self):
        assert route_decision(make_session("a1", "associate"), "/profile/create", UNSKILLED).allowed
