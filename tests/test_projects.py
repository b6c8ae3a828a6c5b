from __future__ import annotations

from datetime import date, timedelta

import pytest

from mobility.errors import Forbidden, NotFound, ProfileIncomplete, ValidationFailed
from mobility.models import deadline_for, today
from mobility.projects import (
    browse,
    create_project,
    delete_project,
    discover,
    get_project,
    list_owned,
    record_view,
    toggle_applications,
    update_project,
)

from tests.conftest import make_session, seed_actor

FORM = {
    "title": "Checkout Redesign",
    "description": "Rebuild the checkout flow",
    "department": "Retail",
    "category": "frontend",
    "location": "Remote",
    "urgency": "high",
    "requiredSkills": [" React ", "TypeScript", ""],
    "preferredSkills": ["GraphQL"],
}


def test_deadline_for_urgency():
    posted = date(2024, 1, 1)
    assert deadline_for("high", posted) == "2024-01-15"
    assert deadline_for("Medium", posted) == "2024-01-22"
    assert deadline_for("low", posted) == "2024-01-31"
    assert deadline_for(None, posted) == "2024-01-31"


class TestCreate:
    def test_create_fills_server_fields(self, store, manager):
        p = create_project(manager, store, FORM)
        assert p.id == 1
        assert p.posted_by == "pm1"
        assert p.division == "Retail"
        assert p.category == "Frontend"
        assert p.required_skills == ["React", "TypeScript"]
        assert p.applications_open is True
        assert (p.application_count, p.view_count) == (0, 0)
        assert p.posted_date == today().isoformat()
        assert p.application_deadline == (today() + timedelta(days=14)).isoformat()

    def test_unknown_category_kept(self, store, manager):
        p = create_project(manager, store, {**FORM, "category": "Research"})
        assert p.category == "Research"

    def test_title_required(self, store, manager):
        with pytest.raises(ValidationFailed):
            create_project(manager, store, {**FORM, "title": "  "})

    def test_skills_must_be_a_list(self, store, manager):
        with pytest.raises(ValidationFailed):
            create_project(manager, store, {**FORM, "requiredSkills": "React, Vue"})

    def test_associate_cannot_create(self, store, associate):
        with pytest.raises(Forbidden):
            create_project(associate, store, FORM)


class TestUpdate:
    def test_full_replace_keeps_server_fields(self, store, manager, associate):
        p = create_project(manager, store, FORM)
        record_view(associate, store, p.id)
        updated = update_project(manager, store, p.id, {
            "title": "Checkout v2", "urgency": "high", "requiredSkills": ["Vue"],
        })
        assert updated.title == "Checkout v2"
        assert updated.required_skills == ["Vue"]
        assert updated.preferred_skills == []
        assert updated.description == ""
        assert updated.posted_by == "pm1"
        assert updated.posted_date == p.posted_date
        assert updated.view_count == 1
        assert updated.created_at == p.created_at
        assert updated.updated_by == "pm1"

    def test_deadline_unchanged_when_urgency_unchanged(self, store, manager, settings):
        p = create_project(manager, store, FORM)
        store.update("projects", p.id, {"applicationDeadline": "2030-01-01"})
        updated = update_project(manager, store, p.id, {**FORM, "title": "Renamed"})
        assert updated.application_deadline == "2030-01-01"

    def test_deadline_recomputed_when_urgency_changes(self, store, manager):
        p = create_project(manager, store, {**FORM, "urgency": "low"})
        updated = update_project(manager, store, p.id, {**FORM, "urgency": "high"})
        assert updated.application_deadline == deadline_for("high")

    def test_non_owner_forbidden(self, store, manager, other_manager):
        p = create_project(manager, store, FORM)
        with pytest.raises(Forbidden):
            update_project(other_manager, store, p.id, {**FORM, "title": "Hijacked"})
        assert store.get_by_id("projects", p.id).title == FORM["title"]


class TestDeleteAndToggle:
    def test_owner_deletes(self, store, manager):
        p = create_project(manager, store, FORM)
        delete_project(manager, store, p.id)
        with pytest.raises(NotFound):
            store.get_by_id("projects", p.id)

    def test_non_owner_cannot_delete(self, store, manager, other_manager):
        p = create_project(manager, store, FORM)
        with pytest.raises(Forbidden):
            delete_project(other_manager, store, p.id)
        assert store.get_by_id("projects", p.id)

    def test_toggle_flips_and_back(self, store, manager):
        p = create_project(manager, store, FORM)
        assert toggle_applications(manager, store, p.id).applications_open is False
        assert toggle_applications(manager, store, p.id).applications_open is True

    def test_non_owner_cannot_toggle(self, store, manager, other_manager):
        p = create_project(manager, store, FORM)
        with pytest.raises(Forbidden):
            toggle_applications(other_manager, store, p.id)
        assert store.get_by_id("projects", p.id).applications_open is True


class TestReads:
    def test_list_owned_stats(self, store, manager, other_manager, associate):
        a = create_project(manager, store, FORM)
        create_project(manager, store, {**FORM, "title": "Second"})
        create_project(other_manager, store, {**FORM, "title": "Not mine"})
        toggle_applications(manager, store, a.id)
        record_view(associate, store, a.id)
        record_view(associate, store, a.id)

        owned = list_owned(manager, store)
        assert owned.total == 2
        assert owned.active == 1
        assert owned.total_views == 2
        assert owned.total_applications == 0

    def test_browse_does_not_write(self, store, manager, associate, settings):
        create_project(manager, store, FORM)
        path = settings.data_dir / "projects.json"
        before = path.read_bytes()
        first = browse(associate, store)
        second = browse(manager, store)
        assert [p.to_dict() for p in first] == [p.to_dict() for p in second]
        assert path.read_bytes() == before

    def test_get_project_owner_only_outside_browse(self, store, manager, other_manager):
        p = create_project(manager, store, FORM)
        assert get_project(manager, store, p.id).id == p.id
        with pytest.raises(Forbidden):
            get_project(other_manager, store, p.id)
        assert get_project(other_manager, store, p.id, browsing=True).id == p.id

    def test_discover_ranks_for_associate(self, store, manager, associate, associate_actor):
        create_project(manager, store, {**FORM, "title": "Java shop", "requiredSkills": ["Java"], "preferredSkills": []})
        create_project(manager, store, {**FORM, "title": "React shop", "requiredSkills": ["React"], "preferredSkills": []})
        ranked = discover(associate, store, associate_actor)
        assert [s.project.title for s in ranked] == ["React shop", "Java shop"]
        assert ranked[0].tier == "high"

    def test_discover_open_only(self, store, manager, associate, associate_actor):
        p = create_project(manager, store, FORM)
        toggle_applications(manager, store, p.id)
        assert len(discover(associate, store, associate_actor)) == 1
        assert discover(associate, store, associate_actor, open_only=True) == []

    def test_discover_needs_a_skill(self, store, manager):
        empty = seed_actor(store, "a3", [])
        with pytest.raises(ProfileIncomplete):
            discover(make_session("a3", "associate"), store, empty)

    def test_discover_is_associate_only(self, store, manager, associate_actor):
        with pytest.raises(Forbidden):
            discover(manager, store, associate_actor)


class TestSearchAndCategory:
    @pytest.fixture
    def listed(self, store, manager):
        create_project(manager, store, {
            **FORM, "title": "Checkout Redesign", "company": "Acme Retail", "location": "Berlin",
        })
        create_project(manager, store, {
            "title": "Ledger Service",
            "description": "Payments reconciliation jobs",
            "department": "Finance Platform",
            "category": "backend",
            "location": "Remote",
            "requiredSkills": ["Go"],
            "preferredSkills": ["Kafka"],
        })

    @pytest.mark.parametrize("term,expected", [
        ("checkout", ["Checkout Redesign"]),
        ("RECONCILIATION", ["Ledger Service"]),
        ("acme", ["Checkout Redesign"]),
        ("finance", ["Ledger Service"]),
        ("berlin", ["Checkout Redesign"]),
        ("kafka", ["Ledger Service"]),
        ("typescript", ["Checkout Redesign"]),
        ("  ", ["Checkout Redesign", "Ledger Service"]),
        ("nothing-like-this", []),
    ])
    def test_search_terms(self, store, associate, listed, term, expected):
        assert [p.title for p in browse(associate, store, search=term)] == expected

    def test_category_accepts_key_or_display_name(self, store, associate, listed):
        assert [p.title for p in browse(associate, store, category="frontend")] == ["Checkout Redesign"]
        assert [p.title for p in browse(associate, store, category="Backend")] == ["Ledger Service"]
        assert len(browse(associate, store, category="All")) == 2
        assert browse(associate, store, category="mobile") == []

    def test_search_and_category_combine(self, store, associate, listed):
        assert browse(associate, store, search="remote", category="backend")[0].title == "Ledger Service"
        assert browse(associate, store, search="berlin", category="backend") == []

    def test_discover_filters_before_ranking(self, store, associate, associate_actor, listed):
        ranked = discover(associate, store, associate_actor, search="react")
        assert [s.project.title for s in ranked] == ["Checkout Redesign"]
        assert discover(associate, store, associate_actor, category="backend")[0].project.title == "Ledger Service"
