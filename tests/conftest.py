# tests/conftest.py
"""
Pytest configuration and fixtures.
Adds the project root to sys.path so `import mobility` works without installing.
"""
from __future__ import annotations

import sys
from pathlib import Path

import pytest

project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from mobility.config import Settings  # noqa: E402
from mobility.models import Actor, Project, Role  # noqa: E402
from mobility.session import Session  # noqa: E402
from mobility.store import RecordStore  # noqa: E402


def make_session(user_id: str, role: str | None, name: str = "", token: str | None = "tok") -> Session:
    return Session(token=token, user_id=user_id, name=name or user_id, role=Role.parse(role))


def seed_actor(store: RecordStore, actor_id: str, skills=None, collection: str = "associates", **kw) -> Actor:
    kw.setdefault("name", actor_id)
    role = Role.MANAGER if collection == "projectManagers" else Role.ASSOCIATE
    return store.insert(collection, Actor(id=actor_id, role=role, skills=list(skills or []), **kw))


def seed_project(store: RecordStore, title: str = "Project", posted_by: str = "pm1", **kw) -> Project:
    return store.insert("projects", Project(title=title, posted_by=posted_by, **kw))


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(data_dir=tmp_path / "data", reports_dir=tmp_path / "reports", lock_timeout=2.0)


@pytest.fixture
def store(settings) -> RecordStore:
    return RecordStore.from_settings(settings)


@pytest.fixture
def manager(store) -> Session:
    seed_actor(store, "pm1", collection="projectManagers", name="Pat Manager")
    return make_session("pm1", "manager", "Pat Manager")


@pytest.fixture
def other_manager(store) -> Session:
    seed_actor(store, "pm2", collection="projectManagers", name="Quinn Other")
    return make_session("pm2", "pm", "Quinn Other")


@pytest.fixture
def associate(store) -> Session:
    seed_actor(store, "a1", ["Python", "React"], name="Alex Associate", email="alex@example.com")
    return make_session("a1", "associate", "Alex Associate")


@pytest.fixture
def associate_actor(store, associate) -> Actor:
    return store.get_by_id("associates", "a1")
