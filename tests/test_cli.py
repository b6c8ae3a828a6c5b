from __future__ import annotations

import pytest
import yaml

import run_portal
from mobility.config import load_settings
from mobility.models import Project
from mobility.store import RecordStore

from tests.conftest import seed_actor


@pytest.fixture
def cfg(tmp_path, monkeypatch):
    monkeypatch.delenv("MOBILITY_DATA_DIR", raising=False)
    cfg_dir = tmp_path / "config"
    cfg_dir.mkdir()
    path = cfg_dir / "settings.yaml"
    path.write_text(yaml.safe_dump({"storage": {"data_dir": "data", "reports_dir": "reports"}}))
    store = RecordStore.from_settings(load_settings(path))
    seed_actor(store, "a1", ["Python"], name="Alex")
    store.insert("projects", Project(title="Pipeline Rewrite", posted_by="pm1", required_skills=["Python"]))
    return path, store


def _run(cfg, *args):
    path, _ = cfg
    return run_portal.main(["--settings", str(path), *args])


def test_browse(cfg, capsys):
    assert _run(cfg, "--user", "a1", "--role", "associate", "browse") == 0
    out = capsys.readouterr().out
    assert "Pipeline Rewrite" in out
    assert "100%" in out


def test_apply_then_decide(cfg, capsys):
    _, store = cfg
    assert _run(cfg, "--user", "a1", "--role", "associate", "apply", "1", "--cover", "hi") == 0
    assert "submitted" in capsys.readouterr().out
    assert _run(cfg, "--user", "pm1", "--role", "pm", "decide", "1", "Accepted") == 0
    assert store.get_by_id("applications", 1).status.value == "Accepted"


def test_forbidden_exits_one(cfg, capsys):
    assert _run(cfg, "--user", "a1", "--role", "associate", "toggle", "1") == 1
    assert "FORBIDDEN" in capsys.readouterr().err


def test_missing_role_points_to_role_selection(cfg, capsys):
    assert _run(cfg, "--user", "a1", "applications") == 1
    assert "/role-selection" in capsys.readouterr().err


def test_missing_user_is_unauthenticated(cfg, capsys):
    assert _run(cfg, "--role", "associate", "browse") == 1
    assert "UNAUTHENTICATED" in capsys.readouterr().err


def test_storage_failure_exits_two(tmp_path, monkeypatch, capsys):
    blocker = tmp_path / "blocker"
    blocker.write_text("x")
    monkeypatch.setenv("MOBILITY_DATA_DIR", str(blocker / "data"))
    code = run_portal.main(["--settings", str(tmp_path / "none.yaml"), "--user", "a1", "--role", "associate", "browse"])
    assert code == 2
    assert "STORAGE_FAILURE" in capsys.readouterr().err


def test_report_written(cfg, capsys):
    path, _ = cfg
    assert _run(cfg, "--user", "a1", "--role", "associate", "report") == 0
    assert list((path.parent.parent / "reports").glob("associate_*.md"))


def test_signed_out_browse_writes_no_profile(cfg, capsys):
    _, store = cfg
    assert _run(cfg, "--token", "", "--user", "intruder", "--role", "associate", "browse") == 1
    assert "UNAUTHENTICATED" in capsys.readouterr().err
    assert store.get("userProfiles") == []


def test_role_less_browse_writes_no_profile(cfg, capsys):
    _, store = cfg
    assert _run(cfg, "--user", "boss", "browse") == 1
    assert "/role-selection" in capsys.readouterr().err
    assert store.get("userProfiles") == []


def test_browse_search_and_category(cfg, capsys):
    _, store = cfg
    store.insert("projects", Project(title="Storefront", posted_by="pm1", category="Frontend", required_skills=["React"]))
    assert _run(cfg, "--user", "a1", "--role", "associate", "browse", "--search", "pipeline") == 0
    out = capsys.readouterr().out
    assert "Pipeline Rewrite" in out
    assert "Storefront" not in out

    assert _run(cfg, "--user", "a1", "--role", "associate", "browse", "-c", "frontend") == 0
    out = capsys.readouterr().out
    assert "Storefront" in out
    assert "Pipeline Rewrite" not in out

    assert _run(cfg, "--user", "a1", "--role", "associate", "browse", "-s", "cobol") == 0
    assert "No matching projects." in capsys.readouterr().out


def test_manager_views_associate(cfg, capsys):
    assert _run(cfg, "--user", "pm1", "--role", "pm", "associate", "a1") == 0
    out = capsys.readouterr().out
    assert "Alex" in out
    assert "Skills: Python" in out


def test_associate_cannot_view_associate(cfg, capsys):
    assert _run(cfg, "--user", "a1", "--role", "associate", "associate", "a1") == 1
    assert "FORBIDDEN" in capsys.readouterr().err
