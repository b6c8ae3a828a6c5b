"""Load portal settings (YAML) and env configuration."""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from mobility.errors import StorageFailure, ValidationFailed
from mobility.log import get_logger

log = get_logger(__name__)

load_dotenv()

ROOT_DIR: Path = Path(__file__).resolve().parent.parent
CONFIG_DIR: Path = ROOT_DIR / "config"
SETTINGS_PATH: Path = CONFIG_DIR / "settings.yaml"

DUPLICATE_POLICIES: tuple[str, ...] = ("allow", "reject_open", "reject_all")


@dataclass(frozen=True)
class Settings:
    data_dir: Path = ROOT_DIR / "data"
    reports_dir: Path = ROOT_DIR / "reports"
    duplicate_policy: str = "allow"
    allow_unknown_identity: bool = False
    lock_timeout: float = 10.0


def _resolve(path_value: str | Path, base: Path) -> Path:
    p = Path(path_value).expanduser()
    return p if p.is_absolute() else base / p


def load_settings(path: Path | None = None) -> Settings:
    path = path or Path(get_env("MOBILITY_SETTINGS") or SETTINGS_PATH)
    data: dict[str, Any] = {}
    if path.exists():
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    else:
        log.debug("No settings file at %s, using defaults", path)

    storage = data.get("storage") or {}
    apps = data.get("applications") or {}
    identity = data.get("identity") or {}

    # Backward compat: flat boolean `duplicate_applications: true|false`
    if "duplicate_applications" in data and "duplicate_policy" not in apps:
        apps["duplicate_policy"] = "allow" if data.pop("duplicate_applications") else "reject_all"

    policy = str(apps.get("duplicate_policy", "allow")).strip().lower()
    if policy not in DUPLICATE_POLICIES:
        raise ValidationFailed(
            f"Unknown duplicate_policy {policy!r}; expected one of {', '.join(DUPLICATE_POLICIES)}"
        )

    base = path.resolve().parent.parent if path.exists() else ROOT_DIR
    data_dir = get_env("MOBILITY_DATA_DIR") or storage.get("data_dir", "data")
    reports_dir = storage.get("reports_dir", "reports")

    return Settings(
        data_dir=_resolve(data_dir, base),
        reports_dir=_resolve(reports_dir, base),
        duplicate_policy=policy,
        allow_unknown_identity=bool(identity.get("allow_unknown_identity", False)),
        lock_timeout=float(storage.get("lock_timeout", 10)),
    )


def get_env(key: str, default: str = "") -> str:
    return os.environ.get(key, default).strip()


def ensure_dirs(settings: Settings) -> None:
    for d in (settings.data_dir, settings.reports_dir):
        try:
            d.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageFailure(f"Cannot create {d}: {exc}") from exc
