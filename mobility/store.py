"""Record store: JSON documents on disk, one per entity type, with file locking.

Each document is loaded, mutated and rewritten in full. ``RecordStore`` runs
every mutation as a locked read-modify-write per document, so writers are
serialized; ``JsonDocument.load``/``save`` on their own are the raw,
unguarded path (two writers racing through them lose an update).
"""
from __future__ import annotations

import fcntl
import json
import os
import shutil
import tempfile
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Iterator

from mobility.config import Settings
from mobility.errors import NotFound, StorageFailure, ValidationFailed
from mobility.log import get_logger
from mobility.models import Actor, Application, Project, now_iso

log = get_logger(__name__)

Document = dict[str, list[dict[str, Any]]]


@dataclass(frozen=True)
class CollectionSpec:
    filename: str
    key: str
    model: type


COLLECTIONS: dict[str, CollectionSpec] = {
    "associates": CollectionSpec("profiles.json", "associates", Actor),
    "projectManagers": CollectionSpec("profiles.json", "projectManagers", Actor),
    "userProfiles": CollectionSpec("profiles.json", "userProfiles", Actor),
    "projects": CollectionSpec("projects.json", "projects", Project),
    "applications": CollectionSpec("applications.json", "applications", Application),
}

ACTOR_COLLECTIONS: tuple[str, ...] = ("associates", "projectManagers", "userProfiles")

_PROCESS_LOCKS: dict[Path, threading.Lock] = {}
_REGISTRY_LOCK = threading.Lock()


def _process_lock(path: Path) -> threading.Lock:
    with _REGISTRY_LOCK:
        return _PROCESS_LOCKS.setdefault(path.resolve(), threading.Lock())


def same_id(a: Any, b: Any) -> bool:
    """Ids compare as ints when both sides are numeric ("5" == 5)."""
    try:
        return int(a) == int(b)
    except (TypeError, ValueError):
        return str(a) == str(b)


def _raw_id(raw: dict[str, Any]) -> Any:
    return raw.get("id") if raw.get("id") is not None else raw.get("userId")


def next_id(records: list[dict[str, Any]]) -> int:
    """max(existing integer ids) + 1, or 1 for an empty collection."""
    ids: list[int] = []
    for r in records:
        try:
            ids.append(int(r.get("id")))
        except (TypeError, ValueError):
            continue
    return max(ids) + 1 if ids else 1


class JsonDocument:
    """One JSON file holding top-level arrays, e.g. ``{"projects": [...]}``."""

    def __init__(self, path: Path, keys: tuple[str, ...], lock_timeout: float = 10.0) -> None:
        self.path = path
        self.keys = keys
        self.lock_timeout = lock_timeout
        self._degraded = False

    def empty(self) -> Document:
        return {k: [] for k in self.keys}

    def load(self) -> Document:
        """Read the document; an unreadable or corrupt file reads as empty."""
        if not self.path.exists():
            return self.empty()
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, ValueError) as exc:
            log.warning("Unreadable document %s, treating as empty: %s", self.path.name, exc)
            self._degraded = True
            return self.empty()
        if not isinstance(raw, dict):
            log.warning("Document %s is not a JSON object, treating as empty", self.path.name)
            self._degraded = True
            return self.empty()

        self._degraded = False
        doc: Document = {}
        for k, v in raw.items():
            if k in self.keys and not isinstance(v, list):
                log.warning("%s: %r is not an array, treating as empty", self.path.name, k)
                v = []
            doc[k] = v
        for k in self.keys:
            doc.setdefault(k, [])
        return doc

    def save(self, doc: Document) -> None:
        """Rewrite the whole document (temp file + rename)."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            if self._degraded and self.path.exists():
                backup = self.path.with_name(
                    f"{self.path.name}.corrupt-{datetime.now().strftime('%Y%m%d%H%M%S')}"
                )
                shutil.copy2(self.path, backup)
                log.error("Overwriting unreadable %s; previous content kept at %s", self.path.name, backup.name)
                self._degraded = False
            fd, tmp = tempfile.mkstemp(prefix=f".{self.path.name}.", dir=self.path.parent)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(doc, f, indent=2)
                    f.write("\n")
                os.replace(tmp, self.path)
            except BaseException:
                if os.path.exists(tmp):
                    os.unlink(tmp)
                raise
        except OSError as exc:
            raise StorageFailure(f"Could not write {self.path.name}: {exc}") from exc

    @contextmanager
    def locked(self) -> Iterator[None]:
        """Exclusive writer lock: in-process mutex plus fcntl lock on a sidecar file."""
        mutex = _process_lock(self.path)
        if not mutex.acquire(timeout=self.lock_timeout):
            raise StorageFailure(f"Timed out waiting for writer lock on {self.path.name}")
        try:
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                lock_file = open(self.path.with_name(self.path.name + ".lock"), "a")
            except OSError as exc:
                raise StorageFailure(f"Could not open lock for {self.path.name}: {exc}") from exc
            with lock_file:
                deadline = time.monotonic() + self.lock_timeout
                while True:
                    try:
                        fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
                        break
                    except BlockingIOError:
                        if time.monotonic() >= deadline:
                            raise StorageFailure(
                                f"Timed out waiting for writer lock on {self.path.name}"
                            ) from None
                        time.sleep(0.02)
                try:
                    yield
                finally:
                    fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)
        finally:
            mutex.release()


class RecordStore:
    """Typed get/insert/update/remove over the named collections."""

    def __init__(self, data_dir: Path, lock_timeout: float = 10.0) -> None:
        self.data_dir = Path(data_dir)
        self._documents: dict[str, JsonDocument] = {}
        by_file: dict[str, list[str]] = {}
        for spec in COLLECTIONS.values():
            by_file.setdefault(spec.filename, []).append(spec.key)
        for filename, keys in by_file.items():
            self._documents[filename] = JsonDocument(self.data_dir / filename, tuple(keys), lock_timeout)

    @classmethod
    def from_settings(cls, settings: Settings) -> "RecordStore":
        return cls(settings.data_dir, lock_timeout=settings.lock_timeout)

    def _spec(self, collection: str) -> CollectionSpec:
        try:
            return COLLECTIONS[collection]
        except KeyError:
            raise ValidationFailed(f"Unknown collection {collection!r}") from None

    def document(self, collection: str) -> JsonDocument:
        return self._documents[self._spec(collection).filename]

    def _typed(self, collection: str, raw: dict[str, Any]) -> Any | None:
        try:
            return self._spec(collection).model.from_dict(raw)
        except ValidationFailed as exc:
            log.error("Skipping malformed %s record %r: %s", collection, _raw_id(raw), exc.message)
            return None

    # --- reads ------------------------------------------------------------

    def get(self, collection: str, predicate: Callable[[Any], bool] | None = None) -> list[Any]:
        spec = self._spec(collection)
        out = []
        for raw in self.document(collection).load()[spec.key]:
            rec = self._typed(collection, raw)
            if rec is not None and (predicate is None or predicate(rec)):
                out.append(rec)
        return out

    def get_by_id(self, collection: str, record_id: Any) -> Any:
        spec = self._spec(collection)
        for raw in self.document(collection).load()[spec.key]:
            if same_id(_raw_id(raw), record_id):
                rec = self._typed(collection, raw)
                if rec is not None:
                    return rec
        raise NotFound(f"{collection} record {record_id} not found")

    # --- writes -----------------------------------------------------------

    def insert(self, collection: str, record: Any) -> Any:
        spec = self._spec(collection)
        doc_file = self.document(collection)
        with doc_file.locked():
            doc = doc_file.load()
            rows = doc[spec.key]
            data = record.to_dict()
            if data.get("id") is None:
                data["id"] = next_id(rows)
            elif any(same_id(_raw_id(r), data["id"]) for r in rows):
                raise ValidationFailed(f"{collection} record {data['id']} already exists")
            stored = spec.model.from_dict(data)
            rows.append(stored.to_dict())
            doc_file.save(doc)
        log.debug("Inserted %s#%s", collection, stored.id)
        return stored

    def update(
        self,
        collection: str,
        record_id: Any,
        patch: dict[str, Any] | Callable[[Any], dict[str, Any]],
        *,
        guard: Callable[[Any], None] | None = None,
    ) -> Any:
        """Merge ``patch`` over the stored record and stamp ``updatedAt``.

        ``guard`` sees the current typed record under the writer lock and may
        raise to abort the write (per-record compare-and-set). A callable
        ``patch`` is computed from that same current record.
        """
        spec = self._spec(collection)
        doc_file = self.document(collection)
        with doc_file.locked():
            doc = doc_file.load()
            rows = doc[spec.key]
            for i, raw in enumerate(rows):
                if same_id(_raw_id(raw), record_id):
                    break
            else:
                raise NotFound(f"{collection} record {record_id} not found")

            current = spec.model.from_dict(raw)
            if guard is not None:
                guard(current)
            if callable(patch):
                patch = patch(current)
            merged = {**raw, **patch, "id": _raw_id(raw), "updatedAt": now_iso()}
            updated = spec.model.from_dict(merged)
            rows[i] = {**merged, **updated.to_dict()}
            doc_file.save(doc)
        log.debug("Updated %s#%s fields=%s", collection, record_id, sorted(patch))
        return updated

    def remove(self, collection: str, record_id: Any, *, guard: Callable[[Any], None] | None = None) -> Any:
        spec = self._spec(collection)
        doc_file = self.document(collection)
        with doc_file.locked():
            doc = doc_file.load()
            rows = doc[spec.key]
            for i, raw in enumerate(rows):
                if same_id(_raw_id(raw), record_id):
                    break
            else:
                raise NotFound(f"{collection} record {record_id} not found")
            removed = spec.model.from_dict(raw)
            if guard is not None:
                guard(removed)
            del rows[i]
            doc_file.save(doc)
        log.debug("Removed %s#%s", collection, record_id)
        return removed
