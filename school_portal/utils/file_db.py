"""JSON-file collection store with a TTL read cache.

Each collection lives in `<data_dir>/<collection>.json` as a JSON array of
objects carrying an `id`. Every write rewrites the whole array. Reads are
served from memory until the cached copy is older than `ttl_seconds`;
callers always get deep copies so they can mutate results freely.
"""

from __future__ import annotations

import copy
import json
import logging
import re
import secrets
import string
import threading
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from ..config import settings

_LOGGER = logging.getLogger("school_portal.file_db")
_COLLECTION_RE = re.compile(r"^[a-z0-9][a-z0-9-]*$")
_ID_ALPHABET = string.ascii_letters + string.digits


class FileDB:
    def __init__(self, data_dir: Path, ttl_seconds: float = 30.0):
        self.data_dir = Path(data_dir)
        self.ttl_seconds = ttl_seconds
        self._cache: dict[str, tuple[float, list]] = {}
        self._lock = threading.RLock()

    def _path(self, collection: str) -> Path:
        if not _COLLECTION_RE.match(collection or ""):
            raise ValueError(f"invalid collection name: {collection!r}")
        return self.data_dir / f"{collection}.json"

    def _ensure_file(self, collection: str) -> Path:
        path = self._path(collection)
        if not path.exists():
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text("[]", encoding="utf-8")
        return path

    def read_collection(self, collection: str) -> list[dict]:
        with self._lock:
            cached = self._cache.get(collection)
            if cached and time.monotonic() - cached[0] < self.ttl_seconds:
                return copy.deepcopy(cached[1])
            path = self._ensure_file(collection)
            data = json.loads(path.read_text(encoding="utf-8") or "[]")
            if not isinstance(data, list):
                raise ValueError(f"collection {collection} is not a JSON array")
            self._cache[collection] = (time.monotonic(), data)
            return copy.deepcopy(data)

    def write_collection(self, collection: str, data: list[dict]) -> None:
        with self._lock:
            path = self._ensure_file(collection)
            snapshot = copy.deepcopy(list(data))
            path.write_text(json.dumps(snapshot, ensure_ascii=False, indent=2), encoding="utf-8")
            self._cache[collection] = (time.monotonic(), snapshot)
        _LOGGER.debug("file_db write %s (%d items)", collection, len(snapshot))

    def find_item(self, collection: str, item_id: str) -> Optional[dict]:
        for item in self.read_collection(collection):
            if item.get("id") == item_id:
                return item
        return None

    def upsert_item(self, collection: str, item: dict) -> dict:
        with self._lock:
            data = self.read_collection(collection)
            for idx, existing in enumerate(data):
                if existing.get("id") == item["id"]:
                    data[idx] = item
                    break
            else:
                data.append(item)
            self.write_collection(collection, data)
        return copy.deepcopy(item)

    def remove_item(self, collection: str, item_id: str) -> bool:
        """Remove `item_id`; returns False when nothing matched."""
        with self._lock:
            data = self.read_collection(collection)
            kept = [item for item in data if item.get("id") != item_id]
            if len(kept) == len(data):
                return False
            self.write_collection(collection, kept)
        return True

    def invalidate(self, collection: Optional[str] = None) -> None:
        with self._lock:
            if collection is None:
                self._cache.clear()
            else:
                self._cache.pop(collection, None)


def generate_id(prefix: str) -> str:
    return f"{prefix}-" + "".join(secrets.choice(_ID_ALPHABET) for _ in range(10))


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def list_items(collection: str, db: Optional[FileDB] = None) -> list[dict]:
    return (db or file_db).read_collection(collection)


def create_item(collection: str, data: dict, id_prefix: str, db: Optional[FileDB] = None) -> dict:
    """Insert `data`, filling `id`, `createdAt` and `updatedAt`."""
    now = _now_iso()
    entity = dict(data)
    entity["id"] = data.get("id") or generate_id(id_prefix)
    entity["createdAt"] = data.get("createdAt") or now
    entity["updatedAt"] = now
    return (db or file_db).upsert_item(collection, entity)


def update_item(collection: str, item_id: str, changes: dict, db: Optional[FileDB] = None) -> dict:
    """Merge `changes` into an existing item.

    `id` and `createdAt` are preserved and `updatedAt` is bumped. Raises
    `KeyError` when the item does not exist.
    """
    store = db or file_db
    existing = store.find_item(collection, item_id)
    if existing is None:
        raise KeyError(f"Item with id {item_id} not found in collection {collection}")
    entity = {**existing, **changes}
    entity["id"] = existing["id"]
    entity["createdAt"] = existing.get("createdAt")
    entity["updatedAt"] = _now_iso()
    return store.upsert_item(collection, entity)


def delete_item(collection: str, item_id: str, db: Optional[FileDB] = None) -> bool:
    return (db or file_db).remove_item(collection, item_id)


def replace_collection(collection: str, data: list[dict], db: Optional[FileDB] = None) -> None:
    (db or file_db).write_collection(collection, data)


file_db = FileDB(settings.DATA_DIR, ttl_seconds=settings.FILE_DB_CACHE_TTL_SECONDS)
