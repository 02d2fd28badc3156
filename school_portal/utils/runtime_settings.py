"""Runtime-mutable settings persisted to `DATA_DIR/settings.json`.

Admins edit these values from the dashboard. The store keeps the current
values in memory, writes them back to disk, mirrors them into
`os.environ` and notifies subscribers (telemetry reconfiguration, for
example) after every update.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from pathlib import Path
from typing import Any, Callable, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from ..config import settings

_LOGGER = logging.getLogger("school_portal.settings")

_SECRET_FIELDS = ("sentry_dsn", "virus_total_api_key", "google_safe_browsing_key", "gemini_api_key")
_ENV_KEYS = {
    "sentry_dsn": "SENTRY_DSN",
    "virus_total_api_key": "VIRUSTOTAL_API_KEY",
    "google_safe_browsing_key": "GOOGLE_SAFEBROWSING_KEY",
    "gemini_api_key": "GOOGLE_GEMINI_API_KEY",
}


class RuntimeSettings(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    sentry_dsn: Optional[str] = None
    virus_total_api_key: Optional[str] = None
    google_safe_browsing_key: Optional[str] = None
    gemini_api_key: Optional[str] = None
    allowed_origins: list[str] = []

    def to_json(self) -> dict:
        return self.model_dump(by_alias=True)


Listener = Callable[[RuntimeSettings], Any]


def default_settings() -> RuntimeSettings:
    return RuntimeSettings(
        sentry_dsn=settings.SENTRY_DSN,
        virus_total_api_key=settings.VIRUSTOTAL_API_KEY,
        google_safe_browsing_key=settings.GOOGLE_SAFEBROWSING_KEY,
        gemini_api_key=settings.GOOGLE_GEMINI_API_KEY,
        allowed_origins=list(settings.ALLOW_ORIGINS),
    )


def sanitize_origins(value) -> list[str]:
    """Split, trim and de-duplicate origins, keeping first-seen order."""
    if not value:
        return []
    if isinstance(value, str):
        parts = value.replace("\r\n", "\n").replace(",", "\n").split("\n")
    else:
        parts = [str(v) for v in value]
    out: list[str] = []
    for part in parts:
        part = part.strip()
        if part and part not in out:
            out.append(part)
    return out


def _lookup(raw: dict, field: str):
    """Return (present, value) for a snake_case or camelCase key."""
    for key in (to_camel(field), field):
        if key in raw:
            return True, raw[key]
    return False, None


def sanitize_settings(raw: dict, base: RuntimeSettings) -> RuntimeSettings:
    """Merge a partial `raw` payload over `base`.

    Absent keys keep the base value, empty or null values clear the field,
    and an empty origin list keeps the base origins.
    """
    values: dict[str, Any] = {}
    for field in _SECRET_FIELDS:
        present, value = _lookup(raw, field)
        if not present:
            values[field] = getattr(base, field)
        elif value is None or not str(value).strip():
            values[field] = None
        else:
            values[field] = str(value).strip()
    _, origins = _lookup(raw, "allowed_origins")
    cleaned = sanitize_origins(origins)
    values["allowed_origins"] = cleaned or list(base.allowed_origins)
    return RuntimeSettings(**values)


class RuntimeSettingsStore:
    def __init__(self, path: Path):
        self.path = Path(path)
        self._cached: Optional[RuntimeSettings] = None
        self._listeners: list[Listener] = []
        self._lock = threading.RLock()

    def _ensure_file(self) -> None:
        if not self.path.exists():
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(default_settings().to_json(), indent=2), encoding="utf-8")

    def load(self) -> RuntimeSettings:
        """Load settings from disk once; later calls return the cache."""
        with self._lock:
            if self._cached is not None:
                return self._cached
            try:
                self._ensure_file()
                raw = json.loads(self.path.read_text(encoding="utf-8"))
                if not isinstance(raw, dict):
                    raise ValueError("settings file must contain a JSON object")
                self._cached = sanitize_settings(raw, default_settings())
            except Exception:
                _LOGGER.exception("Failed to load runtime settings. Falling back to defaults.")
                self._cached = default_settings()
            apply_process_env(self._cached)
            return self._cached

    def get(self) -> RuntimeSettings:
        if self._cached is None:
            raise RuntimeError("Runtime settings not loaded yet. Call load() before get().")
        return self._cached

    def update(self, changes: dict) -> RuntimeSettings:
        with self._lock:
            current = self._cached or self.load()
            updated = sanitize_settings(changes, current)
            self._cached = updated
            apply_process_env(updated)
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(updated.to_json(), indent=2), encoding="utf-8")
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(updated)
            except Exception:
                _LOGGER.exception("runtime settings listener failed")
        return updated

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register `listener`; the returned callable unsubscribes it."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def reset(self) -> None:
        """Forget the cached values (the file is left untouched)."""
        with self._lock:
            self._cached = None


def apply_process_env(current: RuntimeSettings) -> None:
    for field, env_key in _ENV_KEYS.items():
        os.environ[env_key] = getattr(current, field) or ""
    os.environ["ALLOW_ORIGINS"] = ",".join(current.allowed_origins)


runtime_settings = RuntimeSettingsStore(settings.DATA_DIR / "settings.json")
