"""Admin-facing view of the runtime settings store."""

from ..schemas import SettingsIn
from ..utils.runtime_settings import runtime_settings


class SettingsService:
    def __init__(self, store=None):
        self.store = store or runtime_settings

    def get(self) -> dict:
        return self.store.get().to_json()

    def update(self, payload: SettingsIn) -> dict:
        # only fields the client sent; absent keys keep their current value
        return self.store.update(payload.changes()).to_json()
