"""Dashboard notifications."""

import json
from typing import List, Optional

from sqlmodel import Session

from .. import models, repositories, schemas
from ..models import utcnow
from ..serializers import serialize_notification
from .common import apply_changes, get_or_404


def encode_metadata(value) -> Optional[str]:
    """Store objects as JSON; a non-JSON string becomes `{"note": s}`."""
    if value is None:
        return None
    if isinstance(value, str):
        try:
            return json.dumps(json.loads(value))
        except ValueError:
            return json.dumps({"note": value})
    return json.dumps(value)


class NotificationService:
    def __init__(self, session: Session):
        self.session = session
        self.repo = repositories.Repository(session, models.Notification)
        self.users = repositories.UserRepository(session)

    def _serialize_many(self, rows: List[models.Notification]) -> List[dict]:
        users = self.users.by_ids(r.user_id for r in rows)
        return [serialize_notification(r, users.get(r.user_id)) for r in rows]

    def _serialize(self, row: models.Notification) -> dict:
        return self._serialize_many([row])[0]

    def list(self, user_id=None, target_role=None, type=None, read: Optional[bool] = None) -> List[dict]:
        rows = self.repo.list(
            models.Notification.created_at.desc(),
            user_id=user_id,
            target_role=target_role,
            type=type,
        )
        if read is not None:
            rows = [r for r in rows if (r.read_at is not None) == read]
        return self._serialize_many(rows)

    def create(self, payload: schemas.NotificationIn) -> dict:
        data = payload.model_dump(exclude={"metadata"})
        row = models.Notification(**data, meta_json=encode_metadata(payload.metadata))
        return self._serialize(self.repo.save(row))

    def update(self, notification_id: str, payload: schemas.NotificationUpdate) -> dict:
        row = get_or_404(self.repo, notification_id, "Notification not found")
        changes = payload.changes()
        if "metadata" in changes:
            changes["meta_json"] = encode_metadata(changes.pop("metadata"))
        apply_changes(row, changes)
        return self._serialize(self.repo.save(row))

    def mark(self, notification_id: str, read: bool) -> dict:
        row = get_or_404(self.repo, notification_id, "Notification not found")
        row.read_at = utcnow() if read else None
        row.updated_at = utcnow()
        return self._serialize(self.repo.save(row))

    def delete(self, notification_id: str) -> None:
        self.repo.delete(get_or_404(self.repo, notification_id, "Notification not found"))
