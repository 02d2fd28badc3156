"""School calendar events."""

from datetime import datetime
from typing import List, Optional

from sqlmodel import Session

from .. import models, repositories, schemas
from ..auth import TokenUser
from ..errors import BadRequest
from ..serializers import serialize_event
from ..utils.dates import to_utc
from .common import apply_changes, get_or_404, normalize

END_BEFORE_START = "End time must be after start time"


class EventService:
    def __init__(self, session: Session):
        self.session = session
        self.repo = repositories.Repository(session, models.SchoolEvent)
        self.users = repositories.UserRepository(session)
        self.classes = repositories.ClassRepository(session)

    def _serialize_many(self, rows: List[models.SchoolEvent]) -> List[dict]:
        classes = self.classes.by_ids(r.class_id for r in rows)
        users = self.users.by_ids(r.created_by_id for r in rows)
        return [serialize_event(r, classes.get(r.class_id), users.get(r.created_by_id)) for r in rows]

    def _check_class(self, class_id: Optional[str]) -> None:
        if class_id and self.classes.get(class_id) is None:
            raise BadRequest("Kelas tidak ditemukan")

    def list(
        self,
        class_id: Optional[str] = None,
        visibility: Optional[str] = None,
        start_from: Optional[datetime] = None,
        start_to: Optional[datetime] = None,
    ) -> List[dict]:
        rows = self.repo.list(models.SchoolEvent.start_at, class_id=class_id, visibility=visibility)
        if start_from is not None:
            rows = [r for r in rows if to_utc(r.start_at) >= to_utc(start_from)]
        if start_to is not None:
            rows = [r for r in rows if to_utc(r.start_at) <= to_utc(start_to)]
        return self._serialize_many(rows)

    def create(self, payload: schemas.EventIn, user: TokenUser) -> dict:
        data = normalize(payload.model_dump())
        if data.get("end_at") and data["end_at"] <= data["start_at"]:
            raise BadRequest(END_BEFORE_START)
        self._check_class(data.get("class_id"))
        row = self.repo.save(models.SchoolEvent(**data, created_by_id=user.sub))
        return self._serialize_many([row])[0]

    def update(self, event_id: str, payload: schemas.EventUpdate) -> dict:
        row = get_or_404(self.repo, event_id, "Event not found")
        changes = normalize(payload.changes())
        for required in ("title", "start_at", "description", "visibility"):
            if required in changes and changes[required] is None:
                del changes[required]
        start = changes.get("start_at", row.start_at)
        end = changes.get("end_at", row.end_at)
        if end is not None and to_utc(end) <= to_utc(start):
            raise BadRequest(END_BEFORE_START)
        self._check_class(changes.get("class_id"))
        apply_changes(row, changes)
        return self._serialize_many([self.repo.save(row)])[0]

    def delete(self, event_id: str) -> None:
        self.repo.delete(get_or_404(self.repo, event_id, "Event not found"))
