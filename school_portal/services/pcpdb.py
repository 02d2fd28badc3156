"""PCPDB (new student admission) submissions and their review."""

import logging
from typing import List

from sqlmodel import Session

from .. import models, repositories, schemas
from ..auth import TokenUser
from ..models import utcnow
from ..serializers import row_to_dict
from .common import apply_changes, drop_none, get_or_404, normalize

_LOGGER = logging.getLogger("school_portal.pcpdb")


class PCPDBService:
    def __init__(self, session: Session):
        self.session = session
        self.repo = repositories.Repository(session, models.PCPDBEntry)

    def list(self) -> List[dict]:
        rows = self.repo.list(models.PCPDBEntry.submitted_at.desc())
        return [row_to_dict(r) for r in rows]

    def submit(self, payload: schemas.PCPDBIn) -> dict:
        data = payload.model_dump()
        data["email"] = data["email"].lower()
        row = models.PCPDBEntry(**data, status="pending", submitted_at=utcnow())
        row = self.repo.save(row)
        _LOGGER.info("pcpdb submission id=%s", row.id)
        return row_to_dict(row)

    def update(self, entry_id: str, payload: schemas.PCPDBUpdate, reviewer: TokenUser) -> dict:
        """Apply admin edits; a status change records (or clears) the review."""
        row = get_or_404(self.repo, entry_id, "PCPDB entry not found")
        changes = normalize(payload.changes())
        drop_none(changes, "applicant_name", "email", "phone", "status", "submitted_at")
        status = changes.get("status")
        if status == "pending":
            changes["reviewed_by_id"] = None
            changes["reviewed_at"] = None
        elif status is not None:
            changes["reviewed_by_id"] = reviewer.sub
            changes["reviewed_at"] = changes.get("reviewed_at") or utcnow()
        apply_changes(row, changes)
        return row_to_dict(self.repo.save(row))

    def delete(self, entry_id: str) -> None:
        self.repo.delete(get_or_404(self.repo, entry_id, "PCPDB entry not found"))
