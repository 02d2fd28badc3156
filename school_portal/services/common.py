"""Helpers shared by the service classes."""

from datetime import datetime
from typing import Any, Dict

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from ..errors import Conflict, NotFound
from ..models import utcnow
from ..utils.dates import to_utc


def get_or_404(repo, row_id: str, message: str):
    row = repo.get(row_id)
    if row is None:
        raise NotFound(message)
    return row


def normalize(data: Dict[str, Any]) -> Dict[str, Any]:
    """Convert datetimes to aware UTC."""
    return {k: to_utc(v) if isinstance(v, datetime) else v for k, v in data.items()}


def drop_none(data: Dict[str, Any], *keys: str) -> Dict[str, Any]:
    """Remove `keys` whose value is None so model defaults apply."""
    for key in keys:
        if key in data and data[key] is None:
            del data[key]
    return data


def apply_changes(row, changes: Dict[str, Any]):
    for key, value in normalize(changes).items():
        setattr(row, key, value)
    row.updated_at = utcnow()
    return row


def commit_or_conflict(session: Session, message: str) -> None:
    """Commit, mapping a unique-constraint violation to 409."""
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise Conflict(message)
