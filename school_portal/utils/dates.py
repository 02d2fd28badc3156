"""Datetime helpers shared by services and serializers.

Datetimes are written to the database as aware UTC values. Depending on
the driver a value may come back naive, so anything read from a row goes
through `to_utc` before it is compared or rendered; a naive value is
taken to already be UTC.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional, Union


def to_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_datetime(value: Union[str, datetime, None]) -> Optional[datetime]:
    """Parse an ISO-8601 string (or pass through a datetime).

    Returns `None` for empty input and raises `ValueError` when the value
    cannot be parsed. Offset-less strings are read as UTC.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return to_utc(value)
    raw = str(value).strip()
    if not raw:
        return None
    if raw.endswith(("Z", "z")):
        raw = raw[:-1] + "+00:00"
    return to_utc(datetime.fromisoformat(raw))


def iso(value: Optional[datetime]) -> Optional[str]:
    """Render a stored datetime as `YYYY-MM-DDTHH:MM:SS.mmmZ`."""
    if value is None:
        return None
    return to_utc(value).replace(tzinfo=None).isoformat(timespec="milliseconds") + "Z"
