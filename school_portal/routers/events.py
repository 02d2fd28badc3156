from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlmodel import Session

from ..auth import TokenUser, admin_only, staff
from ..database import get_session
from ..errors import BadRequest, invalid_payload
from ..schemas import EventIn, EventUpdate
from ..services.events import EventService
from ..utils.dates import parse_datetime

router = APIRouter(prefix="/events", tags=["events"])
routers = [router]


def _query_datetime(value: Optional[str], name: str):
    try:
        return parse_datetime(value)
    except ValueError:
        raise BadRequest(f"Invalid {name} value")


@router.get('', dependencies=[Depends(staff)])
def list_events(
    class_id: Optional[str] = Query(None, alias="classId"),
    visibility: Optional[str] = None,
    start_from: Optional[str] = Query(None, alias="from"),
    start_to: Optional[str] = Query(None, alias="to"),
    db: Session = Depends(get_session),
):
    return EventService(db).list(
        class_id=class_id,
        visibility=visibility,
        start_from=_query_datetime(start_from, "from"),
        start_to=_query_datetime(start_to, "to"),
    )


@router.post('', status_code=201)
@invalid_payload('Invalid event payload')
def create_event(payload: EventIn, user: TokenUser = Depends(staff), db: Session = Depends(get_session)):
    return EventService(db).create(payload, user)


@router.put('/{event_id}', dependencies=[Depends(staff)])
@invalid_payload('Invalid event update payload')
def update_event(event_id: str, payload: EventUpdate, db: Session = Depends(get_session)):
    return EventService(db).update(event_id, payload)


@router.delete('/{event_id}', status_code=204, dependencies=[Depends(admin_only)])
def delete_event(event_id: str, db: Session = Depends(get_session)):
    EventService(db).delete(event_id)
    return Response(status_code=204)
