from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlmodel import Session

from ..auth import admin_only, staff
from ..database import get_session
from ..errors import invalid_payload
from ..schemas import NotificationIn, NotificationMarkIn, NotificationUpdate
from ..services.notifications import NotificationService

router = APIRouter(prefix="/notifications", tags=["notifications"])
routers = [router]


@router.get('', dependencies=[Depends(staff)])
def list_notifications(
    user_id: Optional[str] = Query(None, alias="userId"),
    target_role: Optional[str] = Query(None, alias="targetRole"),
    type: Optional[str] = None,
    read: Optional[bool] = None,
    db: Session = Depends(get_session),
):
    return NotificationService(db).list(user_id=user_id, target_role=target_role, type=type, read=read)


@router.post('', status_code=201, dependencies=[Depends(admin_only)])
@invalid_payload('Invalid notification payload')
def create_notification(payload: NotificationIn, db: Session = Depends(get_session)):
    return NotificationService(db).create(payload)


@router.put('/{notification_id}', dependencies=[Depends(admin_only)])
@invalid_payload('Invalid notification update payload')
def update_notification(notification_id: str, payload: NotificationUpdate, db: Session = Depends(get_session)):
    return NotificationService(db).update(notification_id, payload)


@router.post('/{notification_id}/mark', dependencies=[Depends(staff)])
@invalid_payload('Invalid mark payload')
def mark_notification(
    notification_id: str,
    payload: Optional[NotificationMarkIn] = None,
    db: Session = Depends(get_session),
):
    return NotificationService(db).mark(notification_id, payload.read if payload else True)


@router.delete('/{notification_id}', status_code=204, dependencies=[Depends(admin_only)])
def delete_notification(notification_id: str, db: Session = Depends(get_session)):
    NotificationService(db).delete(notification_id)
    return Response(status_code=204)
