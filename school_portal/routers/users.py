from fastapi import APIRouter, Depends, Response
from sqlmodel import Session

from ..auth import admin_only
from ..database import get_session
from ..errors import invalid_payload
from ..schemas import UserIn, UserUpdate
from ..services.users import UserService

router = APIRouter(prefix="/users", tags=["users"], dependencies=[Depends(admin_only)])
routers = [router]


@router.get('')
def list_users(db: Session = Depends(get_session)):
    return UserService(db).list()


@router.get('/{user_id}')
def get_user(user_id: str, db: Session = Depends(get_session)):
    return UserService(db).get(user_id)


@router.post('', status_code=201)
@invalid_payload('Invalid user payload')
def create_user(payload: UserIn, db: Session = Depends(get_session)):
    return UserService(db).create(payload)


@router.put('/{user_id}')
@invalid_payload('Invalid user update payload')
def update_user(user_id: str, payload: UserUpdate, db: Session = Depends(get_session)):
    return UserService(db).update(user_id, payload)


@router.delete('/{user_id}', status_code=204)
def delete_user(user_id: str, db: Session = Depends(get_session)):
    UserService(db).delete(user_id)
    return Response(status_code=204)
