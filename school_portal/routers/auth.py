from fastapi import APIRouter, Depends
from sqlmodel import Session

from ..auth import TokenUser, any_user
from ..database import get_session
from ..errors import invalid_payload
from ..schemas import LoginIn
from ..services.auth import AuthService
from ..utils.rate_limit import rate_limited

router = APIRouter(prefix="/auth", tags=["auth"])
routers = [router]


@router.post('/login', dependencies=[Depends(rate_limited("login"))])
@invalid_payload('Invalid credentials payload')
def login(payload: LoginIn, db: Session = Depends(get_session)):
    return AuthService(db).login(payload.email, payload.password)


@router.get('/me')
def me(user: TokenUser = Depends(any_user), db: Session = Depends(get_session)):
    return AuthService(db).me(user.sub)
