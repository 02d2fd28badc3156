from fastapi import APIRouter, Depends
from sqlmodel import Session

from ..auth import TokenUser, admin_only
from ..database import get_session
from ..errors import invalid_payload
from ..schemas import SeoChatIn, UrlIn
from ..services.seo import SeoCoachService
from ..services.validator import ValidatorService

router = APIRouter(prefix="/validator", tags=["validator"], dependencies=[Depends(admin_only)])
seo = APIRouter(prefix="/seo", tags=["seo"], dependencies=[Depends(admin_only)])
routers = [router, seo]


@router.post('/check')
@invalid_payload('Invalid URL')
def check_domain(payload: UrlIn, user: TokenUser = Depends(admin_only), db: Session = Depends(get_session)):
    return ValidatorService(db).check(payload.url, created_by_id=user.sub)


@router.post('/ai-check')
@invalid_payload('Invalid URL')
def ai_check_domain(payload: UrlIn, db: Session = Depends(get_session)):
    return ValidatorService(db).ai_check(payload.url)


@router.get('/history')
def validator_history(db: Session = Depends(get_session)):
    return ValidatorService(db).history()


@seo.post('/chat')
@invalid_payload('Payload tidak valid')
def seo_chat(payload: SeoChatIn, db: Session = Depends(get_session)):
    return SeoCoachService(db).chat(payload)
