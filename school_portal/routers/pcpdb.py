"""PCPDB (new student admission) intake."""

from fastapi import APIRouter, Depends, Response
from sqlmodel import Session

from ..auth import TokenUser, admin_only
from ..database import get_session
from ..errors import invalid_payload
from ..schemas import PCPDBIn, PCPDBUpdate
from ..services.pcpdb import PCPDBService
from ..utils.rate_limit import rate_limited

router = APIRouter(prefix="/pcpdb", tags=["pcpdb"])
routers = [router]


@router.get('', dependencies=[Depends(admin_only)])
def list_submissions(db: Session = Depends(get_session)):
    return PCPDBService(db).list()


@router.post('', status_code=201, dependencies=[Depends(rate_limited("pcpdb"))])
@invalid_payload('Invalid PCPDB submission')
def submit(payload: PCPDBIn, db: Session = Depends(get_session)):
    return PCPDBService(db).submit(payload)


@router.put('/{entry_id}')
@invalid_payload('Invalid PCPDB update payload')
def review(entry_id: str, payload: PCPDBUpdate, user: TokenUser = Depends(admin_only), db: Session = Depends(get_session)):
    return PCPDBService(db).update(entry_id, payload, user)


@router.delete('/{entry_id}', status_code=204, dependencies=[Depends(admin_only)])
def delete_submission(entry_id: str, db: Session = Depends(get_session)):
    PCPDBService(db).delete(entry_id)
    return Response(status_code=204)
