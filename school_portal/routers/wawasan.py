"""Wawasan sections and their ordered sub-resources."""

from fastapi import APIRouter, Depends, Response
from sqlmodel import Session

from .. import models
from ..auth import admin_only
from ..database import get_session
from ..errors import invalid_payload
from ..schemas import HeritageValueIn, StructureEntryIn, TimelineEntryIn, WawasanSectionIn
from ..services.wawasan import STRUCTURE_SECTION, TIMELINE_SECTION, WawasanService

router = APIRouter(prefix="/wawasan", tags=["wawasan"])
routers = [router]


@router.get('')
def list_sections(db: Session = Depends(get_session)):
    return WawasanService(db).list()


# sejarah timeline

@router.get('/sejarah/timeline')
def list_timeline(db: Session = Depends(get_session)):
    return WawasanService(db).list_entries(models.WawasanTimelineEntry, TIMELINE_SECTION)


@router.post('/sejarah/timeline', status_code=201, dependencies=[Depends(admin_only)])
@invalid_payload('Invalid timeline payload')
def create_timeline_entry(payload: TimelineEntryIn, db: Session = Depends(get_session)):
    return WawasanService(db).create_entry(models.WawasanTimelineEntry, TIMELINE_SECTION, payload.model_dump())


@router.put('/sejarah/timeline/{entry_id}', dependencies=[Depends(admin_only)])
@invalid_payload('Invalid timeline payload')
def update_timeline_entry(entry_id: str, payload: TimelineEntryIn, db: Session = Depends(get_session)):
    return WawasanService(db).update_entry(
        models.WawasanTimelineEntry, TIMELINE_SECTION, entry_id, payload.model_dump()
    )


@router.delete('/sejarah/timeline/{entry_id}', status_code=204, dependencies=[Depends(admin_only)])
def delete_timeline_entry(entry_id: str, db: Session = Depends(get_session)):
    WawasanService(db).delete_entry(models.WawasanTimelineEntry, TIMELINE_SECTION, entry_id)
    return Response(status_code=204)


# sejarah heritage values

@router.get('/sejarah/heritage')
def list_heritage(db: Session = Depends(get_session)):
    return WawasanService(db).list_entries(models.WawasanHeritageValue, TIMELINE_SECTION)


@router.post('/sejarah/heritage', status_code=201, dependencies=[Depends(admin_only)])
@invalid_payload('Invalid heritage payload')
def create_heritage_value(payload: HeritageValueIn, db: Session = Depends(get_session)):
    return WawasanService(db).create_entry(models.WawasanHeritageValue, TIMELINE_SECTION, payload.model_dump())


@router.put('/sejarah/heritage/{entry_id}', dependencies=[Depends(admin_only)])
@invalid_payload('Invalid heritage payload')
def update_heritage_value(entry_id: str, payload: HeritageValueIn, db: Session = Depends(get_session)):
    return WawasanService(db).update_entry(
        models.WawasanHeritageValue, TIMELINE_SECTION, entry_id, payload.model_dump()
    )


@router.delete('/sejarah/heritage/{entry_id}', status_code=204, dependencies=[Depends(admin_only)])
def delete_heritage_value(entry_id: str, db: Session = Depends(get_session)):
    WawasanService(db).delete_entry(models.WawasanHeritageValue, TIMELINE_SECTION, entry_id)
    return Response(status_code=204)


# struktur entries

@router.get('/struktur/entries')
def list_structure(db: Session = Depends(get_session)):
    return WawasanService(db).list_entries(models.WawasanStructureEntry, STRUCTURE_SECTION)


@router.post('/struktur/entries', status_code=201, dependencies=[Depends(admin_only)])
@invalid_payload('Invalid structure payload')
def create_structure_entry(payload: StructureEntryIn, db: Session = Depends(get_session)):
    return WawasanService(db).create_entry(models.WawasanStructureEntry, STRUCTURE_SECTION, payload.model_dump())


@router.put('/struktur/entries/{entry_id}', dependencies=[Depends(admin_only)])
@invalid_payload('Invalid structure payload')
def update_structure_entry(entry_id: str, payload: StructureEntryIn, db: Session = Depends(get_session)):
    return WawasanService(db).update_entry(
        models.WawasanStructureEntry, STRUCTURE_SECTION, entry_id, payload.model_dump()
    )


@router.delete('/struktur/entries/{entry_id}', status_code=204, dependencies=[Depends(admin_only)])
def delete_structure_entry(entry_id: str, db: Session = Depends(get_session)):
    WawasanService(db).delete_entry(models.WawasanStructureEntry, STRUCTURE_SECTION, entry_id)
    return Response(status_code=204)


# sections

@router.get('/{key}')
def get_section(key: str, db: Session = Depends(get_session)):
    return WawasanService(db).get(key)


@router.put('/{key}', dependencies=[Depends(admin_only)])
@invalid_payload('Invalid wawasan payload')
def upsert_section(key: str, payload: WawasanSectionIn, db: Session = Depends(get_session)):
    return WawasanService(db).upsert(key, payload)
