from fastapi import APIRouter, Depends

from ..auth import admin_only
from ..errors import invalid_payload
from ..schemas import SettingsIn
from ..services.settings import SettingsService

router = APIRouter(prefix="/settings", tags=["settings"], dependencies=[Depends(admin_only)])
routers = [router]


@router.get('')
def get_settings():
    return SettingsService().get()


@router.put('')
@invalid_payload('Payload pengaturan tidak valid')
def update_settings(payload: SettingsIn):
    return SettingsService().update(payload)
