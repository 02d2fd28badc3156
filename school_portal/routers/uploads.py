from fastapi import APIRouter, Depends, File, Response, UploadFile

from ..auth import admin_only
from ..services.assets import AssetService

router = APIRouter(prefix="/uploads", tags=["uploads"], dependencies=[Depends(admin_only)])
routers = [router]


@router.post('/logo', status_code=201)
def upload_logo(file: UploadFile = File(...)):
    return AssetService().upload_logo(file)


@router.get('/assets')
def list_assets():
    return {"assets": AssetService().list()}


@router.post('/assets', status_code=201)
def upload_asset(file: UploadFile = File(...)):
    return {"asset": AssetService().upload(file)}


@router.delete('/assets/{asset_id}', status_code=204)
def delete_asset(asset_id: str):
    AssetService().delete(asset_id)
    return Response(status_code=204)
