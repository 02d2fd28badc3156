from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ..auth import admin_only
from ..errors import invalid_payload
from ..schemas import VirtualTourIn
from ..services.virtual_tour import VirtualTourService

router = APIRouter(prefix="/virtual-tour", tags=["virtual-tour"])
routers = [router]


@router.get('')
def get_virtual_tour():
    return {"virtualTour": VirtualTourService().get()}


@router.put('', dependencies=[Depends(admin_only)])
@invalid_payload('Invalid payload')
def save_virtual_tour(payload: VirtualTourIn):
    item, created = VirtualTourService().save(payload)
    return JSONResponse({"virtualTour": item}, status_code=201 if created else 200)
