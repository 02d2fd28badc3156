"""HTTP routers, one module per resource, mounted under `/api`."""

from fastapi import APIRouter

from . import (
    academics,
    auth,
    content,
    documents,
    events,
    notifications,
    pcpdb,
    settings,
    uploads,
    users,
    validator,
    virtual_tour,
    wawasan,
)

api_router = APIRouter(prefix="/api")
for _module in (
    auth, settings, content, academics, notifications, users, pcpdb,
    events, wawasan, virtual_tour, uploads, documents, validator,
):
    for _router in _module.routers:
        api_router.include_router(_router)
