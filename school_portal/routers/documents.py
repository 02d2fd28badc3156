"""Document registry routes.

Static paths (`/verify`, `/share/...`) are declared before `/{document_id}`.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Request, Response, UploadFile
from sqlmodel import Session

from ..auth import TokenUser, academic, admin_only, optional_user, staff
from ..database import get_session
from ..errors import invalid_payload
from ..schemas import EMAIL_PATTERN, DocumentStatusIn, VerifyIn
from ..services.documents import DocumentService, content_disposition
from ..utils.rate_limit import client_ip, rate_limited

router = APIRouter(prefix="/documents", tags=["documents"])
routers = [router]


def _attachment(body: bytes, document) -> Response:
    return Response(
        content=body,
        media_type=document.mime_type,
        headers={"Content-Disposition": content_disposition(document.original_file_name)},
    )


@router.post('/verify', dependencies=[Depends(rate_limited("verify"))])
@invalid_payload('Invalid verification payload')
def verify(
    payload: VerifyIn,
    user: Optional[TokenUser] = Depends(optional_user),
    db: Session = Depends(get_session),
):
    return DocumentService(db).verify(payload, user)


@router.post('/verify/upload', dependencies=[Depends(rate_limited("verify"))])
@invalid_payload('Data verifikator tidak valid')
def verify_upload(
    file: Optional[UploadFile] = File(None),
    code: Optional[str] = Form(None, min_length=4),
    verifier_name: Optional[str] = Form(None, alias="verifierName"),
    verifier_email: Optional[str] = Form(None, alias="verifierEmail", pattern=EMAIL_PATTERN),
    verifier_role: Optional[str] = Form(None, alias="verifierRole"),
    user: Optional[TokenUser] = Depends(optional_user),
    db: Session = Depends(get_session),
):
    form = {
        "code": code.strip() if code else None,
        "verifier_name": verifier_name,
        "verifier_email": verifier_email,
        "verifier_role": verifier_role,
    }
    return DocumentService(db).verify_upload(file, form, user)


@router.get('/share/{token}')
def shared_document(token: str, db: Session = Depends(get_session)):
    return DocumentService(db).shared(token)


@router.get('/share/{token}/download')
def download_shared_document(token: str, request: Request, db: Session = Depends(get_session)):
    body, document = DocumentService(db).shared_download(token, client_ip(request))
    return _attachment(body, document)


@router.get('')
def list_documents(user: TokenUser = Depends(academic), db: Session = Depends(get_session)):
    return DocumentService(db).list(user)


@router.post('', status_code=201)
@invalid_payload('Invalid document payload')
def create_document(
    file: Optional[UploadFile] = File(None),
    title: Optional[str] = Form(None, min_length=3),
    description: Optional[str] = Form(None, min_length=5),
    issued_for: Optional[str] = Form(None, alias="issuedFor", min_length=3),
    issued_at: Optional[str] = Form(None, alias="issuedAt"),
    metadata: Optional[str] = Form(None),
    status: Optional[str] = Form(None),
    audience_user_ids: Optional[List[str]] = Form(None, alias="audienceUserIds"),
    audience_user_ids_bracket: Optional[List[str]] = Form(None, alias="audienceUserIds[]"),
    audience_class_ids: Optional[List[str]] = Form(None, alias="audienceClassIds"),
    audience_class_ids_bracket: Optional[List[str]] = Form(None, alias="audienceClassIds[]"),
    generate_share_link: Optional[str] = Form(None, alias="generateShareLink"),
    share_link_expires_at: Optional[str] = Form(None, alias="shareLinkExpiresAt"),
    share_link_max_downloads: Optional[str] = Form(None, alias="shareLinkMaxDownloads"),
    user: TokenUser = Depends(staff),
    db: Session = Depends(get_session),
):
    form = {
        "title": title,
        "description": description,
        "issued_for": issued_for,
        "issued_at": issued_at,
        "metadata": metadata,
        "status": status,
        "audience_user_ids": audience_user_ids or audience_user_ids_bracket,
        "audience_class_ids": audience_class_ids or audience_class_ids_bracket,
        "generate_share_link": generate_share_link,
        "share_link_expires_at": share_link_expires_at,
        "share_link_max_downloads": share_link_max_downloads,
    }
    return DocumentService(db).create(user, file, form)


@router.get('/{document_id}')
def get_document(document_id: str, user: TokenUser = Depends(academic), db: Session = Depends(get_session)):
    return DocumentService(db).get(document_id, user)


@router.get('/{document_id}/download')
def download_document(
    document_id: str,
    request: Request,
    user: TokenUser = Depends(academic),
    db: Session = Depends(get_session),
):
    body, document = DocumentService(db).download(document_id, user, client_ip(request))
    return _attachment(body, document)


@router.get('/{document_id}/logs', dependencies=[Depends(admin_only)])
def document_logs(document_id: str, db: Session = Depends(get_session)):
    return DocumentService(db).logs(document_id)


@router.patch('/{document_id}/status', dependencies=[Depends(admin_only)])
@invalid_payload('Invalid status payload')
def update_document_status(document_id: str, payload: DocumentStatusIn, db: Session = Depends(get_session)):
    return DocumentService(db).update_status(document_id, payload)


@router.delete('/{document_id}', status_code=204)
def delete_document(document_id: str, user: TokenUser = Depends(staff), db: Session = Depends(get_session)):
    DocumentService(db).delete(document_id, user)
    return Response(status_code=204)
