"""Verifiable document registry.

An issued PDF is identified by its sha256 `fileHash` and a 10-character
verification code. Every download is watermarked for the requester, so the
bytes that leave the server differ from the stored file; the hash of each
served copy is written to the verification log with `matched=True`, which
lets `/verify` recognise a watermarked copy as a variant of the original.

Access scope:
  * admin sees everything;
  * a teacher sees what they issued plus USER/CLASS audiences that reach
    them (class ids come from memberships and teaching assignments);
  * a student sees active documents whose audience reaches them.
"""

import hashlib
import json
import logging
import re
import secrets
import string
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from fastapi import UploadFile
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from .. import models, repositories, schemas
from ..auth import TokenUser
from ..config import settings
from ..errors import BadRequest, Conflict, Forbidden, Gone, NotFound, UnsupportedMedia
from ..models import utcnow
from ..serializers import (
    serialize_audience,
    serialize_document,
    serialize_shared_document,
    serialize_verification_log,
)
from ..utils.dates import iso, parse_datetime, to_utc
from ..utils.pdf import apply_watermark, inspect_pdf, watermark_lines
from ..utils.uploads import (
    looks_like_pdf,
    read_limited,
    remove_file_safe,
    resolve_public_path,
    save_bytes,
    validate_upload_filename,
)

_LOGGER = logging.getLogger("school_portal.documents")

CODE_ALPHABET = string.ascii_uppercase + string.digits
CODE_LENGTH = 10
SHARE_TOKEN_BYTES = 18  # 24 url-safe characters
DOCUMENT_SUBDIR = "documents"
TRUTHY = ("true", "1", "yes", "on")
_UNSAFE_DISPOSITION = re.compile(r'[\\/"\r\n]')

DUPLICATE_MESSAGE = "Dokumen dengan hash atau kode verifikasi serupa sudah ada"
NOT_FOUND_MESSAGE = "Dokumen tidak ditemukan"


def sha256_hex(payload: bytes) -> str:
    return hashlib.sha256(payload).hexdigest()


def content_disposition(filename: str) -> str:
    return f'attachment; filename="{_UNSAFE_DISPOSITION.sub("_", filename)}"'


def coerce_id_list(value: Any) -> List[str]:
    """Accept a list, a JSON-array string or a comma separated string.

    Blank entries are dropped and duplicates removed, keeping first-seen order.
    """
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        items: List[str] = []
        for item in value:
            items.extend(coerce_id_list(item) if isinstance(item, str) else [str(item).strip()])
        return list(dict.fromkeys(i for i in items if i))
    raw = str(value).strip()
    if not raw:
        return []
    if raw.startswith("[") and raw.endswith("]"):
        try:
            parsed = json.loads(raw)
        except ValueError:
            parsed = None
        if isinstance(parsed, list):
            return list(dict.fromkeys(str(i).strip() for i in parsed if str(i).strip()))
    return list(dict.fromkeys(part.strip() for part in raw.split(",") if part.strip()))


def coerce_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in TRUTHY
    return False


def coerce_positive_int(value: Any) -> Optional[int]:
    """Return a positive int, `None` when blank; raise ValueError otherwise."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    number = int(str(value).strip())
    if number <= 0:
        raise ValueError("not positive")
    return number


def encode_metadata(value: Any) -> Optional[str]:
    """JSON text for the metadata column; a non-JSON string becomes `{"note": ...}`."""
    if not value:
        return None
    if isinstance(value, str):
        try:
            return json.dumps(json.loads(value))
        except ValueError:
            return json.dumps({"note": value})
    return json.dumps(value)


def new_verification_code() -> str:
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))


class DocumentMatch:
    """Result of looking a document up by code and/or hash."""

    def __init__(self, document: models.DocumentRecord, match_type: str, variant_log=None):
        self.document = document
        self.match_type = match_type
        self.variant_log = variant_log

    @property
    def is_variant(self) -> bool:
        return self.match_type == "variant"


class DocumentService:
    def __init__(self, session: Session):
        self.session = session
        self.repo = repositories.DocumentRepository(session)
        self.users = repositories.UserRepository(session)
        self.classes = repositories.ClassRepository(session)
        self.memberships = repositories.MembershipRepository(session)
        self.assignments = repositories.AssignmentRepository(session)

    # access scope

    def class_ids_for(self, user: TokenUser) -> List[str]:
        class_ids = set(self.memberships.class_ids_for_user(user.sub))
        if user.role == "teacher":
            class_ids.update(self.assignments.class_ids_for_teacher(user.sub))
        return sorted(class_ids)

    def _scope(self, user: TokenUser) -> list:
        """WHERE conditions limiting documents to what `user` may see."""
        record = models.DocumentRecord
        if user.role == "admin":
            return []
        if user.role not in ("teacher", "student"):
            raise Forbidden("Unauthorized")
        visible = self.repo.visible_ids_for(user.sub, self.class_ids_for(user))
        if user.role == "teacher":
            return [(record.issuer_id == user.sub) | (record.id.in_(visible))]
        return [record.status == "active", record.id.in_(visible)]

    def _find_for(self, document_id: str, user: TokenUser) -> models.DocumentRecord:
        rows = self.repo.list_where(models.DocumentRecord.id == document_id, *self._scope(user))
        if not rows:
            raise NotFound("Document not found")
        return rows[0]

    # serialization

    def _issuers(self, rows: List[models.DocumentRecord]) -> Dict[str, models.User]:
        return self.users.by_ids(r.issuer_id for r in rows)

    def _audiences(self, document_id: str) -> List[dict]:
        rows = self.repo.audiences(document_id)
        users = self.users.by_ids(a.user_id for a in rows)
        classes = self.classes.by_ids(a.class_id for a in rows)
        return [serialize_audience(a, users.get(a.user_id), classes.get(a.class_id)) for a in rows]

    def _serialize(self, row: models.DocumentRecord, user: TokenUser, issuers=None) -> dict:
        issuers = issuers if issuers is not None else self._issuers([row])
        issuer = issuers.get(row.issuer_id)
        if user.role in ("admin", "teacher"):
            return serialize_document(row, issuer, self._audiences(row.id), self.repo.share_tokens(row.id))
        return serialize_document(row, issuer)

    def list(self, user: TokenUser) -> List[dict]:
        rows = self.repo.list_where(*self._scope(user))
        issuers = self._issuers(rows)
        return [self._serialize(r, user, issuers) for r in rows]

    def get(self, document_id: str, user: TokenUser) -> dict:
        return self._serialize(self._find_for(document_id, user), user)

    # issuing

    def _read_pdf(self, upload: Optional[UploadFile]) -> Tuple[str, bytes, int]:
        if upload is None or not upload.filename:
            raise BadRequest("File is required")
        filename = validate_upload_filename(upload.filename)
        payload = read_limited(upload, settings.MAX_DOCUMENT_BYTES)
        if not looks_like_pdf(payload, upload.content_type):
            raise UnsupportedMedia("Only PDF files are allowed")
        try:
            pages = inspect_pdf(payload)
        except ValueError:
            raise BadRequest("Berkas PDF tidak valid")
        return filename, payload, pages

    def _check_audience(self, user: TokenUser, user_ids: List[str], class_ids: List[str]) -> None:
        missing_users = self.users.missing_ids(user_ids)
        if missing_users:
            raise BadRequest("Beberapa pengguna tidak ditemukan", missingUserIds=missing_users)
        missing_classes = self.classes.missing_ids(class_ids)
        if missing_classes:
            raise BadRequest("Beberapa kelas tidak ditemukan", missingClassIds=missing_classes)
        if user.role == "teacher":
            allowed = set(self.class_ids_for(user))
            unauthorized = [c for c in class_ids if c not in allowed]
            if unauthorized:
                raise Forbidden(
                    "Anda tidak memiliki akses ke kelas yang dipilih", unauthorizedClassIds=unauthorized
                )

    def _unique_code(self) -> str:
        code = new_verification_code()
        while self.repo.code_exists(code):
            code = new_verification_code()
        return code

    def create(self, user: TokenUser, upload: Optional[UploadFile], form: Dict[str, Any]) -> dict:
        """Validate and store an uploaded PDF with its audiences and optional guest link.

        `form` holds the multipart fields by their snake_case names.
        """
        filename, payload, pages = self._read_pdf(upload)

        try:
            issued_at = parse_datetime(form.get("issued_at"))
        except ValueError:
            raise BadRequest("Invalid issuedAt value")
        user_ids = coerce_id_list(form.get("audience_user_ids"))
        class_ids = coerce_id_list(form.get("audience_class_ids"))
        share = coerce_bool(form.get("generate_share_link"))
        try:
            expires_at = parse_datetime(form.get("share_link_expires_at"))
        except ValueError:
            raise BadRequest("Format tanggal kedaluwarsa tautan tamu tidak valid")
        try:
            max_downloads = coerce_positive_int(form.get("share_link_max_downloads"))
        except ValueError:
            raise BadRequest("Batas unduhan tamu harus berupa angka bulat lebih dari nol")
        if not user_ids and not class_ids and not share:
            raise BadRequest("Pilih minimal satu pengguna/kelas atau aktifkan tautan tamu.")
        self._check_audience(user, user_ids, class_ids)

        file_hash = sha256_hex(payload)
        if self.repo.get_by_hash(file_hash) is not None:
            raise Conflict(DUPLICATE_MESSAGE)

        path, public = save_bytes(payload, filename, subdir=DOCUMENT_SUBDIR)
        code = self._unique_code()
        document = models.DocumentRecord(
            title=form.get("title"),
            description=form.get("description"),
            original_file_name=filename,
            file_size=len(payload),
            mime_type="application/pdf",
            page_count=pages,
            stored_file_path=public,
            signed_file_path=public,
            file_hash=file_hash,
            verification_code=code,
            barcode_value=code,
            issued_for=form.get("issued_for"),
            issuer_id=user.sub,
            status=form.get("status") or "active",
            meta_json=encode_metadata(form.get("metadata")),
        )
        if issued_at is not None:
            document.issued_at = issued_at
        try:
            self.session.add(document)
            self.session.flush()
            for user_id in user_ids:
                self.session.add(models.DocumentAudience(document_id=document.id, type="USER", user_id=user_id))
            for class_id in class_ids:
                self.session.add(models.DocumentAudience(document_id=document.id, type="CLASS", class_id=class_id))
            if share:
                self.session.add(models.DocumentShareToken(
                    document_id=document.id,
                    token=secrets.token_urlsafe(SHARE_TOKEN_BYTES),
                    expires_at=expires_at,
                    max_downloads=max_downloads,
                    created_by_id=user.sub,
                ))
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            remove_file_safe(path)
            raise Conflict(DUPLICATE_MESSAGE)
        except Exception:
            self.session.rollback()
            remove_file_safe(path)
            raise
        self.session.refresh(document)
        _LOGGER.info(
            "document issued id=%s code=%s pages=%d audiences=%d share=%s",
            document.id, code, pages, len(user_ids) + len(class_ids), share,
        )
        return self._serialize(document, user)

    # downloads

    def _watermarked(self, document: models.DocumentRecord, name: str, email: Optional[str],
                     ip_address: Optional[str], downloaded_at: datetime) -> bytes:
        try:
            path = resolve_public_path(document.stored_file_path)
        except BadRequest:
            raise NotFound("Stored file missing")
        if not path.is_file():
            raise NotFound("Stored file missing")
        original = path.read_bytes()
        is_pdf = document.mime_type == "application/pdf" or document.original_file_name.lower().endswith(".pdf")
        if not is_pdf:
            return original
        lines = watermark_lines(name, email, downloaded_at, document.verification_code, ip_address)
        try:
            return apply_watermark(original, lines)
        except Exception:
            _LOGGER.exception("Failed to apply watermark to document %s", document.id)
            return original

    def download(self, document_id: str, user: TokenUser, ip_address: Optional[str]) -> Tuple[bytes, models.DocumentRecord]:
        document = self._find_for(document_id, user)
        downloaded_at = utcnow()
        body = self._watermarked(document, user.name or "Pengguna", user.email, ip_address, downloaded_at)
        served_hash = sha256_hex(body)
        document.downloads += 1
        self.session.add(document)
        self._log(
            document,
            submitted_hash=served_hash,
            matched=True,
            verified_via="download",
            verifier_id=user.sub,
            verifier_name=user.name,
            verifier_email=user.email,
            verifier_role=user.role,
            metadata={
                "event": "download",
                "originalHash": document.file_hash,
                "variantHash": served_hash,
                "timestamp": iso(downloaded_at),
                "requesterRole": user.role,
                "ipAddress": ip_address,
            },
        )
        self.session.commit()
        return body, document

    # guest share links

    def _usable_token(self, token: str) -> Tuple[models.DocumentShareToken, models.DocumentRecord]:
        share = self.repo.get_share_token(token)
        document = self.repo.get(share.document_id) if share is not None else None
        if share is None or document is None:
            raise NotFound("Tautan tamu tidak ditemukan.")
        if document.status != "active":
            raise Gone("Dokumen tidak lagi tersedia untuk dibagikan.", code="DOCUMENT_UNAVAILABLE")
        if share.expires_at is not None and to_utc(share.expires_at) <= utcnow():
            raise Gone("Tautan tamu telah kedaluwarsa.", code="LINK_EXPIRED")
        if share.max_downloads is not None and share.download_count >= share.max_downloads:
            raise Gone("Batas unduhan tamu telah tercapai.", code="DOWNLOAD_LIMIT_REACHED")
        return share, document

    def shared(self, token: str) -> dict:
        share, document = self._usable_token(token)
        return serialize_shared_document(document, share)

    def shared_download(self, token: str, ip_address: Optional[str]) -> Tuple[bytes, models.DocumentRecord]:
        share, document = self._usable_token(token)
        downloaded_at = utcnow()
        body = self._watermarked(document, "Tamu", None, ip_address, downloaded_at)
        served_hash = sha256_hex(body)
        document.downloads += 1
        share.download_count += 1
        self.session.add(document)
        self.session.add(share)
        self._log(
            document,
            submitted_hash=served_hash,
            matched=True,
            verified_via="share-download",
            verifier_name="Guest",
            verifier_role="guest",
            metadata={
                "event": "share-download",
                "shareTokenId": share.id,
                "shareToken": share.token,
                "originalHash": document.file_hash,
                "variantHash": served_hash,
                "timestamp": iso(downloaded_at),
                "ipAddress": ip_address,
            },
        )
        self.session.commit()
        return body, document

    # administration

    def update_status(self, document_id: str, payload: schemas.DocumentStatusIn) -> dict:
        document = self.repo.get(document_id)
        if document is None:
            raise NotFound("Document not found")
        document.status = payload.status
        document.updated_at = utcnow()
        document = self.repo.save(document)
        return serialize_document(document, self.users.get(document.issuer_id))

    def delete(self, document_id: str, user: TokenUser) -> None:
        document = self.repo.get(document_id)
        if document is None:
            raise NotFound("Document not found")
        if user.role != "admin" and not (user.role == "teacher" and document.issuer_id == user.sub):
            raise Forbidden("Forbidden")
        stored = document.stored_file_path
        self.repo.delete_cascade(document)
        try:
            remove_file_safe(resolve_public_path(stored))
        except BadRequest:
            _LOGGER.warning("Stored path outside uploads root: %s", stored)

    def logs(self, document_id: str) -> dict:
        document = self.repo.get(document_id)
        if document is None:
            raise NotFound("Document not found")
        rows = self.repo.logs(document_id)
        verifiers = self.users.by_ids(r.verifier_id for r in rows)
        return {
            "document": serialize_document(document, self.users.get(document.issuer_id)),
            "logs": [serialize_verification_log(r, verifiers.get(r.verifier_id)) for r in rows],
        }

    # verification

    def _log(self, document: models.DocumentRecord, submitted_hash: Optional[str], matched: bool,
             verified_via: str, verifier_id: Optional[str] = None, verifier_name: Optional[str] = None,
             verifier_email: Optional[str] = None, verifier_role: Optional[str] = None,
             metadata: Optional[dict] = None) -> models.DocumentVerificationLog:
        row = models.DocumentVerificationLog(
            document_id=document.id,
            verifier_id=verifier_id,
            verifier_name=verifier_name,
            verifier_email=verifier_email,
            verifier_role=verifier_role,
            submitted_hash=submitted_hash or document.file_hash,
            matched=matched,
            verified_via=verified_via,
            meta_json=json.dumps(metadata) if metadata else None,
        )
        self.session.add(row)
        return row

    def find_match(self, code: Optional[str], file_hash: Optional[str]) -> Optional[DocumentMatch]:
        if code:
            document = self.repo.get_by_code(code)
            if document is not None:
                if file_hash and document.file_hash != file_hash:
                    log = self.repo.matched_log_for_hash(file_hash, document.id)
                    if log is not None:
                        return DocumentMatch(document, "variant", log)
                return DocumentMatch(document, "code")
        if file_hash:
            document = self.repo.get_by_hash(file_hash)
            if document is not None:
                return DocumentMatch(document, "hash")
            log = self.repo.matched_log_for_hash(file_hash)
            if log is not None:
                document = self.repo.get(log.document_id)
                if document is not None:
                    return DocumentMatch(document, "variant", log)
        return None

    @staticmethod
    def _not_found(file_hash: Optional[str]) -> NotFound:
        return NotFound(NOT_FOUND_MESSAGE, matched=False, status="unknown", hash=file_hash, document=None)

    @staticmethod
    def _result(match: DocumentMatch, matched: bool, file_hash: str) -> dict:
        document = match.document
        return {
            "matched": matched,
            "document": serialize_document(document) if matched else {"id": document.id, "status": document.status},
            "status": document.status,
            "hash": file_hash,
        }

    def verify(self, payload: schemas.VerifyIn, user: Optional[TokenUser]) -> dict:
        code = payload.code.upper() if payload.code else None
        file_hash = payload.hash.lower() if payload.hash else None
        match = self.find_match(code, file_hash)
        if match is None:
            raise self._not_found(file_hash)

        document = match.document
        hash_ok = file_hash is None or match.is_variant or document.file_hash == file_hash
        matched = document.status == "active" and hash_ok
        metadata = None
        if match.variant_log is not None:
            metadata = {
                "variantMatch": True,
                "sourceLogId": match.variant_log.id,
                "sourceVerifiedVia": match.variant_log.verified_via,
            }
        self._log(
            document,
            submitted_hash=file_hash,
            matched=matched,
            verified_via="code+hash" if code and file_hash else ("code" if code else "hash"),
            verifier_id=user.sub if user else None,
            verifier_name=payload.verifier_name,
            verifier_email=payload.verifier_email,
            verifier_role=payload.verifier_role,
            metadata=metadata,
        )
        self.session.commit()
        self.session.refresh(document)
        resolved = file_hash or (match.variant_log.submitted_hash if match.variant_log else document.file_hash)
        return self._result(match, matched, resolved)

    def verify_upload(self, upload: Optional[UploadFile], form: Dict[str, Any], user: Optional[TokenUser]) -> dict:
        """Hash an uploaded copy and match it (optionally with a code)."""
        if upload is None or not upload.filename:
            raise BadRequest("File PDF diperlukan untuk verifikasi")
        payload = read_limited(upload, settings.MAX_DOCUMENT_BYTES)
        code = form.get("code").upper() if form.get("code") else None
        file_hash = sha256_hex(payload)
        match = self.find_match(code, file_hash)
        if match is None:
            raise self._not_found(file_hash)

        document = match.document
        matched = document.status == "active" and (match.is_variant or document.file_hash == file_hash)
        self._log(
            document,
            submitted_hash=file_hash,
            matched=matched,
            verified_via="upload+code" if code else "upload",
            verifier_id=user.sub if user else None,
            verifier_name=form.get("verifier_name"),
            verifier_email=form.get("verifier_email"),
            verifier_role=form.get("verifier_role"),
            metadata={
                "matchType": match.match_type,
                "variantMatch": match.is_variant,
                "variantSourceLogId": match.variant_log.id if match.variant_log else None,
                "originalFileName": upload.filename,
                "fileSize": len(payload),
            },
        )
        self.session.commit()
        self.session.refresh(document)
        return self._result(match, matched, file_hash)
