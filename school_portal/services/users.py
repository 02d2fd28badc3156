"""Dashboard account management (admin only)."""

import logging
from typing import List, Optional

from sqlalchemy import func, or_
from sqlmodel import Session, select

from .. import models, repositories, schemas
from ..auth import hash_password
from ..errors import BadRequest, Conflict
from ..serializers import serialize_user
from .academics import _clean_ids
from .common import apply_changes, commit_or_conflict, get_or_404

_LOGGER = logging.getLogger("school_portal.users")

EMAIL_TAKEN = "Email sudah terdaftar"


class UserService:
    def __init__(self, session: Session):
        self.session = session
        self.repo = repositories.UserRepository(session)
        self.classes = repositories.ClassRepository(session)
        self.memberships = repositories.MembershipRepository(session)

    def _serialize(self, user: models.User) -> dict:
        return serialize_user(user, self.memberships.classes_for_user(user.id))

    def _check_classes(self, class_ids: Optional[List[str]]) -> Optional[List[str]]:
        if class_ids is None:
            return None
        ids = _clean_ids(class_ids)
        missing = self.classes.missing_ids(ids)
        if missing:
            raise BadRequest("Kelas tidak ditemukan", missingClassIds=missing)
        return ids

    def _ensure_email_free(self, email: str, exclude_id: Optional[str] = None) -> None:
        existing = self.repo.get_by_email(email)
        if existing is not None and existing.id != exclude_id:
            raise Conflict(EMAIL_TAKEN)

    def list(self) -> List[dict]:
        return [self._serialize(u) for u in self.repo.list(models.User.created_at.desc())]

    def get(self, user_id: str) -> dict:
        return self._serialize(get_or_404(self.repo, user_id, "User not found"))

    def create(self, payload: schemas.UserIn) -> dict:
        email = payload.email.lower()
        class_ids = self._check_classes(payload.class_ids)
        self._ensure_email_free(email)
        data = payload.model_dump(exclude={"class_ids", "password"})
        data["email"] = email
        user = models.User(**data, password_hash=hash_password(payload.password))
        self.session.add(user)
        self.session.flush()
        if class_ids:
            self.memberships.sync_user(user.id, class_ids)
        commit_or_conflict(self.session, EMAIL_TAKEN)
        self.session.refresh(user)
        _LOGGER.info("user created id=%s role=%s", user.id, user.role)
        return self._serialize(user)

    def update(self, user_id: str, payload: schemas.UserUpdate) -> dict:
        user = get_or_404(self.repo, user_id, "User not found")
        changes = payload.changes()
        class_ids = self._check_classes(changes.pop("class_ids", None))
        if changes.get("email"):
            changes["email"] = changes["email"].lower()
            self._ensure_email_free(changes["email"], exclude_id=user.id)
        password = changes.pop("password", None)
        if password:
            changes["password_hash"] = hash_password(password)
        for required in ("name", "email", "role", "status"):
            if required in changes and changes[required] is None:
                del changes[required]
        apply_changes(user, changes)
        self.session.add(user)
        if class_ids is not None:
            self.memberships.sync_user(user.id, class_ids)
        commit_or_conflict(self.session, EMAIL_TAKEN)
        self.session.refresh(user)
        return self._serialize(user)

    def _is_referenced(self, user_id: str) -> bool:
        checks = [
            (models.SchoolClass, models.SchoolClass.homeroom_teacher_id == user_id),
            (models.TeacherClassAssignment, models.TeacherClassAssignment.teacher_id == user_id),
            (models.ClassSchedule, models.ClassSchedule.teacher_id == user_id),
            (models.Grade, or_(models.Grade.student_id == user_id, models.Grade.teacher_id == user_id)),
            (models.DocumentRecord, models.DocumentRecord.issuer_id == user_id),
            (models.DocumentAudience, models.DocumentAudience.user_id == user_id),
        ]
        for model, condition in checks:
            if self.session.exec(select(func.count()).select_from(model).where(condition)).one():
                return True
        return False

    def delete(self, user_id: str) -> None:
        user = get_or_404(self.repo, user_id, "User not found")
        if self._is_referenced(user.id):
            raise Conflict("Tidak dapat menghapus pengguna yang masih terhubung dengan data lain")
        self.memberships.delete_for_user(user.id)
        self.repo.delete(user)
