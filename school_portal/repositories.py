"""Repository classes encapsulating database operations.

Each repository is small and focused on a single aggregate (users,
classes and memberships, assignments, documents, wawasan sections).
Repositories return SQLModel objects and perform commits/refreshes where
appropriate; services decide what a missing row means.
"""

from typing import Dict, Iterable, List, Optional, Type

from sqlalchemy import func, or_
from sqlmodel import Session, SQLModel, select

from . import models


class Repository:
    """Generic CRUD for a single table. Subclasses set `model`."""
    model: Type[SQLModel] = None

    def __init__(self, session: Session, model: Optional[Type[SQLModel]] = None):
        self.session = session
        if model is not None:
            self.model = model

    def get(self, row_id: Optional[str]):
        if not row_id:
            return None
        return self.session.get(self.model, row_id)

    def save(self, row):
        """Persist `row` (insert or update) and return the refreshed instance."""
        self.session.add(row)
        self.session.commit()
        self.session.refresh(row)
        return row

    def delete(self, row) -> None:
        self.session.delete(row)
        self.session.commit()

    def list(self, *order_by, **filters) -> list:
        """Rows matching the non-None equality `filters`, in `order_by` order."""
        stmt = select(self.model)
        for field, value in filters.items():
            if value is not None:
                stmt = stmt.where(getattr(self.model, field) == value)
        if order_by:
            stmt = stmt.order_by(*order_by)
        return list(self.session.exec(stmt).all())

    def by_ids(self, ids: Iterable[Optional[str]]) -> Dict[str, SQLModel]:
        """Map id -> row for the given ids; unknown and empty ids are skipped."""
        wanted = {i for i in ids if i}
        if not wanted:
            return {}
        stmt = select(self.model).where(self.model.id.in_(wanted))
        return {row.id: row for row in self.session.exec(stmt).all()}

    def missing_ids(self, ids: Iterable[str]) -> List[str]:
        ids = list(ids)
        found = self.by_ids(ids)
        return [i for i in ids if i not in found]

    def count(self, **filters) -> int:
        stmt = select(func.count()).select_from(self.model)
        for field, value in filters.items():
            stmt = stmt.where(getattr(self.model, field) == value)
        return self.session.exec(stmt).one()


class UserRepository(Repository):
    """CRUD operations for `User` objects."""
    model = models.User

    def get_by_email(self, email: str) -> Optional[models.User]:
        """Return a `User` by (lowercased) email or `None` if not found."""
        stmt = select(models.User).where(models.User.email == email.lower())
        return self.session.exec(stmt).first()


class ClassRepository(Repository):
    model = models.SchoolClass

    def has_dependents(self, class_id: str) -> bool:
        """True when members, schedules or grades still point at the class."""
        for model in (models.UserClassMembership, models.ClassSchedule, models.Grade):
            stmt = select(func.count()).select_from(model).where(model.class_id == class_id)
            if self.session.exec(stmt).one():
                return True
        return False


class MembershipRepository:
    """Student/teacher membership rows linking users to classes."""
    def __init__(self, session: Session):
        self.session = session

    def classes_for_user(self, user_id: str) -> List[models.SchoolClass]:
        stmt = (
            select(models.SchoolClass)
            .join(models.UserClassMembership, models.UserClassMembership.class_id == models.SchoolClass.id)
            .where(models.UserClassMembership.user_id == user_id)
            .order_by(models.SchoolClass.grade_level.desc(), models.SchoolClass.name)
        )
        return list(self.session.exec(stmt).all())

    def class_ids_for_user(self, user_id: str) -> List[str]:
        stmt = select(models.UserClassMembership.class_id).where(models.UserClassMembership.user_id == user_id)
        return list(self.session.exec(stmt).all())

    def members_of(self, class_id: str) -> List[tuple]:
        """Return `(membership, user)` pairs for a class, by user name."""
        stmt = (
            select(models.UserClassMembership, models.User)
            .join(models.User, models.User.id == models.UserClassMembership.user_id)
            .where(models.UserClassMembership.class_id == class_id)
            .order_by(models.User.name)
        )
        return list(self.session.exec(stmt).all())

    def sync_class(self, class_id: str, user_ids: List[str]) -> None:
        """Make the class membership exactly `user_ids` (no commit)."""
        stmt = select(models.UserClassMembership).where(models.UserClassMembership.class_id == class_id)
        current = {m.user_id: m for m in self.session.exec(stmt).all()}
        for user_id, membership in current.items():
            if user_id not in user_ids:
                self.session.delete(membership)
        for user_id in user_ids:
            if user_id not in current:
                self.session.add(models.UserClassMembership(user_id=user_id, class_id=class_id))

    def sync_user(self, user_id: str, class_ids: List[str]) -> None:
        """Make the user's classes exactly `class_ids` (no commit)."""
        stmt = select(models.UserClassMembership).where(models.UserClassMembership.user_id == user_id)
        current = {m.class_id: m for m in self.session.exec(stmt).all()}
        for class_id, membership in current.items():
            if class_id not in class_ids:
                self.session.delete(membership)
        for class_id in class_ids:
            if class_id not in current:
                self.session.add(models.UserClassMembership(user_id=user_id, class_id=class_id))

    def delete_for_user(self, user_id: str) -> None:
        self.sync_user(user_id, [])


class AssignmentRepository(Repository):
    model = models.TeacherClassAssignment

    def exists(self, teacher_id: str, class_id: str, subject_id: Optional[str], exclude_id: Optional[str] = None) -> bool:
        """Uniqueness check on (teacher, class, subject); NULL subjects compare equal here."""
        stmt = select(models.TeacherClassAssignment).where(
            models.TeacherClassAssignment.teacher_id == teacher_id,
            models.TeacherClassAssignment.class_id == class_id,
            models.TeacherClassAssignment.subject_id == subject_id
            if subject_id is not None
            else models.TeacherClassAssignment.subject_id.is_(None),
        )
        for row in self.session.exec(stmt).all():
            if row.id != exclude_id:
                return True
        return False

    def class_ids_for_teacher(self, teacher_id: str) -> List[str]:
        stmt = select(models.TeacherClassAssignment.class_id).where(
            models.TeacherClassAssignment.teacher_id == teacher_id
        )
        return list(set(self.session.exec(stmt).all()))


class SubjectRepository(Repository):
    model = models.Subject

    def get_by_code(self, code: str) -> Optional[models.Subject]:
        stmt = select(models.Subject).where(models.Subject.code == code)
        return self.session.exec(stmt).first()

    def in_use(self, subject_id: str) -> bool:
        for model in (models.ClassSchedule, models.Grade):
            stmt = select(func.count()).select_from(model).where(model.subject_id == subject_id)
            if self.session.exec(stmt).one():
                return True
        return False


class ValueRepository:
    """Child rows that hold a single `value` string (tags, specializations...)."""
    def __init__(self, session: Session, model: Type[SQLModel], parent_field: str):
        self.session = session
        self.model = model
        self.parent_field = parent_field

    def _column(self):
        return getattr(self.model, self.parent_field)

    def values_for(self, parent_id: str) -> List[str]:
        stmt = select(self.model).where(self._column() == parent_id)
        return [row.value for row in self.session.exec(stmt).all()]

    def values_map(self, parent_ids: Iterable[str]) -> Dict[str, List[str]]:
        ids = list(parent_ids)
        result: Dict[str, List[str]] = {i: [] for i in ids}
        if not ids:
            return result
        stmt = select(self.model).where(self._column().in_(ids))
        for row in self.session.exec(stmt).all():
            result[getattr(row, self.parent_field)].append(row.value)
        return result

    def replace(self, parent_id: str, values: Iterable[str]) -> None:
        """Swap the child rows wholesale (no commit)."""
        self.delete_for(parent_id)
        for value in values:
            self.session.add(self.model(**{self.parent_field: parent_id, "value": value}))

    def delete_for(self, parent_id: str) -> None:
        stmt = select(self.model).where(self._column() == parent_id)
        for row in self.session.exec(stmt).all():
            self.session.delete(row)


def gallery_tags(session: Session) -> ValueRepository:
    return ValueRepository(session, models.GalleryTag, "gallery_item_id")


def team_specializations(session: Session) -> ValueRepository:
    return ValueRepository(session, models.TeamMemberSpecialization, "team_member_id")


def extracurricular_achievements(session: Session) -> ValueRepository:
    return ValueRepository(session, models.ExtracurricularAchievement, "extracurricular_id")


def article_tags(session: Session) -> ValueRepository:
    return ValueRepository(session, models.ArticleTag, "article_id")


class ArticleRepository(Repository):
    model = models.Article

    def get_by_slug(self, slug: str) -> Optional[models.Article]:
        stmt = select(models.Article).where(models.Article.slug == slug)
        return self.session.exec(stmt).first()


class WawasanRepository:
    """Sections keyed by name plus their ordered child entries."""
    def __init__(self, session: Session):
        self.session = session

    def get_section(self, key: str) -> Optional[models.WawasanContent]:
        stmt = select(models.WawasanContent).where(models.WawasanContent.key == key)
        return self.session.exec(stmt).first()

    def list_sections(self) -> List[models.WawasanContent]:
        return list(self.session.exec(select(models.WawasanContent).order_by(models.WawasanContent.key)).all())

    def entries(self, model: Type[SQLModel], section_key: str) -> list:
        stmt = select(model).where(model.section_key == section_key).order_by(model.order, model.created_at)
        return list(self.session.exec(stmt).all())

    def next_order(self, model: Type[SQLModel], section_key: str) -> int:
        stmt = select(func.max(model.order)).where(model.section_key == section_key)
        current = self.session.exec(stmt).one()
        return (current if current is not None else -1) + 1

    def touch_section(self, key: str) -> None:
        """Bump the parent section's `updated_at` (no commit)."""
        section = self.get_section(key)
        if section is not None:
            section.updated_at = models.utcnow()
            self.session.add(section)


class DocumentRepository(Repository):
    model = models.DocumentRecord

    def get_by_code(self, code: str) -> Optional[models.DocumentRecord]:
        stmt = select(models.DocumentRecord).where(models.DocumentRecord.verification_code == code)
        return self.session.exec(stmt).first()

    def get_by_hash(self, file_hash: str) -> Optional[models.DocumentRecord]:
        stmt = select(models.DocumentRecord).where(models.DocumentRecord.file_hash == file_hash)
        return self.session.exec(stmt).first()

    def code_exists(self, code: str) -> bool:
        return self.get_by_code(code) is not None

    def audiences(self, document_id: str) -> List[models.DocumentAudience]:
        stmt = (
            select(models.DocumentAudience)
            .where(models.DocumentAudience.document_id == document_id)
            .order_by(models.DocumentAudience.created_at)
        )
        return list(self.session.exec(stmt).all())

    def share_tokens(self, document_id: str) -> List[models.DocumentShareToken]:
        stmt = (
            select(models.DocumentShareToken)
            .where(models.DocumentShareToken.document_id == document_id)
            .order_by(models.DocumentShareToken.created_at.desc())
        )
        return list(self.session.exec(stmt).all())

    def get_share_token(self, token: str) -> Optional[models.DocumentShareToken]:
        stmt = select(models.DocumentShareToken).where(models.DocumentShareToken.token == token)
        return self.session.exec(stmt).first()

    def logs(self, document_id: str) -> List[models.DocumentVerificationLog]:
        stmt = (
            select(models.DocumentVerificationLog)
            .where(models.DocumentVerificationLog.document_id == document_id)
            .order_by(models.DocumentVerificationLog.created_at.desc())
        )
        return list(self.session.exec(stmt).all())

    def matched_log_for_hash(self, submitted_hash: str, document_id: Optional[str] = None) -> Optional[models.DocumentVerificationLog]:
        """Newest matched log whose `submitted_hash` equals the given one."""
        stmt = select(models.DocumentVerificationLog).where(
            models.DocumentVerificationLog.submitted_hash == submitted_hash,
            models.DocumentVerificationLog.matched == True,  # noqa: E712
        )
        if document_id is not None:
            stmt = stmt.where(models.DocumentVerificationLog.document_id == document_id)
        stmt = stmt.order_by(models.DocumentVerificationLog.created_at.desc())
        return self.session.exec(stmt).first()

    def list_where(self, *conditions) -> List[models.DocumentRecord]:
        """Documents matching all `conditions`, newest issue first."""
        stmt = select(models.DocumentRecord)
        if conditions:
            stmt = stmt.where(*conditions)
        stmt = stmt.order_by(models.DocumentRecord.issued_at.desc(), models.DocumentRecord.created_at.desc())
        return list(self.session.exec(stmt).all())

    def visible_ids_for(self, user_id: str, class_ids: List[str]) -> List[str]:
        """Document ids with a USER audience for `user_id` or a CLASS audience in `class_ids`."""
        conditions = [
            (models.DocumentAudience.type == "USER") & (models.DocumentAudience.user_id == user_id)
        ]
        if class_ids:
            conditions.append(
                (models.DocumentAudience.type == "CLASS") & (models.DocumentAudience.class_id.in_(class_ids))
            )
        stmt = select(models.DocumentAudience.document_id).where(or_(*conditions))
        return list(set(self.session.exec(stmt).all()))

    def delete_cascade(self, document: models.DocumentRecord) -> None:
        """Remove logs, audiences, share tokens and the record in one commit."""
        for model in (models.DocumentVerificationLog, models.DocumentAudience, models.DocumentShareToken):
            stmt = select(model).where(model.document_id == document.id)
            for row in self.session.exec(stmt).all():
                self.session.delete(row)
        self.session.flush()
        self.session.delete(document)
        self.session.commit()
