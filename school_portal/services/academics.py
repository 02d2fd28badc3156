"""Classes, teaching assignments, subjects, schedules and grades.

SQLite does not enforce foreign keys here, so every reference supplied by
a client (homeroom teacher, members, class/subject/teacher ids) and every
delete that would orphan rows is checked explicitly.
"""

import math
from datetime import datetime
from typing import List, Optional

from sqlmodel import Session

from .. import models, repositories, schemas
from ..errors import BadRequest, Conflict
from ..serializers import (
    row_to_dict,
    serialize_assignment,
    serialize_class,
    serialize_grade,
    serialize_schedule,
)
from ..utils.dates import parse_datetime, to_utc
from .common import apply_changes, commit_or_conflict, get_or_404

ASSIGNMENT_TAKEN = "Guru sudah ditugaskan pada kelas dan mata pelajaran ini"


def _clean_ids(ids: List[str]) -> List[str]:
    """Trim, drop empties and deduplicate while keeping order."""
    seen = []
    for raw in ids or []:
        value = (raw or "").strip()
        if value and value not in seen:
            seen.append(value)
    return seen


class ClassService:
    def __init__(self, session: Session):
        self.session = session
        self.repo = repositories.ClassRepository(session)
        self.users = repositories.UserRepository(session)
        self.memberships = repositories.MembershipRepository(session)
        self.assignments = repositories.AssignmentRepository(session)
        self.subjects = repositories.SubjectRepository(session)

    def _serialize(self, row: models.SchoolClass) -> dict:
        assignments = self.assignments.list(models.TeacherClassAssignment.created_at.desc(), class_id=row.id)
        teachers = self.users.by_ids(a.teacher_id for a in assignments)
        subjects = self.subjects.by_ids(a.subject_id for a in assignments)
        return serialize_class(
            row,
            self.users.get(row.homeroom_teacher_id),
            self.memberships.members_of(row.id),
            [(a, teachers.get(a.teacher_id), subjects.get(a.subject_id)) for a in assignments],
        )

    def _check_homeroom(self, teacher_id: Optional[str]) -> None:
        if teacher_id and self.users.get(teacher_id) is None:
            raise BadRequest("Wali kelas tidak ditemukan")

    def list(self) -> List[dict]:
        rows = self.repo.list(models.SchoolClass.grade_level.desc(), models.SchoolClass.name)
        return [self._serialize(r) for r in rows]

    def get(self, class_id: str) -> dict:
        return self._serialize(get_or_404(self.repo, class_id, "Class not found"))

    def create(self, payload: schemas.ClassIn) -> dict:
        self._check_homeroom(payload.homeroom_teacher_id)
        row = self.repo.save(models.SchoolClass(**payload.model_dump()))
        return self._serialize(row)

    def update(self, class_id: str, payload: schemas.ClassUpdate) -> dict:
        row = get_or_404(self.repo, class_id, "Class not found")
        changes = payload.changes()
        self._check_homeroom(changes.get("homeroom_teacher_id"))
        apply_changes(row, changes)
        return self._serialize(self.repo.save(row))

    def set_members(self, class_id: str, member_ids: List[str]) -> dict:
        """Replace the class roster with `member_ids`."""
        row = get_or_404(self.repo, class_id, "Class not found")
        ids = _clean_ids(member_ids)
        missing = self.users.missing_ids(ids)
        if missing:
            raise BadRequest("Pengguna tidak ditemukan", missingUserIds=missing)
        self.memberships.sync_class(row.id, ids)
        self.session.commit()
        self.session.refresh(row)
        return self._serialize(row)

    def delete(self, class_id: str) -> None:
        row = get_or_404(self.repo, class_id, "Class not found")
        if self.repo.has_dependents(row.id):
            raise Conflict("Cannot delete class with linked members, schedules, or grades")
        for assignment in self.assignments.list(class_id=row.id):
            self.session.delete(assignment)
        self.repo.delete(row)


class AssignmentService:
    def __init__(self, session: Session):
        self.session = session
        self.repo = repositories.AssignmentRepository(session)
        self.users = repositories.UserRepository(session)
        self.classes = repositories.ClassRepository(session)
        self.subjects = repositories.SubjectRepository(session)

    def _serialize(self, row: models.TeacherClassAssignment) -> dict:
        return serialize_assignment(
            row,
            self.users.get(row.teacher_id),
            self.classes.get(row.class_id),
            self.subjects.get(row.subject_id),
        )

    def _check_refs(self, teacher_id: str, class_id: str, subject_id: Optional[str]) -> None:
        if self.users.get(teacher_id) is None:
            raise BadRequest("Guru tidak ditemukan")
        if self.classes.get(class_id) is None:
            raise BadRequest("Kelas tidak ditemukan")
        if subject_id and self.subjects.get(subject_id) is None:
            raise BadRequest("Mata pelajaran tidak ditemukan")

    def list(self, teacher_id=None, class_id=None, subject_id=None) -> List[dict]:
        rows = self.repo.list(
            models.TeacherClassAssignment.created_at.desc(),
            teacher_id=teacher_id,
            class_id=class_id,
            subject_id=subject_id,
        )
        return [self._serialize(r) for r in rows]

    def create(self, payload: schemas.AssignmentIn) -> dict:
        subject_id = payload.subject_id or None
        self._check_refs(payload.teacher_id, payload.class_id, subject_id)
        if self.repo.exists(payload.teacher_id, payload.class_id, subject_id):
            raise Conflict(ASSIGNMENT_TAKEN)
        row = models.TeacherClassAssignment(
            teacher_id=payload.teacher_id,
            class_id=payload.class_id,
            subject_id=subject_id,
            role=payload.role,
        )
        self.session.add(row)
        commit_or_conflict(self.session, ASSIGNMENT_TAKEN)
        self.session.refresh(row)
        return self._serialize(row)

    def update(self, assignment_id: str, payload: schemas.AssignmentUpdate) -> dict:
        row = get_or_404(self.repo, assignment_id, "Assignment not found")
        changes = payload.changes()
        if "subject_id" in changes:
            changes["subject_id"] = changes["subject_id"] or None
        teacher_id = changes.get("teacher_id", row.teacher_id)
        class_id = changes.get("class_id", row.class_id)
        subject_id = changes.get("subject_id", row.subject_id)
        self._check_refs(teacher_id, class_id, subject_id)
        if self.repo.exists(teacher_id, class_id, subject_id, exclude_id=row.id):
            raise Conflict(ASSIGNMENT_TAKEN)
        apply_changes(row, changes)
        self.session.add(row)
        commit_or_conflict(self.session, ASSIGNMENT_TAKEN)
        self.session.refresh(row)
        return self._serialize(row)

    def delete(self, assignment_id: str) -> None:
        self.repo.delete(get_or_404(self.repo, assignment_id, "Assignment not found"))


class SubjectService:
    CODE_TAKEN = "Kode mata pelajaran sudah dipakai"

    def __init__(self, session: Session):
        self.session = session
        self.repo = repositories.SubjectRepository(session)

    def list(self) -> List[dict]:
        return [row_to_dict(r) for r in self.repo.list(models.Subject.name)]

    def _ensure_code_free(self, code: str, exclude_id: Optional[str] = None) -> None:
        existing = self.repo.get_by_code(code)
        if existing is not None and existing.id != exclude_id:
            raise Conflict(self.CODE_TAKEN)

    def create(self, payload: schemas.SubjectIn) -> dict:
        data = payload.model_dump()
        data["code"] = data["code"].strip().upper()
        self._ensure_code_free(data["code"])
        row = models.Subject(**data)
        self.session.add(row)
        commit_or_conflict(self.session, self.CODE_TAKEN)
        self.session.refresh(row)
        return row_to_dict(row)

    def update(self, subject_id: str, payload: schemas.SubjectUpdate) -> dict:
        row = get_or_404(self.repo, subject_id, "Subject not found")
        changes = payload.changes()
        if changes.get("code"):
            changes["code"] = changes["code"].strip().upper()
            self._ensure_code_free(changes["code"], exclude_id=row.id)
        else:
            changes.pop("code", None)
        apply_changes(row, changes)
        self.session.add(row)
        commit_or_conflict(self.session, self.CODE_TAKEN)
        self.session.refresh(row)
        return row_to_dict(row)

    def delete(self, subject_id: str) -> None:
        row = get_or_404(self.repo, subject_id, "Subject not found")
        if self.repo.in_use(row.id):
            raise Conflict("Mata pelajaran masih dipakai pada jadwal atau nilai")
        for assignment in repositories.AssignmentRepository(self.session).list(subject_id=row.id):
            assignment.subject_id = None
            self.session.add(assignment)
        self.repo.delete(row)


def _parse_time(value, field: str) -> Optional[datetime]:
    try:
        return parse_datetime(value)
    except ValueError:
        raise BadRequest(f"Invalid {field}")


class ScheduleService:
    def __init__(self, session: Session):
        self.session = session
        self.repo = repositories.Repository(session, models.ClassSchedule)
        self.users = repositories.UserRepository(session)
        self.classes = repositories.ClassRepository(session)
        self.subjects = repositories.SubjectRepository(session)

    def _serialize_many(self, rows: List[models.ClassSchedule]) -> List[dict]:
        classes = self.classes.by_ids(r.class_id for r in rows)
        subjects = self.subjects.by_ids(r.subject_id for r in rows)
        teachers = self.users.by_ids(r.teacher_id for r in rows)
        return [
            serialize_schedule(r, classes.get(r.class_id), subjects.get(r.subject_id), teachers.get(r.teacher_id))
            for r in rows
        ]

    def _check_refs(self, class_id: str, subject_id: str, teacher_id: Optional[str]) -> None:
        if self.classes.get(class_id) is None:
            raise BadRequest("Kelas tidak ditemukan")
        if self.subjects.get(subject_id) is None:
            raise BadRequest("Mata pelajaran tidak ditemukan")
        if teacher_id and self.users.get(teacher_id) is None:
            raise BadRequest("Guru tidak ditemukan")

    def list(self, class_id=None, teacher_id=None, subject_id=None, day_of_week=None) -> List[dict]:
        rows = self.repo.list(
            models.ClassSchedule.day_of_week,
            models.ClassSchedule.start_time,
            class_id=class_id,
            teacher_id=teacher_id,
            subject_id=subject_id,
            day_of_week=day_of_week,
        )
        return self._serialize_many(rows)

    def create(self, payload: schemas.ScheduleIn) -> dict:
        start = _parse_time(payload.start_time, "startTime")
        end = _parse_time(payload.end_time, "endTime")
        if start is None:
            raise BadRequest("Invalid startTime")
        if end is None:
            raise BadRequest("Invalid endTime")
        if end <= start:
            raise BadRequest("End time must be after start time")
        self._check_refs(payload.class_id, payload.subject_id, payload.teacher_id)
        data = payload.model_dump()
        data.update(start_time=start, end_time=end)
        row = self.repo.save(models.ClassSchedule(**data))
        return self._serialize_many([row])[0]

    def update(self, schedule_id: str, payload: schemas.ScheduleUpdate) -> dict:
        row = get_or_404(self.repo, schedule_id, "Schedule not found")
        changes = payload.changes()
        if "start_time" in changes:
            changes["start_time"] = _parse_time(changes["start_time"], "startTime")
            if changes["start_time"] is None:
                raise BadRequest("Invalid startTime")
        if "end_time" in changes:
            changes["end_time"] = _parse_time(changes["end_time"], "endTime")
            if changes["end_time"] is None:
                raise BadRequest("Invalid endTime")
        start = changes.get("start_time", row.start_time)
        end = changes.get("end_time", row.end_time)
        if to_utc(end) <= to_utc(start):
            raise BadRequest("End time must be after start time")
        self._check_refs(
            changes.get("class_id", row.class_id),
            changes.get("subject_id", row.subject_id),
            changes.get("teacher_id", row.teacher_id),
        )
        apply_changes(row, changes)
        return self._serialize_many([self.repo.save(row)])[0]

    def delete(self, schedule_id: str) -> None:
        self.repo.delete(get_or_404(self.repo, schedule_id, "Schedule not found"))


def _parse_score(value) -> float:
    try:
        score = float(str(value).strip()) if isinstance(value, str) else float(value)
    except (TypeError, ValueError):
        raise BadRequest("Invalid score value")
    if not math.isfinite(score):
        raise BadRequest("Invalid score value")
    return score


class GradeService:
    def __init__(self, session: Session):
        self.session = session
        self.repo = repositories.Repository(session, models.Grade)
        self.users = repositories.UserRepository(session)
        self.classes = repositories.ClassRepository(session)
        self.subjects = repositories.SubjectRepository(session)

    def _serialize_many(self, rows: List[models.Grade]) -> List[dict]:
        users = self.users.by_ids([r.student_id for r in rows] + [r.teacher_id for r in rows])
        classes = self.classes.by_ids(r.class_id for r in rows)
        subjects = self.subjects.by_ids(r.subject_id for r in rows)
        return [
            serialize_grade(
                r,
                users.get(r.student_id),
                subjects.get(r.subject_id),
                classes.get(r.class_id),
                users.get(r.teacher_id),
            )
            for r in rows
        ]

    def _check_refs(self, student_id: str, subject_id: str, class_id: Optional[str], teacher_id: Optional[str]) -> None:
        if self.users.get(student_id) is None:
            raise BadRequest("Siswa tidak ditemukan")
        if self.subjects.get(subject_id) is None:
            raise BadRequest("Mata pelajaran tidak ditemukan")
        if class_id and self.classes.get(class_id) is None:
            raise BadRequest("Kelas tidak ditemukan")
        if teacher_id and self.users.get(teacher_id) is None:
            raise BadRequest("Guru tidak ditemukan")

    @staticmethod
    def _issued_at(value) -> Optional[datetime]:
        try:
            return parse_datetime(value)
        except ValueError:
            raise BadRequest("Invalid issuedAt value")

    def list(self, student_id=None, subject_id=None, class_id=None, teacher_id=None, term=None) -> List[dict]:
        rows = self.repo.list(
            models.Grade.issued_at.desc(),
            models.Grade.created_at.desc(),
            student_id=student_id,
            subject_id=subject_id,
            class_id=class_id,
            teacher_id=teacher_id,
            term=term,
        )
        return self._serialize_many(rows)

    def create(self, payload: schemas.GradeIn) -> dict:
        data = payload.model_dump()
        data["score"] = _parse_score(payload.score)
        issued_at = self._issued_at(payload.issued_at)
        if issued_at is None:
            del data["issued_at"]
        else:
            data["issued_at"] = issued_at
        self._check_refs(payload.student_id, payload.subject_id, payload.class_id, payload.teacher_id)
        row = self.repo.save(models.Grade(**data))
        return self._serialize_many([row])[0]

    def update(self, grade_id: str, payload: schemas.GradeUpdate) -> dict:
        row = get_or_404(self.repo, grade_id, "Grade not found")
        changes = payload.changes()
        if "score" in changes:
            changes["score"] = _parse_score(changes["score"])
        if "issued_at" in changes:
            issued_at = self._issued_at(changes["issued_at"])
            if issued_at is None:
                del changes["issued_at"]
            else:
                changes["issued_at"] = issued_at
        self._check_refs(
            changes.get("student_id", row.student_id),
            changes.get("subject_id", row.subject_id),
            changes.get("class_id", row.class_id),
            changes.get("teacher_id", row.teacher_id),
        )
        apply_changes(row, changes)
        return self._serialize_many([self.repo.save(row)])[0]

    def delete(self, grade_id: str) -> None:
        self.repo.delete(get_or_404(self.repo, grade_id, "Grade not found"))
