from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlmodel import Session

from ..auth import academic, admin_only, staff
from ..database import get_session
from ..errors import invalid_payload
from ..schemas import (
    AssignmentIn,
    AssignmentUpdate,
    ClassIn,
    ClassMembersIn,
    ClassUpdate,
    GradeIn,
    GradeUpdate,
    ScheduleIn,
    ScheduleUpdate,
    SubjectIn,
    SubjectUpdate,
)
from ..services.academics import (
    AssignmentService,
    ClassService,
    GradeService,
    ScheduleService,
    SubjectService,
)

classes = APIRouter(prefix="/classes", tags=["classes"])
assignments = APIRouter(prefix="/class-assignments", tags=["classes"])
subjects = APIRouter(prefix="/subjects", tags=["subjects"])
schedules = APIRouter(prefix="/schedules", tags=["schedules"])
grades = APIRouter(prefix="/grades", tags=["grades"])
routers = [classes, assignments, subjects, schedules, grades]


# classes

@classes.get('', dependencies=[Depends(staff)])
def list_classes(db: Session = Depends(get_session)):
    return ClassService(db).list()


@classes.get('/{class_id}', dependencies=[Depends(staff)])
def get_class(class_id: str, db: Session = Depends(get_session)):
    return ClassService(db).get(class_id)


@classes.post('', status_code=201, dependencies=[Depends(admin_only)])
@invalid_payload('Invalid class payload')
def create_class(payload: ClassIn, db: Session = Depends(get_session)):
    return ClassService(db).create(payload)


@classes.put('/{class_id}', dependencies=[Depends(admin_only)])
@invalid_payload('Invalid class update payload')
def update_class(class_id: str, payload: ClassUpdate, db: Session = Depends(get_session)):
    return ClassService(db).update(class_id, payload)


@classes.put('/{class_id}/members', dependencies=[Depends(admin_only)])
@invalid_payload('Invalid member payload')
def set_class_members(class_id: str, payload: ClassMembersIn, db: Session = Depends(get_session)):
    return ClassService(db).set_members(class_id, payload.member_ids)


@classes.delete('/{class_id}', status_code=204, dependencies=[Depends(admin_only)])
def delete_class(class_id: str, db: Session = Depends(get_session)):
    ClassService(db).delete(class_id)
    return Response(status_code=204)


# teaching assignments

@assignments.get('', dependencies=[Depends(staff)])
def list_assignments(
    teacher_id: Optional[str] = Query(None, alias="teacherId"),
    class_id: Optional[str] = Query(None, alias="classId"),
    subject_id: Optional[str] = Query(None, alias="subjectId"),
    db: Session = Depends(get_session),
):
    return AssignmentService(db).list(teacher_id=teacher_id, class_id=class_id, subject_id=subject_id)


@assignments.post('', status_code=201, dependencies=[Depends(admin_only)])
@invalid_payload('Invalid assignment payload')
def create_assignment(payload: AssignmentIn, db: Session = Depends(get_session)):
    return AssignmentService(db).create(payload)


@assignments.put('/{assignment_id}', dependencies=[Depends(admin_only)])
@invalid_payload('Invalid assignment update payload')
def update_assignment(assignment_id: str, payload: AssignmentUpdate, db: Session = Depends(get_session)):
    return AssignmentService(db).update(assignment_id, payload)


@assignments.delete('/{assignment_id}', status_code=204, dependencies=[Depends(admin_only)])
def delete_assignment(assignment_id: str, db: Session = Depends(get_session)):
    AssignmentService(db).delete(assignment_id)
    return Response(status_code=204)


# subjects

@subjects.get('', dependencies=[Depends(staff)])
def list_subjects(db: Session = Depends(get_session)):
    return SubjectService(db).list()


@subjects.post('', status_code=201, dependencies=[Depends(admin_only)])
@invalid_payload('Invalid subject payload')
def create_subject(payload: SubjectIn, db: Session = Depends(get_session)):
    return SubjectService(db).create(payload)


@subjects.put('/{subject_id}', dependencies=[Depends(admin_only)])
@invalid_payload('Invalid subject update payload')
def update_subject(subject_id: str, payload: SubjectUpdate, db: Session = Depends(get_session)):
    return SubjectService(db).update(subject_id, payload)


@subjects.delete('/{subject_id}', status_code=204, dependencies=[Depends(admin_only)])
def delete_subject(subject_id: str, db: Session = Depends(get_session)):
    SubjectService(db).delete(subject_id)
    return Response(status_code=204)


# schedules

@schedules.get('', dependencies=[Depends(academic)])
def list_schedules(
    class_id: Optional[str] = Query(None, alias="classId"),
    teacher_id: Optional[str] = Query(None, alias="teacherId"),
    subject_id: Optional[str] = Query(None, alias="subjectId"),
    day_of_week: Optional[str] = Query(None, alias="dayOfWeek"),
    db: Session = Depends(get_session),
):
    return ScheduleService(db).list(
        class_id=class_id, teacher_id=teacher_id, subject_id=subject_id, day_of_week=day_of_week
    )


@schedules.post('', status_code=201, dependencies=[Depends(staff)])
@invalid_payload('Invalid schedule payload')
def create_schedule(payload: ScheduleIn, db: Session = Depends(get_session)):
    return ScheduleService(db).create(payload)


@schedules.put('/{schedule_id}', dependencies=[Depends(staff)])
@invalid_payload('Invalid schedule update payload')
def update_schedule(schedule_id: str, payload: ScheduleUpdate, db: Session = Depends(get_session)):
    return ScheduleService(db).update(schedule_id, payload)


@schedules.delete('/{schedule_id}', status_code=204, dependencies=[Depends(admin_only)])
def delete_schedule(schedule_id: str, db: Session = Depends(get_session)):
    ScheduleService(db).delete(schedule_id)
    return Response(status_code=204)


# grades

@grades.get('', dependencies=[Depends(staff)])
def list_grades(
    student_id: Optional[str] = Query(None, alias="studentId"),
    subject_id: Optional[str] = Query(None, alias="subjectId"),
    class_id: Optional[str] = Query(None, alias="classId"),
    teacher_id: Optional[str] = Query(None, alias="teacherId"),
    term: Optional[str] = None,
    db: Session = Depends(get_session),
):
    return GradeService(db).list(
        student_id=student_id, subject_id=subject_id, class_id=class_id, teacher_id=teacher_id, term=term
    )


@grades.post('', status_code=201, dependencies=[Depends(staff)])
@invalid_payload('Invalid grade payload')
def create_grade(payload: GradeIn, db: Session = Depends(get_session)):
    return GradeService(db).create(payload)


@grades.put('/{grade_id}', dependencies=[Depends(staff)])
@invalid_payload('Invalid grade update payload')
def update_grade(grade_id: str, payload: GradeUpdate, db: Session = Depends(get_session)):
    return GradeService(db).update(grade_id, payload)


@grades.delete('/{grade_id}', status_code=204, dependencies=[Depends(admin_only)])
def delete_grade(grade_id: str, db: Session = Depends(get_session)):
    GradeService(db).delete(grade_id)
    return Response(status_code=204)
