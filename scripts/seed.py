"""CLI script to seed the local database with demo accounts and school data.
Usage: python scripts/seed.py [--reset] [--password PASSWORD]

Running it twice is safe: rows that already exist (matched by email,
class name and year, subject code, section key...) are left alone.
"""
import sys
import argparse
import json
import pathlib
from datetime import datetime, timedelta, timezone
# Ensure the project root is on sys.path so `school_portal` imports work when running this script directly
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
from sqlmodel import SQLModel, Session, select
from school_portal import models, repositories
from school_portal.auth import hash_password
from school_portal.database import create_db_and_tables, engine

DEMO_USERS = [
    ("Administrator Sekolah", "admin@sekolah.sch.id", "admin"),
    ("Budi Santoso", "guru@sekolah.sch.id", "teacher"),
    ("Ani Lestari", "siswa@sekolah.sch.id", "student"),
    ("Sri Wahyuni", "orangtua@sekolah.sch.id", "parent"),
]
DEMO_CLASSES = [
    ("XII MIPA 1", 12),
    ("XI IPS 1", 11),
    ("X MIPA 2", 10),
]
DEMO_SUBJECTS = [
    ("Matematika", "MATH", "#2563eb"),
    ("Fisika", "PHYS", "#16a34a"),
    ("Bahasa Inggris", "ENGL", "#db2777"),
]
ACADEMIC_YEAR = "2025/2026"


def _first(session: Session, stmt):
    return session.exec(stmt).first()


def seed_users(session: Session, password: str) -> dict:
    repo = repositories.UserRepository(session)
    users = {}
    for name, email, role in DEMO_USERS:
        user = repo.get_by_email(email)
        if user is None:
            user = models.User(name=name, email=email, role=role, password_hash=hash_password(password))
            session.add(user)
            session.flush()
            print(f'Created {role} {email}')
        users[role] = user
    return users


def seed_classes(session: Session, homeroom: models.User) -> list:
    classes = []
    for index, (name, grade_level) in enumerate(DEMO_CLASSES):
        stmt = select(models.SchoolClass).where(
            models.SchoolClass.name == name, models.SchoolClass.academic_year == ACADEMIC_YEAR
        )
        row = _first(session, stmt)
        if row is None:
            row = models.SchoolClass(
                name=name,
                grade_level=grade_level,
                academic_year=ACADEMIC_YEAR,
                homeroom_teacher_id=homeroom.id if index == 0 else None,
            )
            session.add(row)
            session.flush()
            print(f'Created class {name}')
        classes.append(row)
    return classes


def seed_subjects(session: Session) -> list:
    repo = repositories.SubjectRepository(session)
    subjects = []
    for name, code, color in DEMO_SUBJECTS:
        row = repo.get_by_code(code)
        if row is None:
            row = models.Subject(name=name, code=code, color=color, credits=4)
            session.add(row)
            session.flush()
            print(f'Created subject {code}')
        subjects.append(row)
    return subjects


def seed_academics(session: Session, users: dict, classes: list, subjects: list) -> None:
    teacher, student = users["teacher"], users["student"]
    main_class, math = classes[0], subjects[0]

    memberships = repositories.MembershipRepository(session)
    if main_class.id not in memberships.class_ids_for_user(student.id):
        session.add(models.UserClassMembership(user_id=student.id, class_id=main_class.id))

    assignments = repositories.AssignmentRepository(session)
    for subject in subjects[:2]:
        if not assignments.exists(teacher.id, main_class.id, subject.id):
            session.add(models.TeacherClassAssignment(
                teacher_id=teacher.id, class_id=main_class.id, subject_id=subject.id, role="Pengajar"
            ))

    stmt = select(models.ClassSchedule).where(models.ClassSchedule.class_id == main_class.id)
    if _first(session, stmt) is None:
        monday = datetime(2025, 7, 14, 0, 0, tzinfo=timezone.utc)
        session.add(models.ClassSchedule(
            class_id=main_class.id,
            subject_id=math.id,
            teacher_id=teacher.id,
            day_of_week="Monday",
            start_time=monday + timedelta(hours=7),
            end_time=monday + timedelta(hours=8, minutes=30),
            location="Ruang 12",
        ))

    stmt = select(models.Grade).where(models.Grade.student_id == student.id)
    if _first(session, stmt) is None:
        session.add(models.Grade(
            student_id=student.id,
            subject_id=math.id,
            class_id=main_class.id,
            teacher_id=teacher.id,
            term="Semester 1",
            assessment_type="Ujian Tengah Semester",
            score=88,
        ))


def seed_content(session: Session, admin: models.User) -> None:
    if _first(session, select(models.Announcement)) is None:
        session.add(models.Announcement(
            title="Penerimaan Peserta Didik Baru",
            summary="Pendaftaran PCPDB tahun ajaran 2025/2026 telah dibuka.",
            content="Calon peserta didik dapat mendaftar secara daring melalui formulir PCPDB di situs sekolah.",
            date=datetime(2025, 3, 1, tzinfo=timezone.utc),
            category="PPDB",
            pinned=True,
            author_id=admin.id,
        ))
    if _first(session, select(models.FAQItem)) is None:
        session.add(models.FAQItem(
            question="Kapan pendaftaran peserta didik baru dibuka?",
            answer="Pendaftaran dibuka setiap bulan Maret hingga Mei.",
            category="PPDB",
        ))
    wawasan = repositories.WawasanRepository(session)
    sections = {
        "sejarah": ("Sejarah Sekolah", {"intro": "Sekolah berdiri sejak tahun 1965."}),
        "visi-misi": ("Visi dan Misi", {"vision": "Unggul dalam prestasi dan berkarakter.", "missions": []}),
        "struktur": ("Struktur Organisasi", {}),
        "our-teams": ("Tim Kami", {}),
    }
    for key, (title, content) in sections.items():
        if wawasan.get_section(key) is None:
            session.add(models.WawasanContent(key=key, title=title, content=json.dumps(content)))


def main(reset: bool = False, password: str = "password123"):
    """Create tables (dropping them first with `--reset`) and insert demo rows."""
    if reset:
        SQLModel.metadata.drop_all(engine)
        print('Dropped all tables')
    create_db_and_tables()
    with Session(engine) as session:
        users = seed_users(session, password)
        classes = seed_classes(session, users["teacher"])
        subjects = seed_subjects(session)
        seed_academics(session, users, classes, subjects)
        seed_content(session, users["admin"])
        session.commit()
    print('Seed complete. Demo accounts use password', repr(password))


if __name__ == '__main__':
    parser = argparse.ArgumentParser()
    parser.add_argument('--reset', action='store_true', help='Drop every table before seeding')
    parser.add_argument('--password', default='password123', help='Password for the demo accounts')
    args = parser.parse_args()
    main(reset=args.reset, password=args.password)
