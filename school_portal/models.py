"""SQLModel data models.

This module defines the application's database tables using SQLModel.
Primary keys are opaque hex strings. Datetimes are written as aware
UTC values; `utcnow()` is the single source of "now" for defaults and
services alike. JSON blobs (notification metadata, section content,
document metadata) are stored as text and parsed on serialization.
"""

import uuid
from typing import Optional
from datetime import datetime, timezone
from sqlalchemy import UniqueConstraint
from sqlmodel import SQLModel, Field

ROLES = ("admin", "teacher", "student", "parent", "guest")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return uuid.uuid4().hex


def _created():
    return Field(default_factory=utcnow)


def _updated():
    return Field(default_factory=utcnow, sa_column_kwargs={"onupdate": utcnow})


class User(SQLModel, table=True):
    """A dashboard account.

    Fields:
    - `email`: unique, always stored lowercased
    - `password_hash`: pbkdf2 hash (never store plaintext)
    - `role`: one of `ROLES`
    """
    id: str = Field(default_factory=new_id, primary_key=True)
    name: str
    email: str = Field(index=True, unique=True)
    password_hash: str
    role: str = Field(default="student", index=True)
    status: str = "active"
    phone: Optional[str] = None
    avatar_url: Optional[str] = None
    last_login: Optional[datetime] = None
    created_at: datetime = _created()
    updated_at: datetime = _updated()


class SchoolClass(SQLModel, table=True):
    """A class (rombel) for one academic year."""
    id: str = Field(default_factory=new_id, primary_key=True)
    name: str
    grade_level: int
    academic_year: str
    description: Optional[str] = None
    homeroom_teacher_id: Optional[str] = Field(default=None, foreign_key="user.id")
    created_at: datetime = _created()
    updated_at: datetime = _updated()


class UserClassMembership(SQLModel, table=True):
    __table_args__ = (UniqueConstraint("user_id", "class_id"),)
    id: str = Field(default_factory=new_id, primary_key=True)
    user_id: str = Field(foreign_key="user.id", index=True)
    class_id: str = Field(foreign_key="schoolclass.id", index=True)
    assigned_at: datetime = _created()


class Subject(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    name: str
    code: str = Field(unique=True, index=True)
    description: Optional[str] = None
    credits: int = 0
    color: Optional[str] = None
    created_at: datetime = _created()
    updated_at: datetime = _updated()


class TeacherClassAssignment(SQLModel, table=True):
    """Links a teacher to a class, optionally for a single subject."""
    __table_args__ = (UniqueConstraint("teacher_id", "class_id", "subject_id"),)
    id: str = Field(default_factory=new_id, primary_key=True)
    teacher_id: str = Field(foreign_key="user.id", index=True)
    class_id: str = Field(foreign_key="schoolclass.id", index=True)
    subject_id: Optional[str] = Field(default=None, foreign_key="subject.id")
    role: Optional[str] = None
    created_at: datetime = _created()
    updated_at: datetime = _updated()


class ClassSchedule(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    class_id: str = Field(foreign_key="schoolclass.id", index=True)
    subject_id: str = Field(foreign_key="subject.id", index=True)
    teacher_id: Optional[str] = Field(default=None, foreign_key="user.id")
    day_of_week: str
    start_time: datetime
    end_time: datetime
    location: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime = _created()
    updated_at: datetime = _updated()


class Grade(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    student_id: str = Field(foreign_key="user.id", index=True)
    subject_id: str = Field(foreign_key="subject.id", index=True)
    class_id: Optional[str] = Field(default=None, foreign_key="schoolclass.id")
    teacher_id: Optional[str] = Field(default=None, foreign_key="user.id")
    term: str
    assessment_type: Optional[str] = None
    score: float
    remarks: Optional[str] = None
    issued_at: datetime = _created()
    created_at: datetime = _created()
    updated_at: datetime = _updated()


class Announcement(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    title: str
    summary: str
    content: str
    date: datetime
    category: str
    pinned: bool = False
    image_url: Optional[str] = None
    author_id: Optional[str] = Field(default=None, foreign_key="user.id")
    created_at: datetime = _created()
    updated_at: datetime = _updated()


class Notification(SQLModel, table=True):
    """A dashboard notification addressed to a user or a whole role."""
    id: str = Field(default_factory=new_id, primary_key=True)
    title: str
    body: str
    type: str
    user_id: Optional[str] = Field(default=None, foreign_key="user.id", index=True)
    target_role: Optional[str] = None
    meta_json: Optional[str] = None
    read_at: Optional[datetime] = None
    created_at: datetime = _created()
    updated_at: datetime = _updated()


class GalleryItem(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    title: str
    description: str
    image_url: str
    published_at: datetime = _created()
    created_at: datetime = _created()
    updated_at: datetime = _updated()


class GalleryTag(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    gallery_item_id: str = Field(foreign_key="galleryitem.id", index=True)
    value: str


class TeamMember(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    name: str
    role: str
    category: str
    department: Optional[str] = None
    email: Optional[str] = None
    education: Optional[str] = None
    experience: Optional[str] = None
    photo_url: Optional[str] = None
    order: int = 0
    created_at: datetime = _created()
    updated_at: datetime = _updated()


class TeamMemberSpecialization(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    team_member_id: str = Field(foreign_key="teammember.id", index=True)
    value: str


class PCPDBEntry(SQLModel, table=True):
    """An admission (PCPDB) application submitted from the public site."""
    id: str = Field(default_factory=new_id, primary_key=True)
    applicant_name: str
    email: str
    phone: str
    notes: Optional[str] = None
    status: str = "pending"
    submitted_at: datetime = _created()
    reviewed_at: Optional[datetime] = None
    reviewed_by_id: Optional[str] = Field(default=None, foreign_key="user.id")
    created_at: datetime = _created()
    updated_at: datetime = _updated()


class FAQItem(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    question: str
    answer: str
    category: str
    order: int = 0
    created_at: datetime = _created()
    updated_at: datetime = _updated()


class Extracurricular(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    name: str
    description: str
    category: str
    schedule: str
    mentor_name: str
    mentor_id: Optional[str] = Field(default=None, foreign_key="user.id")
    is_new: bool = False
    cover_image: Optional[str] = None
    created_at: datetime = _created()
    updated_at: datetime = _updated()


class ExtracurricularAchievement(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    extracurricular_id: str = Field(foreign_key="extracurricular.id", index=True)
    value: str


class Article(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    title: str
    slug: str = Field(unique=True, index=True)
    cover_image: Optional[str] = None
    summary: str
    content: str
    published_at: datetime = _created()
    author_id: Optional[str] = Field(default=None, foreign_key="user.id")
    created_at: datetime = _created()
    updated_at: datetime = _updated()


class ArticleTag(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    article_id: str = Field(foreign_key="article.id", index=True)
    value: str


class SchoolEvent(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    title: str
    description: str = ""
    start_at: datetime = Field(index=True)
    end_at: Optional[datetime] = None
    location: Optional[str] = None
    visibility: str = "school"
    class_id: Optional[str] = Field(default=None, foreign_key="schoolclass.id")
    created_by_id: Optional[str] = Field(default=None, foreign_key="user.id")
    created_at: datetime = _created()
    updated_at: datetime = _updated()


class WawasanContent(SQLModel, table=True):
    """A profile page section keyed by `sejarah`, `visi-misi`, ..."""
    id: str = Field(default_factory=new_id, primary_key=True)
    key: str = Field(unique=True, index=True)
    title: str
    media_url: Optional[str] = None
    content: str = "{}"
    created_at: datetime = _created()
    updated_at: datetime = _updated()


class WawasanTimelineEntry(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    section_key: str = Field(index=True)
    period: str
    description: str
    order: int = 0
    created_at: datetime = _created()
    updated_at: datetime = _updated()


class WawasanHeritageValue(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    section_key: str = Field(index=True)
    value: str
    order: int = 0
    created_at: datetime = _created()
    updated_at: datetime = _updated()


class WawasanStructureEntry(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    section_key: str = Field(index=True)
    position: str
    name: str
    department: Optional[str] = None
    parent_id: Optional[str] = None
    order: int = 0
    created_at: datetime = _created()
    updated_at: datetime = _updated()


class ValidatorHistory(SQLModel, table=True):
    """One domain reputation scan result."""
    id: str = Field(default_factory=new_id, primary_key=True)
    url: str
    normalized_url: str = Field(index=True)
    verdict: str
    malicious_count: int = 0
    suspicious_count: int = 0
    undetected_count: int = 0
    categories_json: Optional[str] = None
    provider: str
    scanned_at: datetime = _created()
    created_by_id: Optional[str] = Field(default=None, foreign_key="user.id")
    created_at: datetime = _created()
    updated_at: datetime = _updated()


class DocumentRecord(SQLModel, table=True):
    """An issued PDF whose integrity can be verified by code or hash."""
    id: str = Field(default_factory=new_id, primary_key=True)
    title: Optional[str] = None
    description: Optional[str] = None
    original_file_name: str
    file_size: int
    mime_type: str
    page_count: Optional[int] = None
    stored_file_path: str
    signed_file_path: Optional[str] = None
    file_hash: str = Field(unique=True, index=True)
    hash_algorithm: str = "sha256"
    verification_code: str = Field(unique=True, index=True)
    barcode_value: Optional[str] = None
    issued_for: Optional[str] = None
    issuer_id: Optional[str] = Field(default=None, foreign_key="user.id")
    issued_at: datetime = _created()
    status: str = "active"
    downloads: int = 0
    meta_json: Optional[str] = None
    created_at: datetime = _created()
    updated_at: datetime = _updated()


class DocumentAudience(SQLModel, table=True):
    """Grants access to a document for one user (USER) or a class (CLASS)."""
    id: str = Field(default_factory=new_id, primary_key=True)
    document_id: str = Field(foreign_key="documentrecord.id", index=True)
    type: str
    user_id: Optional[str] = Field(default=None, foreign_key="user.id")
    class_id: Optional[str] = Field(default=None, foreign_key="schoolclass.id")
    created_at: datetime = _created()


class DocumentShareToken(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    document_id: str = Field(foreign_key="documentrecord.id", index=True)
    token: str = Field(unique=True, index=True)
    expires_at: Optional[datetime] = None
    max_downloads: Optional[int] = None
    download_count: int = 0
    created_by_id: Optional[str] = Field(default=None, foreign_key="user.id")
    created_at: datetime = _created()


class DocumentVerificationLog(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    document_id: str = Field(foreign_key="documentrecord.id", index=True)
    verifier_id: Optional[str] = Field(default=None, foreign_key="user.id")
    verifier_name: Optional[str] = None
    verifier_role: Optional[str] = None
    verifier_email: Optional[str] = None
    submitted_hash: str = Field(index=True)
    matched: bool = False
    verified_via: str
    meta_json: Optional[str] = None
    created_at: datetime = _created()
