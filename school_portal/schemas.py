"""Pydantic request schemas used by the API.

Schemas keep API input shapes stable and provide validation for the
routers. Attributes are snake_case in Python and camelCase on the wire
(`ApiModel` sets the alias generator). Update schemas make every field
optional; services apply only the fields the client actually sent
(`model_dump(exclude_unset=True)`).
"""

from datetime import datetime
from typing import Annotated, Any, ClassVar, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, model_validator
from pydantic.alias_generators import to_camel

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"

Role = Literal["admin", "teacher", "student", "parent", "guest"]
Email = Annotated[str, StringConstraints(strip_whitespace=True, pattern=EMAIL_PATTERN)]
Origin = Annotated[str, StringConstraints(min_length=3, max_length=2048)]


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def changes(self) -> Dict[str, Any]:
        """Fields explicitly sent by the client, keyed by attribute name."""
        return self.model_dump(exclude_unset=True)


class UpdateModel(ApiModel):
    """Partial update body. Fields may be omitted, but the ones listed in
    `not_null` map to required columns and cannot be sent as null."""
    not_null: ClassVar[Tuple[str, ...]] = ()

    @model_validator(mode="after")
    def reject_nulls(self):
        nulls = [name for name in self.not_null if name in self.model_fields_set and getattr(self, name) is None]
        if nulls:
            raise ValueError(f"{', '.join(nulls)} cannot be null")
        return self


# auth / settings

class LoginIn(ApiModel):
    email: Email
    password: str = Field(min_length=6)


class SettingsIn(ApiModel):
    sentry_dsn: Optional[str] = Field(default=None, max_length=512)
    virus_total_api_key: Optional[str] = Field(default=None, max_length=256)
    google_safe_browsing_key: Optional[str] = Field(default=None, max_length=256)
    gemini_api_key: Optional[str] = Field(default=None, max_length=256)
    allowed_origins: Optional[Union[Annotated[str, StringConstraints(max_length=2048)], List[Origin]]] = None


# content

class AnnouncementIn(ApiModel):
    title: str = Field(min_length=3)
    summary: str = Field(min_length=10)
    content: str = Field(min_length=20)
    date: datetime
    category: str = Field(min_length=3)
    pinned: bool = False
    image_url: Optional[str] = None
    author_id: Optional[str] = None


class AnnouncementUpdate(UpdateModel):
    not_null = ("title", "summary", "content", "date", "category", "pinned")
    title: Optional[str] = Field(default=None, min_length=3)
    summary: Optional[str] = Field(default=None, min_length=10)
    content: Optional[str] = Field(default=None, min_length=20)
    date: Optional[datetime] = None
    category: Optional[str] = Field(default=None, min_length=3)
    pinned: Optional[bool] = None
    image_url: Optional[str] = None
    author_id: Optional[str] = None


class GalleryIn(ApiModel):
    title: str = Field(min_length=3)
    description: str = Field(min_length=10)
    image_url: str = Field(min_length=3)
    published_at: Optional[datetime] = None
    tags: List[str] = []


class GalleryUpdate(UpdateModel):
    not_null = ("title", "description", "image_url")
    title: Optional[str] = Field(default=None, min_length=3)
    description: Optional[str] = Field(default=None, min_length=10)
    image_url: Optional[str] = Field(default=None, min_length=3)
    published_at: Optional[datetime] = None
    tags: Optional[List[str]] = None


TeamCategory = Literal["leadership", "coordinators", "teachers", "staff", "support"]


class TeamMemberIn(ApiModel):
    name: str = Field(min_length=3)
    role: str = Field(min_length=3)
    category: TeamCategory
    department: Optional[str] = None
    email: Optional[str] = None
    education: Optional[str] = None
    experience: Optional[str] = None
    specialization: List[str] = []
    photo: Optional[str] = None
    order: int = Field(default=0, ge=0)


class TeamMemberUpdate(UpdateModel):
    not_null = ("name", "role", "category", "order")
    name: Optional[str] = Field(default=None, min_length=3)
    role: Optional[str] = Field(default=None, min_length=3)
    category: Optional[TeamCategory] = None
    department: Optional[str] = None
    email: Optional[str] = None
    education: Optional[str] = None
    experience: Optional[str] = None
    specialization: Optional[List[str]] = None
    photo: Optional[str] = None
    order: Optional[int] = Field(default=None, ge=0)


class FAQIn(ApiModel):
    question: str = Field(min_length=3)
    answer: str = Field(min_length=3)
    category: str = Field(min_length=2)
    order: int = Field(default=0, ge=0)


class FAQUpdate(UpdateModel):
    not_null = ("question", "answer", "category", "order")
    question: Optional[str] = Field(default=None, min_length=3)
    answer: Optional[str] = Field(default=None, min_length=3)
    category: Optional[str] = Field(default=None, min_length=2)
    order: Optional[int] = Field(default=None, ge=0)


class ExtracurricularIn(ApiModel):
    name: str = Field(min_length=3)
    description: str = Field(min_length=20)
    category: str = Field(min_length=3)
    schedule: str = Field(min_length=3)
    mentor_name: Optional[str] = None
    mentor: Optional[str] = None
    mentor_id: Optional[str] = None
    achievements: List[str] = []
    is_new: bool = False
    cover_image: Optional[str] = None


class ExtracurricularUpdate(UpdateModel):
    not_null = ("name", "description", "category", "schedule", "is_new")
    name: Optional[str] = Field(default=None, min_length=3)
    description: Optional[str] = Field(default=None, min_length=20)
    category: Optional[str] = Field(default=None, min_length=3)
    schedule: Optional[str] = Field(default=None, min_length=3)
    mentor_name: Optional[str] = None
    mentor: Optional[str] = None
    mentor_id: Optional[str] = None
    achievements: Optional[List[str]] = None
    is_new: Optional[bool] = None
    cover_image: Optional[str] = None


class ArticleIn(ApiModel):
    title: str = Field(min_length=5)
    slug: str = Field(min_length=5)
    cover_image: Optional[str] = None
    summary: str = Field(min_length=20)
    content: str = Field(min_length=50)
    published_at: Optional[datetime] = None
    author_id: Optional[str] = None
    tags: List[str] = []


class ArticleUpdate(UpdateModel):
    not_null = ("title", "summary", "content")
    title: Optional[str] = Field(default=None, min_length=5)
    slug: Optional[str] = Field(default=None, min_length=5)
    cover_image: Optional[str] = None
    summary: Optional[str] = Field(default=None, min_length=20)
    content: Optional[str] = Field(default=None, min_length=50)
    published_at: Optional[datetime] = None
    author_id: Optional[str] = None
    tags: Optional[List[str]] = None


class EventIn(ApiModel):
    title: str = Field(min_length=3)
    description: str = ""
    start_at: datetime
    end_at: Optional[datetime] = None
    location: Optional[str] = None
    visibility: str = "school"
    class_id: Optional[str] = None


class EventUpdate(ApiModel):
    title: Optional[str] = Field(default=None, min_length=3)
    description: Optional[str] = None
    start_at: Optional[datetime] = None
    end_at: Optional[datetime] = None
    location: Optional[str] = None
    visibility: Optional[str] = None
    class_id: Optional[str] = None


# admissions

class PCPDBIn(ApiModel):
    applicant_name: str = Field(min_length=3)
    email: Email
    phone: str = Field(min_length=8)
    notes: Optional[str] = None


class PCPDBUpdate(ApiModel):
    applicant_name: Optional[str] = Field(default=None, min_length=3)
    email: Optional[Email] = None
    phone: Optional[str] = Field(default=None, min_length=8)
    notes: Optional[str] = None
    status: Optional[Literal["pending", "approved", "rejected"]] = None
    submitted_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None


# academics

class ClassIn(ApiModel):
    name: str = Field(min_length=3)
    grade_level: int = Field(ge=1)
    academic_year: str = Field(min_length=4)
    description: Optional[str] = None
    homeroom_teacher_id: Optional[str] = None


class ClassUpdate(UpdateModel):
    not_null = ("name", "grade_level", "academic_year")
    name: Optional[str] = Field(default=None, min_length=3)
    grade_level: Optional[int] = Field(default=None, ge=1)
    academic_year: Optional[str] = Field(default=None, min_length=4)
    description: Optional[str] = None
    homeroom_teacher_id: Optional[str] = None


class ClassMembersIn(ApiModel):
    member_ids: List[str] = []


class AssignmentIn(ApiModel):
    teacher_id: str = Field(min_length=1)
    class_id: str = Field(min_length=1)
    subject_id: Optional[str] = None
    role: Optional[str] = None


class AssignmentUpdate(UpdateModel):
    not_null = ("teacher_id", "class_id")
    teacher_id: Optional[str] = Field(default=None, min_length=1)
    class_id: Optional[str] = Field(default=None, min_length=1)
    subject_id: Optional[str] = None
    role: Optional[str] = None


class SubjectIn(ApiModel):
    name: str = Field(min_length=3)
    code: str = Field(min_length=2)
    description: Optional[str] = None
    credits: int = Field(default=0, ge=0)
    color: Optional[str] = None


class SubjectUpdate(UpdateModel):
    not_null = ("name", "credits")
    name: Optional[str] = Field(default=None, min_length=3)
    code: Optional[str] = Field(default=None, min_length=2)
    description: Optional[str] = None
    credits: Optional[int] = Field(default=None, ge=0)
    color: Optional[str] = None


class ScheduleIn(ApiModel):
    class_id: str = Field(min_length=1)
    subject_id: str = Field(min_length=1)
    teacher_id: Optional[str] = None
    day_of_week: str = Field(min_length=3)
    start_time: str
    end_time: str
    location: Optional[str] = None
    notes: Optional[str] = None


class ScheduleUpdate(UpdateModel):
    not_null = ("class_id", "subject_id", "day_of_week")
    class_id: Optional[str] = Field(default=None, min_length=1)
    subject_id: Optional[str] = Field(default=None, min_length=1)
    teacher_id: Optional[str] = None
    day_of_week: Optional[str] = Field(default=None, min_length=3)
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    location: Optional[str] = None
    notes: Optional[str] = None


class GradeIn(ApiModel):
    student_id: str = Field(min_length=1)
    subject_id: str = Field(min_length=1)
    class_id: Optional[str] = None
    teacher_id: Optional[str] = None
    term: str = Field(min_length=3)
    assessment_type: Optional[str] = None
    score: Union[float, str]
    remarks: Optional[str] = None
    issued_at: Optional[str] = None


class GradeUpdate(UpdateModel):
    not_null = ("student_id", "subject_id", "term")
    student_id: Optional[str] = Field(default=None, min_length=1)
    subject_id: Optional[str] = Field(default=None, min_length=1)
    class_id: Optional[str] = None
    teacher_id: Optional[str] = None
    term: Optional[str] = Field(default=None, min_length=3)
    assessment_type: Optional[str] = None
    score: Optional[Union[float, str]] = None
    remarks: Optional[str] = None
    issued_at: Optional[str] = None


class NotificationIn(ApiModel):
    title: str = Field(min_length=3)
    body: str = Field(min_length=5)
    type: str = Field(min_length=3)
    user_id: Optional[str] = None
    target_role: Optional[str] = None
    metadata: Optional[Union[Dict[str, Any], str]] = None


class NotificationUpdate(UpdateModel):
    not_null = ("title", "body", "type")
    title: Optional[str] = Field(default=None, min_length=3)
    body: Optional[str] = Field(default=None, min_length=5)
    type: Optional[str] = Field(default=None, min_length=3)
    user_id: Optional[str] = None
    target_role: Optional[str] = None
    metadata: Optional[Union[Dict[str, Any], str]] = None
    read_at: Optional[datetime] = None


class NotificationMarkIn(ApiModel):
    read: bool = True


class UserIn(ApiModel):
    name: str = Field(min_length=3)
    email: Email
    role: Role
    status: Literal["active", "inactive"] = "active"
    phone: Optional[str] = Field(default=None, min_length=8)
    avatar_url: Optional[str] = Field(default=None, pattern=r"^https?://\S+$")
    class_ids: Optional[List[str]] = None
    password: str = Field(min_length=8)


class UserUpdate(ApiModel):
    name: Optional[str] = Field(default=None, min_length=3)
    email: Optional[Email] = None
    role: Optional[Role] = None
    status: Optional[Literal["active", "inactive"]] = None
    phone: Optional[str] = Field(default=None, min_length=8)
    avatar_url: Optional[str] = Field(default=None, pattern=r"^https?://\S+$")
    class_ids: Optional[List[str]] = None
    password: Optional[str] = Field(default=None, min_length=8)


# wawasan

class WawasanSectionIn(ApiModel):
    title: str = Field(min_length=3)
    media_url: Optional[str] = None
    content: Dict[str, Any] = {}


class TimelineEntryIn(ApiModel):
    period: str = Field(min_length=3)
    description: str = Field(min_length=10)
    order: Optional[int] = Field(default=None, ge=0)


class HeritageValueIn(ApiModel):
    value: str = Field(min_length=3)
    order: Optional[int] = Field(default=None, ge=0)


class StructureEntryIn(ApiModel):
    position: str = Field(min_length=2)
    name: str = Field(min_length=2)
    department: Optional[str] = None
    parent_id: Optional[str] = None
    order: Optional[int] = Field(default=None, ge=0)


# virtual tour

class VirtualTourIn(ApiModel):
    image_url: str = Field(min_length=1)
    auto_load: bool = True
    auto_rotate: float = Field(default=0, ge=0, le=10)
    pitch: float = Field(default=0, ge=-90, le=90)
    yaw: float = Field(default=0, ge=-360, le=360)
    hfov: float = Field(default=100, ge=40, le=120)


# documents

class DocumentStatusIn(ApiModel):
    status: Literal["active", "inactive", "revoked", "archived"]


class VerifyIn(ApiModel):
    code: Optional[Annotated[str, StringConstraints(strip_whitespace=True, min_length=4)]] = None
    hash: Optional[Annotated[str, StringConstraints(strip_whitespace=True, min_length=10)]] = None
    verifier_name: Optional[str] = None
    verifier_email: Optional[Email] = None
    verifier_role: Optional[str] = None

    @model_validator(mode="after")
    def code_or_hash(self):
        if not self.code and not self.hash:
            raise ValueError("Verification requires a code or file hash")
        return self


# validator / seo

class UrlIn(ApiModel):
    url: str = Field(min_length=1, max_length=2048)


class SeoMessage(ApiModel):
    role: Literal["user", "assistant"]
    content: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=2000)]


class SeoChatIn(ApiModel):
    topic: Literal["landing", "announcements", "gallery", "faq"]
    messages: List[SeoMessage] = Field(min_length=1, max_length=12)
