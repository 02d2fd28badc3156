"""Row -> JSON helpers.

Every response body is camelCase with ISO-8601 `...Z` timestamps. Simple
rows go through `row_to_dict`; aggregates with related rows get their own
function that takes the already-loaded relations as arguments, so
serializers never query the database themselves.
"""

import json
import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from pydantic.alias_generators import to_camel
from sqlmodel import SQLModel

from . import models
from .utils.dates import iso
from .utils.slug import gallery_slug

_LOGGER = logging.getLogger("school_portal.serializers")


def row_to_dict(row: SQLModel, exclude: Iterable[str] = ()) -> Dict[str, Any]:
    skip = set(exclude)
    out: Dict[str, Any] = {}
    for key, value in row.model_dump().items():
        if key in skip:
            continue
        out[to_camel(key)] = iso(value) if isinstance(value, datetime) else value
    return out


def load_json(raw: Optional[str], default: Any = None) -> Any:
    if not raw:
        return default
    try:
        return json.loads(raw)
    except ValueError:
        _LOGGER.warning("Stored JSON could not be parsed: %.60s", raw)
        return default


def user_brief(user: Optional[models.User]) -> Optional[dict]:
    if user is None:
        return None
    return {"id": user.id, "name": user.name, "email": user.email}


def class_brief(school_class: Optional[models.SchoolClass]) -> Optional[dict]:
    if school_class is None:
        return None
    return {"id": school_class.id, "name": school_class.name}


def subject_brief(subject: Optional[models.Subject]) -> Optional[dict]:
    if subject is None:
        return None
    return {"id": subject.id, "name": subject.name, "code": subject.code}


# users

def class_summary(school_class: models.SchoolClass) -> dict:
    return {
        "id": school_class.id,
        "name": school_class.name,
        "gradeLevel": school_class.grade_level,
        "academicYear": school_class.academic_year,
    }


def session_user(user: models.User, classes: List[models.SchoolClass]) -> dict:
    """Shape returned by login and `/auth/me`."""
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "role": user.role,
        "status": user.status,
        "classIds": [c.id for c in classes],
        "classes": [class_summary(c) for c in classes],
        "lastLogin": iso(user.last_login),
    }


def serialize_user(user: models.User, classes: List[models.SchoolClass]) -> dict:
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "role": user.role,
        "status": user.status,
        "phone": user.phone,
        "avatarUrl": user.avatar_url,
        "classIds": [c.id for c in classes],
        "classes": [class_summary(c) for c in classes],
        "lastLogin": iso(user.last_login),
        "createdAt": iso(user.created_at),
        "updatedAt": iso(user.updated_at),
    }


# academics

def serialize_assignment(
    assignment: models.TeacherClassAssignment,
    teacher: Optional[models.User],
    school_class: Optional[models.SchoolClass],
    subject: Optional[models.Subject],
) -> dict:
    return {
        "id": assignment.id,
        "teacher": user_brief(teacher),
        "class": class_brief(school_class),
        "subject": subject_brief(subject),
        "role": assignment.role,
        "createdAt": iso(assignment.created_at),
        "updatedAt": iso(assignment.updated_at),
    }


def serialize_class(
    school_class: models.SchoolClass,
    homeroom: Optional[models.User],
    members: List[tuple],
    assignments: List[tuple],
) -> dict:
    """`members` is [(membership, user)], `assignments` is [(assignment, teacher, subject)]."""
    data = row_to_dict(school_class)
    data["homeroomTeacher"] = user_brief(homeroom)
    data["memberCount"] = len(members)
    data["members"] = [
        {
            "id": user.id,
            "name": user.name,
            "email": user.email,
            "role": user.role,
            "assignedAt": iso(membership.assigned_at),
        }
        for membership, user in members
    ]
    data["teacherAssignments"] = [
        {
            "id": assignment.id,
            "role": assignment.role,
            "subject": subject_brief(subject),
            "teacher": user_brief(teacher),
            "createdAt": iso(assignment.created_at),
            "updatedAt": iso(assignment.updated_at),
        }
        for assignment, teacher, subject in assignments
    ]
    return data


def serialize_schedule(
    schedule: models.ClassSchedule,
    school_class: Optional[models.SchoolClass],
    subject: Optional[models.Subject],
    teacher: Optional[models.User],
) -> dict:
    data = row_to_dict(schedule)
    data["class"] = class_brief(school_class)
    data["subject"] = subject_brief(subject)
    data["teacher"] = user_brief(teacher)
    return data


def serialize_grade(
    grade: models.Grade,
    student: Optional[models.User],
    subject: Optional[models.Subject],
    school_class: Optional[models.SchoolClass],
    teacher: Optional[models.User],
) -> dict:
    data = row_to_dict(grade)
    data["student"] = user_brief(student)
    data["subject"] = subject_brief(subject)
    data["class"] = class_brief(school_class)
    data["teacher"] = user_brief(teacher)
    return data


def serialize_notification(notification: models.Notification, user: Optional[models.User]) -> dict:
    data = row_to_dict(notification, exclude=("meta_json",))
    data["metadata"] = load_json(notification.meta_json)
    data["user"] = user_brief(user)
    return data


# public content

def serialize_gallery_item(item: models.GalleryItem, tags: List[str]) -> dict:
    data = row_to_dict(item)
    data["tags"] = tags
    data["slug"] = gallery_slug(item.title, item.id)
    return data


def serialize_team_member(member: models.TeamMember, specializations: List[str]) -> dict:
    data = row_to_dict(member, exclude=("photo_url",))
    data["photo"] = member.photo_url
    data["specialization"] = specializations
    return data


def serialize_extracurricular(item: models.Extracurricular, achievements: List[str]) -> dict:
    data = row_to_dict(item)
    data["mentor"] = item.mentor_name
    data["achievements"] = achievements
    return data


def serialize_article(article: models.Article, tags: List[str]) -> dict:
    data = row_to_dict(article)
    data["tags"] = tags
    return data


def serialize_event(
    event: models.SchoolEvent,
    school_class: Optional[models.SchoolClass],
    created_by: Optional[models.User],
) -> dict:
    return {
        "id": event.id,
        "title": event.title,
        "description": event.description,
        "startAt": iso(event.start_at),
        "endAt": iso(event.end_at),
        "location": event.location,
        "visibility": event.visibility,
        "class": class_brief(school_class),
        "createdBy": user_brief(created_by),
        "createdAt": iso(event.created_at),
        "updatedAt": iso(event.updated_at),
    }


def serialize_section(section: models.WawasanContent, content: Any) -> dict:
    return {
        "id": section.id,
        "key": section.key,
        "title": section.title,
        "mediaUrl": section.media_url,
        "content": content,
        "createdAt": iso(section.created_at),
        "updatedAt": iso(section.updated_at),
    }


def serialize_validator_history(entry: models.ValidatorHistory) -> dict:
    data = row_to_dict(entry, exclude=("categories_json",))
    data["categories"] = load_json(entry.categories_json, {})
    return data


# documents

def serialize_share_token(token: models.DocumentShareToken) -> dict:
    remaining = None
    if token.max_downloads is not None:
        remaining = max(token.max_downloads - token.download_count, 0)
    return {
        "id": token.id,
        "token": token.token,
        "expiresAt": iso(token.expires_at),
        "maxDownloads": token.max_downloads,
        "downloadCount": token.download_count,
        "remainingDownloads": remaining,
        "createdAt": iso(token.created_at),
    }


def serialize_audience(
    audience: models.DocumentAudience,
    user: Optional[models.User],
    school_class: Optional[models.SchoolClass],
) -> dict:
    return {
        "id": audience.id,
        "type": audience.type,
        "user": {**user_brief(user), "role": user.role} if user is not None else None,
        "class": class_summary(school_class) if school_class is not None else None,
        "createdAt": iso(audience.created_at),
    }


def serialize_document(
    document: models.DocumentRecord,
    issuer: Optional[models.User] = None,
    audiences: Optional[List[dict]] = None,
    share_tokens: Optional[List[models.DocumentShareToken]] = None,
) -> dict:
    data = row_to_dict(document, exclude=("meta_json",))
    data["metadata"] = load_json(document.meta_json)
    data["issuer"] = user_brief(issuer)
    if audiences is not None:
        data["audiences"] = audiences
    if share_tokens is not None:
        data["shareTokens"] = [serialize_share_token(t) for t in share_tokens]
    return data


def serialize_verification_log(log: models.DocumentVerificationLog, verifier: Optional[models.User]) -> dict:
    data = row_to_dict(log, exclude=("meta_json",))
    data["metadata"] = load_json(log.meta_json)
    data["verifier"] = None
    if verifier is not None:
        data["verifier"] = {**user_brief(verifier), "role": verifier.role}
    return data


def serialize_shared_document(document: models.DocumentRecord, token: models.DocumentShareToken) -> dict:
    """Guest view of a document behind a share link."""
    shared = serialize_share_token(token)
    del shared["id"]
    return {
        "document": {
            "id": document.id,
            "title": document.title,
            "description": document.description,
            "originalFileName": document.original_file_name,
            "fileSize": document.file_size,
            "mimeType": document.mime_type,
            "issuedFor": document.issued_for,
            "issuedAt": iso(document.issued_at),
            "status": document.status,
            "createdAt": iso(document.created_at),
        },
        "shareToken": shared,
    }
