"""Public website content: announcements, gallery, team, FAQ,
extracurriculars and articles.

Reads are public; writes come from the dashboard. Items with list-valued
fields (tags, specializations, achievements) keep them in child rows that
are replaced wholesale whenever the list is sent.
"""

from typing import List, Optional

from sqlmodel import Session

from .. import models, repositories, schemas
from ..errors import BadRequest, Conflict, NotFound
from ..serializers import (
    row_to_dict,
    serialize_article,
    serialize_extracurricular,
    serialize_gallery_item,
    serialize_team_member,
)
from ..utils.slug import gallery_slug
from .common import apply_changes, commit_or_conflict, drop_none, get_or_404, normalize


class AnnouncementService:
    def __init__(self, session: Session):
        self.session = session
        self.repo = repositories.Repository(session, models.Announcement)

    def list(self) -> List[dict]:
        rows = self.repo.list(
            models.Announcement.pinned.desc(),
            models.Announcement.date.desc(),
            models.Announcement.created_at.desc(),
        )
        return [row_to_dict(r) for r in rows]

    def create(self, payload: schemas.AnnouncementIn) -> dict:
        row = models.Announcement(**normalize(payload.model_dump()))
        return row_to_dict(self.repo.save(row))

    def update(self, announcement_id: str, payload: schemas.AnnouncementUpdate) -> dict:
        row = get_or_404(self.repo, announcement_id, "Announcement not found")
        apply_changes(row, payload.changes())
        return row_to_dict(self.repo.save(row))

    def delete(self, announcement_id: str) -> None:
        self.repo.delete(get_or_404(self.repo, announcement_id, "Announcement not found"))


class GalleryService:
    """Gallery items are addressed by id or by their generated slug."""
    def __init__(self, session: Session):
        self.session = session
        self.repo = repositories.Repository(session, models.GalleryItem)
        self.tags = repositories.gallery_tags(session)

    def _serialize_many(self, rows) -> List[dict]:
        tags = self.tags.values_map(r.id for r in rows)
        return [serialize_gallery_item(r, tags[r.id]) for r in rows]

    def _serialize(self, row: models.GalleryItem) -> dict:
        return serialize_gallery_item(row, self.tags.values_for(row.id))

    def list(self) -> List[dict]:
        rows = self.repo.list(models.GalleryItem.published_at.desc(), models.GalleryItem.created_at.desc())
        return self._serialize_many(rows)

    def get_by_slug(self, slug: str) -> dict:
        row = self.repo.get(slug)
        if row is None:
            row = next((r for r in self.repo.list() if gallery_slug(r.title, r.id) == slug), None)
        if row is None:
            raise NotFound("Gallery item not found")
        return self._serialize(row)

    def create(self, payload: schemas.GalleryIn) -> dict:
        data = drop_none(normalize(payload.model_dump(exclude={"tags"})), "published_at")
        row = models.GalleryItem(**data)
        self.session.add(row)
        self.session.flush()
        self.tags.replace(row.id, payload.tags)
        self.session.commit()
        self.session.refresh(row)
        return self._serialize(row)

    def update(self, item_id: str, payload: schemas.GalleryUpdate) -> dict:
        row = get_or_404(self.repo, item_id, "Gallery item not found")
        changes = payload.changes()
        tags = changes.pop("tags", None)
        apply_changes(row, drop_none(changes, "published_at"))
        if tags is not None:
            self.tags.replace(row.id, tags)
        return self._serialize(self.repo.save(row))

    def delete(self, item_id: str) -> None:
        row = get_or_404(self.repo, item_id, "Gallery item not found")
        self.tags.delete_for(row.id)
        self.repo.delete(row)


class TeamService:
    def __init__(self, session: Session):
        self.session = session
        self.repo = repositories.Repository(session, models.TeamMember)
        self.specializations = repositories.team_specializations(session)

    def list_rows(self) -> List[models.TeamMember]:
        return self.repo.list(models.TeamMember.order, models.TeamMember.created_at)

    def list(self) -> List[dict]:
        rows = self.list_rows()
        values = self.specializations.values_map(r.id for r in rows)
        return [serialize_team_member(r, values[r.id]) for r in rows]

    def _serialize(self, row: models.TeamMember) -> dict:
        return serialize_team_member(row, self.specializations.values_for(row.id))

    @staticmethod
    def _fields(changes: dict) -> dict:
        if "photo" in changes:
            changes["photo_url"] = changes.pop("photo")
        changes.pop("specialization", None)
        return changes

    def create(self, payload: schemas.TeamMemberIn) -> dict:
        row = models.TeamMember(**self._fields(payload.model_dump()))
        self.session.add(row)
        self.session.flush()
        self.specializations.replace(row.id, payload.specialization)
        self.session.commit()
        self.session.refresh(row)
        return self._serialize(row)

    def update(self, member_id: str, payload: schemas.TeamMemberUpdate) -> dict:
        row = get_or_404(self.repo, member_id, "Team member not found")
        changes = payload.changes()
        specialization = changes.get("specialization")
        apply_changes(row, self._fields(changes))
        if specialization is not None:
            self.specializations.replace(row.id, specialization)
        return self._serialize(self.repo.save(row))

    def delete(self, member_id: str) -> None:
        row = get_or_404(self.repo, member_id, "Team member not found")
        self.specializations.delete_for(row.id)
        self.repo.delete(row)


class FAQService:
    def __init__(self, session: Session):
        self.repo = repositories.Repository(session, models.FAQItem)

    def list(self) -> List[dict]:
        return [row_to_dict(r) for r in self.repo.list(models.FAQItem.order, models.FAQItem.created_at)]

    def create(self, payload: schemas.FAQIn) -> dict:
        return row_to_dict(self.repo.save(models.FAQItem(**payload.model_dump())))

    def update(self, item_id: str, payload: schemas.FAQUpdate) -> dict:
        row = get_or_404(self.repo, item_id, "FAQ not found")
        apply_changes(row, payload.changes())
        return row_to_dict(self.repo.save(row))

    def delete(self, item_id: str) -> None:
        self.repo.delete(get_or_404(self.repo, item_id, "FAQ not found"))


class ExtracurricularService:
    def __init__(self, session: Session):
        self.session = session
        self.repo = repositories.Repository(session, models.Extracurricular)
        self.achievements = repositories.extracurricular_achievements(session)

    def list(self) -> List[dict]:
        rows = self.repo.list(models.Extracurricular.is_new.desc(), models.Extracurricular.created_at.desc())
        values = self.achievements.values_map(r.id for r in rows)
        return [serialize_extracurricular(r, values[r.id]) for r in rows]

    def _serialize(self, row: models.Extracurricular) -> dict:
        return serialize_extracurricular(row, self.achievements.values_for(row.id))

    @staticmethod
    def _fields(changes: dict) -> dict:
        # `mentor` is the public-site alias of `mentorName`
        mentor = changes.pop("mentor", None)
        if mentor and not changes.get("mentor_name"):
            changes["mentor_name"] = mentor
        if "mentor_name" in changes and not changes["mentor_name"]:
            del changes["mentor_name"]
        changes.pop("achievements", None)
        return changes

    def create(self, payload: schemas.ExtracurricularIn) -> dict:
        data = self._fields(payload.model_dump())
        if not data.get("mentor_name"):
            raise BadRequest("Pembina ekstrakurikuler wajib diisi")
        row = models.Extracurricular(**data)
        self.session.add(row)
        self.session.flush()
        self.achievements.replace(row.id, payload.achievements)
        self.session.commit()
        self.session.refresh(row)
        return self._serialize(row)

    def update(self, item_id: str, payload: schemas.ExtracurricularUpdate) -> dict:
        row = get_or_404(self.repo, item_id, "Extracurricular not found")
        changes = payload.changes()
        achievements = changes.get("achievements")
        apply_changes(row, self._fields(changes))
        if achievements is not None:
            self.achievements.replace(row.id, achievements)
        return self._serialize(self.repo.save(row))

    def delete(self, item_id: str) -> None:
        row = get_or_404(self.repo, item_id, "Extracurricular not found")
        self.achievements.delete_for(row.id)
        self.repo.delete(row)


class ArticleService:
    SLUG_TAKEN = "Slug artikel sudah digunakan"

    def __init__(self, session: Session):
        self.session = session
        self.repo = repositories.ArticleRepository(session)
        self.tags = repositories.article_tags(session)

    def list(self) -> List[dict]:
        rows = self.repo.list(models.Article.published_at.desc(), models.Article.created_at.desc())
        tags = self.tags.values_map(r.id for r in rows)
        return [serialize_article(r, tags[r.id]) for r in rows]

    def _serialize(self, row: models.Article) -> dict:
        return serialize_article(row, self.tags.values_for(row.id))

    def _ensure_slug_free(self, slug: str, exclude_id: Optional[str] = None) -> None:
        existing = self.repo.get_by_slug(slug)
        if existing is not None and existing.id != exclude_id:
            raise Conflict(self.SLUG_TAKEN)

    def get_by_slug(self, slug: str) -> dict:
        row = self.repo.get_by_slug(slug) or self.repo.get(slug)
        if row is None:
            raise NotFound("Artikel tidak ditemukan")
        return self._serialize(row)

    def create(self, payload: schemas.ArticleIn) -> dict:
        slug = payload.slug.strip()
        self._ensure_slug_free(slug)
        data = drop_none(normalize(payload.model_dump(exclude={"tags"})), "published_at")
        data["slug"] = slug
        row = models.Article(**data)
        self.session.add(row)
        self.session.flush()
        self.tags.replace(row.id, payload.tags)
        commit_or_conflict(self.session, self.SLUG_TAKEN)
        self.session.refresh(row)
        return self._serialize(row)

    def update(self, article_id: str, payload: schemas.ArticleUpdate) -> dict:
        row = get_or_404(self.repo, article_id, "Artikel tidak ditemukan")
        changes = payload.changes()
        tags = changes.pop("tags", None)
        if changes.get("slug"):
            changes["slug"] = changes["slug"].strip()
            self._ensure_slug_free(changes["slug"], exclude_id=row.id)
        apply_changes(row, drop_none(changes, "published_at", "slug"))
        if tags is not None:
            self.tags.replace(row.id, tags)
        self.session.add(row)
        commit_or_conflict(self.session, self.SLUG_TAKEN)
        self.session.refresh(row)
        return self._serialize(row)

    def delete(self, article_id: str) -> None:
        row = get_or_404(self.repo, article_id, "Artikel tidak ditemukan")
        self.tags.delete_for(row.id)
        self.repo.delete(row)
