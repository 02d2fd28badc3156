"""Wawasan ("profile") pages: history, vision/mission, structure, team.

A section stores free-form JSON `content`. Responses merge the ordered
child rows into it: the `sejarah` timeline and heritage values, the
`struktur` entries and, for `our-teams`, the team members.
"""

import json
from typing import List, Type

from sqlmodel import Session, SQLModel

from .. import models, repositories, schemas
from ..errors import BadRequest, NotFound
from ..serializers import load_json, row_to_dict, serialize_section
from .common import apply_changes, get_or_404
from .content import TeamService

SECTION_KEYS = ("sejarah", "visi-misi", "struktur", "our-teams")
TIMELINE_SECTION = "sejarah"
STRUCTURE_SECTION = "struktur"


def check_key(key: str) -> str:
    if key not in SECTION_KEYS:
        raise BadRequest("Invalid wawasan section key")
    return key


def _entry(row: SQLModel) -> dict:
    return row_to_dict(row, exclude=("section_key",))


class WawasanService:
    def __init__(self, session: Session):
        self.session = session
        self.repo = repositories.WawasanRepository(session)

    def _build(self, section: models.WawasanContent) -> dict:
        content = load_json(section.content, {})
        if not isinstance(content, dict):
            content = {}
        if section.key == TIMELINE_SECTION:
            heritage = content.get("heritage") if isinstance(content.get("heritage"), dict) else {}
            content["timeline"] = [_entry(r) for r in self.repo.entries(models.WawasanTimelineEntry, TIMELINE_SECTION)]
            content["heritage"] = {
                **heritage,
                "values": [_entry(r) for r in self.repo.entries(models.WawasanHeritageValue, TIMELINE_SECTION)],
            }
        elif section.key == STRUCTURE_SECTION:
            content["entries"] = [_entry(r) for r in self.repo.entries(models.WawasanStructureEntry, STRUCTURE_SECTION)]
        elif section.key == "our-teams":
            content["members"] = TeamService(self.session).list()
        return serialize_section(section, content)

    def list(self) -> List[dict]:
        return [self._build(s) for s in self.repo.list_sections()]

    def get(self, key: str) -> dict:
        section = self.repo.get_section(check_key(key))
        if section is None:
            raise NotFound("Wawasan section not found")
        return self._build(section)

    def upsert(self, key: str, payload: schemas.WawasanSectionIn) -> dict:
        check_key(key)
        changes = payload.changes()
        section = self.repo.get_section(key)
        if section is None:
            section = models.WawasanContent(key=key, title=payload.title)
        section.title = payload.title
        if "media_url" in changes:
            media = (changes["media_url"] or "").strip()
            section.media_url = media or None
        section.content = json.dumps(payload.content)
        section.updated_at = models.utcnow()
        self.session.add(section)
        self.session.commit()
        self.session.refresh(section)
        return self._build(section)

    # ordered child entries

    def list_entries(self, model: Type[SQLModel], section_key: str) -> List[dict]:
        return [_entry(r) for r in self.repo.entries(model, section_key)]

    def create_entry(self, model: Type[SQLModel], section_key: str, data: dict) -> dict:
        if data.get("order") is None:
            data["order"] = self.repo.next_order(model, section_key)
        row = model(**data, section_key=section_key)
        self.session.add(row)
        self.repo.touch_section(section_key)
        self.session.commit()
        self.session.refresh(row)
        return _entry(row)

    def update_entry(self, model: Type[SQLModel], section_key: str, entry_id: str, data: dict) -> dict:
        repo = repositories.Repository(self.session, model)
        row = get_or_404(repo, entry_id, "Wawasan entry not found")
        if row.section_key != section_key:
            raise NotFound("Wawasan entry not found")
        if data.get("order") is None:
            data["order"] = self.repo.next_order(model, section_key)
        apply_changes(row, data)
        self.session.add(row)
        self.repo.touch_section(section_key)
        self.session.commit()
        self.session.refresh(row)
        return _entry(row)

    def delete_entry(self, model: Type[SQLModel], section_key: str, entry_id: str) -> None:
        repo = repositories.Repository(self.session, model)
        row = get_or_404(repo, entry_id, "Wawasan entry not found")
        if row.section_key != section_key:
            raise NotFound("Wawasan entry not found")
        self.session.delete(row)
        self.repo.touch_section(section_key)
        self.session.commit()
