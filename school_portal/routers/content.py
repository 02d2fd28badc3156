"""Public website content. Reads are open; writes need a dashboard role."""

from fastapi import APIRouter, Depends, Response
from sqlmodel import Session

from ..auth import admin_only, staff
from ..database import get_session
from ..errors import invalid_payload
from ..schemas import (
    AnnouncementIn,
    AnnouncementUpdate,
    ArticleIn,
    ArticleUpdate,
    ExtracurricularIn,
    ExtracurricularUpdate,
    FAQIn,
    FAQUpdate,
    GalleryIn,
    GalleryUpdate,
    TeamMemberIn,
    TeamMemberUpdate,
)
from ..services.content import (
    AnnouncementService,
    ArticleService,
    ExtracurricularService,
    FAQService,
    GalleryService,
    TeamService,
)

announcements = APIRouter(prefix="/announcements", tags=["announcements"])
gallery = APIRouter(prefix="/gallery", tags=["gallery"])
teams = APIRouter(prefix="/teams", tags=["teams"])
faq = APIRouter(prefix="/faq", tags=["faq"])
extracurriculars = APIRouter(prefix="/extracurriculars", tags=["extracurriculars"])
articles = APIRouter(prefix="/articles", tags=["articles"])
routers = [announcements, gallery, teams, faq, extracurriculars, articles]


# announcements

@announcements.get('')
def list_announcements(db: Session = Depends(get_session)):
    return AnnouncementService(db).list()


@announcements.post('', status_code=201, dependencies=[Depends(admin_only)])
@invalid_payload('Invalid announcement payload')
def create_announcement(payload: AnnouncementIn, db: Session = Depends(get_session)):
    return AnnouncementService(db).create(payload)


@announcements.put('/{announcement_id}', dependencies=[Depends(admin_only)])
@invalid_payload('Invalid update payload')
def update_announcement(announcement_id: str, payload: AnnouncementUpdate, db: Session = Depends(get_session)):
    return AnnouncementService(db).update(announcement_id, payload)


@announcements.delete('/{announcement_id}', status_code=204, dependencies=[Depends(admin_only)])
def delete_announcement(announcement_id: str, db: Session = Depends(get_session)):
    AnnouncementService(db).delete(announcement_id)
    return Response(status_code=204)


# gallery

@gallery.get('')
def list_gallery(db: Session = Depends(get_session)):
    return GalleryService(db).list()


@gallery.get('/{slug}')
def get_gallery_item(slug: str, db: Session = Depends(get_session)):
    return GalleryService(db).get_by_slug(slug)


@gallery.post('', status_code=201, dependencies=[Depends(staff)])
@invalid_payload('Invalid gallery payload')
def create_gallery_item(payload: GalleryIn, db: Session = Depends(get_session)):
    return GalleryService(db).create(payload)


@gallery.put('/{item_id}', dependencies=[Depends(staff)])
@invalid_payload('Invalid gallery update payload')
def update_gallery_item(item_id: str, payload: GalleryUpdate, db: Session = Depends(get_session)):
    return GalleryService(db).update(item_id, payload)


@gallery.delete('/{item_id}', status_code=204, dependencies=[Depends(admin_only)])
def delete_gallery_item(item_id: str, db: Session = Depends(get_session)):
    GalleryService(db).delete(item_id)
    return Response(status_code=204)


# team members

@teams.get('')
def list_team(db: Session = Depends(get_session)):
    return TeamService(db).list()


@teams.post('', status_code=201, dependencies=[Depends(admin_only)])
@invalid_payload('Invalid team member payload')
def create_team_member(payload: TeamMemberIn, db: Session = Depends(get_session)):
    return TeamService(db).create(payload)


@teams.put('/{member_id}', dependencies=[Depends(admin_only)])
@invalid_payload('Invalid team member payload')
def update_team_member(member_id: str, payload: TeamMemberUpdate, db: Session = Depends(get_session)):
    return TeamService(db).update(member_id, payload)


@teams.delete('/{member_id}', status_code=204, dependencies=[Depends(admin_only)])
def delete_team_member(member_id: str, db: Session = Depends(get_session)):
    TeamService(db).delete(member_id)
    return Response(status_code=204)


# faq

@faq.get('')
def list_faq(db: Session = Depends(get_session)):
    return FAQService(db).list()


@faq.post('', status_code=201, dependencies=[Depends(admin_only)])
@invalid_payload('Invalid FAQ payload')
def create_faq(payload: FAQIn, db: Session = Depends(get_session)):
    return FAQService(db).create(payload)


@faq.put('/{item_id}', dependencies=[Depends(admin_only)])
@invalid_payload('Invalid FAQ payload')
def update_faq(item_id: str, payload: FAQUpdate, db: Session = Depends(get_session)):
    return FAQService(db).update(item_id, payload)


@faq.delete('/{item_id}', status_code=204, dependencies=[Depends(admin_only)])
def delete_faq(item_id: str, db: Session = Depends(get_session)):
    FAQService(db).delete(item_id)
    return Response(status_code=204)


# extracurriculars

@extracurriculars.get('')
def list_extracurriculars(db: Session = Depends(get_session)):
    return ExtracurricularService(db).list()


@extracurriculars.post('', status_code=201, dependencies=[Depends(staff)])
@invalid_payload('Invalid extracurricular payload')
def create_extracurricular(payload: ExtracurricularIn, db: Session = Depends(get_session)):
    return ExtracurricularService(db).create(payload)


@extracurriculars.put('/{item_id}', dependencies=[Depends(staff)])
@invalid_payload('Invalid update payload')
def update_extracurricular(item_id: str, payload: ExtracurricularUpdate, db: Session = Depends(get_session)):
    return ExtracurricularService(db).update(item_id, payload)


@extracurriculars.delete('/{item_id}', status_code=204, dependencies=[Depends(admin_only)])
def delete_extracurricular(item_id: str, db: Session = Depends(get_session)):
    ExtracurricularService(db).delete(item_id)
    return Response(status_code=204)


# articles

@articles.get('')
def list_articles(db: Session = Depends(get_session)):
    return ArticleService(db).list()


@articles.get('/slug/{slug}')
def get_article(slug: str, db: Session = Depends(get_session)):
    return ArticleService(db).get_by_slug(slug)


@articles.post('', status_code=201, dependencies=[Depends(staff)])
@invalid_payload('Invalid article payload')
def create_article(payload: ArticleIn, db: Session = Depends(get_session)):
    return ArticleService(db).create(payload)


@articles.put('/{article_id}', dependencies=[Depends(staff)])
@invalid_payload('Invalid update payload')
def update_article(article_id: str, payload: ArticleUpdate, db: Session = Depends(get_session)):
    return ArticleService(db).update(article_id, payload)


@articles.delete('/{article_id}', status_code=204, dependencies=[Depends(admin_only)])
def delete_article(article_id: str, db: Session = Depends(get_session)):
    ArticleService(db).delete(article_id)
    return Response(status_code=204)
