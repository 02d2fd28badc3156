"""Login and session lookups."""

import logging

from sqlmodel import Session

from .. import repositories
from ..auth import create_token, verify_password
from ..errors import NotFound, Unauthorized
from ..models import utcnow
from ..serializers import session_user

_LOGGER = logging.getLogger("school_portal.auth")


class AuthService:
    """Authentication related operations."""
    def __init__(self, session: Session):
        self.session = session
        self.user_repo = repositories.UserRepository(session)
        self.memberships = repositories.MembershipRepository(session)

    def login(self, email: str, password: str) -> dict:
        """Verify credentials and return `{token, user}`.

        Unknown emails, wrong passwords and inactive accounts all get the
        same 401 so the response does not reveal which one failed.
        """
        user = self.user_repo.get_by_email(email.strip())
        if not user or user.status != "active" or not verify_password(password, user.password_hash):
            _LOGGER.info("login rejected for %s", email.lower())
            raise Unauthorized("Email atau password salah")
        user.last_login = utcnow()
        user = self.user_repo.save(user)
        token = create_token(user.id, user.role, user.email, user.name)
        return {"token": token, "user": session_user(user, self.memberships.classes_for_user(user.id))}

    def me(self, user_id: str) -> dict:
        user = self.user_repo.get(user_id)
        if user is None:
            raise NotFound("User not found")
        return session_user(user, self.memberships.classes_for_user(user.id))
