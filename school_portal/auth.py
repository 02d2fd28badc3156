"""Authentication helpers and FastAPI security dependencies.

Session tokens are HS256 JWTs carrying `sub`, `role`, `email` and `name`.
Route guards only trust the token: they do not hit the database, so a
role change takes effect when the user logs in again.

`require_roles(...)` builds a dependency that returns the decoded
`TokenUser` or raises 401/403. `optional_user` is used by public
endpoints that record the caller when a token happens to be present.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from passlib.context import CryptContext
from pydantic import BaseModel

from .config import settings
from .errors import Forbidden, Unauthorized

PWD_CTX = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
bearer_scheme = HTTPBearer(auto_error=False)


class TokenUser(BaseModel):
    sub: str
    role: str
    email: Optional[str] = None
    name: Optional[str] = None


def hash_password(password: str) -> str:
    return PWD_CTX.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    try:
        return PWD_CTX.verify(password, hashed)
    except (ValueError, TypeError):
        return False


def create_token(user_id: str, role: str, email: Optional[str], name: Optional[str]) -> str:
    expire = datetime.now(timezone.utc) + timedelta(hours=settings.JWT_EXPIRE_HOURS)
    payload = {"sub": user_id, "role": role, "email": email, "name": name, "exp": int(expire.timestamp())}
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> TokenUser:
    """Decode and verify a JWT token.

    Returns the token user on success or raises `Unauthorized` for an
    expired, tampered or incomplete token.
    """
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.PyJWTError:
        raise Unauthorized("Invalid token")
    if not payload.get("sub") or not payload.get("role"):
        raise Unauthorized("Invalid token")
    return TokenUser(
        sub=str(payload["sub"]),
        role=str(payload["role"]),
        email=payload.get("email"),
        name=payload.get("name"),
    )


def require_roles(*roles: str):
    """Dependency factory: any authenticated user when `roles` is empty."""

    def dependency(credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme)) -> TokenUser:
        if credentials is None:
            raise Unauthorized("Authorization header required")
        user = decode_token(credentials.credentials)
        if roles and user.role not in roles:
            raise Forbidden("Forbidden")
        return user

    return dependency


def optional_user(credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme)) -> Optional[TokenUser]:
    if credentials is None:
        return None
    try:
        return decode_token(credentials.credentials)
    except Unauthorized:
        return None


any_user = require_roles()
admin_only = require_roles("admin")
staff = require_roles("admin", "teacher")
academic = require_roles("admin", "teacher", "student")
