import io
import os
import tempfile
import uuid
from pathlib import Path

# Point every store at a scratch directory before the app is imported.
_TMP = Path(tempfile.mkdtemp(prefix="school-portal-tests-"))
os.environ["ENV"] = "test"
os.environ["DATABASE_URL"] = f"sqlite:///{_TMP / 'test.db'}"
os.environ["DATA_DIR"] = str(_TMP / "data")
os.environ["UPLOADS_DIR"] = str(_TMP / "uploads")
os.environ["JWT_SECRET"] = "test-secret-key-for-pytest"
os.environ["ALLOW_ORIGINS"] = "http://localhost:5173"
for _key in ("SENTRY_DSN", "VIRUSTOTAL_API_KEY", "GOOGLE_SAFEBROWSING_KEY", "GOOGLE_GEMINI_API_KEY"):
    os.environ.pop(_key, None)

import pytest
from PIL import Image
from pypdf import PdfWriter
from sqlmodel import Session

from school_portal import models
from school_portal.auth import create_token, hash_password
from school_portal.database import engine
from school_portal.main import app  # noqa: F401  creates tables and loads settings
from school_portal.repositories import UserRepository
from school_portal.utils.rate_limit import limiter

PASSWORD = "password123"


class Account:
    def __init__(self, user: models.User):
        self.id = user.id
        self.name = user.name
        self.email = user.email
        self.role = user.role
        self.token = create_token(user.id, user.role, user.email, user.name)
        self.headers = {"Authorization": f"Bearer {self.token}"}


def ensure_user(name: str, email: str, role: str, status: str = "active") -> models.User:
    with Session(engine) as session:
        repo = UserRepository(session)
        user = repo.get_by_email(email)
        if user is None:
            user = repo.save(models.User(
                name=name, email=email, role=role, status=status, password_hash=hash_password(PASSWORD)
            ))
        return user


@pytest.fixture(scope="session")
def accounts():
    """Admin, teacher, student and parent accounts with signed tokens."""
    return {
        "admin": Account(ensure_user("Admin Sekolah", "admin@school.test", "admin")),
        "teacher": Account(ensure_user("Guru Matematika", "teacher@school.test", "teacher")),
        "student": Account(ensure_user("Siswa Teladan", "student@school.test", "student")),
        "parent": Account(ensure_user("Orang Tua", "parent@school.test", "parent")),
    }


@pytest.fixture
def admin(accounts):
    return accounts["admin"]


@pytest.fixture
def teacher(accounts):
    return accounts["teacher"]


@pytest.fixture
def student(accounts):
    return accounts["student"]


@pytest.fixture(autouse=True)
def reset_rate_limits():
    limiter.reset()
    yield
    limiter.reset()


@pytest.fixture
def db_session():
    with Session(engine) as session:
        yield session


@pytest.fixture
def make_pdf():
    def _make(pages: int = 1, width: float = 300, height: float = 400) -> bytes:
        writer = PdfWriter()
        for _ in range(pages):
            writer.add_blank_page(width=width, height=height)
        # unique bytes per call so hashes never collide between tests
        writer.add_metadata({"/Title": uuid.uuid4().hex})
        out = io.BytesIO()
        writer.write(out)
        return out.getvalue()
    return _make


@pytest.fixture
def make_png():
    def _make(size=(64, 32), color="white") -> bytes:
        img = Image.new("RGB", size, color)
        bio = io.BytesIO()
        img.save(bio, format="PNG")
        return bio.getvalue()
    return _make
