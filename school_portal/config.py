"""Application settings and validation.

Values are read from the process environment once at import time. The
runtime-mutable subset (API keys, Sentry DSN, allowed origins) is seeded
from here and then owned by `utils.runtime_settings`.
"""

import os
from pathlib import Path
from typing import List, Optional

BASE = Path(__file__).resolve().parent.parent
DEFAULT_JWT_SECRET = "dev-secret-key-change-me"


def _split_origins(raw: Optional[str]) -> List[str]:
    if not raw:
        return ["http://localhost:5173"]
    origins = [o.strip() for o in raw.split(",") if o.strip()]
    return origins or ["http://localhost:5173"]


class Settings:
    ENV: str
    PORT: int
    JWT_SECRET: str
    JWT_ALGORITHM: str
    JWT_EXPIRE_HOURS: int
    DATABASE_URL: str
    DATA_DIR: Path
    UPLOADS_DIR: Path
    FILE_DB_CACHE_TTL_SECONDS: float
    MAX_JSON_BYTES: int
    MAX_ASSET_BYTES: int
    MAX_DOCUMENT_BYTES: int
    LOG_LEVEL: str
    SENTRY_DSN: Optional[str]
    VIRUSTOTAL_API_KEY: Optional[str]
    GOOGLE_SAFEBROWSING_KEY: Optional[str]
    GOOGLE_GEMINI_API_KEY: Optional[str]
    ALLOW_ORIGINS: List[str]

    def __init__(self):
        self.ENV = os.getenv("ENV", "development").lower()
        self.PORT = int(os.getenv("PORT", "4000"))
        self.JWT_SECRET = os.getenv("JWT_SECRET", DEFAULT_JWT_SECRET)
        self.JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
        self.JWT_EXPIRE_HOURS = int(os.getenv("JWT_EXPIRE_HOURS", "12"))
        self.DATABASE_URL = os.getenv("DATABASE_URL") or f"sqlite:///{BASE / 'app.db'}"
        self.DATA_DIR = Path(os.getenv("DATA_DIR") or BASE / "data").expanduser().resolve()
        self.UPLOADS_DIR = Path(os.getenv("UPLOADS_DIR") or BASE / "uploads").expanduser().resolve()
        self.FILE_DB_CACHE_TTL_SECONDS = float(os.getenv("FILE_DB_CACHE_TTL_SECONDS", "30"))
        self.MAX_JSON_BYTES = int(os.getenv("MAX_JSON_BYTES", str(2 * 1024 * 1024)))
        self.MAX_ASSET_BYTES = int(os.getenv("MAX_ASSET_BYTES", str(10 * 1024 * 1024)))
        self.MAX_DOCUMENT_BYTES = int(os.getenv("MAX_DOCUMENT_BYTES", str(15 * 1024 * 1024)))
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
        self.SENTRY_DSN = os.getenv("SENTRY_DSN") or None
        self.VIRUSTOTAL_API_KEY = os.getenv("VIRUSTOTAL_API_KEY") or None
        self.GOOGLE_SAFEBROWSING_KEY = os.getenv("GOOGLE_SAFEBROWSING_KEY") or None
        self.GOOGLE_GEMINI_API_KEY = os.getenv("GOOGLE_GEMINI_API_KEY") or None
        self.ALLOW_ORIGINS = _split_origins(os.getenv("ALLOW_ORIGINS"))
        self._validate()

    def _validate(self):
        if self.ENV not in ("development", "production", "test"):
            raise RuntimeError("ENV must be one of development, production, test")
        if len(self.JWT_SECRET) < 16:
            raise RuntimeError("JWT_SECRET must be at least 16 characters")
        if self.ENV == "production" and self.JWT_SECRET == DEFAULT_JWT_SECRET:
            raise RuntimeError("JWT_SECRET must be set to a non-default value in production")


settings = Settings()
