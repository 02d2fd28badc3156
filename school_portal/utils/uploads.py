"""Helpers for files uploaded to local disk and served under `/uploads`."""

from __future__ import annotations

import io
import logging
import re
import time
from pathlib import Path
from typing import Optional

from fastapi import UploadFile
from PIL import Image

from ..config import settings
from ..errors import BadRequest, PayloadTooLarge, UnsupportedMedia

_LOGGER = logging.getLogger("school_portal.uploads")
_UNSAFE = re.compile(r"[^a-zA-Z0-9.\-_]")

PUBLIC_PREFIX = "/uploads"


def validate_upload_filename(filename: Optional[str]) -> str:
    if not filename or len(filename) > 200:
        raise BadRequest("invalid filename")
    if "/" in filename or "\\" in filename:
        raise BadRequest("invalid filename path")
    return filename


def sanitize_filename(filename: str) -> str:
    return _UNSAFE.sub("_", filename)


def timestamped_name(filename: str) -> str:
    return f"{int(time.time() * 1000)}-{sanitize_filename(filename)}"


def read_limited(upload: UploadFile, max_bytes: int) -> bytes:
    payload = upload.file.read(max_bytes + 1)
    if len(payload) > max_bytes:
        raise PayloadTooLarge(f"file too large (max {max_bytes // (1024 * 1024)} MB)")
    if not payload:
        raise BadRequest("empty file")
    return payload


def sniff_image(payload: bytes) -> tuple[str, int, int]:
    """Return (mime type, width, height) or raise 415 for non-images."""
    try:
        with Image.open(io.BytesIO(payload)) as img:
            img.verify()
        with Image.open(io.BytesIO(payload)) as img:
            fmt = (img.format or "").upper()
            width, height = img.size
    except Exception:
        raise UnsupportedMedia("unsupported file content; expected an image")
    mime = Image.MIME.get(fmt, f"image/{fmt.lower() or 'octet-stream'}")
    return mime, width, height


def looks_like_pdf(payload: bytes, content_type: Optional[str]) -> bool:
    return payload[:5] == b"%PDF-" or (content_type or "").lower() == "application/pdf"


def save_bytes(payload: bytes, filename: str, subdir: str = "") -> tuple[Path, str]:
    """Write `payload` under the uploads root; returns (absolute path, public path)."""
    target_dir = settings.UPLOADS_DIR / subdir if subdir else settings.UPLOADS_DIR
    target_dir.mkdir(parents=True, exist_ok=True)
    stored = timestamped_name(filename)
    path = target_dir / stored
    path.write_bytes(payload)
    public = "/".join(p for p in (PUBLIC_PREFIX, subdir, stored) if p)
    return path, public


def resolve_public_path(public_path: str) -> Path:
    """Map `/uploads/...` back to a file inside the uploads root."""
    relative = public_path
    if relative.startswith(PUBLIC_PREFIX + "/"):
        relative = relative[len(PUBLIC_PREFIX) + 1:]
    relative = relative.lstrip("/")
    root = settings.UPLOADS_DIR.resolve()
    resolved = (root / relative).resolve()
    if root != resolved and root not in resolved.parents:
        raise BadRequest("invalid stored path")
    return resolved


def remove_file_safe(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError:
        _LOGGER.exception("Failed to remove file %s", path)
