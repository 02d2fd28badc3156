"""Uploaded images: the site logo and the media library (`assets` fileDb collection)."""

import logging
from typing import List

from fastapi import UploadFile

from ..config import settings
from ..errors import NotFound
from ..utils import file_db
from ..utils.uploads import (
    read_limited,
    remove_file_safe,
    resolve_public_path,
    save_bytes,
    sniff_image,
    validate_upload_filename,
)

_LOGGER = logging.getLogger("school_portal.uploads")

COLLECTION = "assets"
ID_PREFIX = "asset"
ASSET_SUBDIR = "assets"


class AssetService:
    def __init__(self, db: file_db.FileDB = None):
        self.db = db or file_db.file_db

    def upload_logo(self, upload: UploadFile) -> dict:
        filename = validate_upload_filename(upload.filename)
        payload = read_limited(upload, settings.MAX_ASSET_BYTES)
        sniff_image(payload)
        _, public = save_bytes(payload, filename)
        _LOGGER.info("logo uploaded path=%s size=%d", public, len(payload))
        return {"path": public}

    def list(self) -> List[dict]:
        items = file_db.list_items(COLLECTION, db=self.db)
        return sorted(items, key=lambda item: item.get("createdAt") or "", reverse=True)

    def upload(self, upload: UploadFile) -> dict:
        filename = validate_upload_filename(upload.filename)
        payload = read_limited(upload, settings.MAX_ASSET_BYTES)
        mime, width, height = sniff_image(payload)
        path, public = save_bytes(payload, filename, subdir=ASSET_SUBDIR)
        record = {
            "fileName": path.name,
            "originalName": filename,
            "url": public,
            "mimeType": mime,
            "size": len(payload),
            "width": width,
            "height": height,
        }
        try:
            return file_db.create_item(COLLECTION, record, ID_PREFIX, db=self.db)
        except Exception:
            remove_file_safe(path)
            raise

    def delete(self, asset_id: str) -> None:
        item = self.db.find_item(COLLECTION, asset_id)
        if item is None:
            raise NotFound("Asset not found")
        file_db.delete_item(COLLECTION, asset_id, db=self.db)
        remove_file_safe(resolve_public_path(item["url"]))
