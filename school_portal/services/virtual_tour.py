"""Virtual tour viewer configuration, kept in the `virtual-tour` fileDb collection."""

from typing import Tuple

from ..schemas import VirtualTourIn
from ..utils import file_db

COLLECTION = "virtual-tour"
ID_PREFIX = "virtual-tour"

DEFAULT_TOUR = {
    "id": "virtual-tour-default",
    "imageUrl": "/images/school-360-sample.jpg",
    "autoLoad": True,
    "autoRotate": 2,
    "pitch": 0,
    "yaw": 0,
    "hfov": 100,
}


class VirtualTourService:
    def __init__(self, db: file_db.FileDB = None):
        self.db = db or file_db.file_db

    def get(self) -> dict:
        items = file_db.list_items(COLLECTION, db=self.db)
        return items[0] if items else dict(DEFAULT_TOUR)

    def save(self, payload: VirtualTourIn) -> Tuple[dict, bool]:
        """Update the stored configuration or create it; returns (item, created)."""
        data = payload.model_dump(by_alias=True)
        data["imageUrl"] = data["imageUrl"].strip()
        items = file_db.list_items(COLLECTION, db=self.db)
        if items:
            return file_db.update_item(COLLECTION, items[0]["id"], data, db=self.db), False
        return file_db.create_item(COLLECTION, data, ID_PREFIX, db=self.db), True
