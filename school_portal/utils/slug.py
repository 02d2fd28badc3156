import re
import unicodedata

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def slugify(value: str) -> str:
    """ASCII-fold, lowercase and dash-join `value` ("Upacara Bendera!" -> "upacara-bendera")."""
    normalized = unicodedata.normalize("NFKD", value or "")
    stripped = "".join(ch for ch in normalized if not unicodedata.combining(ch))
    return _NON_ALNUM.sub("-", stripped.lower()).strip("-")


def gallery_slug(title: str, item_id: str) -> str:
    base = slugify(title) or "galeri"
    suffix = re.sub(r"[^a-zA-Z0-9]", "", item_id or "")
    return f"{base}-{suffix}" if suffix else base
