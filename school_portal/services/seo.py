"""SEO coach: a Gemini chat grounded in a snapshot of the site's content."""

import json
import logging
import re
from typing import Any, List, Optional

import httpx
from sqlmodel import Session, select

from .. import models, repositories
from ..errors import UpstreamError
from ..integrations.gemini import MISSING_KEY_MESSAGE, GeminiClient, GeminiError, parse_model_json
from ..schemas import SeoChatIn, SeoMessage
from ..utils.runtime_settings import runtime_settings

_LOGGER = logging.getLogger("school_portal.seo")

MAX_HISTORY_MESSAGES = 8
MAX_TEXT_LENGTH = 240
_WHITESPACE = re.compile(r"\s+")


def clean(value: Optional[str]) -> str:
    return _WHITESPACE.sub(" ", value or "").strip()


def truncate(value: str, length: int = MAX_TEXT_LENGTH) -> str:
    if len(value) <= length:
        return value
    return value[: length - 3] + "..."


def summarize_content(raw: str) -> str:
    """Flatten a stored JSON section into `a | b | c`, capped at 200 chars."""
    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError):
        return truncate(clean(raw), 200)
    values: List[str] = []

    def walk(value: Any) -> None:
        if isinstance(value, str):
            values.append(clean(value))
        elif isinstance(value, list):
            for item in value:
                walk(item)
        elif isinstance(value, dict):
            for item in value.values():
                walk(item)

    walk(parsed)
    if values:
        return truncate(" | ".join(values), 200)
    return truncate(clean(raw), 200)


class SiteSnapshot:
    """Plain-text excerpts of the database used as model context."""

    def __init__(self, session: Session):
        self.session = session

    def announcements(self) -> str:
        stmt = (
            select(models.Announcement)
            .order_by(models.Announcement.pinned.desc(), models.Announcement.date.desc(), models.Announcement.created_at.desc())
            .limit(6)
        )
        rows = self.session.exec(stmt).all()
        if not rows:
            return "Belum ada pengumuman yang tersimpan."
        return "\n".join(
            f"{i}. {r.title} (Kategori: {r.category}, Tanggal: {r.date.strftime('%d %b %Y')})\n"
            f"   Ringkasan: {truncate(clean(r.summary), 220)}"
            for i, r in enumerate(rows, start=1)
        )

    def gallery(self) -> str:
        stmt = (
            select(models.GalleryItem)
            .order_by(models.GalleryItem.published_at.desc(), models.GalleryItem.created_at.desc())
            .limit(6)
        )
        rows = self.session.exec(stmt).all()
        if not rows:
            return "Belum ada konten galeri."
        tags = repositories.gallery_tags(self.session).values_map(r.id for r in rows)
        return "\n".join(
            f"{i}. {r.title} (Tag: {', '.join(tags[r.id]) or 'tanpa tag'})\n"
            f"   Deskripsi: {truncate(clean(r.description), 220)}"
            for i, r in enumerate(rows, start=1)
        )

    def faq(self) -> str:
        stmt = select(models.FAQItem).order_by(models.FAQItem.order, models.FAQItem.created_at).limit(10)
        rows = self.session.exec(stmt).all()
        if not rows:
            return "Belum ada FAQ yang tersimpan."
        return "\n".join(
            f"{i}. [{r.category}] {r.question}\n   Jawaban: {truncate(clean(r.answer), 220)}"
            for i, r in enumerate(rows, start=1)
        )

    def extracurriculars(self) -> str:
        stmt = select(models.Extracurricular).order_by(models.Extracurricular.created_at.desc()).limit(5)
        rows = self.session.exec(stmt).all()
        if not rows:
            return "Belum ada ekstrakurikuler yang diatur."
        return "\n".join(
            f"{i}. {r.name} (Kategori: {r.category})\n   Fokus: {truncate(clean(r.description), 200)}"
            for i, r in enumerate(rows, start=1)
        )

    def wawasan(self) -> str:
        rows = repositories.WawasanRepository(self.session).list_sections()
        if not rows:
            return "Belum ada konten wawasan."
        return "\n".join(f"{r.title}: {summarize_content(r.content)}" for r in rows)

    def landing(self) -> str:
        return "\n".join([
            "--- Snapshot Pengumuman ---", self.announcements(), "",
            "--- Snapshot Galeri ---", self.gallery(), "",
            "--- Snapshot FAQ ---", self.faq(), "",
            "--- Snapshot Ekstrakurikuler ---", self.extracurriculars(), "",
            "--- Konten Wawasan ---", self.wawasan(),
        ])

    def for_topic(self, topic: str) -> str:
        if topic == "announcements":
            return f"Fokus: Optimasi SEO untuk halaman pengumuman.\n{self.announcements()}"
        if topic == "gallery":
            return f"Fokus: Optimasi SEO untuk halaman galeri foto.\n{self.gallery()}"
        if topic == "faq":
            return f"Fokus: Optimasi SEO untuk halaman FAQ.\n{self.faq()}"
        return f"Fokus: Optimasi SEO untuk halaman landing utama sekolah.\n{self.landing()}"


def build_prompt(topic: str, context: str, messages: List[SeoMessage]) -> str:
    history = "\n".join(
        f"{'AI' if m.role == 'assistant' else 'Admin'}: {m.content}" for m in messages[-MAX_HISTORY_MESSAGES:]
    )
    focus = "landing page utama (homepage) sekolah" if topic == "landing" else f"halaman {topic}"
    return (
        f"Anda adalah konsultan SEO berbahasa Indonesia yang membantu administrator sekolah meningkatkan performa {focus}.\n\n"
        f"Gunakan data berikut sebagai konteks yang valid dan terbaru:\n{context}\n\n"
        f"Riwayat percakapan:\n{history or 'Belum ada pertanyaan. Admin akan mengirim pesan pertama.'}\n\n"
        "Tugas Anda:\n"
        "1. Jawab pertanyaan admin dengan jelas dan ringkas.\n"
        "2. Berikan analisa SEO yang praktis berdasarkan data.\n"
        "3. Sarankan maksimal 5 tindakan prioritas.\n"
        "4. Jika memungkinkan, berikan rekomendasi judul dan meta description yang lebih baik.\n"
        "5. Berikan kata kunci target yang relevan.\n\n"
        "Format jawaban:\n"
        "- Kirim JSON valid diapit oleh >JSON_START< dan >JSON_END< dengan struktur:\n"
        "  {\n"
        '    "assistantReply": string,\n'
        '    "keywords": string[],\n'
        '    "recommendedActions": string[],\n'
        '    "suggestedTitle": string | null,\n'
        '    "suggestedDescription": string | null,\n'
        '    "followUpQuestions": string[]\n'
        "  }\n"
        "- Gunakan bahasa Indonesia formal namun ramah.\n"
        "- Jangan menambahkan teks di luar blok JSON."
    )


def _strings(value: Any, limit: int) -> List[str]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str)][:limit]


def _optional_text(value: Any) -> Optional[str]:
    if isinstance(value, str):
        return value.strip() or None
    return None


def parse_coach_reply(raw: str) -> dict:
    parsed = parse_model_json(raw)
    reply = parsed.get("assistantReply")
    return {
        "reply": reply.strip() if isinstance(reply, str) else "",
        "keywords": _strings(parsed.get("keywords"), 10),
        "recommendations": _strings(parsed.get("recommendedActions"), 6),
        "suggestedTitle": _optional_text(parsed.get("suggestedTitle")),
        "suggestedDescription": _optional_text(parsed.get("suggestedDescription")),
        "followUpQuestions": _strings(parsed.get("followUpQuestions"), 3),
    }


class SeoCoachService:
    def __init__(self, session: Session, http_client: Optional[httpx.Client] = None):
        self.session = session
        self.http_client = http_client

    def chat(self, payload: SeoChatIn) -> dict:
        api_key = runtime_settings.get().gemini_api_key
        if not api_key:
            raise UpstreamError(MISSING_KEY_MESSAGE)
        context = SiteSnapshot(self.session).for_topic(payload.topic)
        prompt = build_prompt(payload.topic, context, payload.messages)
        try:
            raw = GeminiClient(api_key, client=self.http_client).generate(
                prompt, max_output_tokens=768, timeout=20.0
            )
            return parse_coach_reply(raw)
        except GeminiError as exc:
            _LOGGER.error("SEO coach failed: %s", exc)
            raise UpstreamError(str(exc))
