"""Domain validator: reputation scans (VirusTotal plus Safe Browsing) and
the Gemini-assisted content check."""

import json
import logging
from typing import List, Optional
from urllib.parse import urlsplit, urlunsplit

import httpx
from sqlmodel import Session

from .. import models, repositories
from ..errors import BadRequest, UpstreamError
from ..integrations import http_session
from ..integrations.gemini import MISSING_KEY_MESSAGE, MODEL, GeminiClient, GeminiError, parse_model_json
from ..integrations.safe_browsing import check_safe_browsing
from ..integrations.site_preview import SitePreviewFetcher
from ..integrations.virustotal import VirusTotalClient
from ..models import utcnow
from ..serializers import serialize_validator_history
from ..utils.dates import iso
from ..utils.runtime_settings import runtime_settings

_LOGGER = logging.getLogger("school_portal.validator")

AI_VERDICTS = ("safe", "gambling", "suspicious", "unknown")


def normalize_url(value: str) -> str:
    """Add `https://` when no scheme is given, drop the fragment and one
    trailing slash, then lowercase."""
    raw = value.strip()
    if "://" not in raw:
        raw = f"https://{raw}"
    parts = urlsplit(raw)
    path = parts.path or "/"
    normalized = urlunsplit((parts.scheme, parts.netloc, path, parts.query, ""))
    if normalized.endswith("/"):
        normalized = normalized[:-1]
    return normalized.lower()


def looks_like_url(value: str) -> bool:
    try:
        parts = urlsplit(value.strip())
    except ValueError:
        return False
    return parts.scheme in ("http", "https") and bool(parts.netloc)


def build_ai_prompt(url: str, preview: dict) -> str:
    title = preview.get("pageTitle") or "(Tidak ditemukan)"
    description = preview.get("pageDescription") or "(Tidak ditemukan)"
    snippet = (preview.get("snippet") or "")[:1200] or "(Tidak ada cuplikan konten yang tersedia)"
    warnings = "\n".join(f"- {w}" for w in preview.get("warnings") or []) or "- Tidak ada catatan khusus"
    return (
        "Anda adalah analis keamanan siber. Analisa apakah judul dan meta description berikut "
        "mengandung indikator situs judi online, penipuan, phishing, atau aktivitas berbahaya lainnya.\n\n"
        f"URL: {url}\n"
        f"Judul Halaman: {title}\n"
        f"Meta Description: {description}\n"
        f"Cuplikan Konten (opsional):\n{snippet}\n"
        f"Catatan Teknis:\n{warnings}\n\n"
        "Fokus pada informasi judul dan meta description. Jika keduanya kosong, gunakan cuplikan "
        "konten sebagai referensi tambahan.\n\n"
        "Berikan jawaban dalam format JSON valid. Mulai dengan penanda >JSON_START< dan akhiri dengan "
        ">JSON_END< tanpa teks lain di luar blok ini.\n"
        "Struktur JSON yang wajib diikuti:\n"
        "{\n"
        '  "verdict": "gambling" | "safe" | "suspicious" | "unknown",\n'
        '  "confidence": number antara 0 dan 1,\n'
        '  "summary": ringkasan temuan dalam bahasa Indonesia,\n'
        '  "signals": array string (maksimal 6 item) berisi indikator utama yang mendukung penilaian\n'
        "}\n\n"
        'Jika data tidak cukup untuk menilai, gunakan verdict "unknown" dengan confidence maksimal 0.2.\n\n'
        "Contoh keluaran:\n"
        '>JSON_START<{"verdict":"safe","confidence":0.6,"summary":"Ringkasan singkat","signals":["Contoh sinyal"]}>JSON_END<'
    )


class ValidatorService:
    def __init__(
        self,
        session: Session,
        http_client: Optional[httpx.Client] = None,
    ):
        self.session = session
        self.repo = repositories.Repository(session, models.ValidatorHistory)
        self.http_client = http_client

    def history(self) -> List[dict]:
        return [serialize_validator_history(r) for r in self.repo.list(models.ValidatorHistory.scanned_at.desc())]

    def _scan(self, normalized: str, client: httpx.Client) -> dict:
        key = runtime_settings.get().virus_total_api_key
        if not key:
            malicious = "phish" in normalized
            return {
                "verdict": "malicious" if malicious else "safe",
                "malicious": 3 if malicious else 0,
                "suspicious": 1 if malicious else 0,
                "undetected": 70,
                "categories": {"MockVendor": "phishing"} if malicious else {},
                "provider": "mock",
            }
        stats = VirusTotalClient(key, client=client).scan_url(normalized)
        stats["verdict"] = "malicious" if stats["malicious"] > 0 or stats["suspicious"] > 0 else "safe"
        stats["provider"] = "virustotal"
        return stats

    def check(self, url: str, created_by_id: Optional[str] = None) -> dict:
        """Scan `url`, merge Safe Browsing matches, store and return the history row."""
        if not looks_like_url(url):
            raise BadRequest("Invalid URL")
        normalized = normalize_url(url)
        with http_session(self.http_client) as client:
            try:
                result = self._scan(normalized, client)
            except (httpx.HTTPError, KeyError, IndexError, TypeError, AttributeError, ValueError):
                _LOGGER.exception("VirusTotal scan failed for %s", normalized)
                raise UpstreamError("Failed to analyze domain")
            matches = check_safe_browsing(
                normalized, runtime_settings.get().google_safe_browsing_key, client=client
            )["matches"]
        categories = dict(result["categories"])
        if matches:
            result["verdict"] = "malicious"
            threat_types = sorted({m.get("threatType") for m in matches if m.get("threatType")})
            categories["GoogleSafeBrowsing"] = ", ".join(threat_types) or "MATCH"
            if result["provider"] == "mock":
                result["provider"] = "google-safebrowsing"

        row = models.ValidatorHistory(
            url=url,
            normalized_url=normalized,
            verdict=result["verdict"],
            malicious_count=result["malicious"],
            suspicious_count=result["suspicious"],
            undetected_count=result["undetected"],
            categories_json=json.dumps(categories) if categories else None,
            provider=result["provider"],
            scanned_at=utcnow(),
            created_by_id=created_by_id,
        )
        return serialize_validator_history(self.repo.save(row))

    def ai_check(self, url: str) -> dict:
        """Ask Gemini whether the page looks like gambling, phishing or fraud."""
        if not looks_like_url(url):
            raise BadRequest("Invalid URL")
        normalized = normalize_url(url)
        api_key = runtime_settings.get().gemini_api_key
        if not api_key:
            raise UpstreamError(MISSING_KEY_MESSAGE)

        with http_session(self.http_client) as client:
            preview = SitePreviewFetcher(client=client).fetch(normalized)
            try:
                raw = GeminiClient(api_key, client=client).generate(build_ai_prompt(normalized, preview))
                parsed = parse_model_json(raw)
            except GeminiError as exc:
                _LOGGER.error("Gemini domain analysis failed: %s", exc)
                raise UpstreamError(str(exc))

        verdict = parsed.get("verdict") if parsed.get("verdict") in AI_VERDICTS else "unknown"
        confidence = parsed.get("confidence")
        if isinstance(confidence, (int, float)) and not isinstance(confidence, bool):
            confidence = min(max(float(confidence), 0.0), 1.0)
        else:
            confidence = None
        signals = parsed.get("signals") if isinstance(parsed.get("signals"), list) else []
        return {
            "url": url,
            "normalizedUrl": normalized,
            "resolvedUrl": preview["resolvedUrl"],
            "statusCode": preview["statusCode"],
            "fetchedAt": iso(utcnow()),
            "headers": preview["headers"],
            "contentSnippet": preview["snippet"],
            "pageTitle": preview["pageTitle"],
            "pageDescription": preview["pageDescription"],
            "verdict": verdict,
            "confidence": confidence,
            "summary": parsed.get("summary") or "Model tidak memberikan ringkasan.",
            "signals": [str(s) for s in signals[:6]],
            "model": MODEL,
            "provider": "gemini",
            "rawModelResponse": raw,
            "warnings": preview["warnings"],
        }
