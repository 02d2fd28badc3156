"""Google Gemini `generateContent` client.

The model is tried on the `v1` API first and on `v1beta` when `v1`
answers 404. Any other failure is raised as `GeminiError` carrying the
upstream status and body.
"""

import json
import logging
import re
from typing import Optional

import httpx

from . import http_session

_LOGGER = logging.getLogger("school_portal.gemini")

MODEL = "gemini-2.5-flash-lite"
API_VERSIONS = ("v1", "v1beta")
MISSING_KEY_MESSAGE = "Gemini API key belum dikonfigurasi. Harap isi melalui menu pengaturan."
_JSON_MARKERS = re.compile(r">JSON_START<(.*)>JSON_END<", re.DOTALL)


class GeminiError(Exception):
    pass


def _describe(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text
    return body if isinstance(body, str) else json.dumps(body)


class GeminiClient:
    def __init__(self, api_key: str, *, client: Optional[httpx.Client] = None):
        if not api_key:
            raise GeminiError(MISSING_KEY_MESSAGE)
        self.api_key = api_key
        self._client = client

    def generate(self, prompt: str, *, max_output_tokens: int = 512, timeout: float = 15.0) -> str:
        """Send `prompt` and return the first candidate's text ('' when absent)."""
        body = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {"temperature": 0.2, "maxOutputTokens": max_output_tokens, "topP": 0.8},
        }
        last_status = None
        with http_session(self._client) as client:
            for version in API_VERSIONS:
                endpoint = f"https://generativelanguage.googleapis.com/{version}/models/{MODEL}:generateContent"
                try:
                    response = client.post(endpoint, params={"key": self.api_key}, json=body, timeout=timeout)
                except httpx.HTTPError as exc:
                    raise GeminiError(f"Gagal memanggil Gemini API (unknown): {exc}") from exc
                if response.status_code == 404:
                    last_status = response
                    _LOGGER.info("Gemini model not found on %s, trying next API version", version)
                    continue
                if response.is_error:
                    raise GeminiError(f"Gagal memanggil Gemini API ({response.status_code}): {_describe(response)}")
                try:
                    data = response.json()
                except ValueError:
                    raise GeminiError(f"Gagal memanggil Gemini API ({response.status_code}): respons bukan JSON")
                try:
                    return data["candidates"][0]["content"]["parts"][0]["text"] or ""
                except (KeyError, IndexError, TypeError):
                    return ""
        raise GeminiError(f"Gagal memanggil Gemini API (404): {_describe(last_status)}")


def parse_model_json(raw: str) -> dict:
    """Decode the JSON block between `>JSON_START<` and `>JSON_END<` (or the whole text)."""
    match = _JSON_MARKERS.search(raw or "")
    payload = match.group(1).strip() if match else (raw or "").strip()
    try:
        parsed = json.loads(payload)
    except ValueError:
        raise GeminiError("Respons AI tidak dalam format JSON yang valid")
    if not isinstance(parsed, dict):
        raise GeminiError("Respons AI tidak dalam format JSON yang valid")
    return parsed
