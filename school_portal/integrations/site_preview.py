"""Fetch a page's status, headers and HTML snippet for the AI domain check."""

import html
import logging
import re
from typing import Dict, Optional
from urllib.parse import urlsplit, urlunsplit

import httpx

from . import http_session

_LOGGER = logging.getLogger("school_portal.validator")

MAX_SNIPPET_LENGTH = 4000
HEADERS = {
    "User-Agent": "Mozilla/5.0 (compatible; JagoanScanner/1.0)",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
}

_TITLE = re.compile(r"<title[^>]*>([^<]*)</title>", re.IGNORECASE)
_META_DESCRIPTION = re.compile(r"<meta[^>]*name=[\"']description[\"'][^>]*>", re.IGNORECASE)
_CONTENT_ATTR = re.compile(r"content=[\"']([^\"']*)[\"']", re.IGNORECASE)


def extract_metadata(document: Optional[str]) -> Dict[str, Optional[str]]:
    """Pull `<title>` and the meta description out of raw HTML."""
    if not document:
        return {"title": None, "description": None}
    title = None
    match = _TITLE.search(document)
    if match:
        title = html.unescape(match.group(1).strip()) or None
    description = None
    meta = _META_DESCRIPTION.search(document)
    if meta:
        content = _CONTENT_ATTR.search(meta.group(0))
        if content:
            description = html.unescape(content.group(1).strip()) or None
    return {"title": title, "description": description}


class SitePreviewFetcher:
    def __init__(self, client: Optional[httpx.Client] = None):
        self._client = client

    def _attempt(self, client: httpx.Client, url: str, state: dict, fallback: bool) -> None:
        try:
            head = client.head(url, headers=HEADERS, timeout=8.0, follow_redirects=True)
            state["resolvedUrl"] = str(head.url)
            state["statusCode"] = head.status_code
            state["headers"] = dict(head.headers)
        except httpx.HTTPError:
            state["warnings"].append(
                "HEAD via HTTP non-HTTPS gagal, lanjut mencoba GET." if fallback
                else "HEAD request gagal, mencoba GET parsial"
            )
        try:
            page = client.get(url, headers=HEADERS, timeout=10.0, follow_redirects=True)
            state["resolvedUrl"] = str(page.url)
            state["statusCode"] = page.status_code
            if not state["headers"]:
                state["headers"] = dict(page.headers)
            text = (page.text or "").strip()
            if text:
                state["snippet"] = text[:MAX_SNIPPET_LENGTH]
        except httpx.HTTPError:
            state["warnings"].append(
                "GET via HTTP non-HTTPS juga gagal." if fallback
                else "Gagal mengambil konten halaman untuk dianalisa"
            )

    def fetch(self, url: str) -> dict:
        """Try HTTPS first; when nothing came back, retry the same URL over plain HTTP."""
        state = {"resolvedUrl": url, "statusCode": None, "headers": {}, "snippet": None, "warnings": []}
        with http_session(self._client, max_redirects=5) as client:
            self._attempt(client, url, state, fallback=False)
            if not state["snippet"] and not state["headers"]:
                parts = urlsplit(url)
                if parts.scheme == "https":
                    state["warnings"].append("Tidak bisa mengambil melalui HTTPS, mencoba HTTP tanpa enkripsi.")
                    self._attempt(client, urlunsplit(("http",) + tuple(parts[1:])), state, fallback=True)
        metadata = extract_metadata(state["snippet"])
        state["pageTitle"] = metadata["title"]
        state["pageDescription"] = metadata["description"]
        return state
