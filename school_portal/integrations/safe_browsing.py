"""Google Safe Browsing v4 threat lookups."""

import logging
from typing import List, Optional

import httpx

from . import http_session

_LOGGER = logging.getLogger("school_portal.validator")

ENDPOINT = "https://safebrowsing.googleapis.com/v4/threatMatches:find"
THREAT_TYPES = ["MALWARE", "SOCIAL_ENGINEERING", "UNWANTED_SOFTWARE", "POTENTIALLY_HARMFUL_APPLICATION"]


class SafeBrowsingClient:
    def __init__(self, api_key: str, *, timeout: float = 5.0, client: Optional[httpx.Client] = None):
        self.api_key = api_key
        self.timeout = timeout
        self._client = client

    def find_threats(self, url: str) -> List[dict]:
        """Return the threat matches for `url`; lookup errors are logged and yield []."""
        payload = {
            "client": {"clientId": "jagoan-platform", "clientVersion": "1.0.0"},
            "threatInfo": {
                "threatTypes": THREAT_TYPES,
                "platformTypes": ["ANY_PLATFORM"],
                "threatEntryTypes": ["URL"],
                "threatEntries": [{"url": url}],
            },
        }
        try:
            with http_session(self._client) as client:
                response = client.post(ENDPOINT, params={"key": self.api_key}, json=payload, timeout=self.timeout)
            response.raise_for_status()
            return response.json().get("matches") or []
        except (httpx.HTTPError, ValueError, AttributeError):
            _LOGGER.exception("Google Safe Browsing lookup failed")
            return []


def check_safe_browsing(url: str, api_key: Optional[str], client: Optional[httpx.Client] = None) -> dict:
    """`{matches: [...]}` for `url`; empty when no key is configured."""
    if not api_key:
        return {"matches": []}
    return {"matches": SafeBrowsingClient(api_key, client=client).find_threats(url)}
