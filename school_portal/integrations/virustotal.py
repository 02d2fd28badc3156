"""VirusTotal v3 URL scanning."""

import logging
from typing import Dict, Optional

import httpx

from . import http_session

_LOGGER = logging.getLogger("school_portal.validator")

BASE_URL = "https://www.virustotal.com/api/v3"


class VirusTotalClient:
    """Submit a URL for analysis and read back the analysis stats.

    `scan_url` returns `{malicious, suspicious, undetected, categories}`
    where `categories` maps vendor name to category for every vendor that
    did not report `undetected`. HTTP failures propagate as `httpx.HTTPError`.
    """

    def __init__(self, api_key: str, *, timeout: float = 15.0, client: Optional[httpx.Client] = None):
        self.api_key = api_key
        self.timeout = timeout
        self._client = client

    def _headers(self) -> Dict[str, str]:
        return {"x-apikey": self.api_key}

    def scan_url(self, url: str) -> dict:
        with http_session(self._client) as client:
            submit = client.post(f"{BASE_URL}/urls", data={"url": url}, headers=self._headers(), timeout=self.timeout)
            submit.raise_for_status()
            analysis_id = submit.json()["data"]["id"]

            analysis = client.get(f"{BASE_URL}/analyses/{analysis_id}", headers=self._headers(), timeout=self.timeout)
            analysis.raise_for_status()
            attributes = analysis.json()["data"]["attributes"]
        stats = attributes.get("last_analysis_stats") or attributes.get("stats") or {}
        results = attributes.get("last_analysis_results") or attributes.get("results") or {}

        categories = {
            vendor: result.get("category")
            for vendor, result in results.items()
            if result.get("category") != "undetected"
        }
        _LOGGER.debug("virustotal analysis %s stats=%s", analysis_id, stats)
        return {
            "malicious": int(stats.get("malicious", 0)),
            "suspicious": int(stats.get("suspicious", 0)),
            "undetected": int(stats.get("undetected", 0)),
            "categories": categories,
        }
