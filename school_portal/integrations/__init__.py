"""HTTP clients for third-party services (VirusTotal, Google Safe Browsing,
Gemini) and the site preview fetcher used by the AI domain check.

Each client accepts an optional preconfigured `httpx.Client`, which tests
use to plug in an `httpx.MockTransport`.
"""

from contextlib import contextmanager
from typing import Iterator, Optional

import httpx


@contextmanager
def http_session(client: Optional[httpx.Client] = None, **options) -> Iterator[httpx.Client]:
    """Yield `client` unchanged, or a new `httpx.Client(**options)` that is
    closed when the block exits."""
    if client is not None:
        yield client
        return
    with httpx.Client(**options) as owned:
        yield owned
