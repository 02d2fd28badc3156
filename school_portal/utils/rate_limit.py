"""In-memory rate limiting for public and credential endpoints."""

from __future__ import annotations

import os
import threading
import time
from collections import deque
from typing import Callable, Deque, Dict

from fastapi import Request

from ..errors import TooManyRequests


class SlidingWindowRateLimiter:
    """Per-key sliding window over the last `window_seconds`.

    Keys whose newest hit has left their window are swept out at most once
    per `sweep_interval` seconds, so one-off clients do not accumulate.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic, sweep_interval: float = 60.0):
        self._clock = clock
        self._sweep_interval = sweep_interval
        self._next_sweep = 0.0
        self._hits: Dict[str, Deque[float]] = {}
        self._windows: Dict[str, int] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._hits)

    def _sweep(self, now: float) -> None:
        stale = [key for key, q in self._hits.items() if not q or q[-1] < now - self._windows[key]]
        for key in stale:
            del self._hits[key]
            del self._windows[key]
        self._next_sweep = now + self._sweep_interval

    def allow(self, key: str, max_requests: int, window_seconds: int) -> tuple[bool, int]:
        now = self._clock()
        with self._lock:
            if now >= self._next_sweep:
                self._sweep(now)
            q = self._hits.get(key)
            if q is None:
                q = self._hits[key] = deque()
            self._windows[key] = window_seconds
            cutoff = now - window_seconds
            while q and q[0] < cutoff:
                q.popleft()
            if len(q) >= max_requests:
                return False, max(1, int(window_seconds - (now - q[0])))
            q.append(now)
        return True, 0

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()
            self._windows.clear()
            self._next_sweep = 0.0


limiter = SlidingWindowRateLimiter()

# scope -> (env prefix, default max per window)
_DEFAULTS = {
    "login": ("LOGIN_RATE_LIMIT", 20),
    "pcpdb": ("PCPDB_RATE_LIMIT", 10),
    "verify": ("VERIFY_RATE_LIMIT", 60),
}


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for", "")
    if forwarded.strip():
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def enforce(request: Request, scope: str) -> None:
    """Raise `TooManyRequests` when the caller exceeded the scope's budget."""
    prefix, default_max = _DEFAULTS[scope]
    max_requests = int(os.getenv(f"{prefix}_PER_MIN", str(default_max)))
    window = int(os.getenv(f"{prefix}_WINDOW_SECONDS", "60"))
    allowed, retry_after = limiter.allow(f"{scope}:{client_ip(request)}", max_requests, window)
    if not allowed:
        raise TooManyRequests(
            f"rate limit exceeded; retry after {retry_after}s",
            headers={"Retry-After": str(retry_after)},
        )


def rate_limited(scope: str):
    """Route dependency applying `enforce` before the body is validated."""

    def dependency(request: Request) -> None:
        enforce(request, scope)

    return dependency
