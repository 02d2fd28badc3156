"""Sentry wiring driven by the runtime settings DSN."""

from __future__ import annotations

import logging
import threading
from typing import Optional

import sentry_sdk

from ..config import settings
from .runtime_settings import RuntimeSettings

_LOGGER = logging.getLogger("school_portal.telemetry")
_lock = threading.Lock()
_current_dsn: Optional[str] = None


def configure_sentry(current: RuntimeSettings) -> bool:
    """(Re)initialise Sentry when the DSN changed.

    Returns True when the SDK state was touched. A DSN the SDK rejects is
    logged and leaves telemetry disabled.
    """
    global _current_dsn
    dsn = (current.sentry_dsn or "").strip() or None
    with _lock:
        if dsn == _current_dsn:
            return False
        _current_dsn = dsn
        client = sentry_sdk.get_client()
        if client.is_active():
            client.close()
        if not dsn:
            _LOGGER.info("sentry disabled")
            return True
        try:
            sentry_sdk.init(dsn=dsn, environment=settings.ENV, send_default_pii=True)
        except Exception:
            _LOGGER.exception("invalid Sentry DSN; telemetry disabled")
            _current_dsn = None
            return True
    _LOGGER.info("sentry configured for environment %s", settings.ENV)
    return True


def capture_exception(exc: BaseException) -> None:
    sentry_sdk.capture_exception(exc)
