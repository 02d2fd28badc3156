"""Domain exceptions mapped to HTTP responses.

Services raise these instead of `HTTPException` so they stay usable from
scripts. `main.py` registers a single handler that renders
`{"message": ..., **extra}` with the exception's status code.
"""

from typing import Any, Optional


class ApiError(Exception):
    status_code = 500

    def __init__(self, message: str, headers: Optional[dict] = None, **extra: Any):
        super().__init__(message)
        self.message = message
        self.headers = headers
        self.extra = extra

    def payload(self) -> dict:
        return {"message": self.message, **self.extra}


class BadRequest(ApiError):
    status_code = 400


class Unauthorized(ApiError):
    status_code = 401


class Forbidden(ApiError):
    status_code = 403


class NotFound(ApiError):
    status_code = 404


class Conflict(ApiError):
    status_code = 409


class Gone(ApiError):
    status_code = 410


class PayloadTooLarge(ApiError):
    status_code = 413


class UnsupportedMedia(ApiError):
    status_code = 415


class TooManyRequests(ApiError):
    status_code = 429


class UpstreamError(ApiError):
    status_code = 502


def invalid_payload(message: str):
    """Tag a route function with the 400 message used when its body fails validation."""
    def decorator(func):
        func.invalid_payload_message = message
        return func
    return decorator
