"""FastAPI application entrypoint.

Routes live in `school_portal.routers` and are mounted under `/api`.
This module wires the cross-cutting pieces:

- logging, request ids and structured `request_done` lines;
- error rendering (`{"message": ...}` bodies, 400 for validation errors);
- CORS driven by the runtime settings, security headers, body limits;
- Sentry, reconfigured whenever the runtime settings change;
- static serving of uploaded files under `/uploads`.
"""

import json
import logging
import time
import uuid

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import settings
from .database import create_db_and_tables
from .errors import ApiError
from .routers import api_router
from .utils.rate_limit import client_ip
from .utils.runtime_settings import runtime_settings
from .utils.telemetry import capture_exception, configure_sentry

logger = logging.getLogger("school_portal.api")
if not logging.getLogger().handlers:
    logging.basicConfig(level=settings.LOG_LEVEL)

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "no-referrer",
    "Cross-Origin-Resource-Policy": "same-site",
}
_STARTED = time.monotonic()

app = FastAPI(title="School Portal API")

create_db_and_tables()
runtime_settings.load()
configure_sentry(runtime_settings.get())
runtime_settings.subscribe(configure_sentry)


class RuntimeCORSMiddleware(CORSMiddleware):
    """CORS whose allowed origins are read from the runtime settings per request."""

    def is_allowed_origin(self, origin: str) -> bool:
        allowed = runtime_settings.get().allowed_origins
        return "*" in allowed or origin in allowed


app.add_middleware(
    RuntimeCORSMiddleware,
    allow_origins=[],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def security_middleware(request: Request, call_next):
    content_type = request.headers.get("content-type", "")
    length = request.headers.get("content-length")
    if content_type.startswith("application/json") and length and length.isdigit():
        if int(length) > settings.MAX_JSON_BYTES:
            response = JSONResponse({"message": "Payload too large"}, status_code=413)
            response.headers.update(SECURITY_HEADERS)
            return response
    response = await call_next(request)
    response.headers.update(SECURITY_HEADERS)
    return response


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    req_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)
    request.state.request_id = req_id
    started = time.perf_counter()
    response: Response
    try:
        response = await call_next(request)
    except Exception:
        elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
        logger.exception(
            "request_failed %s",
            json.dumps(
                {
                    "request_id": req_id,
                    "path": request.url.path,
                    "method": request.method,
                    "duration_ms": elapsed_ms,
                    "client": client_ip(request),
                },
                ensure_ascii=True,
            ),
        )
        raise
    response.headers["X-Request-ID"] = req_id
    elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
    if request.url.path.startswith("/api"):
        logger.info(
            "request_done %s",
            json.dumps(
                {
                    "request_id": req_id,
                    "path": request.url.path,
                    "method": request.method,
                    "status_code": response.status_code,
                    "duration_ms": elapsed_ms,
                    "client": client_ip(request),
                },
                ensure_ascii=True,
            ),
        )
    return response


@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError):
    return JSONResponse(exc.payload(), status_code=exc.status_code, headers=exc.headers)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse({"message": exc.detail}, status_code=exc.status_code, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    endpoint = request.scope.get("endpoint")
    message = getattr(endpoint, "invalid_payload_message", "Invalid payload")
    return JSONResponse({"message": message, "issues": jsonable_encoder(exc.errors())}, status_code=400)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error("unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    capture_exception(exc)
    return JSONResponse({"message": "Internal Server Error"}, status_code=500)


app.include_router(api_router)

settings.UPLOADS_DIR.mkdir(parents=True, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=settings.UPLOADS_DIR), name="uploads")


@app.get("/health")
def health():
    """Lightweight health check for uptime monitoring."""
    return {"status": "ok", "uptime": round(time.monotonic() - _STARTED, 3)}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("school_portal.main:app", host="0.0.0.0", port=settings.PORT, reload=settings.ENV == "development")
