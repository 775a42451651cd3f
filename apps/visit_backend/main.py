from __future__ import annotations

import logging
import time

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from apps.visit_backend import models  # noqa: F401
from apps.visit_backend.errors import MSG_INTERNAL, VisitError
from apps.visit_backend.middleware import RequestContextMiddleware
from apps.visit_backend.migrate import upgrade_head
from apps.visit_backend.notifier import SmtpNotificationSink
from apps.visit_backend.rate_limit import build_limiter
from apps.visit_backend.routers.health import router as health_router
from apps.visit_backend.routers.metrics import router as metrics_router
from apps.visit_backend.routers.visits import router as visits_router
from common_core.config import settings
from common_core.guardrails import validate_runtime_config
from common_core.logging_setup import configure_logging

log = logging.getLogger("windtrack.api")


def _cors_origins() -> list[str]:
    origins = [o.strip() for o in (settings.cors_origin or "").split(",") if o.strip()]
    return origins or ["*"]


app = FastAPI(title="Wind Turbine Visit Tracker")

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(RequestContextMiddleware)

app.state.started_at = time.monotonic()
app.state.rate_guard = build_limiter()
app.state.notifier = SmtpNotificationSink()

app.include_router(health_router)
app.include_router(metrics_router)
app.include_router(visits_router)


@app.exception_handler(VisitError)
def handle_visit_error(request: Request, exc: VisitError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message, "code": exc.code},
        headers=exc.headers,
    )


@app.exception_handler(RequestValidationError)
def handle_bad_request(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    if first.get("type") == "json_invalid":
        message = "Invalid JSON body"
    else:
        field = ".".join(str(p) for p in first.get("loc", ()) if p not in ("body", "query"))
        message = f"{field}: {first.get('msg', 'invalid value')}" if field else "Invalid request"
    return JSONResponse(status_code=400, content={"error": message, "code": "VALIDATION_ERROR"})


@app.exception_handler(Exception)
def handle_unexpected(request: Request, exc: Exception):
    log.error("unhandled_error", exc_info=exc)
    return JSONResponse(status_code=500, content={"error": MSG_INTERNAL, "code": "INTERNAL_ERROR"})


@app.on_event("startup")
def startup() -> None:
    configure_logging(component="visit_backend")
    validate_runtime_config()

    if settings.auto_migrate:
        upgrade_head()

    log.info("visit_backend_started", extra={"component": "visit_backend"})
