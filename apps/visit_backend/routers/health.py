from __future__ import annotations

import logging
import time

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text

from common_core.db import SessionLocal

log = logging.getLogger("windtrack.health")
router = APIRouter(tags=["health"])


@router.get("/health")
def health(request: Request):
    started = getattr(request.app.state, "started_at", time.monotonic())
    return {"ok": True, "uptime": round(time.monotonic() - started, 3)}


@router.get("/health/ready")
def ready():
    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
    except Exception as e:
        log.warning("readiness_db_failed", extra={"error": str(e)})
        return JSONResponse({"ok": False}, status_code=503)
    finally:
        db.close()
    return {"ok": True}
