from fastapi import APIRouter
from fastapi.responses import PlainTextResponse
from sqlalchemy import func, select

from apps.visit_backend.models import Visit
from apps.visit_backend.services import today_bounds_utc
from common_core.db import SessionLocal

router = APIRouter(tags=["metrics"])


@router.get("/metrics", response_class=PlainTextResponse)
def metrics():
    db = SessionLocal()
    try:
        start, end = today_bounds_utc()
        active = db.execute(
            select(func.count()).select_from(Visit).where(Visit.check_out.is_(None))
        ).scalar_one()
        today = db.execute(
            select(func.count())
            .select_from(Visit)
            .where(Visit.check_in >= start, Visit.check_in < end)
        ).scalar_one()
        text = ""
        text += f"windtrack_visits_active {active}\n"
        text += f"windtrack_visits_checked_in_today {today}\n"
        return text
    finally:
        db.close()
