from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy import func, select, update

from apps.visit_backend.errors import NotFoundError, SiteBlockedError, ValidationError
from apps.visit_backend.models import Visit, VisitStatus
from common_core.site_policy import site_allowed

log = logging.getLogger("windtrack.visits")


def _now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _new_id() -> str:
    return str(uuid.uuid4())


def iso_utc(value: datetime | None) -> str | None:
    return (value.isoformat() + "Z") if value else None


def _clean(value: Any) -> str | None:
    if value is None:
        return None
    s = str(value).strip()
    return s or None


def normalize_technicians(raw: Any) -> list[str]:
    """Accept a list or a comma-separated string; trim, drop blanks, dedupe in order."""
    if isinstance(raw, str):
        items = raw.split(",")
    elif isinstance(raw, (list, tuple)):
        items = [str(t) for t in raw if t is not None]
    else:
        items = []

    out: list[str] = []
    for t in items:
        t = t.strip()
        if t and t not in out:
            out.append(t)
    return out


def normalize_status(raw: Any) -> str | None:
    s = _clean(raw)
    if s is None:
        return None
    try:
        return VisitStatus(s.upper()).value
    except ValueError as e:
        raise ValidationError("status must be IN or OUT") from e


def resolve_turbine_id(turbine_id: Any, power_plant: str | None) -> str:
    t = _clean(turbine_id)
    if t:
        return t
    return f"SITE-{power_plant}" if power_plant else "N/A"


def today_bounds_utc(now: datetime | None = None) -> tuple[datetime, datetime]:
    now = now or _now()
    start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    return start, start + timedelta(days=1)


def _co_activity_conditions(power_plant: str) -> list:
    start, end = today_bounds_utc()
    return [
        Visit.power_plant == power_plant,
        Visit.check_out.is_(None),
        func.upper(func.coalesce(Visit.status, VisitStatus.IN.value)) == VisitStatus.IN.value,
        Visit.check_in >= start,
        Visit.check_in < end,
    ]


def visit_to_dict(v: Visit) -> dict[str, Any]:
    return {
        "id": v.id,
        "turbineId": v.turbine_id,
        "technicians": list(v.technicians or []),
        "reason": v.reason,
        "comment": v.comment,
        "powerPlant": v.power_plant,
        "equipmentName": v.equipment_name,
        "maintenanceCompany": v.maintenance_company,
        "status": v.status,
        "malfunctionType": v.malfunction_type,
        "checkIn": iso_utc(v.check_in),
        "checkOut": iso_utc(v.check_out),
    }


def count_co_active(db, power_plant: str, exclude_id: str | None = None) -> int:
    q = select(func.count()).select_from(Visit).where(*_co_activity_conditions(power_plant))
    if exclude_id:
        q = q.where(Visit.id != exclude_id)
    return int(db.execute(q).scalar_one())


def check_in(
    db,
    technicians: Any,
    turbine_id: Any = None,
    reason: Any = None,
    comment: Any = None,
    power_plant: Any = None,
    equipment_name: Any = None,
    maintenance_company: Any = None,
    status: Any = None,
    malfunction_type: Any = None,
) -> tuple[Visit, bool]:
    techs = normalize_technicians(technicians)
    if not techs:
        raise ValidationError("At least one technician name is required")

    plant = _clean(power_plant)
    status_value = normalize_status(status)
    if not site_allowed(plant):
        raise SiteBlockedError(f"Check-in is currently blocked for site {plant}")

    v = Visit(
        id=_new_id(),
        turbine_id=resolve_turbine_id(turbine_id, plant),
        technicians=techs,
        reason=_clean(reason),
        comment=_clean(comment),
        power_plant=plant,
        equipment_name=_clean(equipment_name),
        maintenance_company=_clean(maintenance_company),
        status=status_value,
        malfunction_type=_clean(malfunction_type),
        check_in=_now(),
        check_out=None,
    )
    db.add(v)
    db.flush()

    # Read after write: a concurrent check-in may be missed, never double counted
    co_activity = bool(plant) and count_co_active(db, plant, exclude_id=v.id) > 0

    log.info(
        "visit_checked_in",
        extra={"visit_id": v.id, "turbine_id": v.turbine_id, "power_plant": plant},
    )
    return v, co_activity


def check_out(db, visit_id: Any) -> tuple[str, datetime]:
    vid = _clean(visit_id) if isinstance(visit_id, str) else None
    if not vid:
        raise ValidationError("visitId is required")

    now = _now()
    res = db.execute(
        update(Visit)
        .where(Visit.id == vid, Visit.check_out.is_(None))
        .values(check_out=now)
        .execution_options(synchronize_session=False)
    )
    if res.rowcount != 1:
        raise NotFoundError("Active visit not found or already checked out")

    log.info("visit_checked_out", extra={"visit_id": vid})
    return vid, now


def get_visit(db, visit_id: str) -> Visit:
    v = db.get(Visit, visit_id)
    if not v:
        raise NotFoundError("Not found")
    return v


def get_active_for_turbine(db, turbine_id: Any) -> Visit | None:
    tid = _clean(turbine_id)
    if not tid:
        raise ValidationError("turbineId is required")
    return (
        db.execute(
            select(Visit)
            .where(Visit.turbine_id == tid, Visit.check_out.is_(None))
            .order_by(Visit.check_in.desc())
            .limit(1)
        )
        .scalars()
        .first()
    )


def get_active_for_site(db, power_plant: Any) -> list[Visit]:
    plant = _clean(power_plant)
    if not plant:
        raise ValidationError("powerPlant is required")
    return list(
        db.execute(
            select(Visit)
            .where(*_co_activity_conditions(plant))
            .order_by(Visit.check_in.desc())
        )
        .scalars()
        .all()
    )
