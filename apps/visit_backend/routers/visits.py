from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request
from pydantic import BaseModel, ConfigDict, Field

from apps.visit_backend.errors import MSG_INTERNAL, InternalError, VisitError
from apps.visit_backend.models import Visit
from apps.visit_backend.notifier import checkin_message, checkout_message, notify_site
from apps.visit_backend.rate_limit import enforce_rate_limit
from apps.visit_backend.services import (
    check_in,
    check_out,
    get_active_for_site,
    get_active_for_turbine,
    get_visit,
    iso_utc,
    visit_to_dict,
)
from common_core.db import SessionLocal

log = logging.getLogger("windtrack.api")
router = APIRouter(
    prefix="/api/visits", tags=["visits"], dependencies=[Depends(enforce_rate_limit)]
)


class CheckInIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    turbine_id: str | None = Field(default=None, alias="turbineId")
    technicians: list[Any] | str | None = None
    reason: str | None = None
    comment: str | None = None
    power_plant: str | None = Field(default=None, alias="powerPlant")
    equipment_name: str | None = Field(default=None, alias="equipmentName")
    maintenance_company: str | None = Field(default=None, alias="maintenanceCompany")
    status: str | None = None
    malfunction_type: str | None = Field(default=None, alias="malfunctionType")


class CheckOutIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    visit_id: Any = Field(default=None, alias="visitId")


def _internal(event: str) -> InternalError:
    log.exception(event)
    return InternalError(MSG_INTERNAL)


def _schedule_notification(request: Request, background: BackgroundTasks, v: Visit, message) -> None:
    if not v.power_plant:
        return
    subject, text = message(v)
    background.add_task(notify_site, request.app.state.notifier, v.power_plant, subject, text, v.id)


# Literal paths go before "/{visit_id}" so the id route never captures them.


@router.get("/active-site")
def active_site(power_plant: str | None = Query(default=None, alias="powerPlant")):
    db = SessionLocal()
    try:
        rows = get_active_for_site(db, power_plant)
        return {"count": len(rows), "visits": [visit_to_dict(v) for v in rows]}
    except VisitError:
        raise
    except Exception as e:
        raise _internal("active_site_failed") from e
    finally:
        db.close()


@router.get("/active")
def active_for_turbine(turbine_id: str | None = Query(default=None, alias="turbineId")):
    db = SessionLocal()
    try:
        v = get_active_for_turbine(db, turbine_id)
        return {"visit": visit_to_dict(v) if v else None}
    except VisitError:
        raise
    except Exception as e:
        raise _internal("active_visit_failed") from e
    finally:
        db.close()


@router.post("/checkin", status_code=201)
def checkin(body: CheckInIn, request: Request, background: BackgroundTasks):
    db = SessionLocal()
    try:
        v, co_activity = check_in(
            db,
            technicians=body.technicians,
            turbine_id=body.turbine_id,
            reason=body.reason,
            comment=body.comment,
            power_plant=body.power_plant,
            equipment_name=body.equipment_name,
            maintenance_company=body.maintenance_company,
            status=body.status,
            malfunction_type=body.malfunction_type,
        )
        db.commit()
        _schedule_notification(request, background, v, checkin_message)
        return {"visit": visit_to_dict(v), "coActivity": co_activity}
    except VisitError:
        db.rollback()
        raise
    except Exception as e:
        db.rollback()
        raise _internal("checkin_failed") from e
    finally:
        db.close()


@router.post("/checkout")
def checkout(request: Request, background: BackgroundTasks, body: CheckOutIn | None = None):
    db = SessionLocal()
    try:
        visit_id, checked_out_at = check_out(db, body.visit_id if body else None)
        db.commit()
    except VisitError:
        db.rollback()
        db.close()
        raise
    except Exception as e:
        db.rollback()
        db.close()
        raise _internal("checkout_failed") from e

    # The transition is committed; failing to load mail context must not change the outcome
    try:
        _schedule_notification(request, background, get_visit(db, visit_id), checkout_message)
    except Exception as e:
        log.warning("notification_context_failed", extra={"visit_id": visit_id, "error": str(e)})
    finally:
        db.close()
    return {"visitId": visit_id, "checkOut": iso_utc(checked_out_at)}


@router.get("/{visit_id}")
def read_visit(visit_id: str):
    db = SessionLocal()
    try:
        return {"visit": visit_to_dict(get_visit(db, visit_id))}
    except VisitError:
        raise
    except Exception as e:
        raise _internal("get_visit_failed") from e
    finally:
        db.close()
