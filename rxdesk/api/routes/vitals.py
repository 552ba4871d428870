"""
Patient vitals routes
=====================

Routes:
  POST /api/v1/vitals                       -- record a manual weight or blood pressure
  GET  /api/v1/vitals                       -- the caller's manual readings, newest first
  POST /api/v1/vitals/link-token            -- Junction link token for connecting a device
  GET  /api/v1/vitals/metrics/{category}    -- device metrics from Junction over a date range
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, status

from rxdesk.api.deps import CurrentUser, DBSession
from rxdesk.api.schemas.common import Envelope
from rxdesk.api.schemas.vitals import (
    LinkTokenOut,
    MetricsOut,
    VitalReadingCreate,
    VitalReadingOut,
)
from rxdesk.integrations.junction import (
    JunctionError,
    create_link_token,
    get_metrics,
    resolve_or_create_user,
)
from rxdesk.services import vitalsService
from rxdesk.services.vitalsService import InvalidVitalError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/vitals", tags=["Vitals"])

_DEFAULT_METRIC_DAYS = 30


def _junction_error(exc: JunctionError) -> HTTPException:
    logger.warning("Junction request failed: %s (status=%s)", exc, exc.status)
    return HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail=str(exc),
    )


@router.post(
    "",
    response_model=Envelope[VitalReadingOut],
    status_code=status.HTTP_201_CREATED,
    summary="Record a manual vital reading",
)
async def record_vital(
    db: DBSession,
    user: CurrentUser,
    body: VitalReadingCreate,
) -> Envelope[VitalReadingOut]:
    try:
        entry = vitalsService.validate_reading(
            body.type,
            value=body.value,
            systolic=body.systolic,
            diastolic=body.diastolic,
            unit=body.unit,
            recorded_at=body.recorded_at,
        )
    except InvalidVitalError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc

    reading = await vitalsService.record_reading(db, user.id, entry)
    return Envelope(data=VitalReadingOut.model_validate(reading))


@router.get(
    "",
    response_model=Envelope[list[VitalReadingOut]],
    summary="List manual vital readings",
)
async def list_vitals(
    db: DBSession,
    user: CurrentUser,
    vital_type: Optional[str] = Query(default=None, alias="type"),
    limit: int = Query(default=100, ge=1, le=500),
) -> Envelope[list[VitalReadingOut]]:
    kind = None
    if vital_type is not None:
        try:
            kind = vitalsService.parse_vital_type(vital_type)
        except InvalidVitalError as exc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=str(exc),
            ) from exc

    readings = await vitalsService.list_readings(db, user.id, vital_type=kind, limit=limit)
    return Envelope(data=[VitalReadingOut.model_validate(r) for r in readings])


@router.post(
    "/link-token",
    response_model=Envelope[LinkTokenOut],
    summary="Create a Junction device link token",
)
async def create_device_link_token(
    db: DBSession,
    user: CurrentUser,
) -> Envelope[LinkTokenOut]:
    try:
        if not user.junction_user_id:
            user.junction_user_id = await resolve_or_create_user(str(user.id))
            await db.flush()
        token = await create_link_token(user.junction_user_id)
    except JunctionError as exc:
        raise _junction_error(exc) from exc

    return Envelope(data=LinkTokenOut(link_token=token, junction_user_id=user.junction_user_id))


@router.get(
    "/metrics/{category}",
    response_model=Envelope[MetricsOut],
    summary="Device health metrics",
    description=(
        "category is one of sleep, activity, body (daily summaries) or "
        "blood_pressure, hrv, glucose (time series). Defaults to the last "
        "30 days."
    ),
)
async def get_device_metrics(
    user: CurrentUser,
    category: str,
    start_date: Optional[date] = Query(default=None),
    end_date: Optional[date] = Query(default=None),
) -> Envelope[MetricsOut]:
    if not user.junction_user_id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No connected health devices for this account.",
        )

    end = end_date or date.today()
    start = start_date or end - timedelta(days=_DEFAULT_METRIC_DAYS)

    try:
        data = await get_metrics(user.junction_user_id, category, start, end)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except JunctionError as exc:
        raise _junction_error(exc) from exc

    return Envelope(data=MetricsOut(category=category, start_date=start, end_date=end, data=data))
