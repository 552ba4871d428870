"""
Provider availability API routes
================================

Weekly schedule blocks, the schedule edit form, and single-date exceptions.

Routes:
  GET    /api/v1/providers/{provider_id}/availability              -- grouped display blocks
  GET    /api/v1/providers/{provider_id}/availability/form         -- edit-form state
  PUT    /api/v1/providers/{provider_id}/availability              -- replace the weekly schedule
  GET    /api/v1/providers/{provider_id}/availability/exceptions   -- date overrides
  POST   /api/v1/providers/{provider_id}/availability/exceptions   -- add a date override
  DELETE /api/v1/providers/{provider_id}/availability/exceptions/{exception_id}

Any signed-in user may read a schedule. Only the provider themself or an
admin may change it.
"""

from __future__ import annotations

import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, status

from rxdesk.api.deps import CurrentUser, DBSession
from rxdesk.api.schemas.availability import (
    AvailabilityBlockOut,
    AvailabilityExceptionIn,
    AvailabilityExceptionOut,
    AvailabilityRowOut,
    WeeklyScheduleIn,
    WeeklyScheduleOut,
)
from rxdesk.api.schemas.common import Envelope
from rxdesk.models.provider import ProviderProfile
from rxdesk.models.user import User
from rxdesk.services import availabilityService
from rxdesk.services.availabilityMapper import (
    DaySchedule,
    InvalidScheduleError,
    TimeRange,
    WeeklyScheduleForm,
    map_rows_to_blocks,
)

router = APIRouter(prefix="/providers/{provider_id}/availability", tags=["Availability"])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

async def _load_provider(db, provider_id: uuid.UUID) -> ProviderProfile:
    try:
        return await availabilityService.get_provider(db, provider_id)
    except availabilityService.ProviderNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc


def _ensure_can_edit(user: User, provider: ProviderProfile) -> None:
    if user.role_admin or provider.user_id == user.id:
        return
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="You can only edit your own availability.",
    )


def _to_form(body: WeeklyScheduleIn) -> WeeklyScheduleForm:
    return WeeklyScheduleForm(
        days=[
            DaySchedule(
                label=day.label,
                enabled=day.enabled,
                times=[TimeRange(start=t.start, end=t.end) for t in day.times],
            )
            for day in body.days
        ],
        timezone=body.timezone,
    )


# ---------------------------------------------------------------------------
# Weekly schedule
# ---------------------------------------------------------------------------

@router.get(
    "",
    response_model=Envelope[list[AvailabilityBlockOut]],
    summary="Weekly availability as display blocks",
)
async def get_availability_blocks(
    db: DBSession,
    user: CurrentUser,
    provider_id: uuid.UUID,
) -> Envelope[list[AvailabilityBlockOut]]:
    await _load_provider(db, provider_id)
    blocks = await availabilityService.get_availability_blocks(db, provider_id)
    return Envelope(data=[AvailabilityBlockOut.model_validate(b) for b in blocks])


@router.get(
    "/form",
    response_model=Envelope[WeeklyScheduleIn],
    summary="Weekly availability as edit-form state",
    description=(
        "Seven days, Monday first. A provider with no saved rows gets the "
        "default Monday to Friday 8:30am - 5:00pm schedule."
    ),
)
async def get_schedule_form(
    db: DBSession,
    user: CurrentUser,
    provider_id: uuid.UUID,
) -> Envelope[WeeklyScheduleIn]:
    provider = await _load_provider(db, provider_id)
    _ensure_can_edit(user, provider)
    form = await availabilityService.get_schedule_form(db, provider_id)
    return Envelope(data=WeeklyScheduleIn.model_validate(form))


@router.put(
    "",
    response_model=Envelope[WeeklyScheduleOut],
    summary="Replace the weekly schedule",
    description=(
        "Deletes the saved rows for every submitted day and inserts the new "
        "ones in a single transaction."
    ),
)
async def replace_weekly_schedule(
    db: DBSession,
    user: CurrentUser,
    provider_id: uuid.UUID,
    body: WeeklyScheduleIn,
) -> Envelope[WeeklyScheduleOut]:
    provider = await _load_provider(db, provider_id)
    _ensure_can_edit(user, provider)

    try:
        rows = await availabilityService.replace_weekly_schedule(
            db, provider_id, _to_form(body)
        )
    except InvalidScheduleError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(exc),
        ) from exc

    return Envelope(
        data=WeeklyScheduleOut(
            rows=[AvailabilityRowOut.model_validate(r) for r in rows],
            blocks=[AvailabilityBlockOut.model_validate(b) for b in map_rows_to_blocks(rows)],
        )
    )


# ---------------------------------------------------------------------------
# Date exceptions
# ---------------------------------------------------------------------------

@router.get(
    "/exceptions",
    response_model=Envelope[list[AvailabilityExceptionOut]],
    summary="List date overrides",
)
async def list_exceptions(
    db: DBSession,
    user: CurrentUser,
    provider_id: uuid.UUID,
    from_date: Optional[date] = Query(default=None, description="Only overrides on or after this date"),
) -> Envelope[list[AvailabilityExceptionOut]]:
    await _load_provider(db, provider_id)
    items = await availabilityService.list_exceptions(db, provider_id, from_date=from_date)
    return Envelope(data=[AvailabilityExceptionOut.model_validate(e) for e in items])


@router.post(
    "/exceptions",
    response_model=Envelope[AvailabilityExceptionOut],
    status_code=status.HTTP_201_CREATED,
    summary="Add a date override",
)
async def add_exception(
    db: DBSession,
    user: CurrentUser,
    provider_id: uuid.UUID,
    body: AvailabilityExceptionIn,
) -> Envelope[AvailabilityExceptionOut]:
    provider = await _load_provider(db, provider_id)
    _ensure_can_edit(user, provider)

    try:
        exception = await availabilityService.add_exception(
            db,
            provider_id,
            exception_date=body.exception_date,
            is_available=body.is_available,
            start_time=body.start_time,
            end_time=body.end_time,
            reason=body.reason,
        )
    except InvalidScheduleError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(exc),
        ) from exc

    return Envelope(data=AvailabilityExceptionOut.model_validate(exception))


@router.delete(
    "/exceptions/{exception_id}",
    response_model=Envelope[dict],
    summary="Remove a date override",
)
async def delete_exception(
    db: DBSession,
    user: CurrentUser,
    provider_id: uuid.UUID,
    exception_id: uuid.UUID,
) -> Envelope[dict]:
    provider = await _load_provider(db, provider_id)
    _ensure_can_edit(user, provider)

    try:
        await availabilityService.delete_exception(db, provider_id, exception_id)
    except availabilityService.AvailabilityExceptionNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc

    return Envelope(data={"deleted": str(exception_id)})
