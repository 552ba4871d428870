"""
Availability Service
====================

Persistence for provider weekly schedules and single-date exceptions.

Key functions:
  - get_provider                -- load a provider profile or raise
  - list_availability_rows      -- saved weekly rows in insertion order
  - get_availability_blocks     -- rows grouped into display blocks
  - get_schedule_form           -- rows as edit-form state (with defaults)
  - replace_weekly_schedule     -- delete-then-insert for the submitted days
  - list_exceptions / add_exception / delete_exception

``replace_weekly_schedule`` never commits. The delete and the inserts are
flushed on the caller's session so the request-scoped transaction opened by
``get_db`` either persists the whole new schedule or none of it.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date, time
from typing import Optional, Sequence

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from rxdesk.models.provider import (
    ProviderAvailability,
    ProviderAvailabilityException,
    ProviderProfile,
)
from rxdesk.services.availabilityMapper import (
    AvailabilityBlock,
    InvalidScheduleError,
    WeeklyScheduleForm,
    map_form_to_rows,
    map_rows_to_blocks,
    map_rows_to_form,
)
from rxdesk.services.scheduleFormatter import is_valid_timezone, ui_index_to_db_day

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class ProviderNotFoundError(Exception):
    """Raised when a provider profile cannot be found by ID."""

    def __init__(self, provider_id: uuid.UUID) -> None:
        self.provider_id = provider_id
        super().__init__(f"Provider with id '{provider_id}' not found.")


class AvailabilityExceptionNotFoundError(Exception):
    def __init__(self, exception_id: uuid.UUID) -> None:
        self.exception_id = exception_id
        super().__init__(f"Availability exception '{exception_id}' not found.")


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

async def get_provider(db: AsyncSession, provider_id: uuid.UUID) -> ProviderProfile:
    result = await db.execute(
        select(ProviderProfile).where(ProviderProfile.id == provider_id)
    )
    provider = result.scalar_one_or_none()
    if provider is None:
        raise ProviderNotFoundError(provider_id)
    return provider


async def get_provider_for_user(
    db: AsyncSession, user_id: uuid.UUID
) -> Optional[ProviderProfile]:
    result = await db.execute(
        select(ProviderProfile).where(ProviderProfile.user_id == user_id)
    )
    return result.scalar_one_or_none()


async def list_availability_rows(
    db: AsyncSession,
    provider_id: uuid.UUID,
) -> Sequence[ProviderAvailability]:
    """Return active weekly rows in the order they were saved."""
    stmt = (
        select(ProviderAvailability)
        .where(
            ProviderAvailability.provider_id == provider_id,
            ProviderAvailability.is_active.is_(True),
        )
        .order_by(
            ProviderAvailability.created_at,
            ProviderAvailability.start_time,
        )
    )
    result = await db.execute(stmt)
    return result.scalars().all()


async def get_availability_blocks(
    db: AsyncSession,
    provider_id: uuid.UUID,
) -> list[AvailabilityBlock]:
    await get_provider(db, provider_id)
    rows = await list_availability_rows(db, provider_id)
    return map_rows_to_blocks(rows)


async def get_schedule_form(
    db: AsyncSession,
    provider_id: uuid.UUID,
) -> WeeklyScheduleForm:
    provider = await get_provider(db, provider_id)
    rows = await list_availability_rows(db, provider_id)
    return map_rows_to_form(rows, provider.timezone)


# ---------------------------------------------------------------------------
# Weekly schedule rewrite
# ---------------------------------------------------------------------------

async def replace_weekly_schedule(
    db: AsyncSession,
    provider_id: uuid.UUID,
    form: WeeklyScheduleForm,
) -> Sequence[ProviderAvailability]:
    """Replace the provider's rows for every day present in ``form``.

    The form is fully validated before anything is deleted. Existing rows on
    the affected days are removed and the new rows inserted in one flush.

    Raises:
        ProviderNotFoundError: If the provider does not exist.
        InvalidScheduleError: If the form or its timezone is invalid.
    """
    await get_provider(db, provider_id)

    if not is_valid_timezone(form.timezone):
        raise InvalidScheduleError(f"Unknown timezone: {form.timezone!r}")

    new_rows = map_form_to_rows(form, provider_id)
    affected_days = [ui_index_to_db_day(i) for i in range(len(form.days))]

    await db.execute(
        delete(ProviderAvailability).where(
            ProviderAvailability.provider_id == provider_id,
            ProviderAvailability.day_of_week.in_(affected_days),
        )
    )

    db.add_all(
        [
            ProviderAvailability(
                provider_id=row.provider_id,
                day_of_week=row.day_of_week,
                start_time=row.start_time,
                end_time=row.end_time,
                timezone=row.timezone,
            )
            for row in new_rows
        ]
    )
    await db.flush()

    logger.info(
        "Weekly schedule replaced for provider %s: %d rows across %d days",
        provider_id,
        len(new_rows),
        len({r.day_of_week for r in new_rows}),
    )

    return await list_availability_rows(db, provider_id)


# ---------------------------------------------------------------------------
# Date exceptions
# ---------------------------------------------------------------------------

async def list_exceptions(
    db: AsyncSession,
    provider_id: uuid.UUID,
    *,
    from_date: date | None = None,
) -> Sequence[ProviderAvailabilityException]:
    stmt = select(ProviderAvailabilityException).where(
        ProviderAvailabilityException.provider_id == provider_id
    )
    if from_date is not None:
        stmt = stmt.where(ProviderAvailabilityException.exception_date >= from_date)
    stmt = stmt.order_by(ProviderAvailabilityException.exception_date)
    result = await db.execute(stmt)
    return result.scalars().all()


async def add_exception(
    db: AsyncSession,
    provider_id: uuid.UUID,
    *,
    exception_date: date,
    is_available: bool,
    start_time: time | None = None,
    end_time: time | None = None,
    reason: str | None = None,
) -> ProviderAvailabilityException:
    """Record a date override.

    An unavailable day ignores any times passed in. An available override
    must carry a valid range.
    """
    await get_provider(db, provider_id)

    if is_available:
        if start_time is None or end_time is None:
            raise InvalidScheduleError(
                "Start and end times are required when marking a date available."
            )
        if end_time <= start_time:
            raise InvalidScheduleError("End time must be after start time.")
    else:
        start_time = end_time = None

    exception = ProviderAvailabilityException(
        provider_id=provider_id,
        exception_date=exception_date,
        is_available=is_available,
        start_time=start_time,
        end_time=end_time,
        reason=reason,
    )
    db.add(exception)
    await db.flush()

    logger.info(
        "Availability exception added for provider %s on %s (available=%s)",
        provider_id,
        exception_date,
        is_available,
    )
    return exception


async def delete_exception(
    db: AsyncSession,
    provider_id: uuid.UUID,
    exception_id: uuid.UUID,
) -> None:
    result = await db.execute(
        select(ProviderAvailabilityException).where(
            ProviderAvailabilityException.id == exception_id,
            ProviderAvailabilityException.provider_id == provider_id,
        )
    )
    exception = result.scalar_one_or_none()
    if exception is None:
        raise AvailabilityExceptionNotFoundError(exception_id)

    await db.delete(exception)
    await db.flush()
