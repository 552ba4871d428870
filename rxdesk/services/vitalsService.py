"""
Vitals Service
==============

Manual vital readings entered by patients. Only weight and blood pressure
are accepted; richer device data is read live from Junction and never
stored here.

Key functions:
  - validate_reading   -- normalise and check a manual entry
  - record_reading     -- persist a manual reading
  - list_readings      -- newest-first readings for a user, optionally filtered
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from rxdesk.models.vitals import VitalReading, VitalSource, VitalType

logger = logging.getLogger(__name__)

INVALID_TYPE_MESSAGE = "Invalid vital type. Only weight and blood_pressure are supported."

DEFAULT_UNITS: dict[VitalType, str] = {
    VitalType.WEIGHT: "lbs",
    VitalType.BLOOD_PRESSURE: "mmHg",
}


class InvalidVitalError(ValueError):
    """Raised when a manual vital entry is malformed."""


@dataclass(frozen=True)
class VitalEntry:
    """A validated manual reading, ready to persist."""

    vital_type: VitalType
    unit: str
    recorded_at: datetime
    value: Optional[Decimal] = None
    systolic: Optional[int] = None
    diastolic: Optional[int] = None


def parse_vital_type(raw: str) -> VitalType:
    try:
        return VitalType(raw)
    except ValueError as exc:
        raise InvalidVitalError(INVALID_TYPE_MESSAGE) from exc


def validate_reading(
    vital_type: str,
    *,
    value: Optional[float | str | Decimal] = None,
    systolic: Optional[int] = None,
    diastolic: Optional[int] = None,
    unit: Optional[str] = None,
    recorded_at: Optional[datetime] = None,
) -> VitalEntry:
    """Check a manual entry and fill in defaults.

    Weight needs a positive ``value``. Blood pressure needs both
    ``systolic`` and ``diastolic``, with systolic above diastolic.
    """
    kind = parse_vital_type(vital_type)
    when = recorded_at or datetime.now(timezone.utc)
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)

    if kind == VitalType.BLOOD_PRESSURE:
        if systolic is None or diastolic is None:
            raise InvalidVitalError("Blood pressure requires systolic and diastolic values.")
        if systolic <= 0 or diastolic <= 0:
            raise InvalidVitalError("Blood pressure values must be positive.")
        if systolic <= diastolic:
            raise InvalidVitalError("Systolic must be greater than diastolic.")
        return VitalEntry(
            vital_type=kind,
            unit=unit or DEFAULT_UNITS[kind],
            recorded_at=when,
            systolic=systolic,
            diastolic=diastolic,
        )

    if value is None:
        raise InvalidVitalError("Weight requires a value.")
    try:
        amount = Decimal(str(value))
    except InvalidOperation as exc:
        raise InvalidVitalError("Weight must be a number.") from exc
    if not amount.is_finite():
        raise InvalidVitalError("Weight must be a number.")
    if amount <= 0:
        raise InvalidVitalError("Weight must be positive.")

    return VitalEntry(
        vital_type=kind,
        unit=unit or DEFAULT_UNITS[kind],
        recorded_at=when,
        value=amount.quantize(Decimal("0.01")),
    )


async def record_reading(
    db: AsyncSession,
    user_id: uuid.UUID,
    entry: VitalEntry,
) -> VitalReading:
    reading = VitalReading(
        user_id=user_id,
        vital_type=entry.vital_type,
        value=entry.value,
        systolic=entry.systolic,
        diastolic=entry.diastolic,
        unit=entry.unit,
        source=VitalSource.MANUAL,
        recorded_at=entry.recorded_at,
    )
    db.add(reading)
    await db.flush()
    logger.info(
        "Vital recorded: user=%s, type=%s, id=%s",
        user_id,
        entry.vital_type.value,
        reading.id,
    )
    return reading


async def list_readings(
    db: AsyncSession,
    user_id: uuid.UUID,
    *,
    vital_type: Optional[VitalType] = None,
    limit: int = 100,
) -> Sequence[VitalReading]:
    stmt = select(VitalReading).where(VitalReading.user_id == user_id)
    if vital_type is not None:
        stmt = stmt.where(VitalReading.vital_type == vital_type)
    stmt = stmt.order_by(VitalReading.recorded_at.desc()).limit(limit)
    result = await db.execute(stmt)
    return result.scalars().all()
