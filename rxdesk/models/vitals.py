"""
SQLAlchemy model for patient vital readings (manual entries and synced
device data).
"""

import enum
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import DateTime, Enum, ForeignKey, Integer, Numeric, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin, UUIDPrimaryKeyMixin, utcnow
from .order import _enum_values


class VitalType(str, enum.Enum):
    WEIGHT = "weight"
    BLOOD_PRESSURE = "blood_pressure"


class VitalSource(str, enum.Enum):
    MANUAL = "manual"
    DEVICE = "device"


class VitalReading(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "vital_readings"

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    vital_type: Mapped[VitalType] = mapped_column(
        Enum(VitalType, name="vital_type", values_callable=_enum_values),
        nullable=False,
    )
    value: Mapped[Optional[Decimal]] = mapped_column(Numeric(7, 2), nullable=True)
    systolic: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    diastolic: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    unit: Mapped[str] = mapped_column(String(20), nullable=False)
    source: Mapped[VitalSource] = mapped_column(
        Enum(VitalSource, name="vital_source", values_callable=_enum_values),
        nullable=False,
        default=VitalSource.MANUAL,
    )
    recorded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
