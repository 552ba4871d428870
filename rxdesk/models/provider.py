"""
SQLAlchemy models for provider profiles and weekly availability.

``provider_availability`` stores one row per enabled weekday per time range.
``day_of_week`` follows the database convention 0=Sunday .. 6=Saturday and
times are wall-clock values in the row's ``timezone``.
"""

import uuid
from datetime import date, time
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    SmallInteger,
    String,
    Text,
    Time,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class ProviderProfile(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "provider_profiles"

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    npi_number: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    specialty: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    # Two-letter US state the provider is licensed in; scopes the order queue.
    licensed_state: Mapped[str] = mapped_column(String(2), nullable=False)
    timezone: Mapped[str] = mapped_column(
        String(50), nullable=False, default="America/New_York"
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="provider_profile")
    availability: Mapped[list["ProviderAvailability"]] = relationship(
        "ProviderAvailability",
        back_populates="provider",
        cascade="all, delete-orphan",
    )
    availability_exceptions: Mapped[list["ProviderAvailabilityException"]] = relationship(
        "ProviderAvailabilityException",
        back_populates="provider",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return (
            f"<ProviderProfile(id={self.id}, user_id={self.user_id}, "
            f"state={self.licensed_state})>"
        )


class ProviderAvailability(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "provider_availability"
    __table_args__ = (
        CheckConstraint("day_of_week BETWEEN 0 AND 6", name="ck_availability_day"),
        CheckConstraint("end_time > start_time", name="ck_availability_range"),
        Index("ix_provider_availability_provider_day", "provider_id", "day_of_week"),
    )

    provider_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("provider_profiles.id", ondelete="CASCADE"),
        nullable=False,
    )
    day_of_week: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)
    timezone: Mapped[str] = mapped_column(
        String(50), nullable=False, default="America/New_York"
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # Relationships
    provider: Mapped["ProviderProfile"] = relationship(
        "ProviderProfile", back_populates="availability"
    )

    def __repr__(self) -> str:
        return (
            f"<ProviderAvailability(provider_id={self.provider_id}, "
            f"day={self.day_of_week}, {self.start_time}-{self.end_time})>"
        )


class ProviderAvailabilityException(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A single-date override of the weekly schedule."""

    __tablename__ = "provider_availability_exceptions"

    provider_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("provider_profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    exception_date: Mapped[date] = mapped_column(Date, nullable=False)
    is_available: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    start_time: Mapped[Optional[time]] = mapped_column(Time, nullable=True)
    end_time: Mapped[Optional[time]] = mapped_column(Time, nullable=True)
    reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    provider: Mapped["ProviderProfile"] = relationship(
        "ProviderProfile", back_populates="availability_exceptions"
    )
