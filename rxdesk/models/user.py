"""
SQLAlchemy models for the users table.

A single ``users`` row backs patients, providers and admins; the role flags
decide which dashboards and routes a user may reach.
"""

import enum
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Enum, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from .order import _enum_values


class UserStatus(str, enum.Enum):
    PENDING_VERIFICATION = "pending_verification"
    ACTIVE = "active"
    SUSPENDED = "suspended"
    DEACTIVATED = "deactivated"


class User(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    # Profile
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    avatar_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Roles
    role_patient: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    role_provider: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    role_admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    status: Mapped[UserStatus] = mapped_column(
        Enum(UserStatus, name="user_status", values_callable=_enum_values),
        nullable=False,
        default=UserStatus.ACTIVE,
    )

    # External accounts
    stripe_customer_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    junction_user_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    timezone: Mapped[str] = mapped_column(
        String(50), nullable=False, default="America/New_York"
    )
    last_login_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Relationships
    provider_profile: Mapped[Optional["ProviderProfile"]] = relationship(
        "ProviderProfile", back_populates="user", uselist=False
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email!r})>"
