"""
SQLAlchemy model for the pharmacy medication catalog.
"""

from typing import Optional

from sqlalchemy import Boolean, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class MedicationCatalogItem(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "medication_catalog"

    name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    strength: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    form: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    category: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    price_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    stripe_price_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    requires_prescription: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
