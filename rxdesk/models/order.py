"""
SQLAlchemy models for patient orders and their provider review lifecycle.

``review_status`` / ``reviewed_by`` form the single-owner review lock:
``reviewed_by`` is only set while the order is ``in_review`` (the owner) or
``completed`` (the provider who signed off).
"""

import enum
import uuid
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import DateTime, Enum, ForeignKey, Index, Integer, String
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class ReviewStatus(str, enum.Enum):
    PENDING = "pending"
    IN_REVIEW = "in_review"
    COMPLETED = "completed"


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    return [member.value for member in enum_cls]


class Order(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "orders"
    __table_args__ = (
        Index("ix_orders_state_created", "state", "created_at"),
        Index("ix_orders_review_status", "review_status"),
    )

    # Human-facing numeric identifier shown on dashboards.
    order_number: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)

    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    patient_name: Mapped[str] = mapped_column(String(200), nullable=False)
    patient_email: Mapped[Optional[str]] = mapped_column(String(320), nullable=True)
    state: Mapped[str] = mapped_column(String(2), nullable=False)

    shipping_address: Mapped[Optional[Any]] = mapped_column(JSONB, nullable=True)
    billing_address: Mapped[Optional[Any]] = mapped_column(JSONB, nullable=True)
    line_items: Mapped[Any] = mapped_column(JSONB, nullable=False, default=list)
    questionnaire_data: Mapped[Optional[Any]] = mapped_column(JSONB, nullable=True)
    total_amount_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    status: Mapped[OrderStatus] = mapped_column(
        Enum(OrderStatus, name="order_status", values_callable=_enum_values),
        nullable=False,
        default=OrderStatus.PENDING,
    )

    # Review lock
    review_status: Mapped[ReviewStatus] = mapped_column(
        Enum(ReviewStatus, name="review_status", values_callable=_enum_values),
        nullable=False,
        default=ReviewStatus.PENDING,
    )
    reviewed_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    review_started_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Payment
    stripe_checkout_session_id: Mapped[Optional[str]] = mapped_column(
        String(255), nullable=True, unique=True
    )
    paid_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    def __repr__(self) -> str:
        return (
            f"<Order(id={self.id}, number={self.order_number}, "
            f"review={self.review_status.value if self.review_status else None})>"
        )
