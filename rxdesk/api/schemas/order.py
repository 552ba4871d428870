"""
Pydantic v2 schemas for the provider order dashboard and the order review
screen.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from rxdesk.models.order import OrderStatus, ReviewStatus


# ---------------------------------------------------------------------------
# Dashboard list
# ---------------------------------------------------------------------------

class OrderListItem(BaseModel):
    """Row in the provider's order table."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    order_number: str
    patient_name: str
    state: str
    status: OrderStatus
    review_status: ReviewStatus
    total_amount_cents: int
    reviewed_by: Optional[uuid.UUID] = None
    created_at: datetime
    created_display: str = Field(default="", description="M/D/YYYY")


# ---------------------------------------------------------------------------
# Review screen
# ---------------------------------------------------------------------------

class QuestionnaireAnswer(BaseModel):
    question: str
    answer: str


class OrderReviewOut(BaseModel):
    """Order as shown on the review screen."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    order_number: str
    patient_name: str
    patient_email: Optional[str] = None
    state: str
    status: OrderStatus
    review_status: ReviewStatus
    reviewed_by: Optional[uuid.UUID] = None
    review_started_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None
    total_amount_cents: int
    line_items: list[Any] = Field(default_factory=list)
    shipping_address: Optional[dict[str, Any]] = None
    billing_address: Optional[dict[str, Any]] = None
    paid_at: Optional[datetime] = None
    created_at: datetime


class OrderReviewDetail(BaseModel):
    order: OrderReviewOut
    review_status_label: str
    total_display: str
    state_name: str
    questionnaire: list[QuestionnaireAnswer]
    available_actions: list[str]
    is_locked_by_viewer: bool
