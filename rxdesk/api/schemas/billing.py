"""
Pydantic v2 schemas for Stripe checkout, billing portal and webhooks.
"""

from __future__ import annotations

import uuid
from typing import Optional

from pydantic import BaseModel, Field


class CheckoutItemIn(BaseModel):
    price: str = Field(min_length=1, description="Stripe price id")
    quantity: int = Field(default=1, ge=1, le=100)


class CheckoutRequest(BaseModel):
    items: list[CheckoutItemIn] = Field(min_length=1)
    order_id: Optional[uuid.UUID] = None
    success_url: Optional[str] = None
    cancel_url: Optional[str] = None


class CheckoutSessionOut(BaseModel):
    session_id: str
    url: Optional[str] = None
    mode: str


class PortalRequest(BaseModel):
    return_url: Optional[str] = None


class PortalSessionOut(BaseModel):
    url: str


class WebhookResponse(BaseModel):
    event_type: str
    processed: bool
    message: str
