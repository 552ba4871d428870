"""
Pydantic v2 schemas for the medication catalog API.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class MedicationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    strength: Optional[str] = None
    form: Optional[str] = None
    category: Optional[str] = None
    description: Optional[str] = None
    price_cents: int
    stripe_price_id: Optional[str] = None
    requires_prescription: bool
    is_active: bool
    created_at: datetime
    updated_at: datetime


class MedicationCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    strength: Optional[str] = Field(default=None, max_length=50)
    form: Optional[str] = Field(default=None, max_length=50)
    category: Optional[str] = Field(default=None, max_length=100)
    description: Optional[str] = None
    price_cents: int = Field(default=0, ge=0)
    stripe_price_id: Optional[str] = Field(default=None, max_length=255)
    requires_prescription: bool = True
    is_active: bool = True


class MedicationUpdate(BaseModel):
    """Partial update; only the fields sent are changed."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    strength: Optional[str] = Field(default=None, max_length=50)
    form: Optional[str] = Field(default=None, max_length=50)
    category: Optional[str] = Field(default=None, max_length=100)
    description: Optional[str] = None
    price_cents: Optional[int] = Field(default=None, ge=0)
    stripe_price_id: Optional[str] = Field(default=None, max_length=255)
    requires_prescription: Optional[bool] = None
    is_active: Optional[bool] = None
