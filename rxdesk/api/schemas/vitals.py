"""
Pydantic v2 schemas for patient vitals (manual entries and Junction
device metrics).
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from rxdesk.models.vitals import VitalSource, VitalType


class VitalReadingCreate(BaseModel):
    # Validated in the service so the caller gets the exact error message.
    type: str = Field(description="'weight' or 'blood_pressure'")
    value: Optional[Decimal] = None
    systolic: Optional[int] = None
    diastolic: Optional[int] = None
    unit: Optional[str] = Field(default=None, max_length=20)
    recorded_at: Optional[datetime] = None


class VitalReadingOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    vital_type: VitalType
    value: Optional[Decimal] = None
    systolic: Optional[int] = None
    diastolic: Optional[int] = None
    unit: str
    source: VitalSource
    recorded_at: datetime


class LinkTokenOut(BaseModel):
    link_token: str
    junction_user_id: str


class MetricsOut(BaseModel):
    category: str
    start_date: date
    end_date: date
    data: list[dict[str, Any]]
