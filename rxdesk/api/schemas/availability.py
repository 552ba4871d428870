"""
Pydantic v2 schemas for provider weekly availability and date exceptions.
"""

from __future__ import annotations

import datetime as dt
import uuid
from datetime import date, time
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


# ---------------------------------------------------------------------------
# Blocks (read view)
# ---------------------------------------------------------------------------

class AvailabilityBlockOut(BaseModel):
    """One grouped display block: days sharing the same time range."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    label: str
    is_default: bool
    days: str = Field(description="Formatted day range, e.g. 'Mon - Fri'")
    time: str = Field(description="Formatted time range, e.g. '8:30am - 5:00pm'")
    timezone: str = Field(description="Display label, e.g. 'New York (GMT-4)'")
    day_of_week: list[int] = Field(description="Database day numbers, 0=Sunday")
    start_time: dt.time
    end_time: dt.time
    timezone_name: str


# ---------------------------------------------------------------------------
# Edit form
# ---------------------------------------------------------------------------

class TimeRangeIn(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    start: time
    end: time


class DayScheduleIn(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    label: str
    enabled: bool
    times: list[TimeRangeIn] = Field(default_factory=list)


class WeeklyScheduleIn(BaseModel):
    """Weekly edit form: exactly seven days, Monday first."""

    model_config = ConfigDict(from_attributes=True)

    days: list[DayScheduleIn] = Field(min_length=7, max_length=7)
    timezone: str = Field(min_length=1, max_length=50)


class AvailabilityRowOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    day_of_week: int
    start_time: time
    end_time: time
    timezone: str


class WeeklyScheduleOut(BaseModel):
    """Saved schedule returned after a rewrite."""

    rows: list[AvailabilityRowOut]
    blocks: list[AvailabilityBlockOut]


# ---------------------------------------------------------------------------
# Date exceptions
# ---------------------------------------------------------------------------

class AvailabilityExceptionIn(BaseModel):
    exception_date: date
    is_available: bool = False
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    reason: Optional[str] = Field(default=None, max_length=500)

    @model_validator(mode="after")
    def _check_times(self) -> "AvailabilityExceptionIn":
        if self.is_available and (self.start_time is None or self.end_time is None):
            raise ValueError("start_time and end_time are required when is_available is true")
        return self


class AvailabilityExceptionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    exception_date: date
    is_available: bool
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    reason: Optional[str] = None
