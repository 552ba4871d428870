"""
Availability Mapper
===================

Converts between the three shapes a provider's weekly schedule takes:

  - **rows**: flat ``provider_availability`` records, one per enabled weekday
    per time range (``day_of_week`` 0=Sunday)
  - **blocks**: display cards grouping rows that share a time range
  - **form**: the seven-day (Monday first) edit form with a list of time
    ranges per day

Key functions:
  - map_rows_to_blocks  -- group rows by (start_time, end_time)
  - map_blocks_to_rows  -- expand blocks back into rows
  - map_form_to_rows    -- enabled days x ranges -> rows
  - map_rows_to_form    -- rows -> form state, with a Mon-Fri default

All functions are pure; persistence lives in ``availabilityService``.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, time
from typing import Iterable, Protocol, Sequence

from rxdesk.services.scheduleFormatter import (
    UI_DAYS,
    db_day_to_ui_index,
    format_day_range,
    format_time_range,
    format_timezone_label,
    time_to_hhmm,
    ui_index_to_db_day,
)

# Blocks spanning at least this many days are labelled "Week"
WEEK_LABEL_MIN_DAYS = 4

DEFAULT_START = time(8, 30)
DEFAULT_END = time(17, 0)
DEFAULT_ENABLED_UI_DAYS: frozenset[int] = frozenset({0, 1, 2, 3, 4})  # Mon-Fri


class InvalidScheduleError(ValueError):
    """Raised when a submitted weekly schedule form is malformed."""


# ---------------------------------------------------------------------------
# Data shapes
# ---------------------------------------------------------------------------

class AvailabilityRowLike(Protocol):
    day_of_week: int
    start_time: time
    end_time: time
    timezone: str


@dataclass(frozen=True)
class AvailabilityRowData:
    """A schedule row not yet (or no longer) tied to an ORM instance."""
    provider_id: uuid.UUID
    day_of_week: int
    start_time: time
    end_time: time
    timezone: str


@dataclass(frozen=True)
class AvailabilityBlock:
    """Display card for one shared time range."""
    id: str
    label: str
    is_default: bool
    days: str
    time: str
    timezone: str
    # Raw values kept so a block can be expanded back into rows.
    day_of_week: tuple[int, ...]
    start_time: time
    end_time: time
    timezone_name: str


@dataclass(frozen=True)
class TimeRange:
    start: time
    end: time


@dataclass
class DaySchedule:
    label: str
    enabled: bool
    times: list[TimeRange] = field(default_factory=list)


@dataclass
class WeeklyScheduleForm:
    """Seven Monday-first days plus the zone the times are expressed in."""
    days: list[DaySchedule]
    timezone: str


# ---------------------------------------------------------------------------
# Rows -> blocks
# ---------------------------------------------------------------------------

def map_rows_to_blocks(
    rows: Iterable[AvailabilityRowLike],
    *,
    at: datetime | None = None,
) -> list[AvailabilityBlock]:
    """Group schedule rows into display blocks by identical time range.

    Blocks are ordered by the first appearance of their time range in
    ``rows``; the first block is the default one. Within a block the days are
    ordered Monday first.
    """
    groups: dict[tuple[time, time], list[AvailabilityRowLike]] = {}
    for row in rows:
        groups.setdefault((row.start_time, row.end_time), []).append(row)

    blocks: list[AvailabilityBlock] = []
    for index, ((start, end), items) in enumerate(groups.items()):
        db_days = sorted(
            {item.day_of_week for item in items},
            key=db_day_to_ui_index,
        )
        names = [UI_DAYS[db_day_to_ui_index(d)] for d in db_days]
        zone = items[0].timezone

        blocks.append(
            AvailabilityBlock(
                id=f"block-{index + 1}",
                label="Week" if len(names) >= WEEK_LABEL_MIN_DAYS else ", ".join(names),
                is_default=index == 0,
                days=format_day_range(names),
                time=format_time_range(start, end),
                timezone=format_timezone_label(zone, at),
                day_of_week=tuple(db_days),
                start_time=start,
                end_time=end,
                timezone_name=zone,
            )
        )
    return blocks


def map_blocks_to_rows(
    blocks: Iterable[AvailabilityBlock],
    provider_id: uuid.UUID,
) -> list[AvailabilityRowData]:
    """Expand display blocks back into one row per day."""
    return [
        AvailabilityRowData(
            provider_id=provider_id,
            day_of_week=day,
            start_time=block.start_time,
            end_time=block.end_time,
            timezone=block.timezone_name,
        )
        for block in blocks
        for day in block.day_of_week
    ]


# ---------------------------------------------------------------------------
# Form <-> rows
# ---------------------------------------------------------------------------

def _validate_day_ranges(day: DaySchedule) -> None:
    ordered = sorted(day.times, key=lambda r: r.start)
    previous_end: time | None = None
    for time_range in ordered:
        if time_range.end <= time_range.start:
            raise InvalidScheduleError(
                f"{day.label}: end time {time_to_hhmm(time_range.end)} must be "
                f"after start time {time_to_hhmm(time_range.start)}."
            )
        if previous_end is not None and time_range.start < previous_end:
            raise InvalidScheduleError(f"{day.label}: time ranges overlap.")
        previous_end = time_range.end


def map_form_to_rows(
    form: WeeklyScheduleForm,
    provider_id: uuid.UUID,
) -> list[AvailabilityRowData]:
    """Produce one row per (enabled day, time range) pair.

    Raises:
        InvalidScheduleError: If the form does not have exactly seven days or
            an enabled day has an empty or overlapping range.
    """
    if len(form.days) != len(UI_DAYS):
        raise InvalidScheduleError(
            f"Weekly schedule must contain {len(UI_DAYS)} days, got {len(form.days)}."
        )

    rows: list[AvailabilityRowData] = []
    for ui_index, day in enumerate(form.days):
        if not day.enabled:
            continue
        _validate_day_ranges(day)
        for time_range in day.times:
            rows.append(
                AvailabilityRowData(
                    provider_id=provider_id,
                    day_of_week=ui_index_to_db_day(ui_index),
                    start_time=time_range.start,
                    end_time=time_range.end,
                    timezone=form.timezone,
                )
            )
    return rows


def default_form(timezone: str) -> WeeklyScheduleForm:
    """Form state for a provider with no saved schedule: Mon-Fri 8:30-5:00."""
    return WeeklyScheduleForm(
        days=[
            DaySchedule(
                label=label,
                enabled=index in DEFAULT_ENABLED_UI_DAYS,
                times=[TimeRange(DEFAULT_START, DEFAULT_END)],
            )
            for index, label in enumerate(UI_DAYS)
        ],
        timezone=timezone,
    )


def map_rows_to_form(
    rows: Sequence[AvailabilityRowLike],
    timezone_fallback: str,
) -> WeeklyScheduleForm:
    """Rebuild the edit form from saved rows.

    The zone comes from the first row. Disabled days keep the default range
    so toggling one on starts from a sensible value.
    """
    if not rows:
        return default_form(timezone_fallback)

    per_day: dict[int, list[TimeRange]] = {}
    for row in rows:
        per_day.setdefault(db_day_to_ui_index(row.day_of_week), []).append(
            TimeRange(row.start_time, row.end_time)
        )

    days = []
    for index, label in enumerate(UI_DAYS):
        ranges = sorted(per_day.get(index, []), key=lambda r: r.start)
        days.append(
            DaySchedule(
                label=label,
                enabled=bool(ranges),
                times=ranges or [TimeRange(DEFAULT_START, DEFAULT_END)],
            )
        )
    return WeeklyScheduleForm(days=days, timezone=rows[0].timezone)
