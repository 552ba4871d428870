"""
Schedule Formatter
==================

Pure helpers that turn raw weekday indices and wall-clock times into the
strings shown on provider schedule cards ("Mon - Fri", "8:30am - 5:00pm",
"Dublin (GMT+1)").

Two weekday conventions meet here:

  - database rows use 0=Sunday .. 6=Saturday
  - the UI lists the week Monday first: 0=Mon .. 6=Sun

``db_day_to_ui_index`` / ``ui_index_to_db_day`` convert between them.
"""

from __future__ import annotations

from datetime import datetime, time, timezone
from typing import Sequence
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

# Monday-first display order
UI_DAYS: tuple[str, ...] = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")

# Runs of at least this many consecutive days collapse to "First - Last"
MIN_COLLAPSED_RUN = 3


# ---------------------------------------------------------------------------
# Weekday conversion
# ---------------------------------------------------------------------------

def db_day_to_ui_index(day_of_week: int) -> int:
    """Map a database weekday (0=Sunday) to its Monday-first UI index."""
    if not 0 <= day_of_week <= 6:
        raise ValueError(f"day_of_week must be between 0 and 6, got {day_of_week}")
    return (day_of_week + 6) % 7


def ui_index_to_db_day(ui_index: int) -> int:
    """Map a Monday-first UI index back to a database weekday (0=Sunday)."""
    if not 0 <= ui_index <= 6:
        raise ValueError(f"UI day index must be between 0 and 6, got {ui_index}")
    return (ui_index + 1) % 7


def ui_day_index(name: str) -> int:
    """Return the UI index of a short day name ("Mon" .. "Sun")."""
    try:
        return UI_DAYS.index(name)
    except ValueError:
        raise ValueError(f"Unknown day name: {name!r}") from None


# ---------------------------------------------------------------------------
# Times
# ---------------------------------------------------------------------------

def parse_time(value: time | str) -> time:
    """Parse ``HH:MM`` or ``HH:MM:SS`` into a ``time``.

    Raises:
        ValueError: If the string is not a valid wall-clock time.
    """
    if isinstance(value, time):
        return value
    parts = value.strip().split(":")
    if len(parts) not in (2, 3) or not all(p.isdigit() for p in parts):
        raise ValueError(f"Invalid time string: {value!r}")
    return time(*(int(p) for p in parts))


def format_time(value: time | str) -> str:
    """Render a wall-clock time as ``h:mmam`` / ``h:mmpm``.

    Strings that cannot be parsed are returned unchanged so a malformed row
    never breaks a whole schedule card.
    """
    try:
        parsed = parse_time(value)
    except ValueError:
        return value if isinstance(value, str) else str(value)

    hour = parsed.hour % 12 or 12
    suffix = "am" if parsed.hour < 12 else "pm"
    return f"{hour}:{parsed.minute:02d}{suffix}"


def format_time_range(start: time | str, end: time | str) -> str:
    return f"{format_time(start)} - {format_time(end)}"


def time_to_hhmm(value: time) -> str:
    return f"{value.hour:02d}:{value.minute:02d}"


# ---------------------------------------------------------------------------
# Day ranges
# ---------------------------------------------------------------------------

def format_day_range(days: Sequence[str]) -> str:
    """Render a set of short day names as a compact range string.

    Two or fewer days are simply comma-joined. Otherwise the days are sorted
    Monday-first and split into consecutive runs; runs of three or more
    collapse to ``First - Last`` and shorter runs list each day::

        ["Mon", "Tue", "Wed", "Thu", "Fri"]  -> "Mon - Fri"
        ["Mon", "Tue", "Wed", "Fri"]         -> "Mon - Wed, Fri"
        ["Mon", "Wed", "Fri"]                -> "Mon, Wed, Fri"
    """
    if len(days) <= 2:
        return ", ".join(days)

    indices = sorted({ui_day_index(d) for d in days})

    runs: list[list[int]] = [[indices[0]]]
    for idx in indices[1:]:
        if idx == runs[-1][-1] + 1:
            runs[-1].append(idx)
        else:
            runs.append([idx])

    parts: list[str] = []
    for run in runs:
        if len(run) >= MIN_COLLAPSED_RUN:
            parts.append(f"{UI_DAYS[run[0]]} - {UI_DAYS[run[-1]]}")
        else:
            parts.extend(UI_DAYS[i] for i in run)
    return ", ".join(parts)


# ---------------------------------------------------------------------------
# Timezones
# ---------------------------------------------------------------------------

def is_valid_timezone(name: str) -> bool:
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return False
    return True


def format_timezone_label(name: str, at: datetime | None = None) -> str:
    """Render an IANA zone as ``City (GMT+H)``, e.g. ``Dublin (GMT+1)``.

    The offset is taken at ``at`` (default: now) so daylight saving is
    reflected. Unknown zone names are returned unchanged.
    """
    try:
        zone = ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return name

    moment = at or datetime.now(timezone.utc)
    offset = moment.astimezone(zone).utcoffset()
    total_minutes = int(offset.total_seconds() // 60) if offset else 0

    city = name.rsplit("/", 1)[-1].replace("_", " ")
    if total_minutes == 0:
        return f"{city} (GMT)"

    sign = "+" if total_minutes > 0 else "-"
    hours, minutes = divmod(abs(total_minutes), 60)
    offset_str = f"{hours}:{minutes:02d}" if minutes else str(hours)
    return f"{city} (GMT{sign}{offset_str})"
