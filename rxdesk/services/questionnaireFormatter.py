"""
Display helpers for the order review screen.

Questionnaire answers arrive as loosely-structured JSON (nested objects,
lists, or flattened ``"a.b.c"`` keys depending on the intake form version),
so every accessor here tolerates missing and oddly-shaped data.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Any, Mapping

EMPTY = "-"

US_STATES: dict[str, str] = {
    "AL": "Alabama", "AK": "Alaska", "AZ": "Arizona", "AR": "Arkansas",
    "CA": "California", "CO": "Colorado", "CT": "Connecticut", "DE": "Delaware",
    "DC": "District of Columbia", "FL": "Florida", "GA": "Georgia", "HI": "Hawaii",
    "ID": "Idaho", "IL": "Illinois", "IN": "Indiana", "IA": "Iowa",
    "KS": "Kansas", "KY": "Kentucky", "LA": "Louisiana", "ME": "Maine",
    "MD": "Maryland", "MA": "Massachusetts", "MI": "Michigan", "MN": "Minnesota",
    "MS": "Mississippi", "MO": "Missouri", "MT": "Montana", "NE": "Nebraska",
    "NV": "Nevada", "NH": "New Hampshire", "NJ": "New Jersey", "NM": "New Mexico",
    "NY": "New York", "NC": "North Carolina", "ND": "North Dakota", "OH": "Ohio",
    "OK": "Oklahoma", "OR": "Oregon", "PA": "Pennsylvania", "RI": "Rhode Island",
    "SC": "South Carolina", "SD": "South Dakota", "TN": "Tennessee", "TX": "Texas",
    "UT": "Utah", "VT": "Vermont", "VA": "Virginia", "WA": "Washington",
    "WV": "West Virginia", "WI": "Wisconsin", "WY": "Wyoming",
}

_INDEXED_PART = re.compile(r"^(?P<name>[^\[]*)\[(?P<index>\d+)\]$")
_NON_DIGITS = re.compile(r"\D")
_ORDER_ID = re.compile(r"^\d+$")


def format_display_value(value: Any) -> str:
    if value is None or value == "":
        return EMPTY
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value) if value else EMPTY
    return str(value)


def format_height(feet: int | None, inches: int | None = None) -> str:
    if not feet:
        return EMPTY
    return f"{feet}' {inches or 0}\""


def format_weight(weight: float | int | None) -> str:
    if not weight:
        return EMPTY
    return f"{weight:g} lbs" if isinstance(weight, float) else f"{weight} lbs"


def format_phone_number(phone: str | None) -> str:
    """Format a 10-digit number as ``(XXX) XXX-XXXX``; other input is kept."""
    if not phone:
        return EMPTY
    digits = _NON_DIGITS.sub("", phone)
    if len(digits) == 10:
        return f"({digits[:3]}) {digits[3:6]}-{digits[6:]}"
    return phone


def format_currency(amount_cents: int) -> str:
    dollars = amount_cents / 100
    sign = "-" if dollars < 0 else ""
    return f"{sign}${abs(dollars):,.2f}"


def format_date(value: datetime | str | None) -> str:
    if not value:
        return EMPTY
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value)
        except ValueError:
            return value
    return value.strftime("%m/%d/%Y")


def get_state_name(state_code: str | None) -> str:
    if not state_code:
        return EMPTY
    return US_STATES.get(state_code.upper(), state_code)


def get_questionnaire_value(
    data: Mapping[str, Any] | None,
    path: str,
    default: Any = None,
) -> Any:
    """Read a dotted path such as ``"medical.conditions[0]"``.

    When an intermediate key is missing, the remaining path is tried as a
    single flattened key (``data["medical.conditions"]``) before giving up.
    """
    if not data:
        return default

    parts = path.split(".")
    current: Any = data
    for i, part in enumerate(parts):
        if current is None:
            return default

        match = _INDEXED_PART.match(part)
        if match:
            if not isinstance(current, Mapping):
                return default
            seq = current.get(match.group("name"))
            index = int(match.group("index"))
            if not isinstance(seq, list) or index >= len(seq):
                return default
            current = seq[index]
            continue

        if not isinstance(current, Mapping):
            return default

        if i < len(parts) - 1 and part not in current:
            flat_key = ".".join(parts[i:])
            return current.get(flat_key, default)

        current = current.get(part)

    return default if current is None else current


def is_valid_order_id(order_id: str) -> bool:
    """Order numbers are purely numeric strings such as ``"100064"``."""
    return bool(_ORDER_ID.match(order_id))


def build_questionnaire_summary(data: Mapping[str, Any] | None) -> list[dict[str, str]]:
    """Flatten questionnaire answers into ``{"question", "answer"}`` pairs
    for the review screen, formatting each answer for display."""
    if not data:
        return []

    summary: list[dict[str, str]] = []

    def _walk(prefix: str, value: Any) -> None:
        if isinstance(value, Mapping):
            for key, child in value.items():
                _walk(f"{prefix}.{key}" if prefix else str(key), child)
            return
        summary.append({"question": prefix, "answer": format_display_value(value)})

    _walk("", data)
    return summary
