"""Slot, duration and status helpers shared by the booking routes.

Everything here is pure: values come straight from Directus records or
request bodies, so every parser accepts loosely typed input and returns
``None`` rather than raising when a value cannot be understood.
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime, timedelta
from typing import Any, Optional, Tuple, Union

DATE_PREFIX_RE = re.compile(r"^\d{4}-\d{2}-\d{2}")
NUMERIC_RE = re.compile(r"^\d+(\.\d+)?$")

Number = Union[int, float]


def _finite_or_zero(part: str) -> float:
    try:
        value = float(part)
    except ValueError:
        return 0
    return value if math.isfinite(value) else 0


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def to_date_only(value: Any) -> Optional[str]:
    """Return the ``YYYY-MM-DD`` part of a date-like value."""

    if not value:
        return None
    if isinstance(value, (date, datetime)):
        return value.strftime("%Y-%m-%d")
    if isinstance(value, str):
        match = DATE_PREFIX_RE.match(value)
        if match:
            return match.group(0)
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
        return parsed.strftime("%Y-%m-%d")
    return None


def parse_time_parts(value: Any) -> Tuple[float, float, float]:
    """Split ``HH[:MM[:SS]]`` into numbers, treating junk as zero."""

    if not isinstance(value, str) or not value.strip():
        return 0, 0, 0
    parts = [_finite_or_zero(part) for part in value.strip().split(":")]
    parts += [0] * (3 - len(parts))
    return parts[0], parts[1], parts[2]


def build_local_datetime(date_value: Any, time_value: Any) -> Optional[datetime]:
    """Combine a date and a wall-clock time into a naive local datetime."""

    date_str = to_date_only(date_value)
    if not date_str:
        return None
    try:
        day = datetime.strptime(date_str, "%Y-%m-%d")
    except ValueError:
        return None
    hours, minutes, seconds = parse_time_parts(time_value)
    # Out-of-range clock values roll over (e.g. 24:30 is next day 00:30).
    try:
        return day + timedelta(hours=hours, minutes=minutes, seconds=seconds)
    except OverflowError:
        return None


def add_minutes(start: datetime, minutes: Number) -> Optional[datetime]:
    """Shift ``start`` by ``minutes``; ``None`` when the result is out of range."""

    try:
        return start + timedelta(minutes=minutes)
    except OverflowError:
        return None


def parse_duration_minutes(value: Any, unit: str = "minutes") -> Optional[float]:
    """Convert a stored or submitted duration into minutes."""

    factor = 60 if unit == "hours" else 1
    if value is None:
        return None
    if _is_number(value):
        return value * factor if math.isfinite(value) else None
    if isinstance(value, str):
        trimmed = value.strip()
        if not trimmed:
            return None
        if NUMERIC_RE.match(trimmed):
            return float(trimmed) * factor
        if ":" in trimmed:
            hours, minutes, seconds = parse_time_parts(trimmed)
            return hours * 60 + minutes + seconds / 60
    return None


def to_storage_duration(minutes: Number, unit: str = "minutes") -> Number:
    """Convert minutes to the unit of the Directus ``duration`` field."""

    return minutes / 60 if unit == "hours" else minutes


def parse_number(value: Any) -> Optional[Number]:
    """Parse a finite number, keeping integral values as ``int``."""

    if value is None or isinstance(value, bool):
        return None
    if _is_number(value):
        numeric = float(value)
    elif isinstance(value, str):
        if not value.strip():
            return None
        try:
            numeric = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    if not math.isfinite(numeric):
        return None
    return int(numeric) if numeric.is_integer() else numeric


def format_local_datetime(value: datetime) -> str:
    return value.strftime("%Y-%m-%dT%H:%M:%S")


def booking_interval(
    date_value: Any,
    start_time: Any,
    duration: Any,
    unit: str = "minutes",
    default_minutes: Number = 60,
) -> Optional[Tuple[datetime, datetime]]:
    """Return the ``(start, end)`` a stored booking occupies."""

    start = build_local_datetime(date_value, start_time)
    if start is None:
        return None
    minutes = parse_duration_minutes(duration, unit)
    if minutes is None:
        minutes = default_minutes
    end = add_minutes(start, minutes)
    if end is None:
        return None
    return start, end


def intervals_overlap(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """Half-open overlap test; back-to-back slots do not collide."""

    return a_start < b_end and a_end > b_start


def get_by_path(record: Any, path: str) -> Any:
    """Resolve a dotted Directus field path such as ``client.name``."""

    current = record
    for key in path.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


def normalize_relation_id(value: Any) -> Any:
    """Return the id of a many-to-one value that may be expanded."""

    if value is None:
        return None
    if isinstance(value, dict):
        return value.get("id")
    return value


def normalize_phone(value: Any) -> str:
    if not value:
        return ""
    return str(value).strip()


def phone_digits(value: Any) -> str:
    return re.sub(r"\D", "", normalize_phone(value))


STATUS_META = {
    "planned": {
        "label": "Planned",
        "dot": "#60a5fa",
        "bg": "rgba(59,130,246,0.22)",
        "border": "rgba(59,130,246,0.5)",
        "text": "#dbeafe",
    },
    "confirmed": {
        "label": "Confirmed",
        "dot": "#34d399",
        "bg": "rgba(16,185,129,0.22)",
        "border": "rgba(16,185,129,0.5)",
        "text": "#d1fae5",
    },
    "arrived": {
        "label": "Arrived",
        "dot": "#34d399",
        "bg": "rgba(16,185,129,0.22)",
        "border": "rgba(16,185,129,0.5)",
        "text": "#d1fae5",
    },
    "completed": {
        "label": "Completed",
        "dot": "#a1a1aa",
        "bg": "rgba(113,113,122,0.22)",
        "border": "rgba(113,113,122,0.5)",
        "text": "#e4e4e7",
    },
    "cancelled": {
        "label": "Cancelled",
        "dot": "#f87171",
        "bg": "rgba(239,68,68,0.22)",
        "border": "rgba(239,68,68,0.5)",
        "text": "#fee2e2",
    },
    "new": {
        "label": "New",
        "dot": "#fbbf24",
        "bg": "rgba(234,179,8,0.2)",
        "border": "rgba(234,179,8,0.45)",
        "text": "#fef3c7",
    },
}

DEFAULT_STATUS_META = {
    "label": "Unknown",
    "dot": "#94a3b8",
    "bg": "rgba(148,163,184,0.2)",
    "border": "rgba(148,163,184,0.45)",
    "text": "#e2e8f0",
}


def get_status_meta(value: Any) -> dict:
    key = str(value if value is not None else "unknown").lower()
    return STATUS_META.get(key, DEFAULT_STATUS_META)
