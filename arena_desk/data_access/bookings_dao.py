"""Data access helpers for bookings."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Union

from flask import current_app

from ..models.entities import CalendarEvent
from ..models.schedule import (
    add_minutes,
    booking_interval,
    build_local_datetime,
    format_local_datetime,
    get_by_path,
    intervals_overlap,
    normalize_phone,
    normalize_relation_id,
    parse_duration_minutes,
    parse_number,
    to_date_only,
    to_storage_duration,
)
from . import clients_dao
from .directus import get_directus

logger = logging.getLogger(__name__)

BOOKINGS_COLLECTION = "bookings"

# Directus field mapping
FIELD_ID = "id"
FIELD_DATE = "date"  # YYYY-MM-DD
FIELD_START_TIME = "start_time"  # HH:mm or HH:mm:ss
FIELD_END_TIME = ""  # optional, empty when the schema has no end time
FIELD_DURATION = "duration"
FIELD_ARENA = "arena"
FIELD_STATUS = "status"
FIELD_GAME = "game"
FIELD_GAME_NAME = "game.name"
FIELD_CLIENT = "client"
FIELD_CLIENT_NAME = "client.name"
FIELD_MODE = "mode"
FIELD_PLAYERS = "players"
FIELD_COMMENT = "comment"
FIELD_PRICE_TOTAL = "price_total"

BOOKING_FIELDS = [
    field
    for field in (
        FIELD_ID,
        FIELD_DATE,
        FIELD_START_TIME,
        FIELD_END_TIME,
        FIELD_DURATION,
        FIELD_STATUS,
        FIELD_ARENA,
        FIELD_CLIENT,
        FIELD_GAME_NAME,
        FIELD_CLIENT_NAME,
    )
    if field
]

SCHEDULING_KEYS = ("arena", "date", "start_time", "duration", "durationMinutes", "mode")
INACTIVE_STATUSES = ("cancelled",)
OPEN_MODE = "open"


class BookingConflictError(ValueError):
    """Raised when a requested slot overlaps existing bookings."""

    def __init__(self, conflicts: List[Dict[str, Any]]) -> None:
        self.conflicts = conflicts
        super().__init__("Booking conflicts with an existing reservation.")


def _duration_unit() -> str:
    return current_app.config["DURATION_UNIT"]


def _default_minutes() -> int:
    return current_app.config["DEFAULT_DURATION_MINUTES"]


def _record_to_event(record: Dict[str, Any]) -> Optional[CalendarEvent]:
    booking_id = get_by_path(record, FIELD_ID)
    date_value = get_by_path(record, FIELD_DATE)
    start_time = get_by_path(record, FIELD_START_TIME)
    end_time = get_by_path(record, FIELD_END_TIME) if FIELD_END_TIME else None
    duration = get_by_path(record, FIELD_DURATION)
    arena_id = normalize_relation_id(get_by_path(record, FIELD_ARENA))
    client_id = normalize_relation_id(get_by_path(record, FIELD_CLIENT))
    client_name = get_by_path(record, FIELD_CLIENT_NAME)
    game_name = get_by_path(record, FIELD_GAME_NAME)

    start = build_local_datetime(date_value, start_time)
    if start is None:
        return None
    end = build_local_datetime(date_value, end_time) if end_time else None
    if end is None:
        minutes = parse_duration_minutes(duration, _duration_unit())
        end = add_minutes(start, minutes if minutes is not None else _default_minutes())
    if end is None:
        logger.warning("Skipping booking %s: duration %r is out of range", booking_id, duration)
        return None

    if client_name:
        title = str(client_name)
    elif game_name:
        title = str(game_name)
    else:
        title = f"Booking {booking_id}"

    return CalendarEvent(
        event_id=str(booking_id),
        title=title,
        start=format_local_datetime(start),
        end=format_local_datetime(end),
        resource_id=str(arena_id) if arena_id is not None else None,
        status=get_by_path(record, FIELD_STATUS),
        client_name=client_name,
        client_id=str(client_id) if client_id else None,
        game_name=game_name,
        date=date_value,
        start_time=start_time,
        duration=duration,
    )


def list_events(start: Any, end: Any, arena_ids: Optional[str] = None) -> List[CalendarEvent]:
    """Return calendar events for bookings dated within ``[start, end)``."""

    if not start or not end:
        raise ValueError("start and end are required")
    start_date = to_date_only(start)
    end_date = to_date_only(end)
    if not start_date or not end_date:
        raise ValueError("start and end must be valid dates")

    params: Dict[str, Any] = {
        "fields": ",".join(BOOKING_FIELDS),
        f"filter[{FIELD_DATE}][_gte]": start_date,
        f"filter[{FIELD_DATE}][_lt]": end_date,
        "limit": -1,
    }
    if arena_ids:
        params[f"filter[{FIELD_ARENA}][_in]"] = arena_ids
    data = get_directus().fetch("GET", f"/items/{BOOKINGS_COLLECTION}", params=params)
    events = []
    for record in (data or {}).get("data") or []:
        event = _record_to_event(record)
        if event is not None:
            events.append(event)
    return events


def get_booking(booking_id: Union[int, str]) -> Optional[Dict[str, Any]]:
    """Fetch the raw booking record."""

    fields = ",".join([FIELD_ID, FIELD_ARENA, FIELD_DATE, FIELD_START_TIME, FIELD_DURATION, FIELD_MODE, FIELD_STATUS])
    data = get_directus().fetch("GET", f"/items/{BOOKINGS_COLLECTION}/{booking_id}", params={"fields": fields})
    return (data or {}).get("data")


def find_conflicts(
    arena: Any,
    date: str,
    start_time: str,
    duration_minutes: float,
    mode: Optional[str] = None,
    exclude_id: Optional[Union[int, str]] = None,
) -> List[Dict[str, Any]]:
    """Return existing bookings on the same arena and day that overlap the slot.

    Open-mode sessions share the arena, so they never conflict.
    """

    if str(mode or "private").lower() == OPEN_MODE:
        return []
    new_start = build_local_datetime(date, start_time)
    if new_start is None:
        return []
    new_end = add_minutes(new_start, duration_minutes)
    if new_end is None:
        raise ValueError("duration is out of range")

    params = {
        "fields": ",".join([FIELD_ID, FIELD_START_TIME, FIELD_DURATION, FIELD_MODE, FIELD_STATUS]),
        f"filter[{FIELD_ARENA}][_eq]": str(normalize_relation_id(arena)),
        f"filter[{FIELD_DATE}][_eq]": to_date_only(date) or date,
        "limit": -1,
    }
    data = get_directus().fetch("GET", f"/items/{BOOKINGS_COLLECTION}", params=params)

    conflicts = []
    for booking in (data or {}).get("data") or []:
        if exclude_id is not None and str(booking.get(FIELD_ID)) == str(exclude_id):
            continue
        if _is_inactive(booking.get(FIELD_STATUS)):
            continue
        interval = booking_interval(
            booking.get(FIELD_DATE) or date,
            booking.get(FIELD_START_TIME),
            booking.get(FIELD_DURATION),
            _duration_unit(),
            _default_minutes(),
        )
        if interval is None:
            continue
        if intervals_overlap(new_start, new_end, interval[0], interval[1]):
            conflicts.append(booking)
    return conflicts


def _requested_minutes(body: Dict[str, Any]) -> Optional[float]:
    minutes = parse_number(body.get("durationMinutes"))
    if minutes is None:
        minutes = parse_duration_minutes(body.get("duration"), _duration_unit())
    return minutes


def _first_number(values: Iterable[Any]) -> Optional[Union[int, float]]:
    for value in values:
        number = parse_number(value)
        if number is not None:
            return number
    return None


def _resolve_client(body: Dict[str, Any]) -> Optional[Union[int, float, str]]:
    client = parse_number(body.get("client"))
    if client is not None:
        return client
    phone = normalize_phone(body.get("phone"))
    if not phone:
        return None
    found = clients_dao.find_client_id_by_phone(phone)
    if found:
        return found
    return clients_dao.create_client(phone, body.get("clientName") or None)


def _require_valid_slot(date: Any, start_time: Any, duration_minutes: float) -> None:
    """Reject slots whose start or end falls outside the calendar."""

    start = build_local_datetime(date, start_time)
    if start is None:
        raise ValueError("date and start_time must describe a valid slot")
    if add_minutes(start, duration_minutes) is None:
        raise ValueError("duration is out of range")


def _is_inactive(status: Any) -> bool:
    return str(status or "").lower() in INACTIVE_STATUSES


def create_booking(body: Dict[str, Any]) -> Any:
    """Validate, conflict-check and insert a booking; returns the Directus answer."""

    arena = body.get("arena")
    date = body.get("date")
    start_time = body.get("start_time")
    if not arena or not date or not start_time:
        raise ValueError("Required fields are missing: arena, date, start_time")

    duration_minutes = _requested_minutes(body)
    if duration_minutes is None:
        duration_minutes = _default_minutes()

    _require_valid_slot(date, start_time, duration_minutes)
    conflicts = find_conflicts(arena, date, start_time, duration_minutes, body.get("mode"))
    if conflicts:
        raise BookingConflictError(conflicts)

    payload: Dict[str, Any] = {
        FIELD_ARENA: arena,
        FIELD_DATE: date,
        FIELD_START_TIME: start_time,
        FIELD_DURATION: to_storage_duration(duration_minutes, _duration_unit()),
        FIELD_STATUS: body.get("status") or current_app.config["DEFAULT_BOOKING_STATUS"],
    }
    if body.get("mode"):
        payload[FIELD_MODE] = body["mode"]

    players = _first_number(body.get(key) for key in ("players", "playersCount", "playersCurrent"))
    if players is not None:
        payload[FIELD_PLAYERS] = players

    price = parse_number(body.get("price"))
    if price is not None:
        payload[FIELD_PRICE_TOTAL] = price

    if body.get("comment"):
        payload[FIELD_COMMENT] = body["comment"]

    game = parse_number(body.get("game"))
    if game is not None:
        payload[FIELD_GAME] = game

    client = _resolve_client(body)
    if client is not None:
        payload[FIELD_CLIENT] = client

    created = get_directus().fetch("POST", f"/items/{BOOKINGS_COLLECTION}", json=payload)
    logger.info("Created booking on arena %s at %s %s", arena, date, start_time)
    return created


def _check_updated_slot(booking_id: Union[int, str], merged: Dict[str, Any]) -> None:
    arena = normalize_relation_id(merged.get(FIELD_ARENA))
    date = to_date_only(merged.get(FIELD_DATE))
    start_time = merged.get(FIELD_START_TIME)
    if arena is None or not date or not start_time:
        return
    duration = parse_duration_minutes(merged.get(FIELD_DURATION), _duration_unit())
    if duration is None:
        duration = _default_minutes()
    _require_valid_slot(date, start_time, duration)
    if _is_inactive(merged.get(FIELD_STATUS)):
        return
    conflicts = find_conflicts(arena, date, start_time, duration, merged.get(FIELD_MODE), exclude_id=booking_id)
    if conflicts:
        raise BookingConflictError(conflicts)


def update_booking(booking_id: Union[int, str], body: Dict[str, Any]) -> Any:
    """Patch a booking, re-checking conflicts when its slot moves."""

    payload = dict(body)
    payload.pop("id", None)
    minutes = parse_number(payload.pop("durationMinutes", None))
    if minutes is not None:
        payload[FIELD_DURATION] = to_storage_duration(minutes, _duration_unit())

    moved = any(key in body for key in SCHEDULING_KEYS)
    reactivated = FIELD_STATUS in body and not _is_inactive(body[FIELD_STATUS])
    if moved or reactivated:
        current = get_booking(booking_id) or {}
        # a status change alone only matters when it brings the booking back
        if moved or _is_inactive(current.get(FIELD_STATUS)):
            _check_updated_slot(booking_id, {**current, **payload})

    return get_directus().fetch("PATCH", f"/items/{BOOKINGS_COLLECTION}/{booking_id}", json=payload)


def delete_booking(booking_id: Union[int, str]) -> None:
    """Delete a booking."""

    get_directus().fetch("DELETE", f"/items/{BOOKINGS_COLLECTION}/{booking_id}")
    logger.info("Deleted booking %s", booking_id)
