"""Booking API blueprint."""

from __future__ import annotations

from flask import Blueprint, jsonify, request
from flask_login import login_required

from ..data_access import bookings_dao
from ..data_access.bookings_dao import BookingConflictError
from ..data_access.directus import DirectusError
from .auth import manager_required
from .errors import bad_request, directus_failure

bp = Blueprint("bookings", __name__, url_prefix="/api/bookings")


@bp.route("", methods=["GET"])
@login_required
def list_bookings():
    """Calendar events for ``start <= date < end``, optionally per arena."""

    try:
        events = bookings_dao.list_events(
            request.args.get("start"),
            request.args.get("end"),
            request.args.get("arenaIds") or None,
        )
    except ValueError as exc:
        return bad_request(str(exc))
    except DirectusError as exc:
        return directus_failure("Failed to load bookings. Check Directus settings.", exc)
    return jsonify([event.to_dict() for event in events])


@bp.route("", methods=["POST"])
@login_required
def create():
    """Create a booking after the overlap check."""

    body = request.get_json(silent=True) or {}
    try:
        created = bookings_dao.create_booking(body)
    except BookingConflictError as exc:
        return jsonify({"error": "Time conflict", "conflicts": exc.conflicts}), 409
    except ValueError as exc:
        return bad_request(str(exc))
    except DirectusError as exc:
        return directus_failure("Failed to create booking", exc)
    return jsonify(created), 201


@bp.route("/<booking_id>", methods=["PATCH"])
@login_required
def update(booking_id: str):
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        return bad_request("Request body must be a JSON object")
    try:
        updated = bookings_dao.update_booking(booking_id, body)
    except BookingConflictError as exc:
        return jsonify({"error": "Time conflict", "conflicts": exc.conflicts}), 409
    except ValueError as exc:
        return bad_request(str(exc))
    except DirectusError as exc:
        return directus_failure("Failed to update booking", exc)
    return jsonify(updated)


@bp.route("/<booking_id>", methods=["DELETE"])
@manager_required
def delete(booking_id: str):
    try:
        bookings_dao.delete_booking(booking_id)
    except DirectusError as exc:
        return directus_failure("Failed to delete booking", exc)
    return jsonify({"success": True})
