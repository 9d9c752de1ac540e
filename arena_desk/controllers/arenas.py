"""Arena management API blueprint."""

from __future__ import annotations

from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from ..data_access import arenas_dao
from ..data_access.directus import DirectusError
from .auth import manager_required
from .errors import bad_request, directus_failure

bp = Blueprint("arenas", __name__, url_prefix="/api/arenas")


def _text(body: dict, key: str) -> str:
    return str(body.get(key) or "").strip()


@bp.route("", methods=["GET"])
@login_required
def list_arenas():
    try:
        arenas = arenas_dao.list_arenas(current_user.access_token)
    except DirectusError as exc:
        return directus_failure("Failed to load arenas. Check Directus settings.", exc)
    return jsonify([arena.to_dict() for arena in arenas])


@bp.route("", methods=["POST"])
@manager_required
def create():
    body = request.get_json(silent=True) or {}
    name = _text(body, "name")
    if not name:
        return bad_request("Missing name")
    try:
        created = arenas_dao.create_arena(current_user.access_token, name, _text(body, "address"))
    except DirectusError as exc:
        return directus_failure("Failed to create arena", exc)
    return jsonify(created)


@bp.route("", methods=["PATCH"])
@manager_required
def update():
    body = request.get_json(silent=True) or {}
    arena_id = body.get("id")
    name = _text(body, "name")
    if not arena_id or not name:
        return bad_request("Missing id or name")
    try:
        updated = arenas_dao.update_arena(current_user.access_token, arena_id, name, _text(body, "address"))
    except DirectusError as exc:
        return directus_failure("Failed to update arena", exc)
    return jsonify(updated)


@bp.route("", methods=["DELETE"])
@manager_required
def delete():
    arena_id = request.args.get("id")
    if not arena_id:
        return bad_request("Missing id")
    try:
        deleted = arenas_dao.delete_arena(current_user.access_token, arena_id)
    except DirectusError as exc:
        return directus_failure("Failed to delete arena", exc)
    return jsonify(deleted)
