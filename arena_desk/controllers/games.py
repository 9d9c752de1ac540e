"""Game catalogue API blueprint."""

from __future__ import annotations

from flask import Blueprint, jsonify, request
from flask_login import login_required

from ..data_access import games_dao
from ..data_access.directus import DirectusError
from .auth import manager_required
from .errors import bad_request, directus_failure

bp = Blueprint("games", __name__, url_prefix="/api/games")


@bp.route("", methods=["GET"])
@login_required
def list_games():
    try:
        games = games_dao.list_games()
    except DirectusError as exc:
        return directus_failure("Failed to load games", exc)
    return jsonify([game.to_dict() for game in games])


@bp.route("", methods=["POST"])
@manager_required
def create():
    body = request.get_json(silent=True) or {}
    if not body.get("name"):
        return bad_request("Missing name")
    try:
        created = games_dao.create_game(body["name"], body.get("category") or None)
    except DirectusError as exc:
        return directus_failure("Failed to create game", exc)
    return jsonify(created)


@bp.route("", methods=["PATCH"])
@manager_required
def update():
    body = request.get_json(silent=True) or {}
    if not body.get("id") or not body.get("name"):
        return bad_request("Missing id or name")
    extra = {"category": body["category"]} if "category" in body else {}
    try:
        updated = games_dao.update_game(body["id"], body["name"], **extra)
    except DirectusError as exc:
        return directus_failure("Failed to update game", exc)
    return jsonify(updated)


@bp.route("", methods=["DELETE"])
@manager_required
def delete():
    game_id = request.args.get("id")
    if not game_id:
        return bad_request("Missing id")
    try:
        deleted = games_dao.delete_game(game_id)
    except DirectusError as exc:
        return directus_failure("Failed to delete game", exc)
    return jsonify(deleted)
