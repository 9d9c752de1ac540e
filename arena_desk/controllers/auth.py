"""Authentication blueprint: Directus login, logout, session cookies and guards."""

from __future__ import annotations

import logging
from functools import wraps
from typing import Callable, Optional

from flask import Blueprint, Response, abort, current_app, g, jsonify, redirect, request, url_for
from flask_login import current_user, login_required

from ..data_access import users_dao
from ..data_access.directus import DirectusError
from ..models.entities import TokenSet, User

logger = logging.getLogger(__name__)

bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _cookie_options() -> dict:
    return {
        "httponly": True,
        "samesite": "Lax",
        "secure": current_app.config["AUTH_COOKIE_SECURE"],
        "path": "/",
    }


def set_auth_cookies(response: Response, tokens: TokenSet) -> Response:
    """Write the access and refresh cookies for a token pair."""

    config = current_app.config
    response.set_cookie(
        config["ACCESS_COOKIE_NAME"],
        tokens.access_token,
        max_age=tokens.access_max_age(config["DEFAULT_ACCESS_MAX_AGE"]),
        **_cookie_options(),
    )
    if tokens.refresh_token:
        response.set_cookie(
            config["REFRESH_COOKIE_NAME"],
            tokens.refresh_token,
            max_age=config["REFRESH_COOKIE_MAX_AGE"],
            **_cookie_options(),
        )
    return response


def clear_auth_cookies(response: Response) -> Response:
    for name in (current_app.config["ACCESS_COOKIE_NAME"], current_app.config["REFRESH_COOKIE_NAME"]):
        response.set_cookie(name, "", max_age=0, **_cookie_options())
    return response


def load_user_from_request(req) -> Optional[User]:
    """Flask-Login request loader backed by the Directus token cookies."""

    access_token = req.cookies.get(current_app.config["ACCESS_COOKIE_NAME"])
    refresh_token = req.cookies.get(current_app.config["REFRESH_COOKIE_NAME"])
    user, refreshed = users_dao.resolve_session(access_token, refresh_token)
    if refreshed is not None:
        g.refreshed_tokens = refreshed
    return user


def apply_refreshed_tokens(response: Response) -> Response:
    """``after_request`` hook persisting tokens obtained by a refresh."""

    tokens = g.pop("refreshed_tokens", None)
    if tokens is not None:
        set_auth_cookies(response, tokens)
        logger.info("Auth cookies rewritten after token refresh")
    return response


def handle_unauthorized():
    """API callers get a 401 body, page visitors go to the login form."""

    if request.path.startswith("/api/"):
        return jsonify({"error": "Unauthorized"}), 401
    return redirect(url_for("pages.login", **{"from": request.path}))


def is_manager(user) -> bool:
    return bool(user.is_authenticated and user.can_manage(current_app.config["MANAGER_ROLE_KEYWORDS"]))


def manager_required(view: Callable) -> Callable:
    """Decorator restricting a view to admin/director/owner style roles."""

    @wraps(view)
    @login_required
    def wrapped(*args, **kwargs):
        if not is_manager(current_user):
            abort(403)
        return view(*args, **kwargs)

    return wrapped


@bp.route("/login", methods=["POST"])
def login():
    """Exchange credentials for Directus tokens stored in HttpOnly cookies."""

    body = request.get_json(silent=True) or {}
    email = str(body.get("email") or "").strip()
    password = str(body.get("password") or "")
    if not email or not password:
        return jsonify({"error": "Enter email and password"}), 400
    if not current_app.config.get("DIRECTUS_URL"):
        return jsonify({"error": "DIRECTUS_URL is not configured"}), 500

    try:
        tokens = users_dao.login(email, password)
    except ValueError:
        return jsonify({"error": "Could not obtain an access token"}), 500
    except DirectusError as exc:
        if exc.status is None:
            logger.error("/api/auth/login error: %s", exc)
            return jsonify({"error": "Login failed"}), 500
        return jsonify({"error": "Invalid email or password", "details": exc.body}), 401

    logger.info("User %s signed in", email)
    return set_auth_cookies(jsonify({"ok": True}), tokens)


@bp.route("/logout", methods=["POST"])
def logout():
    """Drop both auth cookies."""

    return clear_auth_cookies(jsonify({"ok": True}))


@bp.route("/me")
def me():
    """Describe the signed-in Directus user."""

    if not current_user.is_authenticated:
        return jsonify({"authenticated": False}), 401
    return jsonify({"authenticated": True, "user": current_user.to_dict()})
