"""Operational endpoints: health report and cookie debug view."""

from __future__ import annotations

from typing import Any, Dict, Optional

from flask import Blueprint, current_app, jsonify, request

from ..data_access.directus import DirectusError, get_directus, has_service_credentials

bp = Blueprint("system", __name__, url_prefix="/api")
debug_bp = Blueprint("debug", __name__, url_prefix="/api")

NOT_JSON_ERROR = "Directus answered with a non-JSON body"


def _json_body(response) -> Optional[Dict[str, Any]]:
    try:
        body = response.json()
    except ValueError:
        return None
    return body if isinstance(body, dict) else None


def _check_user_token(token: str) -> Dict[str, Any]:
    try:
        response = get_directus().request("GET", "/users/me", token=token)
    except DirectusError as exc:
        return {"ok": False, "error": str(exc)}
    if not response.ok:
        return {"ok": False, "error": f"HTTP {response.status_code}"}
    body = _json_body(response)
    if body is None:
        return {"ok": False, "error": NOT_JSON_ERROR}
    return {"ok": True, "details": body.get("data")}


def _check_arenas(token: str) -> Dict[str, Any]:
    try:
        response = get_directus().request(
            "GET", "/items/arenas", token=token, params={"limit": 1, "fields": "id,name"}
        )
    except DirectusError as exc:
        return {"ok": False, "error": str(exc)}
    if not response.ok:
        return {"ok": False, "error": f"HTTP {response.status_code}: {response.text}"}
    body = _json_body(response)
    if body is None:
        return {"ok": False, "error": NOT_JSON_ERROR}
    return {"ok": True, "details": {"count": len(body.get("data") or [])}}


@bp.route("/health")
def health():
    """Check configuration, cookies and Directus reachability."""

    config = current_app.config
    checks: Dict[str, Dict[str, Any]] = {
        "env": {
            "ok": has_service_credentials(),
            "details": {
                "DIRECTUS_URL": "configured" if config.get("DIRECTUS_URL") else "MISSING",
                "DIRECTUS_TOKEN": "configured" if config.get("DIRECTUS_SERVICE_TOKEN") else "MISSING",
            },
        }
    }

    user_token = request.cookies.get(config["ACCESS_COOKIE_NAME"])
    checks["auth"] = {"ok": bool(user_token), "details": {"hasToken": bool(user_token)}}

    try:
        info = get_directus().fetch("GET", "/server/info")
    except DirectusError as exc:
        checks["directusService"] = {"ok": False, "error": str(exc)}
    else:
        if isinstance(info, dict):
            checks["directusService"] = {"ok": True, "details": info}
        else:
            checks["directusService"] = {"ok": False, "error": NOT_JSON_ERROR}

    if user_token:
        checks["directusUser"] = _check_user_token(user_token)
        checks["arenas"] = _check_arenas(user_token)
    else:
        checks["directusUser"] = {"ok": False, "error": "No user token"}

    healthy = all(check["ok"] for check in checks.values())
    return jsonify({"status": "healthy" if healthy else "unhealthy", "checks": checks}), 200 if healthy else 503


@debug_bp.route("/debug")
def debug():
    """List cookies with truncated values."""

    config = current_app.config
    return jsonify(
        {
            "cookies": [{"name": name, "value": value[:10] + "..."} for name, value in request.cookies.items()],
            "hasAccessToken": bool(request.cookies.get(config["ACCESS_COOKIE_NAME"])),
            "hasRefreshToken": bool(request.cookies.get(config["REFRESH_COOKIE_NAME"])),
        }
    )
