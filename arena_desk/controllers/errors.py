"""JSON error helpers shared by the API blueprints."""

from __future__ import annotations

import logging

from flask import current_app, jsonify

logger = logging.getLogger(__name__)


def directus_failure(message: str, exc: Exception, status: int = 500):
    """Log a backend failure and answer with ``message`` (plus details outside production)."""

    logger.error("%s: %s", message, exc)
    payload = {"error": message}
    if current_app.config.get("EXPOSE_ERROR_DETAILS"):
        payload["details"] = str(exc)
    return jsonify(payload), status


def bad_request(message: str):
    return jsonify({"error": message}), 400
