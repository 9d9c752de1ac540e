"""Application factory for the Arena Desk booking admin panel."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict

from flask import Flask, jsonify, render_template, request
from flask_login import LoginManager, current_user
from flask_wtf import CSRFProtect
from flask_wtf.csrf import generate_csrf

from .config import BaseConfig, get_config
from .controllers.auth import apply_refreshed_tokens, handle_unauthorized, is_manager, load_user_from_request
from .data_access.directus import init_app as init_directus_app
from .models.schedule import get_status_meta

csrf = CSRFProtect()
login_manager = LoginManager()
login_manager.login_view = "pages.login"
login_manager.login_message_category = "info"
login_manager.request_loader(load_user_from_request)
login_manager.unauthorized_handler(handle_unauthorized)

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(app: Flask) -> None:
    """Route package loggers through one stream handler at ``LOG_LEVEL``."""

    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    package_logger = logging.getLogger("arena_desk")
    package_logger.setLevel(level)
    if not package_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        package_logger.addHandler(handler)
    app.logger.setLevel(level)


def create_app(config_object: type[BaseConfig] | None = None) -> Flask:
    """Create and configure the Flask application instance."""

    app = Flask(
        __name__,
        template_folder=str(Path(__file__).parent / "views"),
    )

    config_cls = config_object or get_config()
    app.config.from_object(config_cls)

    configure_logging(app)
    if not app.config.get("DIRECTUS_URL"):
        app.logger.warning("DIRECTUS_URL is not set; backend calls will fail")

    csrf.init_app(app)
    login_manager.init_app(app)
    init_directus_app(app)

    register_blueprints(app)
    register_error_handlers(app)
    app.after_request(apply_refreshed_tokens)

    @app.context_processor
    def inject_globals() -> Dict[str, Any]:
        """Expose common template variables."""

        return {
            "current_user": current_user,
            "current_year": datetime.now().year,
            "csrf_token": generate_csrf,
            "status_meta": get_status_meta,
            "is_manager": is_manager,
        }

    return app


def register_blueprints(app: Flask) -> None:
    """Import and register application blueprints."""

    from .controllers import (  # pylint: disable=import-outside-toplevel
        arenas,
        auth,
        bookings,
        games,
        pages,
        system,
    )

    for api_bp in (auth.bp, bookings.bp, arenas.bp, games.bp, system.bp):
        csrf.exempt(api_bp)
        app.register_blueprint(api_bp)
    if app.config.get("ENABLE_DEBUG_ROUTE"):
        csrf.exempt(system.debug_bp)
        app.register_blueprint(system.debug_bp)
    app.register_blueprint(pages.bp)


def _wants_json() -> bool:
    return request.path.startswith("/api/")


def register_error_handlers(app: Flask) -> None:
    """Register JSON errors for the API and friendly pages elsewhere."""

    @app.errorhandler(403)
    def forbidden(error: Exception):
        if _wants_json():
            return jsonify({"error": "Forbidden"}), 403
        return (
            render_template(
                "error.html",
                title="Access Denied",
                message="Your role does not allow this action.",
            ),
            403,
        )

    @app.errorhandler(404)
    def not_found(error: Exception):
        if _wants_json():
            return jsonify({"error": "Not found"}), 404
        return (
            render_template(
                "error.html",
                title="Page Not Found",
                message="We could not locate the page you requested.",
            ),
            404,
        )

    @app.errorhandler(500)
    def server_error(error: Exception):
        if _wants_json():
            return jsonify({"error": "Unknown server error"}), 500
        return (
            render_template(
                "error.html",
                title="Server Error",
                message="An unexpected error occurred.",
            ),
            500,
        )
