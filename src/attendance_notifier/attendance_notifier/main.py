from __future__ import annotations

import importlib
import logging
from pathlib import Path

from dotenv import load_dotenv
from flask import Flask, jsonify

from config import get_settings_module

from .alerts.controller import register as register_alerts
from .bounces.controller import register as register_bounces
from .common.app_logger import setup_logging
from .container import build_container_from_settings
from .core.exceptions import AuthorizationError, DomainError, NotFoundError, ValidationError
from .database.bootstrap import apply_schema, list_tables
from .notifications.controller import register as register_notifications
from .unsubscribes.controller import register as register_unsubscribes

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).resolve().parents[3] / "database" / "schema.sql"


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(ValidationError)
    def handle_validation(e):
        return jsonify({"error": str(e)}), 400

    @app.errorhandler(AuthorizationError)
    def handle_authorization(e):
        return jsonify({"error": str(e)}), 403

    @app.errorhandler(NotFoundError)
    def handle_not_found(e):
        return jsonify({"error": str(e)}), 404

    @app.errorhandler(DomainError)
    def handle_domain(e):
        return jsonify({"error": str(e)}), 400

    @app.errorhandler(Exception)
    def handle_unexpected(e):
        # Flask's own HTTP errors (404 for unknown routes, 405...) keep their code.
        code = getattr(e, "code", None)
        if isinstance(code, int) and 400 <= code < 500:
            return jsonify({"error": getattr(e, "description", str(e))}), code
        logger.exception("Unhandled error")
        return jsonify({"error": "Internal server error"}), 500


def create_app(container=None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    setup_logging(getattr(settings, "LOG_LEVEL", None))
    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))

    if container is None:
        db_config = getattr(settings, "DB_CONFIG")
        logger.info(
            "settings=%s db=%s@%s:%s/%s",
            settings_module,
            db_config.get("user"),
            db_config.get("host"),
            db_config.get("port", 3306),
            db_config.get("database"),
        )
        if bool(getattr(settings, "AUTO_INIT_DB", False)):
            apply_schema(db_config, schema_path=SCHEMA_PATH)
            logger.info("Schema ready (tables=%d)", len(list_tables(db_config)))
        container = build_container_from_settings(settings)

    app.extensions["container"] = container
    _register_error_handlers(app)

    register_alerts(app, container)
    register_notifications(app, container)
    register_unsubscribes(app, container)
    register_bounces(app, container)

    return app
