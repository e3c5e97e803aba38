from __future__ import annotations

import importlib
import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask, jsonify

from config import get_settings_module

from .alerts.controller import register as register_alerts
from .attendance.controller import register as register_attendance
from .container import Container, build_container
from .core.exceptions import (
    AuthenticationError,
    ConflictError,
    DomainError,
    NotFoundError,
    RateLimitError,
    ValidationError,
)
from .database.bootstrap import apply_schema, list_tables
from .notifications.controller import register as register_realtime
from .reports.controller import register as register_reports

logger = logging.getLogger(__name__)

# most specific first; InvalidTransitionError is a ConflictError
ERROR_STATUS = (
    (NotFoundError, 404),
    (ConflictError, 409),
    (AuthenticationError, 401),
    (RateLimitError, 429),
    (ValidationError, 400),
)


def status_for(exc: DomainError) -> int:
    for exc_type, status in ERROR_STATUS:
        if isinstance(exc, exc_type):
            return status
    return 400


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def handle_domain_error(exc: DomainError):
        status = status_for(exc)
        logger.info("%s -> %s: %s", type(exc).__name__, status, exc)
        return jsonify({"success": False, "error": type(exc).__name__, "message": str(exc)}), status

    @app.errorhandler(KeyError)
    def handle_missing_field(exc: KeyError):
        return jsonify({"success": False, "error": "ValidationError", "message": f"Missing field: {exc.args[0]}"}), 400


def create_app(container: Optional[Container] = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    logging.basicConfig(
        level=getattr(settings, "LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))

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
            schema_path = Path(__file__).resolve().parents[3] / "database" / "schema.sql"
            apply_schema(db_config, schema_path=schema_path)
            logger.info("schema ready (tables=%s)", len(list_tables(db_config)))

        container = build_container(settings=settings)

    app.extensions["attendance_alerts"] = container
    register_error_handlers(app)
    register_attendance(app, container)
    register_alerts(app, container)
    register_reports(app, container)
    register_realtime(app, container)

    return app
