"""
app/__init__.py — Flask application factory.

Pattern: create_app(config_name) creates and returns a configured Flask app.
         Nothing is initialised at import time — this enables:
           - Multiple isolated test app instances
           - Clean separation between app creation and app startup
           - Alembic to import the metadata without starting the server

Responsibilities:
  1. Load configuration from config_by_name[config_name]
  2. Initialise extensions (SQLAlchemy, Marshmallow) via init_app()
  3. Register all route blueprints under /api/v1
  4. Register global error handlers (AppError → JSON, HTTPException → JSON,
     Exception → 500)
  5. Register a custom JSON provider to serialise Decimal as string
     (monetary amounts are transmitted as strings, never JS numbers)
"""

from __future__ import annotations

import logging
import traceback
from decimal import Decimal

from flask import Flask, jsonify, request
from flask.json.provider import DefaultJSONProvider
from marshmallow import ValidationError
from werkzeug.exceptions import HTTPException

from xpenseshare.config import config_by_name, validate_production_config


# ── Custom JSON provider ───────────────────────────────────────────────────

class DecimalJSONProvider(DefaultJSONProvider):
    """
    Extends Flask's default JSON provider to serialise Decimal as str.

    Example: Decimal("10.50") → "10.50" (not 10.5 or 10.500000001)
    """

    def default(self, o):
        if isinstance(o, Decimal):
            return str(o)
        return super().default(o)


# ── Application factory ────────────────────────────────────────────────────

def create_app(config_name: str = "development") -> Flask:
    """
    Creates and returns a configured Flask application instance.

    Args:
        config_name: One of "development", "testing", "production".
                     Resolved via config_by_name in config.py.
    """
    app = Flask(__name__)
    app.json_provider_class = DecimalJSONProvider
    app.json = DecimalJSONProvider(app)

    # ── Configuration ──────────────────────────────────────────────────────
    config_class = config_by_name.get(config_name, config_by_name["development"])
    app.config.from_object(config_class)

    if config_name == "production":
        validate_production_config(app)  # raises ValueError if misconfigured

    _configure_logging(app)

    # ── Extensions ─────────────────────────────────────────────────────────
    # Import here (not at module top) to avoid circular imports.
    from xpenseshare.app.extensions import db, ma
    db.init_app(app)
    ma.init_app(app)

    # ── Model registration ─────────────────────────────────────────────────
    # Importing the models package registers every table on db.metadata.
    with app.app_context():
        import xpenseshare.app.models  # noqa: F401

    _register_blueprints(app)
    _register_error_handlers(app)
    _register_cors(app)

    return app


def _configure_logging(app: Flask) -> None:
    """Applies LOG_LEVEL to the app logger and to the package's module loggers."""
    level = logging.getLevelName(str(app.config.get("LOG_LEVEL", "INFO")).upper())
    if not isinstance(level, int):
        level = logging.INFO
    app.logger.setLevel(level)
    logging.getLogger("xpenseshare").setLevel(level)


def _register_blueprints(app: Flask) -> None:
    """
    Registers all route blueprints under the /api/v1 prefix.

    Blueprints that own paths on more than one resource (expenses and
    settlements both serve /groups/<id>/... and /<resource>/<id>) are
    registered at /api/v1 itself.
    """
    from xpenseshare.app.routes.balances import balances_bp
    from xpenseshare.app.routes.expenses import expenses_bp
    from xpenseshare.app.routes.groups import groups_bp
    from xpenseshare.app.routes.invitations import invitations_bp
    from xpenseshare.app.routes.notifications import notifications_bp
    from xpenseshare.app.routes.profile import profile_bp
    from xpenseshare.app.routes.settlements import settlements_bp

    app.register_blueprint(profile_bp,       url_prefix="/api/v1/profile")
    app.register_blueprint(groups_bp,        url_prefix="/api/v1/groups")
    app.register_blueprint(expenses_bp,      url_prefix="/api/v1")
    app.register_blueprint(balances_bp,      url_prefix="/api/v1")
    app.register_blueprint(settlements_bp,   url_prefix="/api/v1")
    app.register_blueprint(notifications_bp, url_prefix="/api/v1/notifications")
    app.register_blueprint(invitations_bp,   url_prefix="/api/v1/invitations")


def _first_message(messages) -> tuple[str | None, str]:
    """
    Walks a marshmallow messages structure to the first (field, message)
    pair. Nested fields (e.g. manual_amounts -> user -> value) report the
    top-level field name.
    """
    if isinstance(messages, dict):
        for field_name, field_errors in messages.items():
            _, message = _first_message(field_errors)
            return (None if field_name == "_schema" else field_name), message
    if isinstance(messages, list) and messages:
        return _first_message(messages[0])
    if isinstance(messages, str):
        return None, messages
    return None, "Invalid input."


def _register_error_handlers(app: Flask) -> None:
    """
    Registers global error handlers.

    Handlers:
      AppError        → structured JSON error envelope with the correct status
      ValidationError → the FIRST schema error as MISSING_FIELD / INVALID_FIELD
                        or a registered code (400)
      HTTPException   → werkzeug errors (404 unknown route, 405, ...) as JSON
      Exception       → generic INTERNAL_ERROR (500); traceback logged

    Stack traces never leave the server.
    """
    from xpenseshare.app.errors import AppError, ErrorCode

    known_codes = {
        value for name, value in vars(ErrorCode).items() if not name.startswith("_")
    }

    @app.errorhandler(AppError)
    def handle_app_error(error: AppError):
        """Routes never catch AppError — they let it propagate here."""
        if error.http_status >= 500:
            app.logger.warning("%r on %s %s", error, request.method, request.path)
        return jsonify(error.to_dict()), error.http_status

    @app.errorhandler(ValidationError)
    def handle_validation_error(error: ValidationError):
        field, raw_message = _first_message(error.messages)

        if raw_message in known_codes:
            code = raw_message
            message = _code_to_message(code)
        elif raw_message.startswith("Missing data for required field"):
            code = ErrorCode.MISSING_FIELD
            message = raw_message
        else:
            code = ErrorCode.INVALID_FIELD
            message = raw_message

        response_body = {"error": {"code": code, "message": message}}
        if field is not None:
            response_body["error"]["field"] = field
        return jsonify(response_body), 400

    @app.errorhandler(HTTPException)
    def handle_http_exception(error: HTTPException):
        # A malformed JSON body surfaces here as a 400 BadRequest.
        code = ErrorCode.INVALID_FIELD if error.code == 400 else error.name.upper().replace(" ", "_")
        return jsonify({
            "error": {
                "code": code,
                "message": error.description,
            }
        }), error.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):
        app.logger.error(
            "Unhandled exception: %s\n%s",
            str(error),
            traceback.format_exc(),
        )
        return jsonify({
            "error": {
                "code": ErrorCode.INTERNAL_ERROR,
                "message": "An unexpected error occurred. Please try again later.",
            }
        }), 500


def _register_cors(app: Flask) -> None:
    """
    Adds CORS headers for browser-based local development (DEBUG or TESTING).
    """

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        allow_all = bool(app.config.get("DEBUG") or app.config.get("TESTING"))

        if allow_all:
            response.headers["Access-Control-Allow-Origin"] = origin if origin else "*"
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Methods"] = "GET, POST, PUT, PATCH, DELETE, OPTIONS"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"

        return response


def _code_to_message(code: str) -> str:
    """Default message for a ValidationError whose message IS an error code."""
    _messages = {
        "INVALID_AMOUNT_PRECISION": "Amount must have at most 2 decimal places.",
        "INVALID_SPLIT_POLICY": "split_policy must be 'equal' or 'manual'.",
        "INVALID_STATUS": "status must be 'accepted' or 'rejected'.",
        "DUPLICATE_PARTICIPANT": "The same user id appears more than once in participant_ids.",
        "MANUAL_AMOUNTS_FOR_EQUAL_POLICY": "Do not send manual_amounts when split_policy is 'equal'.",
    }
    return _messages.get(code, "Invalid input.")
