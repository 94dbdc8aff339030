"""
app/__init__.py — create_app(), the only way a BockDocs app is built.

Importing this package starts nothing. The tests build a "testing" app per
session, a WSGI server builds a "production" one, and Alembic imports the models
without serving a request.

Order inside create_app():
  config → extensions (db, ma, mailer, identity verifier) → models →
  blueprints → error handlers → CORS → `flask email` CLI group.

Models are imported inside the factory so db.metadata knows all three
tables before db.create_all() or Alembic autogenerate looks at it.
"""

from __future__ import annotations

import traceback

from flask import Flask, jsonify, request
from marshmallow import ValidationError
from werkzeug.exceptions import HTTPException

from bockdocs.config import config_by_name, validate_production_config


def create_app(config_name: str = "development") -> Flask:
    """
    Builds an app for `config_name` ("development", "testing" or
    "production"). Unknown names fall back to development.
    """
    app = Flask(__name__)

    # ── Configuration ──────────────────────────────────────────────────────
    config_class = config_by_name.get(config_name, config_by_name["development"])
    app.config.from_object(config_class)

    if config_name == "production":
        validate_production_config(app)

    # ── Extensions ─────────────────────────────────────────────────────────
    # extensions imports the services package; keep it out of module scope.
    from bockdocs.app.extensions import db, identity_verifier, ma, mailer
    db.init_app(app)
    ma.init_app(app)
    mailer.init_app(app)
    identity_verifier.init_app(app)

    if not mailer.is_configured:
        app.logger.warning(
            "Email is not configured; password-reset and share emails will be skipped."
        )

    # ── Model registration ─────────────────────────────────────────────────
    with app.app_context():
        from bockdocs.app.models import document, share_link, user  # noqa: F401

    _register_blueprints(app)
    _register_error_handlers(app)
    _register_cors(app)

    from bockdocs.app.cli import email_cli
    app.cli.add_command(email_cli)

    return app


def _register_blueprints(app: Flask) -> None:
    """Every blueprint lives under /api/v1; route files declare relative paths."""
    from bockdocs.app.routes.auth import auth_bp
    from bockdocs.app.routes.documents import documents_bp
    from bockdocs.app.routes.health import health_bp
    from bockdocs.app.routes.shared import shared_bp

    app.register_blueprint(auth_bp,      url_prefix="/api/v1/auth")
    app.register_blueprint(documents_bp, url_prefix="/api/v1/documents")
    app.register_blueprint(shared_bp,    url_prefix="/api/v1/shared")
    app.register_blueprint(health_bp,    url_prefix="/api/v1")


def _register_error_handlers(app: Flask) -> None:
    """
    Maps every failure onto {"error": {code, message, field?}}.

      AppError        → its own code and http_status
      ValidationError → first marshmallow field error as MISSING_FIELD /
                        INVALID_FIELD (400)
      HTTPException   → NOT_FOUND / METHOD_NOT_ALLOWED / INVALID_INPUT
      Exception       → INTERNAL_ERROR (500); the traceback goes to the log only
    """
    from bockdocs.app.errors import AppError, ErrorCode

    @app.errorhandler(AppError)
    def handle_app_error(error: AppError):
        return jsonify(error.to_dict()), error.http_status

    @app.errorhandler(ValidationError)
    def handle_validation_error(error: ValidationError):
        """One error per response, even when several fields failed."""
        field, message = _first_validation_message(error.messages)

        if message.startswith("Missing data for required field"):
            code = ErrorCode.MISSING_FIELD
        else:
            code = ErrorCode.INVALID_FIELD

        body = {"error": {"code": code, "message": message}}
        if field is not None:
            body["error"]["field"] = field
        return jsonify(body), 400

    @app.errorhandler(HTTPException)
    def handle_http_error(error: HTTPException):
        if error.code == 404:
            code = ErrorCode.NOT_FOUND
        elif error.code == 405:
            code = ErrorCode.METHOD_NOT_ALLOWED
        elif error.code is not None and error.code < 500:
            code = ErrorCode.INVALID_INPUT
        else:
            code = ErrorCode.INTERNAL_ERROR
        return jsonify({
            "error": {"code": code, "message": error.description or error.name}
        }), error.code or 500

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):
        app.logger.error(
            "Unhandled exception on %s %s: %s\n%s",
            request.method,
            request.path,
            str(error),
            traceback.format_exc(),
        )
        return jsonify({
            "error": {
                "code": ErrorCode.INTERNAL_ERROR,
                "message": "Something went wrong on our side. Please retry shortly.",
            }
        }), 500


def _first_validation_message(messages) -> tuple[str | None, str]:
    """Flattens marshmallow's messages to the first (field, message) pair."""
    if isinstance(messages, dict):
        for field_name, field_errors in messages.items():
            field = field_name if field_name != "_schema" else None
            if isinstance(field_errors, list):
                return field, str(field_errors[0]) if field_errors else "Invalid value."
            if isinstance(field_errors, dict):
                # Nested schema: report the outer field with the inner message.
                return field, _first_validation_message(field_errors)[1]
            return field, str(field_errors)
    if isinstance(messages, list) and messages:
        return None, str(messages[0])
    return None, "Invalid input."


def _register_cors(app: Flask) -> None:
    """
    Permissive CORS for DEBUG/TESTING only, so the editor frontend on its own
    dev port can send bearer tokens.
    """

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        allow_all = bool(app.config.get("DEBUG") or app.config.get("TESTING"))

        if allow_all:
            # Browsers refuse "*" together with an Authorization header.
            response.headers["Access-Control-Allow-Origin"] = origin if origin else "*"
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Methods"] = "GET, POST, PUT, PATCH, DELETE, OPTIONS"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"

        return response
