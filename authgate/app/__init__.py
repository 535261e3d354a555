"""
app/__init__.py — Flask application factory.

Pattern: create_app(config_name) creates and returns a configured Flask app.
         Nothing is initialised at import time — this enables:
           - Multiple isolated test app instances (each with its own secrets
             and mail double)
           - `alembic` to import the models without starting the server

Responsibilities:
  1. Load configuration from config_by_name[config_name]
  2. Build the immutable AuthRuntime (settings, token signer, CSRF guard,
     mailer). Malformed duration strings fail here, at startup.
  3. Initialise extensions (SQLAlchemy, Marshmallow) via init_app()
  4. Install the app-wide CSRF check
  5. Register route blueprints under /api
  6. Register global error handlers (AppError / ValidationError → envelope,
     Exception → 500)
  7. CORS headers for the configured frontend origins
"""

from __future__ import annotations

import traceback

from flask import Flask, request
from marshmallow import ValidationError

from authgate.config import config_by_name, validate_production_config


# ── Application factory ────────────────────────────────────────────────────

def create_app(config_name: str = "development", mailer=None) -> Flask:
    """
    Creates and returns a configured Flask application instance.

    Args:
        config_name: One of "development", "testing", "production".
                     Resolved via config_by_name in config.py.
        mailer:      Optional Mailer implementation. Defaults to an SmtpMailer
                     built from the EMAIL_* settings.

    Raises:
        DurationFormatError — a duration setting is not "<digits><m|h|d>".
        ValueError          — production config is missing or insecure.
    """
    app = Flask(__name__)

    # ── Configuration ──────────────────────────────────────────────────────
    config_class = config_by_name.get(config_name, config_by_name["development"])
    app.config.from_object(config_class)

    if config_name == "production":
        validate_production_config(app)  # raises ValueError if misconfigured

    # ── Auth runtime ───────────────────────────────────────────────────────
    _init_auth_runtime(app, mailer)

    # ── Extensions ─────────────────────────────────────────────────────────
    # Import here (not at module top) to avoid circular imports.
    from authgate.app.extensions import db, ma
    db.init_app(app)
    ma.init_app(app)

    # ── Model registration ─────────────────────────────────────────────────
    # Import all models so that SQLAlchemy's MetaData is populated.
    with app.app_context():
        from authgate.app.models import email_verification, user  # noqa: F401

    from authgate.app.middleware.csrf_middleware import register_csrf_protection
    register_csrf_protection(app)

    _register_blueprints(app)
    _register_error_handlers(app)
    _register_cors(app)

    return app


def _init_auth_runtime(app: Flask, mailer) -> None:
    from authgate.app.context import AuthRuntime
    from authgate.app.extensions import AUTH_EXTENSION_KEY
    from authgate.app.services.csrf_service import CsrfGuard, HmacCsrfDeriver
    from authgate.app.services.mail_service import SmtpMailer
    from authgate.app.services.token_service import TokenSigner
    from authgate.app.settings import AuthSettings

    settings = AuthSettings.from_config(app.config)
    app.extensions[AUTH_EXTENSION_KEY] = AuthRuntime(
        settings=settings,
        signer=TokenSigner(settings),
        csrf=CsrfGuard(HmacCsrfDeriver(settings.csrf_secret)),
        mailer=mailer if mailer is not None else SmtpMailer.from_config(
            app.config,
            settings.verification_expires_in,
        ),
    )


def _register_blueprints(app: Flask) -> None:
    """
    Registers all route blueprints under the /api prefix.

    The url_prefix is set here so individual route files only specify the
    path relative to their resource.
    """
    from authgate.app.routes.auth import auth_bp
    from authgate.app.routes.users import users_bp

    app.register_blueprint(auth_bp,  url_prefix="/api/auth")
    app.register_blueprint(users_bp, url_prefix="/api/user")


def _register_error_handlers(app: Flask) -> None:
    """
    Registers global error handlers.

    Handlers:
      AppError        → {ok: false, message, data: {code}} with the error's status
      ValidationError → {ok: false, message: "Validation error", errors: {...}} (422)
      Exception       → generic INTERNAL_ERROR (500); traceback logged

    Every handler rolls back the session first, so a failed request never
    leaves flushed-but-uncommitted writes behind. Internal exception text and
    stack traces never leave the server.
    """
    from flask import jsonify
    from werkzeug.exceptions import HTTPException

    from authgate.app.errors import AppError, ErrorCode
    from authgate.app.extensions import db
    from authgate.app.responses import validation_errors

    @app.errorhandler(AppError)
    def handle_app_error(error: AppError):
        """
        Converts an AppError raised anywhere in the request lifecycle
        (middleware, service, route) into the standard envelope.

        Routes never catch AppError — they let it propagate here.
        """
        db.session.rollback()
        return jsonify(error.to_dict()), error.http_status

    @app.errorhandler(ValidationError)
    def handle_validation_error(error: ValidationError):
        """
        Converts marshmallow ValidationError into per-field errors.

        marshmallow's messages are already {field: [message, ...]}; schema-level
        errors arrive under "_schema". A non-dict payload is wrapped so the
        shape is always a dict of lists.
        """
        db.session.rollback()
        messages = error.messages
        if not isinstance(messages, dict):
            messages = {"_schema": messages if isinstance(messages, list) else [str(messages)]}
        return validation_errors(messages)

    @app.errorhandler(HTTPException)
    def handle_http_error(error: HTTPException):
        """404 / 405 and friends, rendered in the same envelope."""
        return jsonify({
            "ok": False,
            "message": error.description or error.name,
            "data": None,
        }), error.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):
        """
        Catches all unhandled exceptions and returns a generic 500 response.

        The full traceback is logged to the application logger.
        """
        db.session.rollback()
        app.logger.error(
            "Unhandled exception: %s\n%s",
            str(error),
            traceback.format_exc(),
        )
        return jsonify({
            "ok": False,
            "message": "An unexpected error occurred. Please try again later.",
            "data": {"code": ErrorCode.INTERNAL_ERROR},
        }), 500


def _register_cors(app: Flask) -> None:
    """
    Adds credentialed CORS headers for the configured frontend origins.

    Cookies carry the session, so the origin is reflected only when it is in
    CORS_ORIGINS (never "*"), and X-CSRF-Token is allowed so the frontend can
    echo the CSRF token.
    """

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        allowed = app.config.get("CORS_ORIGINS", [])

        if origin and origin in allowed:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Access-Control-Allow-Credentials"] = "true"
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Methods"] = "GET, POST, DELETE, OPTIONS"
            response.headers["Access-Control-Allow-Headers"] = "Content-Type, X-CSRF-Token"

        return response
