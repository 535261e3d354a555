"""
routes/auth.py — Authentication route handlers.

Layer rules:
  - Parse request body
  - Validate with the appropriate schema (raises ValidationError on bad input)
  - Build an AuthContext and call exactly ONE service function
  - Commit the DB session
  - Set or clear cookies, return the standard envelope {ok, message, data}

No business logic here. No DB queries.
AppError propagates to the global error handler in app/__init__.py — routes
never catch it.

CSRF is enforced app-wide by middleware/csrf_middleware.py before any of these
handlers run, for every method except GET/HEAD/OPTIONS.

Endpoints (url_prefix=/api/auth):
  POST   /login                    → 200 (403 when the email is unverified)
  POST   /register                 → 201
  POST   /logout                   → 200
  POST   /refresh-token            → 200
  GET    /get-csrf                 → 200
  POST   /verify-email             → 200
  POST   /send-email-verification  → 200
"""

from __future__ import annotations

from flask import Blueprint, request

from authgate.app.context import Identity
from authgate.app.extensions import db
from authgate.app.middleware.auth_middleware import (
    ACCESS_COOKIE_NAME,
    REFRESH_COOKIE_NAME,
    build_auth_context,
    get_runtime,
    optional_access_token,
    require_refresh_token,
)
from authgate.app.responses import success
from authgate.app.schemas.auth_schema import (
    LoginSchema,
    RegisterSchema,
    SendEmailVerificationSchema,
    VerifyEmailSchema,
)
from authgate.app.services import auth_service
from authgate.app.services.csrf_service import CSRF_COOKIE_NAME

auth_bp = Blueprint("auth", __name__)


def _set_session_cookie(response, name: str, value: str, ttl_ms: int) -> None:
    settings = get_runtime().settings
    response.set_cookie(
        name,
        value,
        max_age=ttl_ms // 1000,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="Lax",
    )


def _clear_cookie(response, name: str) -> None:
    settings = get_runtime().settings
    response.delete_cookie(
        name,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="Lax",
    )


@auth_bp.route("/login", methods=["POST"])
def login():
    """POST /auth/login — Check credentials; set session cookies."""
    data = LoginSchema().load(request.get_json(force=True, silent=True) or {})
    outcome = auth_service.login_user(
        build_auth_context(),
        email=data["email"],
        password=data["password"],
    )
    db.session.commit()

    if isinstance(outcome, auth_service.VerificationRequired):
        # The fresh code is already committed; this only shapes the response.
        raise auth_service.email_not_verified()

    settings = get_runtime().settings
    response, status = success(outcome.user)
    _set_session_cookie(response, ACCESS_COOKIE_NAME, outcome.access_token, settings.access_ttl_ms)
    _set_session_cookie(response, REFRESH_COOKIE_NAME, outcome.refresh_token, settings.refresh_ttl_ms)
    return response, status


@auth_bp.route("/register", methods=["POST"])
def register():
    """POST /auth/register — Create an unverified account; email a code."""
    data = RegisterSchema().load(request.get_json(force=True, silent=True) or {})
    user = auth_service.register_user(
        build_auth_context(),
        username=data["username"],
        email=data["email"],
        password=data["password"],
    )
    db.session.commit()
    return success(user, "Registration successful. Check your email for the verification code.", 201)


@auth_bp.route("/logout", methods=["POST"])
@optional_access_token
def logout(identity: Identity | None):
    """POST /auth/logout — Forget the refresh token; clear all session cookies."""
    auth_service.logout_user(
        build_auth_context(),
        user_id=identity.user_id if identity is not None else None,
    )
    db.session.commit()

    response, status = success(None, "Logged out successfully.")
    for name in (ACCESS_COOKIE_NAME, REFRESH_COOKIE_NAME, CSRF_COOKIE_NAME):
        _clear_cookie(response, name)
    return response, status


@auth_bp.route("/refresh-token", methods=["POST"])
@require_refresh_token
def refresh_token(identity: Identity):
    """POST /auth/refresh-token — Exchange the refresh cookie for a new access cookie."""
    access_token = auth_service.refresh_access_token(
        build_auth_context(),
        user_id=identity.user_id,
        presented_refresh_token=identity.token,
    )

    settings = get_runtime().settings
    response, status = success(None, "Access token refreshed successfully.")
    _set_session_cookie(response, ACCESS_COOKIE_NAME, access_token, settings.access_ttl_ms)
    return response, status


@auth_bp.route("/get-csrf", methods=["GET"])
def get_csrf():
    """GET /auth/get-csrf — Issue the CSRF secret cookie and its header token."""
    runtime = get_runtime()
    secret, token, is_new = runtime.csrf.issue(request.cookies.get(CSRF_COOKIE_NAME))

    response, status = success({"csrf": token})
    if is_new:
        response.set_cookie(
            CSRF_COOKIE_NAME,
            secret,
            httponly=True,
            secure=runtime.settings.cookie_secure,
            samesite="Lax",
        )
    return response, status


@auth_bp.route("/verify-email", methods=["POST"])
def verify_email():
    """POST /auth/verify-email — Confirm the email with the 6-digit code."""
    data = VerifyEmailSchema().load(request.get_json(force=True, silent=True) or {})
    user = auth_service.verify_email(
        build_auth_context(),
        email=data["email"],
        code=data["code"],
    )
    db.session.commit()
    return success(user, "Email verified successfully.")


@auth_bp.route("/send-email-verification", methods=["POST"])
def send_email_verification():
    """POST /auth/send-email-verification — Email a new code, replacing the pending one."""
    data = SendEmailVerificationSchema().load(request.get_json(force=True, silent=True) or {})
    auth_service.send_email_verification(build_auth_context(), email=data["email"])
    db.session.commit()
    return success(None, "Verification code sent.")
