"""
services/auth_service.py — Authentication orchestration.

Session state per user:

    Anonymous ──register──▶ PendingVerification ──verify_email──▶ Verified
                                  ▲   │ login (fresh code, 403)      │ login
                                  └───┘                              ▼
                                                               Authenticated

Responsibilities:
  - Registration (send code first, create user only after delivery succeeds)
  - Credential checks and session token issuance
  - Access-token refresh against the single stored refresh token
  - Logout (server-side refresh token cleared)
  - Email verification and code re-sending

Layer rules:
  - No imports from routes or schemas
  - No use of flask.request, flask.g or cookies; routes set/clear cookies
  - Every dependency arrives through AuthContext

Atomicity: every function either raises before writing anything, or performs
all of its writes through ctx.store (flush only). The route commits; the
global error handler rolls back. The mail send always happens before the
first write, so a delivery failure never leaves a half-registered account.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from authgate.app.context import AuthContext
from authgate.app.errors import AppError, ErrorCode, email_already_verified, user_not_found
from authgate.app.models.user import User
from authgate.app.services import password_service, verification_service

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoginResult:
    user: dict
    access_token: str
    refresh_token: str


@dataclass(frozen=True)
class VerificationRequired:
    """Credentials were valid but the email is unverified; a fresh code was sent."""

    user_id: int


def _build_user_dict(user: User) -> dict:
    """Public profile. Never includes password_hash or tokens."""
    return {
        "id": user.id,
        "username": user.username,
        "email": user.email,
    }


def _invalid_credentials() -> AppError:
    return AppError(
        ErrorCode.INVALID_CREDENTIALS,
        "Invalid credentials.",
        401,
    )


def email_not_verified() -> AppError:
    return AppError(
        ErrorCode.EMAIL_NOT_VERIFIED,
        "Email is not verified. A new verification code has been sent.",
        403,
    )


# ── Public service functions ───────────────────────────────────────────────

def register_user(
        ctx: AuthContext,
        username: str,
        email: str,
        password: str,
) -> dict:
    """
    Creates an unverified account and emails it a verification code.

    Raises:
      AppError(DUPLICATE_EMAIL, 409)        — email already registered
      AppError(EMAIL_DELIVERY_FAILED, 502)  — nothing is created

    Returns: public profile {id, username, email}
    """
    if ctx.store.email_exists(email):
        raise AppError(
            ErrorCode.DUPLICATE_EMAIL,
            "Email is already in use.",
            409,
            field="email",
        )

    code = verification_service.generate_numeric_code()
    expires_at = verification_service.expiration_from_now(ctx)
    verification_service.deliver_code(ctx, code, email)

    password_hash = password_service.hash_password(password, ctx.settings.bcrypt_rounds)
    user = ctx.store.create_user(
        email=email,
        username=username,
        password_hash=password_hash,
        code=code,
        expires_at=expires_at,
    )
    logger.info("Registered user %s (pending verification)", user.id)
    return _build_user_dict(user)


def login_user(
        ctx: AuthContext,
        email: str,
        password: str,
) -> LoginResult | VerificationRequired:
    """
    Validates credentials and issues an access + refresh token pair.

    Raises:
      AppError(INVALID_CREDENTIALS, 401)    — unknown email or wrong password
                                              (same code and message for both)
      AppError(EMAIL_DELIVERY_FAILED, 502)  — unverified and the fresh code
                                              could not be sent

    Returns:
      LoginResult          — verified; the route puts the tokens in cookies,
                             not the body.
      VerificationRequired — credentials valid, email unverified, fresh code
                             sent and stored. The route commits, then answers
                             with email_not_verified() (403). No tokens.
    """
    user = ctx.store.find_user_by_email(email)

    if user is None:
        password_service.verify_against_dummy(password, ctx.settings.bcrypt_rounds)
        raise _invalid_credentials()

    if not password_service.verify_password(password, user.password_hash):
        raise _invalid_credentials()

    if not verification_service.is_verified(user):
        verification_service.send_code(ctx, user)
        return VerificationRequired(user_id=user.id)

    access_token = ctx.signer.issue_access(user.id)
    refresh_token = ctx.signer.issue_refresh(user.id)

    # Overwrites, and thereby invalidates, any earlier refresh token.
    ctx.store.update_user(user, refresh_token=refresh_token)

    return LoginResult(
        user=_build_user_dict(user),
        access_token=access_token,
        refresh_token=refresh_token,
    )


def refresh_access_token(
        ctx: AuthContext,
        user_id: int,
        presented_refresh_token: str,
) -> str:
    """
    Issues a new access token if the presented refresh token is the one
    currently stored for the user.

    The refresh token itself is NOT rotated here; it stays valid until the
    next login replaces it, logout clears it, or it expires.

    Raises:
      AppError(REFRESH_TOKEN_INVALID, 401) — user gone, no stored token, or the
                                             stored token differs (superseded).

    Returns: the new access token.
    """
    user = ctx.store.find_user_by_id(user_id)
    if (
        user is None
        or not user.refresh_token
        or user.refresh_token != presented_refresh_token
    ):
        raise AppError(
            ErrorCode.REFRESH_TOKEN_INVALID,
            "Invalid refresh token.",
            401,
        )

    return ctx.signer.issue_access(user.id)


def logout_user(ctx: AuthContext, user_id: int | None) -> None:
    """
    Clears the stored refresh token when the caller is known.

    Never raises for an unknown or missing user: logout's job is clearing the
    client's cookies, which the route does unconditionally.
    """
    if user_id is None:
        return

    user = ctx.store.find_user_by_id(user_id)
    if user is not None:
        ctx.store.update_user(user, refresh_token=None)


def verify_email(ctx: AuthContext, email: str, code: str | int) -> dict:
    """
    Confirms the user's email address with the emailed code.

    Raises: see verification_service.check_code.
    Returns: public profile {id, username, email}
    """
    user = verification_service.check_code(ctx, email, code)
    return _build_user_dict(user)


def send_email_verification(ctx: AuthContext, email: str) -> None:
    """
    Sends a new verification code, superseding the pending one.

    Raises:
      AppError(USER_NOT_FOUND, 404)
      AppError(EMAIL_ALREADY_VERIFIED, 409)
      AppError(EMAIL_DELIVERY_FAILED, 502) — the pending code is left as it was
    """
    user = ctx.store.find_user_by_email(email)
    if user is None:
        raise user_not_found()

    if verification_service.is_verified(user):
        raise email_already_verified()

    verification_service.send_code(ctx, user)


def get_current_user(ctx: AuthContext, user_id: int) -> dict:
    """
    Returns the profile of the currently authenticated user.

    Raises:
      AppError(USER_NOT_FOUND, 404) — user_id from the token no longer exists.
    """
    user = ctx.store.find_user_by_id(user_id)
    if user is None:
        raise AppError(
            ErrorCode.USER_NOT_FOUND,
            "User not found.",
            404,
        )
    return {
        **_build_user_dict(user),
        "created_at": user.created_at,
        "updated_at": user.updated_at,
    }
