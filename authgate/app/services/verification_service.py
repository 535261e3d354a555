"""
services/verification_service.py — Email verification code lifecycle.

Lifecycle of a code:
    generated → sent by the mailer → persisted (only after a successful send)
    → consumed by check_code(), or superseded by the next send.

A failed send changes nothing: the previous pending code (if any) stays
valid and the caller gets EMAIL_DELIVERY_FAILED, which is distinct from every
validation error.

check_code() precedence (first failing check wins):
    1. user exists                      else USER_NOT_FOUND            (404)
    2. not already verified             else EMAIL_ALREADY_VERIFIED    (409)
    3. submitted code == stored code    else INVALID_VERIFICATION_CODE (400)
    4. now < expires_at                 else VERIFICATION_CODE_EXPIRED (400)

A code that is both wrong and expired is reported as invalid, since (3) runs
before (4). An already-verified user never sees "wrong code".

Attempts are not rate limited.
"""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timezone

from authgate.app.context import AuthContext
from authgate.app.errors import AppError, ErrorCode, email_already_verified, user_not_found
from authgate.app.models.email_verification import EmailVerification
from authgate.app.models.user import User

logger = logging.getLogger(__name__)

CODE_MIN = 100000
CODE_MAX = 999999


def generate_numeric_code() -> int:
    """Uniform draw from [100000, 999999]: always exactly six digits."""
    return CODE_MIN + secrets.randbelow(CODE_MAX - CODE_MIN + 1)


def expiration_from_now(ctx: AuthContext) -> datetime:
    return ctx.now() + ctx.settings.verification_ttl


def is_verified(user: User) -> bool:
    record = user.email_verification
    return record is not None and record.verified


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for DateTime(timezone=True).
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def deliver_code(ctx: AuthContext, code: int, to: str) -> None:
    """
    Sends a verification code.

    Raises:
      AppError(EMAIL_DELIVERY_FAILED, 502) — the mailer reported failure.
    """
    result = ctx.mailer.send_verification_email(code=code, to=to)
    if not result.ok:
        logger.warning("Verification email delivery failed for %s", to)
        raise AppError(
            ErrorCode.EMAIL_DELIVERY_FAILED,
            "The verification email could not be sent. Please try again later.",
            502,
        )


def issue_code(
        ctx: AuthContext,
        user: User,
        code: int,
        expires_at: datetime,
) -> EmailVerification:
    """Delivers `code` to the user, then stores it as the pending code."""
    deliver_code(ctx, code, user.email)
    return ctx.store.update_verification(user, code=code, expires_at=expires_at)


def send_code(ctx: AuthContext, user: User) -> EmailVerification:
    """Generates a fresh code and issues it, replacing any pending one."""
    return issue_code(ctx, user, generate_numeric_code(), expiration_from_now(ctx))


def check_code(ctx: AuthContext, email: str, submitted_code: str | int) -> User:
    """
    Validates a submitted code and marks the email as verified.

    Raises:
      AppError(USER_NOT_FOUND, 404)
      AppError(EMAIL_ALREADY_VERIFIED, 409)
      AppError(INVALID_VERIFICATION_CODE, 400)
      AppError(VERIFICATION_CODE_EXPIRED, 400)

    Returns: the now-verified User.
    """
    user = ctx.store.find_user_by_email(email)
    if user is None:
        raise user_not_found()

    if is_verified(user):
        raise email_already_verified()

    record = user.email_verification
    try:
        submitted = int(submitted_code)
    except (TypeError, ValueError):
        submitted = None

    if record is None or record.code is None or submitted != record.code:
        raise AppError(
            ErrorCode.INVALID_VERIFICATION_CODE,
            "The verification code is invalid.",
            400,
            field="code",
        )

    now = ctx.now()
    if record.expires_at is None or not now < _as_utc(record.expires_at):
        raise AppError(
            ErrorCode.VERIFICATION_CODE_EXPIRED,
            "The verification code has expired. Request a new one.",
            400,
            field="code",
        )

    ctx.store.update_verification(
        user,
        verified=True,
        verified_at=now,
        code=None,
        expires_at=None,
    )
    logger.info("Email verified for user %s", user.id)
    return user
