"""
errors.py — AppError base class and error code registry.

Every error returned by the AuthGate API must use a code defined here.
Do not raise strings or generic exceptions from service or route code.

Rules:
  - Error codes are a versioned contract. They do not change once published.
  - Error messages are human-readable prose. They may be improved at any time.
  - Never conflate 401 (unauthenticated) with 403 (authenticated, but the
    account may not open a session yet). See AUTH section below.
"""

from __future__ import annotations


class AppError(Exception):

    def __init__(
            self,
            code: str,
            message: str,
            http_status: int,
            field: str | None = None,
    ) -> None:
        super().__init__(message)
        self.code        = code
        self.message     = message
        self.http_status = http_status
        self.field       = field  # which request field caused the error

    def to_dict(self) -> dict:
        """Renders the fixed response envelope: {ok, message, data}."""
        data = {"code": self.code}
        if self.field is not None:
            data["field"] = self.field
        return {
            "ok":      False,
            "message": self.message,
            "data":    data,
        }

    def __repr__(self) -> str:
        return (
            f"AppError(code={self.code!r}, "
            f"http_status={self.http_status}, "
            f"message={self.message!r})"
        )


# ── Error Code Registry ────────────────────────────────────────────────────
#
# Organised by category. HTTP status is indicated in the comment.
#
# IMPORTANT: these are the string values sent in the API response.
# Do not rename them without a major version bump.
# ──────────────────────────────────────────────────────────────────────────

class ErrorCode:

    # ── Schema / Input Errors (422 / 400) ──────────────────────────────────
    VALIDATION_ERROR           = "VALIDATION_ERROR"           # 422, per-field
    INVALID_VERIFICATION_CODE  = "INVALID_VERIFICATION_CODE"  # 400
    VERIFICATION_CODE_EXPIRED  = "VERIFICATION_CODE_EXPIRED"  # 400

    # ── Conflict Errors (409) ──────────────────────────────────────────────
    DUPLICATE_EMAIL            = "DUPLICATE_EMAIL"
    EMAIL_ALREADY_VERIFIED     = "EMAIL_ALREADY_VERIFIED"

    # ── Not Found Errors (404) ─────────────────────────────────────────────
    USER_NOT_FOUND             = "USER_NOT_FOUND"

    # ── Auth Errors ────────────────────────────────────────────────────────
    # 401 = we do not know who you are (unauthenticated)
    # 403 = the credentials are right, but the email is not verified yet
    # INVALID_CREDENTIALS is used for BOTH unknown email and wrong password.
    INVALID_CREDENTIALS        = "INVALID_CREDENTIALS"    # 401
    UNAUTHORIZED               = "UNAUTHORIZED"           # 401
    REFRESH_TOKEN_INVALID      = "REFRESH_TOKEN_INVALID"  # 401
    CSRF_INVALID               = "CSRF_INVALID"           # 401
    EMAIL_NOT_VERIFIED         = "EMAIL_NOT_VERIFIED"     # 403

    # ── Collaborator Errors (502) ──────────────────────────────────────────
    EMAIL_DELIVERY_FAILED      = "EMAIL_DELIVERY_FAILED"

    # ── System Errors (500) ────────────────────────────────────────────────
    INTERNAL_ERROR             = "INTERNAL_ERROR"


def unauthorized(message: str = "Authentication required.") -> AppError:
    """Single 401 shape for every token failure (missing, forged, expired)."""
    return AppError(ErrorCode.UNAUTHORIZED, message, 401)


def user_not_found() -> AppError:
    """No account for the submitted email (verify / resend)."""
    return AppError(
        ErrorCode.USER_NOT_FOUND,
        "No account is registered with this email address.",
        404,
        field="email",
    )


def email_already_verified() -> AppError:
    return AppError(
        ErrorCode.EMAIL_ALREADY_VERIFIED,
        "This email address has already been verified.",
        409,
    )
