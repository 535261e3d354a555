"""
services/csrf_service.py — Double-submit CSRF protection.

  1. GET /api/auth/get-csrf issues a random secret in an HttpOnly cookie
     (csrf_secret) and returns token = HMAC-SHA256(CSRF_SECRET, secret) in the
     response body.
  2. Client code echoes the token in the X-CSRF-Token header on every
     mutating request.
  3. The server recomputes the token from the cookie and compares it with the
     header in constant time.

A cross-site page can make the browser send the cookie, but it can neither
read the cookie (HttpOnly) nor read the token from our response (same-origin
policy), so it cannot produce a matching header.

The derivation is behind the CsrfTokenDeriver protocol so the algorithm can
be swapped or tested independently of the cookie plumbing.
"""

from __future__ import annotations

import hashlib
import hmac
import re
import secrets
from typing import Protocol

from authgate.app.errors import AppError, ErrorCode

CSRF_COOKIE_NAME = "csrf_secret"
CSRF_HEADER_NAME = "X-CSRF-Token"

SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})

# secrets.token_hex(32)
_SECRET_RE = re.compile(r"[0-9a-f]{64}")


class CsrfTokenDeriver(Protocol):

    def derive(self, secret: str) -> str: ...

    def verify(self, secret: str, presented: str) -> bool: ...


class HmacCsrfDeriver:
    """HMAC-SHA256 keyed with the server-side CSRF_SECRET."""

    def __init__(self, key: str) -> None:
        self._key = key.encode("utf-8")

    def derive(self, secret: str) -> str:
        return hmac.new(self._key, secret.encode("utf-8"), hashlib.sha256).hexdigest()

    def verify(self, secret: str, presented: str) -> bool:
        if not secret or not presented:
            return False
        # compare_digest rejects non-ASCII str; header values are arbitrary text.
        return hmac.compare_digest(
            self.derive(secret).encode("ascii"),
            presented.encode("utf-8"),
        )


class CsrfGuard:

    def __init__(self, deriver: CsrfTokenDeriver) -> None:
        self._deriver = deriver

    def issue(self, existing_secret: str | None) -> tuple[str, str, bool]:
        """
        Returns (secret, token, is_new_secret).

        A well-formed secret already held by the client is reused so that
        tokens handed to other open tabs stay valid.
        """
        if existing_secret and _SECRET_RE.fullmatch(existing_secret):
            return existing_secret, self._deriver.derive(existing_secret), False

        secret = secrets.token_hex(32)
        return secret, self._deriver.derive(secret), True

    def validate(self, method: str, secret: str | None, presented: str | None) -> None:
        """
        Raises:
          AppError(CSRF_INVALID, 401) — unsafe method with a missing cookie,
                                        missing header, or wrong derivation.
        """
        if method.upper() in SAFE_METHODS:
            return
        if not self._deriver.verify(secret or "", presented or ""):
            raise AppError(
                ErrorCode.CSRF_INVALID,
                "Invalid or missing CSRF token.",
                401,
            )
