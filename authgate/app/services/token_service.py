"""
services/token_service.py — Signed session tokens (JWT, HS256).

Two token classes share one shape and differ only in key and lifetime:

  ACCESS   — AUTH_SECRET,         AUTH_SECRET_EXPIRES_IN          (e.g. "15m")
  REFRESH  — AUTH_REFRESH_SECRET, AUTH_REFRESH_SECRET_EXPIRES_IN  (e.g. "24h")

Payload: sub (user_id as str), iat, exp, jti. Tokens are signed, not
encrypted. The client never parses them; it only carries them as cookies.

verify() collapses every failure (bad signature, corrupt structure, expiry,
missing or non-integer sub) into one AppError(UNAUTHORIZED, 401), so callers
cannot tell which check failed.
"""

from __future__ import annotations

import enum
import secrets
from datetime import datetime, timezone

import jwt

from authgate.app.errors import unauthorized
from authgate.app.settings import AuthSettings


class TokenClass(enum.Enum):
    ACCESS = "access"
    REFRESH = "refresh"


class TokenSigner:

    def __init__(self, settings: AuthSettings) -> None:
        self._settings = settings

    def _key_and_ttl(self, token_class: TokenClass):
        if token_class is TokenClass.ACCESS:
            return self._settings.access_secret, self._settings.access_ttl
        return self._settings.refresh_secret, self._settings.refresh_ttl

    def _issue(self, user_id: int, token_class: TokenClass) -> str:
        key, ttl = self._key_and_ttl(token_class)
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(user_id),
            "iat": now,
            "exp": now + ttl,
            # Guarantees each issued token is unique even if generated in the same second.
            "jti": secrets.token_hex(8),
        }
        return jwt.encode(payload, key, algorithm=self._settings.jwt_algorithm)

    def issue_access(self, user_id: int) -> str:
        return self._issue(user_id, TokenClass.ACCESS)

    def issue_refresh(self, user_id: int) -> str:
        return self._issue(user_id, TokenClass.REFRESH)

    def verify(self, token: str, token_class: TokenClass) -> int:
        """
        Returns the user id carried by a valid token of the given class.

        Raises:
          AppError(UNAUTHORIZED, 401) — on any failure.
        """
        key, _ = self._key_and_ttl(token_class)
        try:
            payload = jwt.decode(
                token,
                key,
                algorithms=[self._settings.jwt_algorithm],
                options={"require": ["exp", "sub"]},
            )
        except jwt.InvalidTokenError:
            # ExpiredSignatureError is a subclass; expiry is not reported separately.
            raise unauthorized()

        try:
            return int(payload["sub"])
        except (TypeError, ValueError):
            raise unauthorized()
