"""
settings.py — Immutable auth configuration.

AuthSettings is built exactly once per app, inside create_app(), from the
Flask config. Everything downstream (TokenSigner, verification service,
cookie helpers) receives it explicitly; nothing reads current_app.config for
secrets or durations at request time.

Duration strings are parsed here, so a malformed AUTH_*_EXPIRES_IN or
EMAIL_VERIFICATION_EXPIRATION raises DurationFormatError during startup
instead of failing on the first login.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Mapping

from authgate.app.utils.durations import milliseconds_from_duration


@dataclass(frozen=True)
class AuthSettings:
    access_secret: str
    access_ttl_ms: int
    refresh_secret: str
    refresh_ttl_ms: int
    verification_expires_in: str
    verification_ttl_ms: int
    csrf_secret: str
    bcrypt_rounds: int = 10
    jwt_algorithm: str = "HS256"
    cookie_secure: bool = False

    @classmethod
    def from_config(cls, config: Mapping) -> "AuthSettings":
        access_expires_in = config["AUTH_SECRET_EXPIRES_IN"]
        refresh_expires_in = config["AUTH_REFRESH_SECRET_EXPIRES_IN"]
        verification_expires_in = config["EMAIL_VERIFICATION_EXPIRATION"]
        return cls(
            access_secret=config["AUTH_SECRET"],
            access_ttl_ms=milliseconds_from_duration(access_expires_in),
            refresh_secret=config["AUTH_REFRESH_SECRET"],
            refresh_ttl_ms=milliseconds_from_duration(refresh_expires_in),
            verification_expires_in=verification_expires_in,
            verification_ttl_ms=milliseconds_from_duration(verification_expires_in),
            csrf_secret=config["CSRF_SECRET"],
            bcrypt_rounds=int(config.get("BCRYPT_LOG_ROUNDS", 10)),
            jwt_algorithm=config.get("JWT_ALGORITHM", "HS256"),
            cookie_secure=bool(config.get("COOKIE_SECURE", False)),
        )

    @property
    def access_ttl(self) -> timedelta:
        return timedelta(milliseconds=self.access_ttl_ms)

    @property
    def refresh_ttl(self) -> timedelta:
        return timedelta(milliseconds=self.refresh_ttl_ms)

    @property
    def verification_ttl(self) -> timedelta:
        return timedelta(milliseconds=self.verification_ttl_ms)
