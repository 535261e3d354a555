"""
context.py — Explicit per-request context for the auth services.

Services never reach for module-level singletons or flask.g. Routes build an
AuthContext from the app's AuthRuntime plus the request's DB session and pass
it in; tests build one by hand with doubles.

Identity is what the auth decorators hand to a view after a token has been
verified (see middleware/auth_middleware.py).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable

from authgate.app.services.csrf_service import CsrfGuard
from authgate.app.services.mail_service import Mailer
from authgate.app.services.token_service import TokenSigner
from authgate.app.services.user_store import UserStore
from authgate.app.settings import AuthSettings


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class AuthRuntime:
    """Process-wide, immutable after create_app(). Stored in app.extensions."""

    settings: AuthSettings
    signer: TokenSigner
    csrf: CsrfGuard
    mailer: Mailer


@dataclass(frozen=True)
class AuthContext:
    store: UserStore
    mailer: Mailer
    settings: AuthSettings
    signer: TokenSigner
    clock: Callable[[], datetime] = field(default=utcnow)

    def now(self) -> datetime:
        return self.clock()


@dataclass(frozen=True)
class Identity:
    user_id: int
    token: str
