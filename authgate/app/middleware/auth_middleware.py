"""
middleware/auth_middleware.py — Cookie-based token authentication decorators.

  @require_access_token   — accessToken cookie must verify against AUTH_SECRET
  @require_refresh_token  — refreshToken cookie must verify against
                            AUTH_REFRESH_SECRET
  @optional_access_token  — like @require_access_token, but a missing or bad
                            cookie yields identity=None instead of a 401

Each decorator passes the result to the view as the `identity` keyword
argument (an Identity, or None for the optional variant). Nothing is attached
to flask.request or flask.g.

Strict responsibility boundary:
  - Middleware = authentication (401). It proves the token is genuine.
  - Whether a refresh token is still the *current* one is a service concern
    (auth_service.refresh_access_token), not checked here.

All failures (missing cookie, bad signature, expired, malformed) raise the
same AppError(UNAUTHORIZED, 401).
"""

from __future__ import annotations

import functools
from typing import Callable

from flask import current_app, request

from authgate.app.context import AuthContext, AuthRuntime, Identity
from authgate.app.errors import AppError, unauthorized
from authgate.app.extensions import AUTH_EXTENSION_KEY, db
from authgate.app.services.token_service import TokenClass
from authgate.app.services.user_store import UserStore

ACCESS_COOKIE_NAME = "accessToken"
REFRESH_COOKIE_NAME = "refreshToken"


def get_runtime() -> AuthRuntime:
    return current_app.extensions[AUTH_EXTENSION_KEY]


def _authenticate(cookie_name: str, token_class: TokenClass) -> Identity:
    """
    Verifies the token held in `cookie_name`.

    Separated from the decorators for testability — can be called directly
    inside a test request context.
    """
    token = request.cookies.get(cookie_name)
    if not token:
        raise unauthorized()

    user_id = get_runtime().signer.verify(token, token_class)
    return Identity(user_id=user_id, token=token)


def require_access_token(f: Callable) -> Callable:
    """
    Usage:
        @users_bp.route("", methods=["GET"])
        @require_access_token
        def me(identity: Identity):
            ...
    """
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        kwargs["identity"] = _authenticate(ACCESS_COOKIE_NAME, TokenClass.ACCESS)
        return f(*args, **kwargs)

    return decorated


def require_refresh_token(f: Callable) -> Callable:
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        kwargs["identity"] = _authenticate(REFRESH_COOKIE_NAME, TokenClass.REFRESH)
        return f(*args, **kwargs)

    return decorated


def optional_access_token(f: Callable) -> Callable:
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        try:
            identity = _authenticate(ACCESS_COOKIE_NAME, TokenClass.ACCESS)
        except AppError:
            identity = None
        kwargs["identity"] = identity
        return f(*args, **kwargs)

    return decorated


def build_auth_context() -> AuthContext:
    """AuthContext for the current request: shared runtime + this request's session."""
    runtime = get_runtime()
    return AuthContext(
        store=UserStore(db.session),
        mailer=runtime.mailer,
        settings=runtime.settings,
        signer=runtime.signer,
    )
