"""
middleware/csrf_middleware.py — App-wide double-submit CSRF check.

Installed as a before_request hook, so for every unsafe method (anything but
GET/HEAD/OPTIONS) the check runs before the view, before schema validation,
and before any store lookup or mail send. A rejected request never reaches
the auth services.
"""

from __future__ import annotations

from flask import Flask, current_app, request

from authgate.app.extensions import AUTH_EXTENSION_KEY
from authgate.app.services.csrf_service import CSRF_COOKIE_NAME, CSRF_HEADER_NAME


def register_csrf_protection(app: Flask) -> None:

    @app.before_request
    def enforce_csrf():
        """Raises AppError(CSRF_INVALID, 401); the global handler renders it."""
        guard = current_app.extensions[AUTH_EXTENSION_KEY].csrf
        guard.validate(
            request.method,
            request.cookies.get(CSRF_COOKIE_NAME),
            request.headers.get(CSRF_HEADER_NAME),
        )
