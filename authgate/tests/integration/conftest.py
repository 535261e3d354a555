"""
tests/integration/conftest.py — Fixtures and helpers for all integration tests.

Design:
  - The app is created once per session using create_app("testing", mailer=...)
    on an in-memory SQLite database (TEST_DATABASE_URL overrides it).
  - All tables are created once via db.create_all() at session start.
  - Between tests, all rows are deleted and the recording mailer is reset, so
    tests are isolated.
  - Mail never leaves the process: RecordingMailer stores every send and can
    be switched into failure mode with `mailer.fail = True`.

Helper functions (not fixtures) are provided for common operations:
  - csrf_headers(client)            → {"X-CSRF-Token": "..."} (sets the cookie)
  - register(client, ...)           → HTTP response
  - register_verified(client, ...)  → user dict, email already verified
  - login(client, ...)              → HTTP response
  - set_cookies / cookie_value      → read/write the test client's cookie jar

These are plain functions (not pytest fixtures) so they can be called with
arbitrary arguments in any test without fixture parameterization overhead.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import pytest
from sqlalchemy import text

from authgate.app import create_app
from authgate.app.extensions import db as _db
from authgate.app.services.mail_service import SendResult


# ═══════════════════════════════════════════════════════════════════════════
# Mail double
# ═══════════════════════════════════════════════════════════════════════════

@dataclass
class SentCode:
    code: int
    to: str


@dataclass
class RecordingMailer:
    fail: bool = False
    sent: list[SentCode] = field(default_factory=list)
    attempts: int = 0

    def send_verification_email(self, code: int, to: str) -> SendResult:
        self.attempts += 1
        if self.fail:
            return SendResult(ok=False, error="simulated delivery failure")
        self.sent.append(SentCode(code=code, to=to))
        return SendResult(ok=True)

    def last_code_for(self, email: str) -> int:
        for message in reversed(self.sent):
            if message.to == email:
                return message.code
        raise AssertionError(f"no verification email was sent to {email}")

    def reset(self) -> None:
        self.fail = False
        self.sent.clear()
        self.attempts = 0


# ═══════════════════════════════════════════════════════════════════════════
# Session-scoped app fixture
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture(scope="session")
def mailer():
    return RecordingMailer()


@pytest.fixture(scope="session")
def app(mailer):
    """
    Creates the Flask application in 'testing' mode once for the entire test session.
    """
    flask_app = create_app("testing", mailer=mailer)

    with flask_app.app_context():
        _db.create_all()

    yield flask_app

    with flask_app.app_context():
        _db.drop_all()


# ═══════════════════════════════════════════════════════════════════════════
# Function-scoped test isolation
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture(autouse=True)
def clean_tables(app, mailer):
    """
    Deletes all rows between tests (child table first) and resets the mailer.
    """
    mailer.reset()

    yield  # run the test

    mailer.reset()
    with app.app_context():
        _db.session.rollback()  # discard any uncommitted state from a failed test
        _db.session.execute(text("DELETE FROM email_verifications"))
        _db.session.execute(text("DELETE FROM users"))
        _db.session.commit()


@pytest.fixture
def client(app):
    """Flask test client. Each test gets a fresh client (and cookie jar)."""
    return app.test_client()


# ═══════════════════════════════════════════════════════════════════════════
# Shared helper functions (not fixtures)
# ═══════════════════════════════════════════════════════════════════════════

def cookie_value(client, name: str) -> str | None:
    cookie = client.get_cookie(name)
    return cookie.value if cookie is not None else None


def set_cookies(client, **cookies: str) -> None:
    for name, value in cookies.items():
        client.set_cookie(name, value)


def set_cookie_headers(resp) -> dict[str, str]:
    """Maps cookie name → raw Set-Cookie header for one response."""
    headers = {}
    for raw in resp.headers.getlist("Set-Cookie"):
        name = raw.split("=", 1)[0]
        headers[name] = raw
    return headers


def csrf_headers(client) -> dict:
    """
    Fetches a CSRF token (the secret cookie lands in the client's jar) and
    returns the header dict to echo it.
    """
    resp = client.get("/api/auth/get-csrf")
    assert resp.status_code == 200, f"get-csrf failed: {resp.get_json()}"
    return {"X-CSRF-Token": resp.get_json()["data"]["csrf"]}


def register(
    client,
    username: str = "alice",
    email: str | None = None,
    password: str = "Password1",
    password_confirmation: str | None = None,
):
    if email is None:
        email = f"{username}@test.com"
    if password_confirmation is None:
        password_confirmation = password
    return client.post(
        "/api/auth/register",
        json={
            "username": username,
            "email": email,
            "password": password,
            "password_confirmation": password_confirmation,
        },
        headers=csrf_headers(client),
    )


def verify(client, email: str, code):
    return client.post(
        "/api/auth/verify-email",
        json={"email": email, "code": code},
        headers=csrf_headers(client),
    )


def register_verified(
    client,
    mailer: RecordingMailer,
    username: str = "alice",
    email: str | None = None,
    password: str = "Password1",
) -> dict:
    """Registers a user and confirms the emailed code. Returns the user dict."""
    if email is None:
        email = f"{username}@test.com"
    resp = register(client, username=username, email=email, password=password)
    assert resp.status_code == 201, f"register failed: {resp.get_json()}"
    resp = verify(client, email, mailer.last_code_for(email))
    assert resp.status_code == 200, f"verify failed: {resp.get_json()}"
    return resp.get_json()["data"]


def login(client, email: str, password: str = "Password1"):
    return client.post(
        "/api/auth/login",
        json={"email": email, "password": password},
        headers=csrf_headers(client),
    )
