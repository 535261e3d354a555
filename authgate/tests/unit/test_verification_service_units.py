"""
Unit tests for verification_service: code generation, delivery ordering and
the check_code precedence.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from authgate.app.context import AuthContext
from authgate.app.errors import AppError, ErrorCode
from authgate.app.services import auth_service, verification_service
from authgate.app.services.mail_service import SendResult

NOW = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


def _ctx(store=None, mailer=None) -> AuthContext:
    settings = SimpleNamespace(verification_ttl=timedelta(minutes=15))
    if mailer is None:
        mailer = MagicMock()
        mailer.send_verification_email.return_value = SendResult(ok=True)
    return AuthContext(
        store=store or MagicMock(),
        mailer=mailer,
        settings=settings,
        signer=MagicMock(),
        clock=lambda: NOW,
    )


def _user(code=123456, expires_at=NOW + timedelta(minutes=5), verified=False):
    return SimpleNamespace(
        id=1,
        email="alice@example.com",
        email_verification=SimpleNamespace(
            code=code,
            expires_at=expires_at,
            verified=verified,
            verified_at=None,
        ),
    )


def _check(ctx, submitted):
    with pytest.raises(AppError) as exc_info:
        verification_service.check_code(ctx, "alice@example.com", submitted)
    return exc_info.value


# ── generate_numeric_code ──────────────────────────────────────────────────

def test_generated_codes_are_six_digits():
    for _ in range(2000):
        code = verification_service.generate_numeric_code()
        assert 100000 <= code <= 999999
        assert len(str(code)) == 6


def test_generator_bounds(monkeypatch):
    monkeypatch.setattr(verification_service.secrets, "randbelow", lambda n: 0)
    assert verification_service.generate_numeric_code() == 100000

    monkeypatch.setattr(verification_service.secrets, "randbelow", lambda n: n - 1)
    assert verification_service.generate_numeric_code() == 999999


def test_expiration_uses_context_clock():
    assert verification_service.expiration_from_now(_ctx()) == NOW + timedelta(minutes=15)


# ── issue / send ───────────────────────────────────────────────────────────

def test_issue_code_stores_only_after_delivery():
    store = MagicMock()
    ctx = _ctx(store=store)
    user = _user()

    verification_service.issue_code(ctx, user, 654321, NOW)

    ctx.mailer.send_verification_email.assert_called_once_with(code=654321, to=user.email)
    store.update_verification.assert_called_once_with(user, code=654321, expires_at=NOW)


def test_failed_delivery_stores_nothing():
    store = MagicMock()
    mailer = MagicMock()
    mailer.send_verification_email.return_value = SendResult(ok=False, error="down")
    ctx = _ctx(store=store, mailer=mailer)

    with pytest.raises(AppError) as exc_info:
        verification_service.send_code(ctx, _user())

    assert exc_info.value.code == ErrorCode.EMAIL_DELIVERY_FAILED
    assert exc_info.value.http_status == 502
    store.update_verification.assert_not_called()


# ── check_code precedence ──────────────────────────────────────────────────

def test_unknown_user_is_not_found():
    store = MagicMock()
    store.find_user_by_email.return_value = None

    err = _check(_ctx(store=store), 123456)
    assert err.code == ErrorCode.USER_NOT_FOUND
    assert err.http_status == 404


def test_verified_user_wins_over_wrong_code():
    store = MagicMock()
    store.find_user_by_email.return_value = _user(code=None, expires_at=None, verified=True)

    err = _check(_ctx(store=store), 999999)
    assert err.code == ErrorCode.EMAIL_ALREADY_VERIFIED
    assert err.http_status == 409


def test_wrong_code_is_invalid():
    store = MagicMock()
    store.find_user_by_email.return_value = _user()

    err = _check(_ctx(store=store), 111111)
    assert err.code == ErrorCode.INVALID_VERIFICATION_CODE
    assert err.http_status == 400
    store.update_verification.assert_not_called()


def test_wrong_and_expired_is_invalid():
    store = MagicMock()
    store.find_user_by_email.return_value = _user(expires_at=NOW - timedelta(minutes=1))

    err = _check(_ctx(store=store), 111111)
    assert err.code == ErrorCode.INVALID_VERIFICATION_CODE


def test_right_but_expired_is_expired():
    store = MagicMock()
    store.find_user_by_email.return_value = _user(expires_at=NOW - timedelta(minutes=1))

    err = _check(_ctx(store=store), 123456)
    assert err.code == ErrorCode.VERIFICATION_CODE_EXPIRED
    assert err.http_status == 400


def test_expiry_boundary_is_expired():
    store = MagicMock()
    store.find_user_by_email.return_value = _user(expires_at=NOW)

    err = _check(_ctx(store=store), 123456)
    assert err.code == ErrorCode.VERIFICATION_CODE_EXPIRED


def test_naive_expiry_is_treated_as_utc():
    store = MagicMock()
    naive = (NOW + timedelta(minutes=1)).replace(tzinfo=None)
    store.find_user_by_email.return_value = _user(expires_at=naive)

    verification_service.check_code(_ctx(store=store), "alice@example.com", 123456)
    store.update_verification.assert_called_once()


def test_missing_pending_code_is_invalid():
    store = MagicMock()
    store.find_user_by_email.return_value = _user(code=None, expires_at=None)

    err = _check(_ctx(store=store), 123456)
    assert err.code == ErrorCode.INVALID_VERIFICATION_CODE


def test_correct_code_marks_verified_and_clears_code():
    store = MagicMock()
    user = _user()
    store.find_user_by_email.return_value = user

    result = verification_service.check_code(_ctx(store=store), "alice@example.com", "123456")

    assert result is user
    store.update_verification.assert_called_once_with(
        user,
        verified=True,
        verified_at=NOW,
        code=None,
        expires_at=None,
    )


def test_not_found_and_already_verified_match_resend_errors():
    store = MagicMock()
    store.find_user_by_email.return_value = None
    ctx = _ctx(store=store)
    check_err = _check(ctx, 123456)
    with pytest.raises(AppError) as resend_err:
        auth_service.send_email_verification(ctx, "alice@example.com")
    assert check_err.to_dict() == resend_err.value.to_dict()

    store.find_user_by_email.return_value = _user(verified=True)
    check_err = _check(ctx, 123456)
    with pytest.raises(AppError) as resend_err:
        auth_service.send_email_verification(ctx, "alice@example.com")
    assert check_err.to_dict() == resend_err.value.to_dict()
    assert check_err.http_status == resend_err.value.http_status == 409
