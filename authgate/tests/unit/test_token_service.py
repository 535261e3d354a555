"""
Unit tests for TokenSigner (issue / verify for both token classes).
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from authgate.app.errors import AppError, ErrorCode
from authgate.app.services.token_service import TokenClass, TokenSigner
from authgate.app.settings import AuthSettings


@pytest.fixture
def settings():
    return AuthSettings(
        access_secret="access-secret-for-tests-000000000",
        access_ttl_ms=15 * 60 * 1000,
        refresh_secret="refresh-secret-for-tests-00000000",
        refresh_ttl_ms=24 * 60 * 60 * 1000,
        verification_expires_in="15m",
        verification_ttl_ms=15 * 60 * 1000,
        csrf_secret="csrf",
        bcrypt_rounds=4,
    )


@pytest.fixture
def signer(settings):
    return TokenSigner(settings)


def _assert_unauthorized(exc_info):
    err = exc_info.value
    assert err.code == ErrorCode.UNAUTHORIZED
    assert err.http_status == 401


def test_access_token_round_trip(signer):
    token = signer.issue_access(42)
    assert signer.verify(token, TokenClass.ACCESS) == 42


def test_refresh_token_round_trip(signer):
    token = signer.issue_refresh(42)
    assert signer.verify(token, TokenClass.REFRESH) == 42


def test_payload_shape_and_lifetime(signer, settings):
    token = signer.issue_access(7)
    payload = jwt.decode(token, settings.access_secret, algorithms=["HS256"])

    assert payload["sub"] == "7"
    assert payload["exp"] - payload["iat"] == 15 * 60
    assert payload["jti"]


def test_tokens_issued_back_to_back_differ(signer):
    assert signer.issue_refresh(1) != signer.issue_refresh(1)


def test_access_token_rejected_as_refresh(signer):
    token = signer.issue_access(1)
    with pytest.raises(AppError) as exc_info:
        signer.verify(token, TokenClass.REFRESH)
    _assert_unauthorized(exc_info)


def test_refresh_token_rejected_as_access(signer):
    token = signer.issue_refresh(1)
    with pytest.raises(AppError) as exc_info:
        signer.verify(token, TokenClass.ACCESS)
    _assert_unauthorized(exc_info)


def test_expired_token_rejected(signer, settings):
    past = datetime.now(timezone.utc) - timedelta(hours=1)
    token = jwt.encode(
        {"sub": "1", "iat": past, "exp": past + timedelta(minutes=15)},
        settings.access_secret,
        algorithm="HS256",
    )
    with pytest.raises(AppError) as exc_info:
        signer.verify(token, TokenClass.ACCESS)
    _assert_unauthorized(exc_info)


def test_tampered_token_rejected(signer):
    token = signer.issue_access(1)
    header, payload, signature = token.split(".")
    tampered = ".".join([header, payload, signature[::-1]])

    with pytest.raises(AppError) as exc_info:
        signer.verify(tampered, TokenClass.ACCESS)
    _assert_unauthorized(exc_info)


@pytest.mark.parametrize("garbage", ["", "abc", "a.b.c"])
def test_garbage_rejected(signer, garbage):
    with pytest.raises(AppError) as exc_info:
        signer.verify(garbage, TokenClass.ACCESS)
    _assert_unauthorized(exc_info)


def test_non_integer_subject_rejected(signer, settings):
    now = datetime.now(timezone.utc)
    token = jwt.encode(
        {"sub": "alice", "iat": now, "exp": now + timedelta(minutes=5)},
        settings.access_secret,
        algorithm="HS256",
    )
    with pytest.raises(AppError) as exc_info:
        signer.verify(token, TokenClass.ACCESS)
    _assert_unauthorized(exc_info)


def test_missing_exp_rejected(signer, settings):
    token = jwt.encode({"sub": "1"}, settings.access_secret, algorithm="HS256")
    with pytest.raises(AppError):
        signer.verify(token, TokenClass.ACCESS)
