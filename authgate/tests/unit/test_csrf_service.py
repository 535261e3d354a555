"""
Unit tests for the double-submit CSRF guard.
"""

from __future__ import annotations

import hashlib
import hmac
import re

import pytest

from authgate.app.errors import AppError, ErrorCode
from authgate.app.services.csrf_service import CsrfGuard, HmacCsrfDeriver

KEY = "csrf-key-for-tests"


@pytest.fixture
def guard():
    return CsrfGuard(HmacCsrfDeriver(KEY))


def test_issue_returns_new_hex_secret_and_hmac_token(guard):
    secret, token, is_new = guard.issue(None)

    assert is_new is True
    assert re.fullmatch(r"[0-9a-f]{64}", secret)
    expected = hmac.new(KEY.encode(), secret.encode(), hashlib.sha256).hexdigest()
    assert token == expected


def test_issue_reuses_well_formed_secret(guard):
    secret, token, _ = guard.issue(None)

    again_secret, again_token, is_new = guard.issue(secret)

    assert is_new is False
    assert again_secret == secret
    assert again_token == token


@pytest.mark.parametrize("existing", ["", "short", "Z" * 64, "a" * 63])
def test_issue_replaces_malformed_secret(guard, existing):
    secret, _, is_new = guard.issue(existing)
    assert is_new is True
    assert secret != existing


@pytest.mark.parametrize("method", ["GET", "HEAD", "OPTIONS", "get"])
def test_safe_methods_skip_validation(guard, method):
    guard.validate(method, None, None)


def test_matching_pair_passes(guard):
    secret, token, _ = guard.issue(None)
    guard.validate("POST", secret, token)


@pytest.mark.parametrize(
    "secret, presented",
    [
        (None, None),
        ("", ""),
        (None, "token"),
        ("secret", None),
        ("secret", "0" * 64),
        ("a" * 64, "\u00e9" * 64),
        ("a" * 64, "\u2603"),
    ],
)
def test_bad_pairs_rejected(guard, secret, presented):
    with pytest.raises(AppError) as exc_info:
        guard.validate("POST", secret, presented)

    err = exc_info.value
    assert err.code == ErrorCode.CSRF_INVALID
    assert err.http_status == 401


def test_token_for_other_secret_rejected(guard):
    secret_a, _, _ = guard.issue(None)
    _, token_b, _ = guard.issue(None)

    with pytest.raises(AppError):
        guard.validate("DELETE", secret_a, token_b)


def test_different_key_derives_different_token():
    secret = "a" * 64
    assert HmacCsrfDeriver("one").derive(secret) != HmacCsrfDeriver("two").derive(secret)
