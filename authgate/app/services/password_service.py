"""
services/password_service.py — bcrypt password hashing.

  - hash_password(): salted bcrypt hash, cost factor from AuthSettings
    (BCRYPT_LOG_ROUNDS, default 10).
  - verify_password(): bcrypt.checkpw, constant-time inside bcrypt.
  - verify_against_dummy(): burns one bcrypt check when the email is unknown so
    "no such user" costs the same as "wrong password".

Errors from bcrypt (e.g. a password longer than 72 bytes slipping past the
schema) propagate to the caller and end up as 500 INTERNAL_ERROR. They are
never reported as INVALID_CREDENTIALS.

Raw passwords are never stored and never logged.
"""

from __future__ import annotations

import functools

import bcrypt


def hash_password(plain: str, rounds: int) -> str:
    return bcrypt.hashpw(
        plain.encode("utf-8"),
        bcrypt.gensalt(rounds=rounds),
    ).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))


@functools.lru_cache(maxsize=None)
def _dummy_hash(rounds: int) -> str:
    return hash_password("authgate-timing-dummy", rounds)


def verify_against_dummy(plain: str, rounds: int) -> bool:
    """Always False; takes as long as a real verify at the same cost factor."""
    verify_password(plain, _dummy_hash(rounds))
    return False
