"""
schemas/auth_schema.py — Marshmallow schemas for authentication endpoints.

Validation responsibility:
  - This file: field presence, types, lengths, formats, password confirmation.
  - services/auth_service.py: DUPLICATE_EMAIL, credential checks, code checks
    (these require a DB lookup — not a schema concern).

Errors surface per field as a 422 {"ok": false, "message": "Validation error",
"errors": {field: [messages]}} via the global handler in app/__init__.py.

IMPORTANT: All schemas inherit from marshmallow.Schema directly.
           Do NOT use ma.Schema — it requires an active Flask app context
           and breaks unit tests. See extensions.py.
"""

from __future__ import annotations

from marshmallow import Schema, ValidationError, fields, validate, validates, validates_schema

# bcrypt only looks at the first 72 bytes of a password.
PASSWORD_MAX_BYTES = 72


def _check_password_bytes(value: str) -> None:
    if len(value.encode("utf-8")) > PASSWORD_MAX_BYTES:
        raise ValidationError(
            f"Password must be at most {PASSWORD_MAX_BYTES} bytes long."
        )


class RegisterSchema(Schema):
    """
    POST /auth/register

    Field rules:
      username              : 3–50 chars
      email                 : valid email format, max 255
      password              : 1–72 bytes
      password_confirmation : must equal password
    """

    username = fields.Str(
        required=True,
        validate=validate.Length(
            min=3,
            max=50,
            error="Username must be between 3 and 50 characters.",
        ),
    )

    email = fields.Email(
        required=True,
        validate=validate.Length(max=255),
    )

    password = fields.Str(
        required=True,
        load_only=True,
        validate=validate.Length(min=1, error="Password is required."),
    )

    password_confirmation = fields.Str(required=True, load_only=True)

    @validates("password")
    def validate_password_length(self, value: str, **kwargs) -> None:
        _check_password_bytes(value)

    @validates_schema
    def validate_confirmation(self, data: dict, **kwargs) -> None:
        if data.get("password") != data.get("password_confirmation"):
            raise ValidationError(
                "Passwords do not match.",
                field_name="password_confirmation",
            )


class LoginSchema(Schema):
    """
    POST /auth/login

    Credential correctness is checked in auth_service.py
    (INVALID_CREDENTIALS, 401).
    """

    email = fields.Email(required=True)
    password = fields.Str(required=True, load_only=True)

    @validates("password")
    def validate_password_length(self, value: str, **kwargs) -> None:
        _check_password_bytes(value)


class VerifyEmailSchema(Schema):
    """
    POST /auth/verify-email

    code is accepted as a number or a numeric string. Whether it matches the
    pending code is the service's call (INVALID_VERIFICATION_CODE, 400).
    """

    email = fields.Email(required=True)
    code = fields.Integer(required=True)


class SendEmailVerificationSchema(Schema):
    """POST /auth/send-email-verification"""

    email = fields.Email(required=True)
