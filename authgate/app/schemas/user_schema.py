"""
schemas/user_schema.py — Response serialisation for the user profile.

Output-only, so it may use ma.Schema (needs an app context, which every
route has).
"""

from __future__ import annotations

from authgate.app.extensions import ma


class UserProfileSchema(ma.Schema):
    id = ma.Integer()
    username = ma.String()
    email = ma.Email()
    created_at = ma.DateTime()
    updated_at = ma.DateTime()
