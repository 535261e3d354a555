"""
routes/users.py — Current-user profile.

Endpoints (url_prefix=/api/user):
  GET  /api/user  → 200 (accessToken cookie required)
"""

from __future__ import annotations

from flask import Blueprint

from authgate.app.context import Identity
from authgate.app.middleware.auth_middleware import build_auth_context, require_access_token
from authgate.app.responses import success
from authgate.app.schemas.user_schema import UserProfileSchema
from authgate.app.services import auth_service

users_bp = Blueprint("users", __name__)


@users_bp.route("", methods=["GET"])
@require_access_token
def get_user(identity: Identity):
    """GET /user — Return the authenticated caller's profile."""
    profile = auth_service.get_current_user(build_auth_context(), user_id=identity.user_id)
    return success({"user": UserProfileSchema().dump(profile)})
