"""
models/user.py — User table definition.

No business logic. No imports from services or routes.

refresh_token mirrors the single refresh token currently valid for the user.
Overwriting it (next login) invalidates every earlier refresh token; setting
it to NULL (logout) invalidates all of them.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from authgate.app.extensions import db


class User(db.Model):
    __tablename__ = "users"

    __table_args__ = (
        CheckConstraint(
            "LENGTH(TRIM(username)) > 0",
            name="ck_users_username_nonempty",
        ),
        # Also enforced by the marshmallow Email field.
        CheckConstraint(
            "email LIKE '%@%'",
            name="ck_users_email_format",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
    )

    username: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )

    password_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    refresh_token: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    # ── Relationships ──────────────────────────────────────────────────────

    email_verification: Mapped["EmailVerification"] = relationship(  # noqa: F821
        "EmailVerification",
        back_populates="user",
        uselist=False,
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:  # pragma: no cover
        return f"<User id={self.id} email={self.email!r}>"
