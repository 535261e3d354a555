"""
models/email_verification.py — EmailVerification table definition.

One row per user (user_id is UNIQUE). No business logic.

State rules (enforced in services/verification_service.py):
  - Unverified: code/expires_at hold the most recently *delivered* code.
  - Verified:   verified = TRUE, verified_at set, code/expires_at NULL.
    A verified row never goes back to unverified.

FK policy: user_id ON DELETE CASCADE — the record is owned by the user.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, DateTime, ForeignKey, Integer
from sqlalchemy.orm import Mapped, mapped_column, relationship

from authgate.app.extensions import db


class EmailVerification(db.Model):
    __tablename__ = "email_verifications"

    __table_args__ = (
        CheckConstraint(
            "code IS NULL OR (code BETWEEN 100000 AND 999999)",
            name="ck_email_verifications_code_range",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )

    # Always within [100000, 999999] when set.
    code: Mapped[int | None] = mapped_column(
        Integer,
        nullable=True,
    )

    expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    verified: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default="false",
    )

    verified_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # ── Relationships ──────────────────────────────────────────────────────

    user: Mapped["User"] = relationship(  # noqa: F821
        "User",
        back_populates="email_verification",
    )

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<EmailVerification id={self.id} "
            f"user_id={self.user_id} "
            f"verified={self.verified}>"
        )
