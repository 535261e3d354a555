"""Initial schema — users and email_verifications.

Revision: 001_initial_schema
Created:  2026-10-19

Append-only:
  This file must NEVER be edited after it has been applied to any database.
  If a schema change is required, create a NEW migration file.

Creation order:
  1. users
  2. email_verifications (FK → users, ON DELETE CASCADE, one row per user)
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

# ── Alembic revision identifiers ──────────────────────────────────────────
revision: str = "001_initial_schema"
down_revision: str | None = None      # first migration: no parent
branch_labels: tuple | None = None
depends_on: tuple | None = None


def upgrade() -> None:

    # ── Step 1: users ──────────────────────────────────────────────────────
    # refresh_token holds the single currently valid refresh token (nullable).

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("username", sa.String(50), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("refresh_token", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.UniqueConstraint("email", name="uq_users_email"),
        sa.CheckConstraint(
            "LENGTH(TRIM(username)) > 0",
            name="ck_users_username_nonempty",
        ),
        sa.CheckConstraint(
            "email LIKE '%@%'",
            name="ck_users_email_format",
        ),
    )

    # ── Step 2: email_verifications ────────────────────────────────────────
    # FK: user_id ON DELETE CASCADE, UNIQUE: strictly 1:1 with users.

    op.create_table(
        "email_verifications",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey(
                "users.id",
                ondelete="CASCADE",
                name="fk_email_verifications_user",
            ),
            nullable=False,
        ),
        sa.Column("code", sa.Integer(), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "verified",
            sa.Boolean(),
            nullable=False,
            server_default=sa.false(),
        ),
        sa.Column("verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_email_verifications"),
        sa.UniqueConstraint("user_id", name="uq_email_verifications_user"),
        sa.CheckConstraint(
            "code IS NULL OR (code BETWEEN 100000 AND 999999)",
            name="ck_email_verifications_code_range",
        ),
    )


def downgrade() -> None:
    op.drop_table("email_verifications")
    op.drop_table("users")
