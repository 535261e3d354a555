"""
services/user_store.py — Credential store adapter.

Translates the auth services' domain calls into SQLAlchemy operations on the
request's session. No business logic lives here.

Transaction boundary: the store only add()s and flush()es. Routes commit after
the service function returns; the global error handler rolls back on any
error, so a failing operation leaves nothing behind.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload

from authgate.app.models.email_verification import EmailVerification
from authgate.app.models.user import User


class UserStore:

    def __init__(self, session: Session) -> None:
        self.session = session

    def find_user_by_email(self, email: str) -> User | None:
        """Looks up a user with their EmailVerification row loaded."""
        return self.session.execute(
            select(User)
            .options(joinedload(User.email_verification))
            .where(User.email == email)
        ).scalar_one_or_none()

    def find_user_by_id(self, user_id: int) -> User | None:
        return self.session.get(
            User,
            user_id,
            options=[joinedload(User.email_verification)],
        )

    def email_exists(self, email: str) -> bool:
        return self.session.execute(
            select(User.id).where(User.email == email)
        ).first() is not None

    def create_user(
            self,
            *,
            email: str,
            username: str,
            password_hash: str,
            code: int | None = None,
            expires_at=None,
    ) -> User:
        """Creates a user and its unverified EmailVerification row together."""
        user = User(
            email=email,
            username=username,
            password_hash=password_hash,
        )
        user.email_verification = EmailVerification(
            code=code,
            expires_at=expires_at,
            verified=False,
        )
        self.session.add(user)
        # flush so user.id exists before we return; commit is the route's job
        self.session.flush()
        return user

    def update_user(self, user: User, **fields) -> User:
        for name, value in fields.items():
            setattr(user, name, value)
        self.session.flush()
        return user

    def update_verification(self, user: User, **fields) -> EmailVerification:
        """Updates the user's EmailVerification row, creating it on first use."""
        record = user.email_verification
        if record is None:
            record = EmailVerification(verified=False)
            user.email_verification = record
        for name, value in fields.items():
            setattr(record, name, value)
        self.session.flush()
        return record
