# auth_api/services/ephemeral_tokens.py
from __future__ import annotations

import secrets
from datetime import timedelta
from typing import Optional

from sqlalchemy import or_, update
from sqlalchemy.orm import Session

from auth_api.core.clock import SystemClock
from auth_api.core.errors import InvalidTokenError
from auth_api.crud.user import user_crud
from auth_api.models.user import User

TOKEN_BYTES = 32


class EphemeralTokenIssuer:
    """Single-use email verification and password reset tokens, kept on the
    user row. Issuing replaces any previous token of the same kind."""

    def __init__(self, reset_ttl: timedelta, verification_ttl: Optional[timedelta] = None, clock=None):
        self.reset_ttl = reset_ttl
        self.verification_ttl = verification_ttl
        self.clock = clock or SystemClock()

    def issue_verification_token(self, user: User) -> str:
        token = secrets.token_hex(TOKEN_BYTES)
        user.email_verification_token = token
        user.email_verification_expires_at = (
            self.clock.now() + self.verification_ttl if self.verification_ttl else None
        )
        return token

    def issue_reset_token(self, user: User) -> str:
        token = secrets.token_hex(TOKEN_BYTES)
        user.password_reset_token = token
        user.password_reset_expires_at = self.clock.now() + self.reset_ttl
        return token

    def consume_verification_token(self, db: Session, token: str) -> User:
        now = self.clock.now()
        user = user_crud.get_by_verification_token(db, token) if token else None
        if user is None:
            raise InvalidTokenError("Invalid or expired verification token.")
        # conditional update: of two concurrent consumers only one matches the row
        result = db.execute(
            update(User)
            .where(
                User.id == user.id,
                User.email_verification_token == token,
                or_(User.email_verification_expires_at.is_(None), User.email_verification_expires_at > now),
            )
            .values(is_email_verified=True, email_verification_token=None, email_verification_expires_at=None),
            execution_options={"synchronize_session": "fetch"},
        )
        if result.rowcount != 1:
            raise InvalidTokenError("Invalid or expired verification token.")
        return user

    def consume_reset_token(self, db: Session, token: str) -> User:
        # wrong, expired and already used tokens fail the same way
        now = self.clock.now()
        user = user_crud.get_by_reset_token(db, token, now) if token else None
        if user is None:
            raise InvalidTokenError("Invalid or expired reset token.")
        result = db.execute(
            update(User)
            .where(
                User.id == user.id,
                User.password_reset_token == token,
                User.password_reset_expires_at > now,
            )
            .values(password_reset_token=None, password_reset_expires_at=None),
            execution_options={"synchronize_session": "fetch"},
        )
        if result.rowcount != 1:
            raise InvalidTokenError("Invalid or expired reset token.")
        return user

    def clear_expired_reset_tokens(self, db: Session) -> int:
        result = db.execute(
            update(User)
            .where(User.password_reset_token.is_not(None), User.password_reset_expires_at <= self.clock.now())
            .values(password_reset_token=None, password_reset_expires_at=None),
            execution_options={"synchronize_session": "fetch"},
        )
        return result.rowcount
