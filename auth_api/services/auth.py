# auth_api/services/auth.py
"""Account lifecycle: register -> verify -> login -> refresh -> logout, plus
password recovery and change.

Every public method runs as one unit of work on the given session: it
flushes as it goes and commits once at the end. Notifications go out after
the commit and never change the outcome of the operation.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Dict, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from auth_api.core.clock import SystemClock
from auth_api.core.errors import (
    AlreadyVerifiedError,
    BadRequestError,
    ConflictError,
    ExpiredError,
    NotFoundError,
    UnauthenticatedError,
    UnverifiedEmailError,
)
from auth_api.core.security import PasswordHasher
from auth_api.core.tokens import ACCESS_TOKEN_TYPE, TokenCodec, build_claims
from auth_api.crud.user import CRUDUser
from auth_api.models.role import ROLE_USER
from auth_api.models.user import User
from auth_api.schemas.auth import SocialProfile, TokenOut
from auth_api.services.ephemeral_tokens import EphemeralTokenIssuer
from auth_api.services.notifier import Notifier
from auth_api.services.refresh_tokens import RefreshTokenStore

logger = logging.getLogger(__name__)

MSG_VERIFICATION_SENT = "If the account exists and is not verified, a verification email has been sent."
MSG_EMAIL_VERIFIED = "Email verified successfully."
MSG_RESET_SENT = "If an account exists for this email, a password reset link has been sent."
MSG_PASSWORD_RESET = "Password has been reset successfully."
MSG_PASSWORD_CHANGED = "Password changed successfully."
MSG_LOGGED_OUT = "Logged out successfully."
MSG_LOGGED_OUT_ALL = "Logged out from all sessions."


@dataclass
class CleanupResult:
    refresh_tokens: int
    reset_tokens: int


class AuthService:
    def __init__(
        self,
        *,
        users: CRUDUser,
        hasher: PasswordHasher,
        codec: TokenCodec,
        refresh_tokens: RefreshTokenStore,
        ephemeral: EphemeralTokenIssuer,
        notifier: Notifier,
        access_ttl: timedelta,
        rotate_refresh_tokens: bool = False,
        clock=None,
    ):
        self.users = users
        self.hasher = hasher
        self.codec = codec
        self.refresh_tokens = refresh_tokens
        self.ephemeral = ephemeral
        self.notifier = notifier
        self.access_ttl = access_ttl
        self.rotate_refresh_tokens = rotate_refresh_tokens
        self.clock = clock or SystemClock()

    # ------------------------------------------------------------------ #
    # helpers
    # ------------------------------------------------------------------ #
    def _notify(self, send, *args) -> None:
        try:
            send(*args)
        except Exception:
            logger.exception("Notification %s failed", getattr(send, "__name__", send))

    def _access_token(self, claims: Dict) -> str:
        return self.codec.sign({**claims, "type": ACCESS_TOKEN_TYPE}, self.access_ttl)

    def _start_session(self, db: Session, user: User) -> TokenOut:
        user.last_login_at = self.clock.now()
        refresh = self.refresh_tokens.issue(db, user.id)
        db.commit()
        logger.info("User %s logged in", user.id)
        return TokenOut(
            access_token=self._access_token(build_claims(user)),
            refresh_token=refresh,
            expires_in=int(self.access_ttl.total_seconds()),
        )

    def _set_password(self, db: Session, user: User, new_password: str) -> None:
        user.password_hash = self.hasher.hash(new_password)
        db.flush()
        self.refresh_tokens.revoke_all_for_user(db, user.id)

    # ------------------------------------------------------------------ #
    # registration & verification
    # ------------------------------------------------------------------ #
    def register(
        self,
        db: Session,
        email: str,
        password: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
    ) -> User:
        if self.users.get_by_email(db, email):
            raise ConflictError()
        try:
            user = self.users.create(db, {
                "email": email,
                "password_hash": self.hasher.hash(password),
                "first_name": first_name,
                "last_name": last_name,
                "roles": [ROLE_USER],
                "is_email_verified": False,
            })
            token = self.ephemeral.issue_verification_token(user)
            db.commit()
        except IntegrityError as exc:
            # lost a race against a concurrent registration
            db.rollback()
            raise ConflictError() from exc
        logger.info("Registered user %s", user.id)
        self._notify(self.notifier.send_verification, user.email, token, user.display_name)
        return user

    def verify_email(self, db: Session, token: str) -> str:
        user = self.ephemeral.consume_verification_token(db, token)
        db.commit()
        logger.info("User %s verified email", user.id)
        self._notify(self.notifier.send_welcome, user.email, user.display_name)
        return MSG_EMAIL_VERIFIED

    def resend_verification(self, db: Session, email: str) -> str:
        user = self.users.get_by_email(db, email)
        if user is None:
            return MSG_VERIFICATION_SENT
        if user.is_email_verified:
            raise AlreadyVerifiedError()
        token = self.ephemeral.issue_verification_token(user)
        db.commit()
        self._notify(self.notifier.send_verification, user.email, token, user.display_name)
        return MSG_VERIFICATION_SENT

    # ------------------------------------------------------------------ #
    # sessions
    # ------------------------------------------------------------------ #
    def login(self, db: Session, email: str, password: str) -> TokenOut:
        user = self.users.get_by_email(db, email)
        if user is None:
            self.hasher.dummy_verify()
            logger.warning("Failed login for unknown email")
            raise UnauthenticatedError()

        ok, new_hash = self.hasher.verify_and_update(password, user.password_hash)
        if not ok:
            logger.warning("Failed login for user %s", user.id)
            raise UnauthenticatedError()
        if not user.is_active:
            raise UnauthenticatedError("Account is disabled.")
        if not user.is_email_verified:
            raise UnverifiedEmailError()

        if new_hash:
            user.password_hash = new_hash
        return self._start_session(db, user)

    def login_social(self, db: Session, profile: SocialProfile) -> TokenOut:
        user = self.users.get_by_email(db, profile.email)
        if user is None:
            user = self.users.create(db, {
                "email": profile.email,
                "password_hash": None,
                "first_name": profile.first_name,
                "last_name": profile.last_name,
                "roles": [ROLE_USER],
                "is_email_verified": True,
                "auth_provider": profile.provider,
                "provider_id": profile.provider_id,
            })
            logger.info("Created user %s from %s sign-in", user.id, profile.provider)
        elif not user.is_email_verified:
            # the provider vouches for the address
            user.is_email_verified = True
            user.email_verification_token = None
            user.email_verification_expires_at = None

        if not user.is_active:
            raise UnauthenticatedError("Account is disabled.")
        return self._start_session(db, user)

    def refresh(self, db: Session, refresh_token: str) -> TokenOut:
        try:
            user_id, claims = self.refresh_tokens.redeem(db, refresh_token)
        except (NotFoundError, ExpiredError) as exc:
            raise UnauthenticatedError("Invalid or expired refresh token.") from exc

        user = self.users.get(db, user_id)
        if user is None or not user.is_active:
            raise UnauthenticatedError("Invalid or expired refresh token.")

        new_refresh = None
        if self.rotate_refresh_tokens:
            self.refresh_tokens.revoke(db, refresh_token)
            new_refresh = self.refresh_tokens.issue(db, user_id)
            db.commit()

        return TokenOut(
            access_token=self._access_token(claims),
            refresh_token=new_refresh,
            expires_in=int(self.access_ttl.total_seconds()),
        )

    def logout(self, db: Session, refresh_token: str) -> str:
        self.refresh_tokens.revoke(db, refresh_token)
        db.commit()
        return MSG_LOGGED_OUT

    def logout_all(self, db: Session, user_id: int) -> str:
        self.refresh_tokens.revoke_all_for_user(db, user_id)
        db.commit()
        return MSG_LOGGED_OUT_ALL

    def get_profile(self, db: Session, user_id: int) -> User:
        user = self.users.get(db, user_id)
        if user is None:
            raise NotFoundError("User profile not found.")
        return user

    # ------------------------------------------------------------------ #
    # passwords
    # ------------------------------------------------------------------ #
    def forgot_password(self, db: Session, email: str) -> str:
        user = self.users.get_by_email(db, email)
        if user is None:
            logger.info("Password reset requested for unknown email")
            return MSG_RESET_SENT
        token = self.ephemeral.issue_reset_token(user)
        db.commit()
        self._notify(self.notifier.send_password_reset, user.email, token, user.display_name)
        return MSG_RESET_SENT

    def reset_password(self, db: Session, token: str, new_password: str) -> str:
        user = self.ephemeral.consume_reset_token(db, token)
        self._set_password(db, user, new_password)
        db.commit()
        logger.info("User %s reset password", user.id)
        self._notify(self.notifier.send_password_changed, user.email, user.display_name)
        return MSG_PASSWORD_RESET

    def change_password(self, db: Session, user_id: int, current_password: str, new_password: str) -> str:
        user = self.get_profile(db, user_id)
        if not self.hasher.verify(current_password, user.password_hash):
            raise BadRequestError("Current password is incorrect.")
        self._set_password(db, user, new_password)
        db.commit()
        logger.info("User %s changed password", user.id)
        self._notify(self.notifier.send_password_changed, user.email, user.display_name)
        return MSG_PASSWORD_CHANGED

    # ------------------------------------------------------------------ #
    # maintenance
    # ------------------------------------------------------------------ #
    def cleanup(self, db: Session) -> CleanupResult:
        result = CleanupResult(
            refresh_tokens=self.refresh_tokens.sweep_expired(db),
            reset_tokens=self.ephemeral.clear_expired_reset_tokens(db),
        )
        db.commit()
        logger.info(
            "Cleanup removed %s refresh token(s), cleared %s reset token(s)",
            result.refresh_tokens, result.reset_tokens,
        )
        return result
