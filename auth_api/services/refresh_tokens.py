# auth_api/services/refresh_tokens.py
from __future__ import annotations

import logging
import secrets
from datetime import timedelta
from typing import Any, Dict, Tuple

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from auth_api.core.clock import SystemClock, as_utc
from auth_api.core.errors import ExpiredError, NotFoundError
from auth_api.core.tokens import build_claims
from auth_api.models.refresh_token import RefreshToken

logger = logging.getLogger(__name__)

TOKEN_BYTES = 40


class RefreshTokenStore:
    """Opaque, long-lived refresh tokens persisted in ``refresh_tokens``.

    A token is valid while its row exists and ``expires_at`` is in the
    future. Rows are removed on logout, on password change or reset, lazily
    when an expired token is presented, and by :meth:`sweep_expired`.
    """

    def __init__(self, ttl: timedelta, clock=None):
        self.ttl = ttl
        self.clock = clock or SystemClock()

    def issue(self, db: Session, user_id: int) -> str:
        token = secrets.token_hex(TOKEN_BYTES)
        db.add(RefreshToken(token=token, user_id=user_id, expires_at=self.clock.now() + self.ttl))
        db.flush()
        return token

    def redeem(self, db: Session, token: str) -> Tuple[int, Dict[str, Any]]:
        row = db.execute(select(RefreshToken).where(RefreshToken.token == token)).scalar_one_or_none()
        if row is None:
            raise NotFoundError("Refresh token not found.")
        if as_utc(row.expires_at) <= self.clock.now():
            logger.info("Removing expired refresh token of user %s", row.user_id)
            # lazy cleanup survives the failed request
            db.delete(row)
            db.commit()
            raise ExpiredError("Refresh token has expired.")
        return row.user_id, build_claims(row.user)

    def revoke(self, db: Session, token: str) -> None:
        db.execute(delete(RefreshToken).where(RefreshToken.token == token))

    def revoke_all_for_user(self, db: Session, user_id: int) -> int:
        result = db.execute(delete(RefreshToken).where(RefreshToken.user_id == user_id))
        logger.info("Revoked %s refresh token(s) of user %s", result.rowcount, user_id)
        return result.rowcount

    def sweep_expired(self, db: Session) -> int:
        result = db.execute(
            delete(RefreshToken).where(RefreshToken.expires_at <= self.clock.now()),
            execution_options={"synchronize_session": "fetch"},
        )
        return result.rowcount
