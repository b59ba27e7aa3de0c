# auth_api/core/security.py
from __future__ import annotations

import logging
from typing import Optional, Tuple

from passlib.context import CryptContext

logger = logging.getLogger(__name__)

# bcrypt only reads this many bytes of the secret
MAX_PASSWORD_BYTES = 72


def password_too_long(secret: str) -> bool:
    return len(secret.encode("utf-8")) > MAX_PASSWORD_BYTES


class PasswordHasher:
    """bcrypt hashing and verification through passlib.

    ``verify`` never raises: a missing digest (account without a local
    password), a digest passlib cannot parse and a secret longer than bcrypt
    can read all count as a mismatch. ``hash`` refuses such secrets.
    """

    def __init__(self, rounds: int = 10):
        self.rounds = rounds
        self._context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=rounds,
            bcrypt__min_rounds=rounds,
            bcrypt__truncate_error=True,
        )

    def hash(self, secret: str) -> str:
        return self._context.hash(secret)

    def verify(self, secret: str, digest: Optional[str]) -> bool:
        ok, _ = self.verify_and_update(secret, digest)
        return ok

    def verify_and_update(self, secret: str, digest: Optional[str]) -> Tuple[bool, str | None]:
        """Verify and, when the stored digest is below the current work
        factor, return a fresh digest the caller should persist."""
        if not digest or password_too_long(secret):
            self.dummy_verify()
            return False, None
        try:
            return self._context.verify_and_update(secret, digest)
        except (ValueError, TypeError):
            logger.warning("Stored password digest could not be parsed")
            return False, None

    def dummy_verify(self) -> None:
        # same cost as a real check, for unknown users
        self._context.dummy_verify()
