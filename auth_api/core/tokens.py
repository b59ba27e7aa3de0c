# auth_api/core/tokens.py
from __future__ import annotations

import uuid
from datetime import timedelta
from typing import Any, Dict

from jose import JWTError, jwt

from auth_api.core.clock import SystemClock
from auth_api.core.errors import InvalidTokenError

ACCESS_TOKEN_TYPE = "access"


class TokenCodec:
    """Signs and verifies short-lived JWT bearer tokens with one static secret."""

    def __init__(self, secret: str, algorithm: str = "HS256", clock=None):
        self.secret = secret
        self.algorithm = algorithm
        self.clock = clock or SystemClock()

    def sign(self, claims: Dict[str, Any], ttl: timedelta) -> str:
        now = self.clock.now()
        payload: Dict[str, Any] = {
            **claims,
            "jti": uuid.uuid4().hex,
            "iat": int(now.timestamp()),
            "exp": int((now + ttl).timestamp()),
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def verify(self, token: str) -> Dict[str, Any]:
        # expiry is checked here against the injected clock, with no leeway
        try:
            payload = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                options={"verify_exp": False, "verify_iat": False},
            )
        except JWTError as exc:
            raise InvalidTokenError("Invalid token.") from exc
        if not isinstance(payload, dict):
            raise InvalidTokenError("Invalid token.")
        exp = payload.get("exp")
        if not isinstance(exp, int) or exp <= int(self.clock.now().timestamp()):
            raise InvalidTokenError("Token has expired.")
        return payload


def build_claims(user) -> Dict[str, Any]:
    """Identity claims for a user, read fresh from the record."""
    return {
        "sub": str(user.id),
        "email": user.email,
        "roles": sorted(r.name for r in user.roles),
    }


def decode_access(codec: TokenCodec, token: str) -> Dict[str, Any]:
    payload = codec.verify(token)
    if payload.get("type") != ACCESS_TOKEN_TYPE or not payload.get("sub"):
        raise InvalidTokenError("Invalid token.")
    return payload
