from typing import Any, Dict, Generator

from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from auth_api.core.errors import InvalidTokenError, UnauthenticatedError
from auth_api.core.tokens import decode_access
from auth_api.models.user import User
from auth_api.services.auth import AuthService


def get_db(request: Request) -> Generator[Session, None, None]:
    db = request.app.state.session_factory()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


# ----------------------------------------------------------------------
# Bearer from the Authorization header (no OAuth2PasswordBearer, so a
# missing header is a 401 in our error format)
# ----------------------------------------------------------------------
def get_bearer_token(authorization: str = Header(None, alias="Authorization")) -> str:
    if not authorization:
        raise UnauthenticatedError("Missing Authorization header.")
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise UnauthenticatedError("Invalid Authorization header.")
    return parts[1]


def get_current_claims(
    token: str = Depends(get_bearer_token),
    auth: AuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    try:
        return decode_access(auth.codec, token)
    except InvalidTokenError as exc:
        raise UnauthenticatedError("Invalid or expired access token.") from exc


def current_user_id(claims: Dict[str, Any] = Depends(get_current_claims)) -> int:
    try:
        return int(claims["sub"])
    except (KeyError, TypeError, ValueError) as exc:
        raise UnauthenticatedError("Invalid or expired access token.") from exc


def get_current_user(
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
) -> User:
    user = db.get(User, user_id)
    if not user or not user.is_active:
        raise UnauthenticatedError("User not found or disabled.")
    return user
