# auth_api/api/v1/auth.py
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from auth_api.api.deps import current_user_id, get_auth_service, get_current_user, get_db
from auth_api.models.user import User
from auth_api.schemas.auth import (
    ChangePasswordIn,
    EmailIn,
    HealthOut,
    LoginIn,
    MessageOut,
    RefreshIn,
    RegisterIn,
    ResetPasswordIn,
    TokenIn,
    TokenOut,
)
from auth_api.schemas.user import UserOut, to_public
from auth_api.services.auth import AuthService

router = APIRouter()

FEATURES = [
    "Email/Password Authentication",
    "JWT Access Tokens",
    "Refresh Tokens",
    "Email Verification",
    "Password Reset",
    "Social Sign-in",
    "Role-based Access Control",
]


@router.post("/register", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def register(
    body: RegisterIn,
    db: Session = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
):
    user = auth.register(db, body.email, body.password, body.first_name, body.last_name)
    return to_public(user)


@router.post("/login", response_model=TokenOut)
def login(
    body: LoginIn,
    db: Session = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
):
    return auth.login(db, body.email, body.password)


@router.post("/token", response_model=TokenOut)
def login_oauth2_form(
    form: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
):
    """OAuth2 password form (``username`` = email), used by the docs' Authorize button."""
    return auth.login(db, form.username, form.password)


@router.post("/refresh", response_model=TokenOut, response_model_exclude_none=True)
def refresh(
    body: RefreshIn,
    db: Session = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
):
    return auth.refresh(db, body.refresh_token)


@router.post("/logout", response_model=MessageOut)
def logout(
    body: RefreshIn,
    db: Session = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
):
    return MessageOut(message=auth.logout(db, body.refresh_token))


@router.post("/logout-all", response_model=MessageOut)
def logout_all(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
):
    return MessageOut(message=auth.logout_all(db, user.id))


@router.get("/profile", response_model=UserOut)
def profile(
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
):
    return to_public(auth.get_profile(db, user_id))


# ---------- passwords ----------
@router.post("/forgot-password", response_model=MessageOut)
def forgot_password(
    body: EmailIn,
    db: Session = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
):
    return MessageOut(message=auth.forgot_password(db, body.email))


@router.post("/reset-password", response_model=MessageOut)
def reset_password(
    body: ResetPasswordIn,
    db: Session = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
):
    return MessageOut(message=auth.reset_password(db, body.token, body.new_password))


@router.post("/change-password", response_model=MessageOut)
def change_password(
    body: ChangePasswordIn,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
):
    return MessageOut(message=auth.change_password(db, user.id, body.current_password, body.new_password))


# ---------- email verification ----------
@router.post("/verify-email", response_model=MessageOut)
def verify_email(
    body: TokenIn,
    db: Session = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
):
    return MessageOut(message=auth.verify_email(db, body.token))


@router.post("/resend-verification", response_model=MessageOut)
def resend_verification(
    body: EmailIn,
    db: Session = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
):
    return MessageOut(message=auth.resend_verification(db, body.email))


@router.get("/health", response_model=HealthOut)
def health() -> Dict[str, Any]:
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "features": FEATURES,
    }
