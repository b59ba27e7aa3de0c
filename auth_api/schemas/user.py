# auth_api/schemas/user.py
from __future__ import annotations

import math
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import EmailStr, Field, field_validator

from auth_api.core.security import MAX_PASSWORD_BYTES, password_too_long
from auth_api.models.user import User
from auth_api.schemas.base import CamelModel

RoleName = Literal["user", "admin"]
SortField = Literal["email", "firstName", "lastName", "createdAt"]

PASSWORD_MIN = 8
PASSWORD_MAX = 128


def check_password_bytes(value: Optional[str]) -> Optional[str]:
    if value is not None and password_too_long(value):
        raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes in UTF-8.")
    return value


class UserCreate(CamelModel):
    email: EmailStr
    password: str = Field(min_length=PASSWORD_MIN, max_length=PASSWORD_MAX)
    first_name: Optional[str] = Field(default=None, max_length=80)
    last_name: Optional[str] = Field(default=None, max_length=80)
    roles: List[RoleName] = Field(default_factory=lambda: ["user"], min_length=1)
    is_active: bool = True
    is_email_verified: bool = False

    @field_validator("password")
    @classmethod
    def validate_password(cls, v):
        return check_password_bytes(v)


class UserUpdate(CamelModel):
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(default=None, min_length=PASSWORD_MIN, max_length=PASSWORD_MAX)
    first_name: Optional[str] = Field(default=None, max_length=80)
    last_name: Optional[str] = Field(default=None, max_length=80)
    roles: Optional[List[RoleName]] = Field(default=None, min_length=1)  # replaces the whole set
    is_active: Optional[bool] = None
    is_email_verified: Optional[bool] = None

    @field_validator("password")
    @classmethod
    def validate_password(cls, v):
        return check_password_bytes(v)


class UserOut(CamelModel):
    """Public view of a user. Secrets (password hash, pending tokens) have no
    field here, so they cannot leak through a response."""

    id: int
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    roles: List[str] = []
    is_active: bool
    is_email_verified: bool
    auth_provider: Optional[str] = None
    last_login_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class UserPage(CamelModel):
    data: List[UserOut]
    total: int
    page: int
    limit: int
    total_pages: int
    has_next_page: bool
    has_prev_page: bool


def to_public(user: User) -> UserOut:
    return UserOut(
        id=user.id,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        roles=sorted(r.name for r in user.roles),
        is_active=user.is_active,
        is_email_verified=user.is_email_verified,
        auth_provider=user.auth_provider,
        last_login_at=user.last_login_at,
        created_at=user.created_at,
        updated_at=user.updated_at,
    )


def to_page(users: List[User], total: int, page: int, limit: int) -> UserPage:
    total_pages = math.ceil(total / limit) if limit else 0
    return UserPage(
        data=[to_public(u) for u in users],
        total=total,
        page=page,
        limit=limit,
        total_pages=total_pages,
        has_next_page=page < total_pages,
        has_prev_page=page > 1,
    )
