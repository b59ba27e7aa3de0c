# auth_api/schemas/auth.py
from typing import List, Optional

from pydantic import EmailStr, Field, field_validator

from auth_api.schemas.base import CamelModel
from auth_api.schemas.user import PASSWORD_MAX, PASSWORD_MIN, check_password_bytes


class RegisterIn(CamelModel):
    email: EmailStr
    password: str = Field(min_length=PASSWORD_MIN, max_length=PASSWORD_MAX)
    first_name: Optional[str] = Field(default=None, max_length=80)
    last_name: Optional[str] = Field(default=None, max_length=80)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v):
        return check_password_bytes(v)


class LoginIn(CamelModel):
    email: EmailStr
    password: str = Field(min_length=1, max_length=PASSWORD_MAX)


class RefreshIn(CamelModel):
    refresh_token: str = Field(min_length=1)


class EmailIn(CamelModel):
    email: EmailStr


class TokenIn(CamelModel):
    token: str = Field(min_length=1)


class ResetPasswordIn(CamelModel):
    token: str = Field(min_length=1)
    new_password: str = Field(min_length=PASSWORD_MIN, max_length=PASSWORD_MAX)

    @field_validator("new_password")
    @classmethod
    def validate_new_password(cls, v):
        return check_password_bytes(v)


class ChangePasswordIn(CamelModel):
    current_password: str = Field(min_length=1, max_length=PASSWORD_MAX)
    new_password: str = Field(min_length=PASSWORD_MIN, max_length=PASSWORD_MAX)

    @field_validator("new_password")
    @classmethod
    def validate_new_password(cls, v):
        return check_password_bytes(v)


class SocialProfile(CamelModel):
    """Identity asserted by an external provider after its own sign-in."""

    provider: str
    provider_id: str
    email: EmailStr
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class TokenOut(CamelModel):
    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "bearer"
    expires_in: int


class MessageOut(CamelModel):
    message: str


class HealthOut(CamelModel):
    status: str
    timestamp: str
    features: List[str]
