"""Request/response schemas for auth endpoints."""

import uuid
from datetime import datetime

from pydantic import ConfigDict, EmailStr, Field, field_validator

from app.core.security import NAME_MAX_LEN, NAME_MIN_LEN, PASSWORD_MAX_LEN, PASSWORD_MIN_LEN
from app.models.enums import UserRole
from app.schemas.common import ApiModel, Pagination, normalize_email


def _strip_name(v: str | None) -> str | None:
    if v is None:
        return v
    v = v.strip()
    if len(v) < NAME_MIN_LEN:
        raise ValueError(f"Name must be at least {NAME_MIN_LEN} characters")
    return v


class LoginRequest(ApiModel):
    """Credentials for login."""

    email: EmailStr
    # No length rules here: a wrong-length password is just an invalid credential.
    password: str = Field(..., min_length=1, max_length=PASSWORD_MAX_LEN)

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return normalize_email(v)


class RefreshRequest(ApiModel):
    refresh_token: str | None = None


class TokensOut(ApiModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class UserOut(ApiModel):
    """User as returned by the API (password hash and refresh token stripped)."""

    id: uuid.UUID
    name: str
    email: str
    role: UserRole
    active: bool
    last_login: datetime | None = None
    created_at: datetime
    updated_at: datetime


class LoginResponse(ApiModel):
    user: UserOut
    tokens: TokensOut


class RefreshResponse(ApiModel):
    tokens: TokensOut


class ApprovalResponse(ApiModel):
    user: UserOut


class UserCreate(ApiModel):
    """Direct registration of a user by an administrator."""

    name: str = Field(..., min_length=NAME_MIN_LEN, max_length=NAME_MAX_LEN)
    email: EmailStr
    password: str = Field(..., min_length=PASSWORD_MIN_LEN, max_length=PASSWORD_MAX_LEN)
    role: UserRole = UserRole.SECRETARY
    active: bool = True

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str | None) -> str | None:
        return _strip_name(v)

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return normalize_email(v)


class UserUpdate(ApiModel):
    """Admin update of another user."""

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, min_length=NAME_MIN_LEN, max_length=NAME_MAX_LEN)
    email: EmailStr | None = None
    role: UserRole | None = None
    active: bool | None = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str | None) -> str | None:
        return _strip_name(v)

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str | None) -> str | None:
        return normalize_email(v) if v is not None else v


class ProfileUpdate(ApiModel):
    """Self-service profile edit; role and active are not editable here."""

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, min_length=NAME_MIN_LEN, max_length=NAME_MAX_LEN)
    email: EmailStr | None = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str | None) -> str | None:
        return _strip_name(v)

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str | None) -> str | None:
        return normalize_email(v) if v is not None else v


class ChangePasswordRequest(ApiModel):
    current_password: str | None = Field(default=None, max_length=PASSWORD_MAX_LEN)
    new_password: str = Field(..., min_length=PASSWORD_MIN_LEN, max_length=PASSWORD_MAX_LEN)


class SetPasswordRequest(ApiModel):
    """Admin reset of another user's password."""

    new_password: str = Field(..., min_length=PASSWORD_MIN_LEN, max_length=PASSWORD_MAX_LEN)


class UserList(ApiModel):
    users: list[UserOut]
    pagination: Pagination


class UserStatistics(ApiModel):
    total: int
    active: int
    admins: int
    secretaries: int
    last_month: int


class EmailAvailability(ApiModel):
    email: str
    available: bool
