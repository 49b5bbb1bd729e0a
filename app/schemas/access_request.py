"""Request/response schemas for access-request endpoints."""

import uuid
from datetime import datetime

from pydantic import ConfigDict, EmailStr, Field, field_validator

from app.core.security import NAME_MAX_LEN, NAME_MIN_LEN, PASSWORD_MAX_LEN, PASSWORD_MIN_LEN
from app.models.enums import AccessRequestStatus, UserRole
from app.schemas.common import ApiModel, Pagination, normalize_email


class AccessRequestCreate(ApiModel):
    """Public submission of an access request."""

    name: str = Field(..., min_length=NAME_MIN_LEN, max_length=NAME_MAX_LEN)
    email: EmailStr
    password: str = Field(..., min_length=PASSWORD_MIN_LEN, max_length=PASSWORD_MAX_LEN)
    role: UserRole = UserRole.SECRETARY

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if len(v) < NAME_MIN_LEN:
            raise ValueError(f"Name must be at least {NAME_MIN_LEN} characters")
        return v

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return normalize_email(v)


class AccessRequestUpdate(ApiModel):
    """Admin edit of a pending request. Only name, email and role are mutable."""

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, min_length=NAME_MIN_LEN, max_length=NAME_MAX_LEN)
    email: EmailStr | None = None
    role: UserRole | None = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if len(v) < NAME_MIN_LEN:
            raise ValueError(f"Name must be at least {NAME_MIN_LEN} characters")
        return v

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str | None) -> str | None:
        return normalize_email(v) if v is not None else v


class RejectRequest(ApiModel):
    # Emptiness is checked by the workflow so the failure is a domain ValidationError.
    reason: str | None = Field(default=None, max_length=2000)


class ApproverOut(ApiModel):
    id: uuid.UUID
    name: str
    email: str


class AccessRequestOut(ApiModel):
    """Access request as returned by the API (no password material)."""

    id: uuid.UUID
    name: str
    email: str
    role: UserRole
    status: AccessRequestStatus
    rejection_reason: str | None = None
    approved_by: uuid.UUID | None = None
    approved_at: datetime | None = None
    approver: ApproverOut | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    created_at: datetime
    updated_at: datetime


class AccessRequestList(ApiModel):
    requests: list[AccessRequestOut]
    pagination: Pagination


class AccessRequestStatistics(ApiModel):
    total: int
    pending: int
    approved: int
    rejected: int
    last_month: int


class PendingEmailCheck(ApiModel):
    email: str
    has_pending_request: bool
    # Only filled in for authenticated administrators.
    request_id: uuid.UUID | None = None
