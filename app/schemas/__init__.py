"""Pydantic request/response schemas."""

from app.schemas.access_request import (
    AccessRequestCreate,
    AccessRequestList,
    AccessRequestOut,
    AccessRequestStatistics,
    AccessRequestUpdate,
    PendingEmailCheck,
    RejectRequest,
)
from app.schemas.auth import (
    ChangePasswordRequest,
    LoginRequest,
    LoginResponse,
    ProfileUpdate,
    RefreshRequest,
    TokensOut,
    UserCreate,
    UserOut,
    UserUpdate,
)
from app.schemas.common import ApiResponse, ErrorResponse, Pagination
from app.schemas.health import HealthResponse

__all__ = [
    "AccessRequestCreate",
    "AccessRequestList",
    "AccessRequestOut",
    "AccessRequestStatistics",
    "AccessRequestUpdate",
    "ApiResponse",
    "ChangePasswordRequest",
    "ErrorResponse",
    "HealthResponse",
    "LoginRequest",
    "LoginResponse",
    "Pagination",
    "PendingEmailCheck",
    "ProfileUpdate",
    "RefreshRequest",
    "RejectRequest",
    "TokensOut",
    "UserCreate",
    "UserOut",
    "UserUpdate",
]
