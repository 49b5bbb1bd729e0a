"""Auth endpoints: login, token refresh, logout, profile and admin user management."""

import uuid
from typing import Annotated

from fastapi import APIRouter, Header, Query, Request, status

from app.api.deps import AdminDep, CurrentUserDep, GatewayDep, StaffDep
from app.core.limiter import limit_auth
from app.models import UserRole
from app.schemas.auth import (
    ChangePasswordRequest,
    EmailAvailability,
    LoginRequest,
    LoginResponse,
    ProfileUpdate,
    RefreshRequest,
    RefreshResponse,
    SetPasswordRequest,
    TokensOut,
    UserCreate,
    UserList,
    UserOut,
    UserStatistics,
    UserUpdate,
)
from app.schemas.common import LIMIT_DEFAULT, LIMIT_MAX, PAGE_DEFAULT, ApiResponse, ok

router = APIRouter()


@router.post("/login", response_model=ApiResponse[LoginResponse])
@limit_auth
def login(request: Request, body: LoginRequest, gateway: GatewayDep) -> ApiResponse[LoginResponse]:
    """
    Authenticate with email and password; returns the user and a token pair.
    Include the access token in the Authorization header as: Bearer <accessToken>
    """
    user, tokens = gateway.login(body.email, body.password)
    return ok(
        LoginResponse(
            user=UserOut.model_validate(user),
            tokens=TokensOut(access_token=tokens.access_token, refresh_token=tokens.refresh_token),
        ),
        "Login successful",
    )


@router.post("/refresh", response_model=ApiResponse[RefreshResponse])
@limit_auth
def refresh(
    request: Request,
    gateway: GatewayDep,
    body: RefreshRequest | None = None,
    x_refresh_token: Annotated[str | None, Header()] = None,
) -> ApiResponse[RefreshResponse]:
    """Rotate the refresh token (body `refreshToken` or `X-Refresh-Token` header)."""
    token = (body.refresh_token if body else None) or x_refresh_token
    tokens = gateway.refresh(token)
    return ok(
        RefreshResponse(
            tokens=TokensOut(access_token=tokens.access_token, refresh_token=tokens.refresh_token)
        ),
        "Token refreshed",
    )


@router.post("/logout", response_model=ApiResponse[None])
def logout(current_user: CurrentUserDep, gateway: GatewayDep) -> ApiResponse[None]:
    gateway.logout(current_user.id)
    return ok(None, "Logout successful")


@router.get("/profile", response_model=ApiResponse[UserOut])
def get_profile(current_user: StaffDep) -> ApiResponse[UserOut]:
    return ok(UserOut.model_validate(current_user), "Profile retrieved")


@router.put("/profile", response_model=ApiResponse[UserOut])
def update_profile(
    body: ProfileUpdate,
    current_user: StaffDep,
    gateway: GatewayDep,
) -> ApiResponse[UserOut]:
    user = gateway.update_profile(current_user, body)
    return ok(UserOut.model_validate(user), "Profile updated")


@router.put("/change-password", response_model=ApiResponse[None])
def change_password(
    body: ChangePasswordRequest,
    current_user: StaffDep,
    gateway: GatewayDep,
) -> ApiResponse[None]:
    gateway.change_password(current_user.id, body.current_password, body.new_password, current_user)
    return ok(None, "Password changed")


@router.get("/check-email/{email}", response_model=ApiResponse[EmailAvailability])
def check_email(
    email: str,
    _user: StaffDep,
    gateway: GatewayDep,
) -> ApiResponse[EmailAvailability]:
    """Whether an email is free for a new account."""
    return ok(
        EmailAvailability(email=email, available=gateway.is_email_available(email)),
        "Email checked",
    )


@router.get("/users", response_model=ApiResponse[UserList])
def list_users(
    _admin: AdminDep,
    gateway: GatewayDep,
    page: Annotated[int, Query(ge=1)] = PAGE_DEFAULT,
    limit: Annotated[int, Query(ge=1, le=LIMIT_MAX)] = LIMIT_DEFAULT,
    search: Annotated[str | None, Query(max_length=100)] = None,
    role: UserRole | None = None,
    active: bool | None = None,
) -> ApiResponse[UserList]:
    """List users ordered by name (admin only)."""
    users, pagination = gateway.list_users(page, limit, search, role, active)
    return ok(
        UserList(users=[UserOut.model_validate(u) for u in users], pagination=pagination),
        "Users listed",
    )


@router.get("/users/statistics", response_model=ApiResponse[UserStatistics])
def user_statistics(_admin: AdminDep, gateway: GatewayDep) -> ApiResponse[UserStatistics]:
    return ok(UserStatistics(**gateway.user_statistics()), "User statistics retrieved")


@router.post("/users", response_model=ApiResponse[UserOut], status_code=status.HTTP_201_CREATED)
def create_user(body: UserCreate, admin: AdminDep, gateway: GatewayDep) -> ApiResponse[UserOut]:
    """Register a user directly, bypassing the access-request workflow (admin only)."""
    user = gateway.create_user(body, admin)
    return ok(UserOut.model_validate(user), "User registered")


@router.get("/users/{user_id}", response_model=ApiResponse[UserOut])
def get_user(user_id: uuid.UUID, _admin: AdminDep, gateway: GatewayDep) -> ApiResponse[UserOut]:
    return ok(UserOut.model_validate(gateway.get_user(user_id)), "User retrieved")


@router.put("/users/{user_id}", response_model=ApiResponse[UserOut])
def update_user(
    user_id: uuid.UUID,
    body: UserUpdate,
    admin: AdminDep,
    gateway: GatewayDep,
) -> ApiResponse[UserOut]:
    user = gateway.update_user(user_id, body, admin)
    return ok(UserOut.model_validate(user), "User updated")


@router.delete("/users/{user_id}", response_model=ApiResponse[None])
def delete_user(user_id: uuid.UUID, admin: AdminDep, gateway: GatewayDep) -> ApiResponse[None]:
    gateway.delete_user(user_id, admin)
    return ok(None, "User removed")


@router.put("/users/{user_id}/password", response_model=ApiResponse[None])
def set_user_password(
    user_id: uuid.UUID,
    body: SetPasswordRequest,
    admin: AdminDep,
    gateway: GatewayDep,
) -> ApiResponse[None]:
    """Reset another user's password without the current one (admin only)."""
    gateway.change_password(user_id, None, body.new_password, admin)
    return ok(None, "Password changed")
