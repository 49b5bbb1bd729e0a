"""Access-request endpoints: public submission and email check, admin review."""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status

from app.api.deps import AdminDep, WorkflowDep, get_optional_user
from app.core.limiter import limit_submit
from app.models import AccessRequestStatus, User, UserRole
from app.schemas.access_request import (
    AccessRequestCreate,
    AccessRequestList,
    AccessRequestOut,
    AccessRequestStatistics,
    AccessRequestUpdate,
    PendingEmailCheck,
    RejectRequest,
)
from app.schemas.auth import ApprovalResponse, UserOut
from app.schemas.common import LIMIT_DEFAULT, LIMIT_MAX, PAGE_DEFAULT, ApiResponse, ok

router = APIRouter()


@router.post("", response_model=ApiResponse[AccessRequestOut], status_code=status.HTTP_201_CREATED)
@limit_submit
def submit_access_request(
    body: AccessRequestCreate,
    request: Request,
    workflow: WorkflowDep,
) -> ApiResponse[AccessRequestOut]:
    """
    Submit an access request (public). The account is created only when an
    administrator approves it. Returns 409 if the email already has a pending
    request or an account.
    """
    ip_address = request.client.host if request.client else None
    user_agent = request.headers.get("user-agent")
    created = workflow.submit(body, ip_address=ip_address, user_agent=user_agent)
    return ok(
        AccessRequestOut.model_validate(created),
        "Access request submitted. Please wait for administrator approval.",
    )


@router.get("/check-email/{email}", response_model=ApiResponse[PendingEmailCheck])
def check_email(
    email: str,
    workflow: WorkflowDep,
    viewer: Annotated[User | None, Depends(get_optional_user)],
) -> ApiResponse[PendingEmailCheck]:
    """Whether the email has a pending request (public; admins also get the request id)."""
    pending = workflow.find_pending(email)
    request_id = None
    if pending is not None and viewer is not None and viewer.role == UserRole.ADMIN:
        request_id = pending.id
    return ok(
        PendingEmailCheck(
            email=email,
            has_pending_request=pending is not None,
            request_id=request_id,
        ),
        "Email checked",
    )


@router.get("", response_model=ApiResponse[AccessRequestList])
def list_access_requests(
    _admin: AdminDep,
    workflow: WorkflowDep,
    page: Annotated[int, Query(ge=1)] = PAGE_DEFAULT,
    limit: Annotated[int, Query(ge=1, le=LIMIT_MAX)] = LIMIT_DEFAULT,
    status_filter: Annotated[AccessRequestStatus | None, Query(alias="status")] = None,
    search: Annotated[str | None, Query(max_length=100)] = None,
) -> ApiResponse[AccessRequestList]:
    """List access requests, newest first (admin only)."""
    rows, pagination = workflow.list_requests(page, limit, status_filter, search)
    return ok(
        AccessRequestList(
            requests=[AccessRequestOut.model_validate(r) for r in rows],
            pagination=pagination,
        ),
        "Access requests listed",
    )


@router.get("/statistics", response_model=ApiResponse[AccessRequestStatistics])
def access_request_statistics(
    _admin: AdminDep,
    workflow: WorkflowDep,
) -> ApiResponse[AccessRequestStatistics]:
    return ok(AccessRequestStatistics(**workflow.statistics()), "Statistics retrieved")


@router.get("/{request_id}", response_model=ApiResponse[AccessRequestOut])
def get_access_request(
    request_id: uuid.UUID,
    _admin: AdminDep,
    workflow: WorkflowDep,
) -> ApiResponse[AccessRequestOut]:
    return ok(AccessRequestOut.model_validate(workflow.get(request_id)), "Access request retrieved")


@router.put("/{request_id}", response_model=ApiResponse[AccessRequestOut])
def update_access_request(
    request_id: uuid.UUID,
    body: AccessRequestUpdate,
    admin: AdminDep,
    workflow: WorkflowDep,
) -> ApiResponse[AccessRequestOut]:
    """Edit name, email or role of a pending request (admin only). 409 once processed."""
    updated = workflow.update(request_id, body, admin)
    return ok(AccessRequestOut.model_validate(updated), "Access request updated")


@router.post("/{request_id}/approve", response_model=ApiResponse[ApprovalResponse])
def approve_access_request(
    request_id: uuid.UUID,
    admin: AdminDep,
    workflow: WorkflowDep,
) -> ApiResponse[ApprovalResponse]:
    """Approve a pending request and create the user account (admin only)."""
    user = workflow.approve(request_id, admin)
    return ok(
        ApprovalResponse(user=UserOut.model_validate(user)),
        "Access request approved and user created",
    )


@router.post("/{request_id}/reject", response_model=ApiResponse[None])
def reject_access_request(
    request_id: uuid.UUID,
    body: RejectRequest,
    admin: AdminDep,
    workflow: WorkflowDep,
) -> ApiResponse[None]:
    """Reject a pending request with a mandatory reason (admin only)."""
    workflow.reject(request_id, body.reason, admin)
    return ok(None, "Access request rejected")


@router.delete("/{request_id}", response_model=ApiResponse[None])
def delete_access_request(
    request_id: uuid.UUID,
    admin: AdminDep,
    workflow: WorkflowDep,
) -> ApiResponse[None]:
    """Soft-delete a request in any state (admin only)."""
    workflow.remove(request_id, admin)
    return ok(None, "Access request removed")
