"""Access-request workflow: submission, review and provisioning of user accounts.

A request is created `pending` and leaves that state exactly once, to
`approved` (which creates the User) or `rejected`. Every transition is a
conditional UPDATE on `status = 'pending'`, so of two concurrent reviewers only
one can win; the loser sees zero affected rows and gets a Conflict. Soft
deletion is orthogonal and allowed in any state.
"""

import logging
import uuid
from datetime import timedelta

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Query

from app.core.errors import Conflict, NotFound, ValidationError
from app.models import AccessRequest, AccessRequestStatus, User
from app.models.base import utcnow
from app.schemas.access_request import AccessRequestCreate, AccessRequestUpdate
from app.schemas.common import Pagination
from app.services.context import Infrastructure

logger = logging.getLogger(__name__)

STATISTICS_RECENT_DAYS = 30

MSG_NOT_FOUND = "Access request not found"
MSG_ALREADY_PROCESSED = "Access request has already been processed"
MSG_PENDING_EXISTS = "A pending access request already exists for this email"
MSG_EMAIL_IN_USE = "A user with this email already exists"


class AccessRequestWorkflow:
    """State machine over AccessRequest rows. One instance per inbound request."""

    def __init__(self, infra: Infrastructure) -> None:
        self.infra = infra
        self.db = infra.db

    # Lookups

    def _live_requests(self) -> Query:
        return self.db.query(AccessRequest).filter(AccessRequest.deleted_at.is_(None))

    def _get_live(self, request_id: uuid.UUID) -> AccessRequest:
        request = self._live_requests().filter(AccessRequest.id == request_id).first()
        if request is None:
            raise NotFound(MSG_NOT_FOUND)
        return request

    def _find_pending(self, email: str, exclude_id: uuid.UUID | None = None) -> AccessRequest | None:
        query = self._live_requests().filter(
            AccessRequest.email == email.strip().lower(),
            AccessRequest.status == AccessRequestStatus.PENDING,
        )
        if exclude_id is not None:
            query = query.filter(AccessRequest.id != exclude_id)
        return query.first()

    def _live_user_exists(self, email: str) -> bool:
        return (
            self.db.query(User.id)
            .filter(User.email == email.strip().lower(), User.deleted_at.is_(None))
            .first()
            is not None
        )

    def _ensure_email_free(self, email: str, exclude_id: uuid.UUID | None = None) -> None:
        if self._find_pending(email, exclude_id=exclude_id) is not None:
            raise Conflict(MSG_PENDING_EXISTS, code="PENDING_REQUEST_EXISTS")
        if self._live_user_exists(email):
            raise Conflict(MSG_EMAIL_IN_USE, code="EMAIL_IN_USE")

    def _transition(self, request_id: uuid.UUID, values: dict) -> None:
        """Apply values only if the request is still live and pending; Conflict otherwise."""
        affected = (
            self.db.query(AccessRequest)
            .filter(
                AccessRequest.id == request_id,
                AccessRequest.status == AccessRequestStatus.PENDING,
                AccessRequest.deleted_at.is_(None),
            )
            .update({**values, AccessRequest.updated_at: utcnow()}, synchronize_session=False)
        )
        if affected != 1:
            self.db.rollback()
            raise Conflict(MSG_ALREADY_PROCESSED, code="REQUEST_ALREADY_PROCESSED")

    # Operations

    def submit(
        self,
        data: AccessRequestCreate,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> AccessRequest:
        """
        Record a new pending request. The password is hashed here and the
        plaintext is never stored. Raises Conflict if the email already has a
        pending request or belongs to a live user.
        """
        email = data.email.strip().lower()
        try:
            self._ensure_email_free(email)
        except Conflict as e:
            logger.warning(
                "Access request rejected at submission",
                extra={"email": email, "code": e.code, "ip_address": ip_address},
            )
            raise

        request = AccessRequest(
            name=data.name.strip(),
            email=email,
            password_hash=self.infra.hasher.hash(data.password),
            role=data.role,
            status=AccessRequestStatus.PENDING,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        self.db.add(request)
        try:
            self.db.commit()
        except IntegrityError as e:
            # Lost a race with a concurrent submission for the same email.
            self.db.rollback()
            raise Conflict(MSG_PENDING_EXISTS, code="PENDING_REQUEST_EXISTS") from e
        self.db.refresh(request)

        logger.info(
            "Access request submitted",
            extra={
                "request_id": str(request.id),
                "email": request.email,
                "role": request.role.value,
                "ip_address": ip_address,
                "user_agent": user_agent,
            },
        )
        self.infra.notifier.new_request(request)
        return request

    def _approve_once(self, request_id: uuid.UUID, approver: User) -> tuple[AccessRequest, User]:
        request = self._get_live(request_id)
        if request.status != AccessRequestStatus.PENDING:
            raise Conflict(MSG_ALREADY_PROCESSED, code="REQUEST_ALREADY_PROCESSED")
        if self._live_user_exists(request.email):
            raise Conflict(MSG_EMAIL_IN_USE, code="EMAIL_IN_USE")

        # Snapshot before the bulk update; the ORM object is not synchronized.
        name, email, role, password_hash = (
            request.name,
            request.email,
            request.role,
            request.password_hash,
        )
        self._transition(
            request_id,
            {
                AccessRequest.status: AccessRequestStatus.APPROVED,
                AccessRequest.approved_by: approver.id,
                AccessRequest.approved_at: utcnow(),
            },
        )
        user = User(
            name=name,
            email=email,
            password_hash=password_hash,
            role=role,
            active=True,
        )
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise Conflict(MSG_EMAIL_IN_USE, code="EMAIL_IN_USE") from e
        self.db.refresh(request)
        self.db.refresh(user)
        return request, user

    def approve(self, request_id: uuid.UUID, approver: User) -> User:
        """
        Approve a pending request and create its User in one transaction.

        Raises NotFound for an unknown id and Conflict if the request is no
        longer pending or its email now belongs to a live user. Transient
        database errors retry the whole unit, never a single write.
        """
        attempts = max(1, self.infra.approve_max_attempts)
        for attempt in range(1, attempts + 1):
            try:
                request, user = self._approve_once(request_id, approver)
                break
            except OperationalError as e:
                self.db.rollback()
                if attempt >= attempts:
                    logger.error(
                        "Approval failed after retries",
                        extra={"request_id": str(request_id), "attempts": attempt},
                    )
                    raise
                logger.warning(
                    "Transient database error during approval; retrying",
                    extra={"request_id": str(request_id), "attempt": attempt, "error": str(e)[:200]},
                )

        logger.info(
            "Access request approved",
            extra={
                "request_id": str(request.id),
                "user_id": str(user.id),
                "email": user.email,
                "role": user.role.value,
                "approved_by": str(approver.id),
                "approved_by_email": approver.email,
            },
        )
        self.infra.notifier.approved(request)
        return user

    def reject(self, request_id: uuid.UUID, reason: str | None, rejector: User) -> None:
        """Reject a pending request. A non-blank reason is required."""
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError(
                "Rejection reason is required",
                errors=[{"field": "reason", "message": "Rejection reason is required"}],
            )
        request = self._get_live(request_id)
        self._transition(
            request_id,
            {
                AccessRequest.status: AccessRequestStatus.REJECTED,
                AccessRequest.rejection_reason: reason,
                AccessRequest.approved_by: rejector.id,
                AccessRequest.approved_at: utcnow(),
            },
        )
        self.db.commit()
        self.db.refresh(request)

        logger.info(
            "Access request rejected",
            extra={
                "request_id": str(request.id),
                "email": request.email,
                "reason": reason[:500],
                "rejected_by": str(rejector.id),
                "rejected_by_email": rejector.email,
            },
        )
        self.infra.notifier.rejected(request)

    def update(self, request_id: uuid.UUID, patch: AccessRequestUpdate, updater: User) -> AccessRequest:
        """Edit name, email or role of a request while it is still pending."""
        request = self._get_live(request_id)
        if request.status != AccessRequestStatus.PENDING:
            raise Conflict(
                "Only pending access requests can be edited",
                code="REQUEST_ALREADY_PROCESSED",
            )

        changes = patch.model_dump(exclude_unset=True, exclude_none=True)
        values: dict = {}
        if "name" in changes:
            values[AccessRequest.name] = changes["name"].strip()
        if "role" in changes:
            values[AccessRequest.role] = changes["role"]
        if "email" in changes:
            email = changes["email"].strip().lower()
            if email != request.email:
                self._ensure_email_free(email, exclude_id=request.id)
            values[AccessRequest.email] = email
        if not values:
            return request

        self._transition(request_id, values)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise Conflict(MSG_PENDING_EXISTS, code="PENDING_REQUEST_EXISTS") from e
        self.db.refresh(request)

        logger.info(
            "Access request updated",
            extra={
                "request_id": str(request.id),
                "changes": sorted(changes),
                "updated_by": str(updater.id),
            },
        )
        return request

    def remove(self, request_id: uuid.UUID, remover: User) -> None:
        """Soft-delete a request in any state."""
        request = self._get_live(request_id)
        request.deleted_at = utcnow()
        self.db.commit()
        logger.info(
            "Access request removed",
            extra={
                "request_id": str(request.id),
                "email": request.email,
                "status": request.status.value,
                "removed_by": str(remover.id),
                "removed_by_email": remover.email,
            },
        )

    # Read-only helpers

    def get(self, request_id: uuid.UUID) -> AccessRequest:
        return self._get_live(request_id)

    def find_pending(self, email: str) -> AccessRequest | None:
        return self._find_pending(email)

    def has_pending_request(self, email: str) -> bool:
        return self._find_pending(email) is not None

    def list_requests(
        self,
        page: int = 1,
        limit: int = 10,
        status: AccessRequestStatus | None = None,
        search: str | None = None,
    ) -> tuple[list[AccessRequest], Pagination]:
        """Newest first, optionally filtered by status and a name/email search term."""
        query = self._live_requests()
        if status is not None:
            query = query.filter(AccessRequest.status == status)
        if search and search.strip():
            term = f"%{search.strip()}%"
            query = query.filter(
                or_(AccessRequest.name.ilike(term), AccessRequest.email.ilike(term))
            )
        total = query.count()
        rows = (
            query.order_by(AccessRequest.created_at.desc(), AccessRequest.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return rows, Pagination.build(page, limit, total)

    def statistics(self) -> dict[str, int]:
        base = self._live_requests()
        since = utcnow() - timedelta(days=STATISTICS_RECENT_DAYS)
        return {
            "total": base.count(),
            "pending": base.filter(AccessRequest.status == AccessRequestStatus.PENDING).count(),
            "approved": base.filter(AccessRequest.status == AccessRequestStatus.APPROVED).count(),
            "rejected": base.filter(AccessRequest.status == AccessRequestStatus.REJECTED).count(),
            "last_month": base.filter(AccessRequest.created_at >= since).count(),
        }
