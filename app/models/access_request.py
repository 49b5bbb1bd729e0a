"""ORM model for access requests awaiting administrator review."""

import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Index, String, Text, Uuid, text
from sqlalchemy.orm import relationship

from app.models.base import Base, TimestampMixin
from app.models.enums import (
    AccessRequestStatus,
    UserRole,
    access_request_status_type,
    user_role_type,
)


class AccessRequest(TimestampMixin, Base):
    """
    Application for a back-office account.

    status moves pending -> approved | rejected once and never back.
    approved_by/approved_at record whoever closed the request, for approvals
    and rejections alike. The applicant's password is kept only as a bcrypt hash.
    """

    __tablename__ = "access_requests"
    __table_args__ = (
        # One live pending request per email; the authoritative guard against
        # concurrent duplicate submissions.
        Index(
            "uq_access_requests_email_pending",
            "email",
            unique=True,
            postgresql_where=text("status = 'pending' AND deleted_at IS NULL"),
            sqlite_where=text("status = 'pending' AND deleted_at IS NULL"),
        ),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False)
    email = Column(String(150), nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(user_role_type, nullable=False, default=UserRole.SECRETARY)
    status = Column(
        access_request_status_type,
        nullable=False,
        default=AccessRequestStatus.PENDING,
        index=True,
    )
    rejection_reason = Column(Text, nullable=True)
    approved_by = Column(Uuid, ForeignKey("users.id"), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(Text, nullable=True)

    approver = relationship("User", foreign_keys=[approved_by], lazy="joined")
