"""ORM model for application users (auth and RBAC)."""

import uuid

from sqlalchemy import Boolean, Column, DateTime, Index, String, Text, Uuid, text

from app.models.base import Base, TimestampMixin
from app.models.enums import UserRole, user_role_type


class User(TimestampMixin, Base):
    """
    Administrator or secretary with access to the back office.

    email is stored lower-cased and is unique among non-deleted users only;
    soft-deleted rows keep their email for audit. password_hash and
    refresh_token are never serialized in API responses.
    """

    __tablename__ = "users"
    __table_args__ = (
        Index(
            "uq_users_email_live",
            "email",
            unique=True,
            postgresql_where=text("deleted_at IS NULL"),
            sqlite_where=text("deleted_at IS NULL"),
        ),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False)
    email = Column(String(150), nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(user_role_type, nullable=False, default=UserRole.SECRETARY)
    active = Column(Boolean, nullable=False, default=True)
    refresh_token = Column(Text, nullable=True)
    last_login = Column(DateTime(timezone=True), nullable=True)
