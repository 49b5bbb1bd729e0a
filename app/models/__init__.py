"""SQLAlchemy ORM models."""

from app.models.access_request import AccessRequest
from app.models.base import Base
from app.models.enums import AccessRequestStatus, UserRole
from app.models.user import User

__all__ = ["AccessRequest", "AccessRequestStatus", "Base", "User", "UserRole"]
