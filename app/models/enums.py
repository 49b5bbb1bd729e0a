"""Closed value sets shared by models, schemas and services."""

from enum import Enum

from sqlalchemy import Enum as SAEnum


class UserRole(str, Enum):
    ADMIN = "admin"
    SECRETARY = "secretary"


class AccessRequestStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


def enum_values(enum_cls: type[Enum]) -> list[str]:
    """Persist enum values ("admin") rather than member names ("ADMIN")."""
    return [member.value for member in enum_cls]


# Shared column types so PostgreSQL sees a single enum type per value set.
user_role_type = SAEnum(UserRole, name="user_role", values_callable=enum_values)
access_request_status_type = SAEnum(
    AccessRequestStatus, name="access_request_status", values_callable=enum_values
)
