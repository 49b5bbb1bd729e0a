"""Authorization guard: resolve bearer tokens to live users and enforce role requirements."""

import logging
from enum import Enum

from sqlalchemy.orm import Session

from app.core.errors import AppError, Forbidden, Unauthorized
from app.core.security import TokenIssuer, TokenType, extract_bearer_token
from app.models import User, UserRole

logger = logging.getLogger(__name__)


class RoleRequirement(str, Enum):
    ADMIN = "admin"
    ADMIN_OR_SECRETARY = "admin_or_secretary"


ROLE_PREDICATES: dict[RoleRequirement, frozenset[UserRole]] = {
    RoleRequirement.ADMIN: frozenset({UserRole.ADMIN}),
    RoleRequirement.ADMIN_OR_SECRETARY: frozenset({UserRole.ADMIN, UserRole.SECRETARY}),
}


def authenticate(db: Session, tokens: TokenIssuer, auth_header: str | None) -> User:
    """
    Resolve `Authorization: Bearer <access token>` to the live user row.

    The row, not the token claims, is returned so role and active changes
    apply on the next request. Raises Unauthorized with one of MISSING_TOKEN,
    INVALID_TOKEN_TYPE, INVALID_TOKEN, TOKEN_EXPIRED, USER_NOT_FOUND or
    USER_INACTIVE.
    """
    token = extract_bearer_token(auth_header)
    if token is None:
        raise Unauthorized("Access token not provided", code="MISSING_TOKEN")
    claims = tokens.decode(token, TokenType.ACCESS)
    user = (
        db.query(User)
        .filter(User.id == claims.user_id, User.deleted_at.is_(None))
        .first()
    )
    if user is None:
        raise Unauthorized("User not found", code="USER_NOT_FOUND")
    if not user.active:
        raise Unauthorized("User inactive", code="USER_INACTIVE")
    return user


def optional_authenticate(db: Session, tokens: TokenIssuer, auth_header: str | None) -> User | None:
    """Like authenticate, but any failure, store errors included, means "anonymous"."""
    try:
        return authenticate(db, tokens, auth_header)
    except AppError as e:
        if auth_header:
            logger.debug("Optional authentication ignored", extra={"code": e.code})
        return None
    except Exception as e:
        # The session may be mid-failed-transaction; the request still reads from it.
        db.rollback()
        logger.debug("Optional authentication failed", extra={"error": str(e)[:200]})
        return None


def require_role(user: User, requirement: RoleRequirement, endpoint: str = "") -> User:
    """Raise Forbidden unless the user's role satisfies the requirement."""
    allowed = ROLE_PREDICATES[requirement]
    if user.role in allowed:
        return user
    logger.warning(
        "Forbidden: insufficient role",
        extra={
            "user_id": str(user.id),
            "user_email": user.email,
            "user_role": getattr(user.role, "value", user.role),
            "required_role": requirement.value,
            "endpoint": endpoint,
        },
    )
    if requirement is RoleRequirement.ADMIN:
        raise Forbidden("Access denied. Administrators only")
    raise Forbidden("Access denied. Invalid user role", code="INVALID_USER_ROLE")
