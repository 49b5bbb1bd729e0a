"""Authentication gateway: login, token refresh/rotation, logout, passwords and user management."""

import hmac
import logging
import uuid
from datetime import timedelta

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Query

from app.core.errors import Conflict, Forbidden, NotFound, Unauthorized, ValidationError
from app.core.security import TokenPair, TokenType
from app.models import User, UserRole
from app.models.base import utcnow
from app.schemas.auth import ProfileUpdate, UserCreate, UserUpdate
from app.schemas.common import Pagination
from app.services.context import Infrastructure

logger = logging.getLogger(__name__)

# Same message for unknown email, inactive account and wrong password.
INVALID_CREDENTIALS = "Invalid credentials"

STATISTICS_RECENT_DAYS = 30


class AuthGateway:
    """Credential checks and user-account operations. Always hashes explicitly before persisting."""

    def __init__(self, infra: Infrastructure) -> None:
        self.infra = infra
        self.db = infra.db

    def _live_users(self) -> Query:
        return self.db.query(User).filter(User.deleted_at.is_(None))

    def _get_live_user(self, user_id: uuid.UUID) -> User:
        user = self._live_users().filter(User.id == user_id).first()
        if user is None:
            raise NotFound("User not found")
        return user

    def _email_taken(self, email: str, exclude_id: uuid.UUID | None = None) -> bool:
        query = self._live_users().filter(User.email == email.strip().lower())
        if exclude_id is not None:
            query = query.filter(User.id != exclude_id)
        return query.first() is not None

    def _commit_user_change(self) -> None:
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise Conflict("A user with this email already exists", code="EMAIL_IN_USE") from e

    def _issue(self, user: User) -> TokenPair:
        return self.infra.tokens.issue_pair(user.id, user.email, user.role.value)

    # Sessions

    def login(self, email: str, password: str) -> tuple[User, TokenPair]:
        """
        Verify credentials of an active user and start a session.

        Every failure raises the same Unauthorized message so callers cannot
        tell which factor was wrong.
        """
        email = (email or "").strip().lower()
        user = (
            self._live_users()
            .filter(User.email == email, User.active.is_(True))
            .first()
        )
        if user is None:
            # Unknown emails pay the same bcrypt cost as a wrong password.
            self.infra.hasher.verify(password, self.infra.hasher.dummy_hash)
            logger.warning("Login failed: unknown or inactive email", extra={"email": email})
            raise Unauthorized(INVALID_CREDENTIALS, code="INVALID_CREDENTIALS")
        if not self.infra.hasher.verify(password, user.password_hash):
            logger.warning(
                "Login failed: wrong password",
                extra={"user_id": str(user.id), "email": email},
            )
            raise Unauthorized(INVALID_CREDENTIALS, code="INVALID_CREDENTIALS")

        tokens = self._issue(user)
        user.refresh_token = tokens.refresh_token
        user.last_login = utcnow()
        self.db.commit()
        self.db.refresh(user)
        logger.info(
            "Login succeeded",
            extra={"user_id": str(user.id), "email": user.email, "role": user.role.value},
        )
        return user, tokens

    def refresh(self, refresh_token: str | None) -> TokenPair:
        """
        Exchange the current refresh token for a new pair.

        The stored token is replaced in a conditional update keyed on the old
        value, so a replayed or concurrently reused token always fails.
        """
        if not refresh_token:
            raise Unauthorized("Refresh token not provided", code="MISSING_REFRESH_TOKEN")
        claims = self.infra.tokens.decode(refresh_token, TokenType.REFRESH)

        user = self._live_users().filter(User.id == claims.user_id).first()
        if user is None or not user.active:
            raise Unauthorized("User not found or inactive", code="USER_NOT_FOUND_OR_INACTIVE")
        stored = user.refresh_token or ""
        if not hmac.compare_digest(stored.encode("utf-8"), refresh_token.encode("utf-8")):
            logger.warning("Refresh token mismatch", extra={"user_id": str(user.id)})
            raise Unauthorized("Refresh token invalid", code="INVALID_REFRESH_TOKEN")

        tokens = self._issue(user)
        affected = (
            self.db.query(User)
            .filter(User.id == user.id, User.refresh_token == refresh_token)
            .update({User.refresh_token: tokens.refresh_token}, synchronize_session=False)
        )
        if affected != 1:
            self.db.rollback()
            raise Unauthorized("Refresh token invalid", code="INVALID_REFRESH_TOKEN")
        self.db.commit()
        logger.info("Tokens refreshed", extra={"user_id": str(user.id)})
        return tokens

    def logout(self, user_id: uuid.UUID) -> None:
        """Clear the stored refresh token; the current session can no longer be renewed."""
        user = self._get_live_user(user_id)
        user.refresh_token = None
        self.db.commit()
        logger.info("Logout", extra={"user_id": str(user.id), "email": user.email})

    # Passwords

    def change_password(
        self,
        user_id: uuid.UUID,
        current_password: str | None,
        new_password: str,
        actor: User,
    ) -> None:
        """
        Set a new password. Users changing their own password must confirm the
        current one; administrators resetting someone else's skip that check.
        """
        user = self._get_live_user(user_id)
        is_own = user.id == actor.id
        if not is_own and actor.role != UserRole.ADMIN:
            raise Forbidden("Only administrators can change other users' passwords")
        if is_own:
            if not current_password:
                raise ValidationError(
                    "Current password is required",
                    errors=[{"field": "currentPassword", "message": "Current password is required"}],
                )
            if not self.infra.hasher.verify(current_password, user.password_hash):
                logger.warning("Password change refused: wrong current password", extra={"user_id": str(user.id)})
                raise ValidationError("Current password is incorrect", code="INVALID_CURRENT_PASSWORD")

        user.password_hash = self.infra.hasher.hash(new_password)
        self.db.commit()
        logger.info(
            "Password changed",
            extra={
                "user_id": str(user.id),
                "updated_by": str(actor.id),
                "is_own_password": is_own,
            },
        )

    # User management

    def create_user(self, data: UserCreate, creator: User) -> User:
        email = data.email.strip().lower()
        if self._email_taken(email):
            raise Conflict("A user with this email already exists", code="EMAIL_IN_USE")
        user = User(
            name=data.name.strip(),
            email=email,
            password_hash=self.infra.hasher.hash(data.password),
            role=data.role,
            active=data.active,
        )
        self.db.add(user)
        self._commit_user_change()
        self.db.refresh(user)
        logger.info(
            "User registered",
            extra={
                "user_id": str(user.id),
                "email": user.email,
                "role": user.role.value,
                "created_by": str(creator.id),
            },
        )
        return user

    def get_user(self, user_id: uuid.UUID) -> User:
        return self._get_live_user(user_id)

    def list_users(
        self,
        page: int = 1,
        limit: int = 10,
        search: str | None = None,
        role: UserRole | None = None,
        active: bool | None = None,
    ) -> tuple[list[User], Pagination]:
        query = self._live_users()
        if role is not None:
            query = query.filter(User.role == role)
        if active is not None:
            query = query.filter(User.active.is_(active))
        if search and search.strip():
            term = f"%{search.strip()}%"
            query = query.filter(or_(User.name.ilike(term), User.email.ilike(term)))
        total = query.count()
        rows = query.order_by(User.name.asc()).offset((page - 1) * limit).limit(limit).all()
        return rows, Pagination.build(page, limit, total)

    def update_user(self, user_id: uuid.UUID, patch: UserUpdate, updater: User) -> User:
        user = self._get_live_user(user_id)
        changes = patch.model_dump(exclude_unset=True, exclude_none=True)

        if user.id == updater.id and changes.get("active") is False:
            raise ValidationError("You cannot deactivate your own account")
        if "role" in changes and changes["role"] != user.role and updater.role != UserRole.ADMIN:
            raise Forbidden("Only administrators can change roles")
        if "email" in changes:
            changes["email"] = changes["email"].strip().lower()
            if changes["email"] != user.email and self._email_taken(changes["email"], exclude_id=user.id):
                raise Conflict("A user with this email already exists", code="EMAIL_IN_USE")

        for field, value in changes.items():
            setattr(user, field, value)
        if changes.get("active") is False:
            user.refresh_token = None
        self._commit_user_change()
        self.db.refresh(user)
        logger.info(
            "User updated",
            extra={
                "user_id": str(user.id),
                "updated_by": str(updater.id),
                "changes": sorted(changes),
            },
        )
        return user

    def update_profile(self, user: User, patch: ProfileUpdate) -> User:
        """Self-service edit of name and email."""
        return self.update_user(
            user.id,
            UserUpdate(**patch.model_dump(exclude_unset=True, exclude_none=True)),
            user,
        )

    def delete_user(self, user_id: uuid.UUID, remover: User) -> None:
        user = self._get_live_user(user_id)
        if user.id == remover.id:
            raise ValidationError("You cannot delete your own account")
        user.deleted_at = utcnow()
        user.refresh_token = None
        self.db.commit()
        logger.info(
            "User removed",
            extra={"user_id": str(user.id), "email": user.email, "deleted_by": str(remover.id)},
        )

    def is_email_available(self, email: str) -> bool:
        return not self._email_taken(email)

    def user_statistics(self) -> dict[str, int]:
        base = self._live_users()
        since = utcnow() - timedelta(days=STATISTICS_RECENT_DAYS)
        return {
            "total": base.count(),
            "active": base.filter(User.active.is_(True)).count(),
            "admins": base.filter(User.role == UserRole.ADMIN).count(),
            "secretaries": base.filter(User.role == UserRole.SECRETARY).count(),
            "last_month": base.filter(User.created_at >= since).count(),
        }
