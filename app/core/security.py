"""Password hashing and JWT creation/verification for authentication."""

import uuid
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import Enum
from functools import cached_property
from typing import TYPE_CHECKING, Any

import bcrypt
import jwt

from app.core.errors import Unauthorized

if TYPE_CHECKING:
    from app.core.config import Settings

# Min/max lengths for names, emails and passwords (input validation).
NAME_MIN_LEN = 2
NAME_MAX_LEN = 100
EMAIL_MAX_LEN = 150
PASSWORD_MIN_LEN = 6
PASSWORD_MAX_LEN = 128

# bcrypt only looks at the first 72 bytes of the password.
BCRYPT_MAX_BYTES = 72

BEARER_PREFIX = "Bearer "


class TokenType(str, Enum):
    ACCESS = "access"
    REFRESH = "refresh"


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


@dataclass(frozen=True)
class TokenClaims:
    """Verified claims of an access or refresh token."""

    user_id: uuid.UUID
    email: str
    role: str | None
    type: TokenType
    expires_at: datetime


class PasswordHasher:
    """One-way salted bcrypt hashing with a configurable cost factor."""

    def __init__(self, rounds: int = 12) -> None:
        self.rounds = rounds

    def hash(self, plain_password: str) -> str:
        """Hash a plain-text password for storage. Do not store plain passwords."""
        if not plain_password:
            raise ValueError("Password must be non-empty")
        pw_bytes = plain_password.encode("utf-8")[:BCRYPT_MAX_BYTES]
        return bcrypt.hashpw(pw_bytes, bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, plain_password: str, hashed: str | None) -> bool:
        """Verify a plain password against a stored hash."""
        if not plain_password or not hashed:
            return False
        pw_bytes = plain_password.encode("utf-8")[:BCRYPT_MAX_BYTES]
        try:
            return bcrypt.checkpw(pw_bytes, hashed.encode("utf-8"))
        except (ValueError, TypeError):
            return False

    @cached_property
    def dummy_hash(self) -> str:
        """Hash of a random throwaway password at this cost; verifying against it costs a real check."""
        return self.hash(uuid.uuid4().hex)


class TokenIssuer:
    """
    Creates and verifies signed, time-limited access and refresh tokens.

    Access and refresh tokens use different secrets, and every token carries a
    `type` claim, so one kind is never accepted where the other is required.
    A random `jti` makes each issued token unique, which matters for refresh
    rotation: two tokens minted in the same second must still differ.
    """

    def __init__(
        self,
        secret: str,
        refresh_secret: str,
        algorithm: str = "HS256",
        access_expire_minutes: int = 60,
        refresh_expire_minutes: int = 7 * 24 * 60,
    ) -> None:
        self._secrets = {TokenType.ACCESS: secret, TokenType.REFRESH: refresh_secret}
        self._lifetimes = {
            TokenType.ACCESS: timedelta(minutes=access_expire_minutes),
            TokenType.REFRESH: timedelta(minutes=refresh_expire_minutes),
        }
        self.algorithm = algorithm

    @classmethod
    def from_settings(cls, settings: "Settings") -> "TokenIssuer":
        return cls(
            secret=settings.JWT_SECRET.get_secret_value(),
            refresh_secret=settings.JWT_REFRESH_SECRET.get_secret_value(),
            algorithm=settings.JWT_ALGORITHM,
            access_expire_minutes=settings.JWT_EXPIRE_MINUTES,
            refresh_expire_minutes=settings.JWT_REFRESH_EXPIRE_MINUTES,
        )

    def _encode(self, token_type: TokenType, user_id: Any, email: str, role: str | None) -> str:
        now = datetime.now(UTC)
        payload: dict[str, Any] = {
            "sub": str(user_id),
            "email": email,
            "type": token_type.value,
            "jti": uuid.uuid4().hex,
            "iat": now,
            "exp": now + self._lifetimes[token_type],
        }
        if role is not None:
            payload["role"] = role
        return jwt.encode(payload, self._secrets[token_type], algorithm=self.algorithm)

    def create_access_token(self, user_id: Any, email: str, role: str) -> str:
        return self._encode(TokenType.ACCESS, user_id, email, role)

    def create_refresh_token(self, user_id: Any, email: str) -> str:
        return self._encode(TokenType.REFRESH, user_id, email, None)

    def issue_pair(self, user_id: Any, email: str, role: str) -> TokenPair:
        """Issue a fresh access + refresh token pair for a user."""
        return TokenPair(
            access_token=self.create_access_token(user_id, email, role),
            refresh_token=self.create_refresh_token(user_id, email),
        )

    def decode(self, token: str, expected_type: TokenType) -> TokenClaims:
        """
        Verify signature, expiry and type; return the claims.

        Raises Unauthorized with code TOKEN_EXPIRED, INVALID_TOKEN or
        INVALID_TOKEN_TYPE.
        """
        label = "Refresh token" if expected_type is TokenType.REFRESH else "Token"
        try:
            payload = jwt.decode(
                token,
                self._secrets[expected_type],
                algorithms=[self.algorithm],
                options={"require": ["sub", "exp", "type"]},
            )
        except jwt.ExpiredSignatureError as e:
            raise Unauthorized(f"{label} expired", code="TOKEN_EXPIRED") from e
        except jwt.PyJWTError as e:
            raise Unauthorized(f"{label} invalid", code="INVALID_TOKEN") from e

        if payload.get("type") != expected_type.value:
            raise Unauthorized("Invalid token type", code="INVALID_TOKEN_TYPE")
        try:
            user_id = uuid.UUID(str(payload["sub"]))
        except (TypeError, ValueError) as e:
            raise Unauthorized("Invalid token payload", code="INVALID_TOKEN") from e
        return TokenClaims(
            user_id=user_id,
            email=str(payload.get("email", "")),
            role=payload.get("role"),
            type=expected_type,
            expires_at=datetime.fromtimestamp(payload["exp"], UTC),
        )


def extract_bearer_token(auth_header: str | None) -> str | None:
    """Return the token from an `Authorization: Bearer <token>` header, or None."""
    if not auth_header or not auth_header.startswith(BEARER_PREFIX):
        return None
    token = auth_header[len(BEARER_PREFIX):].strip()
    return token or None
