"""Explicit infrastructure handed to services at construction time."""

from dataclasses import dataclass

from sqlalchemy.orm import Session

from app.core.security import PasswordHasher, TokenIssuer
from app.services.notifications import Notifier


@dataclass
class Infrastructure:
    """
    Everything a request-scoped service needs from the outside world.

    Built per request by the API dependencies; tests build one around an
    in-memory database and fakes.
    """

    db: Session
    hasher: PasswordHasher
    tokens: TokenIssuer
    notifier: Notifier
    approve_max_attempts: int = 3
