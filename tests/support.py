"""Shared test wiring: SQLite stores (in-memory and file-backed), fast hasher and a recording notifier."""

import os
from unittest.mock import MagicMock

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.security import PasswordHasher, TokenIssuer
from app.models import Base, User, UserRole
from app.services.context import Infrastructure
from app.services.notifications import Notifier

ADMIN_INBOX = "office@example.com"

# Lowest bcrypt cost keeps the suite fast.
test_hasher = PasswordHasher(rounds=4)


def make_token_issuer(**overrides) -> TokenIssuer:
    params = {
        "secret": "test-access-secret-with-enough-length-123",
        "refresh_secret": "test-refresh-secret-with-enough-length-456",
        "algorithm": "HS256",
        "access_expire_minutes": 15,
        "refresh_expire_minutes": 60,
    }
    params.update(overrides)
    return TokenIssuer(**params)


def make_session_factory() -> sessionmaker:
    """Fresh in-memory database with every table created."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=True)


def make_file_session_factory(directory: str) -> sessionmaker:
    """File-backed database so two sessions hold independent connections and identity maps."""
    engine = create_engine(f"sqlite:///{os.path.join(directory, 'store.db')}")
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=True)


def make_notifier(transport: MagicMock | None = None) -> Notifier:
    return Notifier(
        transport if transport is not None else MagicMock(),
        admin_emails=[ADMIN_INBOX],
        frontend_url="http://frontend.example.com",
    )


def make_infra(db: Session, notifier: Notifier | None = None, **overrides) -> Infrastructure:
    return Infrastructure(
        db=db,
        hasher=test_hasher,
        tokens=overrides.pop("tokens", None) or make_token_issuer(),
        notifier=notifier or make_notifier(),
        **overrides,
    )


def add_user(
    db: Session,
    email: str = "admin@example.com",
    password: str = "admin-pass",
    role: UserRole = UserRole.ADMIN,
    name: str = "Office Admin",
    active: bool = True,
) -> User:
    user = User(
        name=name,
        email=email,
        password_hash=test_hasher.hash(password),
        role=role,
        active=active,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user
