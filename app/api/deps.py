"""FastAPI dependencies: infrastructure, services and the authorization guard."""

import logging
from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.database import get_db
from app.core.security import PasswordHasher, TokenIssuer
from app.models import User
from app.services import guard
from app.services.access_requests import AccessRequestWorkflow
from app.services.auth import AuthGateway
from app.services.context import Infrastructure
from app.services.guard import RoleRequirement
from app.services.notifications import Notifier

logger = logging.getLogger(__name__)


@lru_cache
def get_password_hasher() -> PasswordHasher:
    return PasswordHasher(rounds=get_settings().BCRYPT_ROUNDS)


@lru_cache
def get_token_issuer() -> TokenIssuer:
    return TokenIssuer.from_settings(get_settings())


@lru_cache
def get_notifier() -> Notifier:
    return Notifier.from_settings(get_settings())


def get_infrastructure(
    db: Annotated[Session, Depends(get_db)],
    hasher: Annotated[PasswordHasher, Depends(get_password_hasher)],
    tokens: Annotated[TokenIssuer, Depends(get_token_issuer)],
    notifier: Annotated[Notifier, Depends(get_notifier)],
) -> Infrastructure:
    """Request-scoped bundle of store session, hasher, token issuer and notifier."""
    return Infrastructure(
        db=db,
        hasher=hasher,
        tokens=tokens,
        notifier=notifier,
        approve_max_attempts=get_settings().APPROVE_MAX_ATTEMPTS,
    )


InfraDep = Annotated[Infrastructure, Depends(get_infrastructure)]


def get_workflow(infra: InfraDep) -> AccessRequestWorkflow:
    return AccessRequestWorkflow(infra)


def get_auth_gateway(infra: InfraDep) -> AuthGateway:
    return AuthGateway(infra)


def get_current_user(
    request: Request,
    infra: InfraDep,
    authorization: Annotated[str | None, Header()] = None,
) -> User:
    """Dependency: require a valid Bearer access token and return the live user. Raises 401 otherwise."""
    user = guard.authenticate(infra.db, infra.tokens, authorization)
    logger.debug(
        "Authenticated request",
        extra={
            "user_id": str(user.id),
            "user_role": user.role.value,
            "endpoint": request.url.path,
            "method": request.method,
        },
    )
    return user


def get_optional_user(
    infra: InfraDep,
    authorization: Annotated[str | None, Header()] = None,
) -> User | None:
    """Dependency: the authenticated user if a valid token was sent, else None."""
    return guard.optional_authenticate(infra.db, infra.tokens, authorization)


def _endpoint(request: Request) -> str:
    return f"{request.method} {request.url.path}"


def require_admin(
    request: Request,
    current_user: Annotated[User, Depends(get_current_user)],
) -> User:
    """Dependency: require role 'admin'. Raises 403 otherwise."""
    return guard.require_role(current_user, RoleRequirement.ADMIN, _endpoint(request))


def require_admin_or_secretary(
    request: Request,
    current_user: Annotated[User, Depends(get_current_user)],
) -> User:
    """Dependency: require role 'admin' or 'secretary'. Raises 403 otherwise."""
    return guard.require_role(current_user, RoleRequirement.ADMIN_OR_SECRETARY, _endpoint(request))


CurrentUserDep = Annotated[User, Depends(get_current_user)]
AdminDep = Annotated[User, Depends(require_admin)]
StaffDep = Annotated[User, Depends(require_admin_or_secretary)]
WorkflowDep = Annotated[AccessRequestWorkflow, Depends(get_workflow)]
GatewayDep = Annotated[AuthGateway, Depends(get_auth_gateway)]
