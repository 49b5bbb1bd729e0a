"""
Create a user (e.g. the first admin). Run from project root:
  python -m app.scripts.create_user EMAIL NAME PASSWORD [role]
Example:
  python -m app.scripts.create_user admin@parish.example "Office Admin" your-secure-password admin
"""
import argparse
import logging
import sys

from app.core.config import get_settings
from app.core.database import SessionLocal
from app.core.errors import Conflict
from app.core.security import PASSWORD_MAX_LEN, PASSWORD_MIN_LEN, PasswordHasher, TokenIssuer
from app.models import UserRole
from app.schemas.auth import UserCreate
from app.services.auth import AuthGateway
from app.services.context import Infrastructure
from app.services.notifications import LogTransport, Notifier

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)


class _Bootstrap:
    """Stands in for the acting user when no account exists yet."""

    id = "cli"
    email = "cli@localhost"
    role = UserRole.ADMIN


def main() -> int:
    parser = argparse.ArgumentParser(description="Create a back-office user (no access request needed).")
    parser.add_argument("email", help="Email address (used to log in)")
    parser.add_argument("name", help="Display name (2-100 chars)")
    parser.add_argument("password", help=f"Password ({PASSWORD_MIN_LEN}-{PASSWORD_MAX_LEN} chars)")
    parser.add_argument(
        "role",
        nargs="?",
        default=UserRole.ADMIN.value,
        choices=[r.value for r in UserRole],
    )
    args = parser.parse_args()

    try:
        data = UserCreate(name=args.name, email=args.email, password=args.password, role=args.role)
    except ValueError as e:
        print(f"Invalid input: {e}", file=sys.stderr)
        return 1

    settings = get_settings()
    db = SessionLocal()
    try:
        gateway = AuthGateway(
            Infrastructure(
                db=db,
                hasher=PasswordHasher(rounds=settings.BCRYPT_ROUNDS),
                tokens=TokenIssuer.from_settings(settings),
                notifier=Notifier(LogTransport(), enabled=False),
            )
        )
        try:
            user = gateway.create_user(data, _Bootstrap())
        except Conflict as e:
            print(e.message, file=sys.stderr)
            return 1
        print(f"Created user '{user.email}' with role '{user.role.value}'.")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
