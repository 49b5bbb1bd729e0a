"""Alembic environment for the parish office schema (users, access_requests)."""

import logging
import os
from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine
from sqlalchemy.pool import NullPool

os.environ.setdefault("APP_ENV", "dev")
from app.core.config import settings
from app.models import AccessRequest, Base, User  # noqa: F401  (registers tables)

config = context.config
if config.config_file_name is not None:
    try:
        fileConfig(config.config_file_name)
    except KeyError:
        # alembic.ini carries no logging sections; fall back to basic logging.
        logging.basicConfig(level=settings.LOG_LEVEL)

logger = logging.getLogger("alembic.env")

target_metadata = Base.metadata

CONFIGURE_OPTS = {
    "target_metadata": target_metadata,
    # Enum value sets and partial indexes are part of the contract; diff them too.
    "compare_type": True,
    "compare_server_default": True,
}


def _skip_empty_revisions(context_, revision, directives) -> None:
    """Do not write an autogenerate revision when the models match the database."""
    if getattr(config.cmd_opts, "autogenerate", False):
        script = directives[0]
        if script.upgrade_ops.is_empty():
            directives[:] = []
            logger.info("No schema changes detected; revision not created")


def run_migrations_offline() -> None:
    """Emit SQL for the migrations without connecting."""
    context.configure(
        url=settings.DATABASE_URL,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **CONFIGURE_OPTS,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Apply the migrations against DATABASE_URL."""
    engine = create_engine(settings.DATABASE_URL, poolclass=NullPool)
    with engine.connect() as connection:
        context.configure(
            connection=connection,
            process_revision_directives=_skip_empty_revisions,
            **CONFIGURE_OPTS,
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
