"""Core app configuration, database, errors and security primitives."""

from app.core.config import get_settings, settings
from app.core.database import get_db
from app.core.errors import AppError, Conflict, Forbidden, NotFound, Unauthorized, ValidationError

__all__ = [
    "AppError",
    "Conflict",
    "Forbidden",
    "NotFound",
    "Unauthorized",
    "ValidationError",
    "get_db",
    "get_settings",
    "settings",
]
