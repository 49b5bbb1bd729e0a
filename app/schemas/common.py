"""Shared response envelope, pagination and the camelCase base model."""

import math
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from app.core.security import EMAIL_MAX_LEN

T = TypeVar("T")

PAGE_DEFAULT = 1
LIMIT_DEFAULT = 10
LIMIT_MAX = 100


class ApiModel(BaseModel):
    """Base for API models: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ApiResponse(ApiModel, Generic[T]):
    """Success envelope shared by every endpoint."""

    success: bool = True
    message: str
    data: T | None = None


class FieldError(ApiModel):
    field: str
    message: str


class ErrorResponse(ApiModel):
    """Error envelope shared by every endpoint."""

    success: bool = False
    message: str
    code: str | None = None
    errors: list[FieldError] | list[dict[str, Any]] | None = None


class Pagination(ApiModel):
    current_page: int
    total_pages: int
    total_items: int
    items_per_page: int

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        return cls(
            current_page=page,
            total_pages=math.ceil(total / limit) if limit else 0,
            total_items=total,
            items_per_page=limit,
        )


def normalize_email(value: str) -> str:
    """Trim and lower-case an email; all lookups and uniqueness use this form."""
    email = value.strip().lower()
    if len(email) > EMAIL_MAX_LEN:
        raise ValueError(f"Email must be at most {EMAIL_MAX_LEN} characters")
    return email


def ok(data: Any = None, message: str = "Operation completed successfully") -> ApiResponse[Any]:
    return ApiResponse(success=True, message=message, data=data)