"""Shared response envelope, camelCase base model and pagination schema."""

from typing import Generic, TypeVar

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """Base model exposing camelCase JSON keys while accepting snake_case too."""

    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "from_attributes": True,
    }


class ApiResponse(CamelModel, Generic[T]):
    """Standard success envelope: {success, message, data}."""

    success: bool = True
    message: str | None = None
    data: T | None = None


class Pagination(CamelModel):
    """Page metadata returned with every list endpoint."""

    current_page: int
    total_pages: int
    total_items: int
    items_per_page: int
    has_next_page: bool
    has_prev_page: bool

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        total_pages = (total + limit - 1) // limit if limit else 0
        return cls(
            current_page=page,
            total_pages=total_pages,
            total_items=total,
            items_per_page=limit,
            has_next_page=page < total_pages,
            has_prev_page=page > 1,
        )


class ErrorBody(BaseModel):
    """Error object inside the failure envelope (documentation only)."""

    message: str
    code: str = Field(..., description="Stable machine-readable error code")
    details: list[dict] | None = None


class ErrorResponse(BaseModel):
    success: bool = False
    error: ErrorBody
