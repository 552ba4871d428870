"""
Pydantic v2 schemas shared by every RxDesk route module.

Every response is wrapped in the ``{"success": ..., "data": ...}`` envelope;
errors are rendered as ``{"success": false, "error": ...}`` by the exception
handlers in ``rxdesk.main``.
"""

from __future__ import annotations

from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class PaginationMeta(BaseModel):
    """Pagination metadata included in every paginated response."""

    page: int = Field(ge=1, description="Current page number (1-indexed)")
    page_size: int = Field(ge=1, description="Number of items per page")
    total_items: int = Field(ge=0, description="Total number of matching items")
    total_pages: int = Field(ge=0, description="Total number of pages")


class Envelope(BaseModel, Generic[T]):
    """Uniform success envelope."""

    success: bool = True
    data: T
    meta: Optional[PaginationMeta] = None


class ErrorEnvelope(BaseModel):
    success: bool = False
    error: str


def page_meta(result) -> PaginationMeta:
    """Build ``PaginationMeta`` from a service-layer ``PaginatedResult``."""
    return PaginationMeta(
        page=result.page,
        page_size=result.page_size,
        total_items=result.total_items,
        total_pages=result.total_pages,
    )
