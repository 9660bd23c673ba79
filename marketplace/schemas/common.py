"""
Shared Pydantic v2 schemas reused across multiple modules.

Provides generic pagination and message response models so that each
domain module can compose them without duplicating field definitions.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class PaginationParams(BaseModel):
    """Pagination parameters for list endpoints.

    Attributes:
        page: 1-based page number.
        limit: Number of rows per page (capped at 100 to protect the DB).
    """

    page: int = Field(default=1, ge=1, description="Page number (1-based).")
    limit: int = Field(default=20, ge=1, le=100, description="Rows per page (max 100).")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class PaginationMeta(BaseModel):
    """Pagination block echoed back with every paginated list.

    Attributes:
        page: Current page.
        limit: Page size used.
        total: Total rows matching the filters.
        pages: Number of pages (``ceil(total / limit)``).
    """

    page: int
    limit: int
    total: int = Field(..., ge=0)
    pages: int = Field(..., ge=0)

    @classmethod
    def build(cls, pagination: PaginationParams, total: int) -> "PaginationMeta":
        pages = (total + pagination.limit - 1) // pagination.limit
        return cls(page=pagination.page, limit=pagination.limit, total=total, pages=pages)


class MessageResponse(BaseModel):
    """Generic message envelope for operations that do not return a resource.

    Attributes:
        success: Always ``True`` for 2xx responses.
        message: Short human-readable result summary.
        detail: Optional extended information.
    """

    success: bool = True
    message: str = Field(..., description="Summary of the operation result.")
    detail: str | None = Field(default=None, description="Additional context.")
