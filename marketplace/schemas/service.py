"""
Pydantic v2 schemas for the ``/api/services`` catalog endpoints.

The list response enriches each service with provider details and booking
statistics so that catalog cards can render without extra round-trips.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from marketplace.schemas.common import PaginationMeta

Currency = Literal["OMR", "USD", "EUR"]


class ServiceCreate(BaseModel):
    """Payload for ``POST /api/services`` (providers only)."""

    title: str = Field(..., min_length=3, max_length=100)
    description: str = Field(..., min_length=10, max_length=1000)
    category: str = Field(..., min_length=2, max_length=50)
    base_price: float = Field(..., gt=0)
    currency: Currency = "OMR"
    estimated_duration: str | None = None
    location: str | None = None
    tags: list[str] | None = None
    requirements: str | None = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Monthly content package",
                "description": "Twelve blog posts and thirty social media posts per month.",
                "category": "content",
                "base_price": 250.0,
                "currency": "OMR",
                "tags": ["content", "social"],
            }
        }
    )


class ServiceUpdate(BaseModel):
    """Payload for ``PUT /api/services``: the target id plus a partial update."""

    service_id: str = Field(..., min_length=1)
    title: str | None = Field(default=None, min_length=3, max_length=100)
    description: str | None = Field(default=None, min_length=10, max_length=1000)
    category: str | None = Field(default=None, min_length=2, max_length=50)
    base_price: float | None = Field(default=None, gt=0)
    currency: Currency | None = None
    estimated_duration: str | None = None
    location: str | None = None
    tags: list[str] | None = None
    requirements: str | None = None


class ServiceResponse(BaseModel):
    id: str
    provider_id: str
    title: str
    description: str
    category: str
    status: str
    approval_status: str
    base_price: float
    currency: str
    estimated_duration: str | None = None
    location: str | None = None
    tags: list[str] | None = None
    requirements: str | None = None
    featured: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class ServiceListItem(ServiceResponse):
    """Catalog row enriched with provider and booking statistics."""

    provider_name: str
    provider_email: str
    booking_count: int
    total_revenue: float


class ServiceListResponse(BaseModel):
    services: list[ServiceListItem]
    pagination: PaginationMeta


class ServiceWriteResponse(BaseModel):
    success: bool = True
    service: ServiceResponse
    message: str
