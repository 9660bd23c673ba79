"""Pydantic v2 schemas for the ``/api/bookings`` endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from marketplace.schemas.common import PaginationMeta


class BookingCreate(BaseModel):
    """Payload for ``POST /api/bookings`` (clients only)."""

    service_id: str = Field(..., min_length=1)
    title: str | None = Field(default=None, max_length=300)
    start_time: datetime | None = None
    end_time: datetime | None = None


class BookingResponse(BaseModel):
    id: str
    booking_number: str | None = None
    title: str | None = None
    client_id: str
    provider_id: str | None = None
    service_id: str | None = None
    status: str
    project_progress: int
    service_type: str | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    total_cost: float | None = None
    currency: str
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class BookingListResponse(BaseModel):
    bookings: list[BookingResponse]
    pagination: PaginationMeta
