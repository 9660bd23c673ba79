"""Pydantic v2 schemas for ``/api/reports``."""

from __future__ import annotations

from pydantic import BaseModel, Field


class MonthlyCount(BaseModel):
    month: str = Field(..., description="Calendar month, formatted YYYY-MM.")
    bookings: int


class BookingReportResponse(BaseModel):
    """Aggregate figures for the bookings report page.

    Attributes:
        by_status: Booking count per status.
        total_revenue: Sum of ``total_cost`` over paid and completed bookings.
        average_progress: Mean ``project_progress`` across all bookings in scope.
    """

    total_bookings: int
    by_status: dict[str, int]
    total_revenue: float
    average_progress: float
    completed_bookings: int
    monthly: list[MonthlyCount]
