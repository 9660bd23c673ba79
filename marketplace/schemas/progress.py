"""
Pydantic v2 schemas for the ``/api/progress`` endpoints.

Progress values are integers in 0–100. Aggregation failures for one level
are reported in ``*_error`` fields so that a single recompute request can
succeed partially.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator

from marketplace.schemas.milestone import MilestoneResponse


class ProgressCalculateRequest(BaseModel):
    """Body of ``POST /api/progress/calculate``; at least one id is required."""

    booking_id: str | None = None
    milestone_id: str | None = None
    task_id: str | None = None

    @model_validator(mode="after")
    def _require_one_id(self) -> "ProgressCalculateRequest":
        if not (self.booking_id or self.milestone_id or self.task_id):
            raise ValueError(
                "At least one ID (booking_id, milestone_id, or task_id) is required"
            )
        return self


class BookingProgressData(BaseModel):
    project_progress: int
    status: str
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class MilestoneProgressData(BaseModel):
    progress_percentage: int
    status: str
    completed_tasks: int
    total_tasks: int
    updated_at: datetime | None = None


class TaskProgressData(BaseModel):
    progress_percentage: int
    status: str
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class ProgressResults(BaseModel):
    """Per-level outcome of a recompute request."""

    booking_progress: int | None = None
    booking_data: BookingProgressData | None = None
    booking_error: str | None = None
    milestone_data: MilestoneProgressData | None = None
    milestone_error: str | None = None
    task_data: TaskProgressData | None = None
    task_error: str | None = None


class ProgressCalculateResponse(BaseModel):
    success: bool = True
    results: ProgressResults
    timestamp: datetime


class ProgressAnalytics(BaseModel):
    """Counters shown on the booking progress card.

    Attributes:
        booking_progress: Persisted weighted ``project_progress``.
        milestone_progress: Unweighted mean of milestone progress, rounded.
    """

    booking_id: str
    booking_progress: int = Field(..., ge=0, le=100)
    booking_status: str
    total_milestones: int
    completed_milestones: int
    total_tasks: int
    completed_tasks: int
    milestone_progress: int = Field(..., ge=0, le=100)


class ProgressAnalyticsResponse(BaseModel):
    success: bool = True
    analytics: ProgressAnalytics
    timestamp: datetime


class BookingProgressResponse(BaseModel):
    """Booking progress with its ordered milestones and their tasks."""

    booking_id: str
    booking_number: str | None = None
    status: str
    project_progress: int
    milestones: list[MilestoneResponse] = Field(default_factory=list)
