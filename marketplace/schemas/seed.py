"""Pydantic v2 schemas for ``POST /api/milestones/seed``."""

from __future__ import annotations

from pydantic import BaseModel, Field


class SeedRequest(BaseModel):
    """Seed a booking from a milestone plan.

    Unknown plan keys fall back to ``content_creation``.
    """

    booking_id: str = Field(..., min_length=1)
    plan: str = Field(default="content_creation", max_length=50)


class SeededMilestone(BaseModel):
    milestone_id: str
    task_count: int


class SeedResponse(BaseModel):
    success: bool = True
    plan: str
    created: list[SeededMilestone]
