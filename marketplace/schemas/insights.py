"""
Pydantic v2 schemas for ``GET /api/milestones/insights``.

Mirrors the three read-only derivations of the insights engine: health
summary, ordered recommendations and completion predictions.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from marketplace.schemas.milestone import MilestoneResponse


class InsightsSummary(BaseModel):
    """Health score and counters for one booking.

    Attributes:
        health_score: 0–100 after penalties, bonuses and clamping.
        completion_rate: Completed milestones as a percentage.
        task_completion_rate: Completed tasks as a percentage.
    """

    health_score: int = Field(..., ge=0, le=100)
    total_milestones: int
    completed_milestones: int
    in_progress_milestones: int
    overdue_milestones: int
    total_tasks: int
    completed_tasks: int
    overdue_tasks: int
    completion_rate: float
    task_completion_rate: float


class Recommendation(BaseModel):
    type: Literal["urgent", "warning", "info"]
    title: str
    description: str
    action: str
    priority: Literal["low", "medium", "high"]


class Predictions(BaseModel):
    """Completion forecast.

    Attributes:
        completion_rate: Completed share of estimated hours (0–1).
        average_daily_hours: Velocity used for the projection.
        risk_level: "low", "medium" or "high".
    """

    estimated_completion: datetime
    estimated_days_to_complete: float
    completion_rate: float
    average_daily_hours: float
    risk_level: Literal["low", "medium", "high"]
    total_estimated_hours: float
    completed_hours: float
    remaining_hours: float


class InsightsResponse(BaseModel):
    success: bool = True
    insights: InsightsSummary
    recommendations: list[Recommendation]
    predictions: Predictions
    milestones: list[MilestoneResponse]
