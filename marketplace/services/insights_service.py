"""
Read-only project insights derived from a booking's milestones and tasks.

The derivations are pure functions over immutable snapshots and an explicit
``now`` so they can be evaluated without a database:

- ``calculate_insights`` — health score (0–100) and counters.
- ``generate_recommendations`` — fixed, ordered rule list.
- ``calculate_predictions`` — velocity-based completion forecast and risk level.

``get_booking_insights`` loads the snapshots for one booking and assembles the
``GET /api/milestones/insights`` response.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from marketplace.config import get_settings
from marketplace.models.booking import Booking
from marketplace.models.milestone import Milestone
from marketplace.schemas.insights import (
    InsightsResponse,
    InsightsSummary,
    Predictions,
    Recommendation,
)
from marketplace.schemas.milestone import MilestoneResponse
from marketplace.utils import constants as c

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TaskSnapshot:
    status: str
    due_date: datetime | None = None


@dataclass(frozen=True)
class MilestoneSnapshot:
    status: str
    progress_percentage: int = 0
    due_date: datetime | None = None
    start_date: datetime | None = None
    estimated_hours: float = 0.0
    tasks: tuple[TaskSnapshot, ...] = field(default_factory=tuple)


def _is_overdue(due_date: datetime | None, item_status: str, now: datetime) -> bool:
    return due_date is not None and due_date < now and item_status != "completed"


# ---------------------------------------------------------------------------
# Health score
# ---------------------------------------------------------------------------


def calculate_insights(milestones: list[MilestoneSnapshot], now: datetime) -> InsightsSummary:
    """Compute the health score and the counters it is based on.

    Starts at 100, subtracts 15 per overdue milestone and 5 per overdue task,
    applies the completion-rate penalties and bonuses, then clamps to [0, 100].
    """
    total_milestones = len(milestones)
    completed_milestones = sum(1 for m in milestones if m.status == "completed")
    in_progress_milestones = sum(1 for m in milestones if m.status == "in_progress")
    overdue_milestones = sum(1 for m in milestones if _is_overdue(m.due_date, m.status, now))

    tasks = [t for m in milestones for t in m.tasks]
    total_tasks = len(tasks)
    completed_tasks = sum(1 for t in tasks if t.status == "completed")
    overdue_tasks = sum(1 for t in tasks if _is_overdue(t.due_date, t.status, now))

    completion_rate = completed_milestones / total_milestones * 100 if total_milestones else 0.0
    task_completion_rate = completed_tasks / total_tasks * 100 if total_tasks else 0.0

    score = c.HEALTH_BASE
    score -= overdue_milestones * c.HEALTH_PENALTY_OVERDUE_MILESTONE
    score -= overdue_tasks * c.HEALTH_PENALTY_OVERDUE_TASK
    if completion_rate < 50:
        score -= c.HEALTH_PENALTY_LOW_MILESTONE_RATE
    if task_completion_rate < 30:
        score -= c.HEALTH_PENALTY_LOW_TASK_RATE
    if completion_rate > 80:
        score += c.HEALTH_BONUS_HIGH_MILESTONE_RATE
    if task_completion_rate > 70:
        score += c.HEALTH_BONUS_HIGH_TASK_RATE
    score = max(0, min(100, score))

    return InsightsSummary(
        health_score=score,
        total_milestones=total_milestones,
        completed_milestones=completed_milestones,
        in_progress_milestones=in_progress_milestones,
        overdue_milestones=overdue_milestones,
        total_tasks=total_tasks,
        completed_tasks=completed_tasks,
        overdue_tasks=overdue_tasks,
        completion_rate=completion_rate,
        task_completion_rate=task_completion_rate,
    )


# ---------------------------------------------------------------------------
# Recommendations
# ---------------------------------------------------------------------------


def generate_recommendations(
    milestones: list[MilestoneSnapshot], now: datetime
) -> list[Recommendation]:
    insights = calculate_insights(milestones, now)
    recommendations: list[Recommendation] = []

    if insights.overdue_milestones > 0:
        recommendations.append(Recommendation(
            type="urgent",
            title="Overdue Milestones",
            description=f"{insights.overdue_milestones} milestone(s) are overdue",
            action="Review and update due dates or reassign resources",
            priority="high",
        ))

    if insights.overdue_tasks > 0:
        recommendations.append(Recommendation(
            type="warning",
            title="Overdue Tasks",
            description=f"{insights.overdue_tasks} task(s) are overdue",
            action="Prioritize and complete overdue tasks",
            priority="medium",
        ))

    if insights.health_score < c.LOW_HEALTH_THRESHOLD:
        recommendations.append(Recommendation(
            type="info",
            title="Project Health Low",
            description="Project health score is below optimal",
            action="Focus on completing in-progress items and reducing bottlenecks",
            priority="high",
        ))

    if insights.in_progress_milestones > c.MAX_PARALLEL_MILESTONES:
        recommendations.append(Recommendation(
            type="info",
            title="Resource Spread",
            description="Many milestones in progress simultaneously",
            action="Consider focusing on fewer milestones at once for better efficiency",
            priority="medium",
        ))

    return recommendations


# ---------------------------------------------------------------------------
# Predictions
# ---------------------------------------------------------------------------


def days_since_start(milestones: list[MilestoneSnapshot], now: datetime) -> int:
    """Whole days since the earliest milestone start date, at least 1."""
    start_dates = [m.start_date for m in milestones if m.start_date is not None]
    if not start_dates:
        return 1
    elapsed = (now - min(start_dates)).total_seconds() / 86400
    return max(1, math.floor(elapsed))


def calculate_predictions(
    milestones: list[MilestoneSnapshot],
    now: datetime,
    default_daily_hours: float | None = None,
) -> Predictions:
    if default_daily_hours is None:
        default_daily_hours = get_settings().DEFAULT_DAILY_VELOCITY_HOURS

    total_hours = sum(float(m.estimated_hours or 0) for m in milestones)
    completed_hours = 0.0
    for m in milestones:
        if m.status == "completed":
            completed_hours += float(m.estimated_hours or 0)
        elif m.status == "in_progress":
            completed_hours += float(m.estimated_hours or 0) * (m.progress_percentage or 0) / 100
    remaining_hours = total_hours - completed_hours
    completion_rate = completed_hours / total_hours if total_hours > 0 else 0.0

    if completion_rate > 0:
        daily_hours = completed_hours / max(1, days_since_start(milestones, now))
    else:
        daily_hours = default_daily_hours
    estimated_days = (
        remaining_hours / daily_hours if daily_hours > 0 else float(c.DEFAULT_DAYS_TO_COMPLETE)
    )

    overdue = sum(1 for m in milestones if _is_overdue(m.due_date, m.status, now))
    if overdue > c.RISK_HIGH_OVERDUE_COUNT or completion_rate < c.RISK_HIGH_COMPLETION_RATE:
        risk = "high"
    elif overdue > 0 or completion_rate < c.RISK_MEDIUM_COMPLETION_RATE:
        risk = "medium"
    else:
        risk = "low"

    return Predictions(
        estimated_completion=now + timedelta(days=estimated_days),
        estimated_days_to_complete=estimated_days,
        completion_rate=completion_rate,
        average_daily_hours=daily_hours,
        risk_level=risk,
        total_estimated_hours=total_hours,
        completed_hours=completed_hours,
        remaining_hours=remaining_hours,
    )


# ---------------------------------------------------------------------------
# Database adapter
# ---------------------------------------------------------------------------


def snapshot(milestone: Milestone) -> MilestoneSnapshot:
    return MilestoneSnapshot(
        status=milestone.status,
        progress_percentage=milestone.progress_percentage or 0,
        due_date=milestone.due_date,
        start_date=milestone.start_date,
        estimated_hours=float(milestone.estimated_hours or 0),
        tasks=tuple(TaskSnapshot(status=t.status, due_date=t.due_date) for t in milestone.tasks),
    )


def get_booking_insights(
    db: Session, booking: Booking, now: datetime | None = None
) -> InsightsResponse:
    now = now or datetime.utcnow()
    milestones = (
        db.query(Milestone)
        .filter(Milestone.booking_id == booking.id)
        .order_by(Milestone.order_index)
        .all()
    )
    snapshots = [snapshot(m) for m in milestones]
    logger.debug("Computing insights for booking %s over %d milestones", booking.id, len(snapshots))
    return InsightsResponse(
        insights=calculate_insights(snapshots, now),
        recommendations=generate_recommendations(snapshots, now),
        predictions=calculate_predictions(snapshots, now),
        milestones=[MilestoneResponse.model_validate(m) for m in milestones],
    )
