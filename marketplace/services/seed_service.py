"""Seed a booking's milestones and tasks from a predefined plan."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from marketplace.database import new_id
from marketplace.models.milestone import Milestone
from marketplace.models.profile import Profile
from marketplace.models.task import Task
from marketplace.realtime import SubscriptionRegistry
from marketplace.schemas.seed import SeededMilestone, SeedRequest, SeedResponse
from marketplace.services import progress_service
from marketplace.services.milestone_service import get_booking_or_404
from marketplace.utils.milestone_templates import resolve_plan

logger = logging.getLogger(__name__)


def seed_milestones(
    db: Session,
    data: SeedRequest,
    user: Profile,
    registry: SubscriptionRegistry | None = None,
    now: datetime | None = None,
) -> SeedResponse:
    """Create the plan's milestones and tasks, all ``pending`` at 0 %.

    Raises:
        HTTPException 403: Caller is not the booking's provider or an admin.
        HTTPException 404: Booking not found.
        HTTPException 409: The booking already has milestones.
    """
    booking = get_booking_or_404(db, data.booking_id)
    if not (user.role == "admin" or booking.provider_id == user.id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only providers can seed milestones",
        )

    existing = db.query(Milestone).filter(Milestone.booking_id == booking.id).count()
    if existing > 0:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Milestones already exist for this booking",
        )

    plan_key, templates = resolve_plan(data.plan)
    if plan_key != data.plan:
        logger.info("Unknown plan '%s', falling back to '%s'", data.plan, plan_key)

    base = now or datetime.utcnow()
    created: list[SeededMilestone] = []
    for order, tpl in enumerate(templates):
        milestone = Milestone(
            id=new_id(),
            booking_id=booking.id,
            title=tpl.title,
            status="pending",
            priority=tpl.priority,
            progress_percentage=0,
            weight=tpl.weight,
            order_index=order,
            editable=True,
            due_date=base + timedelta(days=tpl.due_in_days),
            estimated_hours=tpl.estimated_hours,
            actual_hours=0,
        )
        db.add(milestone)
        hours = tpl.task_hours()
        for task_order, title in enumerate(tpl.tasks):
            db.add(Task(
                id=new_id(),
                milestone_id=milestone.id,
                title=title,
                description="",
                status="pending",
                priority="normal",
                progress_percentage=0,
                estimated_hours=hours,
                actual_hours=0,
                order_index=task_order,
                editable=True,
                created_by=user.id,
            ))
        created.append(SeededMilestone(milestone_id=milestone.id, task_count=len(tpl.tasks)))

    booking.service_type = plan_key
    progress_service.recompute_booking(db, booking.id, registry)
    logger.info(
        "Seeded booking %s with plan '%s' (%d milestones)", booking.id, plan_key, len(created)
    )
    return SeedResponse(plan=plan_key, created=created)
