"""
Business logic for tasks, the leaf level of the progress hierarchy.

Task status moves follow ``constants.TASK_TRANSITIONS``; ``completed`` and
``cancelled`` are terminal. Completing a task forces its
``progress_percentage`` to 100. Each write recomputes the parent milestone
and the booking in the same transaction.
"""

from __future__ import annotations

import logging

from fastapi import HTTPException, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from marketplace.database import new_id
from marketplace.models.milestone import Milestone
from marketplace.models.profile import Profile
from marketplace.models.task import Task
from marketplace.realtime import SubscriptionRegistry
from marketplace.schemas.task import TaskCreate, TaskResponse, TaskUpdate
from marketplace.services import progress_service
from marketplace.services.auth_service import ensure_booking_editor, ensure_booking_reader
from marketplace.services.milestone_service import (
    get_booking_or_404,
    get_milestone_or_404,
)
from marketplace.utils.constants import TASK_TRANSITIONS

logger = logging.getLogger(__name__)

_NULLABLE_FIELDS = frozenset({"description", "due_date"})


def get_task_or_404(db: Session, task_id: str) -> Task:
    task = db.query(Task).filter(Task.id == task_id).first()
    if task is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Task '{task_id}' not found",
        )
    return task


def check_transition(current: str, target: str) -> None:
    """Raise 422 unless *current* → *target* is an allowed task move.

    Setting the same status again is a no-op and always allowed.
    """
    if current == target:
        return
    allowed = TASK_TRANSITIONS.get(current, [])
    if target not in allowed:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={
                "error": "INVALID_TRANSITION",
                "message": f"Cannot move task from '{current}' to '{target}'",
                "current_status": current,
                "attempted_status": target,
                "allowed": allowed,
            },
        )


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


def list_tasks(
    db: Session,
    user: Profile,
    milestone_id: str | None = None,
    booking_id: str | None = None,
    task_id: str | None = None,
) -> list[TaskResponse]:
    """List tasks by task, milestone or booking id (first one given wins)."""
    if task_id:
        task = get_task_or_404(db, task_id)
        ensure_booking_reader(task.milestone.booking, user)
        return [TaskResponse.model_validate(task)]

    if milestone_id:
        milestone = get_milestone_or_404(db, milestone_id)
        ensure_booking_reader(milestone.booking, user)
        rows = (
            db.query(Task)
            .filter(Task.milestone_id == milestone_id)
            .order_by(Task.order_index, Task.created_at)
            .all()
        )
        return [TaskResponse.model_validate(t) for t in rows]

    if booking_id:
        booking = get_booking_or_404(db, booking_id)
        ensure_booking_reader(booking, user)
        rows = (
            db.query(Task)
            .join(Milestone, Task.milestone_id == Milestone.id)
            .filter(Milestone.booking_id == booking_id)
            .order_by(Milestone.order_index, Task.order_index)
            .all()
        )
        return [TaskResponse.model_validate(t) for t in rows]

    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail="One of task_id, milestone_id or booking_id is required",
    )


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------


def add_task(
    db: Session,
    data: TaskCreate,
    user: Profile,
    registry: SubscriptionRegistry | None = None,
) -> TaskResponse:
    milestone = get_milestone_or_404(db, data.milestone_id)
    ensure_booking_editor(milestone.booking, user)

    next_index = (
        db.query(func.count(Task.id)).filter(Task.milestone_id == milestone.id).scalar() or 0
    )
    task = Task(
        id=new_id(),
        milestone_id=milestone.id,
        title=data.title,
        description=data.description,
        due_date=data.due_date,
        priority=data.priority,
        estimated_hours=data.estimated_hours,
        status=data.status,
        progress_percentage=100 if data.status == "completed" else 0,
        order_index=next_index,
        editable=True,
        created_by=user.id,
    )
    db.add(task)
    progress_service.recompute_from_milestone(
        db, milestone.id, registry, booking_id=milestone.booking_id
    )
    db.refresh(task)
    logger.info("Task %s created on milestone %s", task.id, milestone.id)
    return TaskResponse.model_validate(task)


def update_task(
    db: Session,
    task_id: str,
    data: TaskUpdate,
    user: Profile,
    registry: SubscriptionRegistry | None = None,
) -> TaskResponse:
    """Apply a partial update, validating any status move.

    Raises:
        HTTPException 403: Caller may not edit the booking or the task is locked.
        HTTPException 404: Task not found.
        HTTPException 422: Status move not allowed.
    """
    task = get_task_or_404(db, task_id)
    ensure_booking_editor(task.milestone.booking, user)
    if not task.editable:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="This task is locked and cannot be edited",
        )

    updates = {
        k: v for k, v in data.model_dump(exclude_unset=True).items()
        if v is not None or k in _NULLABLE_FIELDS
    }
    if "status" in updates:
        check_transition(task.status, updates["status"])

    for field, value in updates.items():
        setattr(task, field, value)
    if task.status == "completed":
        task.progress_percentage = 100

    progress_service.recompute_from_milestone(
        db, task.milestone_id, registry, booking_id=task.milestone.booking_id
    )
    db.refresh(task)
    logger.info("Task %s updated fields=%s status=%s", task.id, sorted(updates), task.status)
    return TaskResponse.model_validate(task)


def delete_task(
    db: Session,
    task_id: str,
    user: Profile,
    registry: SubscriptionRegistry | None = None,
) -> None:
    task = get_task_or_404(db, task_id)
    ensure_booking_editor(task.milestone.booking, user)
    if not task.editable:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="This task is locked and cannot be deleted",
        )
    milestone_id = task.milestone_id
    booking_id = task.milestone.booking_id
    db.delete(task)
    progress_service.recompute_from_milestone(db, milestone_id, registry, booking_id=booking_id)
    logger.info("Task %s deleted from milestone %s", task_id, milestone_id)
