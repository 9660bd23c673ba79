"""
Progress aggregation for the booking → milestone → task hierarchy.

Two aggregations are maintained:

- **Milestone progress**: ``round(completed_tasks / total_tasks * 100)``,
  0 when the milestone has no tasks. Only ``completed`` tasks count; an
  ``in_progress`` task earns no partial credit.
- **Booking progress**: ``round(Σ(progress_i · weight_i) / Σ weight_i)`` over
  the booking's milestones, 0 when the booking has no milestones or the total
  weight is zero.

Rounding is half-up (``ROUND_HALF_UP``), the same rule PostgreSQL applies to
``round()`` on numerics.

The ``recompute_*`` functions run both aggregations as one unit of work: the
booking row is locked with ``SELECT ... FOR UPDATE`` before any sibling rows
are read, the new values are flushed, and a single ``commit`` ends the
transaction. After the commit a ``progress_updated`` event is published on the
realtime registry when one is supplied.
"""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from fastapi import HTTPException, status
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from marketplace.models.booking import Booking
from marketplace.models.milestone import Milestone
from marketplace.models.task import Task
from marketplace.realtime import SubscriptionRegistry
from marketplace.schemas.progress import (
    BookingProgressData,
    MilestoneProgressData,
    ProgressAnalytics,
    ProgressCalculateRequest,
    ProgressResults,
    TaskProgressData,
)
from marketplace.utils.constants import PROGRESS_UPDATED_EVENT

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Pure arithmetic
# ---------------------------------------------------------------------------


def round_half_up(value: float | Decimal) -> int:
    """Round to the nearest integer, ties away from zero."""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def milestone_progress(completed: int, total: int) -> int:
    if total <= 0:
        return 0
    return round_half_up(Decimal(completed) * 100 / Decimal(total))


def weighted_progress(items: Iterable[tuple[int | float, int | float | Decimal]]) -> int:
    """Weight-normalised average of ``(progress, weight)`` pairs."""
    total_weight = Decimal(0)
    weighted_sum = Decimal(0)
    for progress, weight in items:
        w = Decimal(str(weight or 0))
        total_weight += w
        weighted_sum += Decimal(str(progress or 0)) * w
    if total_weight == 0:
        return 0
    return round_half_up(weighted_sum / total_weight)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _aggregation_failed(level: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={"field": level, "message": f"Failed to update {level}"},
    )


def _lock_booking(db: Session, booking_id: str) -> Booking:
    booking = (
        db.query(Booking)
        .filter(Booking.id == booking_id)
        .with_for_update()
        .first()
    )
    if booking is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Booking '{booking_id}' not found",
        )
    return booking


def _get_milestone(db: Session, milestone_id: str) -> Milestone:
    milestone = db.query(Milestone).filter(Milestone.id == milestone_id).first()
    if milestone is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Milestone '{milestone_id}' not found",
        )
    return milestone


def _task_counts(db: Session, milestone_id: str) -> tuple[int, int]:
    total = db.query(func.count(Task.id)).filter(Task.milestone_id == milestone_id).scalar() or 0
    completed = (
        db.query(func.count(Task.id))
        .filter(Task.milestone_id == milestone_id, Task.status == "completed")
        .scalar()
        or 0
    )
    return int(completed), int(total)


def _publish(registry: SubscriptionRegistry | None, booking: Booking) -> None:
    if registry is None:
        return
    try:
        registry.publish(
            "bookings",
            PROGRESS_UPDATED_EVENT,
            {
                "id": booking.id,
                "booking_id": booking.id,
                "project_progress": booking.project_progress,
                "client_id": booking.client_id,
                "provider_id": booking.provider_id,
            },
        )
    except Exception:
        logger.warning("Could not publish progress update for booking %s", booking.id, exc_info=True)


# ---------------------------------------------------------------------------
# Aggregators (flush only; callers own the transaction)
# ---------------------------------------------------------------------------


def update_milestone_progress(db: Session, milestone_id: str) -> int:
    """Recompute and store a milestone's ``progress_percentage``.

    Raises:
        HTTPException 404: If the milestone does not exist.
        HTTPException 500: If the write fails; the session is rolled back.
    """
    milestone = _get_milestone(db, milestone_id)
    try:
        completed, total = _task_counts(db, milestone_id)
        progress = milestone_progress(completed, total)
        milestone.progress_percentage = progress
        milestone.updated_at = datetime.utcnow()
        db.flush()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to update progress for milestone %s", milestone_id)
        raise _aggregation_failed("milestone")
    logger.debug("Milestone %s progress=%d (%d/%d)", milestone_id, progress, completed, total)
    return progress


def calculate_booking_progress(db: Session, booking_id: str) -> int:
    """Recompute and store a booking's weighted ``project_progress``.

    Raises:
        HTTPException 404: If the booking does not exist.
        HTTPException 500: If the write fails; the session is rolled back.
    """
    booking = _lock_booking(db, booking_id)
    try:
        rows = (
            db.query(Milestone.progress_percentage, Milestone.weight)
            .filter(Milestone.booking_id == booking_id)
            .all()
        )
        progress = weighted_progress(rows)
        booking.project_progress = progress
        booking.updated_at = datetime.utcnow()
        db.flush()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to update progress for booking %s", booking_id)
        raise _aggregation_failed("booking")
    logger.debug("Booking %s progress=%d over %d milestones", booking_id, progress, len(rows))
    return progress


# ---------------------------------------------------------------------------
# Transactional recompute chain
# ---------------------------------------------------------------------------


def _flush_pending(db: Session, level: str) -> None:
    # Sessions do not autoflush; make the triggering write visible to the counts
    try:
        db.flush()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Flush failed before recomputing %s progress", level)
        raise _aggregation_failed(level)


def _commit(db: Session, level: str) -> None:
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Commit failed while recomputing %s progress", level)
        raise _aggregation_failed(level)


def recompute_from_milestone(
    db: Session,
    milestone_id: str,
    registry: SubscriptionRegistry | None = None,
    booking_id: str | None = None,
) -> tuple[int, int]:
    """Recompute a milestone and its booking in one transaction.

    Any pending changes in *db* (the task or milestone write that triggered
    the recompute) are committed together with the new progress values.
    The booking row is locked before those changes are flushed, so every
    writer on a booking takes its locks in the same order. Pass
    *booking_id* when the milestone itself is still pending.

    Returns:
        ``(milestone_progress, booking_progress)``.
    """
    if booking_id is None:
        booking_id = _get_milestone(db, milestone_id).booking_id
    booking = _lock_booking(db, booking_id)
    _flush_pending(db, "milestone")
    m_progress = update_milestone_progress(db, milestone_id)
    b_progress = calculate_booking_progress(db, booking.id)
    _commit(db, "milestone")
    logger.info(
        "Recomputed milestone %s=%d booking %s=%d", milestone_id, m_progress, booking.id, b_progress
    )
    _publish(registry, booking)
    return m_progress, b_progress


def recompute_booking(
    db: Session,
    booking_id: str,
    registry: SubscriptionRegistry | None = None,
) -> int:
    """Recompute every milestone of a booking, then the booking, in one transaction."""
    booking = _lock_booking(db, booking_id)
    _flush_pending(db, "booking")
    milestone_ids = [
        mid for (mid,) in db.query(Milestone.id).filter(Milestone.booking_id == booking_id).all()
    ]
    for milestone_id in milestone_ids:
        update_milestone_progress(db, milestone_id)
    progress = calculate_booking_progress(db, booking_id)
    _commit(db, "booking")
    logger.info("Recomputed booking %s=%d (%d milestones)", booking_id, progress, len(milestone_ids))
    _publish(registry, booking)
    return progress


# ---------------------------------------------------------------------------
# Endpoint-level operations
# ---------------------------------------------------------------------------


def _error_message(exc: HTTPException) -> str:
    if isinstance(exc.detail, dict):
        return str(exc.detail.get("message", exc.detail))
    return str(exc.detail)


def calculate(
    db: Session,
    request: ProgressCalculateRequest,
    registry: SubscriptionRegistry | None = None,
) -> ProgressResults:
    """Recompute each requested level independently.

    A failure for one level is recorded in ``<level>_error`` and does not
    prevent the other levels from being processed.
    """
    results = ProgressResults()

    if request.booking_id:
        try:
            results.booking_progress = recompute_booking(db, request.booking_id, registry)
            booking = db.query(Booking).filter(Booking.id == request.booking_id).first()
            results.booking_data = BookingProgressData.model_validate(booking)
        except HTTPException as exc:
            logger.error("Booking progress calculation failed: %s", exc.detail)
            results.booking_error = _error_message(exc)

    if request.milestone_id:
        try:
            recompute_from_milestone(db, request.milestone_id, registry)
            milestone = _get_milestone(db, request.milestone_id)
            completed, total = _task_counts(db, milestone.id)
            results.milestone_data = MilestoneProgressData(
                progress_percentage=milestone.progress_percentage,
                status=milestone.status,
                completed_tasks=completed,
                total_tasks=total,
                updated_at=milestone.updated_at,
            )
        except HTTPException as exc:
            logger.error("Milestone progress calculation failed: %s", exc.detail)
            results.milestone_error = _error_message(exc)

    if request.task_id:
        task = db.query(Task).filter(Task.id == request.task_id).first()
        if task is None:
            results.task_error = f"Task '{request.task_id}' not found"
        else:
            try:
                recompute_from_milestone(db, task.milestone_id, registry)
                db.refresh(task)
                results.task_data = TaskProgressData.model_validate(task)
            except HTTPException as exc:
                logger.error("Task progress update failed: %s", exc.detail)
                results.task_error = _error_message(exc)

    return results


def get_analytics(db: Session, booking: Booking) -> ProgressAnalytics:
    """Booking progress card counters, computed from the current rows."""
    milestones = (
        db.query(Milestone)
        .filter(Milestone.booking_id == booking.id)
        .all()
    )
    total_milestones = len(milestones)
    completed_milestones = sum(1 for m in milestones if m.status == "completed")
    total_tasks = sum(len(m.tasks) for m in milestones)
    completed_tasks = sum(
        1 for m in milestones for t in m.tasks if t.status == "completed"
    )
    mean_progress = (
        round_half_up(Decimal(sum(m.progress_percentage or 0 for m in milestones)) / total_milestones)
        if total_milestones
        else 0
    )
    return ProgressAnalytics(
        booking_id=booking.id,
        booking_progress=booking.project_progress or 0,
        booking_status=booking.status,
        total_milestones=total_milestones,
        completed_milestones=completed_milestones,
        total_tasks=total_tasks,
        completed_tasks=completed_tasks,
        milestone_progress=mean_progress,
    )
