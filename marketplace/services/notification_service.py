"""
In-app notifications.

``create_notification`` persists a row. The ``notify_*`` helpers are called
after a successful primary write; they never raise, a failure is logged at
``warning`` and rolled back so the caller's result stands.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from marketplace.models.booking import Booking
from marketplace.models.milestone import Milestone
from marketplace.models.notification import Notification
from marketplace.models.profile import Profile
from marketplace.models.service import Service
from marketplace.realtime import SubscriptionRegistry
from marketplace.schemas.notification import NotificationListResponse, NotificationResponse
from marketplace.utils.constants import PROGRESS_UPDATED_EVENT

logger = logging.getLogger(__name__)


def create_notification(
    db: Session,
    user_id: str,
    type: str,
    title: str,
    message: str | None = None,
    data: dict[str, Any] | None = None,
) -> Notification:
    notification = Notification(
        user_id=user_id,
        type=type,
        title=title,
        message=message,
        data=data,
        is_read=False,
    )
    db.add(notification)
    db.commit()
    db.refresh(notification)
    logger.debug("Notification %s (%s) sent to %s", notification.id, type, user_id)
    return notification


def _notify_safely(db: Session, **kwargs: Any) -> Notification | None:
    try:
        return create_notification(db, **kwargs)
    except SQLAlchemyError:
        db.rollback()
        logger.warning(
            "Could not send %s notification to %s", kwargs.get("type"), kwargs.get("user_id"),
            exc_info=True,
        )
        return None


# ---------------------------------------------------------------------------
# Event helpers
# ---------------------------------------------------------------------------


def notify_service_created(db: Session, service: Service) -> Notification | None:
    return _notify_safely(
        db,
        user_id=service.provider_id,
        type="service_created",
        title="Service submitted for review",
        message=f'Your service "{service.title}" was created and is pending approval.',
        data={"service_id": service.id},
    )


def notify_milestone_decision(
    db: Session,
    milestone: Milestone,
    booking: Booking,
    action: str,
    feedback: str | None = None,
) -> Notification | None:
    if not booking.provider_id:
        return None
    approved = action == "approve"
    return _notify_safely(
        db,
        user_id=booking.provider_id,
        type="milestone_approved" if approved else "milestone_rejected",
        title=f"Milestone {'approved' if approved else 'rejected'}",
        message=(
            f'"{milestone.title}" was {"approved" if approved else "rejected"} by the client.'
            + (f" Feedback: {feedback}" if feedback else "")
        ),
        data={"milestone_id": milestone.id, "booking_id": booking.id},
    )


def notify_milestone_completed(
    db: Session, milestone: Milestone, booking: Booking
) -> Notification | None:
    return _notify_safely(
        db,
        user_id=booking.client_id,
        type="milestone_completed",
        title="Milestone completed",
        message=f'"{milestone.title}" has been marked as completed and awaits your review.',
        data={"milestone_id": milestone.id, "booking_id": booking.id},
    )


def notify_booking_progress(db: Session, booking: Booking) -> Notification | None:
    return _notify_safely(
        db,
        user_id=booking.client_id,
        type="booking_progress",
        title="Project completed",
        message=f"All milestones of booking {booking.booking_number or booking.id} are complete.",
        data={"booking_id": booking.id, "project_progress": booking.project_progress},
    )


def progress_listener(session_factory: Callable[[], Session]) -> Callable[[dict[str, Any]], None]:
    """Build the ``progress_updated`` callback that notifies clients at 100 %."""

    def _on_progress(payload: dict[str, Any]) -> None:
        if (payload.get("project_progress") or 0) < 100:
            return
        db = session_factory()
        try:
            booking = db.query(Booking).filter(Booking.id == payload.get("booking_id")).first()
            if booking is not None:
                notify_booking_progress(db, booking)
        finally:
            db.close()

    return _on_progress


def register_listeners(
    registry: SubscriptionRegistry, session_factory: Callable[[], Session]
) -> str:
    return registry.subscribe("bookings", PROGRESS_UPDATED_EVENT, progress_listener(session_factory))


# ---------------------------------------------------------------------------
# Inbox
# ---------------------------------------------------------------------------


def list_notifications(
    db: Session, user: Profile, unread_only: bool = False, limit: int = 50
) -> NotificationListResponse:
    query = db.query(Notification).filter(Notification.user_id == user.id)
    if unread_only:
        query = query.filter(Notification.is_read.is_(False))
    rows = query.order_by(Notification.created_at.desc()).limit(limit).all()
    unread = (
        db.query(Notification)
        .filter(Notification.user_id == user.id, Notification.is_read.is_(False))
        .count()
    )
    return NotificationListResponse(
        notifications=[NotificationResponse.model_validate(n) for n in rows],
        unread_count=unread,
    )


def mark_read(db: Session, notification_id: str, user: Profile) -> NotificationResponse:
    notification = (
        db.query(Notification)
        .filter(Notification.id == notification_id, Notification.user_id == user.id)
        .first()
    )
    if notification is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Notification '{notification_id}' not found",
        )
    notification.is_read = True
    db.commit()
    db.refresh(notification)
    return NotificationResponse.model_validate(notification)


def mark_all_read(db: Session, user: Profile) -> int:
    updated = (
        db.query(Notification)
        .filter(Notification.user_id == user.id, Notification.is_read.is_(False))
        .update({Notification.is_read: True}, synchronize_session=False)
    )
    db.commit()
    logger.info("Marked %d notifications read for %s", updated, user.id)
    return updated
