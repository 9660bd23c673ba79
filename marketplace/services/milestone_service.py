"""
Business logic for milestones: CRUD, client approval and threaded comments.

Every write that can change a progress value ends in
``progress_service.recompute_from_milestone`` or
``progress_service.recompute_booking`` so that the write and the recomputed
milestone and booking progress are committed together.
"""

from __future__ import annotations

import logging
from datetime import datetime

from fastapi import HTTPException, status
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from marketplace.database import new_id
from marketplace.models.booking import Booking
from marketplace.models.milestone import Milestone
from marketplace.models.milestone_approval import MilestoneApproval
from marketplace.models.milestone_comment import MilestoneComment
from marketplace.models.profile import Profile
from marketplace.realtime import SubscriptionRegistry
from marketplace.schemas.milestone import (
    CommentCreate,
    CommentResponse,
    MilestoneApprovalResponse,
    MilestoneApproveRequest,
    MilestoneApproveResponse,
    MilestoneCreate,
    MilestoneResponse,
    MilestoneUpdate,
)
from marketplace.services import notification_service, progress_service
from marketplace.services.auth_service import (
    ensure_booking_editor,
    ensure_booking_reader,
)

logger = logging.getLogger(__name__)

_NULLABLE_FIELDS = frozenset({"description", "start_date", "due_date"})


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------


def get_booking_or_404(db: Session, booking_id: str) -> Booking:
    booking = db.query(Booking).filter(Booking.id == booking_id).first()
    if booking is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Booking '{booking_id}' not found",
        )
    return booking


def get_milestone_or_404(db: Session, milestone_id: str) -> Milestone:
    milestone = db.query(Milestone).filter(Milestone.id == milestone_id).first()
    if milestone is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Milestone '{milestone_id}' not found",
        )
    return milestone


def _ensure_editable(milestone: Milestone) -> None:
    if not milestone.editable:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="This milestone is locked and cannot be edited",
        )


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------


def list_milestones(db: Session, booking_id: str, user: Profile) -> list[MilestoneResponse]:
    booking = get_booking_or_404(db, booking_id)
    ensure_booking_reader(booking, user)
    rows = (
        db.query(Milestone)
        .filter(Milestone.booking_id == booking_id)
        .order_by(Milestone.order_index, Milestone.created_at)
        .all()
    )
    return [MilestoneResponse.model_validate(m) for m in rows]


def add_milestone(
    db: Session,
    data: MilestoneCreate,
    user: Profile,
    registry: SubscriptionRegistry | None = None,
) -> MilestoneResponse:
    """Create a milestone and recompute the booking progress.

    When ``order_index`` is omitted the milestone is appended after the
    booking's last milestone.
    """
    booking = get_booking_or_404(db, data.booking_id)
    ensure_booking_editor(booking, user)

    order_index = data.order_index
    if order_index is None:
        last = (
            db.query(func.max(Milestone.order_index))
            .filter(Milestone.booking_id == booking.id)
            .scalar()
        )
        order_index = 0 if last is None else last + 1

    milestone = Milestone(
        id=new_id(),
        booking_id=booking.id,
        title=data.title,
        description=data.description,
        start_date=data.start_date,
        due_date=data.due_date,
        priority=data.priority,
        estimated_hours=data.estimated_hours,
        weight=data.weight,
        order_index=order_index,
        status="pending",
        progress_percentage=0,
        editable=True,
    )
    db.add(milestone)
    progress_service.recompute_from_milestone(db, milestone.id, registry, booking_id=booking.id)
    db.refresh(milestone)
    logger.info("Milestone %s created on booking %s by %s", milestone.id, booking.id, user.id)
    return MilestoneResponse.model_validate(milestone)


def update_milestone(
    db: Session,
    milestone_id: str,
    data: MilestoneUpdate,
    user: Profile,
    registry: SubscriptionRegistry | None = None,
) -> MilestoneResponse:
    """Apply a partial update and recompute progress.

    Raises:
        HTTPException 403: Caller is not the provider/admin, or the milestone
                           is not editable.
        HTTPException 404: Milestone not found.
    """
    milestone = get_milestone_or_404(db, milestone_id)
    booking = milestone.booking
    ensure_booking_editor(booking, user)
    _ensure_editable(milestone)

    updates = {
        k: v for k, v in data.model_dump(exclude_unset=True).items()
        if v is not None or k in _NULLABLE_FIELDS
    }
    previous_status = milestone.status
    for field, value in updates.items():
        setattr(milestone, field, value)

    became_completed = updates.get("status") == "completed" and previous_status != "completed"
    if became_completed:
        milestone.completed_at = datetime.utcnow()
    elif "status" in updates and updates["status"] != "completed":
        milestone.completed_at = None

    progress_service.recompute_from_milestone(db, milestone.id, registry, booking_id=booking.id)
    db.refresh(milestone)
    logger.info("Milestone %s updated fields=%s", milestone.id, sorted(updates))

    if became_completed:
        notification_service.notify_milestone_completed(db, milestone, booking)
    return MilestoneResponse.model_validate(milestone)


def delete_milestone(
    db: Session,
    milestone_id: str,
    user: Profile,
    registry: SubscriptionRegistry | None = None,
) -> None:
    milestone = get_milestone_or_404(db, milestone_id)
    booking = milestone.booking
    ensure_booking_editor(booking, user)
    _ensure_editable(milestone)

    booking_id = booking.id
    db.delete(milestone)
    progress_service.recompute_booking(db, booking_id, registry)
    logger.info("Milestone %s deleted from booking %s", milestone_id, booking_id)


# ---------------------------------------------------------------------------
# Approval workflow
# ---------------------------------------------------------------------------


def approve_milestone(
    db: Session,
    data: MilestoneApproveRequest,
    user: Profile,
    registry: SubscriptionRegistry | None = None,
) -> MilestoneApproveResponse:
    """Record the client's decision on a delivered milestone.

    ``approve`` marks the milestone completed (idempotent when it already
    is); ``reject`` marks it rejected and is refused for completed
    milestones. The approval record is best-effort.

    Raises:
        HTTPException 400: Rejecting a completed milestone.
        HTTPException 403: Caller is neither the booking client nor an admin.
        HTTPException 404: Milestone not found.
    """
    milestone = get_milestone_or_404(db, data.milestone_id)
    booking = milestone.booking
    if not (user.role == "admin" or booking.client_id == user.id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the booking client or an admin can approve milestones",
        )

    already_completed = milestone.status == "completed"
    if already_completed and data.action == "reject":
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Milestone is already completed",
        )

    if not (already_completed and data.action == "approve"):
        if data.action == "approve":
            milestone.status = "completed"
            milestone.completed_at = datetime.utcnow()
        else:
            milestone.status = "rejected"
        milestone.updated_at = datetime.utcnow()
        progress_service.recompute_from_milestone(
            db, milestone.id, registry, booking_id=booking.id
        )

    approval = None
    try:
        approval = MilestoneApproval(
            milestone_id=milestone.id,
            user_id=user.id,
            status="approved" if data.action == "approve" else "rejected",
            comment=data.feedback,
        )
        db.add(approval)
        db.commit()
        db.refresh(approval)
    except SQLAlchemyError:
        db.rollback()
        approval = None
        logger.warning("Could not record approval for milestone %s", milestone.id, exc_info=True)

    db.refresh(milestone)
    notification_service.notify_milestone_decision(db, milestone, booking, data.action, data.feedback)
    logger.info("Milestone %s %sd by %s", milestone.id, data.action, user.id)

    return MilestoneApproveResponse(
        milestone=MilestoneResponse.model_validate(milestone),
        approval=MilestoneApprovalResponse.model_validate(approval) if approval else None,
        message=f"Milestone {'approved' if data.action == 'approve' else 'rejected'} successfully",
    )


# ---------------------------------------------------------------------------
# Comments
# ---------------------------------------------------------------------------


def _comment_response(comment: MilestoneComment) -> CommentResponse:
    response = CommentResponse.model_validate(comment)
    if comment.author is not None:
        response.author_name = comment.author.full_name or comment.author.username
    return response


def list_comments(db: Session, milestone_id: str, user: Profile) -> list[CommentResponse]:
    milestone = get_milestone_or_404(db, milestone_id)
    ensure_booking_reader(milestone.booking, user)
    rows = (
        db.query(MilestoneComment)
        .filter(MilestoneComment.milestone_id == milestone_id)
        .order_by(MilestoneComment.created_at)
        .all()
    )
    return [_comment_response(c) for c in rows]


def add_comment(db: Session, data: CommentCreate, user: Profile) -> CommentResponse:
    """Add a comment (or a reply when ``parent_id`` is given) to a milestone.

    Raises:
        HTTPException 400: ``parent_id`` belongs to another milestone.
        HTTPException 404: Milestone or parent comment not found.
    """
    milestone = get_milestone_or_404(db, data.milestone_id)
    ensure_booking_reader(milestone.booking, user)

    if data.parent_id:
        parent = db.query(MilestoneComment).filter(MilestoneComment.id == data.parent_id).first()
        if parent is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Parent comment '{data.parent_id}' not found",
            )
        if parent.milestone_id != milestone.id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Parent comment belongs to a different milestone",
            )

    comment = MilestoneComment(
        milestone_id=milestone.id,
        user_id=user.id,
        parent_id=data.parent_id,
        content=data.content,
        comment_type=data.comment_type,
    )
    db.add(comment)
    db.commit()
    db.refresh(comment)
    logger.info("Comment %s added to milestone %s", comment.id, milestone.id)
    return _comment_response(comment)
