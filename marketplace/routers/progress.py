"""
Progress router.

Mounts under ``/api/progress``.

Endpoints
---------
POST /calculate              — Recompute booking/milestone/task progress.
GET  /calculate?booking_id=  — Progress analytics for a booking.
GET  /{booking_id}           — Booking progress with milestones and tasks.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.orm import Session

from marketplace.database import get_db
from marketplace.models.milestone import Milestone
from marketplace.models.profile import Profile
from marketplace.realtime import SubscriptionRegistry, get_realtime
from marketplace.schemas.milestone import MilestoneResponse
from marketplace.schemas.progress import (
    BookingProgressResponse,
    ProgressAnalyticsResponse,
    ProgressCalculateRequest,
    ProgressCalculateResponse,
)
from marketplace.services import progress_service
from marketplace.services.auth_service import ensure_booking_reader, get_current_user
from marketplace.services.milestone_service import get_booking_or_404

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Progress"])


@router.post(
    "/calculate",
    response_model=ProgressCalculateResponse,
    summary="Recompute progress",
    description=(
        "Recomputes each supplied level independently. A failing level is "
        "reported in ``results.<level>_error``; the call itself still succeeds."
    ),
    responses={400: {"description": "No id supplied."}},
)
def calculate_progress(
    body: ProgressCalculateRequest,
    db: Annotated[Session, Depends(get_db)],
    current_user: Annotated[Profile, Depends(get_current_user)],
    registry: Annotated[SubscriptionRegistry | None, Depends(get_realtime)],
) -> ProgressCalculateResponse:
    logger.info(
        "Progress recompute by %s booking=%s milestone=%s task=%s",
        current_user.id, body.booking_id, body.milestone_id, body.task_id,
    )
    results = progress_service.calculate(db, body, registry)
    return ProgressCalculateResponse(results=results, timestamp=datetime.utcnow())


@router.get(
    "/calculate",
    response_model=ProgressAnalyticsResponse,
    summary="Progress analytics",
)
def progress_analytics(
    booking_id: Annotated[str, Query(min_length=1)],
    db: Annotated[Session, Depends(get_db)],
    current_user: Annotated[Profile, Depends(get_current_user)],
) -> ProgressAnalyticsResponse:
    booking = get_booking_or_404(db, booking_id)
    ensure_booking_reader(booking, current_user)
    return ProgressAnalyticsResponse(
        analytics=progress_service.get_analytics(db, booking),
        timestamp=datetime.utcnow(),
    )


@router.get(
    "/{booking_id}",
    response_model=BookingProgressResponse,
    summary="Booking progress",
    responses={403: {"description": "Not a participant."}, 404: {"description": "Not found."}},
)
def booking_progress(
    booking_id: Annotated[str, Path(min_length=1)],
    db: Annotated[Session, Depends(get_db)],
    current_user: Annotated[Profile, Depends(get_current_user)],
) -> BookingProgressResponse:
    booking = get_booking_or_404(db, booking_id)
    ensure_booking_reader(booking, current_user)
    milestones = (
        db.query(Milestone)
        .filter(Milestone.booking_id == booking.id)
        .order_by(Milestone.order_index)
        .all()
    )
    return BookingProgressResponse(
        booking_id=booking.id,
        booking_number=booking.booking_number,
        status=booking.status,
        project_progress=booking.project_progress or 0,
        milestones=[MilestoneResponse.model_validate(m) for m in milestones],
    )
