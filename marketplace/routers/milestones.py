"""
Milestones router.

Mounts under ``/api/milestones``.

Endpoints
---------
GET    /?booking_id=        — Milestones of a booking with their tasks.
POST   /                    — Add a milestone (provider/admin).
PATCH  /?milestone_id=      — Partial update (provider/admin, editable only).
DELETE /?milestone_id=      — Delete a milestone and its tasks.
GET    /insights?booking_id= — Health score, recommendations and predictions.
POST   /seed                — Create milestones and tasks from a plan.
POST   /approve             — Client approval or rejection.
GET    /comments?milestone_id= — Comment thread.
POST   /comments            — Add a comment or reply.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from marketplace.database import get_db
from marketplace.models.profile import Profile
from marketplace.realtime import SubscriptionRegistry, get_realtime
from marketplace.schemas.common import MessageResponse
from marketplace.schemas.insights import InsightsResponse
from marketplace.schemas.milestone import (
    CommentCreate,
    CommentResponse,
    MilestoneApproveRequest,
    MilestoneApproveResponse,
    MilestoneCreate,
    MilestoneResponse,
    MilestoneUpdate,
)
from marketplace.schemas.seed import SeedRequest, SeedResponse
from marketplace.services import insights_service, milestone_service, seed_service
from marketplace.services.auth_service import ensure_booking_reader, get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Milestones"])

CurrentUser = Annotated[Profile, Depends(get_current_user)]
Registry = Annotated[SubscriptionRegistry | None, Depends(get_realtime)]


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------


@router.get("", response_model=list[MilestoneResponse], summary="List milestones of a booking")
def list_milestones(
    booking_id: Annotated[str, Query(min_length=1)],
    db: Annotated[Session, Depends(get_db)],
    current_user: CurrentUser,
) -> list[MilestoneResponse]:
    return milestone_service.list_milestones(db, booking_id, current_user)


@router.post(
    "",
    response_model=MilestoneResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a milestone",
    responses={
        403: {"description": "Caller is not the booking provider or an admin."},
        404: {"description": "Booking not found."},
    },
)
def create_milestone(
    body: MilestoneCreate,
    db: Annotated[Session, Depends(get_db)],
    current_user: CurrentUser,
    registry: Registry,
) -> MilestoneResponse:
    return milestone_service.add_milestone(db, body, current_user, registry)


@router.patch(
    "",
    response_model=MilestoneResponse,
    summary="Update a milestone",
    responses={
        403: {"description": "Not allowed or milestone locked."},
        404: {"description": "Milestone not found."},
        500: {"description": "Progress recomputation failed; nothing was saved."},
    },
)
def update_milestone(
    milestone_id: Annotated[str, Query(min_length=1)],
    body: MilestoneUpdate,
    db: Annotated[Session, Depends(get_db)],
    current_user: CurrentUser,
    registry: Registry,
) -> MilestoneResponse:
    return milestone_service.update_milestone(db, milestone_id, body, current_user, registry)


@router.delete("", response_model=MessageResponse, summary="Delete a milestone")
def delete_milestone(
    milestone_id: Annotated[str, Query(min_length=1)],
    db: Annotated[Session, Depends(get_db)],
    current_user: CurrentUser,
    registry: Registry,
) -> MessageResponse:
    milestone_service.delete_milestone(db, milestone_id, current_user, registry)
    return MessageResponse(message="Milestone deleted successfully")


# ---------------------------------------------------------------------------
# GET /insights
# ---------------------------------------------------------------------------


@router.get(
    "/insights",
    response_model=InsightsResponse,
    summary="Project insights",
    description=(
        "Health score (0–100), ordered recommendations and a velocity-based "
        "completion forecast for the booking's milestones."
    ),
)
def get_insights(
    booking_id: Annotated[str, Query(min_length=1)],
    db: Annotated[Session, Depends(get_db)],
    current_user: CurrentUser,
) -> InsightsResponse:
    booking = milestone_service.get_booking_or_404(db, booking_id)
    ensure_booking_reader(booking, current_user)
    return insights_service.get_booking_insights(db, booking)


# ---------------------------------------------------------------------------
# POST /seed
# ---------------------------------------------------------------------------


@router.post(
    "/seed",
    response_model=SeedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Seed milestones from a plan",
    responses={
        403: {"description": "Only providers can seed milestones."},
        404: {"description": "Booking not found."},
        409: {"description": "Milestones already exist for this booking."},
    },
)
def seed_milestones(
    body: SeedRequest,
    db: Annotated[Session, Depends(get_db)],
    current_user: CurrentUser,
    registry: Registry,
) -> SeedResponse:
    return seed_service.seed_milestones(db, body, current_user, registry)


# ---------------------------------------------------------------------------
# POST /approve
# ---------------------------------------------------------------------------


@router.post(
    "/approve",
    response_model=MilestoneApproveResponse,
    summary="Approve or reject a milestone",
    responses={
        400: {"description": "Milestone is already completed."},
        403: {"description": "Caller is neither the client nor an admin."},
        404: {"description": "Milestone not found."},
    },
)
def approve_milestone(
    body: MilestoneApproveRequest,
    db: Annotated[Session, Depends(get_db)],
    current_user: CurrentUser,
    registry: Registry,
) -> MilestoneApproveResponse:
    return milestone_service.approve_milestone(db, body, current_user, registry)


# ---------------------------------------------------------------------------
# Comments
# ---------------------------------------------------------------------------


@router.get("/comments", response_model=list[CommentResponse], summary="Milestone comments")
def list_comments(
    milestone_id: Annotated[str, Query(min_length=1)],
    db: Annotated[Session, Depends(get_db)],
    current_user: CurrentUser,
) -> list[CommentResponse]:
    return milestone_service.list_comments(db, milestone_id, current_user)


@router.post(
    "/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a comment",
)
def add_comment(
    body: CommentCreate,
    db: Annotated[Session, Depends(get_db)],
    current_user: CurrentUser,
) -> CommentResponse:
    return milestone_service.add_comment(db, body, current_user)
