"""
Pydantic v2 schemas for the ``/api/milestones`` endpoints.

Covers milestone CRUD, the approval workflow and threaded comments.
``progress_percentage`` is accepted nowhere on input: it is always derived
from the milestone's tasks.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from marketplace.schemas.task import Priority, TaskResponse

MilestoneStatus = Literal[
    "pending", "in_progress", "completed", "cancelled", "on_hold", "rejected"
]
CommentType = Literal["general", "feedback", "question", "issue"]


class MilestoneCreate(BaseModel):
    """Payload for ``POST /api/milestones``.

    Attributes:
        booking_id: Owning booking.
        title: Phase name.
        weight: Influence on the booking rollup (0.1–10).
        order_index: Timeline position; appended after the last one when omitted.
    """

    booking_id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    start_date: datetime | None = None
    due_date: datetime | None = None
    priority: Priority = "normal"
    estimated_hours: float = Field(default=0, ge=0)
    weight: float = Field(default=1.0, ge=0.1, le=10)
    order_index: int | None = Field(default=None, ge=0)


class MilestoneUpdate(BaseModel):
    """Partial update for ``PATCH /api/milestones?milestone_id=``."""

    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    start_date: datetime | None = None
    due_date: datetime | None = None
    priority: Priority | None = None
    status: MilestoneStatus | None = None
    estimated_hours: float | None = Field(default=None, ge=0)
    actual_hours: float | None = Field(default=None, ge=0)
    weight: float | None = Field(default=None, ge=0.1, le=10)
    order_index: int | None = Field(default=None, ge=0)


class MilestoneResponse(BaseModel):
    """Full representation of a milestone with its ordered tasks."""

    id: str
    booking_id: str
    title: str
    description: str | None = None
    status: str
    priority: str
    progress_percentage: int
    weight: float
    order_index: int
    editable: bool
    start_date: datetime | None = None
    due_date: datetime | None = None
    estimated_hours: float
    actual_hours: float
    completed_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    tasks: list[TaskResponse] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class MilestoneApproveRequest(BaseModel):
    """Payload for ``POST /api/milestones/approve``."""

    milestone_id: str = Field(..., min_length=1)
    action: Literal["approve", "reject"]
    feedback: str | None = Field(default=None, max_length=1000)


class MilestoneApprovalResponse(BaseModel):
    id: str
    milestone_id: str
    user_id: str
    status: str
    comment: str | None = None
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class MilestoneApproveResponse(BaseModel):
    """Result of an approve/reject decision.

    ``approval`` is ``None`` when the approval record could not be written;
    the status change itself still stands.
    """

    milestone: MilestoneResponse
    approval: MilestoneApprovalResponse | None = None
    message: str


class CommentCreate(BaseModel):
    """Payload for ``POST /api/milestones/comments``."""

    milestone_id: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1, max_length=1000)
    comment_type: CommentType = "general"
    parent_id: str | None = None


class CommentResponse(BaseModel):
    id: str
    milestone_id: str
    user_id: str
    parent_id: str | None = None
    content: str
    comment_type: str
    author_name: str | None = None
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)
