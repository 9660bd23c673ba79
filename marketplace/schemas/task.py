"""Pydantic v2 schemas for the ``/api/tasks`` endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

TaskStatus = Literal["pending", "in_progress", "completed", "cancelled", "on_hold"]
Priority = Literal["low", "normal", "high", "urgent"]


class TaskCreate(BaseModel):
    """Payload for ``POST /api/tasks``."""

    milestone_id: str = Field(..., min_length=1, description="Parent milestone id.")
    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    due_date: datetime | None = None
    priority: Priority = "normal"
    estimated_hours: float = Field(default=0, ge=0)
    status: TaskStatus = "pending"


class TaskUpdate(BaseModel):
    """Partial update for ``PATCH /api/tasks?task_id=``.

    Only fields explicitly present in the body are written.
    """

    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    due_date: datetime | None = None
    priority: Priority | None = None
    estimated_hours: float | None = Field(default=None, ge=0)
    status: TaskStatus | None = None
    progress_percentage: int | None = Field(default=None, ge=0, le=100)
    actual_hours: float | None = Field(default=None, ge=0)


class TaskResponse(BaseModel):
    """Full representation of a task."""

    id: str
    milestone_id: str
    title: str
    description: str | None = None
    status: str
    priority: str
    progress_percentage: int
    due_date: datetime | None = None
    estimated_hours: float
    actual_hours: float
    order_index: int
    editable: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)
