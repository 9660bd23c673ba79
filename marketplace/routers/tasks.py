"""
Tasks router.

Mounts under ``/api/tasks``.

Endpoints
---------
GET    /?milestone_id=|booking_id=|task_id= — List tasks.
POST   /               — Add a task.
PATCH  /?task_id=      — Update a task; status moves are validated.
DELETE /?task_id=      — Delete a task.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from marketplace.database import get_db
from marketplace.models.profile import Profile
from marketplace.realtime import SubscriptionRegistry, get_realtime
from marketplace.schemas.common import MessageResponse
from marketplace.schemas.task import TaskCreate, TaskResponse, TaskUpdate
from marketplace.services import task_service
from marketplace.services.auth_service import get_current_user

router = APIRouter(tags=["Tasks"])

CurrentUser = Annotated[Profile, Depends(get_current_user)]
Registry = Annotated[SubscriptionRegistry | None, Depends(get_realtime)]


@router.get(
    "",
    response_model=list[TaskResponse],
    summary="List tasks",
    responses={400: {"description": "No task_id, milestone_id or booking_id given."}},
)
def list_tasks(
    db: Annotated[Session, Depends(get_db)],
    current_user: CurrentUser,
    milestone_id: Annotated[str | None, Query()] = None,
    booking_id: Annotated[str | None, Query()] = None,
    task_id: Annotated[str | None, Query()] = None,
) -> list[TaskResponse]:
    return task_service.list_tasks(db, current_user, milestone_id, booking_id, task_id)


@router.post(
    "",
    response_model=TaskResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a task",
)
def create_task(
    body: TaskCreate,
    db: Annotated[Session, Depends(get_db)],
    current_user: CurrentUser,
    registry: Registry,
) -> TaskResponse:
    return task_service.add_task(db, body, current_user, registry)


@router.patch(
    "",
    response_model=TaskResponse,
    summary="Update a task",
    responses={
        403: {"description": "Not allowed or task locked."},
        404: {"description": "Task not found."},
        422: {"description": "Status move not allowed."},
    },
)
def update_task(
    task_id: Annotated[str, Query(min_length=1)],
    body: TaskUpdate,
    db: Annotated[Session, Depends(get_db)],
    current_user: CurrentUser,
    registry: Registry,
) -> TaskResponse:
    return task_service.update_task(db, task_id, body, current_user, registry)


@router.delete("", response_model=MessageResponse, summary="Delete a task")
def delete_task(
    task_id: Annotated[str, Query(min_length=1)],
    db: Annotated[Session, Depends(get_db)],
    current_user: CurrentUser,
    registry: Registry,
) -> MessageResponse:
    task_service.delete_task(db, task_id, current_user, registry)
    return MessageResponse(message="Task deleted successfully")
