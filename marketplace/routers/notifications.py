"""
Notifications router.

Mounts under ``/api/notifications``.

Endpoints
---------
GET /               — The caller's notifications (``?unread=true`` to filter).
PUT /read-all       — Mark every notification as read.
PUT /{id}/read      — Mark one notification as read.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.orm import Session

from marketplace.database import get_db
from marketplace.models.profile import Profile
from marketplace.schemas.common import MessageResponse
from marketplace.schemas.notification import NotificationListResponse, NotificationResponse
from marketplace.services import notification_service
from marketplace.services.auth_service import get_current_user

router = APIRouter(tags=["Notifications"])


@router.get("", response_model=NotificationListResponse, summary="List notifications")
def list_notifications(
    db: Annotated[Session, Depends(get_db)],
    current_user: Annotated[Profile, Depends(get_current_user)],
    unread: Annotated[bool, Query(description="Only unread notifications.")] = False,
    limit: Annotated[int, Query(ge=1, le=100)] = 50,
) -> NotificationListResponse:
    return notification_service.list_notifications(db, current_user, unread, limit)


@router.put("/read-all", response_model=MessageResponse, summary="Mark all as read")
def mark_all_read(
    db: Annotated[Session, Depends(get_db)],
    current_user: Annotated[Profile, Depends(get_current_user)],
) -> MessageResponse:
    count = notification_service.mark_all_read(db, current_user)
    return MessageResponse(message=f"{count} notification(s) marked as read")


@router.put(
    "/{notification_id}/read",
    response_model=NotificationResponse,
    summary="Mark as read",
    responses={404: {"description": "Notification not found."}},
)
def mark_read(
    notification_id: Annotated[str, Path(min_length=1)],
    db: Annotated[Session, Depends(get_db)],
    current_user: Annotated[Profile, Depends(get_current_user)],
) -> NotificationResponse:
    return notification_service.mark_read(db, notification_id, current_user)
