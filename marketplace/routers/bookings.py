"""
Bookings router.

Mounts under ``/api/bookings``.

Endpoints
---------
POST /      — Book a service (clients only).
GET  /      — The caller's bookings (admins: all), paginated.
GET  /{id}  — Booking detail for participants.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.orm import Session

from marketplace.database import get_db
from marketplace.models.profile import Profile
from marketplace.schemas.booking import BookingCreate, BookingListResponse, BookingResponse
from marketplace.schemas.common import PaginationParams
from marketplace.services import booking_service
from marketplace.services.auth_service import get_current_user

router = APIRouter(tags=["Bookings"])


@router.post(
    "",
    response_model=BookingResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a booking",
    responses={
        400: {"description": "Service not available."},
        403: {"description": "Caller is not a client."},
        404: {"description": "Service not found."},
    },
)
def create_booking(
    body: BookingCreate,
    db: Annotated[Session, Depends(get_db)],
    current_user: Annotated[Profile, Depends(get_current_user)],
) -> BookingResponse:
    return booking_service.create_booking(db, body, current_user)


@router.get("", response_model=BookingListResponse, summary="List bookings")
def list_bookings(
    db: Annotated[Session, Depends(get_db)],
    current_user: Annotated[Profile, Depends(get_current_user)],
    status_filter: Annotated[str | None, Query(alias="status")] = None,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
) -> BookingListResponse:
    return booking_service.list_bookings(
        db, current_user, PaginationParams(page=page, limit=limit), status_filter
    )


@router.get(
    "/{booking_id}",
    response_model=BookingResponse,
    summary="Booking detail",
    responses={403: {"description": "Not a participant."}, 404: {"description": "Not found."}},
)
def get_booking(
    booking_id: Annotated[str, Path(max_length=36)],
    db: Annotated[Session, Depends(get_db)],
    current_user: Annotated[Profile, Depends(get_current_user)],
) -> BookingResponse:
    return booking_service.get_booking(db, booking_id, current_user)
