"""Business logic for bookings (``/api/bookings``)."""

from __future__ import annotations

import logging
import random
from datetime import datetime

from fastapi import HTTPException, status
from sqlalchemy import or_
from sqlalchemy.orm import Session

from marketplace.models.booking import Booking
from marketplace.models.profile import Profile
from marketplace.schemas.booking import BookingCreate, BookingListResponse, BookingResponse
from marketplace.schemas.common import PaginationMeta, PaginationParams
from marketplace.services.auth_service import ensure_booking_reader
from marketplace.services.catalog_service import get_service_or_404
from marketplace.services.milestone_service import get_booking_or_404

logger = logging.getLogger(__name__)


def generate_booking_number(now: datetime | None = None) -> str:
    """Return a number such as ``BK-20261018-004211``."""
    now = now or datetime.utcnow()
    return f"BK-{now:%Y%m%d}-{random.randint(0, 999999):06d}"


def create_booking(db: Session, data: BookingCreate, user: Profile) -> BookingResponse:
    """Book an active service as a client.

    Provider, price and currency are copied from the service.

    Raises:
        HTTPException 400: The service is not active.
        HTTPException 403: Caller is not a client.
        HTTPException 404: Service not found.
    """
    if user.role != "client":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only clients can create bookings",
        )
    service = get_service_or_404(db, data.service_id)
    if service.status != "active":
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Service is not available for booking",
        )

    booking = Booking(
        booking_number=generate_booking_number(),
        title=data.title or service.title,
        client_id=user.id,
        provider_id=service.provider_id,
        service_id=service.id,
        status="pending",
        project_progress=0,
        start_time=data.start_time,
        end_time=data.end_time,
        total_cost=service.base_price,
        currency=service.currency,
    )
    db.add(booking)
    db.commit()
    db.refresh(booking)
    logger.info("Booking %s created by client %s for service %s", booking.id, user.id, service.id)
    return BookingResponse.model_validate(booking)


def list_bookings(
    db: Session,
    user: Profile,
    pagination: PaginationParams,
    status_filter: str | None = None,
) -> BookingListResponse:
    """List bookings visible to *user*; admins see all of them."""
    query = db.query(Booking)
    if user.role != "admin":
        query = query.filter(or_(Booking.client_id == user.id, Booking.provider_id == user.id))
    if status_filter:
        query = query.filter(Booking.status == status_filter)

    total = query.count()
    rows = (
        query.order_by(Booking.created_at.desc(), Booking.id)
        .offset(pagination.offset)
        .limit(pagination.limit)
        .all()
    )
    return BookingListResponse(
        bookings=[BookingResponse.model_validate(b) for b in rows],
        pagination=PaginationMeta.build(pagination, total),
    )


def get_booking(db: Session, booking_id: str, user: Profile) -> BookingResponse:
    booking = get_booking_or_404(db, booking_id)
    ensure_booking_reader(booking, user)
    return BookingResponse.model_validate(booking)
