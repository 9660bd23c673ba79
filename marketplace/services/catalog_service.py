"""
Business logic for the public services catalog (``/api/services``).

Provides:
- ``list_services`` — filtered, searchable, paginated listing enriched with
  provider details, booking count and revenue.
- ``create_service`` — provider-owned service creation.
- ``update_service`` — partial update by the owner or an admin.
"""

from __future__ import annotations

import logging

from fastapi import HTTPException, status
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from marketplace.models.booking import Booking
from marketplace.models.profile import Profile
from marketplace.models.service import Service
from marketplace.schemas.common import PaginationMeta, PaginationParams
from marketplace.schemas.service import (
    ServiceCreate,
    ServiceListItem,
    ServiceListResponse,
    ServiceResponse,
    ServiceUpdate,
)
from marketplace.services import notification_service

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------


def list_services(
    db: Session,
    pagination: PaginationParams,
    category: str | None = None,
    provider_id: str | None = None,
    status_filter: str = "active",
    search: str | None = None,
) -> ServiceListResponse:
    """Return one page of services, newest first.

    ``search`` is matched case-insensitively against title, description and
    category.
    """
    query = db.query(Service).filter(Service.status == status_filter)
    if category:
        query = query.filter(Service.category == category)
    if provider_id:
        query = query.filter(Service.provider_id == provider_id)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(
            or_(
                Service.title.ilike(pattern),
                Service.description.ilike(pattern),
                Service.category.ilike(pattern),
            )
        )

    total = query.count()
    rows = (
        query.order_by(Service.created_at.desc(), Service.id)
        .offset(pagination.offset)
        .limit(pagination.limit)
        .all()
    )

    stats: dict[str, tuple[int, float]] = {}
    if rows:
        ids = [s.id for s in rows]
        for service_id, count, revenue in (
            db.query(
                Booking.service_id,
                func.count(Booking.id),
                func.coalesce(func.sum(Booking.total_cost), 0),
            )
            .filter(Booking.service_id.in_(ids))
            .group_by(Booking.service_id)
            .all()
        ):
            stats[service_id] = (int(count), float(revenue or 0))

    items = []
    for service in rows:
        count, revenue = stats.get(service.id, (0, 0.0))
        provider = service.provider
        items.append(
            ServiceListItem(
                **ServiceResponse.model_validate(service).model_dump(),
                provider_name=(provider.full_name if provider and provider.full_name
                               else "Service Provider"),
                provider_email=provider.email if provider else "",
                booking_count=count,
                total_revenue=revenue,
            )
        )

    logger.debug("list_services: total=%d page=%d", total, pagination.page)
    return ServiceListResponse(
        services=items,
        pagination=PaginationMeta.build(pagination, total),
    )


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------


def get_service_or_404(db: Session, service_id: str) -> Service:
    service = db.query(Service).filter(Service.id == service_id).first()
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Service not found",
        )
    return service


def create_service(db: Session, data: ServiceCreate, user: Profile) -> ServiceResponse:
    """Create an ``active`` service pending admin approval and notify its provider."""
    if user.role != "provider":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only providers can create services",
        )

    service = Service(
        provider_id=user.id,
        status="active",
        approval_status="pending",
        featured=False,
        **data.model_dump(),
    )
    db.add(service)
    db.commit()
    db.refresh(service)
    logger.info("Service %s created by provider %s", service.id, user.id)

    notification_service.notify_service_created(db, service)
    return ServiceResponse.model_validate(service)


def update_service(db: Session, data: ServiceUpdate, user: Profile) -> ServiceResponse:
    """Apply a partial update; only the owning provider or an admin may do so."""
    service = get_service_or_404(db, data.service_id)
    if service.provider_id != user.id and user.role != "admin":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have permission to perform this action",
        )

    updates = data.model_dump(exclude_unset=True, exclude={"service_id"})
    for field, value in updates.items():
        if value is None and field in ("title", "description", "category", "base_price", "currency"):
            continue
        setattr(service, field, value)

    db.commit()
    db.refresh(service)
    logger.info("Service %s updated fields=%s by %s", service.id, sorted(updates), user.id)
    return ServiceResponse.model_validate(service)
