"""
Services catalog router.

Mounts under ``/api/services``.

Endpoints
---------
GET  /  — Public listing with filters, search and pagination.
POST /  — Create a service (providers only).
PUT  /  — Partially update a service (owner or admin).
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from marketplace.database import get_db
from marketplace.models.profile import Profile
from marketplace.schemas.common import PaginationParams
from marketplace.schemas.service import (
    ServiceCreate,
    ServiceListResponse,
    ServiceUpdate,
    ServiceWriteResponse,
)
from marketplace.services import catalog_service
from marketplace.services.auth_service import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Services"])


@router.get(
    "",
    response_model=ServiceListResponse,
    summary="List services",
    description=(
        "Public catalog, newest first. ``search`` matches title, description and "
        "category case-insensitively. Each row carries provider name/email, booking "
        "count and total revenue."
    ),
)
def list_services(
    category: Annotated[str | None, Query(max_length=50)] = None,
    provider_id: Annotated[str | None, Query(max_length=36)] = None,
    status_filter: Annotated[
        str, Query(alias="status", description="Service status (default active).")
    ] = "active",
    search: Annotated[str | None, Query(max_length=100)] = None,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
    db: Session = Depends(get_db),
) -> ServiceListResponse:
    logger.debug("GET /services category=%s search=%s page=%d", category, search, page)
    return catalog_service.list_services(
        db,
        PaginationParams(page=page, limit=limit),
        category=category,
        provider_id=provider_id,
        status_filter=status_filter,
        search=search,
    )


@router.post(
    "",
    response_model=ServiceWriteResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a service",
    responses={
        400: {"description": "Invalid payload."},
        403: {"description": "Caller is not a provider."},
    },
)
def create_service(
    body: ServiceCreate,
    db: Annotated[Session, Depends(get_db)],
    current_user: Annotated[Profile, Depends(get_current_user)],
) -> ServiceWriteResponse:
    service = catalog_service.create_service(db, body, current_user)
    return ServiceWriteResponse(service=service, message="Service created successfully")


@router.put(
    "",
    response_model=ServiceWriteResponse,
    summary="Update a service",
    responses={
        403: {"description": "Caller is neither the owner nor an admin."},
        404: {"description": "Service not found."},
    },
)
def update_service(
    body: ServiceUpdate,
    db: Annotated[Session, Depends(get_db)],
    current_user: Annotated[Profile, Depends(get_current_user)],
) -> ServiceWriteResponse:
    service = catalog_service.update_service(db, body, current_user)
    return ServiceWriteResponse(service=service, message="Service updated successfully")
