"""
Realtime router.

Mounts under ``/api/realtime``.

Endpoints
---------
GET /stats — Subscription registry statistics (admin only).
"""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, status

from marketplace.models.profile import Profile
from marketplace.realtime import SubscriptionRegistry, get_realtime
from marketplace.services.auth_service import require_role

router = APIRouter(tags=["Realtime"])


@router.get(
    "/stats",
    summary="Realtime subscription statistics",
    responses={
        403: {"description": "Admin role required."},
        503: {"description": "Registry not running."},
    },
)
def realtime_stats(
    registry: Annotated[SubscriptionRegistry | None, Depends(get_realtime)],
    _admin: Annotated[Profile, Depends(require_role("admin"))],
) -> dict[str, Any]:
    if registry is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Realtime registry is not running",
        )
    return registry.stats()
