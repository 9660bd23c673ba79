"""
Reports router.

Mounts under ``/api/reports``.

Endpoints
---------
GET /bookings         — Aggregate bookings summary.
GET /bookings/export  — Bookings workbook (.xlsx).
"""

from __future__ import annotations

import io
from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from marketplace.database import get_db
from marketplace.models.profile import Profile
from marketplace.schemas.report import BookingReportResponse
from marketplace.services import report_service
from marketplace.services.auth_service import get_current_user

router = APIRouter(tags=["Reports"])

_XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


@router.get("/bookings", response_model=BookingReportResponse, summary="Bookings summary")
def bookings_summary(
    db: Annotated[Session, Depends(get_db)],
    current_user: Annotated[Profile, Depends(get_current_user)],
    status_filter: Annotated[str | None, Query(alias="status")] = None,
) -> BookingReportResponse:
    return report_service.booking_summary(db, current_user, status_filter)


@router.get(
    "/bookings/export",
    summary="Export bookings to Excel",
    response_class=StreamingResponse,
    responses={200: {"content": {_XLSX_MEDIA_TYPE: {}}}},
)
def export_bookings(
    db: Annotated[Session, Depends(get_db)],
    current_user: Annotated[Profile, Depends(get_current_user)],
    status_filter: Annotated[str | None, Query(alias="status")] = None,
) -> StreamingResponse:
    content = report_service.export_bookings_xlsx(db, current_user, status_filter)
    filename = f"bookings_{datetime.utcnow():%Y%m%d}.xlsx"
    return StreamingResponse(
        io.BytesIO(content),
        media_type=_XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
