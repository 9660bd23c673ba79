"""
Bookings report: pandas aggregation and Excel export.

``booking_summary`` loads the bookings visible to the caller into a
DataFrame and derives status counts, revenue, mean progress and monthly
creation counts. ``export_bookings_xlsx`` writes the same rows to a styled
workbook.
"""

from __future__ import annotations

import logging

import pandas as pd
from sqlalchemy import or_
from sqlalchemy.orm import Session

from marketplace.exporters.excel_exporter import ExcelExporter
from marketplace.models.booking import Booking
from marketplace.models.profile import Profile
from marketplace.schemas.report import BookingReportResponse, MonthlyCount

logger = logging.getLogger(__name__)

_REVENUE_STATUSES = ("paid", "completed")
_COLUMNS = [
    "booking_number", "title", "status", "project_progress",
    "total_cost", "currency", "created_at",
]


def _bookings_frame(db: Session, user: Profile, status_filter: str | None = None) -> pd.DataFrame:
    query = db.query(Booking)
    if user.role != "admin":
        query = query.filter(or_(Booking.client_id == user.id, Booking.provider_id == user.id))
    if status_filter:
        query = query.filter(Booking.status == status_filter)
    rows = query.order_by(Booking.created_at.desc()).all()
    df = pd.DataFrame(
        [
            {
                "booking_number": b.booking_number or b.id,
                "title": b.title or "",
                "status": b.status,
                "project_progress": int(b.project_progress or 0),
                "total_cost": float(b.total_cost or 0),
                "currency": b.currency,
                "created_at": b.created_at,
            }
            for b in rows
        ],
        columns=_COLUMNS,
    )
    return df


def booking_summary(
    db: Session, user: Profile, status_filter: str | None = None
) -> BookingReportResponse:
    df = _bookings_frame(db, user, status_filter)
    if df.empty:
        return BookingReportResponse(
            total_bookings=0, by_status={}, total_revenue=0.0,
            average_progress=0.0, completed_bookings=0, monthly=[],
        )

    by_status = {str(k): int(v) for k, v in df["status"].value_counts().items()}
    revenue = float(df.loc[df["status"].isin(_REVENUE_STATUSES), "total_cost"].sum())
    months = (
        pd.to_datetime(df["created_at"]).dt.strftime("%Y-%m").value_counts().sort_index()
    )
    logger.debug("booking_summary: %d bookings for %s", len(df), user.id)
    return BookingReportResponse(
        total_bookings=int(len(df)),
        by_status=by_status,
        total_revenue=round(revenue, 3),
        average_progress=round(float(df["project_progress"].mean()), 2),
        completed_bookings=int((df["status"] == "completed").sum()),
        monthly=[MonthlyCount(month=m, bookings=int(n)) for m, n in months.items()],
    )


def export_bookings_xlsx(db: Session, user: Profile, status_filter: str | None = None) -> bytes:
    df = _bookings_frame(db, user, status_filter)
    summary = booking_summary(db, user, status_filter)
    headers = ["Booking", "Title", "Status", "Progress", "Total cost", "Currency", "Created"]
    rows = [
        [
            r.booking_number,
            r.title,
            r.status,
            r.project_progress,
            r.total_cost,
            r.currency,
            pd.Timestamp(r.created_at).strftime("%Y-%m-%d %H:%M") if pd.notna(r.created_at) else "",
        ]
        for r in df.itertuples(index=False)
    ]

    exporter = ExcelExporter(
        title="Bookings report",
        filters={"Status": status_filter or "all"},
        sheet_name="Bookings",
    )
    exporter.add_header(num_cols=len(headers))
    exporter.add_summary_row({
        "Bookings": summary.total_bookings,
        "Completed": summary.completed_bookings,
        "Revenue": summary.total_revenue,
        "Avg progress": summary.average_progress,
    })
    exporter.add_data_table(headers, rows, money_cols={4}, percent_cols={3})
    logger.info("Exported %d bookings to xlsx for %s", len(rows), user.id)
    return exporter.finalize()
