"""
Inbound webhook dispatch (``POST /api/webhooks``).

``dispatch`` routes the envelope's ``event`` to one of the handlers in
``HANDLERS``. Every handler writes an ``AuditLog`` row in the same
transaction as its change.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta
from typing import Any, Callable

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from marketplace.models.audit_log import AuditLog
from marketplace.models.booking import Booking
from marketplace.models.invoice import Invoice
from marketplace.models.service import Service
from marketplace.schemas.webhook import WebhookRequest, WebhookResponse
from marketplace.services.booking_service import generate_booking_number
from marketplace.utils.constants import BOOKING_STATUSES, WEBHOOK_EVENTS

logger = logging.getLogger(__name__)

_UUID_RE = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[1-5][0-9a-fA-F]{3}-[89abAB][0-9a-fA-F]{3}-[0-9a-fA-F]{12}$"
)


def is_valid_uuid(value: Any) -> bool:
    return isinstance(value, str) and bool(_UUID_RE.match(value.strip()))


def _bad_request(message: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=message)


def _audit(db: Session, action: str, table_name: str, record_id: str, values: dict) -> None:
    db.add(AuditLog(action=action, table_name=table_name, record_id=record_id, new_values=values))


def _get_booking(db: Session, booking_id: str) -> Booking:
    booking = db.query(Booking).filter(Booking.id == booking_id).first()
    if booking is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Booking '{booking_id}' not found",
        )
    return booking


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


def handle_tracking_updated(db: Session, data: dict[str, Any]) -> WebhookResponse:
    booking_id = data.get("booking_id")
    new_status = data.get("status")
    if not is_valid_uuid(booking_id):
        raise _bad_request("Invalid booking_id (UUID expected)")
    if new_status not in BOOKING_STATUSES:
        raise _bad_request(f"Invalid status '{new_status}'")

    booking = _get_booking(db, booking_id)
    booking.status = new_status
    booking.updated_at = datetime.utcnow()
    _audit(db, "tracking_updated", "bookings", booking_id,
           {"status": new_status, "tracking_info": data.get("tracking_info")})
    db.commit()
    return WebhookResponse(message="Tracking updated successfully", booking_id=booking_id)


def handle_booking_created(db: Session, data: dict[str, Any]) -> WebhookResponse:
    client_id = data.get("client_id")
    service_id = data.get("service_id")
    provider_id = data.get("provider_id")
    if not is_valid_uuid(client_id):
        raise _bad_request("Invalid client_id (UUID expected)")
    if not is_valid_uuid(service_id):
        raise _bad_request("Invalid service_id (UUID expected)")
    if provider_id and not is_valid_uuid(provider_id):
        raise _bad_request("Invalid provider_id (UUID expected)")

    booking = Booking(
        booking_number=generate_booking_number(),
        title=f"Booking for Service {service_id}",
        client_id=client_id,
        provider_id=provider_id,
        service_id=service_id,
        status="draft",
        project_progress=0,
        total_cost=data.get("total_cost"),
        currency="OMR",
    )
    db.add(booking)
    db.flush()
    _audit(db, "booking_created", "bookings", booking.id, {"status": "draft"})
    db.commit()
    return WebhookResponse(message="Booking created successfully", booking_id=booking.id)


def handle_new_service_created(db: Session, data: dict[str, Any]) -> WebhookResponse:
    service_id = data.get("service_id")
    provider_id = data.get("provider_id")
    if service_id == "create" or provider_id == "create":
        raise _bad_request("Invalid webhook data: service_id and provider_id must be valid UUIDs")
    if not is_valid_uuid(service_id):
        raise _bad_request("Invalid service_id (UUID expected)")
    if provider_id and not is_valid_uuid(provider_id):
        raise _bad_request("Invalid provider_id (UUID expected)")

    service = db.query(Service).filter(Service.id == service_id).first()
    if service is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Service not found")
    service.approval_status = "pending"
    _audit(db, "set_pending_approval", "services", service_id, {"approval_status": "pending"})
    db.commit()
    return WebhookResponse(message="Service marked for approval")


def handle_payment_succeeded(db: Session, data: dict[str, Any]) -> WebhookResponse:
    booking_id = data.get("booking_id")
    if not is_valid_uuid(booking_id):
        raise _bad_request("Invalid booking_id (UUID expected)")

    booking = _get_booking(db, booking_id)
    booking.status = "paid"
    now = datetime.utcnow()
    invoice = (
        db.query(Invoice)
        .filter(Invoice.booking_id == booking_id, Invoice.status == "issued")
        .first()
    )
    if invoice is not None:
        invoice.status = "paid"
        invoice.paid_at = now
    _audit(db, "payment_succeeded", "bookings", booking_id, {
        "status": "paid",
        "payment_amount": data.get("amount"),
        "payment_method": data.get("payment_method"),
    })
    db.commit()
    return WebhookResponse(message="Payment processed successfully", booking_id=booking_id)


def handle_weekly_report(db: Session, data: dict[str, Any]) -> WebhookResponse:
    now = datetime.utcnow()
    total = db.query(Booking).filter(Booking.created_at >= now - timedelta(days=7)).count()
    _audit(db, "weekly_report_generated", "bookings", "weekly_report",
           {"report_date": now.isoformat(), "total_bookings": total})
    db.commit()
    return WebhookResponse(message="Weekly report generated successfully", total_bookings=total)


HANDLERS: dict[str, Callable[[Session, dict[str, Any]], WebhookResponse]] = {
    "tracking-updated": handle_tracking_updated,
    "booking-created": handle_booking_created,
    "new-service-created": handle_new_service_created,
    "payment-succeeded": handle_payment_succeeded,
    "weekly-report": handle_weekly_report,
}


def dispatch(db: Session, request: WebhookRequest) -> WebhookResponse:
    """Route a webhook envelope to its handler.

    Raises:
        HTTPException 400: Missing ``event``/``webhook_id``, unknown event,
                           or invalid handler data.
    """
    if not request.event or not request.webhook_id:
        raise _bad_request("Missing required fields: event and webhook_id")
    handler = HANDLERS.get(request.event)
    if handler is None:
        raise _bad_request(f"Unknown event type: {request.event}")

    logger.info("Webhook %s received event '%s'", request.webhook_id, request.event)
    return handler(db, request.data or {})


def describe(event: str | None = None) -> dict[str, Any]:
    """Payload for ``GET /api/webhooks``: the event list or a sample envelope."""
    if event:
        return {
            "message": "Webhook test payload",
            "event": event,
            "known": event in WEBHOOK_EVENTS,
            "sample": {"event": event, "webhook_id": "test-webhook", "data": {}},
        }
    return {"message": "Webhook endpoint is active", "available_events": list(WEBHOOK_EVENTS)}
