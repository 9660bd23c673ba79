"""Webhook dispatch: envelope validation and the five event handlers."""

from decimal import Decimal

import pytest

from marketplace.models import AuditLog, Booking, Invoice, Service
from marketplace.services.webhook_service import HANDLERS, is_valid_uuid


def _post(client, event, data=None, webhook_id="wh-1"):
    return client.post(
        "/api/webhooks", json={"event": event, "webhook_id": webhook_id, "data": data or {}}
    )


class TestEnvelope:
    def test_five_handlers(self):
        assert sorted(HANDLERS) == [
            "booking-created",
            "new-service-created",
            "payment-succeeded",
            "tracking-updated",
            "weekly-report",
        ]

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("3f2504e0-4f89-41d3-9a0c-0305e82c3301", True),
            ("3F2504E0-4F89-11D3-9A0C-0305E82C3301", True),
            ("not-a-uuid", False),
            ("create", False),
            (None, False),
            (42, False),
        ],
    )
    def test_uuid_validation(self, value, expected):
        assert is_valid_uuid(value) is expected

    def test_missing_fields(self, client):
        response = client.post("/api/webhooks", json={"event": "weekly-report"})
        assert response.status_code == 400
        assert response.json()["detail"] == "Missing required fields: event and webhook_id"

    def test_unknown_event(self, client):
        response = _post(client, "booking-exploded")
        assert response.status_code == 400
        assert response.json()["detail"] == "Unknown event type: booking-exploded"

    def test_describe(self, client):
        body = client.get("/api/webhooks").json()
        assert "payment-succeeded" in body["available_events"]
        sample = client.get("/api/webhooks", params={"event": "weekly-report"}).json()
        assert sample["known"] is True


class TestHandlers:
    def test_tracking_updated(self, client, db, booking):
        response = _post(client, "tracking-updated", {"booking_id": booking.id, "status": "in_progress"})

        assert response.status_code == 200
        assert response.json()["booking_id"] == booking.id
        db.expire_all()
        assert db.get(Booking, booking.id).status == "in_progress"
        assert db.query(AuditLog).filter(AuditLog.action == "tracking_updated").count() == 1

    def test_tracking_updated_rejects_bad_status(self, client, booking):
        response = _post(client, "tracking-updated", {"booking_id": booking.id, "status": "teleported"})
        assert response.status_code == 400

    def test_tracking_updated_unknown_booking(self, client):
        response = _post(
            client, "tracking-updated",
            {"booking_id": "3f2504e0-4f89-41d3-9a0c-0305e82c3301", "status": "paid"},
        )
        assert response.status_code == 404

    def test_booking_created_is_draft(self, client, db, customer, service):
        response = _post(client, "booking-created", {"client_id": customer.id, "service_id": service.id})

        assert response.status_code == 200
        booking = db.get(Booking, response.json()["booking_id"])
        assert booking.status == "draft"
        assert booking.project_progress == 0

    def test_booking_created_requires_uuids(self, client, service):
        response = _post(client, "booking-created", {"client_id": "someone", "service_id": service.id})
        assert response.status_code == 400

    def test_new_service_created_rejects_placeholder(self, client):
        response = _post(client, "new-service-created", {"service_id": "create", "provider_id": "create"})
        assert response.status_code == 400

    def test_new_service_created_marks_pending(self, client, db, service):
        response = _post(client, "new-service-created", {"service_id": service.id})
        assert response.status_code == 200
        db.expire_all()
        assert db.get(Service, service.id).approval_status == "pending"

    def test_payment_succeeded_marks_invoice_paid(self, client, db, booking):
        invoice = Invoice(
            invoice_number="INV-202610-0001",
            booking_id=booking.id,
            client_id=booking.client_id,
            provider_id=booking.provider_id,
            subtotal=Decimal("200.000"),
            vat_rate=Decimal("0.05"),
            vat_amount=Decimal("10.000"),
            total_amount=Decimal("210.000"),
            status="issued",
        )
        db.add(invoice)
        db.commit()
        invoice_id = invoice.id

        response = _post(client, "payment-succeeded", {"booking_id": booking.id, "amount": 210})

        assert response.status_code == 200
        db.expire_all()
        assert db.get(Booking, booking.id).status == "paid"
        paid = db.get(Invoice, invoice_id)
        assert paid.status == "paid"
        assert paid.paid_at is not None

    def test_weekly_report(self, client, booking):
        response = _post(client, "weekly-report")
        assert response.status_code == 200
        assert response.json()["total_bookings"] == 1
