"""Invoicing (amounts, numbering, PDF) and the bookings report (summary, xlsx)."""

import io
from datetime import datetime
from decimal import Decimal

import openpyxl
import pytest
from fastapi import HTTPException

from marketplace.models import Booking, Invoice
from marketplace.services import invoice_service
from marketplace.services.invoice_service import compute_amounts, next_invoice_number


class TestAmounts:
    def test_vat_on_subtotal(self):
        assert compute_amounts(Decimal("200"), 0.05) == (
            Decimal("200.000"), Decimal("10.000"), Decimal("210.000")
        )

    def test_three_decimal_half_up(self):
        subtotal, vat, total = compute_amounts(Decimal("10.01"), 0.05)
        assert vat == Decimal("0.501")
        assert total == Decimal("10.511")


class TestInvoiceNumbering:
    @pytest.fixture
    def issued(self, db, booking):
        """An invoice already issued this month on a second booking."""

        def _issue(number):
            other = Booking(
                booking_number=f"BK-20261018-9{number[-4:]}",
                client_id=booking.client_id,
                provider_id=booking.provider_id,
                service_id=booking.service_id,
                status="completed",
                total_cost=Decimal("50"),
                currency="OMR",
            )
            db.add(other)
            db.flush()
            db.add(Invoice(
                invoice_number=number,
                booking_id=other.id,
                client_id=booking.client_id,
                provider_id=booking.provider_id,
                subtotal=Decimal("50"),
                vat_rate=Decimal("0.05"),
                vat_amount=Decimal("2.5"),
                total_amount=Decimal("52.5"),
            ))
            db.commit()
            return number

        return _issue

    def test_number_follows_highest_issued(self, db, issued):
        now = datetime(2026, 10, 18)
        issued("INV-202610-0007")
        issued("INV-202609-0042")

        assert next_invoice_number(db, now) == "INV-202610-0008"
        assert next_invoice_number(db, datetime(2026, 11, 1)) == "INV-202611-0001"

    def test_taken_number_is_retried(self, db, monkeypatch, booking, provider, issued):
        taken = issued(f"INV-{datetime.utcnow():%Y%m}-0001")
        numbers = iter([taken, f"INV-{datetime.utcnow():%Y%m}-0002"])
        monkeypatch.setattr(invoice_service, "next_invoice_number", lambda db, now: next(numbers))

        invoice = invoice_service.generate_invoice(db, booking.id, provider)

        assert invoice.invoice_number.endswith("-0002")
        assert invoice.booking_id == booking.id

    def test_gives_up_after_repeated_collisions(self, db, monkeypatch, booking, provider, issued):
        taken = issued(f"INV-{datetime.utcnow():%Y%m}-0001")
        monkeypatch.setattr(invoice_service, "next_invoice_number", lambda db, now: taken)

        with pytest.raises(HTTPException) as exc_info:
            invoice_service.generate_invoice(db, booking.id, provider)

        assert exc_info.value.status_code == 503
        assert db.query(Invoice).filter(Invoice.booking_id == booking.id).first() is None


class TestInvoiceApi:
    def test_generate_and_download(self, client, provider_headers, customer_headers, booking):
        response = client.post(
            "/api/invoices/generate", json={"booking_id": booking.id}, headers=provider_headers
        )

        assert response.status_code == 201
        invoice = response.json()
        assert invoice["invoice_number"] == f"INV-{datetime.utcnow():%Y%m}-0001"
        assert invoice["subtotal"] == pytest.approx(200.0)
        assert invoice["vat_amount"] == pytest.approx(10.0)
        assert invoice["total_amount"] == pytest.approx(210.0)
        assert invoice["status"] == "issued"

        listing = client.get("/api/invoices", headers=customer_headers).json()
        assert [i["id"] for i in listing] == [invoice["id"]]

        pdf = client.get(f"/api/invoices/{invoice['id']}/pdf", headers=customer_headers)
        assert pdf.status_code == 200
        assert pdf.headers["content-type"] == "application/pdf"
        assert pdf.content.startswith(b"%PDF")

    def test_second_invoice_conflicts(self, client, provider_headers, booking):
        client.post("/api/invoices/generate", json={"booking_id": booking.id}, headers=provider_headers)
        response = client.post(
            "/api/invoices/generate", json={"booking_id": booking.id}, headers=provider_headers
        )
        assert response.status_code == 409

    def test_client_cannot_generate(self, client, customer_headers, booking):
        response = client.post(
            "/api/invoices/generate", json={"booking_id": booking.id}, headers=customer_headers
        )
        assert response.status_code == 403

    def test_outsider_cannot_read(self, client, provider_headers, other_provider_headers, booking):
        invoice = client.post(
            "/api/invoices/generate", json={"booking_id": booking.id}, headers=provider_headers
        ).json()
        response = client.get(f"/api/invoices/{invoice['id']}", headers=other_provider_headers)
        assert response.status_code == 403


class TestBookingReport:
    @pytest.fixture
    def bookings(self, db, booking):
        extra = [
            Booking(
                booking_number=f"BK-20261018-00000{n}",
                client_id=booking.client_id,
                provider_id=booking.provider_id,
                service_id=booking.service_id,
                status=status,
                project_progress=progress,
                total_cost=Decimal(cost),
                currency="OMR",
            )
            for n, (status, progress, cost) in enumerate(
                [("paid", 100, "100"), ("completed", 100, "50"), ("cancelled", 10, "999")], start=2
            )
        ]
        db.add_all(extra)
        db.commit()
        return [booking, *extra]

    def test_summary(self, client, customer_headers, bookings):
        response = client.get("/api/reports/bookings", headers=customer_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["total_bookings"] == 4
        assert body["by_status"] == {"confirmed": 1, "paid": 1, "completed": 1, "cancelled": 1}
        assert body["total_revenue"] == pytest.approx(150.0)
        assert body["completed_bookings"] == 1
        assert body["average_progress"] == pytest.approx(52.5)
        assert sum(m["bookings"] for m in body["monthly"]) == 4

    def test_summary_filtered_by_status(self, client, customer_headers, bookings):
        body = client.get(
            "/api/reports/bookings", params={"status": "paid"}, headers=customer_headers
        ).json()
        assert body["total_bookings"] == 1

    def test_summary_empty_for_outsider(self, client, other_provider_headers, bookings):
        body = client.get("/api/reports/bookings", headers=other_provider_headers).json()
        assert body["total_bookings"] == 0
        assert body["monthly"] == []

    def test_export_xlsx(self, client, admin_headers, bookings):
        response = client.get("/api/reports/bookings/export", headers=admin_headers)

        assert response.status_code == 200
        assert "attachment" in response.headers["content-disposition"]
        workbook = openpyxl.load_workbook(io.BytesIO(response.content))
        sheet = workbook["Bookings"]
        values = {cell.value for row in sheet.iter_rows() for cell in row}
        assert "Bookings report" in values
        assert "BK-20261018-000002" in values
