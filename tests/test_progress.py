"""
Progress aggregation tests.

Covers the pure arithmetic (milestone ratio, weighted booking average,
half-up rounding) and the transactional recompute chain against SQLite.
"""

from decimal import Decimal

import pytest
from fastapi import HTTPException

from marketplace.database import new_id
from marketplace.models import Booking, Milestone
from marketplace.realtime import SubscriptionRegistry
from marketplace.schemas.progress import ProgressCalculateRequest
from marketplace.services import progress_service
from marketplace.services.progress_service import (
    milestone_progress,
    round_half_up,
    weighted_progress,
)
from marketplace.utils.constants import PROGRESS_UPDATED_EVENT


@pytest.fixture
def lock_order(monkeypatch):
    """Record booking locks and flushes, with whether writes were still pending."""
    calls = []
    lock_booking = progress_service._lock_booking
    flush_pending = progress_service._flush_pending

    def _pending(db):
        return bool(db.new or db.dirty or db.deleted)

    def _lock(db, booking_id):
        calls.append(("lock", _pending(db)))
        return lock_booking(db, booking_id)

    def _flush(db, level):
        calls.append(("flush", _pending(db)))
        flush_pending(db, level)

    monkeypatch.setattr(progress_service, "_lock_booking", _lock)
    monkeypatch.setattr(progress_service, "_flush_pending", _flush)
    return calls


class TestPureArithmetic:
    """Rounding and aggregation without a database."""

    def test_round_half_up_ties_go_up(self):
        assert round_half_up(0.5) == 1
        assert round_half_up(2.5) == 3
        assert round_half_up(Decimal("66.5")) == 67
        assert round_half_up(66.49) == 66

    def test_milestone_without_tasks_is_zero(self):
        assert milestone_progress(0, 0) == 0

    @pytest.mark.parametrize(
        "completed,total,expected",
        [(0, 3, 0), (1, 3, 33), (2, 3, 67), (3, 3, 100), (1, 8, 13), (1, 2, 50)],
    )
    def test_milestone_ratio(self, completed, total, expected):
        assert milestone_progress(completed, total) == expected

    def test_weighted_example(self):
        # (100*1 + 0*1 + 50*2) / 4 = 50
        assert weighted_progress([(100, 1), (0, 1), (50, 2)]) == 50

    def test_weighted_zero_total_weight(self):
        assert weighted_progress([(80, 0), (40, 0)]) == 0

    def test_weighted_empty(self):
        assert weighted_progress([]) == 0

    def test_weighted_is_order_independent(self):
        items = [(100, Decimal("1.5")), (20, Decimal("0.5")), (0, 2)]
        assert weighted_progress(items) == weighted_progress(list(reversed(items)))
        assert weighted_progress(items) == 40


class TestRecomputeChain:
    """Task → milestone → booking recompute against the database."""

    def test_milestone_and_booking_recomputed(self, db, booking, make_milestone, make_task):
        m1 = make_milestone("Design", weight=1)
        m2 = make_milestone("Build", weight=3, order_index=1)
        make_task(m1, status="completed")
        make_task(m1, status="pending")
        for _ in range(4):
            make_task(m2, status="completed")

        m_progress, b_progress = progress_service.recompute_from_milestone(db, m1.id)

        assert m_progress == 50
        # m2 has not been recomputed yet: (50*1 + 0*3) / 4
        assert b_progress == round_half_up(Decimal(50) / 4)

        total = progress_service.recompute_booking(db, booking.id)
        db.expire_all()
        assert db.get(Milestone, m2.id).progress_percentage == 100
        assert total == round_half_up(Decimal(50 + 300) / 4)
        assert db.get(Booking, booking.id).project_progress == total

    def test_in_progress_task_earns_no_credit(self, db, booking, make_milestone, make_task):
        milestone = make_milestone()
        make_task(milestone, status="in_progress", progress_percentage=90)
        make_task(milestone, status="pending")

        m_progress, _ = progress_service.recompute_from_milestone(db, milestone.id)
        assert m_progress == 0

    def test_booking_without_milestones_is_zero(self, db, booking):
        assert progress_service.recompute_booking(db, booking.id) == 0

    def test_unknown_milestone_is_404(self, db):
        with pytest.raises(HTTPException) as exc_info:
            progress_service.recompute_from_milestone(db, "missing")
        assert exc_info.value.status_code == 404

    def test_booking_locked_before_pending_writes_flush(self, db, booking, lock_order, make_milestone, make_task):
        milestone = make_milestone()
        task = make_task(milestone)
        task.status = "completed"

        progress_service.recompute_from_milestone(db, milestone.id, booking_id=booking.id)

        assert lock_order[:2] == [("lock", True), ("flush", True)]

    def test_new_milestone_locks_booking_first(self, db, booking, lock_order):
        milestone = Milestone(id=new_id(), booking_id=booking.id, title="Late addition", weight=1)
        db.add(milestone)

        progress_service.recompute_from_milestone(db, milestone.id, booking_id=booking.id)

        assert lock_order[0] == ("lock", True)
        assert db.get(Milestone, milestone.id) is not None

    def test_recompute_booking_locks_before_flush(self, db, booking, lock_order, make_milestone):
        milestone = make_milestone()
        db.delete(milestone)

        assert progress_service.recompute_booking(db, booking.id) == 0
        assert lock_order[:2] == [("lock", True), ("flush", True)]

    def test_publishes_progress_event(self, db, booking, make_milestone, make_task):
        registry = SubscriptionRegistry(default_debounce_ms=0)
        received = []
        registry.subscribe("bookings", PROGRESS_UPDATED_EVENT, received.append, now=0.0)
        milestone = make_milestone()
        make_task(milestone, status="completed")

        progress_service.recompute_from_milestone(db, milestone.id, registry)
        registry.dispatch_due(now=1e12)

        assert len(received) == 1
        assert received[0]["booking_id"] == booking.id
        assert received[0]["project_progress"] == 100

    def test_calculate_reports_errors_per_level(self, db, booking, make_milestone, make_task):
        milestone = make_milestone()
        make_task(milestone, status="completed")

        results = progress_service.calculate(
            db,
            ProgressCalculateRequest(booking_id=booking.id, task_id="missing-task"),
        )

        assert results.booking_progress == 100
        assert results.booking_error is None
        assert results.task_error == "Task 'missing-task' not found"


class TestProgressApi:
    def test_calculate_requires_an_id(self, client, customer_headers):
        response = client.post("/api/progress/calculate", json={}, headers=customer_headers)
        assert response.status_code == 400
        assert response.json()["error"] == "VALIDATION_ERROR"

    def test_calculate_milestone(self, client, provider_headers, make_milestone, make_task):
        milestone = make_milestone()
        make_task(milestone, status="completed")
        make_task(milestone)
        make_task(milestone)

        response = client.post(
            "/api/progress/calculate",
            json={"milestone_id": milestone.id},
            headers=provider_headers,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        data = body["results"]["milestone_data"]
        assert data["progress_percentage"] == 33
        assert data["completed_tasks"] == 1
        assert data["total_tasks"] == 3

    def test_booking_progress_view(self, client, customer_headers, booking, make_milestone, make_task):
        milestone = make_milestone(weight=2)
        make_task(milestone, status="completed")
        client.post(
            "/api/progress/calculate", json={"booking_id": booking.id}, headers=customer_headers
        )

        response = client.get(f"/api/progress/{booking.id}", headers=customer_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["project_progress"] == 100
        assert len(body["milestones"]) == 1

    def test_requires_authentication(self, client):
        response = client.post("/api/progress/calculate", json={"booking_id": "x"})
        assert response.status_code == 401

    def test_task_and_milestone_updates_lock_booking_first(
        self, client, provider_headers, lock_order, make_milestone, make_task
    ):
        milestone = make_milestone()
        task = make_task(milestone)

        response = client.patch(
            "/api/tasks", params={"task_id": task.id}, json={"status": "in_progress"},
            headers=provider_headers,
        )
        assert response.status_code == 200
        assert lock_order[:2] == [("lock", True), ("flush", True)]

        lock_order.clear()
        response = client.patch(
            "/api/milestones", params={"milestone_id": milestone.id}, json={"title": "Renamed"},
            headers=provider_headers,
        )
        assert response.status_code == 200
        assert lock_order[:2] == [("lock", True), ("flush", True)]
