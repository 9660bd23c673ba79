"""Milestone seeding from plan templates."""

from datetime import timedelta

from marketplace.models import Booking, Milestone, Task
from marketplace.schemas.seed import SeedRequest
from marketplace.services.seed_service import seed_milestones
from marketplace.utils.milestone_templates import DEFAULT_PLAN, PLANS, resolve_plan


class TestTemplates:
    def test_content_creation_shape(self):
        plan = PLANS["content_creation"]
        assert len(plan) == 4
        assert all(len(t.tasks) == 3 for t in plan)

    def test_unknown_plan_falls_back(self):
        key, templates = resolve_plan("underwater_basket_weaving")
        assert key == DEFAULT_PLAN
        assert templates is PLANS[DEFAULT_PLAN]

    def test_weekly_plans_are_due_a_week_apart(self):
        assert [t.due_in_days for t in PLANS["seo"]][:3] == [7, 14, 21]

    def test_task_hours_split(self):
        seo = PLANS["seo"][1]  # 12 h over 4 tasks
        assert seo.task_hours() == 3
        assert PLANS["content_creation"][0].task_hours() == 0


class TestSeedService:
    def test_content_creation_creates_pending_rows(self, db, booking, provider, now):
        result = seed_milestones(db, SeedRequest(booking_id=booking.id), provider, None, now=now)

        assert result.plan == "content_creation"
        assert len(result.created) == 4
        assert all(m.task_count == 3 for m in result.created)

        db.expire_all()
        milestones = (
            db.query(Milestone)
            .filter(Milestone.booking_id == booking.id)
            .order_by(Milestone.order_index)
            .all()
        )
        assert [m.order_index for m in milestones] == [0, 1, 2, 3]
        assert all(m.status == "pending" and m.progress_percentage == 0 for m in milestones)
        assert milestones[0].due_date == now + timedelta(days=5)

        tasks = db.query(Task).join(Milestone).filter(Milestone.booking_id == booking.id).all()
        assert len(tasks) == 12
        assert all(t.status == "pending" and t.progress_percentage == 0 for t in tasks)

        stored = db.get(Booking, booking.id)
        assert stored.project_progress == 0
        assert stored.service_type == "content_creation"


class TestSeedApi:
    def test_seed_then_conflict(self, client, provider_headers, booking):
        first = client.post(
            "/api/milestones/seed",
            json={"booking_id": booking.id, "plan": "seo"},
            headers=provider_headers,
        )
        assert first.status_code == 201
        assert first.json()["plan"] == "seo"
        assert len(first.json()["created"]) == len(PLANS["seo"])

        second = client.post(
            "/api/milestones/seed", json={"booking_id": booking.id}, headers=provider_headers
        )
        assert second.status_code == 409
        assert second.json()["detail"] == "Milestones already exist for this booking"

    def test_client_cannot_seed(self, client, customer_headers, booking):
        response = client.post(
            "/api/milestones/seed", json={"booking_id": booking.id}, headers=customer_headers
        )
        assert response.status_code == 403
        assert response.json()["detail"] == "Only providers can seed milestones"

    def test_unknown_booking(self, client, admin_headers):
        response = client.post(
            "/api/milestones/seed", json={"booking_id": "nope"}, headers=admin_headers
        )
        assert response.status_code == 404
