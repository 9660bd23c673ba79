"""Insights engine tests: health score, recommendations and predictions."""

from datetime import timedelta

import pytest

from marketplace.services.insights_service import (
    MilestoneSnapshot,
    TaskSnapshot,
    calculate_insights,
    calculate_predictions,
    days_since_start,
    generate_recommendations,
)


def _tasks(completed: int, total: int, due_date=None):
    return tuple(
        TaskSnapshot(status="completed" if i < completed else "pending", due_date=due_date)
        for i in range(total)
    )


class TestHealthScore:
    def test_bonuses_are_capped_at_100(self, now):
        milestones = [MilestoneSnapshot(status="completed") for _ in range(9)]
        milestones.append(MilestoneSnapshot(status="pending", tasks=_tasks(8, 10)))

        insights = calculate_insights(milestones, now)

        assert insights.completion_rate == pytest.approx(90.0)
        assert insights.task_completion_rate == pytest.approx(80.0)
        assert insights.health_score == 100

    def test_score_never_below_zero(self, now):
        overdue = now - timedelta(days=1)
        milestones = [MilestoneSnapshot(status="pending", due_date=overdue) for _ in range(50)]

        insights = calculate_insights(milestones, now)

        assert insights.overdue_milestones == 50
        assert insights.health_score == 0

    def test_penalties(self, now):
        overdue = now - timedelta(days=2)
        milestones = [
            MilestoneSnapshot(status="in_progress", due_date=overdue, tasks=_tasks(0, 2, overdue)),
            MilestoneSnapshot(status="pending"),
        ]

        insights = calculate_insights(milestones, now)

        # 100 - 15 (milestone) - 2*5 (tasks) - 20 (<50 %) - 15 (<30 %)
        assert insights.health_score == 40
        assert insights.overdue_tasks == 2

    def test_completed_items_are_never_overdue(self, now):
        past = now - timedelta(days=5)
        milestones = [
            MilestoneSnapshot(
                status="completed",
                due_date=past,
                tasks=(TaskSnapshot(status="completed", due_date=past),),
            )
        ]
        insights = calculate_insights(milestones, now)
        assert insights.overdue_milestones == 0
        assert insights.overdue_tasks == 0

    def test_empty_booking(self, now):
        insights = calculate_insights([], now)
        # no milestones and no tasks: both low-rate penalties apply
        assert insights.health_score == 65
        assert insights.completion_rate == 0


class TestRecommendations:
    def test_fixed_rule_order(self, now):
        overdue = now - timedelta(days=1)
        milestones = [
            MilestoneSnapshot(status="in_progress", due_date=overdue, tasks=_tasks(0, 1, overdue))
            for _ in range(4)
        ]

        recommendations = generate_recommendations(milestones, now)

        assert [r.type for r in recommendations] == ["urgent", "warning", "info", "info"]
        assert recommendations[0].title == "Overdue Milestones"
        assert recommendations[0].description == "4 milestone(s) are overdue"
        assert recommendations[1].title == "Overdue Tasks"
        assert recommendations[2].title == "Project Health Low"
        assert recommendations[3].title == "Resource Spread"

    def test_healthy_project_has_none(self, now):
        milestones = [MilestoneSnapshot(status="completed", tasks=_tasks(3, 3)) for _ in range(3)]
        assert generate_recommendations(milestones, now) == []

    def test_three_parallel_milestones_is_not_a_spread(self, now):
        milestones = [MilestoneSnapshot(status="in_progress", tasks=_tasks(3, 3)) for _ in range(3)]
        titles = [r.title for r in generate_recommendations(milestones, now)]
        assert "Resource Spread" not in titles


class TestPredictions:
    def test_velocity_from_elapsed_days(self, now):
        start = now - timedelta(days=10)
        milestones = [
            MilestoneSnapshot(status="completed", estimated_hours=40, start_date=start),
            MilestoneSnapshot(status="in_progress", progress_percentage=50, estimated_hours=40),
            MilestoneSnapshot(status="pending", estimated_hours=20),
        ]

        predictions = calculate_predictions(milestones, now)

        assert predictions.total_estimated_hours == 100
        assert predictions.completed_hours == 60
        assert predictions.remaining_hours == 40
        assert predictions.completion_rate == pytest.approx(0.6)
        assert predictions.average_daily_hours == pytest.approx(6.0)
        assert predictions.estimated_days_to_complete == pytest.approx(40 / 6)
        assert predictions.estimated_completion == now + timedelta(days=40 / 6)
        assert predictions.risk_level == "low"

    def test_default_velocity_when_nothing_done(self, now):
        milestones = [MilestoneSnapshot(status="pending", estimated_hours=16)]

        predictions = calculate_predictions(milestones, now, default_daily_hours=8)

        assert predictions.average_daily_hours == 8
        assert predictions.estimated_days_to_complete == pytest.approx(2.0)
        assert predictions.risk_level == "high"

    def test_medium_risk_with_one_overdue(self, now):
        milestones = [
            MilestoneSnapshot(status="completed", estimated_hours=80, start_date=now - timedelta(days=4)),
            MilestoneSnapshot(status="pending", estimated_hours=20, due_date=now - timedelta(days=1)),
        ]
        assert calculate_predictions(milestones, now).risk_level == "medium"

    def test_high_risk_with_three_overdue(self, now):
        overdue = now - timedelta(days=1)
        milestones = [
            MilestoneSnapshot(status="completed", estimated_hours=100, start_date=now - timedelta(days=5)),
        ] + [MilestoneSnapshot(status="pending", estimated_hours=1, due_date=overdue) for _ in range(3)]
        assert calculate_predictions(milestones, now).risk_level == "high"

    def test_days_since_start_has_a_floor(self, now):
        assert days_since_start([], now) == 1
        assert days_since_start([MilestoneSnapshot(status="pending", start_date=now)], now) == 1
        earliest = [
            MilestoneSnapshot(status="pending", start_date=now - timedelta(days=3, hours=20)),
            MilestoneSnapshot(status="pending", start_date=now - timedelta(days=1)),
        ]
        assert days_since_start(earliest, now) == 3


class TestInsightsApi:
    def test_insights_for_participant(self, client, customer_headers, booking, make_milestone, make_task):
        milestone = make_milestone(estimated_hours=10)
        make_task(milestone, status="completed")

        response = client.get(
            "/api/milestones/insights", params={"booking_id": booking.id}, headers=customer_headers
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert 0 <= body["insights"]["health_score"] <= 100
        assert body["predictions"]["risk_level"] in {"low", "medium", "high"}
        assert len(body["milestones"]) == 1

    def test_insights_forbidden_for_outsider(self, client, other_provider_headers, booking):
        response = client.get(
            "/api/milestones/insights",
            params={"booking_id": booking.id},
            headers=other_provider_headers,
        )
        assert response.status_code == 403
