"""Milestone endpoints: CRUD, approval workflow and comments."""

from marketplace.models import Booking, Milestone, MilestoneApproval, Notification


class TestMilestoneCrud:
    def test_create_appends_and_recomputes(self, client, db, provider_headers, booking, make_milestone, make_task):
        done = make_milestone("Done", order_index=0)
        make_task(done, status="completed")
        client.post("/api/progress/calculate", json={"booking_id": booking.id}, headers=provider_headers)

        response = client.post(
            "/api/milestones",
            json={"booking_id": booking.id, "title": "Launch", "weight": 1},
            headers=provider_headers,
        )

        assert response.status_code == 201
        body = response.json()
        assert body["order_index"] == 1
        assert body["progress_percentage"] == 0
        assert body["status"] == "pending"
        db.expire_all()
        # (100*1 + 0*1) / 2
        assert db.get(Booking, booking.id).project_progress == 50

    def test_client_cannot_create(self, client, customer_headers, booking):
        response = client.post(
            "/api/milestones",
            json={"booking_id": booking.id, "title": "Sneaky"},
            headers=customer_headers,
        )
        assert response.status_code == 403

    def test_weight_out_of_range_is_validation_error(self, client, provider_headers, booking):
        response = client.post(
            "/api/milestones",
            json={"booking_id": booking.id, "title": "Heavy", "weight": 50},
            headers=provider_headers,
        )
        assert response.status_code == 400
        assert response.json()["details"][0]["field"] == "weight"

    def test_list_includes_tasks(self, client, customer_headers, booking, make_milestone, make_task):
        milestone = make_milestone()
        make_task(milestone, title="Write brief")

        response = client.get(
            "/api/milestones", params={"booking_id": booking.id}, headers=customer_headers
        )

        assert response.status_code == 200
        assert response.json()[0]["tasks"][0]["title"] == "Write brief"

    def test_update_weight_changes_booking_progress(self, client, db, provider_headers, booking, make_milestone, make_task):
        m1 = make_milestone("A", order_index=0)
        make_task(m1, status="completed")
        m2 = make_milestone("B", order_index=1)
        make_task(m2)
        client.post("/api/progress/calculate", json={"booking_id": booking.id}, headers=provider_headers)

        response = client.patch(
            "/api/milestones",
            params={"milestone_id": m1.id},
            json={"weight": 3},
            headers=provider_headers,
        )

        assert response.status_code == 200
        db.expire_all()
        assert db.get(Booking, booking.id).project_progress == 75

    def test_locked_milestone_cannot_be_edited(self, client, provider_headers, make_milestone):
        milestone = make_milestone(editable=False)
        response = client.patch(
            "/api/milestones",
            params={"milestone_id": milestone.id},
            json={"title": "Renamed"},
            headers=provider_headers,
        )
        assert response.status_code == 403

    def test_completion_notifies_client(self, client, db, provider_headers, customer, make_milestone):
        milestone = make_milestone()
        response = client.patch(
            "/api/milestones",
            params={"milestone_id": milestone.id},
            json={"status": "completed"},
            headers=provider_headers,
        )
        assert response.status_code == 200
        assert response.json()["completed_at"] is not None
        assert db.query(Notification).filter(Notification.user_id == customer.id).count() == 1

    def test_delete_recomputes_booking(self, client, db, provider_headers, booking, make_milestone, make_task):
        keep = make_milestone("Keep", order_index=0)
        make_task(keep, status="completed")
        drop = make_milestone("Drop", order_index=1)
        make_task(drop)
        drop_id = drop.id

        response = client.delete(
            "/api/milestones", params={"milestone_id": drop_id}, headers=provider_headers
        )

        assert response.status_code == 200
        db.expire_all()
        assert db.get(Milestone, drop_id) is None
        assert db.get(Booking, booking.id).project_progress == 100


class TestApproval:
    def test_client_approves(self, client, db, customer_headers, provider, make_milestone):
        milestone = make_milestone(status="in_progress")

        response = client.post(
            "/api/milestones/approve",
            json={"milestone_id": milestone.id, "action": "approve", "feedback": "Great"},
            headers=customer_headers,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Milestone approved successfully"
        assert body["milestone"]["status"] == "completed"
        assert body["approval"]["status"] == "approved"
        assert db.query(MilestoneApproval).count() == 1
        assert db.query(Notification).filter(Notification.user_id == provider.id).count() == 1

    def test_approve_twice_is_idempotent(self, client, customer_headers, make_milestone):
        milestone = make_milestone(status="completed")
        response = client.post(
            "/api/milestones/approve",
            json={"milestone_id": milestone.id, "action": "approve"},
            headers=customer_headers,
        )
        assert response.status_code == 200
        assert response.json()["milestone"]["status"] == "completed"

    def test_cannot_reject_completed(self, client, customer_headers, make_milestone):
        milestone = make_milestone(status="completed")
        response = client.post(
            "/api/milestones/approve",
            json={"milestone_id": milestone.id, "action": "reject"},
            headers=customer_headers,
        )
        assert response.status_code == 400

    def test_reject(self, client, customer_headers, make_milestone):
        milestone = make_milestone(status="in_progress")
        response = client.post(
            "/api/milestones/approve",
            json={"milestone_id": milestone.id, "action": "reject", "feedback": "Needs work"},
            headers=customer_headers,
        )
        assert response.status_code == 200
        assert response.json()["milestone"]["status"] == "rejected"
        assert response.json()["message"] == "Milestone rejected successfully"

    def test_provider_cannot_approve(self, client, provider_headers, make_milestone):
        milestone = make_milestone(status="in_progress")
        response = client.post(
            "/api/milestones/approve",
            json={"milestone_id": milestone.id, "action": "approve"},
            headers=provider_headers,
        )
        assert response.status_code == 403

    def test_invalid_action(self, client, customer_headers, make_milestone):
        milestone = make_milestone()
        response = client.post(
            "/api/milestones/approve",
            json={"milestone_id": milestone.id, "action": "maybe"},
            headers=customer_headers,
        )
        assert response.status_code == 400


class TestComments:
    def test_thread(self, client, customer_headers, provider_headers, make_milestone):
        milestone = make_milestone()
        root = client.post(
            "/api/milestones/comments",
            json={"milestone_id": milestone.id, "content": "When is the draft due?", "comment_type": "question"},
            headers=customer_headers,
        )
        assert root.status_code == 201
        assert root.json()["author_name"] == "Client User"

        reply = client.post(
            "/api/milestones/comments",
            json={"milestone_id": milestone.id, "content": "Friday.", "parent_id": root.json()["id"]},
            headers=provider_headers,
        )
        assert reply.status_code == 201

        listing = client.get(
            "/api/milestones/comments", params={"milestone_id": milestone.id}, headers=customer_headers
        )
        by_content = {c["content"]: c for c in listing.json()}
        assert set(by_content) == {"When is the draft due?", "Friday."}
        assert by_content["Friday."]["parent_id"] == root.json()["id"]

    def test_reply_to_other_milestone_rejected(self, client, customer_headers, make_milestone):
        first = make_milestone("First")
        second = make_milestone("Second", order_index=1)
        root = client.post(
            "/api/milestones/comments",
            json={"milestone_id": first.id, "content": "Hello"},
            headers=customer_headers,
        )

        response = client.post(
            "/api/milestones/comments",
            json={"milestone_id": second.id, "content": "Reply", "parent_id": root.json()["id"]},
            headers=customer_headers,
        )
        assert response.status_code == 400

    def test_outsider_cannot_comment(self, client, other_provider_headers, make_milestone):
        milestone = make_milestone()
        response = client.post(
            "/api/milestones/comments",
            json={"milestone_id": milestone.id, "content": "Hi"},
            headers=other_provider_headers,
        )
        assert response.status_code == 403
