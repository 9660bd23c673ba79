"""Subscription registry tests: debounce, retry eviction, capacity and cleanup."""

import asyncio
import threading
import time
from contextlib import suppress

import pytest

from marketplace.realtime import SubscriptionRegistry, run_pump
from marketplace.utils.constants import PROGRESS_UPDATED_EVENT


@pytest.fixture
def registry():
    return SubscriptionRegistry(
        max_subscriptions=3,
        max_inactive_seconds=300,
        default_debounce_ms=1000,
        default_max_retries=3,
        clock=lambda: 0.0,
    )


class TestSubscribe:
    def test_subscription_id_format(self, registry):
        sub_id = registry.subscribe("bookings", "UPDATE", lambda p: None, now=0.0)
        assert sub_id.startswith("bookings_UPDATE_")
        assert len(sub_id.rsplit("_", 1)[1]) == 8
        assert sub_id in registry

    def test_unknown_event_rejected(self, registry):
        with pytest.raises(ValueError):
            registry.subscribe("bookings", "TRUNCATE", lambda p: None)

    def test_closed_registry_rejects_subscriptions(self, registry):
        registry.subscribe("bookings", "*", lambda p: None, now=0.0)
        registry.close()
        assert registry.closed
        assert len(registry) == 0
        with pytest.raises(ValueError):
            registry.subscribe("bookings", "*", lambda p: None)

    def test_cap_evicts_least_recently_active(self, registry):
        first = registry.subscribe("bookings", "*", lambda p: None, now=10.0)
        second = registry.subscribe("milestones", "*", lambda p: None, now=20.0)
        third = registry.subscribe("tasks", "*", lambda p: None, now=30.0)
        # Activity on the first subscription makes the second the oldest
        registry.publish("bookings", "UPDATE", {"id": "b1"}, now=40.0)

        fourth = registry.subscribe("invoices", "*", lambda p: None, now=50.0)

        assert len(registry) == 3
        assert second not in registry
        assert {first, third, fourth} <= {s["id"] for s in registry.stats()["subscriptions"]}

    def test_cap_prefers_cleaning_inactive(self, registry):
        stale = registry.subscribe("bookings", "*", lambda p: None, now=0.0)
        registry.subscribe("milestones", "*", lambda p: None, now=400.0)
        registry.subscribe("tasks", "*", lambda p: None, now=401.0)

        registry.subscribe("invoices", "*", lambda p: None, now=402.0)

        assert stale not in registry
        assert len(registry) == 3


class TestDispatch:
    def test_debounce_coalesces_to_latest_payload(self, registry):
        received = []
        registry.subscribe("bookings", "UPDATE", received.append, now=0.0)

        registry.publish("bookings", "UPDATE", {"id": "b1", "v": 1}, now=1.0)
        registry.publish("bookings", "UPDATE", {"id": "b1", "v": 2}, now=1.5)

        assert registry.dispatch_due(now=2.0) == 0
        assert registry.dispatch_due(now=2.5) == 1
        assert received == [{"id": "b1", "v": 2}]

    def test_filter_and_event_matching(self, registry):
        received = []
        registry.subscribe(
            "bookings", "UPDATE", received.append, filter="client_id=eq.c1", debounce_ms=0, now=0.0
        )

        assert registry.publish("bookings", "UPDATE", {"client_id": "c2"}, now=1.0) == 0
        assert registry.publish("bookings", "DELETE", {"client_id": "c1"}, now=1.0) == 0
        assert registry.publish("milestones", "UPDATE", {"client_id": "c1"}, now=1.0) == 0
        assert registry.publish("bookings", "UPDATE", {"client_id": "c1"}, now=1.0) == 1
        registry.dispatch_due(now=1.0)
        assert received == [{"client_id": "c1"}]

    def test_wildcard_receives_any_change(self, registry):
        received = []
        registry.subscribe("bookings", "*", received.append, debounce_ms=0, now=0.0)
        registry.publish("bookings", "INSERT", {"id": "b1"}, now=1.0)
        registry.dispatch_due(now=1.0)
        assert received == [{"id": "b1"}]

    def test_progress_event_subscription(self, registry):
        received = []
        registry.subscribe("bookings", PROGRESS_UPDATED_EVENT, received.append, debounce_ms=0, now=0.0)
        registry.publish("bookings", PROGRESS_UPDATED_EVENT, {"project_progress": 100}, now=1.0)
        registry.dispatch_due(now=1.0)
        assert received == [{"project_progress": 100}]

    def test_failing_callback_removed_after_max_retries(self, registry):
        def boom(payload):
            raise RuntimeError("listener down")

        sub_id = registry.subscribe("bookings", "UPDATE", boom, debounce_ms=0, now=0.0)
        for attempt in range(3):
            registry.publish("bookings", "UPDATE", {"n": attempt}, now=float(attempt))
            assert registry.dispatch_due(now=float(attempt)) == 0

        assert sub_id not in registry

    def test_success_resets_retry_count(self, registry):
        calls = []

        def flaky(payload):
            calls.append(payload)
            if payload.get("fail"):
                raise RuntimeError("transient")

        sub_id = registry.subscribe("bookings", "UPDATE", flaky, debounce_ms=0, now=0.0)
        for n, fail in enumerate([True, True, False, True, True]):
            registry.publish("bookings", "UPDATE", {"fail": fail}, now=float(n))
            registry.dispatch_due(now=float(n))

        assert sub_id in registry
        assert len(calls) == 5


class TestHousekeeping:
    def test_cleanup_inactive(self, registry):
        old = registry.subscribe("bookings", "*", lambda p: None, now=0.0)
        fresh = registry.subscribe("tasks", "*", lambda p: None, now=250.0)

        assert registry.cleanup_inactive(now=301.0) == 1
        assert old not in registry
        assert fresh in registry

    def test_unsubscribe(self, registry):
        sub_id = registry.subscribe("bookings", "*", lambda p: None, now=0.0)
        assert registry.unsubscribe(sub_id) is True
        assert registry.unsubscribe(sub_id) is False

    def test_stats(self, registry):
        registry.subscribe("bookings", "*", lambda p: None, now=0.0)
        stats = registry.stats()
        assert stats["total_subscriptions"] == 1
        assert stats["max_subscriptions"] == 3
        assert stats["subscriptions"][0]["table"] == "bookings"


class TestPump:
    def test_slow_callback_does_not_block_event_loop(self):
        registry = SubscriptionRegistry(default_debounce_ms=0)
        delivered = threading.Event()

        def slow(payload):
            time.sleep(0.5)
            delivered.set()

        registry.subscribe("bookings", "UPDATE", slow)
        registry.publish("bookings", "UPDATE", {"id": "b1"})

        async def scenario():
            pump = asyncio.create_task(run_pump(registry, 0.01, 60))
            await asyncio.sleep(0.05)
            started = time.monotonic()
            await asyncio.sleep(0.05)
            elapsed = time.monotonic() - started
            registry.close()
            await asyncio.to_thread(delivered.wait, 2)
            pump.cancel()
            with suppress(asyncio.CancelledError):
                await pump
            return elapsed

        assert asyncio.run(scenario()) < 0.3
        assert delivered.is_set()

    def test_publish_from_threads_while_dispatching(self):
        registry = SubscriptionRegistry(default_debounce_ms=0, max_subscriptions=5)
        received = []
        registry.subscribe("bookings", "UPDATE", received.append)

        def publisher(n):
            for i in range(200):
                registry.publish("bookings", "UPDATE", {"n": n, "i": i})

        threads = [threading.Thread(target=publisher, args=(n,)) for n in range(4)]
        for thread in threads:
            thread.start()
        while any(thread.is_alive() for thread in threads):
            registry.dispatch_due()
        for thread in threads:
            thread.join()
        registry.dispatch_due()

        assert received
        assert received[-1]["i"] == 199
        assert registry.stats()["subscriptions"][0]["pending"] is False


class TestRealtimeApi:
    def test_stats_unavailable_without_lifespan(self, client, admin_headers):
        response = client.get("/api/realtime/stats", headers=admin_headers)
        assert response.status_code == 503

    def test_stats_admin_only(self, client, customer_headers):
        response = client.get("/api/realtime/stats", headers=customer_headers)
        assert response.status_code == 403
