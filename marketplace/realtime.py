"""
In-process realtime subscription registry.

A ``SubscriptionRegistry`` is owned by the application (``app.state.realtime``)
and handed to whoever publishes or listens. It keeps at most
``max_subscriptions`` live subscriptions; when full it first purges
subscriptions idle for longer than ``max_inactive_seconds`` and then evicts the
least-recently-active one.

Deliveries are debounced per subscription: ``publish`` stores the latest
payload and pushes its deadline ``debounce_ms`` into the future, and
``dispatch_due`` hands the payload to the callback once the deadline has
passed. A callback that raises is retried on the next publish; after
``max_retries`` consecutive failures the subscription is removed.

All timestamps are ``time.monotonic()`` seconds unless an explicit ``now`` is
passed, which keeps the registry deterministic under test. The registry is
thread-safe: request threads publish while the pump dispatches.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable

from fastapi import Request

from marketplace.config import get_settings
from marketplace.utils.constants import PROGRESS_UPDATED_EVENT, REALTIME_EVENTS

logger = logging.getLogger(__name__)

Callback = Callable[[dict[str, Any]], Any]


@dataclass
class Subscription:
    id: str
    table: str
    event: str
    callback: Callback
    filter: str | None
    debounce_ms: int
    max_retries: int
    last_activity: float
    retry_count: int = 0
    is_active: bool = True
    pending: dict[str, Any] | None = field(default=None, repr=False)
    due_at: float | None = None

    def matches(self, table: str, event: str, payload: dict[str, Any]) -> bool:
        if self.table != table:
            return False
        if self.event != "*" and self.event != event:
            return False
        return _filter_matches(self.filter, payload)


def _filter_matches(expr: str | None, payload: dict[str, Any]) -> bool:
    """Evaluate a ``column=eq.value`` filter against a payload.

    ``None`` or an empty string matches everything.
    """
    if not expr:
        return True
    column, _, condition = expr.partition("=")
    op, _, expected = condition.partition(".")
    if op != "eq":
        raise ValueError(f"Unsupported realtime filter operator: {op!r}")
    actual = payload.get(column)
    return actual is not None and str(actual) == expected


class SubscriptionRegistry:
    """Bounded set of debounced table-change subscriptions.

    Publishers run on request worker threads while the pump dispatches from
    its own thread, so every access to the subscription map and to pending
    deliveries goes through ``self._lock``. Callbacks run outside the lock.
    """

    def __init__(
        self,
        max_subscriptions: int | None = None,
        max_inactive_seconds: float | None = None,
        default_debounce_ms: int | None = None,
        default_max_retries: int | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        settings = get_settings()
        self.max_subscriptions = (
            max_subscriptions if max_subscriptions is not None
            else settings.REALTIME_MAX_SUBSCRIPTIONS
        )
        self.max_inactive_seconds = (
            max_inactive_seconds if max_inactive_seconds is not None
            else settings.REALTIME_MAX_INACTIVE_SECONDS
        )
        self.default_debounce_ms = (
            default_debounce_ms if default_debounce_ms is not None
            else settings.REALTIME_DEFAULT_DEBOUNCE_MS
        )
        self.default_max_retries = (
            default_max_retries if default_max_retries is not None
            else settings.REALTIME_DEFAULT_MAX_RETRIES
        )
        self._clock = clock
        self._lock = threading.Lock()
        self._subscriptions: dict[str, Subscription] = {}
        self._closed = False

    def __len__(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def __contains__(self, subscription_id: object) -> bool:
        with self._lock:
            return subscription_id in self._subscriptions

    # ------------------------------------------------------------------
    # Subscribe / unsubscribe
    # ------------------------------------------------------------------

    def subscribe(
        self,
        table: str,
        event: str,
        callback: Callback,
        filter: str | None = None,
        debounce_ms: int | None = None,
        max_retries: int | None = None,
        now: float | None = None,
    ) -> str:
        """Register *callback* for changes on *table* and return the subscription id.

        Raises:
            ValueError: If *event* is not a known change event or the
                        registry has been closed.
        """
        if event not in REALTIME_EVENTS and event != PROGRESS_UPDATED_EVENT:
            raise ValueError(f"Unknown realtime event: {event!r}")
        now = self._clock() if now is None else now

        with self._lock:
            if self._closed:
                raise ValueError("Subscription registry is closed")
            if len(self._subscriptions) >= self.max_subscriptions:
                self._purge_inactive(now)
            if len(self._subscriptions) >= self.max_subscriptions:
                oldest = min(self._subscriptions.values(), key=lambda s: s.last_activity)
                logger.info("Realtime cap reached, evicting subscription %s", oldest.id)
                self._remove(oldest.id)

            subscription_id = f"{table}_{event}_{uuid.uuid4().hex[:8]}"
            self._subscriptions[subscription_id] = Subscription(
                id=subscription_id,
                table=table,
                event=event,
                callback=callback,
                filter=filter,
                debounce_ms=self.default_debounce_ms if debounce_ms is None else debounce_ms,
                max_retries=self.default_max_retries if max_retries is None else max_retries,
                last_activity=now,
            )
        logger.debug("Realtime subscription created: %s for table %s", subscription_id, table)
        return subscription_id

    def _remove(self, subscription_id: str) -> bool:
        # Caller holds self._lock.
        subscription = self._subscriptions.pop(subscription_id, None)
        if subscription is None:
            return False
        subscription.is_active = False
        subscription.pending = None
        subscription.due_at = None
        logger.debug("Realtime subscription removed: %s", subscription_id)
        return True

    def unsubscribe(self, subscription_id: str) -> bool:
        with self._lock:
            return self._remove(subscription_id)

    def unsubscribe_all(self) -> int:
        with self._lock:
            ids = list(self._subscriptions)
            for subscription_id in ids:
                self._remove(subscription_id)
        return len(ids)

    # ------------------------------------------------------------------
    # Publish / dispatch
    # ------------------------------------------------------------------

    def publish(
        self,
        table: str,
        event: str,
        payload: dict[str, Any],
        now: float | None = None,
    ) -> int:
        """Schedule *payload* for every matching subscription.

        Returns the number of subscriptions the payload was scheduled for.
        """
        now = self._clock() if now is None else now
        scheduled = 0
        with self._lock:
            for subscription in self._subscriptions.values():
                if not subscription.matches(table, event, payload):
                    continue
                subscription.last_activity = now
                subscription.pending = payload
                subscription.due_at = now + subscription.debounce_ms / 1000.0
                scheduled += 1
        return scheduled

    def dispatch_due(self, now: float | None = None) -> int:
        """Deliver every pending payload whose debounce window has elapsed.

        Returns the number of successful deliveries.
        """
        now = self._clock() if now is None else now
        due: list[tuple[Subscription, dict[str, Any]]] = []
        with self._lock:
            for subscription in self._subscriptions.values():
                if subscription.pending is None or subscription.due_at is None:
                    continue
                if subscription.due_at > now:
                    continue
                due.append((subscription, subscription.pending))
                subscription.pending = None
                subscription.due_at = None

        delivered = 0
        for subscription, payload in due:
            try:
                subscription.callback(payload)
            except Exception:
                with self._lock:
                    subscription.retry_count += 1
                    attempts = subscription.retry_count
                    exhausted = attempts >= subscription.max_retries
                    if exhausted:
                        self._remove(subscription.id)
                logger.exception(
                    "Realtime callback error for %s (attempt %d)", subscription.id, attempts
                )
                if exhausted:
                    logger.error(
                        "Max retries exceeded for subscription %s, removing", subscription.id
                    )
                continue
            with self._lock:
                subscription.retry_count = 0
            delivered += 1
        return delivered

    # ------------------------------------------------------------------
    # Housekeeping
    # ------------------------------------------------------------------

    def _purge_inactive(self, now: float) -> int:
        # Caller holds self._lock.
        stale = [
            s.id for s in self._subscriptions.values()
            if now - s.last_activity > self.max_inactive_seconds
        ]
        for subscription_id in stale:
            self._remove(subscription_id)
        if stale:
            logger.info("Cleaned up %d inactive realtime subscriptions", len(stale))
        return len(stale)

    def cleanup_inactive(self, now: float | None = None) -> int:
        now = self._clock() if now is None else now
        with self._lock:
            return self._purge_inactive(now)

    def stats(self) -> dict[str, Any]:
        with self._lock:
            active = [s for s in self._subscriptions.values() if s.is_active]
            return {
                "total_subscriptions": len(self._subscriptions),
                "active_subscriptions": len(active),
                "max_subscriptions": self.max_subscriptions,
                "subscriptions": [
                    {
                        "id": s.id,
                        "table": s.table,
                        "event": s.event,
                        "filter": s.filter,
                        "last_activity": s.last_activity,
                        "retry_count": s.retry_count,
                        "pending": s.pending is not None,
                    }
                    for s in active
                ],
            }

    def close(self) -> None:
        with self._lock:
            for subscription_id in list(self._subscriptions):
                self._remove(subscription_id)
            self._closed = True

    @property
    def closed(self) -> bool:
        return self._closed


async def run_pump(
    registry: SubscriptionRegistry,
    interval_seconds: float,
    cleanup_interval_seconds: float,
) -> None:
    """Drive ``dispatch_due`` and periodic cleanup until cancelled.

    Callbacks may do blocking database work, so each pass runs in a worker
    thread and the event loop keeps serving requests meanwhile.
    """
    last_cleanup = time.monotonic()
    while not registry.closed:
        await asyncio.to_thread(registry.dispatch_due)
        if time.monotonic() - last_cleanup >= cleanup_interval_seconds:
            await asyncio.to_thread(registry.cleanup_inactive)
            last_cleanup = time.monotonic()
        await asyncio.sleep(interval_seconds)


def get_realtime(request: Request) -> SubscriptionRegistry | None:
    """FastAPI dependency returning the app-owned registry, if started."""
    return getattr(request.app.state, "realtime", None)
