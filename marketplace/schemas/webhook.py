"""Pydantic v2 schemas for ``/api/webhooks``."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class WebhookRequest(BaseModel):
    """Inbound webhook envelope.

    ``event`` and ``webhook_id`` are checked by the dispatcher rather than
    by the schema so that a missing field yields the webhook-specific 400
    message.
    """

    event: str | None = None
    webhook_id: str | None = None
    data: dict[str, Any] = Field(default_factory=dict)


class WebhookResponse(BaseModel):
    success: bool = True
    message: str
    booking_id: str | None = None
    total_bookings: int | None = None
