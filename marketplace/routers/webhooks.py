"""
Webhooks router.

Mounts under ``/api/webhooks``. Called by automation tooling, not by end users.

Endpoints
---------
POST / — Dispatch ``{event, webhook_id, data}`` to its handler.
GET  / — List supported events, or echo a sample envelope for ``?event=``.
"""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from marketplace.database import get_db
from marketplace.schemas.webhook import WebhookRequest, WebhookResponse
from marketplace.services import webhook_service

router = APIRouter(tags=["Webhooks"])


@router.post(
    "",
    response_model=WebhookResponse,
    response_model_exclude_none=True,
    summary="Receive a webhook",
    responses={
        400: {"description": "Missing fields, unknown event or invalid data."},
        404: {"description": "Referenced booking or service not found."},
    },
)
def receive_webhook(
    body: WebhookRequest,
    db: Annotated[Session, Depends(get_db)],
) -> WebhookResponse:
    return webhook_service.dispatch(db, body)


@router.get("", summary="Webhook endpoint status")
def describe_webhooks(
    event: Annotated[str | None, Query(max_length=50)] = None,
) -> dict[str, Any]:
    return webhook_service.describe(event)
