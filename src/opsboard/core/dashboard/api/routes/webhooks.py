"""
GitHub webhook routes.

- POST /api/webhooks/github - Receive a signed webhook delivery
- GET /api/webhooks/github - Recent events (``?since=<id>`` for newer ones)
"""

import json
import logging
from typing import Any

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request

from opsboard.core.config import OpsboardConfig
from opsboard.core.dashboard.api.deps import get_config, get_events
from opsboard.core.events import EventBuffer, summarize_event, verify_signature

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/webhooks/github")
async def receive_webhook(
    request: Request,
    x_github_event: str = Header("unknown"),
    x_github_delivery: str = Header("unknown"),
    x_hub_signature_256: str | None = Header(None),
    config: OpsboardConfig = Depends(get_config),
    events: EventBuffer = Depends(get_events),
) -> dict[str, Any]:
    """
    Verify, summarize and buffer a webhook delivery.

    Raises:
        HTTPException: 401 if the signature does not match, 400 if the body
            is not a JSON object
    """
    raw_body = await request.body()

    if not verify_signature(raw_body, x_hub_signature_256, config.github.webhook_secret):
        logger.error("Webhook signature check failed for delivery %s", x_github_delivery)
        raise HTTPException(status_code=401, detail="Invalid signature")

    if x_github_event == "ping":
        return {"ok": True, "message": "pong"}

    try:
        body = json.loads(raw_body)
    except ValueError as e:
        raise HTTPException(status_code=400, detail="Invalid JSON") from e
    if not isinstance(body, dict):
        raise HTTPException(status_code=400, detail="Webhook body must be a JSON object")

    action = body.get("action")
    if not isinstance(action, str):
        action = ""
    event = events.add(x_github_event, action, summarize_event(x_github_event, body))

    logger.info(
        "Webhook %s.%s #%s -> event %s", x_github_event, action, x_github_delivery, event.id
    )
    return {"ok": True, "eventId": event.id}


@router.get("/webhooks/github")
async def list_webhook_events(
    since: int | None = Query(None, ge=0, description="Only events with a greater ID"),
    events: EventBuffer = Depends(get_events),
) -> dict[str, Any]:
    """List buffered webhook events."""
    selected = events.since(since) if since is not None else events.recent()
    return {
        "status": "active",
        "totalReceived": events.total_received,
        "buffered": events.buffered,
        "events": [event.model_dump(by_alias=True) for event in selected],
    }
