"""GitHub webhook endpoints"""
import json
import logging
from typing import Literal

from fastapi import APIRouter, Body, Depends, HTTPException, Request
from starlette.concurrency import run_in_threadpool

from app.dependencies import get_sync_service, get_webhook_service
from app.services.sync_service import SyncService
from app.services.webhook_service import TriggerKind, WebhookService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


def _sync_for(sync_service: SyncService, kind: TriggerKind):
    return {
        TriggerKind.ISSUE: sync_service.sync_issues,
        TriggerKind.PROJECT: sync_service.sync_projects,
        TriggerKind.FULL: sync_service.full_sync,
    }[kind]


@router.post("/github")
async def handle_github_webhook(
    request: Request,
    webhooks: WebhookService = Depends(get_webhook_service),
    sync_service: SyncService = Depends(get_sync_service),
):
    """Receive a GitHub delivery and trigger the matching sync"""
    raw_body = await request.body()
    event = request.headers.get("x-github-event")
    delivery = request.headers.get("x-github-delivery")
    signature = request.headers.get(webhooks.signature_header)
    logger.info(f"Received GitHub webhook: {event} (delivery: {delivery})")

    if not webhooks.verify(raw_body, signature):
        logger.error(f"Invalid webhook signature (delivery: {delivery})")
        raise HTTPException(status_code=400, detail="Invalid signature")

    try:
        payload = json.loads(raw_body or b"{}")
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid JSON payload")
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="Invalid JSON payload")
    action = payload.get("action")

    if event == "ping":
        return {"status": "ok", "message": "Webhook endpoint is working!", "zen": payload.get("zen")}

    decision = webhooks.classify(event, action)
    if not decision.should_sync:
        logger.info(f"Event {event}:{action} does not require sync")
        return {
            "status": "ok",
            "message": "Event received but no sync needed",
            "event": event,
            "action": action,
        }

    trigger = webhooks.extract_trigger_data(event, payload)
    logger.info(f"Triggering {decision.kind.value} sync for {event}:{action} ({trigger.as_dict()})")
    sync_result = await run_in_threadpool(_sync_for(sync_service, decision.kind))

    return {
        "status": "success",
        "message": "Webhook processed and sync triggered",
        "event": event,
        "action": action,
        "trigger": trigger.as_dict(),
        "sync_result": sync_result,
    }


@router.post("/github/ping")
def handle_ping(payload: dict = Body(default_factory=dict)):
    """Acknowledge GitHub's setup ping"""
    logger.info("Received GitHub webhook ping")
    return {"status": "ok", "message": "Webhook endpoint is working!", "zen": payload.get("zen")}


@router.post("/test")
async def test_webhook(
    sync_type: Literal["issues", "projects", "full"] = Body("full", embed=True, alias="type"),
    sync_service: SyncService = Depends(get_sync_service),
):
    """Trigger a sync by type, bypassing GitHub"""
    kind = {
        "issues": TriggerKind.ISSUE,
        "projects": TriggerKind.PROJECT,
        "full": TriggerKind.FULL,
    }[sync_type]
    result = await run_in_threadpool(_sync_for(sync_service, kind))
    return {"status": "success", "message": "Test webhook processed", "type": sync_type, "result": result}
