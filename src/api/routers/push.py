import asyncio
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from pywebpush import WebPushException

from api.dependencies import get_push_notifier
from api.responses import failure
from integration.push_notifications import PushConfigurationError, PushNotifier

router = APIRouter()
logger = logging.getLogger(__name__)


class SendIn(BaseModel):
    message: str
    subscription: Optional[Dict[str, Any]] = None


@router.post("/web-push/subscribe")
async def subscribe(
    subscription: Dict[str, Any],
    notifier: PushNotifier = Depends(get_push_notifier),
):
    if not subscription.get("endpoint"):
        return failure(400, "Subscription endpoint is required")
    total = notifier.subscribe(subscription)
    return {"success": True, "message": "Subscription saved successfully", "subscriptions": total}


@router.post("/web-push/send")
async def send(payload: SendIn, notifier: PushNotifier = Depends(get_push_notifier)):
    try:
        if payload.subscription is not None:
            await asyncio.to_thread(notifier.send, payload.subscription, payload.message)
            sent = 1
        else:
            sent = await asyncio.to_thread(notifier.broadcast, payload.message)
    except (PushConfigurationError, WebPushException) as e:
        logger.error(f"Error sending notification: {e}")
        return failure(500, "Failed to send notification", error=str(e))

    return {"success": True, "message": "Notification sent successfully", "sent": sent}
