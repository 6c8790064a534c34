import json
import logging
import os
from typing import Any, Dict, List, Optional

from pywebpush import WebPushException, webpush

logger = logging.getLogger(__name__)

VAPID_SUBJECT = os.getenv("VAPID_SUBJECT", "mailto:admin@example.com")
VAPID_PRIVATE_KEY = os.getenv("VAPID_PRIVATE_KEY", "").strip()

NOTIFICATION_TITLE = "Student Sync Alert"


class PushConfigurationError(RuntimeError):
    pass


class PushNotifier:
    """Web Push sender plus an in-process subscription registry."""

    def __init__(
        self,
        private_key: Optional[str] = None,
        subject: Optional[str] = None,
        send=webpush,
    ):
        self.private_key = private_key if private_key is not None else VAPID_PRIVATE_KEY
        self.subject = subject or VAPID_SUBJECT
        self._send = send
        self.subscriptions: List[Dict[str, Any]] = []

    def subscribe(self, subscription: Dict[str, Any]) -> int:
        endpoint = subscription.get("endpoint")
        self.subscriptions = [s for s in self.subscriptions if s.get("endpoint") != endpoint]
        self.subscriptions.append(subscription)
        logger.info(f"Registered push subscription ({len(self.subscriptions)} total)")
        return len(self.subscriptions)

    def send(self, subscription: Dict[str, Any], message: str, url: str = "/dashboard") -> None:
        if not self.private_key:
            raise PushConfigurationError("VAPID_PRIVATE_KEY is missing")
        payload = json.dumps({"title": NOTIFICATION_TITLE, "body": message, "url": url})
        self._send(
            subscription_info=subscription,
            data=payload,
            vapid_private_key=self.private_key,
            vapid_claims={"sub": self.subject},
        )

    def broadcast(self, message: str) -> int:
        """Send to every registered subscription; returns how many succeeded."""
        sent = 0
        for subscription in list(self.subscriptions):
            try:
                self.send(subscription, message)
                sent += 1
            except WebPushException as e:
                logger.warning(f"Push to {subscription.get('endpoint', '?')[:40]} failed: {e}")
        return sent
