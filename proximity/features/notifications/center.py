"""
Notification sinks: the system notification center and the in-app alert queue.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Deque, List, Optional

import httpx

from proximity.errors import NotificationDeliveryError
from proximity.utils.push import notification_payload, send_push_notification

logger = logging.getLogger("notifications")


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class NotificationRequest:
    identifier: str
    body: str
    sound: bool = True
    badge: Optional[int] = None
    created_at: datetime = field(default_factory=_now)


@dataclass
class Alert:
    identifier: str
    title: str
    message: str
    created_at: datetime = field(default_factory=_now)


class NotificationCenter(ABC):
    """System notification center with a badge counter."""

    def __init__(self, authorized: bool = True, max_delivered: int = 100):
        self.authorized = authorized
        self.badge = 0
        self.pending: List[NotificationRequest] = []
        # Oldest notifications fall off once the limit is reached
        self.delivered: Deque[NotificationRequest] = deque(maxlen=max_delivered)

    async def add(self, request: NotificationRequest) -> None:
        if not self.authorized:
            raise NotificationDeliveryError("Notifications are not authorized")
        self.pending.append(request)
        try:
            await self._deliver(request)
        finally:
            if request in self.pending:
                self.pending.remove(request)
        self.delivered.append(request)

    @abstractmethod
    async def _deliver(self, request: NotificationRequest) -> None: ...

    def remove_all_pending(self) -> None:
        self.pending.clear()

    def remove_all_delivered(self) -> None:
        self.delivered.clear()


class InMemoryNotificationCenter(NotificationCenter):
    """Keeps delivered notifications in process for the UI to read."""

    async def _deliver(self, request: NotificationRequest) -> None:
        logger.info("Notification %s: %s", request.identifier, request.body)


class WebhookNotificationCenter(NotificationCenter):
    """Delivers notifications by POSTing them to a push webhook."""

    def __init__(
        self,
        push_url: str,
        push_token: Optional[str] = None,
        *,
        timeout: float = 10.0,
        authorized: bool = True,
        max_delivered: int = 100,
    ):
        super().__init__(authorized=authorized, max_delivered=max_delivered)
        self.push_url = push_url
        self.push_token = push_token
        self.timeout = timeout

    async def _deliver(self, request: NotificationRequest) -> None:
        payload = notification_payload(
            request.identifier, request.body, sound=request.sound, badge=request.badge
        )
        try:
            await send_push_notification(self.push_url, payload, self.push_token, timeout=self.timeout)
        except httpx.HTTPError as e:
            raise NotificationDeliveryError(f"Push to {self.push_url} failed: {e}") from e


class InAppAlertQueue:
    """Alerts shown while the app is in the foreground; the UI drains them."""

    def __init__(self, maxlen: int = 100):
        self._alerts: Deque[Alert] = deque(maxlen=maxlen)

    def present(self, alert: Alert) -> None:
        self._alerts.append(alert)
        logger.info("Alert %s: %s - %s", alert.identifier, alert.title, alert.message)

    def drain(self) -> List[Alert]:
        alerts = list(self._alerts)
        self._alerts.clear()
        return alerts

    def __len__(self) -> int:
        return len(self._alerts)
