"""
Notification feature module: in-app alerts and system notifications for triggered reminders
"""
from .center import (
    Alert,
    InAppAlertQueue,
    InMemoryNotificationCenter,
    NotificationCenter,
    NotificationRequest,
    WebhookNotificationCenter,
)
from .dispatcher import AppActivity, AppActivityState, NotificationDispatcher, notification_body

__all__ = [
    "Alert",
    "InAppAlertQueue",
    "InMemoryNotificationCenter",
    "NotificationCenter",
    "NotificationRequest",
    "WebhookNotificationCenter",
    "AppActivity",
    "AppActivityState",
    "NotificationDispatcher",
    "notification_body",
]
