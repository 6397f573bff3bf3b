"""
Notification Dispatcher: surface a triggered reminder to the user.

Foreground → in-app alert. Otherwise → system notification plus one badge.
The branch depends only on the reminder and the injected app activity state.
"""
import logging
from enum import Enum

from proximity.features.notifications.center import (
    Alert,
    InAppAlertQueue,
    NotificationCenter,
    NotificationRequest,
)
from proximity.models import models as db

logger = logging.getLogger("notifications.dispatcher")


class AppActivityState(str, Enum):
    active = "active"
    inactive = "inactive"
    background = "background"


class AppActivity:
    """Tracks whether the app is in the foreground."""

    def __init__(self, state: AppActivityState = AppActivityState.background):
        self.state = state

    def is_active(self) -> bool:
        return self.state is AppActivityState.active


def notification_body(reminder: db.Reminder) -> str:
    return f"{reminder.location_name}: {reminder.note_text}"


class NotificationDispatcher:
    def __init__(self, activity: AppActivity, alerts: InAppAlertQueue, center: NotificationCenter):
        self.activity = activity
        self.alerts = alerts
        self.center = center

    async def dispatch(self, reminder: db.Reminder) -> None:
        """Show an alert or enqueue a notification. Delivery errors are logged, never raised."""
        if self.activity.is_active():
            self.alerts.present(
                Alert(identifier=reminder.id, title=reminder.location_name, message=reminder.note_text)
            )
            return

        badge = self.center.badge + 1
        request = NotificationRequest(
            identifier=reminder.id,
            body=notification_body(reminder),
            sound=True,
            badge=badge,
        )
        try:
            await self.center.add(request)
        except Exception as e:
            logger.error("Notification for reminder %s failed: %s", reminder.id, e)
            return
        self.center.badge = badge

    def app_did_become_active(self) -> None:
        """Clear the badge and every pending or delivered notification."""
        self.activity.state = AppActivityState.active
        self.center.badge = 0
        self.center.remove_all_pending()
        self.center.remove_all_delivered()
        logger.info("App became active: notifications cleared")
