"""
Wiring for the reminder engine.

One `ReminderEngine` owns every service object for the lifetime of the
process; components receive their collaborators through their constructors.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine

from proximity import database
from proximity.config import Settings
from proximity.crud import ReminderStore
from proximity.features.geofencing import GeofenceProvider, RegionMonitor, SimulatedGeofenceProvider
from proximity.features.notifications import (
    AppActivity,
    InAppAlertQueue,
    InMemoryNotificationCenter,
    NotificationCenter,
    NotificationDispatcher,
    WebhookNotificationCenter,
)
from proximity.features.reminders import RegionReconciler, ReminderLifecycleController

logger = logging.getLogger("engine")


def build_notification_center(settings: Settings) -> NotificationCenter:
    if settings.notification_push_url:
        return WebhookNotificationCenter(
            settings.notification_push_url,
            settings.notification_push_token,
            timeout=settings.notification_timeout_seconds,
        )
    return InMemoryNotificationCenter()


@dataclass
class ReminderEngine:
    settings: Settings
    db_engine: AsyncEngine
    store: ReminderStore
    provider: GeofenceProvider
    monitor: RegionMonitor
    activity: AppActivity
    alerts: InAppAlertQueue
    center: NotificationCenter
    dispatcher: NotificationDispatcher
    controller: ReminderLifecycleController
    reconciler: RegionReconciler

    @classmethod
    def build(
        cls,
        settings: Settings,
        *,
        provider: Optional[GeofenceProvider] = None,
        center: Optional[NotificationCenter] = None,
    ) -> "ReminderEngine":
        db_engine = database.make_engine(settings.database_url)
        store = ReminderStore(database.make_sessionmaker(db_engine))
        provider = provider or SimulatedGeofenceProvider(capacity=settings.region_capacity)
        monitor = RegionMonitor(provider)
        activity = AppActivity()
        alerts = InAppAlertQueue()
        center = center or build_notification_center(settings)
        dispatcher = NotificationDispatcher(activity, alerts, center)
        controller = ReminderLifecycleController(store, monitor, dispatcher)
        reconciler = RegionReconciler(controller, settings.region_reconcile_interval_minutes)
        return cls(
            settings=settings,
            db_engine=db_engine,
            store=store,
            provider=provider,
            monitor=monitor,
            activity=activity,
            alerts=alerts,
            center=center,
            dispatcher=dispatcher,
            controller=controller,
            reconciler=reconciler,
        )

    async def start(self) -> None:
        await database.init_db_async(self.db_engine)
        logger.info("Connected to database: %s", database.get_database_dsn(self.db_engine))
        failed = await self.controller.start()
        if failed:
            logger.warning("%d reminder(s) could not be monitored at startup", len(failed))
        self.reconciler.start()

    async def stop(self) -> None:
        self.reconciler.stop()
        await self.controller.stop()
        await database.shutdown_db_async(self.db_engine)
