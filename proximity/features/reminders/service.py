"""
Reminder Lifecycle Controller: reacts to region crossings and keeps the
monitored regions in step with the reminder store.

Per-reminder states driven by trigger events:
    Active-Recurring  → notify, stay active
    Active-OneShot    → notify, deactivate, stop monitoring
    Inactive          → ignore (late or duplicate delivery)
"""
import asyncio
import logging
from typing import Any, Dict, List, Optional, Set

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from proximity.crud import ReminderStore
from proximity.errors import PersistenceError, ReminderNotFound
from proximity.features.geofencing import AuthorizationStatus, CrossingKind, RegionEvent, RegionMonitor
from proximity.features.notifications import NotificationDispatcher
from proximity.models import models as db

logger = logging.getLogger("lifecycle")

# Fields whose change alters the monitored region of an active reminder
_REGION_FIELDS = ("latitude", "longitude", "is_enter_reminder")


def expected_crossing(reminder: db.Reminder) -> CrossingKind:
    return CrossingKind.enter if reminder.is_enter_reminder else CrossingKind.exit


class ReminderLifecycleController:
    def __init__(self, store: ReminderStore, monitor: RegionMonitor, dispatcher: NotificationDispatcher):
        self.store = store
        self.monitor = monitor
        self.dispatcher = dispatcher
        self._events: Optional[asyncio.Queue] = None
        self._consumer: Optional[asyncio.Task] = None
        self._transition_lock = asyncio.Lock()
        self._background: Set[asyncio.Task] = set()

    # --- Startup / shutdown ----------------------------------------------------

    async def start(self) -> List[str]:
        """Subscribe to the monitor and rebuild monitoring from the store."""
        if self._consumer is not None:
            logger.warning("Lifecycle controller already running")
            return []

        loop = asyncio.get_running_loop()
        self._events = asyncio.Queue()
        self.monitor.subscribe(self._enqueue, loop, authorization_handler=self._on_authorization_changed)
        failed = await self.resync()
        self._consumer = asyncio.create_task(self._consume_events())
        logger.info("Lifecycle controller started")
        return failed

    async def stop(self) -> None:
        self.monitor.unsubscribe()
        tasks = [t for t in [self._consumer, *self._background] if t is not None and not t.done()]
        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._consumer = None
        self._background.clear()
        logger.info("Lifecycle controller stopped")

    def is_running(self) -> bool:
        return self._consumer is not None and not self._consumer.done()

    async def resync(self) -> List[str]:
        """Full clear-and-rebuild of monitored regions from the active reminders."""
        # Held across fetch and sync so a trigger cannot deactivate a reminder in between
        async with self._transition_lock:
            active = await self.store.fetch_active()
            return self.monitor.sync_regions(active)

    # --- Trigger events --------------------------------------------------------

    def _enqueue(self, event: RegionEvent) -> None:
        if self._events is None:
            logger.warning("Dropping %s event for %s: controller not started", event.crossing.value, event.identifier)
            return
        self._events.put_nowait(event)

    async def join(self) -> None:
        """Wait until every queued trigger event has been handled."""
        if self._events is not None:
            await self._events.join()

    async def settle(self) -> None:
        """Wait for queued trigger events and any re-sync they started."""
        await self.join()
        pending = [t for t in self._background if not t.done()]
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    async def _consume_events(self) -> None:
        assert self._events is not None
        while True:
            event = await self._events.get()
            try:
                await self.handle_trigger(event)
            except PersistenceError as e:
                logger.critical("Trigger for %s aborted: %s", event.identifier, e)
            except Exception:
                logger.exception("Unexpected error handling trigger for %s", event.identifier)
            finally:
                self._events.task_done()

    async def handle_trigger(self, event: RegionEvent) -> bool:
        """Apply one trigger event. Returns True when the reminder was surfaced."""
        async with self._transition_lock:
            reminder = await self.store.fetch_by_identifier(event.identifier)
            if reminder is None:
                logger.warning("Trigger for unknown region %s dropped", event.identifier)
                return False
            if not reminder.is_active:
                logger.info("Trigger for inactive reminder %s ignored", reminder.id)
                return False
            if event.crossing is not expected_crossing(reminder):
                logger.warning(
                    "Stale %s trigger for reminder %s dropped: region now watches for %s",
                    event.crossing.value,
                    reminder.id,
                    expected_crossing(reminder).value,
                )
                return False

            logger.info("Reminder %s triggered on %s", reminder.id, event.crossing.value)
            await self.dispatcher.dispatch(reminder)
            await self._apply_post_trigger(reminder)
            return True

    async def handle_notification_response(self, identifier: str) -> Optional[db.Reminder]:
        """The user acted on a delivered notification."""
        async with self._transition_lock:
            reminder = await self.store.fetch_by_identifier(identifier)
            if reminder is None:
                logger.warning("Notification response for unknown reminder %s", identifier)
                return None
            if reminder.is_active:
                await self._apply_post_trigger(reminder)
            return reminder

    async def _apply_post_trigger(self, reminder: db.Reminder) -> None:
        if reminder.is_recurring:
            return
        reminder.is_active = False
        reminder.update_section()
        await self.store.save(reminder)
        self.monitor.stop_monitoring(reminder)
        logger.info("One-shot reminder %s deactivated", reminder.id)

    def _on_authorization_changed(self, status: AuthorizationStatus) -> None:
        if not status.allows_monitoring:
            logger.warning("Location authorization %s: reminders will not fire", status.value)
            return
        task = asyncio.get_running_loop().create_task(self.safe_resync("authorization granted"))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def safe_resync(self, reason: str) -> None:
        try:
            failed = await self.resync()
            logger.info("Regions re-synced (%s), %d failed", reason, len(failed))
        except PersistenceError as e:
            logger.critical("Region re-sync (%s) aborted: %s", reason, e)

    # --- Edits from the UI -----------------------------------------------------

    async def create_reminder(self, reminder: db.Reminder) -> db.Reminder:
        await self.store.save(reminder)
        if reminder.is_active:
            self.monitor.start_monitoring(reminder)
        return reminder

    async def update_reminder(self, identifier: str, changes: Dict[str, Any]) -> db.Reminder:
        async with self._transition_lock:
            reminder = await self.store.fetch_by_identifier(identifier)
            if reminder is None:
                raise ReminderNotFound(identifier)

            was_active = bool(reminder.is_active)
            region_changed = False
            for name, value in changes.items():
                if name in _REGION_FIELDS and getattr(reminder, name) != value:
                    region_changed = True
                setattr(reminder, name, value)

            await self.store.save(reminder)

            if was_active and not reminder.is_active:
                self.monitor.stop_monitoring(reminder)
            elif reminder.is_active and (not was_active or region_changed):
                self.monitor.stop_monitoring(reminder)
                self.monitor.start_monitoring(reminder)
            return reminder

    async def delete_reminder(self, identifier: str) -> bool:
        async with self._transition_lock:
            reminder = await self.store.fetch_by_identifier(identifier)
            if reminder is None:
                return False
            # Deregister first so the region never outlives its lookup target
            self.monitor.stop_monitoring(reminder)
            return await self.store.delete(reminder)


class RegionReconciler:
    """Periodically re-runs the full region sync so failed registrations are retried."""

    def __init__(self, controller: ReminderLifecycleController, interval_minutes: int):
        self.controller = controller
        self.interval_minutes = interval_minutes
        self._scheduler: Optional[AsyncIOScheduler] = None

    def start(self) -> None:
        if self.interval_minutes <= 0:
            logger.info("Region reconciler disabled")
            return
        if self._scheduler is not None:
            logger.warning("Region reconciler already running")
            return

        self._scheduler = AsyncIOScheduler()
        self._scheduler.add_job(
            self.reconcile,
            trigger=IntervalTrigger(minutes=self.interval_minutes),
            id="region_reconciler",
            name="Re-sync monitored regions",
            replace_existing=True,
            max_instances=1,  # Prevent overlapping runs
        )
        self._scheduler.start()
        logger.info("Region reconciler started (every %d minutes)", self.interval_minutes)

    def stop(self) -> None:
        if self._scheduler is None:
            return
        self._scheduler.shutdown(wait=False)
        self._scheduler = None
        logger.info("Region reconciler stopped")

    def is_running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    async def reconcile(self) -> None:
        await self.controller.safe_resync("scheduled")
