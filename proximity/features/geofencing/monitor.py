import asyncio
import logging
from typing import Callable, Iterable, List, Optional, Set

from proximity.errors import RegionMonitoringError
from proximity.features.geofencing.provider import GeofenceProvider
from proximity.features.geofencing.regions import (
    GEOFENCE_RADIUS_METERS,
    AuthorizationStatus,
    CircularRegion,
    CrossingKind,
    RegionEvent,
)
from proximity.models import models as db

logger = logging.getLogger("region_monitor")

TriggerHandler = Callable[[RegionEvent], None]
AuthorizationHandler = Callable[[AuthorizationStatus], None]


def region_for(reminder: db.Reminder) -> CircularRegion:
    """The circular region that watches a reminder's location."""
    return CircularRegion(
        identifier=reminder.id,
        latitude=reminder.latitude,
        longitude=reminder.longitude,
        radius=GEOFENCE_RADIUS_METERS,
        notify_on_entry=bool(reminder.is_enter_reminder),
        notify_on_exit=not reminder.is_enter_reminder,
    )


class RegionMonitor:
    """Keeps the platform's monitored regions in line with active reminders.

    Only this class mutates the provider's region set. Platform callbacks may
    arrive on any thread; they are handed to the single subscriber on the
    subscriber's event loop.
    """

    def __init__(self, provider: GeofenceProvider):
        self.provider = provider
        self.provider.delegate = self
        self._handler: Optional[TriggerHandler] = None
        self._authorization_handler: Optional[AuthorizationHandler] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self.authorization_status: AuthorizationStatus = provider.authorization_status
        self.last_failure: Optional[str] = None

    # --- Subscription ----------------------------------------------------------

    def subscribe(
        self,
        handler: TriggerHandler,
        loop: asyncio.AbstractEventLoop,
        authorization_handler: Optional[AuthorizationHandler] = None,
    ) -> None:
        if self._handler is not None and self._handler != handler:
            raise RuntimeError("Region monitor already has a trigger subscriber")
        self._handler = handler
        self._authorization_handler = authorization_handler
        self._loop = loop

    def unsubscribe(self) -> None:
        self._handler = None
        self._authorization_handler = None
        self._loop = None

    # --- Region management -----------------------------------------------------

    @property
    def monitored_regions(self) -> List[CircularRegion]:
        return self.provider.monitored_regions

    def monitored_identifiers(self) -> Set[str]:
        return {r.identifier for r in self.provider.monitored_regions}

    def sync_regions(self, reminders: Iterable[db.Reminder]) -> List[str]:
        """Clear every monitored region, then register one per reminder.

        Returns the identifiers that could not be registered.
        """
        for region in self.provider.monitored_regions:
            self._deregister(region)

        failed = []
        count = 0
        for reminder in reminders:
            count += 1
            if not self.start_monitoring(reminder):
                failed.append(reminder.id)

        if failed:
            logger.warning("Synced regions: %d of %d registered, failed=%s", count - len(failed), count, failed)
        else:
            logger.info("Synced regions: %d registered", count)
        return failed

    def start_monitoring(self, reminder: db.Reminder) -> bool:
        region = region_for(reminder)
        try:
            self.provider.start_monitoring(region)
        except RegionMonitoringError as e:
            self.last_failure = e.reason
            logger.warning("Start monitoring failed for %s: %s", region.identifier, e.reason)
            return False
        logger.info(
            "Start monitoring %s (%s) on %s",
            region.identifier,
            reminder.location_address,
            "entry" if region.notify_on_entry else "exit",
        )
        return True

    def stop_monitoring(self, reminder: db.Reminder) -> bool:
        """Deregister the reminder's region. Returns False when none was monitored."""
        region = next((r for r in self.provider.monitored_regions if r.identifier == reminder.id), None)
        if region is None:
            logger.debug("Stop monitoring %s: no region registered", reminder.id)
            return False
        return self._deregister(region)

    def _deregister(self, region: CircularRegion) -> bool:
        try:
            self.provider.stop_monitoring(region)
        except RegionMonitoringError as e:
            logger.warning("Stop monitoring failed for %s: %s", region.identifier, e.reason)
            return False
        logger.info("Stop monitoring %s", region.identifier)
        return True

    # --- Platform callbacks ----------------------------------------------------

    def on_region_crossing(self, identifier: str, crossing: CrossingKind) -> None:
        if self._handler is None:
            logger.warning("Dropping %s event for %s: no subscriber", crossing.value, identifier)
            return
        self._marshal(self._handler, RegionEvent(identifier=identifier, crossing=crossing))

    def on_authorization_changed(self, status: AuthorizationStatus) -> None:
        logger.info("Location authorization changed: %s", status.value)
        self.authorization_status = status
        if self._authorization_handler is not None:
            self._marshal(self._authorization_handler, status)

    def on_monitoring_failed(self, identifier: Optional[str], reason: str) -> None:
        self.last_failure = reason
        logger.warning("Monitoring failed for region %s: %s", identifier, reason)

    def _marshal(self, fn: Callable, arg) -> None:
        """Run fn(arg) on the subscriber's loop, whatever thread we are on."""
        loop = self._loop
        if loop is None:
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is loop:
            fn(arg)
            return
        try:
            loop.call_soon_threadsafe(fn, arg)
        except RuntimeError as e:
            logger.error("Could not deliver platform callback: %s", e)
