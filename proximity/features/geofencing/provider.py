"""
Platform boundary for region monitoring.

`GeofenceProvider` is what the Region Monitor talks to. The platform owns the
real set of monitored regions and reports crossings, authorization changes and
monitoring failures back through a `GeofenceDelegate`, possibly from a thread
other than the one that registered the region.
"""
from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Protocol, Tuple

from proximity.errors import RegionMonitoringError
from proximity.features.geofencing.regions import AuthorizationStatus, CircularRegion, CrossingKind

logger = logging.getLogger("geofence_provider")


class GeofenceDelegate(Protocol):
    def on_region_crossing(self, identifier: str, crossing: CrossingKind) -> None: ...

    def on_authorization_changed(self, status: AuthorizationStatus) -> None: ...

    def on_monitoring_failed(self, identifier: Optional[str], reason: str) -> None: ...


class GeofenceProvider(ABC):
    def __init__(self) -> None:
        self.delegate: Optional[GeofenceDelegate] = None

    @property
    @abstractmethod
    def monitored_regions(self) -> List[CircularRegion]:
        """Snapshot of the regions currently registered with the platform."""

    @property
    @abstractmethod
    def authorization_status(self) -> AuthorizationStatus: ...

    @abstractmethod
    def start_monitoring(self, region: CircularRegion) -> None:
        """Register a region. Raises RegionMonitoringError if refused."""

    @abstractmethod
    def stop_monitoring(self, region: CircularRegion) -> None: ...


class SimulatedGeofenceProvider(GeofenceProvider):
    """In-process geofencing with a platform-style region limit.

    Location fixes fed through `update_location` are compared against every
    monitored region; a change of inside/outside state is reported to the
    delegate when the region asked to be notified for that direction.
    Safe to drive from any thread.
    """

    def __init__(
        self,
        capacity: int = 20,
        authorization: AuthorizationStatus = AuthorizationStatus.authorized_always,
    ) -> None:
        super().__init__()
        self.capacity = capacity
        self._authorization = authorization
        self._regions: Dict[str, CircularRegion] = {}
        self._inside: Dict[str, bool] = {}
        self._last_fix: Optional[Tuple[float, float]] = None
        self._lock = threading.Lock()

    @property
    def monitored_regions(self) -> List[CircularRegion]:
        with self._lock:
            return list(self._regions.values())

    @property
    def authorization_status(self) -> AuthorizationStatus:
        return self._authorization

    @property
    def last_fix(self) -> Optional[Tuple[float, float]]:
        return self._last_fix

    def start_monitoring(self, region: CircularRegion) -> None:
        if not self._authorization.allows_monitoring:
            self._fail(region.identifier, f"authorization is {self._authorization.value}")
        with self._lock:
            if region.identifier not in self._regions and len(self._regions) >= self.capacity:
                full = True
            else:
                full = False
                self._regions[region.identifier] = region
                fix = self._last_fix
                self._inside[region.identifier] = bool(fix and region.contains(*fix))
        if full:
            self._fail(region.identifier, f"region limit of {self.capacity} reached")

    def stop_monitoring(self, region: CircularRegion) -> None:
        with self._lock:
            self._regions.pop(region.identifier, None)
            self._inside.pop(region.identifier, None)

    def set_authorization(self, status: AuthorizationStatus) -> None:
        changed = status is not self._authorization
        self._authorization = status
        if changed and self.delegate is not None:
            self.delegate.on_authorization_changed(status)

    def update_location(self, latitude: float, longitude: float) -> List[Tuple[str, CrossingKind]]:
        """Apply a location fix and report the resulting crossings."""
        crossings: List[Tuple[str, CrossingKind]] = []
        with self._lock:
            self._last_fix = (latitude, longitude)
            for identifier, region in self._regions.items():
                was_inside = self._inside.get(identifier, False)
                is_inside = region.contains(latitude, longitude)
                if is_inside == was_inside:
                    continue
                self._inside[identifier] = is_inside
                crossing = CrossingKind.enter if is_inside else CrossingKind.exit
                if region.notifies_on(crossing):
                    crossings.append((identifier, crossing))

        for identifier, crossing in crossings:
            logger.debug("Simulated %s crossing for region %s", crossing.value, identifier)
            if self.delegate is not None:
                self.delegate.on_region_crossing(identifier, crossing)
        return crossings

    def _fail(self, identifier: str, reason: str) -> None:
        raise RegionMonitoringError(identifier, reason)
