"""
Geofencing feature module: circular regions and the platform region monitor
"""
from .monitor import RegionMonitor, region_for
from .provider import GeofenceProvider, SimulatedGeofenceProvider
from .regions import (
    GEOFENCE_RADIUS_METERS,
    AuthorizationStatus,
    CircularRegion,
    CrossingKind,
    RegionEvent,
    format_address,
)

__all__ = [
    "RegionMonitor",
    "region_for",
    "GeofenceProvider",
    "SimulatedGeofenceProvider",
    "GEOFENCE_RADIUS_METERS",
    "AuthorizationStatus",
    "CircularRegion",
    "CrossingKind",
    "RegionEvent",
    "format_address",
]
