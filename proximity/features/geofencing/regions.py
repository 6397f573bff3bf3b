"""
Geofence primitives: circular regions, crossing events and geometry helpers.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional

# Radius of every monitored region, in meters. Not user-configurable.
GEOFENCE_RADIUS_METERS = 50.0

EARTH_RADIUS_METERS = 6_371_000.0


class CrossingKind(str, Enum):
    enter = "enter"
    exit = "exit"


class AuthorizationStatus(str, Enum):
    not_determined = "not_determined"
    denied = "denied"
    restricted = "restricted"
    authorized_when_in_use = "authorized_when_in_use"
    authorized_always = "authorized_always"

    @property
    def allows_monitoring(self) -> bool:
        # Region monitoring needs "always" authorization to run in the background
        return self is AuthorizationStatus.authorized_always


@dataclass(frozen=True)
class CircularRegion:
    identifier: str
    latitude: float
    longitude: float
    radius: float = GEOFENCE_RADIUS_METERS
    notify_on_entry: bool = True
    notify_on_exit: bool = False

    def contains(self, latitude: float, longitude: float) -> bool:
        return distance_meters(self.latitude, self.longitude, latitude, longitude) <= self.radius

    def notifies_on(self, crossing: CrossingKind) -> bool:
        return self.notify_on_entry if crossing is CrossingKind.enter else self.notify_on_exit


@dataclass(frozen=True)
class RegionEvent:
    """A region crossing reported by the platform."""

    identifier: str
    crossing: CrossingKind


def distance_meters(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle (haversine) distance between two coordinates."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlmb = math.radians(lon2 - lon1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlmb / 2) ** 2
    return 2 * EARTH_RADIUS_METERS * math.asin(min(1.0, math.sqrt(a)))


def format_address(
    sub_thoroughfare: Optional[str] = None,
    thoroughfare: Optional[str] = None,
    locality: Optional[str] = None,
    administrative_area: Optional[str] = None,
) -> str:
    """Build a one-line address: "<number> <street>, <city> <state>"."""
    return f"{sub_thoroughfare or ''} {thoroughfare or ''}, {locality or ''} {administrative_area or ''}"
