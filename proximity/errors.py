"""
Error taxonomy for the reminder engine.

Persistence errors abort the current operation. Monitoring and notification
errors are recoverable: they are logged and reconciled later.
"""


class ProximityError(Exception):
    """Base class for engine errors."""


class PersistenceError(ProximityError):
    """The reminder store could not read or write its records."""


class RegionMonitoringError(ProximityError):
    """A region could not be registered or deregistered with the platform."""

    def __init__(self, identifier: str, reason: str):
        super().__init__(f"Region {identifier!r}: {reason}")
        self.identifier = identifier
        self.reason = reason


class NotificationDeliveryError(ProximityError):
    """A system notification could not be delivered."""


class ReminderNotFound(ProximityError):
    """No reminder exists for the requested identifier."""

    def __init__(self, identifier: str):
        super().__init__(f"Reminder {identifier!r} not found")
        self.identifier = identifier
