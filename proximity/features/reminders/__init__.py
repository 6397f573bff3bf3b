"""
Reminder feature module: lifecycle of location reminders driven by region crossings
"""
from .service import ReminderLifecycleController, RegionReconciler, expected_crossing

__all__ = ["ReminderLifecycleController", "RegionReconciler", "expected_crossing"]
