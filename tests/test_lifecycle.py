"""
Tests for the reminder lifecycle controller
"""
import asyncio
import logging
import threading

import pytest

from proximity.errors import ReminderNotFound
from proximity.features.geofencing import (
    AuthorizationStatus,
    CrossingKind,
    RegionEvent,
    RegionMonitor,
    SimulatedGeofenceProvider,
)
from proximity.features.notifications import AppActivityState
from proximity.features.reminders import RegionReconciler, ReminderLifecycleController, expected_crossing
from proximity.models import models as db

from conftest import FAR_AWAY, THEATRE


class TestTriggers:
    @pytest.mark.asyncio
    async def test_one_shot_entry_fires_once_then_deactivates(self, controller, provider, monitor, store, center, make_reminder):
        reminder = make_reminder(is_recurring=False)
        await controller.create_reminder(reminder)
        assert monitor.monitored_identifiers() == {reminder.id}

        provider.update_location(*THEATRE)
        await controller.join()

        loaded = await store.fetch_by_identifier(reminder.id)
        assert loaded.is_active is False
        assert loaded.section == db.INACTIVE_SECTION
        assert monitor.monitored_identifiers() == set()
        assert [n.body for n in center.delivered] == ["TCL Chinese Theatre: Buy popcorn"]
        assert center.badge == 1

        # Walking out and back in again does nothing
        provider.update_location(*FAR_AWAY)
        provider.update_location(*THEATRE)
        await controller.join()
        assert len(center.delivered) == 1

    @pytest.mark.asyncio
    async def test_recurring_entry_fires_on_every_visit(self, controller, provider, monitor, store, center, make_reminder):
        reminder = make_reminder(is_recurring=True)
        await controller.create_reminder(reminder)

        provider.update_location(*THEATRE)
        provider.update_location(*FAR_AWAY)
        provider.update_location(*THEATRE)
        await controller.join()

        assert len(center.delivered) == 2
        assert center.badge == 2
        assert (await store.fetch_by_identifier(reminder.id)).is_active is True
        assert monitor.monitored_identifiers() == {reminder.id}

    @pytest.mark.asyncio
    async def test_exit_reminder_fires_on_leaving(self, controller, provider, center, make_reminder):
        provider.update_location(*THEATRE)
        reminder = make_reminder(is_enter_reminder=False, is_recurring=True)
        await controller.create_reminder(reminder)
        assert expected_crossing(reminder) is CrossingKind.exit

        provider.update_location(*FAR_AWAY)
        await controller.join()

        assert len(center.delivered) == 1

    @pytest.mark.asyncio
    async def test_foreground_trigger_shows_alert(self, controller, activity, alerts, center, provider, make_reminder):
        activity.state = AppActivityState.active
        await controller.create_reminder(make_reminder(is_recurring=True))

        provider.update_location(*THEATRE)
        await controller.join()

        [alert] = alerts.drain()
        assert (alert.title, alert.message) == ("TCL Chinese Theatre", "Buy popcorn")
        assert not center.delivered

    @pytest.mark.asyncio
    async def test_unknown_region_is_dropped(self, controller, center):
        handled = await controller.handle_trigger(RegionEvent("ghost", CrossingKind.enter))
        assert handled is False
        assert not center.delivered

    @pytest.mark.asyncio
    async def test_duplicate_one_shot_trigger_notifies_once(self, controller, center, make_reminder):
        reminder = make_reminder(is_recurring=False)
        await controller.create_reminder(reminder)
        event = RegionEvent(reminder.id, CrossingKind.enter)

        assert await controller.handle_trigger(event) is True
        assert await controller.handle_trigger(event) is False
        assert len(center.delivered) == 1

    @pytest.mark.asyncio
    async def test_wrong_direction_is_dropped_as_stale(self, controller, center, make_reminder, caplog):
        caplog.set_level(logging.INFO, logger="lifecycle")
        reminder = make_reminder(is_enter_reminder=True)
        await controller.create_reminder(reminder)

        assert await controller.handle_trigger(RegionEvent(reminder.id, CrossingKind.exit)) is False
        assert not center.delivered
        assert "Stale exit trigger" in caplog.text

    @pytest.mark.asyncio
    async def test_trigger_during_resync_leaves_no_stale_region(self, controller, monitor, store, make_reminder, monkeypatch):
        reminder = make_reminder(is_recurring=False)
        await controller.create_reminder(reminder)

        fetched = asyncio.Event()
        release = asyncio.Event()
        fetch_active = store.fetch_active

        async def slow_fetch_active():
            # Snapshot still lists the reminder as active
            result = await fetch_active()
            fetched.set()
            await release.wait()
            return result

        monkeypatch.setattr(store, "fetch_active", slow_fetch_active)

        resync = asyncio.create_task(controller.resync())
        await fetched.wait()
        trigger = asyncio.create_task(controller.handle_trigger(RegionEvent(reminder.id, CrossingKind.enter)))
        for _ in range(3):
            await asyncio.sleep(0)
        release.set()

        assert await resync == []
        assert await trigger is True
        assert (await store.fetch_by_identifier(reminder.id)).is_active is False
        assert monitor.monitored_identifiers() == set()

    @pytest.mark.asyncio
    async def test_inactive_reminder_is_ignored(self, controller, store, center, make_reminder):
        reminder = make_reminder(is_active=False)
        await store.save(reminder)

        assert await controller.handle_trigger(RegionEvent(reminder.id, CrossingKind.enter)) is False
        assert not center.delivered

    @pytest.mark.asyncio
    async def test_trigger_from_platform_thread(self, controller, provider, store, make_reminder):
        reminder = make_reminder(is_recurring=False)
        await controller.create_reminder(reminder)

        worker = threading.Thread(target=provider.update_location, args=THEATRE)
        worker.start()
        worker.join()
        await asyncio.sleep(0)
        await asyncio.wait_for(controller.join(), timeout=1)

        assert (await store.fetch_by_identifier(reminder.id)).is_active is False


class TestNotificationResponse:
    @pytest.mark.asyncio
    async def test_response_deactivates_one_shot(self, controller, monitor, make_reminder):
        reminder = make_reminder(is_recurring=False)
        await controller.create_reminder(reminder)

        loaded = await controller.handle_notification_response(reminder.id)

        assert loaded.is_active is False
        assert monitor.monitored_identifiers() == set()
        # Responding again changes nothing
        again = await controller.handle_notification_response(reminder.id)
        assert again.is_active is False

    @pytest.mark.asyncio
    async def test_response_keeps_recurring_active(self, controller, monitor, make_reminder):
        reminder = make_reminder(is_recurring=True)
        await controller.create_reminder(reminder)

        loaded = await controller.handle_notification_response(reminder.id)

        assert loaded.is_active is True
        assert monitor.monitored_identifiers() == {reminder.id}

    @pytest.mark.asyncio
    async def test_response_for_unknown_reminder(self, controller):
        assert await controller.handle_notification_response("ghost") is None


class TestEdits:
    @pytest.mark.asyncio
    async def test_inactive_reminder_is_not_monitored(self, controller, monitor, make_reminder):
        await controller.create_reminder(make_reminder(is_active=False))
        assert monitor.monitored_regions == []

    @pytest.mark.asyncio
    async def test_toggle_active_off_and_on(self, controller, monitor, store, make_reminder):
        reminder = make_reminder()
        await controller.create_reminder(reminder)

        updated = await controller.update_reminder(reminder.id, {"is_active": False})
        assert updated.section == db.INACTIVE_SECTION
        assert monitor.monitored_identifiers() == set()

        updated = await controller.update_reminder(reminder.id, {"is_active": True})
        assert updated.section == db.ACTIVE_SECTION
        assert monitor.monitored_identifiers() == {reminder.id}
        assert (await store.fetch_by_identifier(reminder.id)).is_active is True

    @pytest.mark.asyncio
    async def test_moving_location_reregisters_region(self, controller, monitor, make_reminder):
        reminder = make_reminder()
        await controller.create_reminder(reminder)

        await controller.update_reminder(reminder.id, {"latitude": FAR_AWAY[0]})

        [region] = monitor.monitored_regions
        assert region.latitude == pytest.approx(FAR_AWAY[0])

    @pytest.mark.asyncio
    async def test_switching_direction_reregisters_region(self, controller, monitor, make_reminder):
        reminder = make_reminder(is_enter_reminder=True)
        await controller.create_reminder(reminder)

        await controller.update_reminder(reminder.id, {"is_enter_reminder": False})

        [region] = monitor.monitored_regions
        assert (region.notify_on_entry, region.notify_on_exit) == (False, True)

    @pytest.mark.asyncio
    async def test_update_unknown_reminder(self, controller):
        with pytest.raises(ReminderNotFound):
            await controller.update_reminder("ghost", {"note_text": "x"})

    @pytest.mark.asyncio
    async def test_delete_stops_monitoring(self, controller, monitor, store, make_reminder):
        reminder = make_reminder()
        await controller.create_reminder(reminder)

        assert await controller.delete_reminder(reminder.id) is True
        assert monitor.monitored_regions == []
        assert await store.fetch_by_identifier(reminder.id) is None
        assert await controller.delete_reminder(reminder.id) is False


class TestStartupAndAuthorization:
    @pytest.mark.asyncio
    async def test_start_rebuilds_regions_from_store(self, store, dispatcher, make_reminder):
        active = make_reminder()
        await store.save(active)
        await store.save(make_reminder(is_active=False))

        monitor = RegionMonitor(SimulatedGeofenceProvider())
        controller = ReminderLifecycleController(store, monitor, dispatcher)
        failed = await controller.start()
        try:
            assert failed == []
            assert controller.is_running()
            assert monitor.monitored_identifiers() == {active.id}
        finally:
            await controller.stop()
        assert not controller.is_running()

    @pytest.mark.asyncio
    async def test_granting_authorization_resyncs(self, store, dispatcher, make_reminder):
        reminder = make_reminder()
        await store.save(reminder)
        provider = SimulatedGeofenceProvider(authorization=AuthorizationStatus.denied)
        monitor = RegionMonitor(provider)
        controller = ReminderLifecycleController(store, monitor, dispatcher)

        failed = await controller.start()
        try:
            assert failed == [reminder.id]
            assert monitor.monitored_regions == []

            provider.set_authorization(AuthorizationStatus.authorized_always)
            await controller.settle()

            assert monitor.authorization_status is AuthorizationStatus.authorized_always
            assert monitor.monitored_identifiers() == {reminder.id}
        finally:
            await controller.stop()


class TestReconciler:
    @pytest.mark.asyncio
    async def test_reconcile_retries_failed_registrations(self, store, dispatcher, make_reminder):
        reminders = [make_reminder() for _ in range(3)]
        for reminder in reminders:
            await store.save(reminder)
        provider = SimulatedGeofenceProvider(capacity=2)
        monitor = RegionMonitor(provider)
        controller = ReminderLifecycleController(store, monitor, dispatcher)

        failed = await controller.start()
        try:
            assert len(failed) == 1
            provider.capacity = 3
            await RegionReconciler(controller, interval_minutes=15).reconcile()
            assert monitor.monitored_identifiers() == {r.id for r in reminders}
        finally:
            await controller.stop()

    @pytest.mark.asyncio
    async def test_scheduler_lifecycle(self, controller):
        reconciler = RegionReconciler(controller, interval_minutes=15)
        reconciler.start()
        assert reconciler.is_running()
        reconciler.stop()
        assert not reconciler.is_running()

    @pytest.mark.asyncio
    async def test_zero_interval_disables_scheduler(self, controller):
        reconciler = RegionReconciler(controller, interval_minutes=0)
        reconciler.start()
        assert not reconciler.is_running()
