import os
import sys

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

# Make the project root importable when running pytest from anywhere
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from proximity import database  # noqa: E402
from proximity.config import Settings  # noqa: E402
from proximity.crud import ReminderStore  # noqa: E402
from proximity.features.geofencing import RegionMonitor, SimulatedGeofenceProvider  # noqa: E402
from proximity.features.notifications import (  # noqa: E402
    AppActivity,
    InAppAlertQueue,
    InMemoryNotificationCenter,
    NotificationDispatcher,
)
from proximity.features.reminders import ReminderLifecycleController  # noqa: E402
from proximity.models import models as db  # noqa: E402

# TCL Chinese Theatre, Hollywood
THEATRE = (34.1022, -118.3409)
# Roughly 1.1 km north of the theatre
FAR_AWAY = (34.1122, -118.3409)


@pytest.fixture()
def database_url(tmp_path):
    # A fresh SQLite file per test keeps tests independent
    return f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"


@pytest_asyncio.fixture()
async def store(database_url):
    engine = database.make_engine(database_url)
    await database.init_db_async(engine)
    yield ReminderStore(database.make_sessionmaker(engine))
    await engine.dispose()


@pytest.fixture()
def make_reminder():
    """Factory for reminder records with every field filled in."""

    def _make(**overrides) -> db.Reminder:
        fields = dict(
            id=db.new_reminder_id(),
            note_text="Buy popcorn",
            extra_note="",
            location_name="TCL Chinese Theatre",
            location_address="6925 Hollywood Blvd, Hollywood CA",
            latitude=THEATRE[0],
            longitude=THEATRE[1],
            is_enter_reminder=True,
            is_recurring=False,
            is_active=True,
            created_at=db.utcnow(),
        )
        fields.update(overrides)
        reminder = db.Reminder(**fields)
        reminder.update_section()
        return reminder

    return _make


@pytest.fixture()
def provider():
    return SimulatedGeofenceProvider(capacity=20)


@pytest.fixture()
def monitor(provider):
    return RegionMonitor(provider)


@pytest.fixture()
def activity():
    return AppActivity()


@pytest.fixture()
def alerts():
    return InAppAlertQueue()


@pytest.fixture()
def center():
    return InMemoryNotificationCenter()


@pytest.fixture()
def dispatcher(activity, alerts, center):
    return NotificationDispatcher(activity, alerts, center)


@pytest_asyncio.fixture()
async def controller(store, monitor, dispatcher):
    ctrl = ReminderLifecycleController(store, monitor, dispatcher)
    await ctrl.start()
    yield ctrl
    await ctrl.stop()


@pytest.fixture()
def settings(database_url):
    return Settings(
        database_url=database_url,
        region_reconcile_interval_minutes=0,
        notification_push_url=None,
    )


@pytest.fixture()
def client(settings):
    from proximity.main import create_app

    app = create_app(settings)
    with TestClient(app) as c:
        yield c
