import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from proximity import schemas
from proximity.engine import ReminderEngine
from proximity.errors import ReminderNotFound
from proximity.features.geofencing import SimulatedGeofenceProvider
from proximity.features.notifications import AppActivityState
from proximity.models import models as db

logger = logging.getLogger("routes")
router = APIRouter()


def get_engine(request: Request) -> ReminderEngine:
    return request.app.state.engine


# ---------------------------------------------------------------------------
# Status
# ---------------------------------------------------------------------------

@router.get("/status", response_model=schemas.StatusOut, tags=["Health"])
async def get_status(engine: ReminderEngine = Depends(get_engine)):
    """Permission state for the UI banner: without both, reminders never fire."""
    location = engine.monitor.authorization_status
    notifications = engine.center.authorized
    return schemas.StatusOut(
        location_authorization=location,
        location_authorized=location.allows_monitoring,
        notifications_authorized=notifications,
        ready=location.allows_monitoring and notifications,
        monitored_regions=len(engine.monitor.monitored_regions),
        app_state=engine.activity.state,
        last_monitoring_failure=engine.monitor.last_failure,
    )


# ---------------------------------------------------------------------------
# Reminders
# ---------------------------------------------------------------------------

@router.get("/reminders", response_model=schemas.ReminderList, tags=["Reminders"])
async def list_reminders(engine: ReminderEngine = Depends(get_engine)):
    reminders = await engine.store.fetch_all()
    return {"count": len(reminders), "reminders": reminders}


@router.post(
    "/reminders",
    response_model=schemas.ReminderOut,
    status_code=status.HTTP_201_CREATED,
    tags=["Reminders"],
)
async def create_reminder(payload: schemas.ReminderCreate, engine: ReminderEngine = Depends(get_engine)):
    reminder = db.Reminder(**payload.model_dump(exclude={"placemark"}))
    return await engine.controller.create_reminder(reminder)


@router.get("/reminders/{identifier}", response_model=schemas.ReminderOut, tags=["Reminders"])
async def get_reminder(identifier: str, engine: ReminderEngine = Depends(get_engine)):
    reminder = await engine.store.fetch_by_identifier(identifier)
    if reminder is None:
        raise ReminderNotFound(identifier)
    return reminder


@router.patch("/reminders/{identifier}", response_model=schemas.ReminderOut, tags=["Reminders"])
async def update_reminder(
    identifier: str,
    payload: schemas.ReminderUpdate,
    engine: ReminderEngine = Depends(get_engine),
):
    changes = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}
    return await engine.controller.update_reminder(identifier, changes)


@router.delete("/reminders/{identifier}", status_code=status.HTTP_204_NO_CONTENT, tags=["Reminders"])
async def delete_reminder(identifier: str, engine: ReminderEngine = Depends(get_engine)):
    if not await engine.controller.delete_reminder(identifier):
        raise ReminderNotFound(identifier)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/regions", response_model=List[schemas.RegionOut], tags=["Reminders"])
async def list_regions(engine: ReminderEngine = Depends(get_engine)):
    return engine.monitor.monitored_regions


# ---------------------------------------------------------------------------
# Platform callbacks
# ---------------------------------------------------------------------------

@router.post("/platform/region-events", status_code=status.HTTP_202_ACCEPTED, tags=["Platform"])
async def region_event(payload: schemas.RegionEventIn, engine: ReminderEngine = Depends(get_engine)):
    engine.monitor.on_region_crossing(payload.identifier, payload.crossing)
    await engine.controller.settle()
    return {"status": "accepted"}


@router.post("/platform/authorization", status_code=status.HTTP_202_ACCEPTED, tags=["Platform"])
async def authorization_changed(payload: schemas.AuthorizationIn, engine: ReminderEngine = Depends(get_engine)):
    if isinstance(engine.provider, SimulatedGeofenceProvider):
        engine.provider.set_authorization(payload.status)
    else:
        engine.monitor.on_authorization_changed(payload.status)
    await engine.controller.settle()
    return {"status": "accepted"}


@router.post("/platform/monitoring-failures", status_code=status.HTTP_202_ACCEPTED, tags=["Platform"])
async def monitoring_failed(payload: schemas.MonitoringFailureIn, engine: ReminderEngine = Depends(get_engine)):
    engine.monitor.on_monitoring_failed(payload.identifier, payload.reason)
    return {"status": "accepted"}


@router.put("/platform/notification-authorization", tags=["Platform"])
async def notification_authorization(
    payload: schemas.NotificationAuthorizationIn,
    engine: ReminderEngine = Depends(get_engine),
):
    engine.center.authorized = payload.authorized
    logger.info("Notification authorization: %s", payload.authorized)
    return {"authorized": engine.center.authorized}


@router.post("/platform/location", response_model=List[schemas.CrossingOut], tags=["Platform"])
async def location_fix(payload: schemas.LocationFixIn, engine: ReminderEngine = Depends(get_engine)):
    """Feed a location fix to the simulated geofence provider."""
    if not isinstance(engine.provider, SimulatedGeofenceProvider):
        raise HTTPException(status_code=409, detail="Location fixes need the simulated provider")
    crossings = engine.provider.update_location(payload.latitude, payload.longitude)
    await engine.controller.settle()
    return [{"identifier": identifier, "crossing": crossing} for identifier, crossing in crossings]


# ---------------------------------------------------------------------------
# App state and notifications
# ---------------------------------------------------------------------------

@router.put("/app/state", tags=["App"])
async def set_app_state(payload: schemas.AppStateIn, engine: ReminderEngine = Depends(get_engine)):
    if payload.state is AppActivityState.active:
        engine.dispatcher.app_did_become_active()
    else:
        engine.activity.state = payload.state
    return {"state": engine.activity.state}


@router.get("/alerts", response_model=List[schemas.AlertOut], tags=["App"])
async def drain_alerts(engine: ReminderEngine = Depends(get_engine)):
    return engine.alerts.drain()


@router.get("/notifications", response_model=schemas.NotificationList, tags=["App"])
async def list_notifications(engine: ReminderEngine = Depends(get_engine)):
    return {"badge": engine.center.badge, "notifications": list(engine.center.delivered)}


@router.post(
    "/notifications/{identifier}/response",
    response_model=schemas.ReminderOut,
    tags=["App"],
)
async def notification_response(identifier: str, engine: ReminderEngine = Depends(get_engine)):
    reminder = await engine.controller.handle_notification_response(identifier)
    if reminder is None:
        raise ReminderNotFound(identifier)
    return reminder
