from datetime import datetime
from typing import Annotated, List, Optional

from pydantic import AfterValidator, BaseModel, Field, model_validator

from proximity.features.geofencing import AuthorizationStatus, CrossingKind, format_address
from proximity.features.notifications import AppActivityState


# ---------------------------------------------------------------------------
# Reminder Schemas
# ---------------------------------------------------------------------------
class Placemark(BaseModel):
    name: Optional[str] = Field(None, description="Place name, e.g. 'TCL Chinese Theatre'")
    sub_thoroughfare: Optional[str] = Field(None, description="Street number")
    thoroughfare: Optional[str] = Field(None, description="Street name")
    locality: Optional[str] = Field(None, description="City")
    administrative_area: Optional[str] = Field(None, description="State or region")


def _require_note(value: str) -> str:
    if not value.strip():
        raise ValueError("note is required")
    return value


NoteText = Annotated[str, AfterValidator(_require_note)]


class ReminderCreate(BaseModel):
    note_text: NoteText = Field(..., description="Reminder note shown when the reminder fires")
    extra_note: str = Field("", description="Optional extra note")
    location_name: Optional[str] = Field(None, description="Display label of the location")
    location_address: Optional[str] = Field(None, description="Formatted address of the location")
    placemark: Optional[Placemark] = Field(None, description="Address parts used when no address is given")
    latitude: float = Field(..., ge=-90, le=90, description="Latitude of the monitored point")
    longitude: float = Field(..., ge=-180, le=180, description="Longitude of the monitored point")
    is_enter_reminder: bool = Field(True, description="Fire on entry (true) or on exit (false)")
    is_recurring: bool = Field(True, description="Keep firing after the first trigger")
    is_active: bool = Field(True, description="Monitor the location right away")

    @model_validator(mode="after")
    def _fill_location_labels(self) -> "ReminderCreate":
        if self.placemark is not None:
            if not self.location_address:
                self.location_address = format_address(
                    self.placemark.sub_thoroughfare,
                    self.placemark.thoroughfare,
                    self.placemark.locality,
                    self.placemark.administrative_area,
                )
            if not self.location_name:
                self.location_name = self.placemark.name
        self.location_name = self.location_name or ""
        self.location_address = self.location_address or ""
        return self


class ReminderUpdate(BaseModel):
    note_text: Optional[NoteText] = Field(None, description="Updated note")
    extra_note: Optional[str] = Field(None, description="Updated extra note")
    location_name: Optional[str] = Field(None, description="Updated location label")
    location_address: Optional[str] = Field(None, description="Updated formatted address")
    latitude: Optional[float] = Field(None, ge=-90, le=90, description="Updated latitude")
    longitude: Optional[float] = Field(None, ge=-180, le=180, description="Updated longitude")
    is_enter_reminder: Optional[bool] = Field(None, description="Fire on entry (true) or on exit (false)")
    is_recurring: Optional[bool] = Field(None, description="Keep firing after the first trigger")
    is_active: Optional[bool] = Field(None, description="Toggle monitoring on/off")


class ReminderOut(BaseModel):
    id: str = Field(..., description="Stable identifier, also the monitored region identifier")
    note_text: str
    extra_note: str
    location_name: str
    location_address: str
    latitude: float
    longitude: float
    is_enter_reminder: bool
    is_recurring: bool
    is_active: bool
    section: str = Field(..., description="'Active Reminders' or 'Inactive Reminders'")
    created_at: datetime

    model_config = {"from_attributes": True}


class ReminderList(BaseModel):
    count: int = Field(..., description="Total number of reminders returned")
    reminders: List[ReminderOut] = Field(..., description="Reminders ordered by section")


# ---------------------------------------------------------------------------
# Platform Callback Schemas
# ---------------------------------------------------------------------------
class RegionEventIn(BaseModel):
    identifier: str = Field(..., description="Identifier of the crossed region")
    crossing: CrossingKind = Field(..., description="'enter' or 'exit'")


class AuthorizationIn(BaseModel):
    status: AuthorizationStatus


class MonitoringFailureIn(BaseModel):
    identifier: Optional[str] = Field(None, description="Region that failed, if known")
    reason: str = Field(..., description="Platform error description")


class LocationFixIn(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class CrossingOut(BaseModel):
    identifier: str
    crossing: CrossingKind


class RegionOut(BaseModel):
    identifier: str
    latitude: float
    longitude: float
    radius: float
    notify_on_entry: bool
    notify_on_exit: bool

    model_config = {"from_attributes": True}


# ---------------------------------------------------------------------------
# App / Notification Schemas
# ---------------------------------------------------------------------------
class AppStateIn(BaseModel):
    state: AppActivityState


class AlertOut(BaseModel):
    identifier: str
    title: str
    message: str
    created_at: datetime

    model_config = {"from_attributes": True}


class NotificationOut(BaseModel):
    identifier: str
    body: str
    sound: bool
    badge: Optional[int] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class NotificationList(BaseModel):
    badge: int = Field(..., description="Current badge counter")
    notifications: List[NotificationOut]


class StatusOut(BaseModel):
    location_authorization: AuthorizationStatus
    location_authorized: bool = Field(..., description="Region monitoring is allowed")
    notifications_authorized: bool
    ready: bool = Field(..., description="Both permissions needed for reminders to fire are granted")
    monitored_regions: int
    app_state: AppActivityState
    last_monitoring_failure: Optional[str] = None


class NotificationAuthorizationIn(BaseModel):
    authorized: bool
