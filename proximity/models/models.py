from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, Float, String, Text
from sqlalchemy.orm import Mapped, declarative_base, mapped_column
from sqlalchemy.types import TypeDecorator

Base = declarative_base()

ACTIVE_SECTION = "Active Reminders"
INACTIVE_SECTION = "Inactive Reminders"


def new_reminder_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def section_for(is_active: bool) -> str:
    return ACTIVE_SECTION if is_active else INACTIVE_SECTION


class UTCDateTime(TypeDecorator):
    """Timezone-aware datetime that comes back as UTC even on SQLite."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value

    def process_result_value(self, value, dialect):
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value


class Reminder(Base):
    __tablename__ = "reminders"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_reminder_id)
    note_text: Mapped[str] = mapped_column(Text)
    extra_note: Mapped[str] = mapped_column(Text, default="")
    location_name: Mapped[str] = mapped_column(String(255), default="")
    location_address: Mapped[str] = mapped_column(Text, default="")
    latitude: Mapped[float] = mapped_column(Float)
    longitude: Mapped[float] = mapped_column(Float)
    is_enter_reminder: Mapped[bool] = mapped_column(Boolean, default=True)
    is_recurring: Mapped[bool] = mapped_column(Boolean, default=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    section: Mapped[str] = mapped_column(String(50), default=ACTIVE_SECTION)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow)

    def update_section(self) -> None:
        """Recompute the display section from is_active."""
        self.section = section_for(bool(self.is_active))

    def __repr__(self) -> str:
        return f"<Reminder id={self.id} active={self.is_active} recurring={self.is_recurring}>"
