import asyncio
import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from proximity.errors import PersistenceError
from proximity.models import models as db

logger = logging.getLogger("store")


class ReminderStore:
    """Persistence and query facade over reminder records.

    Every write runs in its own transaction and goes through one lock, so a
    save is either fully committed or not at all and no two writers touch the
    same record concurrently. Database failures surface as PersistenceError.
    """

    def __init__(self, sessionmaker: async_sessionmaker):
        self._sessionmaker = sessionmaker
        self._write_lock = asyncio.Lock()

    # --- Queries -------------------------------------------------------------

    async def fetch_active(self) -> List[db.Reminder]:
        stmt = (
            select(db.Reminder)
            .where(db.Reminder.is_active.is_(True))
            .order_by(db.Reminder.created_at, db.Reminder.id)
        )
        try:
            async with self._sessionmaker() as dbs:
                result = await dbs.execute(stmt)
                reminders = list(result.scalars())
        except SQLAlchemyError as e:
            raise self._fatal("fetch_active", e) from e
        logger.debug("Fetched %d active reminder(s)", len(reminders))
        return reminders

    async def fetch_all(self) -> List[db.Reminder]:
        stmt = select(db.Reminder).order_by(db.Reminder.section, db.Reminder.created_at, db.Reminder.id)
        try:
            async with self._sessionmaker() as dbs:
                result = await dbs.execute(stmt)
                return list(result.scalars())
        except SQLAlchemyError as e:
            raise self._fatal("fetch_all", e) from e

    async def fetch_by_identifier(self, identifier: str) -> Optional[db.Reminder]:
        try:
            async with self._sessionmaker() as dbs:
                reminder = await dbs.get(db.Reminder, identifier)
        except SQLAlchemyError as e:
            raise self._fatal("fetch_by_identifier", e) from e
        if reminder is None:
            logger.info("Reminder with identifier=%s not found.", identifier)
        return reminder

    # --- Writes --------------------------------------------------------------

    async def save(self, reminder: db.Reminder) -> db.Reminder:
        """Create the reminder if absent, otherwise update it (matched by id)."""
        if not reminder.id:
            reminder.id = db.new_reminder_id()
        reminder.update_section()

        async with self._write_lock:
            try:
                async with self._sessionmaker() as dbs:
                    existing = await dbs.get(db.Reminder, reminder.id)
                    # created_at is fixed by the first save
                    if existing is not None:
                        reminder.created_at = existing.created_at
                    elif reminder.created_at is None:
                        reminder.created_at = db.utcnow()
                    await dbs.merge(reminder)
                    await dbs.commit()
            except SQLAlchemyError as e:
                raise self._fatal("save", e) from e

        logger.info("Saved reminder %s (%s)", reminder.id, reminder.section)
        return reminder

    async def delete(self, reminder: db.Reminder) -> bool:
        async with self._write_lock:
            try:
                async with self._sessionmaker() as dbs:
                    existing = await dbs.get(db.Reminder, reminder.id)
                    if existing is None:
                        logger.info("Delete skipped: reminder %s already gone", reminder.id)
                        return False
                    await dbs.delete(existing)
                    await dbs.commit()
            except SQLAlchemyError as e:
                raise self._fatal("delete", e) from e

        logger.info("Deleted reminder %s", reminder.id)
        return True

    @staticmethod
    def _fatal(operation: str, error: Exception) -> PersistenceError:
        logger.critical("Reminder store %s failed: %s", operation, error)
        return PersistenceError(f"{operation} failed: {error}")
