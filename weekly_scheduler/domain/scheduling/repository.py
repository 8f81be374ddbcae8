"""Scheduling repository - Database operations for recurring slots and their exceptions

Store calls flush but never commit; the service commits once per operation so a
check and the write that depends on it land in the same transaction.
"""

from datetime import date
from typing import Optional

from sqlalchemy import func, text
from sqlalchemy.orm import Session

from ...models import ExceptionType, RecurringSlot, ScheduleException
from .errors import NotFoundError

# Advisory lock namespaces (first key of pg_advisory_xact_lock)
_LOCK_DAY_OF_WEEK = 1
_LOCK_EXCEPTION_DATE = 2


def _advisory_lock(db: Session, namespace: int, key: int) -> None:
    """Take a transaction-scoped advisory lock; no-op outside PostgreSQL"""
    if db.get_bind().dialect.name != "postgresql":
        return
    db.execute(
        text("SELECT pg_advisory_xact_lock(:namespace, :key)"),
        {"namespace": namespace, "key": key},
    )


class RecurringScheduleRepository:
    """Repository for recurring slot database operations"""

    @staticmethod
    def create(db: Session, day_of_week: int, start_time: str, end_time: str) -> RecurringSlot:
        """Insert a new active slot. Callers validate times and conflicts beforehand."""
        slot = RecurringSlot(
            day_of_week=day_of_week,
            start_time=start_time,
            end_time=end_time,
            is_active=True,
        )
        db.add(slot)
        db.flush()
        db.refresh(slot)
        return slot

    @staticmethod
    def list_active_by_day(db: Session, day_of_week: int) -> list[RecurringSlot]:
        """Active slots for one day of the week, earliest first"""
        return (
            db.query(RecurringSlot)
            .filter(RecurringSlot.day_of_week == day_of_week, RecurringSlot.is_active.is_(True))
            .order_by(RecurringSlot.start_time)
            .all()
        )

    @staticmethod
    def list_all_active(db: Session) -> list[RecurringSlot]:
        """All active slots ordered by day of week, then start time"""
        return (
            db.query(RecurringSlot)
            .filter(RecurringSlot.is_active.is_(True))
            .order_by(RecurringSlot.day_of_week, RecurringSlot.start_time)
            .all()
        )

    @staticmethod
    def get_by_id(db: Session, schedule_id: int) -> Optional[RecurringSlot]:
        """Get a slot by ID whether or not it is still active"""
        return db.query(RecurringSlot).filter(RecurringSlot.id == schedule_id).first()

    @staticmethod
    def count_active_by_day(db: Session, day_of_week: int, exclude_id: Optional[int] = None) -> int:
        """Number of active slots on a day of the week"""
        query = db.query(func.count(RecurringSlot.id)).filter(
            RecurringSlot.day_of_week == day_of_week, RecurringSlot.is_active.is_(True)
        )
        if exclude_id is not None:
            query = query.filter(RecurringSlot.id != exclude_id)
        return query.scalar() or 0

    @staticmethod
    def deactivate(db: Session, schedule_id: int) -> None:
        """Soft delete. Deactivating a missing or inactive slot is a no-op."""
        db.query(RecurringSlot).filter(
            RecurringSlot.id == schedule_id, RecurringSlot.is_active.is_(True)
        ).update({RecurringSlot.is_active: False}, synchronize_session="fetch")
        db.flush()

    @staticmethod
    def check_overlap(
        db: Session,
        day_of_week: int,
        start_time: str,
        end_time: str,
        exclude_id: Optional[int] = None,
    ) -> bool:
        """True if another active slot on that day overlaps [start_time, end_time)"""
        query = db.query(RecurringSlot.id).filter(
            RecurringSlot.day_of_week == day_of_week,
            RecurringSlot.is_active.is_(True),
            RecurringSlot.start_time < end_time,
            RecurringSlot.end_time > start_time,
        )
        if exclude_id is not None:
            query = query.filter(RecurringSlot.id != exclude_id)
        return query.first() is not None

    @staticmethod
    def lock_day(db: Session, day_of_week: int) -> None:
        """Serialize writers creating slots on the same day of the week"""
        _advisory_lock(db, _LOCK_DAY_OF_WEEK, day_of_week)


class ExceptionRepository:
    """Repository for per-date exception database operations"""

    @staticmethod
    def create(
        db: Session,
        schedule_id: int,
        exception_date: date,
        exception_type: ExceptionType,
        start_time: Optional[str] = None,
        end_time: Optional[str] = None,
    ) -> ScheduleException:
        """Insert an exception. Times are dropped for deletions."""
        exception_type = ExceptionType(exception_type)
        is_modified = exception_type == ExceptionType.MODIFIED
        exception = ScheduleException(
            schedule_id=schedule_id,
            exception_date=exception_date,
            exception_type=exception_type.value,
            start_time=start_time if is_modified else None,
            end_time=end_time if is_modified else None,
        )
        db.add(exception)
        db.flush()
        db.refresh(exception)
        return exception

    @staticmethod
    def get(db: Session, schedule_id: int, exception_date: date) -> Optional[ScheduleException]:
        """Get the exception for a slot on a date"""
        return (
            db.query(ScheduleException)
            .filter(
                ScheduleException.schedule_id == schedule_id,
                ScheduleException.exception_date == exception_date,
            )
            .first()
        )

    @staticmethod
    def list_in_date_range(db: Session, start_date: date, end_date: date) -> list[ScheduleException]:
        """Exceptions dated within [start_date, end_date], both bounds inclusive"""
        return (
            db.query(ScheduleException)
            .filter(ScheduleException.exception_date.between(start_date, end_date))
            .order_by(ScheduleException.exception_date, ScheduleException.id)
            .all()
        )

    @staticmethod
    def list_by_schedule_id(db: Session, schedule_id: int) -> list[ScheduleException]:
        """All exceptions of one slot, oldest date first"""
        return (
            db.query(ScheduleException)
            .filter(ScheduleException.schedule_id == schedule_id)
            .order_by(ScheduleException.exception_date)
            .all()
        )

    @staticmethod
    def update(
        db: Session, schedule_id: int, exception_date: date, start_time: str, end_time: str
    ) -> ScheduleException:
        """Overwrite an existing exception as a modification"""
        exception = ExceptionRepository.get(db, schedule_id, exception_date)
        if not exception:
            raise NotFoundError(
                f"No exception for schedule {schedule_id} on {exception_date.isoformat()}"
            )

        exception.exception_type = ExceptionType.MODIFIED.value
        exception.start_time = start_time
        exception.end_time = end_time
        db.flush()
        db.refresh(exception)
        return exception

    @staticmethod
    def mark_deleted(db: Session, exception: ScheduleException) -> ScheduleException:
        """Turn an existing exception into a deletion, clearing its times"""
        exception.exception_type = ExceptionType.DELETED.value
        exception.start_time = None
        exception.end_time = None
        db.flush()
        db.refresh(exception)
        return exception

    @staticmethod
    def delete(db: Session, schedule_id: int, exception_date: date) -> bool:
        """Remove the exception, reverting the date to the recurring default"""
        deleted = (
            db.query(ScheduleException)
            .filter(
                ScheduleException.schedule_id == schedule_id,
                ScheduleException.exception_date == exception_date,
            )
            .delete(synchronize_session="fetch")
        )
        db.flush()
        return deleted > 0

    @staticmethod
    def check_time_conflict(
        db: Session,
        exception_date: date,
        start_time: str,
        end_time: str,
        exclude_schedule_id: Optional[int] = None,
    ) -> bool:
        """True if another schedule's modification on that date overlaps [start_time, end_time)"""
        query = db.query(ScheduleException.id).filter(
            ScheduleException.exception_date == exception_date,
            ScheduleException.exception_type == ExceptionType.MODIFIED.value,
            ScheduleException.start_time < end_time,
            ScheduleException.end_time > start_time,
        )
        if exclude_schedule_id is not None:
            query = query.filter(ScheduleException.schedule_id != exclude_schedule_id)
        return query.first() is not None

    @staticmethod
    def lock_date(db: Session, exception_date: date) -> None:
        """Serialize writers overriding occurrences on the same date"""
        _advisory_lock(db, _LOCK_EXCEPTION_DATE, exception_date.toordinal())
