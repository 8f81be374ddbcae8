"""Scheduling service - Occurrence resolution and validated writes

Resolution merges the recurring slots of a weekday with the sparse per-date
exceptions: no exception keeps the slot's own times, a "modified" exception
replaces them and a "deleted" exception hides the slot for that date only.
"""

import logging
from contextlib import contextmanager
from datetime import date, timedelta
from typing import Union

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ...models import ExceptionType, RecurringSlot, ScheduleException
from ...shared.validators import normalize_time, parse_date, sunday_based_weekday
from .errors import (
    CapacityError,
    ConflictError,
    InvalidOccurrenceDateError,
    NotFoundError,
    PersistenceError,
    SchedulingError,
    ValidationError,
)
from .repository import ExceptionRepository, RecurringScheduleRepository
from .schemas import DaySlots, Occurrence

logger = logging.getLogger(__name__)

# Business rule: at most two recurring slots per day of the week
MAX_SLOTS_PER_DAY = 2
DAYS_IN_WEEK = 7

DateLike = Union[str, date]


class ScheduleService:
    """Service layer composing the recurring slot and exception stores"""

    def __init__(self, db: Session):
        self.db = db
        self.slots = RecurringScheduleRepository()
        self.exceptions = ExceptionRepository()

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    @contextmanager
    def _unit_of_work(self, action: str):
        """Run a validate-then-write sequence as one transaction"""
        try:
            yield
            self.db.commit()
        except SchedulingError:
            self.db.rollback()
            raise
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"⚠️ Constraint violation while trying to {action}: {e.orig}")
            raise ConflictError(f"Could not {action}: conflicts with an existing record") from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception(f"❌ Database error while trying to {action}")
            raise PersistenceError(f"Failed to {action}. Please try again.") from e

    @contextmanager
    def _reading(self, action: str):
        try:
            yield
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception(f"❌ Database error while trying to {action}")
            raise PersistenceError(f"Failed to {action}. Please try again.") from e

    # ------------------------------------------------------------------
    # Input checks
    # ------------------------------------------------------------------

    @staticmethod
    def _validate_time_range(start_time: str, end_time: str) -> tuple[str, str]:
        try:
            start = normalize_time(start_time)
            end = normalize_time(end_time)
        except ValueError as e:
            raise ValidationError(str(e)) from e

        if start >= end:
            raise ValidationError("Start time must be before end time.")
        return start, end

    @staticmethod
    def _validate_day_of_week(day_of_week: int) -> int:
        if isinstance(day_of_week, bool) or not isinstance(day_of_week, int):
            raise ValidationError("Day of week must be an integer")
        if not 0 <= day_of_week <= 6:
            raise ValidationError("Day of week must be between 0 (Sunday) and 6 (Saturday)")
        return day_of_week

    @staticmethod
    def _parse_query_date(value: DateLike) -> date:
        try:
            return parse_date(value)
        except ValueError as e:
            raise ValidationError(str(e)) from e

    @staticmethod
    def _parse_occurrence_date(value: DateLike) -> date:
        try:
            return parse_date(value)
        except ValueError as e:
            raise InvalidOccurrenceDateError(str(e)) from e

    def _require_slot(self, schedule_id: int) -> RecurringSlot:
        slot = self.slots.get_by_id(self.db, schedule_id)
        if not slot:
            raise NotFoundError("Schedule not found")
        return slot

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    @staticmethod
    def week_start(day: date) -> date:
        """Most recent Sunday on or before the given date"""
        return day - timedelta(days=sunday_based_weekday(day))

    def _resolve_day(self, day: date, exceptions: list[ScheduleException]) -> DaySlots:
        overrides = {e.schedule_id: e for e in exceptions if e.exception_date == day}
        occurrences = []

        for slot in self.slots.list_active_by_day(self.db, sunday_based_weekday(day)):
            exception = overrides.get(slot.id)
            if exception is None:
                occurrences.append(
                    Occurrence(
                        id=slot.id,
                        start_time=slot.start_time,
                        end_time=slot.end_time,
                        is_exception=False,
                        schedule_id=slot.id,
                    )
                )
            elif exception.exception_type == ExceptionType.MODIFIED.value:
                occurrences.append(
                    Occurrence(
                        id=slot.id,
                        start_time=exception.start_time,
                        end_time=exception.end_time,
                        is_exception=True,
                        schedule_id=slot.id,
                        exception_id=exception.id,
                    )
                )
            # deleted: nothing on this date

        occurrences.sort(key=lambda o: o.start_time)
        return DaySlots(date=day.isoformat(), slots=occurrences)

    def resolve_week(self, week_start_date: DateLike) -> list[DaySlots]:
        """Resolve the Sunday-anchored week containing the given date into 7 day entries"""
        day = self._parse_query_date(week_start_date)
        try:
            start = self.week_start(day)
            end = start + timedelta(days=DAYS_IN_WEEK - 1)
        except OverflowError as e:
            # weeks straddling 0001-01-01 or 9999-12-31 cannot be represented
            raise ValidationError("Date out of supported range") from e

        with self._reading("load the week"):
            exceptions = self.exceptions.list_in_date_range(self.db, start, end)
            return [
                self._resolve_day(start + timedelta(days=offset), exceptions)
                for offset in range(DAYS_IN_WEEK)
            ]

    def resolve_date(self, value: DateLike) -> DaySlots:
        """Resolve a single calendar date"""
        day = self._parse_query_date(value)
        with self._reading("load the date"):
            exceptions = self.exceptions.list_in_date_range(self.db, day, day)
            return self._resolve_day(day, exceptions)

    def count_slots_for_date(self, value: DateLike) -> int:
        """Number of occurrences a calendar date resolves to"""
        return len(self.resolve_date(value).slots)

    # ------------------------------------------------------------------
    # Recurring slots
    # ------------------------------------------------------------------

    def list_slots(self) -> list[RecurringSlot]:
        """All active recurring slots"""
        with self._reading("list schedules"):
            return self.slots.list_all_active(self.db)

    def get_slot(self, schedule_id: int) -> RecurringSlot:
        """A recurring slot by ID, active or not"""
        with self._reading("load the schedule"):
            return self._require_slot(schedule_id)

    def create_slot(self, day_of_week: int, start_time: str, end_time: str) -> RecurringSlot:
        """Create a recurring slot after format, overlap and capacity checks"""
        day_of_week = self._validate_day_of_week(day_of_week)
        start, end = self._validate_time_range(start_time, end_time)

        with self._unit_of_work("create the recurring slot"):
            self.slots.lock_day(self.db, day_of_week)

            if self.slots.check_overlap(self.db, day_of_week, start, end):
                logger.warning(f"⚠️ Slot {start}-{end} overlaps an existing slot on day {day_of_week}")
                raise ConflictError("Time slot conflicts with existing schedule.")

            if self.slots.count_active_by_day(self.db, day_of_week) >= MAX_SLOTS_PER_DAY:
                logger.warning(f"⚠️ Day {day_of_week} already has {MAX_SLOTS_PER_DAY} slots")
                raise CapacityError(f"Maximum {MAX_SLOTS_PER_DAY} slots allowed per day.")

            slot = self.slots.create(self.db, day_of_week, start, end)

        logger.info(f"✅ Created recurring slot {slot.id}: day {day_of_week} {start}-{end}")
        return slot

    def update_slot(self, schedule_id: int, start_time: str, end_time: str) -> RecurringSlot:
        """
        Change the times of a recurring pattern.

        The old slot is deactivated and a new slot is created on the same day, so
        exceptions stay attached to the slot they were made for.
        """
        with self._unit_of_work("update the recurring slot"):
            old = self._require_slot(schedule_id)
            if not old.is_active:
                raise NotFoundError("Schedule not found")

            start, end = self._validate_time_range(start_time, end_time)
            day_of_week = old.day_of_week
            self.slots.lock_day(self.db, day_of_week)

            if self.slots.check_overlap(self.db, day_of_week, start, end, exclude_id=schedule_id):
                raise ConflictError("Time slot conflicts with existing schedule.")

            active = self.slots.count_active_by_day(self.db, day_of_week, exclude_id=schedule_id)
            if active >= MAX_SLOTS_PER_DAY:
                raise CapacityError(f"Maximum {MAX_SLOTS_PER_DAY} slots allowed per day.")

            self.slots.deactivate(self.db, schedule_id)
            slot = self.slots.create(self.db, day_of_week, start, end)

        logger.info(f"✅ Replaced recurring slot {schedule_id} with {slot.id}: {start}-{end}")
        return slot

    def delete_slot(self, schedule_id: int) -> RecurringSlot:
        """Deactivate a recurring slot. Its exception rows are kept."""
        with self._unit_of_work("delete the recurring slot"):
            slot = self._require_slot(schedule_id)
            self.slots.deactivate(self.db, schedule_id)

        logger.info(f"🗑️ Deactivated recurring slot {schedule_id}")
        return slot

    # ------------------------------------------------------------------
    # Single occurrences
    # ------------------------------------------------------------------

    def list_exceptions(self, schedule_id: int) -> list[ScheduleException]:
        """Exceptions stored for a slot, including those of deactivated slots"""
        with self._reading("list exceptions"):
            self._require_slot(schedule_id)
            return self.exceptions.list_by_schedule_id(self.db, schedule_id)

    def modify_occurrence(
        self, schedule_id: int, occurrence_date: DateLike, start_time: str, end_time: str
    ) -> ScheduleException:
        """Override the times of one occurrence; also restores a deleted occurrence"""
        day = self._parse_occurrence_date(occurrence_date)

        with self._unit_of_work("update the slot for this date"):
            self._require_slot(schedule_id)
            start, end = self._validate_time_range(start_time, end_time)
            self.exceptions.lock_date(self.db, day)

            if self.exceptions.check_time_conflict(
                self.db, day, start, end, exclude_schedule_id=schedule_id
            ):
                logger.warning(f"⚠️ {start}-{end} on {day} overlaps another modified slot")
                raise ConflictError("Time slot conflicts with existing schedule on this date.")

            existing = self.exceptions.get(self.db, schedule_id, day)
            if existing:
                exception = self.exceptions.update(self.db, schedule_id, day, start, end)
            else:
                exception = self.exceptions.create(
                    self.db, schedule_id, day, ExceptionType.MODIFIED, start, end
                )

        logger.info(f"✏️ Schedule {schedule_id} on {day} set to {start}-{end}")
        return exception

    def delete_occurrence(self, schedule_id: int, occurrence_date: DateLike) -> ScheduleException:
        """Cancel one occurrence. A second delete of the same date is rejected."""
        day = self._parse_occurrence_date(occurrence_date)

        with self._unit_of_work("delete the slot for this date"):
            self._require_slot(schedule_id)
            self.exceptions.lock_date(self.db, day)

            existing = self.exceptions.get(self.db, schedule_id, day)
            if existing and existing.is_deleted:
                raise ConflictError("Slot is already deleted for this date")

            if existing:
                exception = self.exceptions.mark_deleted(self.db, existing)
            else:
                exception = self.exceptions.create(
                    self.db, schedule_id, day, ExceptionType.DELETED
                )

        logger.info(f"🗑️ Schedule {schedule_id} cancelled on {day}")
        return exception

    def revert_occurrence(self, schedule_id: int, occurrence_date: DateLike) -> None:
        """Drop the override so the date follows the recurring pattern again"""
        day = self._parse_occurrence_date(occurrence_date)

        with self._unit_of_work("revert the slot for this date"):
            self._require_slot(schedule_id)
            if not self.exceptions.delete(self.db, schedule_id, day):
                raise NotFoundError("No override exists for this date")

        logger.info(f"↩️ Schedule {schedule_id} on {day} reverted to recurring times")
