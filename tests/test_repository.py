"""Tests for the recurring slot store and the exception store."""

from datetime import date
from itertools import product

import pytest
from sqlalchemy.exc import IntegrityError

from weekly_scheduler.domain.scheduling.errors import NotFoundError
from weekly_scheduler.domain.scheduling.repository import (
    ExceptionRepository,
    RecurringScheduleRepository,
)
from weekly_scheduler.models import ExceptionType, RecurringSlot

MONDAY = date(2025, 1, 6)
NEXT_MONDAY = date(2025, 1, 13)

SAMPLE_INTERVALS = [
    ("08:00", "09:00"),
    ("09:00", "10:00"),
    ("09:30", "10:30"),
    ("10:00", "11:00"),
    ("08:00", "12:00"),
    ("10:15", "10:45"),
]

# [stored, requested, overlaps]
OVERLAP_CASES = [
    (("09:00", "10:00"), ("10:00", "11:00"), False),
    (("10:00", "11:00"), ("09:00", "10:00"), False),
    (("09:00", "11:00"), ("10:00", "12:00"), True),
    (("08:00", "12:00"), ("10:15", "10:45"), True),
    (("10:15", "10:45"), ("08:00", "12:00"), True),
    (("09:00", "10:00"), ("09:00", "10:00"), True),
]


class TestRecurringScheduleRepository:
    """Recurring slot store contract."""

    def test_create_returns_active_slot(self, db):
        slot = RecurringScheduleRepository.create(db, 1, "09:00", "11:00")
        assert slot.id is not None
        assert slot.is_active is True
        assert (slot.day_of_week, slot.start_time, slot.end_time) == (1, "09:00", "11:00")

    def test_list_active_by_day_orders_by_start(self, db):
        RecurringScheduleRepository.create(db, 1, "14:00", "15:00")
        RecurringScheduleRepository.create(db, 1, "08:00", "09:00")
        RecurringScheduleRepository.create(db, 2, "07:00", "08:00")

        slots = RecurringScheduleRepository.list_active_by_day(db, 1)
        assert [s.start_time for s in slots] == ["08:00", "14:00"]

    def test_list_all_active_orders_by_day_then_start(self, db):
        RecurringScheduleRepository.create(db, 3, "10:00", "11:00")
        RecurringScheduleRepository.create(db, 1, "14:00", "15:00")
        RecurringScheduleRepository.create(db, 1, "08:00", "09:00")

        slots = RecurringScheduleRepository.list_all_active(db)
        assert [(s.day_of_week, s.start_time) for s in slots] == [
            (1, "08:00"),
            (1, "14:00"),
            (3, "10:00"),
        ]

    def test_deactivate_hides_slot_but_keeps_row(self, db):
        slot = RecurringScheduleRepository.create(db, 1, "09:00", "11:00")
        RecurringScheduleRepository.deactivate(db, slot.id)

        assert RecurringScheduleRepository.list_active_by_day(db, 1) == []
        fetched = RecurringScheduleRepository.get_by_id(db, slot.id)
        assert fetched is not None
        assert fetched.is_active is False

    def test_deactivate_is_idempotent(self, db):
        slot = RecurringScheduleRepository.create(db, 1, "09:00", "11:00")
        RecurringScheduleRepository.deactivate(db, slot.id)
        RecurringScheduleRepository.deactivate(db, slot.id)
        RecurringScheduleRepository.deactivate(db, 9999)
        assert RecurringScheduleRepository.get_by_id(db, slot.id).is_active is False

    def test_get_by_id_missing(self, db):
        assert RecurringScheduleRepository.get_by_id(db, 42) is None

    def test_check_overlap(self, db):
        slot = RecurringScheduleRepository.create(db, 1, "09:00", "11:00")

        assert RecurringScheduleRepository.check_overlap(db, 1, "10:00", "12:00")
        assert not RecurringScheduleRepository.check_overlap(db, 1, "11:00", "13:00")
        assert not RecurringScheduleRepository.check_overlap(db, 1, "08:00", "09:00")
        assert not RecurringScheduleRepository.check_overlap(db, 2, "10:00", "12:00")
        assert not RecurringScheduleRepository.check_overlap(
            db, 1, "10:00", "12:00", exclude_id=slot.id
        )

    def test_check_overlap_ignores_inactive(self, db):
        slot = RecurringScheduleRepository.create(db, 1, "09:00", "11:00")
        RecurringScheduleRepository.deactivate(db, slot.id)
        assert not RecurringScheduleRepository.check_overlap(db, 1, "10:00", "12:00")

    def test_count_active_by_day(self, db):
        first = RecurringScheduleRepository.create(db, 4, "09:00", "10:00")
        RecurringScheduleRepository.create(db, 4, "10:00", "11:00")
        assert RecurringScheduleRepository.count_active_by_day(db, 4) == 2
        assert RecurringScheduleRepository.count_active_by_day(db, 4, exclude_id=first.id) == 1
        assert RecurringScheduleRepository.count_active_by_day(db, 5) == 0


class TestExceptionRepository:
    """Exception store contract."""

    @pytest.fixture
    def slot(self, db):
        return RecurringScheduleRepository.create(db, 1, "09:00", "11:00")

    def test_create_modified(self, db, slot):
        exc = ExceptionRepository.create(db, slot.id, MONDAY, ExceptionType.MODIFIED, "09:30", "10:30")
        assert exc.exception_type == "modified"
        assert (exc.start_time, exc.end_time) == ("09:30", "10:30")
        assert ExceptionRepository.get(db, slot.id, MONDAY).id == exc.id

    def test_create_deleted_drops_times(self, db, slot):
        exc = ExceptionRepository.create(db, slot.id, MONDAY, ExceptionType.DELETED, "09:30", "10:30")
        assert exc.is_deleted
        assert exc.start_time is None
        assert exc.end_time is None

    def test_unique_per_schedule_and_date(self, db, slot):
        ExceptionRepository.create(db, slot.id, MONDAY, ExceptionType.DELETED)
        with pytest.raises(IntegrityError):
            ExceptionRepository.create(db, slot.id, MONDAY, ExceptionType.MODIFIED, "09:30", "10:30")
        db.rollback()

    def test_list_in_date_range_is_inclusive_and_ordered(self, db, slot):
        for day in (date(2025, 1, 20), date(2025, 1, 6), date(2025, 1, 13), date(2025, 1, 27)):
            ExceptionRepository.create(db, slot.id, day, ExceptionType.DELETED)

        found = ExceptionRepository.list_in_date_range(db, date(2025, 1, 6), date(2025, 1, 20))
        assert [e.exception_date for e in found] == [
            date(2025, 1, 6),
            date(2025, 1, 13),
            date(2025, 1, 20),
        ]

    def test_list_in_single_day_range(self, db, slot):
        ExceptionRepository.create(db, slot.id, MONDAY, ExceptionType.DELETED)
        assert len(ExceptionRepository.list_in_date_range(db, MONDAY, MONDAY)) == 1
        assert ExceptionRepository.list_in_date_range(db, date(2025, 1, 7), date(2025, 1, 7)) == []

    def test_list_by_schedule_id(self, db, slot):
        other = RecurringScheduleRepository.create(db, 1, "13:00", "14:00")
        ExceptionRepository.create(db, slot.id, MONDAY, ExceptionType.DELETED)
        ExceptionRepository.create(db, other.id, MONDAY, ExceptionType.DELETED)

        found = ExceptionRepository.list_by_schedule_id(db, slot.id)
        assert [e.schedule_id for e in found] == [slot.id]

    def test_update_forces_modified(self, db, slot):
        ExceptionRepository.create(db, slot.id, MONDAY, ExceptionType.DELETED)
        updated = ExceptionRepository.update(db, slot.id, MONDAY, "10:00", "10:30")
        assert updated.exception_type == "modified"
        assert (updated.start_time, updated.end_time) == ("10:00", "10:30")

    def test_update_missing_raises_not_found(self, db, slot):
        with pytest.raises(NotFoundError):
            ExceptionRepository.update(db, slot.id, MONDAY, "10:00", "10:30")

    def test_delete_reverts_to_recurring(self, db, slot):
        ExceptionRepository.create(db, slot.id, MONDAY, ExceptionType.DELETED)
        assert ExceptionRepository.delete(db, slot.id, MONDAY) is True
        assert ExceptionRepository.get(db, slot.id, MONDAY) is None
        assert ExceptionRepository.delete(db, slot.id, MONDAY) is False

    def test_check_time_conflict_only_other_schedules_modified(self, db, slot):
        other = RecurringScheduleRepository.create(db, 1, "13:00", "14:00")
        ExceptionRepository.create(db, other.id, MONDAY, ExceptionType.MODIFIED, "10:00", "11:00")

        assert ExceptionRepository.check_time_conflict(db, MONDAY, "10:30", "11:30")
        assert not ExceptionRepository.check_time_conflict(db, MONDAY, "11:00", "12:00")
        assert not ExceptionRepository.check_time_conflict(
            db, MONDAY, "10:30", "11:30", exclude_schedule_id=other.id
        )
        assert not ExceptionRepository.check_time_conflict(db, date(2025, 1, 13), "10:30", "11:30")

    def test_check_time_conflict_ignores_deleted(self, db, slot):
        ExceptionRepository.create(db, slot.id, MONDAY, ExceptionType.DELETED)
        assert not ExceptionRepository.check_time_conflict(db, MONDAY, "09:00", "11:00")

    def test_exceptions_cascade_when_slot_row_is_removed(self, db, slot):
        ExceptionRepository.create(db, slot.id, MONDAY, ExceptionType.DELETED)
        db.commit()

        db.query(RecurringSlot).filter(RecurringSlot.id == slot.id).delete()
        db.commit()
        assert ExceptionRepository.list_by_schedule_id(db, slot.id) == []


class TestHalfOpenOverlap:
    """Both stores treat intervals as [start, end)."""

    @pytest.mark.parametrize("stored,requested,expected", OVERLAP_CASES)
    def test_recurring_slot_cases(self, db, stored, requested, expected):
        RecurringScheduleRepository.create(db, 1, *stored)
        assert RecurringScheduleRepository.check_overlap(db, 1, *requested) is expected

    @pytest.mark.parametrize("stored,requested,expected", OVERLAP_CASES)
    def test_modified_exception_cases(self, db, stored, requested, expected):
        slot = RecurringScheduleRepository.create(db, 1, "06:00", "07:00")
        ExceptionRepository.create(db, slot.id, MONDAY, ExceptionType.MODIFIED, *stored)
        assert ExceptionRepository.check_time_conflict(db, MONDAY, *requested) is expected

    @pytest.mark.parametrize("a,b", list(product(SAMPLE_INTERVALS, repeat=2)))
    def test_check_overlap_is_symmetric(self, db, a, b):
        RecurringScheduleRepository.create(db, 1, *a)
        RecurringScheduleRepository.create(db, 2, *b)
        assert RecurringScheduleRepository.check_overlap(
            db, 1, *b
        ) == RecurringScheduleRepository.check_overlap(db, 2, *a)

    @pytest.mark.parametrize("a,b", list(product(SAMPLE_INTERVALS, repeat=2)))
    def test_check_time_conflict_is_symmetric(self, db, a, b):
        first = RecurringScheduleRepository.create(db, 1, "06:00", "07:00")
        second = RecurringScheduleRepository.create(db, 1, "07:00", "08:00")
        ExceptionRepository.create(db, first.id, MONDAY, ExceptionType.MODIFIED, *a)
        ExceptionRepository.create(db, second.id, NEXT_MONDAY, ExceptionType.MODIFIED, *b)
        assert ExceptionRepository.check_time_conflict(
            db, MONDAY, *b
        ) == ExceptionRepository.check_time_conflict(db, NEXT_MONDAY, *a)
