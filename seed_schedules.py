#!/usr/bin/env python3
"""
Script to reset the scheduler tables and load sample recurring slots

Usage: python seed_schedules.py
"""

import logging

from weekly_scheduler import models  # noqa: F401
from weekly_scheduler.database import Base, SessionLocal, engine
from weekly_scheduler.domain.scheduling.service import ScheduleService
from weekly_scheduler.models import RecurringSlot, ScheduleException

logging.basicConfig(level=logging.INFO, format="%(message)s")
logger = logging.getLogger(__name__)

SAMPLE_SLOTS = [
    (1, "09:00", "11:00"),  # Monday
    (3, "14:00", "16:00"),  # Wednesday
    (5, "10:00", "12:00"),  # Friday
]


def seed(session_factory=SessionLocal, bind=engine):
    Base.metadata.create_all(bind=bind, checkfirst=True)
    db = session_factory()

    try:
        logger.info("🔍 Clearing existing schedules...")
        db.query(ScheduleException).delete()
        db.query(RecurringSlot).delete()
        db.commit()

        service = ScheduleService(db)
        for day_of_week, start_time, end_time in SAMPLE_SLOTS:
            slot = service.create_slot(day_of_week, start_time, end_time)
            logger.info(f"   ✅ Slot {slot.id}: day {day_of_week} {start_time}-{end_time}")

        logger.info(f"✅ Seeded {len(SAMPLE_SLOTS)} recurring slots")
    finally:
        db.close()


if __name__ == "__main__":
    seed()
