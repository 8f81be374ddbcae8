"""
Recurring schedule models

A recurring slot is never edited in place: changing its times deactivates the
row and creates a new one, so exceptions keep pointing at the slot they were
made for.
"""

import enum

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


class ExceptionType(str, enum.Enum):
    MODIFIED = "modified"
    DELETED = "deleted"


class RecurringSlot(Base):
    """A weekly repeating time range on one day of the week"""

    __tablename__ = "schedules"

    id = Column(Integer, primary_key=True, index=True)
    day_of_week = Column(Integer, nullable=False)  # 0 = Sunday ... 6 = Saturday
    start_time = Column(String(5), nullable=False)  # HH:MM format
    end_time = Column(String(5), nullable=False)  # HH:MM format
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    exceptions = relationship(
        "ScheduleException",
        back_populates="schedule",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (Index("ix_schedules_day_time", "day_of_week", "start_time", "end_time"),)

    def __repr__(self):
        return (
            f"<RecurringSlot id={self.id} day={self.day_of_week} "
            f"{self.start_time}-{self.end_time} active={self.is_active}>"
        )


class ScheduleException(Base):
    """Override of one occurrence of a recurring slot on a specific date"""

    __tablename__ = "schedule_exceptions"

    id = Column(Integer, primary_key=True, index=True)
    schedule_id = Column(
        Integer, ForeignKey("schedules.id", ondelete="CASCADE"), nullable=False
    )
    exception_date = Column(Date, nullable=False, index=True)
    # Null when exception_type is "deleted"
    start_time = Column(String(5), nullable=True)
    end_time = Column(String(5), nullable=True)
    exception_type = Column(String(20), nullable=False)  # modified, deleted

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    schedule = relationship("RecurringSlot", back_populates="exceptions")

    __table_args__ = (
        UniqueConstraint("schedule_id", "exception_date", name="uq_schedule_exception_date"),
    )

    @property
    def is_deleted(self) -> bool:
        return self.exception_type == ExceptionType.DELETED.value

    def __repr__(self):
        return (
            f"<ScheduleException id={self.id} schedule={self.schedule_id} "
            f"date={self.exception_date} type={self.exception_type}>"
        )
