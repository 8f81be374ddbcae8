"""Scheduling domain schemas - Pydantic models for validation"""

from datetime import date, datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from ...shared.validators import normalize_time


class SlotCreate(BaseModel):
    """Schema for creating a recurring slot"""

    day_of_week: int = Field(ge=0, le=6, description="0 = Sunday ... 6 = Saturday")
    start_time: str
    end_time: str

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time(cls, v):
        return normalize_time(v)


class TimeRangeUpdate(BaseModel):
    """Schema for new times on a recurring slot or a single occurrence"""

    start_time: str
    end_time: str

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time(cls, v):
        return normalize_time(v)


class SlotResponse(BaseModel):
    """Schema for recurring slot response"""

    id: int
    day_of_week: int
    start_time: str
    end_time: str
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ExceptionResponse(BaseModel):
    """Schema for a stored per-date override"""

    id: int
    schedule_id: int
    exception_date: date
    exception_type: str
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class Occurrence(BaseModel):
    """One resolved slot on a concrete date"""

    id: int
    start_time: str
    end_time: str
    is_exception: bool
    schedule_id: int
    exception_id: Optional[int] = None


class DaySlots(BaseModel):
    """Resolved slots for one calendar date"""

    date: str  # YYYY-MM-DD
    slots: list[Occurrence]


class ApiResponse(BaseModel):
    """Success envelope shared by every endpoint"""

    success: bool = True
    data: Optional[Any] = None
    message: Optional[str] = None
