"""Scheduling router - FastAPI endpoints for recurring slots and per-date overrides"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Path
from fastapi.responses import JSONResponse
from sqlalchemy import inspect, text
from sqlalchemy.orm import Session

from ...database import get_db
from .schemas import (
    ApiResponse,
    ExceptionResponse,
    SlotCreate,
    SlotResponse,
    TimeRangeUpdate,
)
from .service import ScheduleService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Schedules"])

DateParam = Annotated[str, Path(pattern=r"^\d{4}-\d{2}-\d{2}$", description="Date in YYYY-MM-DD format")]
ScheduleIdParam = Annotated[int, Path(gt=0, description="Recurring slot ID")]


def get_schedule_service(db: Session = Depends(get_db)) -> ScheduleService:
    """Dependency injection for ScheduleService"""
    return ScheduleService(db)


# ============================================================================
# WEEK / DATE VIEWS
# ============================================================================


@router.get("/slots/week/{date}", response_model=ApiResponse)
async def get_slots_for_week(
    date: DateParam,
    service: ScheduleService = Depends(get_schedule_service),
):
    """Resolved slots for the Sunday-anchored week containing the date"""
    days = service.resolve_week(date)
    return ApiResponse(data=[day.model_dump() for day in days])


@router.get("/slots/date/{date}", response_model=ApiResponse)
async def get_slots_for_date(
    date: DateParam,
    service: ScheduleService = Depends(get_schedule_service),
):
    """Resolved slots for one calendar date"""
    return ApiResponse(data=service.resolve_date(date).model_dump())


# ============================================================================
# RECURRING SLOTS
# ============================================================================


@router.get("/slots", response_model=ApiResponse)
async def list_slots(service: ScheduleService = Depends(get_schedule_service)):
    """All active recurring slots"""
    slots = service.list_slots()
    return ApiResponse(data=[SlotResponse.model_validate(s).model_dump() for s in slots])


@router.get("/slots/{schedule_id}", response_model=ApiResponse)
async def get_slot(
    schedule_id: ScheduleIdParam,
    service: ScheduleService = Depends(get_schedule_service),
):
    """A recurring slot, including deactivated ones"""
    slot = service.get_slot(schedule_id)
    return ApiResponse(data=SlotResponse.model_validate(slot).model_dump())


@router.post("/slots", response_model=ApiResponse, status_code=201)
async def create_slot(
    data: SlotCreate,
    service: ScheduleService = Depends(get_schedule_service),
):
    """Create a new recurring slot"""
    slot = service.create_slot(data.day_of_week, data.start_time, data.end_time)
    return ApiResponse(
        data=SlotResponse.model_validate(slot).model_dump(),
        message="Recurring slot created successfully",
    )


@router.put("/slots/{schedule_id}", response_model=ApiResponse)
async def update_slot(
    data: TimeRangeUpdate,
    schedule_id: ScheduleIdParam,
    service: ScheduleService = Depends(get_schedule_service),
):
    """Change a recurring pattern; the old slot is retired and a new one returned"""
    slot = service.update_slot(schedule_id, data.start_time, data.end_time)
    return ApiResponse(
        data=SlotResponse.model_validate(slot).model_dump(),
        message="Recurring slot updated successfully",
    )


@router.delete("/slots/{schedule_id}", response_model=ApiResponse)
async def delete_slot(
    schedule_id: ScheduleIdParam,
    service: ScheduleService = Depends(get_schedule_service),
):
    """Delete an entire recurring schedule"""
    service.delete_slot(schedule_id)
    return ApiResponse(message="Recurring schedule deleted successfully")


# ============================================================================
# SINGLE OCCURRENCES
# ============================================================================


@router.get("/slots/{schedule_id}/exceptions", response_model=ApiResponse)
async def list_exceptions(
    schedule_id: ScheduleIdParam,
    service: ScheduleService = Depends(get_schedule_service),
):
    """Overrides stored for a recurring slot"""
    exceptions = service.list_exceptions(schedule_id)
    return ApiResponse(
        data=[ExceptionResponse.model_validate(e).model_dump(mode="json") for e in exceptions]
    )


@router.put("/slots/{schedule_id}/date/{date}", response_model=ApiResponse)
async def update_slot_for_date(
    data: TimeRangeUpdate,
    schedule_id: ScheduleIdParam,
    date: DateParam,
    service: ScheduleService = Depends(get_schedule_service),
):
    """Update a slot for a specific date (creates or updates an exception)"""
    exception = service.modify_occurrence(schedule_id, date, data.start_time, data.end_time)
    return ApiResponse(
        data=ExceptionResponse.model_validate(exception).model_dump(mode="json"),
        message="Slot updated for specific date",
    )


@router.delete("/slots/{schedule_id}/date/{date}", response_model=ApiResponse)
async def delete_slot_for_date(
    schedule_id: ScheduleIdParam,
    date: DateParam,
    service: ScheduleService = Depends(get_schedule_service),
):
    """Delete a slot for a specific date (creates a deletion exception)"""
    service.delete_occurrence(schedule_id, date)
    return ApiResponse(message="Slot deleted for specific date")


@router.delete("/slots/{schedule_id}/date/{date}/override", response_model=ApiResponse)
async def revert_slot_for_date(
    schedule_id: ScheduleIdParam,
    date: DateParam,
    service: ScheduleService = Depends(get_schedule_service),
):
    """Remove the override so the date follows the recurring schedule again"""
    service.revert_occurrence(schedule_id, date)
    return ApiResponse(message="Slot reverted to recurring schedule for this date")


# ============================================================================
# HEALTH
# ============================================================================


@router.get("/health", response_model=ApiResponse)
async def health_check():
    return ApiResponse(message="Scheduler API is running")


@router.get("/health/db")
def database_health(db: Session = Depends(get_db)):
    """Check database connectivity and that both scheduling tables exist"""
    try:
        db.execute(text("SELECT 1"))
        inspector = inspect(db.get_bind())
        return {
            "success": True,
            "message": "Database connection successful",
            "tables": {
                "schedules": inspector.has_table("schedules"),
                "schedule_exceptions": inspector.has_table("schedule_exceptions"),
            },
        }
    except Exception as e:
        logger.error(f"❌ Database health check failed: {e}")
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "error": {"type": "persistence_error", "message": "Database connection failed"},
            },
        )


__all__ = ["router", "get_schedule_service"]
