"""
Attendance API routes - the daily class register.

Provides endpoints for:
- Viewing one grade's register and counts for a date
- Saving a batch of P/A/L marks
- Marking a whole grade present for a date
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, field_validator

from smartschool.dependencies import get_gateway
from smartschool.records import AttendanceStatus
from smartschool.services.attendance import (
    AttendanceUpdate, DayStats, apply_updates, class_roster, day_stats, mark_all_present, normalize_date,
)
from smartschool.services.gateway import PersistenceGateway
from smartschool.logging_config import get_logger, log_with_context

router = APIRouter()
logger = get_logger("attendance")


# ── Pydantic schemas ─────────────────────────────────────────

class RegisterEntry(BaseModel):
    id: str
    serial_no: str
    name: str
    status: Optional[AttendanceStatus] = None


class RegisterResponse(BaseModel):
    stats: DayStats
    students: List[RegisterEntry]


class AttendanceBatch(BaseModel):
    updates: List[AttendanceUpdate]


class MarkAllRequest(BaseModel):
    grade: str
    date: str

    @field_validator("date")
    @classmethod
    def check_date(cls, value: str) -> str:
        return normalize_date(value)


class BatchResult(BaseModel):
    updated: int
    student_ids: List[str]


def _save_changed(gateway: PersistenceGateway, changed: dict) -> BatchResult:
    """Save each changed record; earlier saves stay applied if a later one fails."""
    failed = [student_id for student_id, record in changed.items() if not gateway.save(record)]
    if failed:
        log_with_context(logger, "ERROR", "Attendance not saved for {} students".format(len(failed)),
                        extra_data={"failed": failed})
        raise HTTPException(status_code=500, detail={
            "message": "Could not save attendance for some students.",
            "failed": failed,
        })
    return BatchResult(updated=len(changed), student_ids=list(changed))


@router.get("/api/attendance", response_model=RegisterResponse)
def get_register(
    grade: str = Query(..., description="Class level"),
    date: str = Query(..., description="ISO date YYYY-MM-DD"),
    gateway: PersistenceGateway = Depends(get_gateway)
):
    """A grade's register for one day; students without a mark show status null."""
    try:
        date = normalize_date(date)
    except ValueError:
        raise HTTPException(status_code=422, detail="date must be an ISO date (YYYY-MM-DD)")

    students = gateway.load_all()
    roster = class_roster(students, grade)
    return RegisterResponse(
        stats=day_stats(students, grade, date),
        students=[
            RegisterEntry(id=s.id, serial_no=s.serial_no, name=s.name, status=s.attendance.get(date))
            for s in roster
        ],
    )


@router.post("/api/attendance", response_model=BatchResult)
def save_attendance(batch: AttendanceBatch, gateway: PersistenceGateway = Depends(get_gateway)):
    """Apply status changes; updates for unknown students are ignored."""
    changed = apply_updates(gateway.load_all(), batch.updates)
    result = _save_changed(gateway, changed)
    log_with_context(logger, "INFO", "Attendance saved for {} students".format(result.updated),
                    extra_data={"updates": len(batch.updates)})
    return result


@router.post("/api/attendance/mark-all-present", response_model=BatchResult)
def mark_grade_present(request: MarkAllRequest, gateway: PersistenceGateway = Depends(get_gateway)):
    changed = mark_all_present(gateway.load_all(), request.grade, request.date)
    result = _save_changed(gateway, changed)
    log_with_context(logger, "INFO",
        "Marked {} students present".format(result.updated),
        context={"grade": request.grade, "date": request.date})
    return result
