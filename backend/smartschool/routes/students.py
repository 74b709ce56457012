"""
Student API routes - roster CRUD, marks entry, insights and transcripts.

Provides endpoints for:
- Listing, adding, editing and deleting students
- Committing a semester's marks draft and viewing the result card
- Generating the AI report-card comment for a semester
- The weighted annual transcript and attendance summary
"""

import time
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query
from pydantic import BaseModel, Field

from smartschool.config import Settings, get_settings
from smartschool.dependencies import (
    get_gateway, get_insight_gateway, load_student_or_404, save_or_500,
)
from smartschool.records import Gender, Grade, MarksDraft, StudentRecord
from smartschool.services.attendance import AttendanceSummary, summarize
from smartschool.services.gateway import PersistenceGateway
from smartschool.services.insight import InsightGateway
from smartschool.services.transcript import SemesterView, Transcript, compute_transcript, semester_view
from smartschool.logging_config import get_logger, log_with_context

router = APIRouter()
logger = get_logger("http")


# ── Pydantic schemas ─────────────────────────────────────────

class StudentCreate(BaseModel):
    """Bio-data for a new student. Grade and gender must be from the fixed lists."""
    serial_no: str = Field(..., description="Class roll number")
    registration_no: str = Field("", description="Admission/registration number")
    name: str = Field(..., min_length=1)
    father_name: str = ""
    gender: Gender = Gender.MALE
    grade: Grade = Grade.ONE
    dob: str = ""
    form_b: str = ""
    contact: str = ""


class StudentUpdate(BaseModel):
    """Profile edit; only the fields sent are changed."""
    serial_no: Optional[str] = None
    registration_no: Optional[str] = None
    name: Optional[str] = None
    father_name: Optional[str] = None
    gender: Optional[Gender] = None
    grade: Optional[Grade] = None
    dob: Optional[str] = None
    form_b: Optional[str] = None
    contact: Optional[str] = None


class InsightResponse(BaseModel):
    student_id: str
    semester: int
    generated_insight: str


@router.get("/api/students", response_model=List[StudentRecord])
def list_students(
    grade: Optional[str] = Query(None, description="Filter by class level"),
    search: Optional[str] = Query(None, description="Search name or serial number"),
    gateway: PersistenceGateway = Depends(get_gateway)
):
    """List students, optionally filtered by grade and a name/roll search."""
    start_time = time.time()
    students = gateway.load_all()

    if grade:
        students = [s for s in students if s.grade == grade]
    if search:
        term = search.strip().lower()
        students = [s for s in students if term in s.name.lower() or term in s.serial_no.lower()]

    duration_ms = (time.time() - start_time) * 1000
    log_with_context(logger, "INFO", "Listed {} students".format(len(students)),
                    extra_data={"duration_ms": round(duration_ms, 2)})
    return students


@router.post("/api/students", response_model=StudentRecord, status_code=201)
def add_student(payload: StudentCreate, gateway: PersistenceGateway = Depends(get_gateway)):
    """Add a student with a generated id and empty results/attendance."""
    record = StudentRecord.new(**payload.model_dump(mode="json"))
    save_or_500(gateway, record, "add")
    log_with_context(logger, "INFO", "Student added: {}".format(record.name),
                    context={"student_id": record.id})
    return record


@router.get("/api/students/{student_id}", response_model=StudentRecord)
def get_student(student_id: str, gateway: PersistenceGateway = Depends(get_gateway)):
    return load_student_or_404(gateway, student_id)


@router.put("/api/students/{student_id}", response_model=StudentRecord)
def update_student(student_id: str, payload: StudentUpdate,
    gateway: PersistenceGateway = Depends(get_gateway)
):
    """Edit profile fields; marks and attendance are left as they are."""
    record = load_student_or_404(gateway, student_id)
    changes = {k: v for k, v in payload.model_dump(mode="json", exclude_unset=True).items() if v is not None}
    updated = record.with_fields(**changes)
    save_or_500(gateway, updated, "update")
    log_with_context(logger, "INFO", "Student updated",
                    context={"student_id": student_id}, extra_data={"fields": sorted(changes)})
    return updated


@router.delete("/api/students/{student_id}")
def delete_student(student_id: str, gateway: PersistenceGateway = Depends(get_gateway)):
    """Hard delete a student with all results and attendance."""
    load_student_or_404(gateway, student_id)
    if not gateway.delete(student_id):
        raise HTTPException(status_code=500, detail="Could not delete student. No changes were saved.")
    return {"message": "Student deleted", "id": student_id}


@router.put("/api/students/{student_id}/semesters/{semester}", response_model=StudentRecord)
def save_marks(
    student_id: str,
    draft: MarksDraft,
    semester: int = Path(..., ge=1, le=2, description="Semester number (1 or 2)"),
    gateway: PersistenceGateway = Depends(get_gateway)
):
    """
    Commit a marks draft, replacing the semester's marks entirely.

    Blank entries are saved as 0; a non-numeric entry rejects the whole draft.
    """
    record = load_student_or_404(gateway, student_id)
    try:
        result = draft.commit(semester, previous=record.results.get(semester))
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    updated = save_or_500(gateway, record.with_result(result), "save marks for")
    log_with_context(logger, "INFO", "Semester {} marks saved".format(semester),
                    context={"student_id": student_id, "semester": semester},
                    extra_data={"total": result.total()})
    return updated


@router.get("/api/students/{student_id}/semesters/{semester}", response_model=SemesterView)
def get_semester(
    student_id: str,
    semester: int = Path(..., ge=1, le=2, description="Semester number (1 or 2)"),
    gateway: PersistenceGateway = Depends(get_gateway)
):
    record = load_student_or_404(gateway, student_id)
    view = semester_view(record, semester)
    if view is None:
        raise HTTPException(status_code=404, detail="No results uploaded for semester {}".format(semester))
    return view


@router.post("/api/students/{student_id}/semesters/{semester}/insight", response_model=InsightResponse)
def generate_insight(
    student_id: str,
    semester: int = Path(..., ge=1, le=2, description="Semester number (1 or 2)"),
    gateway: PersistenceGateway = Depends(get_gateway),
    insight: InsightGateway = Depends(get_insight_gateway)
):
    """Generate the report-card comment and store it on the semester result."""
    record = load_student_or_404(gateway, student_id)
    result = record.results.get(semester)
    if result is None:
        raise HTTPException(status_code=400, detail="Please save marks before generating insight.")

    text = insight.generate(record, semester)
    save_or_500(gateway, record.with_result(result.with_insight(text)), "store insight for")
    return InsightResponse(student_id=student_id, semester=semester, generated_insight=text)


@router.get("/api/students/{student_id}/transcript", response_model=Transcript)
def get_transcript(student_id: str, gateway: PersistenceGateway = Depends(get_gateway),
                   settings: Settings = Depends(get_settings)):
    """Annual transcript: semester 1 weighted 45%, semester 2 weighted 55%."""
    record = load_student_or_404(gateway, student_id)
    return compute_transcript(record, academic_year=settings.session_year)


@router.get("/api/students/{student_id}/attendance", response_model=AttendanceSummary)
def get_attendance_summary(
    student_id: str,
    start: Optional[str] = Query(None, description="First ISO date to include"),
    end: Optional[str] = Query(None, description="Last ISO date to include"),
    gateway: PersistenceGateway = Depends(get_gateway)
):
    record = load_student_or_404(gateway, student_id)
    try:
        return summarize(record, start=start, end=end)
    except ValueError:
        raise HTTPException(status_code=422, detail="start and end must be ISO dates (YYYY-MM-DD)")
