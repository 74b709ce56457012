"""
FastAPI dependencies wiring sessions and settings into the gateways.
"""

from fastapi import Depends, HTTPException
from sqlalchemy.orm import Session

from smartschool.config import Settings, get_settings
from smartschool.database import get_db
from smartschool.records import StudentRecord
from smartschool.services.gateway import PersistenceGateway
from smartschool.services.insight import InsightGateway


def get_gateway(db: Session = Depends(get_db)) -> PersistenceGateway:
    return PersistenceGateway(db)


def get_insight_gateway(settings: Settings = Depends(get_settings)) -> InsightGateway:
    return InsightGateway(
        api_key=settings.gemini_api_key,
        model=settings.gemini_model,
        timeout=settings.insight_timeout_seconds,
        school_name=settings.school_name,
    )


def load_student_or_404(gateway: PersistenceGateway, student_id: str) -> StudentRecord:
    record = gateway.get(student_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Student not found")
    return record


def save_or_500(gateway: PersistenceGateway, record: StudentRecord, action: str) -> StudentRecord:
    """Save a single record; a failure is reported to the caller as HTTP 500."""
    if not gateway.save(record):
        raise HTTPException(status_code=500, detail="Could not {} student. No changes were saved.".format(action))
    return record
