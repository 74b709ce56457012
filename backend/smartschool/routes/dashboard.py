"""
Dashboard API routes - enrollment and performance overview.
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from smartschool.config import Settings, get_settings
from smartschool.dependencies import get_gateway, get_insight_gateway
from smartschool.services.dashboard import DashboardStats, build_stats
from smartschool.services.gateway import PersistenceGateway
from smartschool.services.insight import InsightGateway

router = APIRouter()


class SchoolSummary(BaseModel):
    session_year: str
    summary: str


@router.get("/api/dashboard", response_model=DashboardStats)
def get_dashboard(gateway: PersistenceGateway = Depends(get_gateway),
                  settings: Settings = Depends(get_settings)):
    return build_stats(gateway.load_all(), settings.school_name, settings.session_year)


@router.post("/api/dashboard/summary", response_model=SchoolSummary)
def summarize_school(gateway: PersistenceGateway = Depends(get_gateway),
                     settings: Settings = Depends(get_settings),
                     insight: InsightGateway = Depends(get_insight_gateway)):
    """AI-written two-sentence summary; falls back to a fixed line on failure."""
    text = insight.summarize_school(gateway.load_all(), settings.session_year)
    return SchoolSummary(session_year=settings.session_year, summary=text)
