"""
Reports API Router.

Endpoints:
- GET /api/reports/daily-summary — per-farm labor and nutrition plan for one day
"""

from fastapi import APIRouter, Depends

from api.dependencies import get_service
from api.response_models import DailySummaryResponse
from farmops import farm_calendar
from farmops.compliance import ComplianceService

router = APIRouter(prefix="/reports", tags=["reports"])


@router.get("/daily-summary", response_model=DailySummaryResponse)
def daily_summary(date: str | None = None, service: ComplianceService = Depends(get_service)):
    """Defaults to today in farm-local time."""
    target = farm_calendar.parse_calendar_date(date) if date else None
    return service.daily_summary(target).to_dict()
