"""
Compliance API Router — weekly compliance and snapshots.

Endpoints:
- GET /api/compliance — entries + summary for a week (snapshot first unless forceLive)
- GET /api/compliance-snapshot — does the week have a snapshot?
- POST /api/compliance-snapshot — freeze a week (replaces any existing snapshot)
- DELETE /api/compliance-snapshot — drop a week's snapshot, reverting to live
"""

import logging

from fastapi import APIRouter, Depends

from api.dependencies import get_service
from api.response_models import (
    ComplianceResponse,
    SnapshotDeleteResponse,
    SnapshotSaveRequest,
    SnapshotSaveResponse,
    SnapshotStatusResponse,
)
from farmops import farm_calendar
from farmops.compliance import ComplianceQuery, ComplianceService
from farmops.errors import InvalidInput
from farmops.models import ComplianceEntry

logger = logging.getLogger(__name__)

router = APIRouter(tags=["compliance"])


@router.get("/compliance", response_model=ComplianceResponse, response_model_exclude_unset=True)
def get_compliance(
    weekStart: str | None = None,
    farmPhaseIds: str | None = None,
    farm: str | None = None,
    forceLive: bool = False,
    service: ComplianceService = Depends(get_service),
):
    """Week compliance for phase ids (comma separated) or a whole farm."""
    query = ComplianceQuery.build(weekStart, farmPhaseIds, farm=farm, force_live=forceLive)
    return service.weekly_compliance(query).to_dict()


@router.get("/compliance-snapshot", response_model=SnapshotStatusResponse, response_model_exclude_unset=True)
def get_snapshot_status(weekStart: str | None = None, service: ComplianceService = Depends(get_service)):
    info = service.snapshot_status(farm_calendar.parse_week_start(weekStart))
    if info is None:
        return {"exists": False}
    return info.to_dict()


@router.post("/compliance-snapshot", response_model=SnapshotSaveResponse)
def save_snapshot(body: SnapshotSaveRequest, service: ComplianceService = Depends(get_service)):
    week_start = farm_calendar.parse_week_start(body.weekStartDate)

    entries = None
    if body.entries is not None:
        try:
            entries = [ComplianceEntry.from_dict(e.model_dump()) for e in body.entries]
        except (KeyError, ValueError) as e:
            raise InvalidInput(f"Invalid snapshot entry: {e}") from e

    result = service.save_snapshot(week_start, body.savedBy, body.savedByName, entries=entries)
    return result.to_dict()


@router.delete("/compliance-snapshot", response_model=SnapshotDeleteResponse)
def delete_snapshot(weekStart: str | None = None, service: ComplianceService = Depends(get_service)):
    deleted = service.delete_snapshot(farm_calendar.parse_week_start(weekStart))
    return {"success": True, "deleted": deleted}
