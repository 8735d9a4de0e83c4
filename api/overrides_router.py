"""
Phase Overrides API Router — manual add/remove corrections per phase and week.

Endpoints:
- GET /api/phase-overrides — overrides of a week for some phases and one SOP type
- POST /api/phase-overrides — upsert one override (last write wins)
- DELETE /api/phase-overrides — remove one override
"""

import logging

from fastapi import APIRouter, Depends

from api.dependencies import get_repository
from api.response_models import OverrideDeleteResponse, PhaseOverrideModel, PhaseOverrideRequest
from farmops import farm_calendar
from farmops.compliance import parse_phase_ids
from farmops.errors import InvalidInput
from farmops.models import SopType
from farmops.overrides import build_override
from farmops.repository import FarmRepository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/phase-overrides", tags=["overrides"])


def _sop_type(value: str) -> SopType:
    try:
        return SopType(value)
    except ValueError as e:
        raise InvalidInput("sopType must be 'labor' or 'nutri'") from e


@router.get("", response_model=list[PhaseOverrideModel])
def list_overrides(
    farmPhaseIds: str | None = None,
    weekStart: str | None = None,
    sopType: str | None = None,
    repository: FarmRepository = Depends(get_repository),
):
    ids = parse_phase_ids(farmPhaseIds)
    if not ids or not weekStart or not sopType:
        raise InvalidInput("farmPhaseIds, weekStart, and sopType are required")
    week_start = farm_calendar.parse_week_start(weekStart)
    return [o.to_dict() for o in repository.overrides(week_start, ids, _sop_type(sopType))]


@router.post("", response_model=PhaseOverrideModel)
def upsert_override(body: PhaseOverrideRequest, repository: FarmRepository = Depends(get_repository)):
    if not all([body.farmPhaseId, body.sopId, body.sopType, body.action, body.weekStart]):
        raise InvalidInput("farmPhaseId, sopId, sopType, action, and weekStart are required")
    override = build_override(
        body.farmPhaseId,
        body.sopId,
        body.sopType,
        farm_calendar.parse_week_start(body.weekStart),
        body.action,
    )
    return repository.upsert_override(override).to_dict()


@router.delete("", response_model=OverrideDeleteResponse)
def delete_override(
    farmPhaseId: int | None = None,
    sopId: int | None = None,
    sopType: str | None = None,
    weekStart: str | None = None,
    repository: FarmRepository = Depends(get_repository),
):
    if not farmPhaseId or not sopId or not sopType or not weekStart:
        raise InvalidInput("farmPhaseId, sopId, sopType, and weekStart are required")
    deleted = repository.delete_override(
        farmPhaseId, sopId, _sop_type(sopType), farm_calendar.parse_week_start(weekStart)
    )
    if not deleted:
        logger.info("No override to delete for phase %s SOP %s (%s) week %s", farmPhaseId, sopId, sopType, weekStart)
    return {"success": True, "deleted": deleted}
