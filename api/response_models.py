"""
Pydantic request/response models for the compliance API.

Field names are the camelCase wire names the dashboard already consumes,
so the models double as the OpenAPI contract.

Usage:
    from api.response_models import ComplianceResponse

    @router.get("/compliance", response_model=ComplianceResponse, response_model_exclude_unset=True)
    def get_compliance(...): ...
"""

from typing import Any

from pydantic import BaseModel, Field

# ==== Compliance ====


class ComplianceEntryModel(BaseModel):
    """One scheduled task and its status."""

    type: str = Field(description="labor, nutri or harvest")
    farmPhaseId: int
    phaseId: str = ""
    cropCode: str = ""
    farm: str = ""
    task: str
    dayOfWeek: int = Field(ge=0, le=6, description="0=Monday .. 6=Sunday")
    status: str = Field(description="done, missed, pending or upcoming")


class ComplianceSummaryModel(BaseModel):
    total: int
    done: int
    missed: int
    pending: int
    upcoming: int
    complianceRate: int | None = Field(description="Percent of done over done+missed; null when nothing is countable")


class ComplianceResponse(BaseModel):
    entries: list[ComplianceEntryModel] = Field(default_factory=list)
    summary: ComplianceSummaryModel
    source: str = Field(description="live or snapshot")
    snapshotAt: str | None = Field(default=None, description="Present only when source=snapshot")


# ==== Snapshots ====


class SnapshotStatusResponse(BaseModel):
    """Metadata probe. Only `exists` is present when there is no snapshot."""

    exists: bool
    snapshotAt: str | None = None
    savedByName: str | None = None
    summary: ComplianceSummaryModel | None = None


class SnapshotSaveRequest(BaseModel):
    """Entries are optional; without them the week is computed live and frozen."""

    weekStartDate: str
    savedBy: str | int | None = None
    savedByName: str | None = None
    entries: list[ComplianceEntryModel] | None = None


class SnapshotSaveResponse(BaseModel):
    success: bool
    count: int
    snapshotAt: str


class SnapshotDeleteResponse(BaseModel):
    success: bool
    deleted: int = Field(description="Rows removed; 0 when the week had no snapshot")


# ==== Phase overrides ====


class PhaseOverrideModel(BaseModel):
    farmPhaseId: int
    sopId: int
    sopType: str
    weekStart: str
    action: str


class PhaseOverrideRequest(BaseModel):
    """Loosely typed so missing or malformed fields surface as one 400 message."""

    farmPhaseId: Any = None
    sopId: Any = None
    sopType: str | None = None
    action: str | None = None
    weekStart: str | None = None


class OverrideDeleteResponse(BaseModel):
    success: bool
    deleted: bool


# ==== Daily summary ====


class LaborLineModel(BaseModel):
    phase: str
    task: str
    mandays: float
    costPerDay: float
    totalCost: float


class NutriLineModel(BaseModel):
    phase: str
    product: str
    activeIngredient: str
    quantity: float
    unitPrice: float
    totalCost: float


class FarmDaySummaryModel(BaseModel):
    farm: str
    totalAcreage: float
    phaseCount: int
    laborTasks: list[LaborLineModel] = Field(default_factory=list)
    nutriTasks: list[NutriLineModel] = Field(default_factory=list)
    totalLaborMandays: float
    totalLaborCost: float
    totalNutriCost: float


class DailyTotalsModel(BaseModel):
    laborMandays: float
    laborCost: float
    nutriCost: float


class DailySummaryResponse(BaseModel):
    date: str
    dayName: str
    weekNumber: int
    weekStart: str
    farms: list[FarmDaySummaryModel] = Field(default_factory=list)
    totals: DailyTotalsModel


# ==== Errors / health ====


class ErrorResponse(BaseModel):
    error: str


class HealthResponse(BaseModel):
    status: str = Field(description="healthy, degraded or unhealthy")
    timestamp: str
    checks: list[dict[str, Any]] = Field(default_factory=list)
