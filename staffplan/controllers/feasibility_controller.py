"""HTTP controller layer for proposal feasibility analysis."""

from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import Response
from pydantic import BaseModel, Field, field_validator

from staffplan.controllers.dependencies import get_feasibility_service
from staffplan.domain.errors import FeasibilityErrorKind, FeasibilityFailure
from staffplan.domain.models import FeasibilityResult
from staffplan.domain.optimization_modes import (
    COMPARISON_MODES,
    DEFAULT_OPTIMIZATION_MODE,
    OPTIMIZATION_MODE_LABELS,
    OptimizationMode,
)
from staffplan.services.feasibility_service import FeasibilityService, weeks_to_frame
from staffplan.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(tags=["feasibility"])

ERROR_STATUS_CODES: dict[FeasibilityErrorKind, int] = {
    FeasibilityErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    FeasibilityErrorKind.INVALID_PROPOSAL: 422,
    FeasibilityErrorKind.MISSING_ESTIMATE: 422,
    FeasibilityErrorKind.NO_STAFF_IN_SCOPE: status.HTTP_400_BAD_REQUEST,
    FeasibilityErrorKind.INVALID_PARAMETER: status.HTTP_400_BAD_REQUEST,
}


class FeasibilityRequest(BaseModel):
    """Input DTO; the overallocation cap is clamped by the service, not rejected."""

    office_ids: Optional[list[str]] = None
    optimization_mode: Optional[OptimizationMode] = None
    allow_overallocation: bool = False
    overallocation_cap_percent: Optional[int] = None
    include_comparisons: bool = False

    @field_validator("office_ids")
    @classmethod
    def validate_office_ids(cls, value: Optional[list[str]]) -> Optional[list[str]]:
        if value is None:
            return None
        for office_id in value:
            if not office_id.strip():
                raise ValueError("office_ids values must be non-empty")
        return value


class OptimizationModeRow(BaseModel):
    mode: OptimizationMode
    label: str


class OptimizationModesResponse(BaseModel):
    modes: list[OptimizationModeRow]
    default_mode: OptimizationMode
    comparison_modes: list[OptimizationMode]


class WeekFeasibilityResponse(BaseModel):
    week_start: date
    week_end: date
    period_start: date
    period_end: date
    working_days: int = Field(ge=0, le=5)
    required_hours: float = Field(ge=0.0)
    achievable_hours: float = Field(ge=0.0)
    total_free_capacity: float = Field(ge=0.0)
    free_capacity_at_cap: float = Field(ge=0.0)
    staff_used_count: int = Field(ge=0)
    allocated_staff_ids: list[str]
    overallocated_staff_count: int = Field(ge=0)
    overallocated_staff_ids: list[str]
    overallocated_hours: float = Field(ge=0.0)
    active_project_count: int = Field(ge=0)


class RecommendedStaffResponse(BaseModel):
    staff_id: str
    display_name: str
    job_title: Optional[str] = None
    office_id: Optional[str] = None
    office_name: Optional[str] = None
    total_assigned_hours: float = Field(ge=0.0)
    weeks_assigned: int = Field(ge=0)
    peak_utilisation: Optional[float] = None
    utilisation_status: str


class ModeComparisonResponse(BaseModel):
    mode: OptimizationMode
    label: str
    total_achievable: float = Field(ge=0.0)
    feasibility_percent: float = Field(ge=0.0)
    staff_used_count: int = Field(ge=0)
    total_overallocated_hours: float = Field(ge=0.0)
    worst_week_percent: float = Field(ge=0.0)


class FeasibilityResponse(BaseModel):
    proposal_id: str
    mode: OptimizationMode
    mode_label: str
    allow_overallocation: bool
    overallocation_cap_percent: int = Field(ge=100, le=200)
    weeks: list[WeekFeasibilityResponse]
    total_required: float = Field(ge=0.0)
    total_achievable: float = Field(ge=0.0)
    feasibility_percent: float = Field(ge=0.0)
    staff_used_count: int = Field(ge=0)
    staff_in_scope_count: int = Field(ge=0)
    office_names: list[str]
    total_overallocated_hours: float = Field(ge=0.0)
    worst_week_percent: float = Field(ge=0.0)
    recommended_staff: list[RecommendedStaffResponse]
    comparisons: list[ModeComparisonResponse]

    @classmethod
    def from_result(cls, result: FeasibilityResult) -> "FeasibilityResponse":
        return cls(
            proposal_id=result.proposal_id,
            mode=result.mode,
            mode_label=result.mode_label,
            allow_overallocation=result.allow_overallocation,
            overallocation_cap_percent=result.overallocation_cap_percent,
            weeks=[WeekFeasibilityResponse(**vars(row)) for row in result.weeks],
            total_required=result.total_required,
            total_achievable=result.total_achievable,
            feasibility_percent=result.feasibility_percent,
            staff_used_count=result.staff_used_count,
            staff_in_scope_count=result.staff_in_scope_count,
            office_names=result.office_names,
            total_overallocated_hours=result.total_overallocated_hours,
            worst_week_percent=result.worst_week_percent,
            recommended_staff=[
                RecommendedStaffResponse(**vars(item)) for item in result.recommended_staff
            ],
            comparisons=[ModeComparisonResponse(**vars(item)) for item in result.comparisons],
        )


def _raise_for_failure(failure: FeasibilityFailure) -> None:
    raise HTTPException(
        status_code=ERROR_STATUS_CODES.get(failure.kind, status.HTTP_400_BAD_REQUEST),
        detail={"kind": failure.kind.value, "message": failure.message},
    )


def _evaluate_or_raise(
    service: FeasibilityService,
    *,
    tenant_id: str,
    proposal_id: str,
    payload: FeasibilityRequest,
) -> FeasibilityResult:
    try:
        outcome = service.evaluate(
            tenant_id=tenant_id,
            proposal_id=proposal_id,
            office_ids=payload.office_ids,
            mode=payload.optimization_mode,
            allow_overallocation=payload.allow_overallocation,
            overallocation_cap_percent=payload.overallocation_cap_percent,
            include_comparisons=payload.include_comparisons,
        )
    except Exception as exc:  # pragma: no cover
        logger.exception("Unexpected feasibility failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to compute feasibility",
        ) from exc
    if isinstance(outcome, FeasibilityFailure):
        _raise_for_failure(outcome)
    return outcome


@router.get(
    "/optimization_modes",
    response_model=OptimizationModesResponse,
    status_code=status.HTTP_200_OK,
)
async def list_optimization_modes() -> OptimizationModesResponse:
    return OptimizationModesResponse(
        modes=[
            OptimizationModeRow(mode=mode, label=OPTIMIZATION_MODE_LABELS[mode])
            for mode in OptimizationMode
        ],
        default_mode=DEFAULT_OPTIMIZATION_MODE,
        comparison_modes=list(COMPARISON_MODES),
    )


@router.post(
    "/tenants/{tenant_id}/proposals/{proposal_id}/feasibility",
    response_model=FeasibilityResponse,
    status_code=status.HTTP_200_OK,
)
async def compute_proposal_feasibility(
    tenant_id: str,
    proposal_id: str,
    payload: FeasibilityRequest,
    service: FeasibilityService = Depends(get_feasibility_service),
) -> FeasibilityResponse:
    """Simulate the proposal week by week and recommend staff."""
    result = _evaluate_or_raise(
        service,
        tenant_id=tenant_id,
        proposal_id=proposal_id,
        payload=payload,
    )
    return FeasibilityResponse.from_result(result)


@router.get(
    "/tenants/{tenant_id}/proposals/{proposal_id}/feasibility/weeks.csv",
    status_code=status.HTTP_200_OK,
    response_class=Response,
)
async def export_weekly_series(
    tenant_id: str,
    proposal_id: str,
    office_ids: Optional[list[str]] = Query(default=None),
    optimization_mode: Optional[OptimizationMode] = None,
    allow_overallocation: bool = False,
    overallocation_cap_percent: Optional[int] = None,
    service: FeasibilityService = Depends(get_feasibility_service),
) -> Response:
    """Weekly series as CSV for spreadsheet charting."""
    payload = FeasibilityRequest(
        office_ids=office_ids,
        optimization_mode=optimization_mode,
        allow_overallocation=allow_overallocation,
        overallocation_cap_percent=overallocation_cap_percent,
    )
    result = _evaluate_or_raise(
        service,
        tenant_id=tenant_id,
        proposal_id=proposal_id,
        payload=payload,
    )
    frame = weeks_to_frame(result)
    return Response(
        content=frame.to_csv(index=False, date_format="%Y-%m-%d"),
        media_type="text/csv",
        headers={
            "Content-Disposition": f'attachment; filename="{proposal_id}-weeks.csv"',
        },
    )
