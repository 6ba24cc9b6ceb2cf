"""Feasibility reporting: roll simulated weeks up into a proposal verdict."""

from __future__ import annotations

from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from typing import Optional, Sequence

import pandas as pd

from staffplan.domain.constraints import (
    FeasibilityConfig,
    clamp_overallocation_cap,
    validate_feasibility_config,
    validate_proposal_terms,
)
from staffplan.domain.errors import FeasibilityError, FeasibilityFailure
from staffplan.domain.models import (
    FeasibilityResult,
    FeasibilitySnapshot,
    ModeComparison,
    RecommendedStaff,
    WeekFeasibility,
)
from staffplan.domain.optimization_modes import (
    COMPARISON_MODES,
    OptimizationMode,
    normalize_optimization_mode,
)
from staffplan.repository.data_repository import DataRepository
from staffplan.services.simulation_service import SimulatedWeek, simulate_weeks
from staffplan.services.snapshot_service import SnapshotService
from staffplan.utils.config import Settings, get_settings
from staffplan.utils.dates import round_hours, working_days
from staffplan.utils.logger import get_logger


logger = get_logger(__name__)

UNDERUTILISED_BELOW = 0.6
OVERALLOCATED_ABOVE = 1.1

WEEK_FRAME_COLUMNS = [
    "week_start",
    "week_end",
    "working_days",
    "required_hours",
    "achievable_hours",
    "shortfall_hours",
    "total_free_capacity",
    "free_capacity_at_cap",
    "staff_used_count",
    "overallocated_staff_count",
    "overallocated_hours",
    "active_project_count",
]


def percent_of(achievable: float, required: float) -> float:
    if required <= 0:
        return 100.0
    return round_hours(achievable / required * 100)


def classify_utilisation(utilisation: Optional[float]) -> str:
    if utilisation is None:
        return "unknown"
    if utilisation < UNDERUTILISED_BELOW:
        return "underutilised"
    if utilisation > OVERALLOCATED_ABOVE:
        return "overallocated"
    return "healthy"


def _worst_week_percent(rows: Sequence[WeekFeasibility]) -> float:
    percents = [
        percent_of(row.achievable_hours, row.required_hours)
        for row in rows
        if row.required_hours > 0
    ]
    return min(percents) if percents else 100.0


def _totals(
    snapshot: FeasibilitySnapshot,
    rows: Sequence[WeekFeasibility],
) -> tuple[float, float]:
    """Return ``(total_required, total_achievable)`` for the report.

    Weekly-rate demand totals the rounded weekly rows; total-hours demand
    reports the proposal's own estimate, or 0 when the window holds no
    working days to spread it over.
    """
    proposal = snapshot.proposal
    if proposal.driven_by_weekly_rate or proposal.estimated_hours is None:
        total_required = round_hours(sum(row.required_hours for row in rows))
    elif working_days(proposal.proposed_start_date, proposal.proposed_end_date) == 0:
        total_required = 0.0
    else:
        total_required = round_hours(float(proposal.estimated_hours))
    total_achievable = round_hours(sum(row.achievable_hours for row in rows))
    return total_required, min(total_achievable, total_required)


def build_recommended_staff(
    snapshot: FeasibilitySnapshot,
    weeks: Sequence[SimulatedWeek],
) -> list[RecommendedStaff]:
    assigned_totals: dict[str, float] = defaultdict(float)
    weeks_assigned: dict[str, int] = defaultdict(int)
    peak_utilisation: dict[str, float] = {}

    for week in weeks:
        for member in week.slices:
            assigned = week.allocation.assigned_hours.get(member.id, 0.0)
            if assigned <= 0:
                continue
            assigned_totals[member.id] += assigned
            weeks_assigned[member.id] += 1
            if member.effective_capacity > 0:
                utilisation = (member.committed_hours + assigned) / member.effective_capacity
                peak_utilisation[member.id] = max(peak_utilisation.get(member.id, 0.0), utilisation)

    staff_by_id = {member.id: member for member in snapshot.staff}
    recommended: list[RecommendedStaff] = []
    for staff_id in sorted(assigned_totals, key=lambda key: (-round_hours(assigned_totals[key]), key)):
        member = staff_by_id[staff_id]
        peak = peak_utilisation.get(staff_id)
        recommended.append(
            RecommendedStaff(
                staff_id=staff_id,
                display_name=member.display_name,
                job_title=member.job_title,
                office_id=member.office_id,
                office_name=member.office_name,
                total_assigned_hours=round_hours(assigned_totals[staff_id]),
                weeks_assigned=weeks_assigned[staff_id],
                peak_utilisation=round(peak, 3) if peak is not None else None,
                utilisation_status=classify_utilisation(peak),
            )
        )
    return recommended


def _run_mode(
    snapshot: FeasibilitySnapshot,
    mode: OptimizationMode,
    config: FeasibilityConfig,
) -> tuple[list[SimulatedWeek], list[WeekFeasibility]]:
    weeks = simulate_weeks(snapshot, mode, config)
    return weeks, [week.to_row() for week in weeks]


def _compare_mode(
    snapshot: FeasibilitySnapshot,
    mode: OptimizationMode,
    config: FeasibilityConfig,
) -> ModeComparison:
    weeks, rows = _run_mode(snapshot, mode, config)
    total_required, total_achievable = _totals(snapshot, rows)
    staff_used = {staff_id for week in weeks for staff_id in week.allocation.allocated_staff_ids}
    return ModeComparison(
        mode=mode,
        label=mode.label,
        total_achievable=total_achievable,
        feasibility_percent=percent_of(total_achievable, total_required),
        staff_used_count=len(staff_used),
        total_overallocated_hours=round_hours(sum(row.overallocated_hours for row in rows)),
        worst_week_percent=_worst_week_percent(rows),
    )


def build_comparisons(
    snapshot: FeasibilitySnapshot,
    primary_mode: OptimizationMode,
    config: FeasibilityConfig,
) -> list[ModeComparison]:
    """Re-run the simulation for each alternate comparison mode."""
    modes = [mode for mode in COMPARISON_MODES if mode != primary_mode]
    if config.comparison_workers > 1 and len(modes) > 1:
        with ThreadPoolExecutor(max_workers=config.comparison_workers) as executor:
            return list(executor.map(lambda mode: _compare_mode(snapshot, mode, config), modes))
    return [_compare_mode(snapshot, mode, config) for mode in modes]


def compute_feasibility(
    snapshot: FeasibilitySnapshot,
    mode: OptimizationMode | str | None = None,
    allow_overallocation: bool = False,
    overallocation_cap_percent: object = 100,
    include_comparisons: bool = False,
    comparison_workers: int = 1,
) -> FeasibilityResult:
    """Simulate the proposal against ``snapshot`` and report the outcome.

    Pure function of its inputs: no storage access, identical inputs give
    identical results.
    """
    validate_proposal_terms(snapshot.proposal)
    resolved_mode = normalize_optimization_mode(
        mode if mode is not None else snapshot.proposal.optimization_mode
    )
    if mode is not None and resolved_mode.value != getattr(mode, "value", mode):
        logger.warning("Unknown optimization mode replaced | requested=%s | applied=%s", mode, resolved_mode.value)

    config = FeasibilityConfig(
        allow_overallocation=bool(allow_overallocation),
        overallocation_cap_percent=clamp_overallocation_cap(overallocation_cap_percent),
        include_comparisons=include_comparisons,
        comparison_workers=comparison_workers,
    )
    validate_feasibility_config(config)

    weeks, rows = _run_mode(snapshot, resolved_mode, config)
    total_required, total_achievable = _totals(snapshot, rows)
    recommended = build_recommended_staff(snapshot, weeks)
    comparisons = build_comparisons(snapshot, resolved_mode, config) if include_comparisons else []

    result = FeasibilityResult(
        proposal_id=snapshot.proposal.id,
        mode=resolved_mode,
        mode_label=resolved_mode.label,
        allow_overallocation=config.allow_overallocation,
        overallocation_cap_percent=config.overallocation_cap_percent,
        weeks=rows,
        total_required=total_required,
        total_achievable=total_achievable,
        feasibility_percent=percent_of(total_achievable, total_required),
        staff_used_count=len(recommended),
        staff_in_scope_count=len(snapshot.staff),
        office_names=snapshot.office_names,
        total_overallocated_hours=round_hours(sum(row.overallocated_hours for row in rows)),
        worst_week_percent=_worst_week_percent(rows),
        recommended_staff=recommended,
        comparisons=comparisons,
    )
    logger.info(
        (
            "Feasibility computed | proposal_id=%s | mode=%s | weeks=%s | required=%.1f | "
            "achievable=%.1f | feasibility_percent=%.1f | staff_used=%s"
        ),
        result.proposal_id,
        result.mode.value,
        len(rows),
        result.total_required,
        result.total_achievable,
        result.feasibility_percent,
        result.staff_used_count,
    )
    return result


def weeks_to_frame(result: FeasibilityResult) -> pd.DataFrame:
    """Weekly series as a DataFrame, one row per simulated week."""
    records = [
        {
            "week_start": row.week_start,
            "week_end": row.week_end,
            "working_days": row.working_days,
            "required_hours": row.required_hours,
            "achievable_hours": row.achievable_hours,
            "shortfall_hours": round_hours(max(0.0, row.required_hours - row.achievable_hours)),
            "total_free_capacity": row.total_free_capacity,
            "free_capacity_at_cap": row.free_capacity_at_cap,
            "staff_used_count": row.staff_used_count,
            "overallocated_staff_count": row.overallocated_staff_count,
            "overallocated_hours": row.overallocated_hours,
            "active_project_count": row.active_project_count,
        }
        for row in result.weeks
    ]
    frame = pd.DataFrame.from_records(records, columns=WEEK_FRAME_COLUMNS)
    if not frame.empty:
        frame["week_start"] = pd.to_datetime(frame["week_start"])
        frame["week_end"] = pd.to_datetime(frame["week_end"])
    return frame


class FeasibilityService:
    """Loads a snapshot once per request and runs the feasibility report on it."""

    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        settings: Optional[Settings] = None,
        snapshot_service: Optional[SnapshotService] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)
        self._snapshot_service = snapshot_service or SnapshotService(
            repository=self._repository,
            settings=self._settings,
        )

    def analyze_proposal(
        self,
        *,
        tenant_id: str,
        proposal_id: str,
        office_ids: Optional[Sequence[str]] = None,
        mode: OptimizationMode | str | None = None,
        allow_overallocation: bool = False,
        overallocation_cap_percent: Optional[int] = None,
        include_comparisons: bool = False,
    ) -> FeasibilityResult:
        snapshot = self._snapshot_service.load_feasibility_snapshot(
            tenant_id=tenant_id,
            proposal_id=proposal_id,
            office_ids=office_ids,
        )
        default_mode = normalize_optimization_mode(self._settings.default_optimization_mode)
        resolved_mode = (
            normalize_optimization_mode(mode, default=default_mode)
            if mode is not None
            else snapshot.proposal.optimization_mode
        )
        cap = (
            overallocation_cap_percent
            if overallocation_cap_percent is not None
            else self._settings.default_overallocation_cap_percent
        )
        return compute_feasibility(
            snapshot,
            mode=resolved_mode,
            allow_overallocation=allow_overallocation,
            overallocation_cap_percent=clamp_overallocation_cap(
                cap,
                minimum=self._settings.overallocation_cap_min_percent,
                maximum=self._settings.overallocation_cap_max_percent,
            ),
            include_comparisons=include_comparisons,
            comparison_workers=self._settings.comparison_workers,
        )

    def evaluate(
        self,
        *,
        tenant_id: str,
        proposal_id: str,
        office_ids: Optional[Sequence[str]] = None,
        mode: OptimizationMode | str | None = None,
        allow_overallocation: bool = False,
        overallocation_cap_percent: Optional[int] = None,
        include_comparisons: bool = False,
    ) -> FeasibilityResult | FeasibilityFailure:
        """Like ``analyze_proposal`` but returns typed failures as values."""
        try:
            return self.analyze_proposal(
                tenant_id=tenant_id,
                proposal_id=proposal_id,
                office_ids=office_ids,
                mode=mode,
                allow_overallocation=allow_overallocation,
                overallocation_cap_percent=overallocation_cap_percent,
                include_comparisons=include_comparisons,
            )
        except FeasibilityError as exc:
            logger.info(
                "Feasibility request rejected | tenant_id=%s | proposal_id=%s | kind=%s | reason=%s",
                tenant_id,
                proposal_id,
                exc.kind.value,
                exc.message,
            )
            return FeasibilityFailure.from_error(exc)
