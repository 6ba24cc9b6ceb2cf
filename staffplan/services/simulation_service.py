"""Week-by-week capacity simulation for a proposed project.

The simulator is a pure function of a ``FeasibilitySnapshot`` and run
parameters: it never touches storage, and every week is built from fresh,
immutable capacity slices so weeks do not share running totals.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from typing import Optional

from staffplan.domain.constraints import FeasibilityConfig
from staffplan.domain.models import (
    AllocationResult,
    FeasibilitySnapshot,
    LeaveRecord,
    ProjectAssignment,
    StaffCapacitySlice,
    StaffMember,
    WeekFeasibility,
)
from staffplan.domain.optimization_modes import OptimizationMode
from staffplan.services.allocation_service import allocate_for_mode
from staffplan.utils.dates import (
    WORKING_DAYS_PER_WEEK,
    clamp_range,
    friday_of,
    iter_weeks,
    ranges_overlap,
    round_hours,
    week_fraction,
    working_days,
)
from staffplan.utils.logger import get_logger


logger = get_logger(__name__)


@dataclass(frozen=True)
class WeekWindow:
    week_start: date
    week_end: date
    period_start: date
    period_end: date
    working_days: int

    @property
    def fraction(self) -> float:
        return week_fraction(self.working_days)


@dataclass(frozen=True)
class SimulatedWeek:
    """Unrounded simulation output for one week, kept for reporting."""

    window: WeekWindow
    required_hours: float
    target_hours: float
    slices: tuple[StaffCapacitySlice, ...]
    allocation: AllocationResult
    free_capacity_at_100: float
    free_capacity_at_cap: float
    active_project_count: int

    def to_row(self) -> WeekFeasibility:
        return WeekFeasibility(
            week_start=self.window.week_start,
            week_end=self.window.week_end,
            period_start=self.window.period_start,
            period_end=self.window.period_end,
            working_days=self.window.working_days,
            required_hours=round_hours(self.required_hours),
            achievable_hours=round_hours(self.allocation.achievable_hours),
            total_free_capacity=round_hours(self.free_capacity_at_100),
            free_capacity_at_cap=round_hours(self.free_capacity_at_cap),
            staff_used_count=self.allocation.allocated_staff_count,
            allocated_staff_ids=list(self.allocation.allocated_staff_ids),
            overallocated_staff_count=len(self.allocation.overallocated_staff_ids),
            overallocated_staff_ids=list(self.allocation.overallocated_staff_ids),
            overallocated_hours=round_hours(self.allocation.overallocated_hours),
            active_project_count=self.active_project_count,
        )


def build_week_windows(start: date, end: date) -> list[WeekWindow]:
    windows: list[WeekWindow] = []
    for week_start, week_end in iter_weeks(start, end):
        clamped = clamp_range(week_start, week_end, start, end)
        if clamped is None:
            continue
        period_start, period_end = clamped
        windows.append(
            WeekWindow(
                week_start=week_start,
                week_end=week_end,
                period_start=period_start,
                period_end=period_end,
                working_days=working_days(period_start, period_end),
            )
        )
    return windows


def required_hours_for_week(
    snapshot: FeasibilitySnapshot,
    window: WeekWindow,
    total_working_days: int,
) -> float:
    """Demand for one week.

    A weekly rate is scaled by the week's working-day fraction; a total
    estimate is spread by working days across the whole proposal.
    """
    proposal = snapshot.proposal
    if proposal.estimated_hours_per_week is not None:
        return float(proposal.estimated_hours_per_week) * window.fraction
    if total_working_days <= 0 or proposal.estimated_hours is None:
        return 0.0
    return float(proposal.estimated_hours) * window.working_days / total_working_days


def leave_days_in_window(leave: list[LeaveRecord], window: WeekWindow) -> int:
    """Working days of leave in the week's Monday-Friday span.

    Leave is not clamped to the proposal bounds: a boundary week loses the
    whole of any leave taken that week.
    """
    friday = friday_of(window.week_start)
    days = 0
    for record in leave:
        overlap = clamp_range(record.start_date, record.end_date, window.week_start, friday)
        if overlap is not None:
            days += working_days(*overlap)
    return days


def build_capacity_slice(
    member: StaffMember,
    window: WeekWindow,
    assignments: list[ProjectAssignment],
    project_overlaps_week: dict[str, bool],
    leave: list[LeaveRecord],
    config: FeasibilityConfig,
) -> StaffCapacitySlice:
    weekly_capacity = float(member.weekly_capacity_hours)
    fraction = window.fraction
    effective_capacity = weekly_capacity * fraction

    allocated_hours = 0.0
    for assignment in assignments:
        if not project_overlaps_week.get(assignment.project_id, False):
            continue
        allocated_hours += (float(assignment.allocation_percentage) / 100) * weekly_capacity * fraction

    leave_hours = leave_days_in_window(leave, window) * weekly_capacity / WORKING_DAYS_PER_WEEK
    committed_hours = allocated_hours + leave_hours

    max_allowed_hours = effective_capacity * config.capacity_multiplier
    return StaffCapacitySlice(
        id=member.id,
        office_id=member.office_id,
        free_at_100=max(0.0, effective_capacity - committed_hours),
        free_at_cap=max(0.0, max_allowed_hours - committed_hours),
        effective_capacity=effective_capacity,
        committed_hours=committed_hours,
    )


def simulate_weeks(
    snapshot: FeasibilitySnapshot,
    mode: OptimizationMode,
    config: FeasibilityConfig,
) -> list[SimulatedWeek]:
    """Simulate every week of the proposal window and allocate its demand."""
    proposal = snapshot.proposal
    start: Optional[date] = proposal.proposed_start_date
    end: Optional[date] = proposal.proposed_end_date
    if start is None or end is None:
        return []

    windows = build_week_windows(start, end)
    total_working_days = working_days(start, end)

    staff = sorted(snapshot.staff, key=lambda member: member.id)
    assignments_by_staff: dict[str, list[ProjectAssignment]] = defaultdict(list)
    for assignment in snapshot.assignments:
        assignments_by_staff[assignment.staff_id].append(assignment)
    leave_by_staff: dict[str, list[LeaveRecord]] = defaultdict(list)
    for record in snapshot.leave:
        leave_by_staff[record.staff_id].append(record)

    simulated: list[SimulatedWeek] = []
    for window in windows:
        project_overlaps_week = {
            project.id: ranges_overlap(
                project.start_date,
                project.end_date,
                window.week_start,
                window.week_end,
            )
            for project in snapshot.projects
        }
        slices = tuple(
            build_capacity_slice(
                member,
                window,
                assignments_by_staff.get(member.id, []),
                project_overlaps_week,
                leave_by_staff.get(member.id, []),
                config,
            )
            for member in staff
        )

        required_hours = required_hours_for_week(snapshot, window, total_working_days)
        free_capacity_at_100 = sum(item.free_at_100 for item in slices)
        free_capacity_at_cap = sum(item.free_at_cap for item in slices)
        capped_capacity = (
            free_capacity_at_cap if config.allow_overallocation else free_capacity_at_100
        )
        target_hours = min(required_hours, capped_capacity)

        allocation = allocate_for_mode(
            mode,
            slices,
            target_hours,
            config.allow_overallocation,
        )
        simulated.append(
            SimulatedWeek(
                window=window,
                required_hours=required_hours,
                target_hours=target_hours,
                slices=slices,
                allocation=allocation,
                free_capacity_at_100=free_capacity_at_100,
                free_capacity_at_cap=free_capacity_at_cap,
                active_project_count=sum(1 for overlaps in project_overlaps_week.values() if overlaps),
            )
        )

    logger.debug(
        "Simulation completed | proposal_id=%s | mode=%s | weeks=%s | staff=%s",
        proposal.id,
        mode.value,
        len(simulated),
        len(staff),
    )
    return simulated
