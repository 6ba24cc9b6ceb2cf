"""Domain models for proposal feasibility simulation and staff allocation."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from staffplan.domain.optimization_modes import DEFAULT_OPTIMIZATION_MODE, OptimizationMode


PROPOSAL_STATUSES = ("draft", "submitted", "won", "lost")


@dataclass(frozen=True)
class Proposal:
    id: str
    tenant_id: str
    name: str
    proposed_start_date: Optional[date]
    proposed_end_date: Optional[date]
    estimated_hours: Optional[float]
    estimated_hours_per_week: Optional[float]
    office_scope: Optional[tuple[str, ...]] = None
    optimization_mode: OptimizationMode = DEFAULT_OPTIMIZATION_MODE
    status: str = "draft"
    client_name: Optional[str] = None
    notes: Optional[str] = None

    @property
    def driven_by_weekly_rate(self) -> bool:
        return self.estimated_hours_per_week is not None


@dataclass(frozen=True)
class StaffMember:
    id: str
    display_name: str
    weekly_capacity_hours: float
    office_id: Optional[str] = None
    office_name: Optional[str] = None
    job_title: Optional[str] = None


@dataclass(frozen=True)
class ActiveProject:
    id: str
    name: str
    start_date: date
    end_date: date


@dataclass(frozen=True)
class ProjectAssignment:
    project_id: str
    staff_id: str
    allocation_percentage: float


@dataclass(frozen=True)
class LeaveRecord:
    staff_id: str
    start_date: date
    end_date: date
    leave_type: str = "annual"


@dataclass(frozen=True)
class FeasibilitySnapshot:
    """Everything one feasibility computation reads, loaded once up front."""

    tenant_id: str
    proposal: Proposal
    staff: tuple[StaffMember, ...]
    projects: tuple[ActiveProject, ...] = ()
    assignments: tuple[ProjectAssignment, ...] = ()
    leave: tuple[LeaveRecord, ...] = ()

    @property
    def office_names(self) -> list[str]:
        return sorted({member.office_name for member in self.staff if member.office_name})


@dataclass(frozen=True)
class StaffCapacitySlice:
    """One staff member's headroom for a single simulated week."""

    id: str
    office_id: Optional[str]
    free_at_100: float
    free_at_cap: float
    effective_capacity: float
    committed_hours: float


@dataclass(frozen=True)
class AllocationResult:
    achievable_hours: float
    allocated_staff_count: int
    allocated_staff_ids: list[str]
    overallocated_staff_ids: list[str]
    overallocated_hours: float
    assigned_hours: dict[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class WeekFeasibility:
    week_start: date
    week_end: date
    period_start: date
    period_end: date
    working_days: int
    required_hours: float
    achievable_hours: float
    total_free_capacity: float
    free_capacity_at_cap: float
    staff_used_count: int
    allocated_staff_ids: list[str]
    overallocated_staff_count: int
    overallocated_staff_ids: list[str]
    overallocated_hours: float
    active_project_count: int


@dataclass(frozen=True)
class RecommendedStaff:
    staff_id: str
    display_name: str
    job_title: Optional[str]
    office_id: Optional[str]
    office_name: Optional[str]
    total_assigned_hours: float
    weeks_assigned: int
    peak_utilisation: Optional[float]
    utilisation_status: str


@dataclass(frozen=True)
class ModeComparison:
    mode: OptimizationMode
    label: str
    total_achievable: float
    feasibility_percent: float
    staff_used_count: int
    total_overallocated_hours: float
    worst_week_percent: float


@dataclass(frozen=True)
class FeasibilityResult:
    proposal_id: str
    mode: OptimizationMode
    mode_label: str
    allow_overallocation: bool
    overallocation_cap_percent: int
    weeks: list[WeekFeasibility]
    total_required: float
    total_achievable: float
    feasibility_percent: float
    staff_used_count: int
    staff_in_scope_count: int
    office_names: list[str]
    total_overallocated_hours: float
    worst_week_percent: float
    recommended_staff: list[RecommendedStaff]
    comparisons: list[ModeComparison] = field(default_factory=list)
