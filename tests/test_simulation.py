from __future__ import annotations

from datetime import date

import pytest

from staffplan.domain.constraints import FeasibilityConfig
from staffplan.domain.models import (
    ActiveProject,
    FeasibilitySnapshot,
    LeaveRecord,
    ProjectAssignment,
    Proposal,
    StaffMember,
)
from staffplan.domain.optimization_modes import OptimizationMode
from staffplan.services.simulation_service import build_week_windows, simulate_weeks


def _proposal(
    start: date,
    end: date,
    *,
    hours_per_week: float | None = None,
    total_hours: float | None = None,
) -> Proposal:
    return Proposal(
        id="proposal-1",
        tenant_id="tenant-1",
        name="Pricing review",
        proposed_start_date=start,
        proposed_end_date=end,
        estimated_hours=total_hours,
        estimated_hours_per_week=hours_per_week,
    )


def _snapshot(proposal: Proposal, staff=None, projects=(), assignments=(), leave=()) -> FeasibilitySnapshot:
    return FeasibilitySnapshot(
        tenant_id="tenant-1",
        proposal=proposal,
        staff=tuple(staff or [StaffMember(id="s1", display_name="Sam", weekly_capacity_hours=40, office_id="o1")]),
        projects=tuple(projects),
        assignments=tuple(assignments),
        leave=tuple(leave),
    )


NO_OVERALLOCATION = FeasibilityConfig(allow_overallocation=False, overallocation_cap_percent=100)


def test_full_weeks_have_full_demand_and_capacity():
    snapshot = _snapshot(_proposal(date(2026, 3, 2), date(2026, 3, 15), hours_per_week=40))
    weeks = simulate_weeks(snapshot, OptimizationMode.MAX_FEASIBILITY, NO_OVERALLOCATION)

    rows = [week.to_row() for week in weeks]
    assert [row.week_start for row in rows] == [date(2026, 3, 2), date(2026, 3, 9)]
    assert [row.required_hours for row in rows] == [40.0, 40.0]
    assert [row.achievable_hours for row in rows] == [40.0, 40.0]
    assert [row.total_free_capacity for row in rows] == [40.0, 40.0]
    assert rows[0].allocated_staff_ids == ["s1"]


def test_partial_boundary_weeks_scale_demand_and_capacity_by_working_days():
    snapshot = _snapshot(_proposal(date(2026, 3, 4), date(2026, 3, 10), hours_per_week=50))
    weeks = simulate_weeks(snapshot, OptimizationMode.MAX_FEASIBILITY, NO_OVERALLOCATION)

    rows = [week.to_row() for week in weeks]
    assert [(row.period_start, row.period_end) for row in rows] == [
        (date(2026, 3, 4), date(2026, 3, 8)),
        (date(2026, 3, 9), date(2026, 3, 10)),
    ]
    assert [row.working_days for row in rows] == [3, 2]
    assert [row.required_hours for row in rows] == [30.0, 20.0]
    assert [row.achievable_hours for row in rows] == [24.0, 16.0]
    assert weeks[0].slices[0].effective_capacity == pytest.approx(24)


def test_total_hours_are_spread_by_working_days_not_week_count():
    snapshot = _snapshot(_proposal(date(2026, 3, 4), date(2026, 3, 10), total_hours=100))
    weeks = simulate_weeks(snapshot, OptimizationMode.MAX_FEASIBILITY, NO_OVERALLOCATION)

    assert [week.required_hours for week in weeks] == [pytest.approx(60), pytest.approx(40)]


def test_weekly_rate_takes_precedence_over_total_hours():
    snapshot = _snapshot(
        _proposal(date(2026, 3, 2), date(2026, 3, 8), hours_per_week=10, total_hours=500)
    )
    weeks = simulate_weeks(snapshot, OptimizationMode.MAX_FEASIBILITY, NO_OVERALLOCATION)
    assert weeks[0].required_hours == pytest.approx(10)


def test_weekend_only_proposal_has_no_demand():
    snapshot = _snapshot(_proposal(date(2026, 3, 7), date(2026, 3, 8), total_hours=80))
    weeks = simulate_weeks(snapshot, OptimizationMode.MAX_FEASIBILITY, NO_OVERALLOCATION)
    assert len(weeks) == 1
    assert weeks[0].required_hours == 0
    assert weeks[0].allocation.achievable_hours == 0


def test_existing_assignments_only_count_in_weeks_their_project_overlaps():
    snapshot = _snapshot(
        _proposal(date(2026, 3, 2), date(2026, 3, 15), hours_per_week=40),
        projects=[ActiveProject(id="p1", name="Audit", start_date=date(2026, 2, 1), end_date=date(2026, 3, 6))],
        assignments=[ProjectAssignment(project_id="p1", staff_id="s1", allocation_percentage=50)],
    )
    weeks = simulate_weeks(snapshot, OptimizationMode.MAX_FEASIBILITY, NO_OVERALLOCATION)

    assert weeks[0].slices[0].committed_hours == pytest.approx(20)
    assert weeks[0].allocation.achievable_hours == pytest.approx(20)
    assert weeks[0].active_project_count == 1
    assert weeks[1].slices[0].committed_hours == 0
    assert weeks[1].allocation.achievable_hours == pytest.approx(40)
    assert weeks[1].active_project_count == 0


def test_assignments_to_projects_outside_snapshot_are_ignored():
    snapshot = _snapshot(
        _proposal(date(2026, 3, 2), date(2026, 3, 8), hours_per_week=40),
        assignments=[ProjectAssignment(project_id="ghost", staff_id="s1", allocation_percentage=100)],
    )
    weeks = simulate_weeks(snapshot, OptimizationMode.MAX_FEASIBILITY, NO_OVERALLOCATION)
    assert weeks[0].slices[0].committed_hours == 0


def test_leave_counts_weekdays_only():
    snapshot = _snapshot(
        _proposal(date(2026, 3, 2), date(2026, 3, 15), hours_per_week=40),
        leave=[
            LeaveRecord(staff_id="s1", start_date=date(2026, 3, 7), end_date=date(2026, 3, 8)),
            LeaveRecord(staff_id="s1", start_date=date(2026, 3, 11), end_date=date(2026, 3, 22)),
        ],
    )
    weeks = simulate_weeks(snapshot, OptimizationMode.MAX_FEASIBILITY, NO_OVERALLOCATION)

    assert weeks[0].slices[0].committed_hours == 0
    assert weeks[1].slices[0].committed_hours == pytest.approx(24)
    assert weeks[1].slices[0].free_at_100 == pytest.approx(16)
    assert weeks[1].allocation.achievable_hours == pytest.approx(16)


def test_leave_in_a_boundary_week_counts_from_monday_not_proposal_start():
    proposal = _proposal(date(2026, 3, 4), date(2026, 3, 10), hours_per_week=40)
    overlapping = _snapshot(
        proposal,
        leave=[LeaveRecord(staff_id="s1", start_date=date(2026, 3, 2), end_date=date(2026, 3, 4))],
    )
    first, second = simulate_weeks(overlapping, OptimizationMode.MAX_FEASIBILITY, NO_OVERALLOCATION)

    assert first.slices[0].effective_capacity == pytest.approx(24)
    assert first.slices[0].committed_hours == pytest.approx(24)
    assert first.slices[0].free_at_100 == 0
    assert first.allocation.achievable_hours == 0
    assert second.slices[0].committed_hours == 0
    assert second.allocation.achievable_hours == pytest.approx(16)

    before_start = _snapshot(
        proposal,
        leave=[LeaveRecord(staff_id="s1", start_date=date(2026, 3, 2), end_date=date(2026, 3, 3))],
    )
    week = simulate_weeks(before_start, OptimizationMode.MAX_FEASIBILITY, NO_OVERALLOCATION)[0]
    assert week.slices[0].committed_hours == pytest.approx(16)
    assert week.slices[0].free_at_100 == pytest.approx(8)


def test_overallocation_cap_opens_headroom_for_fully_booked_staff():
    snapshot = _snapshot(
        _proposal(date(2026, 3, 2), date(2026, 3, 8), hours_per_week=30),
        projects=[ActiveProject(id="p1", name="Audit", start_date=date(2026, 1, 1), end_date=date(2026, 12, 31))],
        assignments=[ProjectAssignment(project_id="p1", staff_id="s1", allocation_percentage=100)],
    )

    blocked = simulate_weeks(snapshot, OptimizationMode.MAX_FEASIBILITY, NO_OVERALLOCATION)
    assert blocked[0].allocation.achievable_hours == 0

    stretched = simulate_weeks(
        snapshot,
        OptimizationMode.MAX_FEASIBILITY,
        FeasibilityConfig(allow_overallocation=True, overallocation_cap_percent=150),
    )
    week = stretched[0]
    assert week.slices[0].free_at_100 == 0
    assert week.slices[0].free_at_cap == pytest.approx(20)
    assert week.target_hours == pytest.approx(20)
    assert week.allocation.achievable_hours == pytest.approx(20)
    assert week.to_row().overallocated_hours == 20.0
    assert week.to_row().overallocated_staff_ids == ["s1"]


def test_slices_respect_capacity_invariants():
    staff = [
        StaffMember(id="s1", display_name="Sam", weekly_capacity_hours=40, office_id="o1"),
        StaffMember(id="s2", display_name="Ria", weekly_capacity_hours=30, office_id="o2"),
        StaffMember(id="s3", display_name="Lee", weekly_capacity_hours=20, office_id=None),
    ]
    snapshot = _snapshot(
        _proposal(date(2026, 3, 4), date(2026, 4, 3), hours_per_week=60),
        staff=staff,
        projects=[ActiveProject(id="p1", name="Audit", start_date=date(2026, 3, 10), end_date=date(2026, 3, 20))],
        assignments=[
            ProjectAssignment(project_id="p1", staff_id="s1", allocation_percentage=60),
            ProjectAssignment(project_id="p1", staff_id="s2", allocation_percentage=120),
        ],
        leave=[LeaveRecord(staff_id="s3", start_date=date(2026, 3, 16), end_date=date(2026, 3, 18))],
    )
    config = FeasibilityConfig(allow_overallocation=True, overallocation_cap_percent=130)

    for week in simulate_weeks(snapshot, OptimizationMode.MIN_OVERALLOCATION, config):
        for item in week.slices:
            assert 0 <= item.free_at_100 <= item.free_at_cap
            assert item.free_at_100 == pytest.approx(max(0.0, item.effective_capacity - item.committed_hours))
        assert week.allocation.achievable_hours <= week.required_hours + 1e-9


def test_each_week_gets_fresh_slices():
    snapshot = _snapshot(_proposal(date(2026, 3, 2), date(2026, 3, 15), hours_per_week=40))
    first, second = simulate_weeks(snapshot, OptimizationMode.MAX_FEASIBILITY, NO_OVERALLOCATION)
    assert first.slices[0] is not second.slices[0]


def test_build_week_windows_matches_proposal_bounds():
    windows = build_week_windows(date(2026, 3, 6), date(2026, 3, 9))
    assert [(window.period_start, window.period_end, window.working_days) for window in windows] == [
        (date(2026, 3, 6), date(2026, 3, 8), 1),
        (date(2026, 3, 9), date(2026, 3, 9), 1),
    ]
