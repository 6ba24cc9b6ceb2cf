"""Per-week staff allocation strategies for proposal feasibility."""

from __future__ import annotations

from collections import defaultdict
from typing import Callable, Iterable, Optional, Sequence

from staffplan.domain.models import AllocationResult, StaffCapacitySlice
from staffplan.domain.optimization_modes import OptimizationMode, normalize_optimization_mode
from staffplan.utils.logger import get_logger


logger = get_logger(__name__)

EPSILON = 1e-9
CONSERVATIVE_OVERALLOCATION_SHARE = 0.5

Strategy = Callable[[Sequence[StaffCapacitySlice], float, bool], dict[str, float]]


def _by_biggest_room(member: StaffCapacitySlice) -> tuple[float, str]:
    return (-member.free_at_cap, member.id)


def _by_room_before_overallocation(member: StaffCapacitySlice) -> tuple[float, float, str]:
    return (-member.free_at_100, -member.free_at_cap, member.id)


def select_preferred_office(pool: Iterable[StaffCapacitySlice]) -> Optional[str]:
    """Office with the most room at cap; ties go to the lowest office id."""
    office_totals: dict[str, float] = defaultdict(float)
    for member in pool:
        if member.office_id is None:
            continue
        office_totals[member.office_id] += member.free_at_cap
    if not office_totals:
        return None
    return min(office_totals, key=lambda office_id: (-office_totals[office_id], office_id))


def _fill_greedily(
    candidates: Iterable[StaffCapacitySlice],
    remaining: float,
    assigned: dict[str, float],
    room_for: Callable[[StaffCapacitySlice], float],
) -> float:
    """Assign hours to ``candidates`` in order and return what is still unmet."""
    for candidate in candidates:
        if remaining <= EPSILON:
            break
        take = min(max(0.0, room_for(candidate)), remaining)
        if take > 0:
            assigned[candidate.id] = assigned.get(candidate.id, 0.0) + take
            remaining -= take
    return remaining


def _room_left_at_cap(assigned: dict[str, float]) -> Callable[[StaffCapacitySlice], float]:
    return lambda member: member.free_at_cap - assigned.get(member.id, 0.0)


def allocate_biggest_room_first(
    pool: Sequence[StaffCapacitySlice],
    target_hours: float,
    allow_overallocation: bool,
) -> dict[str, float]:
    del allow_overallocation
    assigned: dict[str, float] = {}
    _fill_greedily(
        sorted(pool, key=_by_biggest_room),
        target_hours,
        assigned,
        lambda member: member.free_at_cap,
    )
    return assigned


def allocate_single_office_preferred(
    pool: Sequence[StaffCapacitySlice],
    target_hours: float,
    allow_overallocation: bool,
) -> dict[str, float]:
    del allow_overallocation
    preferred_office_id = select_preferred_office(pool)
    candidates = sorted(
        pool,
        key=lambda member: (
            0 if preferred_office_id is not None and member.office_id == preferred_office_id else 1,
            *_by_biggest_room(member),
        ),
    )
    assigned: dict[str, float] = {}
    _fill_greedily(candidates, target_hours, assigned, lambda member: member.free_at_cap)
    return assigned


def allocate_balanced_across_offices(
    pool: Sequence[StaffCapacitySlice],
    target_hours: float,
    allow_overallocation: bool,
) -> dict[str, float]:
    """Split the target across offices in proportion to their room at cap."""
    del allow_overallocation
    assigned: dict[str, float] = {}
    if target_hours <= 0 or not pool:
        return assigned

    members_by_office: dict[Optional[str], list[StaffCapacitySlice]] = defaultdict(list)
    for member in pool:
        members_by_office[member.office_id].append(member)

    # Staff without an office form their own group, ordered last.
    office_keys = sorted(members_by_office, key=lambda key: (key is None, key or ""))
    offices = [
        sorted(members_by_office[key], key=_by_biggest_room)
        for key in office_keys
    ]
    office_rooms = [sum(member.free_at_cap for member in members) for members in offices]
    total_room = sum(office_rooms)
    if total_room <= 0:
        return assigned

    remaining = target_hours
    for members, office_room in zip(offices, office_rooms):
        if remaining <= EPSILON:
            break
        office_target = min(remaining, target_hours * office_room / total_room)
        office_remaining = _fill_greedily(
            members,
            office_target,
            assigned,
            lambda member: member.free_at_cap,
        )
        remaining -= office_target - office_remaining

    if remaining > EPSILON:
        sweep = [member for members in offices for member in members]
        _fill_greedily(sweep, remaining, assigned, _room_left_at_cap(assigned))
    return assigned


def allocate_conservatively(
    pool: Sequence[StaffCapacitySlice],
    target_hours: float,
    allow_overallocation: bool,
) -> dict[str, float]:
    """Prefer headroom before 100% and use only half of any overallocation room."""

    def conservative_cap(member: StaffCapacitySlice) -> float:
        if not allow_overallocation:
            return member.free_at_100
        overallocation_room = max(0.0, member.free_at_cap - member.free_at_100)
        return member.free_at_100 + CONSERVATIVE_OVERALLOCATION_SHARE * overallocation_room

    assigned: dict[str, float] = {}
    remaining = _fill_greedily(
        sorted(pool, key=_by_room_before_overallocation),
        target_hours,
        assigned,
        conservative_cap,
    )
    if remaining > EPSILON:
        _fill_greedily(
            sorted(pool, key=_by_biggest_room),
            remaining,
            assigned,
            _room_left_at_cap(assigned),
        )
    return assigned


# min_staff_count and worst_week_robust share per-week logic with the
# strategies they map to; they only differ when compared across weeks.
ALLOCATION_STRATEGIES: dict[OptimizationMode, Strategy] = {
    OptimizationMode.MAX_FEASIBILITY: allocate_biggest_room_first,
    OptimizationMode.MIN_STAFF_COUNT: allocate_biggest_room_first,
    OptimizationMode.SINGLE_OFFICE_PREFERRED: allocate_single_office_preferred,
    OptimizationMode.MULTI_OFFICE_BALANCED: allocate_balanced_across_offices,
    OptimizationMode.MIN_OVERALLOCATION: allocate_conservatively,
    OptimizationMode.WORST_WEEK_ROBUST: allocate_conservatively,
}


def summarize_allocation(
    pool: Sequence[StaffCapacitySlice],
    assigned_by_staff: dict[str, float],
) -> AllocationResult:
    achievable_hours = 0.0
    overallocated_hours = 0.0
    allocated_staff_ids: list[str] = []
    overallocated_staff_ids: list[str] = []
    assigned_hours: dict[str, float] = {}

    for member in sorted(pool, key=lambda item: item.id):
        assigned = assigned_by_staff.get(member.id, 0.0)
        achievable_hours += assigned
        if assigned > 0:
            allocated_staff_ids.append(member.id)
            assigned_hours[member.id] = assigned
        over_after_assignment = member.committed_hours + assigned - member.effective_capacity
        if over_after_assignment > EPSILON:
            overallocated_staff_ids.append(member.id)
            overallocated_hours += over_after_assignment

    return AllocationResult(
        achievable_hours=achievable_hours,
        allocated_staff_count=len(allocated_staff_ids),
        allocated_staff_ids=allocated_staff_ids,
        overallocated_staff_ids=overallocated_staff_ids,
        overallocated_hours=overallocated_hours,
        assigned_hours=assigned_hours,
    )


def allocate_for_mode(
    mode: OptimizationMode | str,
    pool: Sequence[StaffCapacitySlice],
    target_hours: float,
    allow_overallocation: bool,
) -> AllocationResult:
    """Distribute ``target_hours`` across ``pool`` using the mode's strategy."""
    resolved_mode = normalize_optimization_mode(mode)
    strategy = ALLOCATION_STRATEGIES[resolved_mode]
    assigned_by_staff = strategy(pool, max(0.0, target_hours), allow_overallocation)
    result = summarize_allocation(pool, assigned_by_staff)
    logger.debug(
        "Week allocated | mode=%s | target=%.3f | achievable=%.3f | staff=%s | overallocated_hours=%.3f",
        resolved_mode.value,
        target_hours,
        result.achievable_hours,
        result.allocated_staff_count,
        result.overallocated_hours,
    )
    return result
