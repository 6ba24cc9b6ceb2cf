"""Calendar helpers for Monday-aligned weekly capacity math."""

from __future__ import annotations

import math
from datetime import date, timedelta
from typing import Iterator, Optional


WORKING_DAYS_PER_WEEK = 5


def monday_of(value: date) -> date:
    """Return the Monday of the ISO week containing ``value``."""
    return value - timedelta(days=value.weekday())


def working_days(start: date, end: date) -> int:
    """Count Monday-Friday dates in ``[start, end]`` inclusive."""
    if end < start:
        return 0
    total_days = (end - start).days + 1
    full_weeks, remainder = divmod(total_days, 7)
    count = full_weeks * WORKING_DAYS_PER_WEEK
    first_weekday = start.weekday()
    for offset in range(remainder):
        if (first_weekday + offset) % 7 < WORKING_DAYS_PER_WEEK:
            count += 1
    return count


def ranges_overlap(a_start: date, a_end: date, b_start: date, b_end: date) -> bool:
    return a_start <= b_end and a_end >= b_start


def clamp_range(
    start: date,
    end: date,
    lower: date,
    upper: date,
) -> Optional[tuple[date, date]]:
    """Intersect ``[start, end]`` with ``[lower, upper]``; None when disjoint."""
    clamped_start = max(start, lower)
    clamped_end = min(end, upper)
    if clamped_start > clamped_end:
        return None
    return clamped_start, clamped_end


def iter_weeks(start: date, end: date) -> Iterator[tuple[date, date]]:
    """Yield ``(monday, sunday)`` pairs covering ``[start, end]``."""
    week_start = monday_of(start)
    while week_start <= end:
        yield week_start, week_start + timedelta(days=6)
        week_start += timedelta(days=7)


def week_fraction(working_day_count: int) -> float:
    return working_day_count / WORKING_DAYS_PER_WEEK


def friday_of(week_start: date) -> date:
    return week_start + timedelta(days=WORKING_DAYS_PER_WEEK - 1)


def round_hours(value: float) -> float:
    """Round half-up to one decimal place, the precision reported for hours."""
    return math.floor(value * 10 + 0.5) / 10
