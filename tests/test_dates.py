"""Tests for Monday-aligned calendar helpers."""

from __future__ import annotations

from datetime import date

from staffplan.utils.dates import (
    clamp_range,
    iter_weeks,
    monday_of,
    ranges_overlap,
    round_hours,
    week_fraction,
    working_days,
)


# 2026-03-02 is a Monday.

def test_monday_of_maps_midweek_and_sunday_back() -> None:
    assert monday_of(date(2026, 3, 2)) == date(2026, 3, 2)
    assert monday_of(date(2026, 3, 4)) == date(2026, 3, 2)
    assert monday_of(date(2026, 3, 7)) == date(2026, 3, 2)
    assert monday_of(date(2026, 3, 8)) == date(2026, 3, 2)


def test_working_days_counts_weekdays_inclusive() -> None:
    assert working_days(date(2026, 3, 2), date(2026, 3, 8)) == 5
    assert working_days(date(2026, 3, 4), date(2026, 3, 10)) == 5
    assert working_days(date(2026, 3, 2), date(2026, 3, 2)) == 1
    assert working_days(date(2026, 3, 2), date(2026, 3, 29)) == 20


def test_working_days_weekend_only_and_inverted_ranges_are_zero() -> None:
    assert working_days(date(2026, 3, 7), date(2026, 3, 8)) == 0
    assert working_days(date(2026, 3, 10), date(2026, 3, 9)) == 0


def test_iter_weeks_starts_on_monday_and_covers_end() -> None:
    weeks = list(iter_weeks(date(2026, 3, 4), date(2026, 3, 16)))
    assert weeks == [
        (date(2026, 3, 2), date(2026, 3, 8)),
        (date(2026, 3, 9), date(2026, 3, 15)),
        (date(2026, 3, 16), date(2026, 3, 22)),
    ]


def test_clamp_range_and_overlap() -> None:
    assert clamp_range(
        date(2026, 3, 2), date(2026, 3, 8), date(2026, 3, 4), date(2026, 3, 20)
    ) == (date(2026, 3, 4), date(2026, 3, 8))
    assert clamp_range(
        date(2026, 3, 2), date(2026, 3, 3), date(2026, 3, 4), date(2026, 3, 20)
    ) is None
    assert ranges_overlap(date(2026, 3, 1), date(2026, 3, 2), date(2026, 3, 2), date(2026, 3, 8))
    assert not ranges_overlap(date(2026, 3, 1), date(2026, 3, 1), date(2026, 3, 2), date(2026, 3, 8))


def test_week_fraction_and_half_up_rounding() -> None:
    assert week_fraction(5) == 1.0
    assert week_fraction(3) == 0.6
    assert round_hours(2.25) == 2.3
    assert round_hours(0.04) == 0.0
    assert round_hours(33.3333) == 33.3
