"""Tests for feasibility parameter and proposal validation.

Covers cap clamping, config validation, and the proposal date/estimate rules.
"""

from __future__ import annotations

from datetime import date

import pytest

from staffplan.domain.constraints import (
    FeasibilityConfig,
    clamp_overallocation_cap,
    validate_feasibility_config,
    validate_proposal_status,
    validate_proposal_terms,
)
from staffplan.domain.errors import (
    FeasibilityErrorKind,
    FeasibilityFailure,
    InvalidParameterError,
    InvalidProposalError,
    MissingEstimateError,
)
from staffplan.domain.models import Proposal
from staffplan.domain.optimization_modes import (
    COMPARISON_MODES,
    OptimizationMode,
    is_optimization_mode,
    normalize_optimization_mode,
)


def valid_proposal(**overrides) -> Proposal:
    """Return a runnable baseline proposal, optionally overriding fields."""
    defaults = {
        "id": "proposal-1",
        "tenant_id": "tenant-1",
        "name": "Market entry study",
        "proposed_start_date": date(2026, 3, 2),
        "proposed_end_date": date(2026, 3, 27),
        "estimated_hours": None,
        "estimated_hours_per_week": 40.0,
    }
    defaults.update(overrides)
    return Proposal(**defaults)


# --- Baseline pass ---

def test_valid_proposal_passes() -> None:
    validate_proposal_terms(valid_proposal())
    validate_proposal_status(valid_proposal(status="submitted"))


# --- proposal terms ---

def test_missing_start_date_raises() -> None:
    with pytest.raises(InvalidProposalError):
        validate_proposal_terms(valid_proposal(proposed_start_date=None))


def test_end_before_start_raises() -> None:
    with pytest.raises(InvalidProposalError):
        validate_proposal_terms(valid_proposal(proposed_end_date=date(2026, 3, 1)))


def test_single_day_proposal_passes() -> None:
    validate_proposal_terms(valid_proposal(proposed_end_date=date(2026, 3, 2)))


def test_missing_estimate_raises() -> None:
    with pytest.raises(MissingEstimateError) as excinfo:
        validate_proposal_terms(valid_proposal(estimated_hours_per_week=None))
    assert excinfo.value.kind is FeasibilityErrorKind.MISSING_ESTIMATE


def test_zero_weekly_rate_counts_as_an_estimate() -> None:
    validate_proposal_terms(valid_proposal(estimated_hours_per_week=0.0))


# --- proposal status ---

def test_unknown_status_raises() -> None:
    with pytest.raises(InvalidProposalError):
        validate_proposal_status(valid_proposal(status="archived"))


def test_draft_without_dates_is_allowed() -> None:
    validate_proposal_status(valid_proposal(proposed_start_date=None, proposed_end_date=None))


def test_submitted_without_dates_raises() -> None:
    with pytest.raises(InvalidProposalError):
        validate_proposal_status(valid_proposal(status="submitted", proposed_end_date=None))


# --- overallocation cap ---

@pytest.mark.parametrize(
    ("requested", "applied"),
    [
        (100, 100),
        (120, 120),
        (99, 100),
        (0, 100),
        (201, 200),
        (500, 200),
        (150.4, 150),
        (float("inf"), 200),
        (float("-inf"), 100),
    ],
)
def test_cap_is_clamped_into_range(requested, applied) -> None:
    assert clamp_overallocation_cap(requested) == applied


def test_cap_clamp_honours_custom_bounds() -> None:
    assert clamp_overallocation_cap(190, minimum=110, maximum=180) == 180


@pytest.mark.parametrize("value", ["150", None, True, float("nan")])
def test_non_numeric_cap_raises(value) -> None:
    with pytest.raises(InvalidParameterError):
        clamp_overallocation_cap(value)


# --- config ---

def test_capacity_multiplier_ignores_cap_without_overallocation() -> None:
    assert FeasibilityConfig(allow_overallocation=False, overallocation_cap_percent=150).capacity_multiplier == 1.0
    assert FeasibilityConfig(allow_overallocation=True, overallocation_cap_percent=150).capacity_multiplier == 1.5


def test_config_out_of_range_cap_raises() -> None:
    with pytest.raises(InvalidParameterError):
        validate_feasibility_config(FeasibilityConfig(allow_overallocation=True, overallocation_cap_percent=250))


def test_config_zero_workers_raises() -> None:
    with pytest.raises(InvalidParameterError):
        validate_feasibility_config(
            FeasibilityConfig(allow_overallocation=False, overallocation_cap_percent=100, comparison_workers=0)
        )


# --- errors and modes ---

def test_failure_value_carries_kind_and_message() -> None:
    failure = FeasibilityFailure.from_error(InvalidProposalError("End date is before start date"))
    assert failure.kind is FeasibilityErrorKind.INVALID_PROPOSAL
    assert failure.message == "End date is before start date"


def test_mode_normalization() -> None:
    assert normalize_optimization_mode("min_overallocation") is OptimizationMode.MIN_OVERALLOCATION
    assert normalize_optimization_mode(None) is OptimizationMode.MAX_FEASIBILITY
    assert normalize_optimization_mode("nope", default=OptimizationMode.MIN_STAFF_COUNT) is OptimizationMode.MIN_STAFF_COUNT
    assert is_optimization_mode("worst_week_robust")
    assert not is_optimization_mode("fastest")


def test_comparison_modes_are_a_fixed_subset() -> None:
    assert COMPARISON_MODES == (
        OptimizationMode.MAX_FEASIBILITY,
        OptimizationMode.MIN_STAFF_COUNT,
        OptimizationMode.SINGLE_OFFICE_PREFERRED,
        OptimizationMode.MIN_OVERALLOCATION,
    )
