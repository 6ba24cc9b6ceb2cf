"""Domain-level validation rules for feasibility simulation."""

from __future__ import annotations

import math
from dataclasses import dataclass
from numbers import Real

from staffplan.domain.errors import (
    InvalidParameterError,
    InvalidProposalError,
    MissingEstimateError,
)
from staffplan.domain.models import PROPOSAL_STATUSES, Proposal
from staffplan.utils.logger import get_logger


logger = get_logger(__name__)

OVERALLOCATION_CAP_MIN_PERCENT = 100
OVERALLOCATION_CAP_MAX_PERCENT = 200


@dataclass(frozen=True)
class FeasibilityConfig:
    allow_overallocation: bool
    overallocation_cap_percent: int
    include_comparisons: bool = False
    comparison_workers: int = 1

    @property
    def capacity_multiplier(self) -> float:
        if not self.allow_overallocation:
            return 1.0
        return self.overallocation_cap_percent / 100


def clamp_overallocation_cap(
    value: object,
    minimum: int = OVERALLOCATION_CAP_MIN_PERCENT,
    maximum: int = OVERALLOCATION_CAP_MAX_PERCENT,
) -> int:
    """Clamp a cap percentage into ``[minimum, maximum]``.

    Out-of-range values, infinities included, are clamped rather than
    rejected; only values that are not numbers at all raise.
    """
    if isinstance(value, bool) or not isinstance(value, Real) or math.isnan(float(value)):
        raise InvalidParameterError(f"overallocation cap must be numeric, got {value!r}")
    number = float(value)
    requested = number if math.isinf(number) else int(round(number))
    clamped = int(min(max(requested, minimum), maximum))
    if clamped != requested:
        logger.warning(
            "Overallocation cap clamped | requested=%s | applied=%s",
            value,
            clamped,
        )
    return clamped


def validate_feasibility_config(config: FeasibilityConfig) -> None:
    if not OVERALLOCATION_CAP_MIN_PERCENT <= config.overallocation_cap_percent <= OVERALLOCATION_CAP_MAX_PERCENT:
        raise InvalidParameterError("overallocation_cap_percent must be between 100 and 200")
    if config.comparison_workers <= 0:
        raise InvalidParameterError("comparison_workers must be > 0")


def validate_proposal_terms(proposal: Proposal) -> None:
    """Reject proposals the simulator cannot run against."""
    if proposal.proposed_start_date is None or proposal.proposed_end_date is None:
        raise InvalidProposalError(
            "Proposal must have a start and end date for feasibility analysis"
        )
    if proposal.proposed_end_date < proposal.proposed_start_date:
        raise InvalidProposalError("End date is before start date")
    if proposal.estimated_hours is None and proposal.estimated_hours_per_week is None:
        raise MissingEstimateError(
            "Proposal must have an hours estimate for feasibility analysis"
        )


def validate_proposal_status(proposal: Proposal) -> None:
    if proposal.status not in PROPOSAL_STATUSES:
        raise InvalidProposalError(f"Unknown proposal status '{proposal.status}'")
    if proposal.status == "draft":
        return
    if proposal.proposed_start_date is None or proposal.proposed_end_date is None:
        raise InvalidProposalError(
            f"A {proposal.status} proposal requires both start and end dates"
        )
