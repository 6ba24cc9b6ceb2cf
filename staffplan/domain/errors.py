"""Typed failures for feasibility requests."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class FeasibilityErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    INVALID_PROPOSAL = "invalid_proposal"
    MISSING_ESTIMATE = "missing_estimate"
    NO_STAFF_IN_SCOPE = "no_staff_in_scope"
    INVALID_PARAMETER = "invalid_parameter"


class FeasibilityError(Exception):
    """Base exception for feasibility failures; every subclass fixes a kind."""

    kind: FeasibilityErrorKind = FeasibilityErrorKind.INVALID_PARAMETER

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ProposalNotFoundError(FeasibilityError):
    """Raised when the proposal is absent or belongs to another tenant."""

    kind = FeasibilityErrorKind.NOT_FOUND


class InvalidProposalError(FeasibilityError):
    """Raised when proposal dates are missing or inverted."""

    kind = FeasibilityErrorKind.INVALID_PROPOSAL


class MissingEstimateError(FeasibilityError):
    """Raised when neither total hours nor hours per week is set."""

    kind = FeasibilityErrorKind.MISSING_ESTIMATE


class NoStaffInScopeError(FeasibilityError):
    """Raised when the office filter leaves no candidate staff."""

    kind = FeasibilityErrorKind.NO_STAFF_IN_SCOPE


class InvalidParameterError(FeasibilityError):
    kind = FeasibilityErrorKind.INVALID_PARAMETER


@dataclass(frozen=True)
class FeasibilityFailure:
    """Error value returned in place of a result so callers can render it inline."""

    kind: FeasibilityErrorKind
    message: str

    @classmethod
    def from_error(cls, error: FeasibilityError) -> "FeasibilityFailure":
        return cls(kind=error.kind, message=error.message)
