"""Optimization objectives selectable for a proposal feasibility run."""

from __future__ import annotations

from enum import Enum
from typing import Any


class OptimizationMode(str, Enum):
    MAX_FEASIBILITY = "max_feasibility"
    MIN_STAFF_COUNT = "min_staff_count"
    SINGLE_OFFICE_PREFERRED = "single_office_preferred"
    MULTI_OFFICE_BALANCED = "multi_office_balanced"
    MIN_OVERALLOCATION = "min_overallocation"
    WORST_WEEK_ROBUST = "worst_week_robust"

    @property
    def label(self) -> str:
        return OPTIMIZATION_MODE_LABELS[self]


DEFAULT_OPTIMIZATION_MODE = OptimizationMode.MAX_FEASIBILITY

OPTIMIZATION_MODE_LABELS: dict[OptimizationMode, str] = {
    OptimizationMode.MAX_FEASIBILITY: "Max feasibility",
    OptimizationMode.MIN_STAFF_COUNT: "Minimum staff allocated",
    OptimizationMode.SINGLE_OFFICE_PREFERRED: "Single office preferred",
    OptimizationMode.MULTI_OFFICE_BALANCED: "Multi-office balanced",
    OptimizationMode.MIN_OVERALLOCATION: "Minimum overallocation",
    OptimizationMode.WORST_WEEK_ROBUST: "Worst-week robust",
}

# Order is the order comparison rows are reported in.
COMPARISON_MODES: tuple[OptimizationMode, ...] = (
    OptimizationMode.MAX_FEASIBILITY,
    OptimizationMode.MIN_STAFF_COUNT,
    OptimizationMode.SINGLE_OFFICE_PREFERRED,
    OptimizationMode.MIN_OVERALLOCATION,
)


def is_optimization_mode(value: Any) -> bool:
    if isinstance(value, OptimizationMode):
        return True
    return isinstance(value, str) and value in OptimizationMode._value2member_map_


def normalize_optimization_mode(
    value: Any,
    default: OptimizationMode = DEFAULT_OPTIMIZATION_MODE,
) -> OptimizationMode:
    """Coerce stored or user-supplied values, falling back to ``default``."""
    if isinstance(value, OptimizationMode):
        return value
    if is_optimization_mode(value):
        return OptimizationMode(value)
    return default
