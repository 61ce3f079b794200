"""Reflection (aggregation) package."""

from jaap_ledger.reflection.engine import (
    ReflectionEngine,
    compute_totals,
    find_crossings,
    milestone_progress,
    recompute,
)

__all__ = [
    "ReflectionEngine",
    "compute_totals",
    "find_crossings",
    "milestone_progress",
    "recompute",
]
