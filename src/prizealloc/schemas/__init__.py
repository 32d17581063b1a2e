"""Pydantic models for allocation results."""

from .result import (
    AllocationMeta,
    AllocationResult,
    CategorySummary,
    Conflict,
    CoverageEntry,
    ManualOverride,
    RcaRow,
    SuggestedAssignment,
    UnfilledEntry,
    Winner,
)

__all__ = [
    "AllocationMeta",
    "AllocationResult",
    "CategorySummary",
    "Conflict",
    "CoverageEntry",
    "ManualOverride",
    "RcaRow",
    "SuggestedAssignment",
    "UnfilledEntry",
    "Winner",
]
