"""Configuration helpers for allocation rules."""

from .rules import (
    AllocationRules,
    parse_tie_break_strategy,
    resolve_age_reference_date,
    rules_from_mapping,
    with_overrides,
)

__all__ = [
    "AllocationRules",
    "parse_tie_break_strategy",
    "resolve_age_reference_date",
    "rules_from_mapping",
    "with_overrides",
]
