"""Allocation rule sets and their loosely typed persisted form."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields, replace
from datetime import date
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple, Union

from prizealloc.models.category import coerce_bool


logger = logging.getLogger(__name__)

VERBOSE_LOGS_ENV = "PRIZEALLOC_VERBOSE_LOGS"

AGE_BAND_POLICIES = ("non_overlapping", "overlapping")
MULTI_PRIZE_POLICIES = ("single", "unlimited", "main_plus_one_side")
PRIORITY_MODES = ("place_first", "main_first")
AGE_CUTOFF_POLICIES = ("TOURNAMENT_START_DATE", "JAN1_TOURNAMENT_YEAR", "CUSTOM_DATE")
TIE_BREAK_FIELDS = ("rating", "name")

# Persisted keys that no longer drive any behaviour.
_IGNORED_LEGACY_KEYS = {
    "prefer_main_on_equal_value",
    "prefer_category_rank_on_tie",
    "category_priority_order",
}


@dataclass(frozen=True)
class AllocationRules:
    strict_age: bool = True
    allow_unrated_in_rating: bool = False
    allow_missing_dob_for_age: bool = False
    max_age_inclusive: bool = True
    age_band_policy: str = "non_overlapping"
    multi_prize_policy: str = "single"
    main_vs_side_priority_mode: str = "place_first"
    non_cash_priority_mode: str = "TGM"
    tie_break_strategy: Tuple[str, ...] = ("rating", "name")
    age_cutoff_policy: str = "TOURNAMENT_START_DATE"
    age_cutoff_date: Optional[date] = None
    verbose_logs: bool = False

    def __post_init__(self) -> None:
        _check_choice("age_band_policy", self.age_band_policy, AGE_BAND_POLICIES)
        _check_choice("multi_prize_policy", self.multi_prize_policy, MULTI_PRIZE_POLICIES)
        _check_choice("main_vs_side_priority_mode", self.main_vs_side_priority_mode, PRIORITY_MODES)
        _check_choice("age_cutoff_policy", self.age_cutoff_policy, AGE_CUTOFF_POLICIES)
        if sorted(self.non_cash_priority_mode) != ["G", "M", "T"]:
            raise ValueError(
                f"non_cash_priority_mode must be a permutation of 'TGM', got {self.non_cash_priority_mode!r}"
            )
        for field_name in self.tie_break_strategy:
            if field_name not in TIE_BREAK_FIELDS:
                raise ValueError(f"Unsupported tie-break field {field_name!r}")

    @property
    def verbose(self) -> bool:
        """Verbose tracing from the rule flag or the environment."""

        return self.verbose_logs or _env_flag(VERBOSE_LOGS_ENV)


def _check_choice(name: str, value: str, choices: Sequence[str]) -> None:
    if value not in choices:
        raise ValueError(f"{name} must be one of {', '.join(choices)}; got {value!r}")


def _env_flag(name: str) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return False
    try:
        return bool(coerce_bool(raw))
    except ValueError:
        logger.warning("Invalid boolean for %s: %s; using default False", name, raw)
        return False


def parse_tie_break_strategy(value: Union[str, Sequence[str], None]) -> Tuple[str, ...]:
    """Resolve ``none``/``rating_then_name`` or an explicit ordered field list."""

    if value is None:
        return ("rating", "name")
    if isinstance(value, str):
        token = value.strip().lower()
        if token in {"", "none"}:
            return ()
        if token == "rating_then_name":
            return ("rating", "name")
        if token == "name_then_rating":
            return ("name", "rating")
        value = [part for part in token.replace("+", ",").split(",")]
    result = []
    for part in value:
        item = str(part).strip().lower()
        if not item:
            continue
        if item not in TIE_BREAK_FIELDS:
            raise ValueError(f"Unsupported tie-break field {part!r}")
        if item not in result:
            result.append(item)
    return tuple(result)


def _normalize_enum(name: str, value: Any, choices: Sequence[str]) -> str:
    token = str(value).strip()
    for choice in choices:
        if token.lower() == choice.lower():
            return choice
    raise ValueError(f"{name} must be one of {', '.join(choices)}; got {value!r}")


def _parse_date(name: str, value: Any) -> Optional[date]:
    if value in (None, ""):
        return None
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError as exc:
        raise ValueError(f"{name} must be an ISO date, got {value!r}") from exc


def rules_from_mapping(mapping: Optional[Mapping[str, Any]]) -> AllocationRules:
    """Build rules from a persisted configuration document."""

    if not mapping:
        return AllocationRules()

    known = {field.name for field in fields(AllocationRules)}
    kwargs: Dict[str, Any] = {}
    for key, value in mapping.items():
        if key in _IGNORED_LEGACY_KEYS:
            logger.debug("Ignoring legacy rule key %s=%r", key, value)
            continue
        if key not in known:
            logger.debug("Ignoring unknown rule key %s", key)
            continue
        if value is None:
            continue
        if key in {"strict_age", "allow_unrated_in_rating", "allow_missing_dob_for_age", "max_age_inclusive", "verbose_logs"}:
            kwargs[key] = coerce_bool(value)
        elif key == "age_band_policy":
            kwargs[key] = _normalize_enum(key, value, AGE_BAND_POLICIES)
        elif key == "multi_prize_policy":
            kwargs[key] = _normalize_enum(key, value, MULTI_PRIZE_POLICIES)
        elif key == "main_vs_side_priority_mode":
            kwargs[key] = _normalize_enum(key, value, PRIORITY_MODES)
        elif key == "age_cutoff_policy":
            kwargs[key] = _normalize_enum(key, value, AGE_CUTOFF_POLICIES)
        elif key == "non_cash_priority_mode":
            kwargs[key] = str(value).strip().upper()
        elif key == "tie_break_strategy":
            kwargs[key] = parse_tie_break_strategy(value)
        elif key == "age_cutoff_date":
            kwargs[key] = _parse_date(key, value)
    return AllocationRules(**kwargs)


def with_overrides(rules: AllocationRules, **changes: Any) -> AllocationRules:
    """Return a copy of ``rules`` with non-``None`` changes applied."""

    applied = {key: value for key, value in changes.items() if value is not None}
    if not applied:
        return rules
    return replace(rules, **applied)


def resolve_age_reference_date(rules: AllocationRules, tournament_start: date) -> date:
    """Pick the date ages are computed on for a tournament."""

    if rules.age_cutoff_policy == "JAN1_TOURNAMENT_YEAR":
        return date(tournament_start.year, 1, 1)
    if rules.age_cutoff_policy == "CUSTOM_DATE":
        if rules.age_cutoff_date is None:
            logger.warning("CUSTOM_DATE age cutoff without age_cutoff_date; using tournament start %s", tournament_start)
            return tournament_start
        return rules.age_cutoff_date
    return tournament_start
