"""Per (player, category) eligibility evaluation."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date
from functools import lru_cache
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from prizealloc.config.rules import AllocationRules
from prizealloc.models import Category, CategoryCriteria, Player


logger = logging.getLogger(__name__)

# Two-letter codes commonly used in place of Indian state names on registration sheets.
STATE_CODE_ALIASES: dict[str, list[str]] = {
    "Andhra Pradesh": ["AP"],
    "Arunachal Pradesh": ["AR"],
    "Assam": ["AS"],
    "Bihar": ["BR"],
    "Chhattisgarh": ["CG", "CT"],
    "Delhi": ["DL", "NCT OF DELHI", "NEW DELHI"],
    "Goa": ["GA"],
    "Gujarat": ["GJ"],
    "Haryana": ["HR"],
    "Himachal Pradesh": ["HP"],
    "Jammu and Kashmir": ["JK", "J&K"],
    "Jharkhand": ["JH"],
    "Karnataka": ["KA"],
    "Kerala": ["KL"],
    "Madhya Pradesh": ["MP"],
    "Maharashtra": ["MH"],
    "Manipur": ["MN"],
    "Meghalaya": ["ML"],
    "Mizoram": ["MZ"],
    "Nagaland": ["NL"],
    "Odisha": ["OD", "OR", "ORISSA"],
    "Puducherry": ["PY", "PONDICHERRY"],
    "Punjab": ["PB"],
    "Rajasthan": ["RJ"],
    "Sikkim": ["SK"],
    "Tamil Nadu": ["TN"],
    "Telangana": ["TS", "TG"],
    "Tripura": ["TR"],
    "Uttar Pradesh": ["UP"],
    "Uttarakhand": ["UK", "UT", "UTTARANCHAL"],
    "West Bengal": ["WB"],
}


def _token(value: Optional[str]) -> str:
    if value is None:
        return ""
    return re.sub(r"\s+", " ", str(value)).strip().casefold()


def _build_alias_lookup(groups: Mapping[str, Sequence[str]]) -> dict[str, str]:
    lookup: dict[str, str] = {}
    for canonical, variants in groups.items():
        canonical_key = _token(canonical)
        if not canonical_key:
            continue
        lookup.setdefault(canonical_key, canonical_key)
        for variant in variants:
            key = _token(variant)
            if key:
                lookup.setdefault(key, canonical_key)
    return lookup


STATE_ALIAS_LOOKUP = _build_alias_lookup(STATE_CODE_ALIASES)


@lru_cache(maxsize=512)
def _frozen_alias_lookup(groups: Tuple[Tuple[str, Tuple[str, ...]], ...]) -> dict[str, str]:
    return _build_alias_lookup(dict(groups))


def alias_lookup_for(aliases: Mapping[str, Sequence[str]]) -> Mapping[str, str]:
    """Alias lookup for a category alias map, built once per distinct map."""

    if not aliases:
        return {}
    return _frozen_alias_lookup(tuple(sorted((canonical, tuple(variants)) for canonical, variants in aliases.items())))


@dataclass(frozen=True)
class EffectiveAgeBand:
    category_id: str
    min_age: int
    max_age: int


@dataclass(frozen=True)
class EligibilityResult:
    eligible: bool
    fail_codes: Tuple[str, ...] = ()
    pass_codes: Tuple[str, ...] = ()
    warn_codes: Tuple[str, ...] = ()


EligibilityObserver = Callable[[Player, Category, EligibilityResult], None]


class _CodeCollector:
    def __init__(self) -> None:
        self.fail: List[str] = []
        self.passed: List[str] = []
        self.warn: List[str] = []

    @staticmethod
    def _add(bucket: List[str], code: str) -> None:
        if code not in bucket:
            bucket.append(code)

    def fail_with(self, code: str) -> None:
        self._add(self.fail, code)

    def pass_with(self, code: str) -> None:
        self._add(self.passed, code)

    def warn_with(self, code: str) -> None:
        self._add(self.warn, code)

    def result(self) -> EligibilityResult:
        return EligibilityResult(
            eligible=not self.fail,
            fail_codes=tuple(self.fail),
            pass_codes=tuple(self.passed),
            warn_codes=tuple(self.warn),
        )


def compute_age(dob: date, on: date) -> int:
    """Whole years between ``dob`` and ``on`` with month/day borrow."""

    years = on.year - dob.year
    if (on.month, on.day) < (dob.month, dob.day):
        years -= 1
    return years


def effective_gender_requirement(category: Category) -> Optional[str]:
    if category.category_type == "youngest_female":
        return "F"
    if category.category_type == "youngest_male":
        return "M_OR_UNKNOWN"
    return category.criteria.gender


def _check_gender(player: Player, category: Category, codes: _CodeCollector) -> None:
    requirement = effective_gender_requirement(category)
    if requirement is None:
        codes.pass_with("gender_open")
    elif requirement == "F":
        if player.gender is None:
            codes.fail_with("gender_missing")
        elif player.gender != "F":
            codes.fail_with("gender_mismatch")
        else:
            codes.pass_with("gender_ok")
    # "M" is kept as a legacy spelling of M_OR_UNKNOWN: only an explicit female is excluded.
    elif player.gender == "F":
        codes.fail_with("gender_mismatch")
    else:
        codes.pass_with("gender_ok")


def age_bounds(
    category: Category,
    age_bands: Optional[Mapping[str, EffectiveAgeBand]] = None,
) -> Tuple[Optional[int], Optional[int]]:
    """Effective (min, max) age for a category, preferring a derived band."""

    if age_bands:
        band = age_bands.get(category.category_id)
        if band is not None:
            return band.min_age, band.max_age
    return category.criteria.min_age, category.criteria.max_age


def _check_age(
    player: Player,
    category: Category,
    rules: AllocationRules,
    reference_date: date,
    age_bands: Optional[Mapping[str, EffectiveAgeBand]],
    codes: _CodeCollector,
) -> None:
    if category.is_youngest and player.dob is None:
        codes.fail_with("dob_missing")
        return
    if not rules.strict_age:
        return
    min_age, max_age = age_bounds(category, age_bands)
    if min_age is None and max_age is None:
        return
    if player.dob is None:
        if rules.allow_missing_dob_for_age:
            codes.warn_with("dob_missing_allowed")
        else:
            codes.fail_with("dob_missing")
        return

    age = compute_age(player.dob, reference_date)
    failed = False
    if max_age is not None:
        too_old = age > max_age if rules.max_age_inclusive else age >= max_age
        if too_old:
            codes.fail_with("age_above_max")
            failed = True
    if min_age is not None and age < min_age:
        codes.fail_with("age_below_min")
        failed = True
    if not failed:
        codes.pass_with("age_ok")


def unrated_only_tier(criteria: CategoryCriteria) -> bool:
    """First tier: the category admits only unrated players."""

    return criteria.unrated_only


def include_unrated_tier(criteria: CategoryCriteria) -> Optional[bool]:
    """Second tier: an explicit per-category decision, ``None`` when unset."""

    return criteria.include_unrated


def legacy_unrated_tier(criteria: CategoryCriteria, rules: AllocationRules) -> bool:
    """Third tier: global flag, or a max-only band which historically admitted unrated players."""

    if rules.allow_unrated_in_rating:
        return True
    return criteria.max_rating is not None and criteria.min_rating is None


def unrated_allowed(criteria: CategoryCriteria, rules: AllocationRules) -> bool:
    explicit = include_unrated_tier(criteria)
    if explicit is not None:
        return explicit
    return legacy_unrated_tier(criteria, rules)


def _check_rating(player: Player, category: Category, rules: AllocationRules, codes: _CodeCollector) -> None:
    criteria = category.criteria
    if not criteria.is_rating_aware:
        return
    if unrated_only_tier(criteria):
        if player.is_unrated:
            codes.pass_with("unrated_only_ok")
        else:
            codes.fail_with("rated_player_excluded_unrated_only")
        return
    if player.is_unrated:
        if unrated_allowed(criteria, rules):
            codes.pass_with("rating_unrated_allowed")
        else:
            codes.fail_with("unrated_excluded")
        return
    rating = player.effective_rating
    if criteria.min_rating is not None and rating < criteria.min_rating:
        codes.fail_with("rating_below_min")
    elif criteria.max_rating is not None and rating > criteria.max_rating:
        codes.fail_with("rating_above_max")
    else:
        codes.pass_with("rating_ok")


def _location_matches(
    value: Optional[str],
    allowed: Sequence[str],
    aliases: Mapping[str, Sequence[str]],
    builtin: Optional[Mapping[str, str]] = None,
) -> bool:
    lookup = alias_lookup_for(aliases)

    def resolve(raw: Optional[str]) -> str:
        key = _token(raw)
        if key in lookup:
            return lookup[key]
        if builtin and key in builtin:
            return builtin[key]
        return key

    player_key = resolve(value)
    if not player_key:
        return False
    return player_key in {resolve(item) for item in allowed}


def _check_location(player: Player, category: Category, codes: _CodeCollector) -> None:
    criteria = category.criteria
    checks = (
        ("state", player.state, criteria.allowed_states, criteria.state_aliases, STATE_ALIAS_LOOKUP),
        ("city", player.city, criteria.allowed_cities, criteria.city_aliases, None),
        ("club", player.club, criteria.allowed_clubs, criteria.club_aliases, None),
    )
    for label, value, allowed, aliases, builtin in checks:
        if not allowed:
            continue
        if _location_matches(value, allowed, aliases, builtin):
            codes.pass_with(f"{label}_ok")
        else:
            codes.fail_with(f"{label}_excluded")


def _check_labels(player: Player, category: Category, codes: _CodeCollector) -> None:
    criteria = category.criteria
    checks = (
        ("type", player.type_label, criteria.allowed_types),
        ("group", player.group_label, criteria.allowed_groups),
        ("disability", player.disability, criteria.allowed_disabilities),
    )
    for label, value, allowed in checks:
        if not allowed:
            continue
        key = _token(value)
        if key and key in {_token(item) for item in allowed}:
            codes.pass_with(f"{label}_ok")
        else:
            codes.fail_with(f"{label}_excluded")


def evaluate_eligibility(
    player: Player,
    category: Category,
    rules: AllocationRules,
    reference_date: date,
    age_bands: Optional[Mapping[str, EffectiveAgeBand]] = None,
    observer: Optional[EligibilityObserver] = None,
) -> EligibilityResult:
    """Evaluate every active dimension; eligible only when none fail."""

    codes = _CodeCollector()
    _check_gender(player, category, codes)
    _check_age(player, category, rules, reference_date, age_bands, codes)
    _check_rating(player, category, rules, codes)
    _check_location(player, category, codes)
    _check_labels(player, category, codes)
    result = codes.result()

    logger.debug(
        "eligibility player=%s category=%s eligible=%s fail=%s",
        player.player_id,
        category.category_id,
        result.eligible,
        ",".join(result.fail_codes),
    )
    if observer is not None:
        observer(player, category, result)
    return result


def logging_observer(player: Player, category: Category, result: EligibilityResult) -> None:
    """Observer used when verbose logging is switched on."""

    logger.info(
        "check player=%s (%s) category=%s (%s) eligible=%s fail=%s pass=%s warn=%s",
        player.player_id,
        player.name,
        category.category_id,
        category.name,
        result.eligible,
        list(result.fail_codes),
        list(result.pass_codes),
        list(result.warn_codes),
    )


def resolve_observer(rules: AllocationRules, observer: Optional[EligibilityObserver]) -> Optional[EligibilityObserver]:
    if observer is not None:
        return observer
    return logging_observer if rules.verbose else None


def evaluate_all(
    players: Sequence[Player],
    category: Category,
    rules: AllocationRules,
    reference_date: date,
    age_bands: Optional[Mapping[str, EffectiveAgeBand]] = None,
    observer: Optional[EligibilityObserver] = None,
) -> Dict[str, EligibilityResult]:
    return {
        player.player_id: evaluate_eligibility(player, category, rules, reference_date, age_bands, observer)
        for player in players
    }
