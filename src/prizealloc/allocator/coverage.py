"""Coverage reporting and unfilled-prize diagnosis."""

from __future__ import annotations

from collections import OrderedDict
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from prizealloc.models import Category, Player, Prize
from prizealloc.schemas import CategorySummary, CoverageEntry, ManualOverride, RcaRow, Winner


REASON_LABELS: Dict[str, str] = {
    "NO_ELIGIBLE_PLAYERS": "No eligible winner (no players match criteria)",
    "BLOCKED_BY_ONE_PRIZE_POLICY": "No eligible winner (blocked by one-prize policy)",
    "TOO_STRICT_CRITERIA_RATING": "No eligible winner (rating criteria)",
    "TOO_STRICT_CRITERIA_AGE": "No eligible winner (age criteria)",
    "TOO_STRICT_CRITERIA_GENDER": "No eligible winner (gender criteria)",
    "TOO_STRICT_CRITERIA_LOCATION": "No eligible winner (location criteria)",
    "TOO_STRICT_CRITERIA_TYPE_OR_GROUP": "No eligible winner (type/group criteria)",
    "gender_missing": "Gender missing",
    "gender_mismatch": "Gender does not match",
    "dob_missing": "Date of birth missing",
    "dob_missing_allowed": "Date of birth missing (allowed)",
    "age_above_max": "Too old",
    "age_below_min": "Too young",
    "unrated_excluded": "Unrated players excluded",
    "rated_player_excluded_unrated_only": "Rated player in unrated-only category",
    "rating_below_min": "Rating below minimum",
    "rating_above_max": "Rating above maximum",
    "state_excluded": "State not allowed",
    "city_excluded": "City not allowed",
    "club_excluded": "Club not allowed",
    "type_excluded": "Player type not allowed",
    "group_excluded": "Player group not allowed",
    "disability_excluded": "Disability type not allowed",
    "already_won": "Already won a prize",
    "no_eligible_players": "No eligible players",
}

# Highest precedence first; the first class with any matching fail code wins.
_CAUSE_PRECEDENCE: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("TOO_STRICT_CRITERIA_RATING", ("rating", "unrated")),
    ("TOO_STRICT_CRITERIA_AGE", ("age", "dob")),
    ("TOO_STRICT_CRITERIA_GENDER", ("gender",)),
    ("TOO_STRICT_CRITERIA_LOCATION", ("state", "city", "club")),
    ("TOO_STRICT_CRITERIA_TYPE_OR_GROUP", ("type", "group", "disability")),
)


def format_reason_code(code: Optional[str]) -> str:
    if not code:
        return ""
    if code in REASON_LABELS:
        return REASON_LABELS[code]
    return code.replace("_", " ").strip().title()


def derive_reason_code(fail_codes: Iterable[str], before_cap: int, after_cap: int) -> str:
    if before_cap > 0 and after_cap == 0:
        return "BLOCKED_BY_ONE_PRIZE_POLICY"
    codes = list(fail_codes)
    for reason, fragments in _CAUSE_PRECEDENCE:
        if any(fragment in code for code in codes for fragment in fragments):
            return reason
    return "NO_ELIGIBLE_PLAYERS"


def prize_type_score(prize: Prize) -> int:
    if prize.has_trophy:
        return 3
    if prize.has_medal:
        return 2
    return 0


def prize_type_label(prize: Prize) -> str:
    score = prize_type_score(prize)
    if score == 3:
        return "trophy"
    if score == 2:
        return "medal"
    return "other"


def prize_type(prize: Prize) -> str:
    if (prize.cash_amount or 0) > 0:
        return "cash"
    return prize_type_label(prize)


def ordinal(place: int) -> str:
    if 10 <= place % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(place % 10, "th")
    return f"{place}{suffix}"


def prize_label(category: Category, prize: Prize) -> str:
    return f"{ordinal(prize.place)} {category.name or category.category_id}".strip()


def _number(value: float) -> str:
    return f"{value:g}"


def _range_text(low: Optional[float], high: Optional[float]) -> str:
    if low is not None and high is not None:
        return f"{_number(low)}–{_number(high)}"
    if low is not None:
        return f"≥ {_number(low)}"
    if high is not None:
        return f"≤ {_number(high)}"
    return "(unbounded)"


def build_diagnosis(
    reason_code: str,
    category: Category,
    *,
    age_range: Tuple[Optional[int], Optional[int]] = (None, None),
    candidates_before: int = 0,
    policy: str = "single",
    player_count: Optional[int] = None,
) -> str:
    """One-line explanation referencing the category's declared bounds."""

    criteria = category.criteria
    if reason_code == "BLOCKED_BY_ONE_PRIZE_POLICY":
        return (
            f"{candidates_before} eligible player(s) already hold a prize "
            f"under the {policy} multi-prize policy"
        )
    if reason_code == "TOO_STRICT_CRITERIA_RATING":
        if criteria.unrated_only:
            return "Unrated-only category excludes all rated players"
        return f"Rating band {_range_text(criteria.min_rating, criteria.max_rating)} excludes all players"
    if reason_code == "TOO_STRICT_CRITERIA_AGE":
        low, high = age_range
        if low is None and high is None and category.is_youngest:
            return "No players with a date of birth for youngest ranking"
        return f"Age band {_range_text(low, high)} excludes all players"
    if reason_code == "TOO_STRICT_CRITERIA_GENDER":
        if category.category_type == "youngest_female" or criteria.gender == "F":
            return "Female-only category but no players recorded as female"
        return "Gender requirement excludes all players"
    if reason_code == "TOO_STRICT_CRITERIA_LOCATION":
        parts = []
        for label, allowed in (
            ("states", criteria.allowed_states),
            ("cities", criteria.allowed_cities),
            ("clubs", criteria.allowed_clubs),
        ):
            if allowed:
                parts.append(f"{label}: {', '.join(allowed)}")
        return f"Location filter ({'; '.join(parts)}) excludes all players"
    if reason_code == "TOO_STRICT_CRITERIA_TYPE_OR_GROUP":
        parts = []
        for label, allowed in (
            ("types", criteria.allowed_types),
            ("groups", criteria.allowed_groups),
            ("disabilities", criteria.allowed_disabilities),
        ):
            if allowed:
                parts.append(f"{label}: {', '.join(allowed)}")
        return f"Label filter ({'; '.join(parts)}) excludes all players"
    if player_count == 0:
        return "No players in the tournament"
    return "No players match the category criteria"


def summarize_categories(
    coverage: Sequence[CoverageEntry],
    categories: Sequence[Category],
) -> List[CategorySummary]:
    """Group coverage entries by category in brochure order."""

    by_category: "OrderedDict[str, List[CoverageEntry]]" = OrderedDict()
    for entry in coverage:
        by_category.setdefault(entry.category_id, []).append(entry)

    lookup = {category.category_id: category for category in categories}
    summaries: List[CategorySummary] = []
    for category_id, entries in by_category.items():
        category = lookup.get(category_id)
        filled = sum(1 for entry in entries if not entry.is_unfilled)
        summaries.append(
            CategorySummary(
                category_id=category_id,
                category_name=entries[0].category_name,
                order_idx=category.order_idx if category is not None else 0,
                is_main=entries[0].is_main,
                total_prizes=len(entries),
                filled_prizes=filled,
                unfilled_prizes=len(entries) - filled,
                entries=sorted(entries, key=lambda entry: (entry.prize_place, entry.prize_id)),
            )
        )
    summaries.sort(key=lambda summary: (summary.order_idx, summary.category_id))
    return summaries


def find_suspicious_entries(coverage: Sequence[CoverageEntry]) -> List[CoverageEntry]:
    return [
        entry
        for entry in coverage
        if entry.is_blocked_by_one_prize
        or (entry.is_unfilled and entry.candidates_before_one_prize == 0)
    ]


def build_rca_rows(
    coverage: Sequence[CoverageEntry],
    final_winners: Sequence[Winner],
    players: Sequence[Player],
    overrides: Sequence[ManualOverride] = (),
) -> List[RcaRow]:
    """Compare preview winners from ``coverage`` with committed winners."""

    names: Mapping[str, str] = {player.player_id: player.name for player in players}
    final_by_prize = {winner.prize_id: winner for winner in final_winners}
    override_reasons = {override.prize_id: override.reason for override in overrides}

    rows: List[RcaRow] = []
    for entry in coverage:
        final = final_by_prize.get(entry.prize_id)
        preview_id = entry.winner_player_id
        final_id = final.player_id if final is not None else None
        override_reason: Optional[str] = None
        if preview_id is None and final_id is None:
            status = "NO_ELIGIBLE_WINNER"
        elif preview_id == final_id:
            status = "MATCH"
        else:
            status = "OVERRIDDEN"
            override_reason = override_reasons.get(entry.prize_id)
            if override_reason is None and final is not None and final.is_manual:
                override_reason = "manual_override"
        rows.append(
            RcaRow(
                prize_id=entry.prize_id,
                category_name=entry.category_name,
                prize_label=entry.prize_label,
                preview_player_id=preview_id,
                preview_player_name=names.get(preview_id) if preview_id else None,
                final_player_id=final_id,
                final_player_name=names.get(final_id) if final_id else None,
                status=status,
                override_reason=override_reason,
                reason_code=entry.reason_code,
            )
        )
    return rows
