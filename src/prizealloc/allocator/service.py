"""Greedy prize allocation over the prize-priority queue."""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Mapping, Optional, Sequence

from prizealloc.allocator.age_bands import derive_age_bands
from prizealloc.allocator.conflicts import (
    detect_tie_conflicts,
    duplicate_override_conflict,
    ineligible_override_conflict,
    invalid_override_conflict,
)
from prizealloc.allocator.coverage import (
    build_diagnosis,
    derive_reason_code,
    format_reason_code,
    prize_label,
    prize_type,
)
from prizealloc.allocator.eligibility import (
    EffectiveAgeBand,
    EligibilityObserver,
    EligibilityResult,
    age_bounds,
    evaluate_all,
    evaluate_eligibility,
    resolve_observer,
)
from prizealloc.allocator.policy import can_player_take_prize
from prizealloc.allocator.priority import QueuedPrize, build_prize_queue, priority_explanation, prize_priority_key
from prizealloc.allocator.tiebreak import order_candidates, tie_break_reason
from prizealloc.config.rules import AllocationRules, resolve_age_reference_date
from prizealloc.models import Category, Player
from prizealloc.schemas import (
    AllocationMeta,
    AllocationResult,
    Conflict,
    CoverageEntry,
    ManualOverride,
    UnfilledEntry,
    Winner,
)


logger = logging.getLogger(__name__)


@dataclass
class _RunState:
    """Mutable bookkeeping owned by a single allocation run."""

    winners: List[Winner] = field(default_factory=list)
    conflicts: List[Conflict] = field(default_factory=list)
    assigned: Dict[str, Winner] = field(default_factory=dict)
    won_categories: Dict[str, List[Category]] = field(default_factory=lambda: defaultdict(list))

    def record(self, winner: Winner, category: Category) -> None:
        self.winners.append(winner)
        self.assigned[winner.prize_id] = winner
        self.won_categories[winner.player_id].append(category)


def _coverage_entry(
    item: QueuedPrize,
    rules: AllocationRules,
    *,
    winner: Optional[Player],
    before: int,
    after: int,
    reason_code: Optional[str] = None,
    fail_codes: Sequence[str] = (),
    diagnosis: Optional[str] = None,
) -> CoverageEntry:
    category, prize = item.category, item.prize
    return CoverageEntry(
        category_id=category.category_id,
        category_name=category.name,
        prize_id=prize.prize_id,
        prize_place=prize.place,
        prize_label=prize_label(category, prize),
        prize_type=prize_type(prize),
        amount=float(prize.cash_amount or 0),
        is_main=category.is_main,
        winner_player_id=winner.player_id if winner else None,
        winner_rank=winner.rank if winner else None,
        winner_rating=winner.rating if winner else None,
        winner_name=winner.name if winner else None,
        candidates_before_one_prize=before,
        candidates_after_one_prize=after,
        reason_code=reason_code,
        reason_details=format_reason_code(reason_code) if reason_code else None,
        raw_fail_codes=list(fail_codes),
        diagnosis_summary=diagnosis,
        is_unfilled=winner is None,
        is_blocked_by_one_prize=reason_code == "BLOCKED_BY_ONE_PRIZE_POLICY",
        priority_explanation=priority_explanation(category, prize, rules),
    )


def _apply_overrides(
    overrides: Sequence[ManualOverride],
    players: Sequence[Player],
    queue: Sequence[QueuedPrize],
    rules: AllocationRules,
    reference_date: date,
    age_bands: Mapping[str, EffectiveAgeBand],
    state: _RunState,
) -> None:
    by_prize = {item.prize.prize_id: item for item in queue}
    by_player = {player.player_id: player for player in players}

    for override in overrides:
        item = by_prize.get(override.prize_id)
        if item is None:
            state.conflicts.append(invalid_override_conflict(override, "unknown_prize"))
            continue
        player = by_player.get(override.player_id)
        if player is None:
            state.conflicts.append(invalid_override_conflict(override, "unknown_player"))
            continue
        existing = state.assigned.get(override.prize_id)
        if existing is not None:
            state.conflicts.append(duplicate_override_conflict(override, existing.player_id))
            continue
        if not override.force:
            result = evaluate_eligibility(player, item.category, rules, reference_date, age_bands)
            if not result.eligible:
                suggested = _top_candidate(players, item, rules, reference_date, age_bands, state)
                state.conflicts.append(
                    ineligible_override_conflict(
                        override,
                        result.fail_codes,
                        suggested.player_id if suggested else None,
                    )
                )
                continue
        reasons = ["manual_override"]
        if override.force:
            reasons.append("force_override")
        state.record(
            Winner(prize_id=override.prize_id, player_id=player.player_id, reasons=reasons, is_manual=True),
            item.category,
        )
        logger.info("Manual override prize=%s player=%s force=%s", override.prize_id, player.player_id, override.force)


def _top_candidate(
    players: Sequence[Player],
    item: QueuedPrize,
    rules: AllocationRules,
    reference_date: date,
    age_bands: Mapping[str, EffectiveAgeBand],
    state: _RunState,
) -> Optional[Player]:
    eligible = [
        player
        for player in players
        if evaluate_eligibility(player, item.category, rules, reference_date, age_bands).eligible
        and can_player_take_prize(state.won_categories.get(player.player_id, []), item.category, rules.multi_prize_policy)
    ]
    ordered = order_candidates(eligible, item.category, rules.tie_break_strategy)
    return ordered[0] if ordered else None


def _unfilled_reason_codes(fail_codes: Sequence[str], capped: bool) -> List[str]:
    codes = sorted(set(fail_codes))
    if capped:
        codes.append("already_won")
    return codes or ["no_eligible_players"]


def allocate_prizes(
    players: Sequence[Player],
    categories: Sequence[Category],
    rules: Optional[AllocationRules] = None,
    *,
    reference_date: date,
    overrides: Sequence[ManualOverride] = (),
    observer: Optional[EligibilityObserver] = None,
) -> AllocationResult:
    """Run one deterministic greedy allocation pass.

    Prizes are processed in priority order; each goes to the best-ranked (or
    youngest) eligible player the multi-prize policy still admits. Prizes
    with no admissible player become unfilled entries with a diagnosis.
    """

    rules = rules or AllocationRules()
    observer = resolve_observer(rules, observer)
    active_categories = [category for category in categories if category.is_active]
    age_bands: Dict[str, EffectiveAgeBand] = {}
    if rules.age_band_policy == "non_overlapping":
        age_bands = derive_age_bands(active_categories)

    queue = build_prize_queue(active_categories, rules)
    if queue:
        first = queue[0]
        logger.info(
            "Prize queue built: %d prizes, first=%s key=%s",
            len(queue),
            first.prize.prize_id,
            prize_priority_key(first.category, first.prize, rules),
        )
    else:
        logger.info("Prize queue is empty")

    state = _RunState()
    _apply_overrides(overrides, players, queue, rules, reference_date, age_bands, state)

    unfilled: List[UnfilledEntry] = []
    coverage: List[CoverageEntry] = []
    for item in queue:
        category, prize = item.category, item.prize
        results: Dict[str, EligibilityResult] = evaluate_all(
            players, category, rules, reference_date, age_bands, observer
        )
        before = [player for player in players if results[player.player_id].eligible]

        manual = state.assigned.get(prize.prize_id)
        if manual is not None:
            manual_player = next(player for player in players if player.player_id == manual.player_id)
            coverage.append(
                _coverage_entry(item, rules, winner=manual_player, before=len(before), after=len(before))
            )
            continue

        after = [
            player
            for player in before
            if can_player_take_prize(state.won_categories.get(player.player_id, []), category, rules.multi_prize_policy)
        ]

        if not after:
            fail_codes = sorted({code for result in results.values() for code in result.fail_codes})
            reason_code = derive_reason_code(fail_codes, len(before), len(after))
            diagnosis = build_diagnosis(
                reason_code,
                category,
                age_range=age_bounds(category, age_bands),
                candidates_before=len(before),
                policy=rules.multi_prize_policy,
                player_count=len(players),
            )
            unfilled.append(
                UnfilledEntry(
                    prize_id=prize.prize_id,
                    reason_codes=_unfilled_reason_codes(fail_codes, capped=bool(before)),
                    reason_code=reason_code,
                    diagnosis=diagnosis,
                )
            )
            coverage.append(
                _coverage_entry(
                    item,
                    rules,
                    winner=None,
                    before=len(before),
                    after=0,
                    reason_code=reason_code,
                    fail_codes=fail_codes,
                    diagnosis=diagnosis,
                )
            )
            logger.warning("Unfilled prize=%s category=%s: %s", prize.prize_id, category.category_id, diagnosis)
            continue

        ordered = order_candidates(after, category, rules.tie_break_strategy)
        winner = ordered[0]
        tie_reason = tie_break_reason(ordered, category, rules.tie_break_strategy)
        reasons = ["auto", "youngest" if category.is_youngest else "rank", "brochure_order", "value_tier"]
        reasons.extend(results[winner.player_id].pass_codes)
        if tie_reason:
            reasons.append(tie_reason)
        state.record(Winner(prize_id=prize.prize_id, player_id=winner.player_id, reasons=reasons), category)
        coverage.append(_coverage_entry(item, rules, winner=winner, before=len(before), after=len(after)))
        logger.info(
            "Awarded prize=%s to player=%s rank=%s tie_break=%s",
            prize.prize_id,
            winner.player_id,
            winner.rank,
            tie_reason or "-",
        )

    conflicts = state.conflicts + detect_tie_conflicts(players, queue, rules, reference_date, age_bands)
    meta = AllocationMeta(
        reference_date=reference_date,
        player_count=len(players),
        category_count=len(active_categories),
        prize_count=len(queue),
        winner_count=len(state.winners),
        conflict_count=len(conflicts),
        unfilled_count=len(unfilled),
    )
    logger.info(
        "Allocation finished: %d winners, %d conflicts, %d unfilled",
        meta.winner_count,
        meta.conflict_count,
        meta.unfilled_count,
    )
    return AllocationResult(
        winners=state.winners,
        conflicts=conflicts,
        unfilled=unfilled,
        coverage=coverage,
        meta=meta,
    )


def allocate_for_tournament(
    players: Sequence[Player],
    categories: Sequence[Category],
    rules: Optional[AllocationRules] = None,
    *,
    tournament_start: date,
    overrides: Sequence[ManualOverride] = (),
    observer: Optional[EligibilityObserver] = None,
) -> AllocationResult:
    """Resolve the age cutoff from the tournament start, then allocate."""

    rules = rules or AllocationRules()
    reference_date = resolve_age_reference_date(rules, tournament_start)
    return allocate_prizes(
        players,
        categories,
        rules,
        reference_date=reference_date,
        overrides=overrides,
        observer=observer,
    )
