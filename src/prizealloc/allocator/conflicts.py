"""Conflict records: true priority ties and rejected manual overrides."""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from prizealloc.allocator.eligibility import EffectiveAgeBand, EligibilityResult, evaluate_eligibility
from prizealloc.allocator.priority import QueuedPrize, prize_value_key
from prizealloc.config.rules import AllocationRules
from prizealloc.models import Player
from prizealloc.schemas import Conflict, ManualOverride, SuggestedAssignment


logger = logging.getLogger(__name__)


def detect_tie_conflicts(
    players: Sequence[Player],
    queue: Sequence[QueuedPrize],
    rules: AllocationRules,
    reference_date: date,
    age_bands: Optional[Mapping[str, EffectiveAgeBand]] = None,
) -> List[Conflict]:
    """Report prizes a player qualifies for that share an identical priority key.

    Caps are ignored; the prize id is not part of the compared key.
    """

    conflicts: List[Conflict] = []
    for player in players:
        cache: Dict[str, EligibilityResult] = {}
        groups: Dict[Tuple, List[str]] = defaultdict(list)
        for item in queue:
            category = item.category
            result = cache.get(category.category_id)
            if result is None:
                result = evaluate_eligibility(player, category, rules, reference_date, age_bands)
                cache[category.category_id] = result
            if result.eligible:
                groups[prize_value_key(category, item.prize, rules)].append(item.prize.prize_id)
        for key in sorted(groups):
            prize_ids = groups[key]
            if len(prize_ids) < 2:
                continue
            conflicts.append(
                Conflict(
                    conflict_id=f"tie:{player.player_id}:{'+'.join(sorted(prize_ids))}",
                    type="tie",
                    impacted_players=[player.player_id],
                    impacted_prizes=sorted(prize_ids),
                    reasons=["identical_prize_priority"],
                    suggested=None,
                )
            )
    if conflicts:
        logger.info("Detected %d priority tie conflict(s)", len(conflicts))
    return conflicts


def invalid_override_conflict(override: ManualOverride, reason: str) -> Conflict:
    logger.warning(
        "Rejected manual override prize=%s player=%s: %s",
        override.prize_id,
        override.player_id,
        reason,
    )
    return Conflict(
        conflict_id=f"override_invalid:{override.prize_id}:{override.player_id}",
        type="override_invalid",
        impacted_players=[override.player_id],
        impacted_prizes=[override.prize_id],
        reasons=[reason],
    )


def duplicate_override_conflict(override: ManualOverride, existing_player_id: str) -> Conflict:
    logger.warning(
        "Duplicate manual override for prize=%s (player=%s already assigned %s)",
        override.prize_id,
        override.player_id,
        existing_player_id,
    )
    return Conflict(
        conflict_id=f"override_duplicate:{override.prize_id}:{override.player_id}",
        type="override_duplicate",
        impacted_players=[existing_player_id, override.player_id],
        impacted_prizes=[override.prize_id],
        reasons=["duplicate_override"],
    )


def ineligible_override_conflict(
    override: ManualOverride,
    fail_codes: Sequence[str],
    suggested_player_id: Optional[str],
) -> Conflict:
    logger.warning(
        "Manual override prize=%s player=%s is ineligible: %s",
        override.prize_id,
        override.player_id,
        ",".join(fail_codes),
    )
    suggested = None
    if suggested_player_id is not None:
        suggested = SuggestedAssignment(prize_id=override.prize_id, player_id=suggested_player_id)
    return Conflict(
        conflict_id=f"override_ineligible:{override.prize_id}:{override.player_id}",
        type="override_ineligible",
        impacted_players=[override.player_id],
        impacted_prizes=[override.prize_id],
        reasons=list(fail_codes),
        suggested=suggested,
    )
