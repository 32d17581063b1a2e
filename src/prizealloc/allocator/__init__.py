"""Allocation engine: eligibility, ordering, greedy assignment and diagnosis."""

from .age_bands import derive_age_bands
from .conflicts import detect_tie_conflicts
from .coverage import (
    build_rca_rows,
    derive_reason_code,
    find_suspicious_entries,
    format_reason_code,
    prize_type_label,
    prize_type_score,
    summarize_categories,
)
from .eligibility import (
    EffectiveAgeBand,
    EligibilityObserver,
    EligibilityResult,
    compute_age,
    evaluate_eligibility,
)
from .policy import can_player_take_prize
from .priority import QueuedPrize, build_prize_queue, compare_prizes
from .service import allocate_for_tournament, allocate_prizes
from .tiebreak import order_candidates

__all__ = [
    "EffectiveAgeBand",
    "EligibilityObserver",
    "EligibilityResult",
    "QueuedPrize",
    "allocate_for_tournament",
    "allocate_prizes",
    "build_prize_queue",
    "build_rca_rows",
    "can_player_take_prize",
    "compare_prizes",
    "compute_age",
    "derive_age_bands",
    "derive_reason_code",
    "detect_tie_conflicts",
    "evaluate_eligibility",
    "find_suspicious_entries",
    "format_reason_code",
    "order_candidates",
    "prize_type_label",
    "prize_type_score",
    "summarize_categories",
]
