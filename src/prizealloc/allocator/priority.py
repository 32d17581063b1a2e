"""Total order over (category, prize) pairs deciding allocation sequence."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Tuple

from prizealloc.config.rules import AllocationRules
from prizealloc.models import Category, Prize


_COMPONENT_WEIGHTS = (4, 2, 1)
_COMPONENT_NAMES = {"T": "trophy", "G": "gift", "M": "medal"}


@dataclass(frozen=True)
class QueuedPrize:
    category: Category
    prize: Prize


def _has_component(prize: Prize, letter: str) -> bool:
    if letter == "T":
        return prize.has_trophy
    if letter == "G":
        return prize.has_gift
    return prize.has_medal


def bundle_score(prize: Prize, mode: str = "TGM") -> int:
    """Weighted non-cash score; earlier letters in ``mode`` dominate later ones."""

    return sum(
        weight
        for weight, letter in zip(_COMPONENT_WEIGHTS, mode)
        if _has_component(prize, letter)
    )


def bundle_label(prize: Prize, mode: str = "TGM") -> str:
    parts = [_COMPONENT_NAMES[letter] for letter in mode if _has_component(prize, letter)]
    return "+".join(parts) if parts else "none"


def prize_value_key(category: Category, prize: Prize, rules: AllocationRules) -> Tuple:
    """Priority key without the final prize-id tie-break."""

    cash = -float(prize.cash_amount or 0)
    bundle = -bundle_score(prize, rules.non_cash_priority_mode)
    main = -1 if category.is_main else 0
    if rules.main_vs_side_priority_mode == "main_first":
        return (cash, bundle, main, prize.place, category.order_idx)
    return (cash, bundle, prize.place, main, category.order_idx)


def prize_priority_key(category: Category, prize: Prize, rules: AllocationRules) -> Tuple:
    return prize_value_key(category, prize, rules) + (prize.prize_id,)


def compare_prizes(a: QueuedPrize, b: QueuedPrize, rules: AllocationRules) -> int:
    """Three-way comparison; negative when ``a`` is allocated first."""

    key_a = prize_priority_key(a.category, a.prize, rules)
    key_b = prize_priority_key(b.category, b.prize, rules)
    return (key_a > key_b) - (key_a < key_b)


def build_prize_queue(categories: Iterable[Category], rules: AllocationRules) -> List[QueuedPrize]:
    """Active prizes of active categories in allocation order."""

    queue = [
        QueuedPrize(category=category, prize=prize)
        for category in categories
        if category.is_active
        for prize in category.active_prizes
    ]
    queue.sort(key=lambda item: prize_priority_key(item.category, item.prize, rules))
    return queue


def priority_explanation(category: Category, prize: Prize, rules: AllocationRules) -> str:
    cash = prize.cash_amount or 0
    cash_text = f"{cash:g}"
    return (
        f"cash={cash_text} bundle={bundle_label(prize, rules.non_cash_priority_mode)} "
        f"place={prize.place} main={'yes' if category.is_main else 'no'} "
        f"order={category.order_idx} mode={rules.main_vs_side_priority_mode}"
    )
