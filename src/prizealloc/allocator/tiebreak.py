"""Orderings over eligible players for a single prize."""

from __future__ import annotations

import sys
from typing import Callable, List, Optional, Sequence, Tuple

from prizealloc.models import Category, Player


_MISSING_RANK = sys.maxsize

PlayerKey = Callable[[Player], Tuple]


def _rank(player: Player) -> int:
    return player.rank if player.rank is not None else _MISSING_RANK


def _rating(player: Player) -> float:
    return player.effective_rating


def standard_sort_key(strategy: Sequence[str]) -> PlayerKey:
    """Rank ascending, then each configured field only on an exact tie."""

    def key(player: Player) -> Tuple:
        parts: List = [_rank(player)]
        for field_name in strategy:
            if field_name == "rating":
                parts.append(-_rating(player))
            elif field_name == "name":
                parts.append(player.name or "")
        return tuple(parts)

    return key


def youngest_sort_key(player: Player) -> Tuple:
    # Latest birth date first; players without one sort last.
    dob_order = -player.dob.toordinal() if player.dob is not None else 0
    return (player.dob is None, dob_order, _rank(player), -_rating(player), player.name or "")


def sort_key_for(category: Category, strategy: Sequence[str]) -> PlayerKey:
    return youngest_sort_key if category.is_youngest else standard_sort_key(strategy)


def order_candidates(players: Sequence[Player], category: Category, strategy: Sequence[str]) -> List[Player]:
    """Stable sort so an empty strategy keeps encounter order on rank ties."""

    return sorted(players, key=sort_key_for(category, strategy))


def tie_break_reason(ordered: Sequence[Player], category: Category, strategy: Sequence[str]) -> Optional[str]:
    """Name the field that separated the winner from the runner-up on an equal rank."""

    if category.is_youngest or len(ordered) < 2:
        return None
    winner, runner_up = ordered[0], ordered[1]
    if _rank(winner) != _rank(runner_up):
        return None
    for field_name in strategy:
        if field_name == "rating" and _rating(winner) != _rating(runner_up):
            return "tie_break_rating"
        if field_name == "name" and (winner.name or "") != (runner_up.name or ""):
            return "tie_break_name"
    return None
