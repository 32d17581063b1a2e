"""Multi-prize policy gate."""

from __future__ import annotations

from typing import Sequence

from prizealloc.models import Category


def can_player_take_prize(prior_categories: Sequence[Category], category: Category, policy: str) -> bool:
    """Whether a player holding prizes from ``prior_categories`` may also win in ``category``.

    No policy lets a player take two places in the same category.
    """

    if any(prior.category_id == category.category_id for prior in prior_categories):
        return False
    if policy == "unlimited":
        return True
    if policy == "main_plus_one_side":
        if len(prior_categories) >= 2:
            return False
        return all(prior.is_main != category.is_main for prior in prior_categories)
    return not prior_categories
