"""Derivation of disjoint age bands for the non-overlapping age policy."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Dict, Iterable, List

from prizealloc.allocator.eligibility import EffectiveAgeBand
from prizealloc.models import Category


logger = logging.getLogger(__name__)


def derive_age_bands(categories: Iterable[Category]) -> Dict[str, EffectiveAgeBand]:
    """Assign each max-age bounded category a band ``[previous_max + 1, max]``.

    Categories are grouped by their declared max age, so siblings sharing a
    cutoff (boys/girls pairs) always receive the same band.
    """

    groups: Dict[int, List[Category]] = defaultdict(list)
    for category in categories:
        if category.criteria.max_age is not None:
            groups[category.criteria.max_age].append(category)

    bands: Dict[str, EffectiveAgeBand] = {}
    previous_max = -1
    for max_age in sorted(groups):
        members = groups[max_age]
        effective_min = previous_max + 1
        explicit_mins = [c.criteria.min_age for c in members if c.criteria.min_age is not None]
        if explicit_mins:
            effective_min = max(effective_min, min(explicit_mins))
        if effective_min > max_age:
            logger.warning(
                "Clamping age band for max_age=%d (%s): min %d exceeds max",
                max_age,
                ", ".join(c.category_id for c in members),
                effective_min,
            )
            effective_min = max_age
        for category in members:
            bands[category.category_id] = EffectiveAgeBand(
                category_id=category.category_id,
                min_age=effective_min,
                max_age=max_age,
            )
        previous_max = max_age
    return bands
