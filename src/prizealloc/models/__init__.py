"""Input models consumed by the allocation engine."""

from .category import Category, CategoryCriteria, Prize, coerce_bool
from .player import Player, normalize_gender

__all__ = [
    "Category",
    "CategoryCriteria",
    "Player",
    "Prize",
    "coerce_bool",
    "normalize_gender",
]
