"""Category, prize and criteria models for the allocation engine."""

from __future__ import annotations

import logging
from typing import Any, Dict, Literal, Mapping, Optional, Tuple

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic.config import ConfigDict


logger = logging.getLogger(__name__)

GenderRequirement = Literal["F", "M", "M_OR_UNKNOWN"]
CategoryType = Literal["standard", "youngest_male", "youngest_female"]

_TRUE_STRINGS = {"1", "true", "yes", "y", "on"}
_FALSE_STRINGS = {"0", "false", "no", "n", "off", ""}
_OPEN_GENDER_TOKENS = {"", "OPEN", "ANY", "ALL", "NONE", "MIXED"}

# Legacy criteria keys -> closed field names.
_LEGACY_CRITERIA_KEYS: Dict[str, str] = {
    "allowed_disability": "allowed_disabilities",
    "disability_types": "allowed_disabilities",
    "type_labels": "allowed_types",
    "allowed_type_labels": "allowed_types",
    "group_labels": "allowed_groups",
    "allowed_group_labels": "allowed_groups",
    "states": "allowed_states",
    "cities": "allowed_cities",
    "clubs": "allowed_clubs",
    "gender_requirement": "gender",
    "min_rating_inclusive": "min_rating",
    "max_rating_inclusive": "max_rating",
}


def coerce_bool(value: Any) -> Optional[bool]:
    """Interpret persisted booleans, including ``"yes"``/``"1"`` strings."""

    if value is None or isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    token = str(value).strip().lower()
    if token in _TRUE_STRINGS:
        return True
    if token in _FALSE_STRINGS:
        return False
    raise ValueError(f"Cannot interpret {value!r} as a boolean")


def _as_tuple(value: Any) -> Tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        value = value.split(",")
    return tuple(str(item).strip() for item in value if str(item).strip())


class Prize(BaseModel):
    """Single awardable prize inside a category."""

    prize_id: str = Field(..., min_length=1)
    place: int = 1
    cash_amount: float = 0.0
    has_trophy: bool = False
    has_medal: bool = False
    gift_items: Tuple[str, ...] = ()
    is_active: bool = True

    model_config = ConfigDict(frozen=True)

    @field_validator("cash_amount", mode="before")
    @classmethod
    def _coerce_cash(cls, value: Any) -> float:
        return 0.0 if value in (None, "") else value

    @field_validator("gift_items", mode="before")
    @classmethod
    def _coerce_gifts(cls, value: Any) -> Tuple[str, ...]:
        return _as_tuple(value)

    @property
    def has_gift(self) -> bool:
        return bool(self.gift_items)


class CategoryCriteria(BaseModel):
    """Closed set of eligibility bounds a category may declare."""

    min_age: Optional[int] = None
    max_age: Optional[int] = None
    min_rating: Optional[float] = None
    max_rating: Optional[float] = None
    unrated_only: bool = False
    include_unrated: Optional[bool] = None
    gender: Optional[GenderRequirement] = None
    allowed_states: Tuple[str, ...] = ()
    allowed_cities: Tuple[str, ...] = ()
    allowed_clubs: Tuple[str, ...] = ()
    allowed_types: Tuple[str, ...] = ()
    allowed_groups: Tuple[str, ...] = ()
    allowed_disabilities: Tuple[str, ...] = ()
    state_aliases: Dict[str, Tuple[str, ...]] = Field(default_factory=dict)
    city_aliases: Dict[str, Tuple[str, ...]] = Field(default_factory=dict)
    club_aliases: Dict[str, Tuple[str, ...]] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)

    @field_validator("gender", mode="before")
    @classmethod
    def _coerce_gender(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        token = str(value).strip().upper()
        if token in _OPEN_GENDER_TOKENS:
            return None
        if token in {"FEMALE", "GIRL", "GIRLS", "W"}:
            return "F"
        if token in {"MALE", "BOY", "BOYS"}:
            return "M"
        return token

    @field_validator("unrated_only", "include_unrated", mode="before")
    @classmethod
    def _coerce_flags(cls, value: Any) -> Optional[bool]:
        return coerce_bool(value)

    @field_validator(
        "allowed_states",
        "allowed_cities",
        "allowed_clubs",
        "allowed_types",
        "allowed_groups",
        "allowed_disabilities",
        mode="before",
    )
    @classmethod
    def _coerce_lists(cls, value: Any) -> Tuple[str, ...]:
        return _as_tuple(value)

    @field_validator("state_aliases", "city_aliases", "club_aliases", mode="before")
    @classmethod
    def _coerce_aliases(cls, value: Any) -> Dict[str, Tuple[str, ...]]:
        if not value:
            return {}
        return {str(canonical): _as_tuple(aliases) for canonical, aliases in dict(value).items()}

    @property
    def is_rating_aware(self) -> bool:
        return self.min_rating is not None or self.max_rating is not None or self.unrated_only

    @classmethod
    def from_legacy(cls, mapping: Optional[Mapping[str, Any]]) -> "CategoryCriteria":
        """Build criteria from a loosely typed persisted document.

        Known legacy spellings are renamed to their closed field, unknown keys
        are dropped with a debug log so the evaluator only sees named fields.
        """

        if not mapping:
            return cls()
        known = set(cls.model_fields)
        data: Dict[str, Any] = {}
        for key, value in mapping.items():
            target = _LEGACY_CRITERIA_KEYS.get(key, key)
            if target not in known:
                logger.debug("Ignoring unknown criteria key %s", key)
                continue
            if value is None and target not in {"include_unrated", "gender"}:
                continue
            data[target] = value
        return cls(**data)


class Category(BaseModel):
    """Named eligibility bucket holding an ordered list of prizes."""

    category_id: str = Field(..., min_length=1)
    name: str = ""
    is_main: bool = False
    order_idx: int = 0
    is_active: bool = True
    category_type: CategoryType = "standard"
    criteria: CategoryCriteria = Field(default_factory=CategoryCriteria)
    prizes: Tuple[Prize, ...] = ()

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="before")
    @classmethod
    def _normalize_legacy(cls, data: Any) -> Any:
        if not isinstance(data, Mapping):
            return data
        data = dict(data)
        criteria = data.get("criteria")
        if criteria is None or isinstance(criteria, Mapping):
            criteria = CategoryCriteria.from_legacy(criteria)
            data["criteria"] = criteria
        raw_type = data.get("category_type")
        if raw_type is None:
            data.pop("category_type", None)
            return data
        token = str(raw_type).strip().lower()
        if token in {"", "standard", "normal", "rank"}:
            data["category_type"] = "standard"
        elif token == "youngest":
            female = isinstance(criteria, CategoryCriteria) and criteria.gender == "F"
            data["category_type"] = "youngest_female" if female else "youngest_male"
        else:
            data["category_type"] = token
        return data

    @property
    def is_youngest(self) -> bool:
        return self.category_type != "standard"

    @property
    def active_prizes(self) -> Tuple[Prize, ...]:
        return tuple(prize for prize in self.prizes if prize.is_active)
