"""Canonical player models shared across the eligibility and allocation layers."""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic.config import ConfigDict


logger = logging.getLogger(__name__)

_MALE_TOKENS = {"m", "male", "boy", "boys", "man", "men"}
_FEMALE_TOKENS = {"f", "female", "girl", "girls", "woman", "women", "w"}


def normalize_gender(value: Any) -> Optional[str]:
    """Collapse free-form gender values to ``"M"``, ``"F"`` or ``None``."""

    if value is None:
        return None
    token = str(value).strip().lower()
    if token in _MALE_TOKENS:
        return "M"
    if token in _FEMALE_TOKENS:
        return "F"
    return None


class Player(BaseModel):
    """Normalized tournament entrant consumed by the allocation engine."""

    player_id: str = Field(..., min_length=1)
    name: str = ""
    rank: Optional[int] = None
    rating: Optional[float] = None
    dob: Optional[date] = None
    gender: Optional[str] = None
    state: Optional[str] = None
    city: Optional[str] = None
    club: Optional[str] = None
    type_label: Optional[str] = None
    group_label: Optional[str] = None
    disability: Optional[str] = None
    unrated: bool = False
    fide_id: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @field_validator("gender", mode="before")
    @classmethod
    def _coerce_gender(cls, value: Any) -> Optional[str]:
        return normalize_gender(value)

    @field_validator("dob", mode="before")
    @classmethod
    def _coerce_dob(cls, value: Any) -> Any:
        # Malformed dates become "missing" so the age dimension fails instead of the run.
        if value in (None, ""):
            return None
        if isinstance(value, date):
            return value
        text = str(value).strip()[:10]
        try:
            return date.fromisoformat(text)
        except ValueError:
            logger.warning("Ignoring unparsable date of birth %r", value)
            return None

    @field_validator("rating", mode="before")
    @classmethod
    def _coerce_rating(cls, value: Any) -> Optional[float]:
        if value in (None, ""):
            return None
        try:
            return float(value)
        except (TypeError, ValueError):
            logger.warning("Ignoring non-numeric rating %r", value)
            return None

    @property
    def is_unrated(self) -> bool:
        """True when flagged unrated or carrying no positive rating."""

        return self.unrated or self.rating is None or self.rating <= 0

    @property
    def effective_rating(self) -> float:
        return 0.0 if self.rating is None or self.rating <= 0 else self.rating
