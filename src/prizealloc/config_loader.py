"""Load allocation input documents and persist results."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any, List, Optional

from prizealloc.config.rules import AllocationRules, resolve_age_reference_date, rules_from_mapping
from prizealloc.models import Category, Player
from prizealloc.schemas import AllocationResult, ManualOverride


class AllocationInputError(ValueError):
    """Raised when an input document has the wrong shape."""


def _parse_date(name: str, value: Any) -> Optional[date]:
    if value in (None, ""):
        return None
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError as exc:
        raise AllocationInputError(f"{name} must be an ISO date, got {value!r}") from exc


@dataclass
class AllocationInput:
    players: List[Player]
    categories: List[Category]
    rules: AllocationRules = field(default_factory=AllocationRules)
    reference_date: Optional[date] = None
    tournament_start_date: Optional[date] = None
    overrides: List[ManualOverride] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> "AllocationInput":
        if not isinstance(data, dict):
            raise AllocationInputError("Allocation input must be a JSON object")
        for key in ("players", "categories"):
            if not isinstance(data.get(key), list):
                raise AllocationInputError(f"Allocation input requires a '{key}' list")
        overrides = data.get("overrides") or []
        if not isinstance(overrides, list):
            raise AllocationInputError("'overrides' must be a list")
        return cls(
            players=[Player.model_validate(item) for item in data["players"]],
            categories=[Category.model_validate(item) for item in data["categories"]],
            rules=rules_from_mapping(data.get("rules")),
            reference_date=_parse_date("reference_date", data.get("reference_date")),
            tournament_start_date=_parse_date("tournament_start_date", data.get("tournament_start_date")),
            overrides=[ManualOverride.model_validate(item) for item in overrides],
        )

    @classmethod
    def load(cls, path: Path) -> "AllocationInput":
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise AllocationInputError(f"{path} is not valid JSON: {exc}") from exc
        return cls.from_dict(data)

    def resolve_reference_date(self) -> date:
        """Explicit reference date wins, else the age cutoff for the tournament start."""

        if self.reference_date is not None:
            return self.reference_date
        if self.tournament_start_date is not None:
            return resolve_age_reference_date(self.rules, self.tournament_start_date)
        raise AllocationInputError("Allocation input needs 'reference_date' or 'tournament_start_date'")


def load_allocation_input(path: Path) -> AllocationInput:
    return AllocationInput.load(Path(path))


def save_result(result: AllocationResult, path: Path) -> None:
    path.write_text(result.model_dump_json(indent=2), encoding="utf-8")
