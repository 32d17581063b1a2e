from __future__ import annotations

from datetime import date
from typing import List, Literal

from pydantic import BaseModel, Field


class ManualOverride(BaseModel):
    prize_id: str = Field(..., min_length=1)
    player_id: str = Field(..., min_length=1)
    force: bool = False
    reason: str | None = None


class Winner(BaseModel):
    prize_id: str
    player_id: str
    reasons: List[str]
    is_manual: bool = False


class UnfilledEntry(BaseModel):
    prize_id: str
    reason_codes: List[str]
    reason_code: str
    diagnosis: str


class SuggestedAssignment(BaseModel):
    prize_id: str
    player_id: str


class Conflict(BaseModel):
    conflict_id: str
    type: Literal["tie", "override_ineligible", "override_invalid", "override_duplicate"]
    impacted_players: List[str]
    impacted_prizes: List[str]
    reasons: List[str]
    suggested: SuggestedAssignment | None = None


class CoverageEntry(BaseModel):
    category_id: str
    category_name: str
    prize_id: str
    prize_place: int
    prize_label: str
    prize_type: Literal["cash", "trophy", "medal", "other"]
    amount: float
    is_main: bool
    winner_player_id: str | None = None
    winner_rank: int | None = None
    winner_rating: float | None = None
    winner_name: str | None = None
    candidates_before_one_prize: int
    candidates_after_one_prize: int
    reason_code: str | None = None
    reason_details: str | None = None
    raw_fail_codes: List[str] = Field(default_factory=list)
    diagnosis_summary: str | None = None
    is_unfilled: bool
    is_blocked_by_one_prize: bool
    priority_explanation: str


class CategorySummary(BaseModel):
    category_id: str
    category_name: str
    order_idx: int
    is_main: bool
    total_prizes: int
    filled_prizes: int
    unfilled_prizes: int
    entries: List[CoverageEntry]


class RcaRow(BaseModel):
    prize_id: str
    category_name: str
    prize_label: str
    preview_player_id: str | None = None
    preview_player_name: str | None = None
    final_player_id: str | None = None
    final_player_name: str | None = None
    status: Literal["MATCH", "OVERRIDDEN", "NO_ELIGIBLE_WINNER"]
    override_reason: str | None = None
    reason_code: str | None = None


class AllocationMeta(BaseModel):
    reference_date: date
    player_count: int
    category_count: int
    prize_count: int
    winner_count: int
    conflict_count: int
    unfilled_count: int


class AllocationResult(BaseModel):
    winners: List[Winner]
    conflicts: List[Conflict]
    unfilled: List[UnfilledEntry]
    coverage: List[CoverageEntry]
    meta: AllocationMeta
