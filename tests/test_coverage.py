from datetime import date

from prizealloc.allocator import (
    allocate_prizes,
    build_rca_rows,
    derive_reason_code,
    find_suspicious_entries,
    format_reason_code,
    prize_type_label,
    prize_type_score,
    summarize_categories,
)
from prizealloc.allocator.coverage import build_diagnosis, ordinal, prize_label
from prizealloc.config import AllocationRules
from prizealloc.models import Category, CategoryCriteria, Player, Prize
from prizealloc.schemas import ManualOverride, Winner


REF = date(2024, 5, 1)


def _setup():
    players = [
        Player(player_id="p1", name="Vedant", rank=1, rating=1985, gender="M"),
        Player(player_id="p2", name="Saisha", rank=2, rating=1940, gender="F"),
    ]
    categories = [
        Category(
            category_id="main",
            name="Open",
            is_main=True,
            prizes=(
                Prize(prize_id="m1", place=1, cash_amount=1000, has_trophy=True),
                Prize(prize_id="m2", place=2, cash_amount=500),
            ),
        ),
        Category(
            category_id="girls",
            name="Under 14 Girls",
            order_idx=1,
            criteria=CategoryCriteria(gender="F"),
            prizes=(Prize(prize_id="g1", place=1, has_medal=True),),
        ),
    ]
    return players, categories


def test_derive_reason_code_precedence():
    assert derive_reason_code(["gender_mismatch", "age_above_max", "rating_below_min"], 0, 0) == "TOO_STRICT_CRITERIA_RATING"
    assert derive_reason_code(["gender_mismatch", "dob_missing"], 0, 0) == "TOO_STRICT_CRITERIA_AGE"
    assert derive_reason_code(["state_excluded", "gender_missing"], 0, 0) == "TOO_STRICT_CRITERIA_GENDER"
    assert derive_reason_code(["club_excluded", "group_excluded"], 0, 0) == "TOO_STRICT_CRITERIA_LOCATION"
    assert derive_reason_code(["disability_excluded"], 0, 0) == "TOO_STRICT_CRITERIA_TYPE_OR_GROUP"
    assert derive_reason_code([], 0, 0) == "NO_ELIGIBLE_PLAYERS"
    assert derive_reason_code(["rating_below_min"], 3, 0) == "BLOCKED_BY_ONE_PRIZE_POLICY"


def test_format_reason_code_labels_and_fallback():
    assert format_reason_code("TOO_STRICT_CRITERIA_AGE") == "No eligible winner (age criteria)"
    assert format_reason_code("gender_missing") == "Gender missing"
    assert format_reason_code("some_new_code") == "Some New Code"
    assert format_reason_code(None) == ""


def test_prize_type_helpers():
    assert prize_type_score(Prize(prize_id="t", has_trophy=True, has_medal=True)) == 3
    assert prize_type_score(Prize(prize_id="m", has_medal=True)) == 2
    assert prize_type_score(Prize(prize_id="g", gift_items=["Book"])) == 0
    assert prize_type_label(Prize(prize_id="m", has_medal=True)) == "medal"
    assert prize_type_label(Prize(prize_id="x")) == "other"


def test_prize_label_uses_ordinal_place():
    category = Category(category_id="u14g", name="Under 14 Girls")
    assert prize_label(category, Prize(prize_id="x", place=1)) == "1st Under 14 Girls"
    assert [ordinal(n) for n in (2, 3, 4, 11, 12, 13, 21, 22, 101)] == [
        "2nd", "3rd", "4th", "11th", "12th", "13th", "21st", "22nd", "101st",
    ]


def test_build_diagnosis_location_and_gender():
    category = Category(
        category_id="c",
        criteria=CategoryCriteria(allowed_states=["Goa"], allowed_cities=["Panaji", "Margao"]),
    )
    assert build_diagnosis("TOO_STRICT_CRITERIA_LOCATION", category) == (
        "Location filter (states: Goa; cities: Panaji, Margao) excludes all players"
    )
    girls = Category(category_id="g", criteria=CategoryCriteria(gender="F"))
    assert build_diagnosis("TOO_STRICT_CRITERIA_GENDER", girls) == (
        "Female-only category but no players recorded as female"
    )
    rated = Category(category_id="r", criteria=CategoryCriteria(min_rating=1800))
    assert build_diagnosis("TOO_STRICT_CRITERIA_RATING", rated) == "Rating band ≥ 1800 excludes all players"


def test_coverage_entries_carry_winner_and_priority_details():
    players, categories = _setup()
    result = allocate_prizes(players, categories, reference_date=REF)
    assert [entry.prize_id for entry in result.coverage] == ["m1", "m2", "g1"]

    first = result.coverage[0]
    assert first.prize_label == "1st Open"
    assert first.prize_type == "cash"
    assert first.winner_name == "Vedant"
    assert first.winner_rank == 1
    assert not first.is_unfilled
    assert first.priority_explanation.startswith("cash=1000 bundle=trophy")

    medal = result.coverage[2]
    assert medal.prize_type == "medal"
    assert medal.is_unfilled
    assert medal.reason_code == "BLOCKED_BY_ONE_PRIZE_POLICY"


def test_summarize_and_suspicious_entries():
    players, categories = _setup()
    result = allocate_prizes(players, categories, reference_date=REF)
    summaries = summarize_categories(result.coverage, categories)
    assert [summary.category_id for summary in summaries] == ["main", "girls"]
    assert (summaries[0].filled_prizes, summaries[0].unfilled_prizes) == (2, 0)
    assert (summaries[1].total_prizes, summaries[1].unfilled_prizes) == (1, 1)
    assert [entry.prize_id for entry in find_suspicious_entries(result.coverage)] == ["g1"]


def test_rca_rows_compare_preview_with_final():
    players, categories = _setup()
    preview = allocate_prizes(players, categories, AllocationRules(), reference_date=REF)
    final = [
        Winner(prize_id="m1", player_id="p1", reasons=["auto"]),
        Winner(prize_id="m2", player_id="p1", reasons=["manual_override"], is_manual=True),
    ]
    overrides = [ManualOverride(prize_id="m2", player_id="p1", reason="Organizer decision")]
    rows = build_rca_rows(preview.coverage, final, players, overrides)
    assert [(row.prize_id, row.status) for row in rows] == [
        ("m1", "MATCH"),
        ("m2", "OVERRIDDEN"),
        ("g1", "NO_ELIGIBLE_WINNER"),
    ]
    assert rows[1].preview_player_name == "Saisha"
    assert rows[1].final_player_name == "Vedant"
    assert rows[1].override_reason == "Organizer decision"
    assert rows[2].reason_code == "BLOCKED_BY_ONE_PRIZE_POLICY"
