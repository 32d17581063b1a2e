from datetime import date

from prizealloc.allocator.eligibility import (
    EffectiveAgeBand,
    alias_lookup_for,
    compute_age,
    evaluate_eligibility,
    include_unrated_tier,
    legacy_unrated_tier,
    unrated_allowed,
    unrated_only_tier,
)
from prizealloc.config import AllocationRules
from prizealloc.models import Category, CategoryCriteria, Player


REF = date(2024, 5, 1)


def _player(player_id="p1", **kwargs):
    kwargs.setdefault("name", player_id.upper())
    kwargs.setdefault("rank", 1)
    return Player(player_id=player_id, **kwargs)


def _category(category_id="c1", category_type="standard", **criteria):
    return Category(
        category_id=category_id,
        name=category_id,
        category_type=category_type,
        criteria=CategoryCriteria(**criteria),
    )


def _check(player, category, rules=None, **kwargs):
    return evaluate_eligibility(player, category, rules or AllocationRules(), REF, **kwargs)


def test_compute_age_borrows_month_and_day():
    assert compute_age(date(2010, 5, 1), REF) == 14
    assert compute_age(date(2010, 5, 2), REF) == 13
    assert compute_age(date(2010, 12, 31), REF) == 13


def test_female_category_fails_missing_gender():
    result = _check(_player(gender=None), _category(gender="F"))
    assert not result.eligible
    assert "gender_missing" in result.fail_codes


def test_female_category_rejects_male():
    result = _check(_player(gender="M"), _category(gender="F"))
    assert result.fail_codes == ("gender_mismatch",)


def test_male_requirement_admits_unknown_gender():
    for requirement in ("M", "M_OR_UNKNOWN"):
        assert _check(_player(gender=None), _category(gender=requirement)).eligible
        assert not _check(_player(gender="F"), _category(gender=requirement)).eligible


def test_open_gender_records_pass_code():
    result = _check(_player(gender="F"), _category())
    assert result.eligible
    assert "gender_open" in result.pass_codes


def test_youngest_female_implies_female_requirement():
    category = _category(category_type="youngest_female")
    result = _check(_player(gender="M", dob=date(2015, 1, 1)), category)
    assert "gender_mismatch" in result.fail_codes


def test_youngest_requires_dob_even_when_missing_allowed():
    rules = AllocationRules(allow_missing_dob_for_age=True)
    result = _check(_player(gender="M"), _category(category_type="youngest_male"), rules)
    assert result.fail_codes == ("dob_missing",)


def test_age_bounds_inclusive_and_exclusive():
    player = _player(dob=date(2010, 1, 1))  # 14 on REF
    category = _category(max_age=14)
    assert _check(player, category).eligible
    result = _check(player, category, AllocationRules(max_age_inclusive=False))
    assert result.fail_codes == ("age_above_max",)


def test_age_below_min():
    result = _check(_player(dob=date(2018, 1, 1)), _category(min_age=9, max_age=11))
    assert result.fail_codes == ("age_below_min",)


def test_missing_dob_fails_or_warns():
    category = _category(max_age=14)
    assert _check(_player(), category).fail_codes == ("dob_missing",)
    allowed = _check(_player(), category, AllocationRules(allow_missing_dob_for_age=True))
    assert allowed.eligible
    assert allowed.warn_codes == ("dob_missing_allowed",)


def test_strict_age_off_skips_age_dimension():
    result = _check(_player(dob=date(1990, 1, 1)), _category(max_age=8), AllocationRules(strict_age=False))
    assert result.eligible


def test_age_band_map_supersedes_raw_bounds():
    player = _player(dob=date(2016, 1, 1))  # 8
    category = _category(category_id="u11", max_age=11)
    bands = {"u11": EffectiveAgeBand("u11", 9, 11)}
    assert _check(player, category).eligible
    assert _check(player, category, age_bands=bands).fail_codes == ("age_below_min",)


def test_unrated_only_category():
    category = _category(unrated_only=True, max_rating=1400)
    rated = _check(_player(rating=1500, unrated=False), category)
    assert rated.fail_codes == ("rated_player_excluded_unrated_only",)
    assert _check(_player(unrated=True), category).eligible


def test_explicit_include_unrated_overrides_legacy():
    category = _category(max_rating=1600, include_unrated=False)
    assert _check(_player(rating=None), category).fail_codes == ("unrated_excluded",)
    category = _category(min_rating=1200, max_rating=1600, include_unrated=True)
    assert _check(_player(rating=0), category).eligible


def test_max_only_band_admits_unrated_by_default():
    result = _check(_player(rating=None), _category(max_rating=1600))
    assert result.eligible
    assert "rating_unrated_allowed" in result.pass_codes


def test_closed_band_excludes_unrated_unless_rule_allows():
    category = _category(min_rating=1200, max_rating=1400)
    assert _check(_player(rating=None), category).fail_codes == ("unrated_excluded",)
    assert _check(_player(rating=None), category, AllocationRules(allow_unrated_in_rating=True)).eligible


def test_rated_players_outside_band():
    category = _category(min_rating=1200, max_rating=1400)
    assert _check(_player(rating=1100), category).fail_codes == ("rating_below_min",)
    assert _check(_player(rating=1500), category).fail_codes == ("rating_above_max",)
    assert "rating_ok" in _check(_player(rating=1400), category).pass_codes


def test_unrated_tiers_are_ordered():
    rules = AllocationRules()
    criteria = CategoryCriteria(unrated_only=True)
    assert unrated_only_tier(criteria)
    assert include_unrated_tier(CategoryCriteria(include_unrated=False)) is False
    assert include_unrated_tier(CategoryCriteria()) is None
    assert legacy_unrated_tier(CategoryCriteria(max_rating=1500), rules)
    assert not legacy_unrated_tier(CategoryCriteria(min_rating=1000), rules)
    assert not unrated_allowed(CategoryCriteria(max_rating=1500, include_unrated=False), rules)


def test_state_alias_map_resolves():
    category = _category(allowed_states=["Maharashtra"], state_aliases={"Maharashtra": ["MH"]})
    result = _check(_player(state="MH"), category)
    assert result.eligible
    assert "state_ok" in result.pass_codes


def test_alias_lookup_is_built_once_per_alias_map():
    category = _category(allowed_states=["Maharashtra"], state_aliases={"Maharashtra": ["MH"]})
    first = alias_lookup_for(category.criteria.state_aliases)
    second = alias_lookup_for({"Maharashtra": ("MH",)})

    assert first is second
    assert first["mh"] == "maharashtra"
    assert alias_lookup_for({}) == {}
    for _ in range(3):
        assert _check(_player(state="mh"), category).eligible
    assert alias_lookup_for(category.criteria.state_aliases) is first


def test_builtin_state_codes_and_case_folding():
    category = _category(allowed_states=["karnataka "])
    assert _check(_player(state="KA"), category).eligible
    assert _check(_player(state="KARNATAKA"), category).eligible
    assert _check(_player(state="Goa"), category).fail_codes == ("state_excluded",)
    assert _check(_player(state=None), category).fail_codes == ("state_excluded",)


def test_city_and_club_lists():
    category = _category(allowed_cities=["Pune"], allowed_clubs=["XYZ Chess"], club_aliases={"XYZ Chess": ["XYZ"]})
    assert _check(_player(city="pune", club="xyz"), category).eligible
    result = _check(_player(city="Mumbai", club="ABC"), category)
    assert result.fail_codes == ("city_excluded", "club_excluded")


def test_type_group_disability_labels():
    category = _category(allowed_types=["Veteran"], allowed_groups=["School"], allowed_disabilities=["PH"])
    eligible = _player(type_label=" veteran", group_label="SCHOOL", disability="ph")
    assert _check(eligible, category).eligible
    result = _check(_player(type_label="Junior"), category)
    assert result.fail_codes == ("type_excluded", "group_excluded", "disability_excluded")


def test_observer_receives_every_check():
    seen = []
    category = _category(gender="F")
    _check(_player(gender="F"), category, observer=lambda p, c, r: seen.append((p.player_id, c.category_id, r.eligible)))
    assert seen == [("p1", "c1", True)]
