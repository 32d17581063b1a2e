from datetime import date

import pytest
from pydantic import ValidationError

from prizealloc.models import Category, CategoryCriteria, Player, Prize


def test_player_is_frozen():
    player = Player(player_id="p1", name="Aditi Sharma", rank=1, rating=1850)

    assert player.player_id == "p1"
    with pytest.raises((TypeError, ValidationError)):
        player.rank = 2  # type: ignore[misc]


def test_player_normalizes_gender_and_dates():
    player = Player(player_id="p1", gender="Girl", dob="2010-04-05T00:00:00")
    assert player.gender == "F"
    assert player.dob == date(2010, 4, 5)

    unknown = Player(player_id="p2", gender="?", dob="2010/00/00")
    assert unknown.gender is None
    assert unknown.dob is None


def test_player_unrated_detection():
    assert Player(player_id="a", rating=0).is_unrated
    assert Player(player_id="b").is_unrated
    assert Player(player_id="c", rating=1500, unrated=True).is_unrated
    assert not Player(player_id="d", rating=1500).is_unrated
    assert Player(player_id="e", rating="n/a").rating is None


def test_player_requires_id():
    with pytest.raises(ValidationError):
        Player(player_id="")


def test_prize_defaults_and_gift():
    prize = Prize(prize_id="x", cash_amount=None, gift_items="Chess clock, Book")
    assert prize.cash_amount == 0
    assert prize.gift_items == ("Chess clock", "Book")
    assert prize.has_gift


def test_criteria_from_legacy_maps_known_keys():
    criteria = CategoryCriteria.from_legacy(
        {
            "gender": "OPEN",
            "allowed_disability": ["PH"],
            "type_labels": "Veteran, Senior",
            "unrated_only": "yes",
            "include_unrated": None,
            "prefer_something": 1,
        }
    )
    assert criteria.gender is None
    assert criteria.allowed_disabilities == ("PH",)
    assert criteria.allowed_types == ("Veteran", "Senior")
    assert criteria.unrated_only is True
    assert criteria.include_unrated is None
    assert criteria.is_rating_aware


def test_category_youngest_type_follows_gender():
    girls = Category.model_validate(
        {"category_id": "yg", "category_type": "youngest", "criteria": {"gender": "F"}}
    )
    boys = Category.model_validate({"category_id": "yb", "category_type": "Youngest"})
    assert girls.category_type == "youngest_female"
    assert boys.category_type == "youngest_male"
    assert girls.is_youngest and boys.is_youngest


def test_category_rejects_unknown_gender_requirement():
    with pytest.raises(ValidationError):
        Category.model_validate({"category_id": "c", "criteria": {"gender": "X"}})


def test_category_active_prizes_skip_inactive():
    category = Category(
        category_id="c",
        prizes=(Prize(prize_id="a"), Prize(prize_id="b", is_active=False)),
    )
    assert [prize.prize_id for prize in category.active_prizes] == ["a"]
