import logging

import pytest
from catalogs import (
    CATALOG,
    DEFAULT,
    CatalogLookup,
    InMemoryCatalog,
    age_group,
    all_default_thresholds,
    check_threshold_order,
)
from models import NutritionalThreshold, Recommendation, ValidationRange


def _threshold(id="t1", group="3-5", gender="male", red=12.0, yellow=13.0, green=16.0, active=True):
    return NutritionalThreshold(id=id, age_group=group, gender=gender,
                                red_max=red, yellow_max=yellow, green_max=green, is_active=active)


@pytest.mark.parametrize(
    "age, group",
    [(3, "3-5"), (5, "3-5"), (6, "6-10"), (10, "6-10"), (11, "11-17"), (17, "11-17"), (18, "18+"), (80, "18+")],
)
def test_age_group_bands(age, group):
    assert age_group(age) == group


def test_age_group_under_three_has_no_band():
    with pytest.raises(ValueError):
        age_group(2)


def test_empty_catalog_falls_back_to_tagged_default(lookup):
    result = lookup.get_threshold("3-5", "male")
    assert result.source == DEFAULT
    assert result.used_default
    assert result.entry.red_max == 13.1
    assert result.entry.yellow_max == 14.0
    assert result.entry.green_max == 17.0


def test_default_fallback_is_logged(lookup, caplog):
    with caplog.at_level(logging.WARNING, logger="catalogs"):
        lookup.get_range("6-10", "female")
    assert "built-in default" in caplog.text


def test_catalog_entry_wins_over_default():
    lookup = CatalogLookup(InMemoryCatalog(thresholds=[_threshold()]))
    result = lookup.get_threshold("3-5", "male")
    assert result.source == CATALOG
    assert result.entry.red_max == 12.0


def test_inactive_entries_are_skipped():
    lookup = CatalogLookup(InMemoryCatalog(thresholds=[_threshold(active=False)]))
    assert lookup.get_threshold("3-5", "male").source == DEFAULT


def test_first_active_match_wins():
    catalog = InMemoryCatalog(thresholds=[
        _threshold(id="old", active=False, red=10.0),
        _threshold(id="first", red=12.0),
        _threshold(id="second", red=12.5),
    ])
    assert CatalogLookup(catalog).get_threshold("3-5", "male").entry.id == "first"


def test_lookup_is_keyed_by_gender():
    lookup = CatalogLookup(InMemoryCatalog(thresholds=[_threshold(gender="female")]))
    assert lookup.get_threshold("3-5", "male").source == DEFAULT
    assert lookup.get_threshold("3-5", "female").source == CATALOG


def test_repeated_lookup_returns_identical_values(lookup):
    """Without catalog changes, two lookups for the same key agree."""
    assert lookup.get_threshold("11-17", "female") == lookup.get_threshold("11-17", "female")


def test_range_and_recommendation_lookups():
    rng = ValidationRange(id="r1", age_group="18+", gender="male", min_weight=40, max_weight=140,
                          min_height=1.4, max_height=2.1)
    rec = Recommendation(id="x", status="yellow", title="T", message="M", action="A", priority=2)
    lookup = CatalogLookup(InMemoryCatalog(ranges=[rng], recommendations=[rec]))

    assert lookup.range_for_age(30, "male").entry.min_weight == 40
    assert lookup.get_recommendation("yellow").entry.message == "M"
    assert lookup.get_recommendation("red").source == DEFAULT


def test_every_default_key_is_covered(lookup):
    for group in ["3-5", "6-10", "11-17", "18+"]:
        for gender in ["male", "female"]:
            assert lookup.get_threshold(group, gender).entry.age_group == group
            assert lookup.get_range(group, gender).entry.gender == gender
    for status in ["red", "yellow", "green"]:
        assert lookup.get_recommendation(status).entry.status == status


def test_default_thresholds_are_strictly_ascending():
    assert check_threshold_order(all_default_thresholds()) == []


@pytest.mark.parametrize("red, yellow, green", [(14.0, 13.0, 17.0), (13.0, 13.0, 17.0), (13.0, 18.0, 17.0)])
def test_check_threshold_order_flags_bad_entries(red, yellow, green):
    problems = check_threshold_order([_threshold(red=red, yellow=yellow, green=green)])
    assert len(problems) == 1
    assert "t1" in problems[0]


def test_check_threshold_order_ignores_inactive_entries():
    assert check_threshold_order([_threshold(red=20.0, active=False)]) == []


@pytest.mark.parametrize("group, gender", [("3-5", "other"), ("0-2", "male")])
def test_unknown_default_key_raises_value_error(lookup, group, gender):
    with pytest.raises(ValueError, match=gender):
        lookup.get_threshold(group, gender)
    with pytest.raises(ValueError, match="ranges"):
        lookup.get_range(group, gender)
