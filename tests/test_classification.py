import pytest
from catalogs import CATALOG, DEFAULT, CatalogLookup, InMemoryCatalog
from classification import Classifier, Finding, find_tier
from models import NutritionalThreshold, Recommendation

# 3-5 / male defaults: red_max 13.1, yellow_max 14.0, green_max 17.0
TIER_ORDER = [
    Finding.SEVERE_UNDERNUTRITION,
    Finding.UNDERNUTRITION_RISK,
    Finding.NORMAL,
    Finding.SEVERE_OVERWEIGHT,
]


def test_underweight_child_is_red(classifier):
    result = classifier.classify(12.3, 4, "male")
    assert result.status == "red"
    assert result.alert_level == "critical"
    assert result.priority == 1
    assert result.finding is Finding.SEVERE_UNDERNUTRITION
    assert result.threshold_source == DEFAULT
    assert "hospitalization" in result.recommendation


@pytest.mark.parametrize(
    "bmi, status, level, priority",
    [
        (13.0, "red", "critical", 1),
        (13.1, "yellow", "warning", 2),
        (13.9, "yellow", "warning", 2),
        (14.0, "green", "info", 3),
        (17.0, "green", "info", 3),
        (17.1, "red", "critical", 1),
    ],
)
def test_tier_boundaries_belong_to_the_better_tier(classifier, bmi, status, level, priority):
    result = classifier.classify(bmi, 4, "male")
    assert (result.status, result.alert_level, result.priority) == (status, level, priority)


def test_yellow_recommends_follow_up_within_weeks(classifier):
    assert "2-4 weeks" in classifier.classify(13.5, 4, "male").recommendation


def test_both_red_causes_carry_different_text(classifier):
    under = classifier.classify(12.0, 4, "male")
    over = classifier.classify(19.0, 4, "male")
    assert (under.status, under.alert_level, under.priority) == (over.status, over.alert_level, over.priority)
    assert under.message != over.message
    assert under.recommendation != over.recommendation
    assert over.finding is Finding.SEVERE_OVERWEIGHT
    assert "overweight" in over.message.lower()


def test_classification_is_monotonic_within_each_interval(classifier):
    """Walking BMI upward never moves back to an earlier tier (the U shape lives in the projection)."""
    bmis = [x / 10 for x in range(80, 400)]
    tiers = [classifier.classify(b, 4, "male").finding for b in bmis]
    positions = [TIER_ORDER.index(t) for t in tiers]
    assert positions == sorted(positions)
    assert set(tiers) == set(TIER_ORDER)


def test_status_is_not_globally_monotonic(classifier):
    statuses = [classifier.classify(b, 4, "male").status for b in (12.0, 13.5, 15.0, 19.0)]
    assert statuses == ["red", "yellow", "green", "red"]


def test_percentile_tracks_the_classifier_tier(classifier):
    expected = {
        Finding.SEVERE_UNDERNUTRITION: 5,
        Finding.UNDERNUTRITION_RISK: 10,
        Finding.NORMAL: 50,
        Finding.SEVERE_OVERWEIGHT: 95,
    }
    for age, gender in [(4, "male"), (8, "female"), (14, "male"), (40, "female")]:
        for bmi in [x / 10 for x in range(80, 400, 3)]:
            finding = classifier.classify(bmi, age, gender).finding
            assert classifier.estimate_percentile(bmi, age, gender) == expected[finding]


def test_adult_defaults(classifier):
    assert classifier.classify(18.0, 30, "female").status == "red"
    assert classifier.classify(31.0, 30, "female").finding is Finding.SEVERE_OVERWEIGHT


def test_catalog_threshold_and_recommendation_are_used():
    threshold = NutritionalThreshold(id="t", age_group="6-10", gender="female",
                                     red_max=12.0, yellow_max=13.0, green_max=16.0)
    rec = Recommendation(id="r", status="yellow", title="Watch", message="Custom message",
                         action="Custom action", priority=2)
    classifier = Classifier(CatalogLookup(InMemoryCatalog(thresholds=[threshold], recommendations=[rec])))

    result = classifier.classify(12.5, 8, "female")
    assert result.status == "yellow"
    assert result.threshold_source == CATALOG
    assert result.message == "Custom message"
    assert result.recommendation == "Custom action"


def test_catalog_recommendation_does_not_replace_overweight_text():
    rec = Recommendation(id="r", status="red", title="Red", message="Catalog red", action="Act", priority=1)
    classifier = Classifier(CatalogLookup(InMemoryCatalog(recommendations=[rec])))
    assert classifier.classify(12.0, 4, "male").message == "Catalog red"
    assert classifier.classify(19.0, 4, "male").message != "Catalog red"


def test_age_without_group_raises(classifier):
    with pytest.raises(ValueError):
        classifier.classify(15.0, 2, "male")


def test_find_tier_directly():
    t = NutritionalThreshold(id="t", age_group="18+", gender="male", red_max=18.5, yellow_max=25.0, green_max=30.0)
    assert find_tier(18.4, t) is Finding.SEVERE_UNDERNUTRITION
    assert find_tier(18.5, t) is Finding.UNDERNUTRITION_RISK
    assert find_tier(25.0, t) is Finding.NORMAL
    assert find_tier(30.0, t) is Finding.NORMAL
    assert find_tier(30.1, t) is Finding.SEVERE_OVERWEIGHT


def test_unknown_gender_is_a_value_error(classifier):
    with pytest.raises(ValueError):
        classifier.classify(15.0, 4, "other")
    with pytest.raises(ValueError):
        classifier.estimate_percentile(15.0, 4, "other")
