import math

import pytest

from listenify.models import FEATURE_KEYS, AggregateFeatures, AudioFeatureRecord, Mood
from listenify.mood import (
    ADVICE,
    ENCOURAGEMENT,
    INSIGHT_ACOUSTIC,
    INSIGHT_HIGH_DANCEABILITY,
    INSIGHT_HIGH_TEMPO,
    INSIGHT_INSTRUMENTAL,
    INSIGHT_LOW_DANCEABILITY,
    INSIGHT_LOW_TEMPO,
    aggregate,
    analyze_mood,
    classify,
    generate_insights,
)


TRACKS = [
    {"valence": 0.9, "energy": 0.8, "danceability": 0.8, "acousticness": 0.1, "instrumentalness": 0.0,
     "liveness": 0.2, "speechiness": 0.05, "tempo": 128.0},
    {"valence": 0.3, "energy": 0.4, "danceability": 0.5, "acousticness": 0.6, "instrumentalness": 0.3,
     "liveness": 0.1, "speechiness": 0.04, "tempo": 90.0},
    {"valence": 0.5, "energy": 0.5, "danceability": 0.9, "acousticness": 0.2, "instrumentalness": 0.9,
     "liveness": 0.3, "speechiness": 0.1, "tempo": 172.0},
]


def features(**values):
    return AggregateFeatures(count=1, **values)


def test_aggregate_is_arithmetic_mean():
    agg = aggregate(TRACKS)
    assert agg.count == 3
    for key in FEATURE_KEYS:
        expected = sum(t[key] for t in TRACKS) / 3
        assert getattr(agg, key) == pytest.approx(expected)


def test_aggregate_skips_nulls():
    assert aggregate([None] + TRACKS) == aggregate(TRACKS)
    assert aggregate(TRACKS + [None, None]).count == 3


def test_aggregate_missing_field_counts_as_zero():
    agg = aggregate([{"valence": 0.8}, {"valence": 0.4, "energy": 0.6}])
    assert agg.count == 2
    assert agg.valence == pytest.approx(0.6)
    assert agg.energy == pytest.approx(0.3)
    assert agg.tempo == 0


def test_aggregate_ignores_malformed_values():
    agg = aggregate([{"valence": "high", "energy": None, "tempo": math.nan, "danceability": True, "liveness": 0.5}])
    assert agg.count == 1
    assert agg.valence == 0
    assert agg.energy == 0
    assert agg.tempo == 0
    assert agg.danceability == 0
    assert agg.liveness == 0.5


def test_aggregate_accepts_records_and_ints():
    agg = aggregate([AudioFeatureRecord(valence=0.2, tempo=100), {"valence": 1, "tempo": 120}])
    assert agg.valence == pytest.approx(0.6)
    assert agg.tempo == pytest.approx(110)


def test_aggregate_does_not_range_check():
    agg = aggregate([{"valence": 3.0, "energy": -1.0, "tempo": 0}])
    assert agg.valence == 3.0
    assert agg.energy == -1.0


@pytest.mark.parametrize("records", [[], [None, None], None])
def test_aggregate_empty(records):
    agg = aggregate(records)
    assert agg.count == 0
    assert all(getattr(agg, key) == 0 for key in FEATURE_KEYS)


def test_classify_empty_short_circuits():
    result = classify(aggregate([]))
    assert result.to_dict() == {"mood": "neutral", "confidence": 0, "features": {}}


@pytest.mark.parametrize(
    "valence, energy, mood, confidence",
    [
        (0.9, 0.9, Mood.EUPHORIC, 0.9),
        (0.55, 0.55, Mood.HAPPY, 0.8),
        (0.6, 0.6, Mood.HAPPY, 0.8),
        (0.45, 0.45, Mood.CONTENT, 0.7),
        (0.5, 0.5, Mood.CONTENT, 0.7),
        (0.2, 0.3, Mood.MELANCHOLIC, 0.8),
        (0.35, 0.2, Mood.SAD, 0.85),
        (0.4, 0.8, Mood.AGGRESSIVE, 0.75),
        (0.2, 0.8, Mood.AGGRESSIVE, 0.75),
        (0.4, 0.4, Mood.NEUTRAL, 0.6),
        (0.9, 0.1, Mood.NEUTRAL, 0.6),
    ],
)
def test_classify_priority_chain(valence, energy, mood, confidence):
    result = classify(features(valence=valence, energy=energy))
    assert result.mood is mood
    assert result.confidence == confidence


def test_melancholic_checked_before_sad():
    # Both rule 4 and rule 5 hold here; the earlier one wins.
    assert classify(features(valence=0.1, energy=0.1)).mood is Mood.MELANCHOLIC


def test_confidence_ignores_sample_size():
    one = classify(AggregateFeatures(valence=0.9, energy=0.9, count=1))
    many = classify(AggregateFeatures(valence=0.9, energy=0.9, count=100))
    assert one.confidence == many.confidence == 0.9


@pytest.mark.parametrize("valence, energy", [(0.9, 0.9), (0.55, 0.55), (0.45, 0.45), (0.2, 0.3), (0.35, 0.2), (0.2, 0.8), (0.4, 0.4)])
def test_exactly_one_message(valence, energy):
    result = classify(features(valence=valence, energy=energy)).to_dict()
    assert ("advice" in result) != ("encouragement" in result)


def test_negative_moods_get_advice():
    result = classify(features(valence=0.35, energy=0.2))
    assert result.advice == ADVICE[Mood.SAD]
    assert result.encouragement is None
    assert "encouragement" not in result.to_dict()


def test_positive_moods_get_encouragement():
    result = classify(features(valence=0.7, energy=0.7))
    assert result.encouragement == ENCOURAGEMENT[Mood.EUPHORIC]
    assert "advice" not in result.to_dict()


def test_classify_is_deterministic():
    agg = aggregate(TRACKS)
    assert classify(agg).to_dict() == classify(agg).to_dict()


def test_insights_follow_rule_order():
    insights = generate_insights(
        AggregateFeatures(danceability=0.8, acousticness=0.7, instrumentalness=0.2, tempo=150, count=1)
    )
    assert insights == [INSIGHT_HIGH_DANCEABILITY, INSIGHT_ACOUSTIC, INSIGHT_HIGH_TEMPO]


def test_all_insights():
    insights = generate_insights(
        AggregateFeatures(danceability=0.1, acousticness=0.9, instrumentalness=0.9, tempo=60, count=1)
    )
    assert insights == [INSIGHT_LOW_DANCEABILITY, INSIGHT_ACOUSTIC, INSIGHT_INSTRUMENTAL, INSIGHT_LOW_TEMPO]


def test_no_insights_in_middle_band():
    assert generate_insights(AggregateFeatures(danceability=0.5, acousticness=0.6, instrumentalness=0.5, tempo=120, count=1)) == []


def test_missing_fields_read_as_low():
    # An unmeasured danceability/tempo averages to 0 and triggers the "low" insights.
    result = analyze_mood([{"valence": 0.7, "energy": 0.7}])
    assert result.insights == [INSIGHT_LOW_DANCEABILITY, INSIGHT_LOW_TEMPO]


def test_analyze_mood_attaches_insights():
    result = analyze_mood(TRACKS).to_dict()
    assert result["mood"] == "happy"
    assert result["features"]["count"] == 3
    assert result["insights"] == [INSIGHT_HIGH_DANCEABILITY]


def test_analyze_mood_empty_has_no_insights():
    assert analyze_mood([None]).to_dict() == {"mood": "neutral", "confidence": 0, "features": {}}


@pytest.mark.parametrize("value", [10**400, -10**400, math.inf, -math.inf])
def test_aggregate_non_finite_values_count_as_zero(value):
    agg = aggregate([{"valence": value, "energy": 0.5}])
    assert agg.count == 1
    assert agg.valence == 0
    assert agg.energy == 0.5


def test_aggregate_overflowing_sum_counts_as_zero():
    agg = aggregate([{"valence": 1e308, "energy": 0.2}, {"valence": 1e308, "energy": 0.4}])
    assert agg.valence == 0
    assert agg.energy == pytest.approx(0.3)


def test_aggregate_counts_non_object_entries_as_zeros():
    agg = aggregate([5, "track", {"valence": 0.8, "energy": 0.8}])
    assert agg.count == 3
    assert agg.valence == pytest.approx(0.8 / 3)

    agg = aggregate([5, {"valence": 0.8, "energy": 0.8}])
    assert agg.count == 2
    assert agg.valence == pytest.approx(0.4)
