"""Mood classification from averaged Spotify audio features.

The pipeline is ``aggregate`` -> ``classify`` -> ``generate_insights``; ``analyze_mood``
runs all three and is what the HTTP layers call. Everything here is pure: no I/O,
no shared state, no exceptions for odd input.
"""
from __future__ import annotations

import logging
import math
from typing import Any, Dict, Iterable, List, Mapping

from listenify.models import FEATURE_KEYS, AggregateFeatures, AudioFeatureRecord, Mood, MoodResult


logger = logging.getLogger(__name__)


ENCOURAGEMENT = {
    Mood.EUPHORIC: "You're radiating incredible positive energy! Your music choices show you're in an amazing headspace. Keep riding this wave of joy!",
    Mood.HAPPY: "Your mood is bright and uplifting! You're choosing music that reflects a positive outlook. This energy is contagious - spread it around!",
    Mood.CONTENT: "You seem to be in a peaceful, balanced state. Your music reflects contentment and stability. This is a wonderful foundation for growth!",
    Mood.NEUTRAL: "Your mood seems balanced and stable. You're in a good position to make positive changes or tackle new challenges!",
}

ADVICE = {
    Mood.MELANCHOLIC: "Your music suggests you might be going through a tough time. It's okay to feel this way - emotions are valid. Consider reaching out to someone you trust, or try some uplifting activities.",
    Mood.SAD: "Your recent listening patterns indicate you may be feeling down. Remember that difficult emotions are temporary. Consider talking to a friend, going for a walk, or engaging in self-care activities.",
    Mood.AGGRESSIVE: "Your music choices suggest high energy but possibly some frustration. Channel this energy positively - maybe through exercise, creative expression, or problem-solving.",
}

INSIGHT_HIGH_DANCEABILITY = "You're drawn to highly danceable music - you might be feeling energetic and ready to move!"
INSIGHT_LOW_DANCEABILITY = "Your recent tracks are less danceable - you might prefer more contemplative or relaxing music right now."
INSIGHT_ACOUSTIC = "You're gravitating toward acoustic music, suggesting a desire for authenticity and raw emotion."
INSIGHT_INSTRUMENTAL = "You're choosing more instrumental music - perhaps seeking focus, relaxation, or emotional processing without words."
INSIGHT_HIGH_TEMPO = "Your music tempo is quite high - you might be feeling energetic or need motivation!"
INSIGHT_LOW_TEMPO = "You're preferring slower-paced music, which might indicate a need for calm and reflection."


def _field(record: Any, key: str) -> float:
    if isinstance(record, AudioFeatureRecord):
        value = getattr(record, key)
    elif isinstance(record, Mapping):
        value = record.get(key)
    else:
        # A present entry that is not an object contributes zeros but still counts.
        return 0.0
    # bool is an int subclass; Spotify never sends one for a feature
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    try:
        value = float(value)
    except OverflowError:
        return 0.0
    if not math.isfinite(value):
        return 0.0
    return value


def aggregate(records: Iterable[Any] | None) -> AggregateFeatures:
    """Average each audio feature across the non-null records.

    Missing, non-numeric or non-finite fields count as 0 for that field only, and an
    entry that is not an object counts as a record of zeros. Sums are divided once
    at the end, tempo included. With nothing to average the result has
    ``count == 0`` and every field at 0.
    """
    totals: Dict[str, float] = {key: 0.0 for key in FEATURE_KEYS}
    count = 0
    for record in records or ():
        if record is None:
            continue
        for key in FEATURE_KEYS:
            totals[key] += _field(record, key)
        count += 1

    if count == 0:
        return AggregateFeatures()

    means = {}
    for key, total in totals.items():
        mean = total / count
        # Summing huge finite values can still overflow to inf
        means[key] = mean if math.isfinite(mean) else 0.0
    return AggregateFeatures(count=count, **means)


def classify(features: AggregateFeatures) -> MoodResult:
    """Map averaged valence/energy to a mood. Insights are not attached here."""
    if features.count == 0:
        return MoodResult(mood=Mood.NEUTRAL, confidence=0)

    valence = features.valence
    energy = features.energy

    # Order matters: the threshold boxes overlap and the first match wins.
    if valence > 0.6 and energy > 0.6:
        mood, confidence = Mood.EUPHORIC, 0.9
    elif valence > 0.5 and energy > 0.5:
        mood, confidence = Mood.HAPPY, 0.8
    elif valence > 0.4 and energy > 0.4:
        mood, confidence = Mood.CONTENT, 0.7
    elif valence < 0.3 and energy < 0.4:
        mood, confidence = Mood.MELANCHOLIC, 0.8
    elif valence < 0.4 and energy < 0.3:
        mood, confidence = Mood.SAD, 0.85
    elif energy > 0.7 and valence < 0.5:
        mood, confidence = Mood.AGGRESSIVE, 0.75
    else:
        mood, confidence = Mood.NEUTRAL, 0.6

    return MoodResult(
        mood=mood,
        confidence=confidence,
        features=features,
        advice=ADVICE.get(mood),
        encouragement=ENCOURAGEMENT.get(mood),
    )


def generate_insights(features: AggregateFeatures) -> List[str]:
    insights: List[str] = []

    if features.danceability > 0.7:
        insights.append(INSIGHT_HIGH_DANCEABILITY)
    elif features.danceability < 0.3:
        insights.append(INSIGHT_LOW_DANCEABILITY)

    if features.acousticness > 0.6:
        insights.append(INSIGHT_ACOUSTIC)

    if features.instrumentalness > 0.5:
        insights.append(INSIGHT_INSTRUMENTAL)

    # An unmeasured tempo averages to 0 and reads as "slow".
    if features.tempo > 140:
        insights.append(INSIGHT_HIGH_TEMPO)
    elif features.tempo < 90:
        insights.append(INSIGHT_LOW_TEMPO)

    return insights


def analyze_mood(records: Iterable[Any] | None) -> MoodResult:
    features = aggregate(records)
    result = classify(features)
    if features.count == 0:
        return result
    result.insights = generate_insights(features)
    logger.debug("Classified %d tracks as %s (%.2f)", features.count, result.mood.value, result.confidence)
    return result
